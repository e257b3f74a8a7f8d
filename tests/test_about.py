"""Version and license text tests."""

from __future__ import annotations

import pytest

from qx.about import AboutInfo, DependencyInfo, collect_about_info

pytestmark = pytest.mark.unit


def test_version_text() -> None:
    info = AboutInfo(name="qx", version="1.2.3", license="MIT", dependencies=())

    assert info.version_text() == "qx version 1.2.3\nCopyright (c) 2025 Arstella Ltd."


def test_license_text_lists_each_dependency() -> None:
    info = AboutInfo(
        name="qx",
        version="1.2.3",
        license="MIT",
        dependencies=(
            DependencyInfo(name="openai", version="1.0.0", license="Apache-2.0"),
            DependencyInfo(name="httpx", version="0.28.0", license="BSD-3-Clause"),
        ),
    )

    text = info.license_text()

    assert text.startswith("qx 1.2.3 (MIT)")
    assert "Permission is hereby granted" in text
    assert "- openai 1.0.0: Apache-2.0" in text
    assert "- httpx 0.28.0: BSD-3-Clause" in text


def test_collect_about_info_reads_installed_metadata() -> None:
    info = collect_about_info()

    assert info.name == "qx"
    assert info.license == "MIT"
    names = {dep.name for dep in info.dependencies}
    assert {"openai", "httpx", "pydantic"} <= names
    assert all(dep.version for dep in info.dependencies)
