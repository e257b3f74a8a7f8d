"""Version and license information shown by ``--version`` and ``--license``."""

from __future__ import annotations

from dataclasses import dataclass
from importlib.metadata import PackageNotFoundError, metadata, version

DISTRIBUTION_NAME = "qx-cli"
PROJECT_URL = "https://github.com/lifeast/Qx"

THIRD_PARTY_DISTRIBUTIONS = ("openai", "httpx", "pydantic", "python-dotenv")

MIT_LICENSE = """\
MIT License

Copyright (c) 2025 Arstella Ltd.

Permission is hereby granted, free of charge, to any person obtaining a copy
of this software and associated documentation files (the "Software"), to deal
in the Software without restriction, including without limitation the rights
to use, copy, modify, merge, publish, distribute, sublicense, and/or sell
copies of the Software, and to permit persons to whom the Software is
furnished to do so, subject to the following conditions:

The above copyright notice and this permission notice shall be included in all
copies or substantial portions of the Software.

THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND, EXPRESS OR
IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY,
FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT. IN NO EVENT SHALL THE
AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER
LIABILITY, WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING FROM,
OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN THE
SOFTWARE.
"""


@dataclass(frozen=True)
class DependencyInfo:
    """An installed third-party distribution."""

    name: str
    version: str
    license: str


@dataclass(frozen=True)
class AboutInfo:
    """Project version plus the third-party distributions it runs on."""

    name: str
    version: str
    license: str
    dependencies: tuple[DependencyInfo, ...]

    def version_text(self) -> str:
        """Text printed for ``--version``."""
        return f"{self.name} version {self.version}\nCopyright (c) 2025 Arstella Ltd."

    def license_text(self) -> str:
        """Text printed for ``--license``: project license and third-party notices."""
        lines = [
            f"{self.name} {self.version} ({self.license})",
            f"Project: {PROJECT_URL}",
            "",
            MIT_LICENSE,
            "THIRD-PARTY SOFTWARE NOTICES",
            "============================",
        ]
        for dep in self.dependencies:
            lines.append(f"- {dep.name} {dep.version}: {dep.license}")
        return "\n".join(lines)


def _distribution_version(name: str) -> str | None:
    try:
        return version(name)
    except PackageNotFoundError:
        return None


def _distribution_license(name: str) -> str:
    try:
        meta = metadata(name)
    except PackageNotFoundError:
        return "unknown"
    for key in ("License-Expression", "License"):
        value = meta.get(key)
        # Some distributions put the full license text here; keep the first line.
        if value and value.strip() and value.strip().upper() != "UNKNOWN":
            return value.strip().splitlines()[0]
    for classifier in meta.get_all("Classifier") or []:
        if classifier.startswith("License ::"):
            return classifier.rsplit("::", 1)[-1].strip()
    return "unknown"


def collect_about_info() -> AboutInfo:
    """Collect version information from installed distribution metadata."""
    deps = tuple(
        DependencyInfo(name=name, version=dep_version, license=_distribution_license(name))
        for name in THIRD_PARTY_DISTRIBUTIONS
        if (dep_version := _distribution_version(name)) is not None
    )
    return AboutInfo(
        name="qx",
        version=_distribution_version(DISTRIBUTION_NAME) or "0.0.0+unknown",
        license="MIT",
        dependencies=deps,
    )
