"""Command handler tests: output delivery and the error-to-exit-code boundary."""

from __future__ import annotations

import io
import json
from pathlib import Path

import pytest

from qx.errors import (
    APIError,
    AuthenticationError,
    FileAccessError,
    NetworkError,
    OutputError,
    RateLimitError,
    RequestTimeoutError,
)
from qx.handler import QueryCommandHandler, QueryRequest, write_output
from qx.options import QueryOptions
from tests.helpers import FakeService

pytestmark = pytest.mark.unit


def _handler(service: FakeService) -> tuple[QueryCommandHandler, io.StringIO, io.StringIO]:
    out, err = io.StringIO(), io.StringIO()
    return QueryCommandHandler(service, stdout=out, stderr=err), out, err


@pytest.mark.asyncio
async def test_prints_completion_to_stdout() -> None:
    service = FakeService(text="The answer.")
    handler, out, err = _handler(service)

    code = await handler.handle(QueryRequest(prompt="q", options=QueryOptions()))

    assert code == 0
    assert out.getvalue() == "The answer.\n"
    assert err.getvalue() == ""
    assert service.calls[0]["method"] == "get_completion"
    assert service.calls[0]["enable_function_calling"] is False


@pytest.mark.asyncio
async def test_forwards_function_calling_flag() -> None:
    service = FakeService()
    handler, _, _ = _handler(service)

    await handler.handle(
        QueryRequest(prompt="q", options=QueryOptions(), enable_function_calling=True)
    )

    assert service.calls[0]["enable_function_calling"] is True


@pytest.mark.asyncio
async def test_verbose_prints_details_json_before_text() -> None:
    service = FakeService(text="Body")
    handler, out, _ = _handler(service)

    code = await handler.handle(
        QueryRequest(prompt="q", options=QueryOptions(model="gpt-4o"), verbose=True)
    )

    assert code == 0
    details_json, _, text = out.getvalue().rpartition("}\n")
    assert text == "Body\n"
    assert json.loads(details_json + "}")["model"] == "gpt-4o"
    assert service.calls[0]["method"] == "get_completion_with_details"


@pytest.mark.asyncio
async def test_output_file_receives_exact_text(tmp_path: Path) -> None:
    target = tmp_path / "answer.txt"
    service = FakeService(text="line one\nline two")
    handler, out, err = _handler(service)

    code = await handler.handle(
        QueryRequest(prompt="q", options=QueryOptions(), output_path=target)
    )

    assert code == 0
    assert target.read_text(encoding="utf-8") == "line one\nline two"
    assert out.getvalue() == ""
    assert err.getvalue() == f"Response saved to: {target}\n"


@pytest.mark.asyncio
async def test_stream_writes_chunks_then_newline() -> None:
    service = FakeService(chunks=("Hel", "lo"))
    handler, out, _ = _handler(service)

    code = await handler.handle(QueryRequest(prompt="q", options=QueryOptions(), stream=True))

    assert code == 0
    assert out.getvalue() == "Hello\n"
    assert service.calls[0]["method"] == "stream"


@pytest.mark.parametrize(
    ("error", "exit_code"),
    [
        (APIError("server exploded", status_code=500), 2),
        (RateLimitError("slow down", status_code=429), 2),
        (AuthenticationError("bad key", hint="Check OPENAI_API_KEY."), 3),
        (NetworkError("unreachable"), 3),
        (RequestTimeoutError("Query timed out after 60 seconds"), 124),
    ],
)
@pytest.mark.asyncio
async def test_errors_map_to_exit_codes(error: Exception, exit_code: int) -> None:
    handler, out, err = _handler(FakeService(error=error))

    code = await handler.handle(QueryRequest(prompt="q", options=QueryOptions()))

    assert code == exit_code
    assert out.getvalue() == ""
    assert err.getvalue().startswith(f"Error: {error}\n")


@pytest.mark.asyncio
async def test_hint_is_printed_after_the_error() -> None:
    handler, _, err = _handler(
        FakeService(error=AuthenticationError("bad key", hint="Check OPENAI_API_KEY."))
    )

    await handler.handle(QueryRequest(prompt="q", options=QueryOptions()))

    assert err.getvalue() == "Error: bad key\nHint: Check OPENAI_API_KEY.\n"


@pytest.mark.asyncio
async def test_unexpected_errors_exit_with_one() -> None:
    handler, _, err = _handler(FakeService(error=RuntimeError("surprise")))

    code = await handler.handle(QueryRequest(prompt="q", options=QueryOptions()))

    assert code == 1
    assert err.getvalue() == "Error: surprise\n"


@pytest.mark.asyncio
async def test_unwritable_output_path_exits_with_four(tmp_path: Path) -> None:
    target = tmp_path / "missing-dir" / "out.txt"
    handler, _, err = _handler(FakeService())

    code = await handler.handle(
        QueryRequest(prompt="q", options=QueryOptions(), output_path=target)
    )

    assert code == 4
    assert "Cannot open output file" in err.getvalue()


def test_write_output_to_a_directory_is_a_file_access_error(tmp_path: Path) -> None:
    with pytest.raises(FileAccessError):
        write_output(tmp_path, "text")


def test_write_output_maps_other_os_errors(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    def full_disk(self: Path, *args: object, **kwargs: object) -> int:
        raise OSError(28, "No space left on device")

    monkeypatch.setattr(Path, "write_text", full_disk)

    with pytest.raises(OutputError) as exc_info:
        write_output(tmp_path / "out.txt", "text")

    assert exc_info.value.exit_code == 5


def test_write_output_keeps_line_endings(tmp_path: Path) -> None:
    target = tmp_path / "crlf.txt"

    write_output(target, "a\r\nb\n")

    assert target.read_bytes() == b"a\r\nb\n"
