"""Command handler: run one query and deliver the result.

The handler is the error boundary. Every ``QxError`` becomes a message on
stderr plus that error's exit code; no traceback reaches the user unless
debug logging is on.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from pathlib import Path
import sys
from typing import TYPE_CHECKING, TextIO

from qx.errors import FileAccessError, OutputError, QxError

if TYPE_CHECKING:
    from qx.options import QueryOptions
    from qx.providers.base import CompletionService

logger = logging.getLogger(__name__)

EXIT_SUCCESS = 0
EXIT_FAILURE = 1


@dataclass(frozen=True)
class QueryRequest:
    """Everything the handler needs for one invocation."""

    prompt: str
    options: QueryOptions
    output_path: Path | None = None
    verbose: bool = False
    enable_function_calling: bool = False
    stream: bool = False


class QueryCommandHandler:
    """Call the completion service and write its output."""

    def __init__(
        self,
        service: CompletionService,
        *,
        stdout: TextIO | None = None,
        stderr: TextIO | None = None,
    ) -> None:
        self._service = service
        self._stdout = stdout if stdout is not None else sys.stdout
        self._stderr = stderr if stderr is not None else sys.stderr

    async def handle(self, request: QueryRequest) -> int:
        """Run *request* and return the process exit code."""
        try:
            await self._execute(request)
        except QxError as exc:
            logger.debug("Query failed", exc_info=True)
            report_error(exc, self._stderr)
            return exc.exit_code
        except Exception as exc:
            logger.debug("Unexpected failure", exc_info=True)
            print(f"Error: {exc}", file=self._stderr)
            return EXIT_FAILURE
        return EXIT_SUCCESS

    async def _execute(self, request: QueryRequest) -> None:
        options = request.options
        logger.info(
            "Querying %s (temperature=%s, max_tokens=%s, web_search=%s)",
            options.model,
            options.temperature,
            options.max_tokens,
            options.enable_web_search,
        )

        if request.stream:
            async for chunk in self._service.stream(request.prompt, options):
                self._stdout.write(chunk)
                self._stdout.flush()
            self._stdout.write("\n")
            return

        if request.verbose:
            text, details = await self._service.get_completion_with_details(
                request.prompt,
                options,
                enable_function_calling=request.enable_function_calling,
            )
            print(details.to_json(), file=self._stdout)
        else:
            text = await self._service.get_completion(
                request.prompt,
                options,
                enable_function_calling=request.enable_function_calling,
            )

        if request.output_path is not None:
            write_output(request.output_path, text)
            print(f"Response saved to: {request.output_path}", file=self._stderr)
        else:
            print(text, file=self._stdout)


def write_output(path: Path, text: str) -> None:
    """Write *text* verbatim to *path*.

    Raises:
        FileAccessError: The file cannot be opened (permissions, missing directory).
        OutputError: Any other I/O failure while writing.
    """
    try:
        path.write_text(text, encoding="utf-8", newline="")
    except (
        PermissionError,
        FileNotFoundError,
        IsADirectoryError,
        NotADirectoryError,
    ) as e:
        raise FileAccessError(
            f"Cannot open output file {path}: {e.strerror or e}",
            hint="Check that the directory exists and is writable.",
        ) from e
    except OSError as e:
        raise OutputError(f"Failed to write output file {path}: {e}") from e


def report_error(exc: QxError, stream: TextIO) -> None:
    """Print an error (and its hint, if any) for the user."""
    print(f"Error: {exc}", file=stream)
    if exc.hint:
        print(f"Hint: {exc.hint}", file=stream)
