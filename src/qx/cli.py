"""Command-line entry point.

Examples:
- qx "Explain the difference between TCP and UDP"
- git diff | qx "Write a commit message for this change" -o msg.txt
- qx -f "What is 12 * 7 and what time is it in JST?"
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from pathlib import Path
import sys
from typing import TYPE_CHECKING, TextIO

from dotenv import load_dotenv

from qx.about import collect_about_info
from qx.config import API_KEY_ENV, Configuration
from qx.errors import AuthenticationError, OutputError, ValidationError
from qx.handler import (
    EXIT_FAILURE,
    EXIT_SUCCESS,
    QueryCommandHandler,
    QueryRequest,
    report_error,
)
from qx.models import Query
from qx.options import QueryOptions
from qx.providers.openai import OpenAIService

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from qx.providers.base import CompletionService

logger = logging.getLogger(__name__)

_CLI_HANDLER_NAME = "qx-cli"


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="qx",
        description="Query eXpress: send a prompt to the OpenAI API and print the answer.",
        epilog=(
            "Standard input, when piped, is prepended to the prompt. "
            f"Requires {API_KEY_ENV}."
        ),
    )
    parser.add_argument("prompt", nargs="*", help="The natural language prompt to send")
    parser.add_argument("-m", "--model", help="The model to use")
    parser.add_argument("-o", "--output", type=Path, help="Write the response to this file")
    parser.add_argument(
        "-t",
        "--temperature",
        type=float,
        help="Sampling temperature (0.0 to 2.0) [default: 1.0]",
    )
    parser.add_argument(
        "--max-tokens",
        type=int,
        help="Maximum tokens in the response (omit for unlimited)",
    )
    parser.add_argument(
        "-w",
        "--web-search",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Let the model search the web [default: on]",
    )
    parser.add_argument(
        "-f",
        "--functions",
        action=argparse.BooleanOptionalAction,
        default=False,
        help="Let the model call the built-in local functions [default: off]",
    )
    parser.add_argument(
        "--stream",
        action="store_true",
        help="Print the response as it arrives",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Print response details as JSON and enable debug logging",
    )
    parser.add_argument("--version", action="store_true", help="Show version information")
    parser.add_argument("--license", action="store_true", help="Show license information")
    return parser


def read_prompt(words: Sequence[str], stdin: TextIO | None) -> str:
    """Combine piped standard input (first) with the positional prompt words."""
    positional = " ".join(words).strip()
    piped = ""
    if stdin is not None and not stdin.isatty():
        piped = stdin.read().strip()
    return "\n\n".join(part for part in (piped, positional) if part)


def resolve_request(
    args: argparse.Namespace, config: Configuration, prompt: str
) -> QueryRequest:
    """Turn parsed arguments into a validated request.

    A temperature or max-token value of ``0`` counts as unset.

    Raises:
        ValidationError: If any option is out of range.
    """
    temperature = args.temperature or None
    max_tokens = args.max_tokens or None

    api_options = config.options.merge_with_command_line(
        args.model, temperature, max_tokens
    )
    problems = api_options.validation_errors()
    if problems:
        hint = None
        if not api_options.is_model_allowed(api_options.default_model):
            hint = "Allowed models: " + ", ".join(sorted(api_options.allowed_models))
        raise ValidationError("Invalid options: " + "; ".join(problems), hint=hint)

    if args.stream and (args.functions or args.verbose or args.output is not None):
        raise ValidationError(
            "--stream cannot be combined with --functions, --verbose or --output"
        )

    web_search = (
        api_options.enable_web_search_by_default
        if args.web_search is None
        else args.web_search
    )
    query = Query(
        content=prompt,
        reasoning_effort=api_options.default_effort,
        search_context=api_options.default_context,
        timeout_s=api_options.default_timeout_s,
        model=api_options.default_model,
        temperature=api_options.default_temperature,
        max_tokens=api_options.default_max_tokens,
        enable_web_search=web_search,
    )
    return QueryRequest(
        prompt=prompt,
        options=QueryOptions.from_query(
            query, max_tokens=max_tokens, system_prompt=api_options.system_prompt
        ),
        output_path=args.output,
        verbose=args.verbose,
        enable_function_calling=args.functions,
        stream=args.stream,
    )


def configure_logging(*, debug: bool, stream: TextIO) -> None:
    """Attach a single stderr handler to the ``qx`` logger."""
    pkg_logger = logging.getLogger("qx")
    for existing in list(pkg_logger.handlers):
        if existing.get_name() == _CLI_HANDLER_NAME:
            pkg_logger.removeHandler(existing)
    handler = logging.StreamHandler(stream)
    handler.set_name(_CLI_HANDLER_NAME)
    handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
    pkg_logger.addHandler(handler)
    pkg_logger.setLevel(logging.DEBUG if debug else logging.WARNING)


def create_service(config: Configuration) -> OpenAIService:
    """Build the API adapter from configuration."""
    return OpenAIService(
        config.api_key,
        base_url=config.base_url,
        organization=config.organization_id,
        default_headers=config.options.custom_headers,
        retry=config.retry,
    )


async def _run(
    handler: QueryCommandHandler, service: CompletionService, request: QueryRequest
) -> int:
    try:
        return await handler.handle(request)
    finally:
        try:
            await service.aclose()
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            # Cleanup should never mask the primary result.
            logger.warning("Client cleanup failed: %s", exc)


def main(
    argv: Sequence[str] | None = None,
    *,
    stdin: TextIO | None = None,
    stdout: TextIO | None = None,
    stderr: TextIO | None = None,
    service_factory: Callable[[Configuration], CompletionService] | None = None,
) -> int:
    """Run the CLI and return the exit code."""
    stdin = sys.stdin if stdin is None else stdin
    stdout = sys.stdout if stdout is None else stdout
    stderr = sys.stderr if stderr is None else stderr

    args = build_parser().parse_args(argv)

    if args.version or args.license:
        about = collect_about_info()
        print(about.license_text() if args.license else about.version_text(), file=stdout)
        return EXIT_SUCCESS

    load_dotenv(override=False)
    config = Configuration.from_environment()
    configure_logging(debug=args.verbose or config.debug, stream=stderr)
    logger.debug("Resolved %s", config)

    try:
        prompt = read_prompt(args.prompt, stdin)
    except (UnicodeDecodeError, OSError) as e:
        logger.debug("Reading standard input failed", exc_info=True)
        report_error(
            OutputError(
                f"Failed to read standard input: {e}",
                hint="Pipe UTF-8 text into qx.",
            ),
            stderr,
        )
        return OutputError.exit_code
    if not prompt:
        print("Error: Prompt cannot be empty.", file=stderr)
        return EXIT_FAILURE

    try:
        request = resolve_request(args, config, prompt)
        if not config.api_key.strip():
            raise AuthenticationError(
                f"{API_KEY_ENV} environment variable is not set",
                hint=f"Export {API_KEY_ENV} or add it to a .env file.",
            )
    except (ValidationError, AuthenticationError) as exc:
        report_error(exc, stderr)
        return exc.exit_code

    service = (service_factory or create_service)(config)
    handler = QueryCommandHandler(service, stdout=stdout, stderr=stderr)
    return asyncio.run(_run(handler, service, request))


def run() -> None:
    """Console-script entry point."""
    sys.exit(main())
