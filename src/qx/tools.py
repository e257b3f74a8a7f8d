"""Local functions the model may call, and the dispatcher that runs them.

Every failure path of :meth:`ToolService.execute_function` returns a readable
message instead of raising: the result is spliced directly into the reply
text shown to the user.
"""

from __future__ import annotations

from datetime import UTC, datetime
import hashlib
import json
import logging
import random
from typing import TYPE_CHECKING, Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)

_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"

# Aliases map to IANA zones; None means UTC.
_TIMEZONE_ALIASES: dict[str, str | None] = {
    "UTC": None,
    "GMT": None,
    "PST": "America/Los_Angeles",
    "PT": "America/Los_Angeles",
    "EST": "America/New_York",
    "ET": "America/New_York",
    "JST": "Asia/Tokyo",
}

_WEATHER_CONDITIONS = ("Sunny", "Partly Cloudy", "Cloudy", "Light Rain", "Clear")


class ToolService:
    """Registry of callable functions advertised to the model.

    Names are matched case-insensitively. The three built-ins are registered
    on construction.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, Callable[[dict[str, Any]], str]] = {}
        self._tools: list[dict[str, Any]] = []
        self._register_builtins()

    @property
    def available_tools(self) -> tuple[dict[str, Any], ...]:
        """Function tool descriptors in Responses API shape."""
        return tuple(self._tools)

    def register_function(
        self,
        name: str,
        description: str,
        parameters: dict[str, Any],
        handler: Callable[[dict[str, Any]], str],
    ) -> None:
        """Register *handler* under *name* and advertise it with its JSON schema."""
        key = name.casefold()
        if key in self._handlers:
            self._tools = [t for t in self._tools if t["name"].casefold() != key]
        self._handlers[key] = handler
        self._tools.append(
            {
                "type": "function",
                "name": name,
                "description": description,
                "parameters": parameters,
                "strict": False,
            }
        )

    def execute_function(self, name: str, arguments: str | bytes | None) -> str:
        """Run a registered function and return its textual result."""
        handler = self._handlers.get(name.casefold())
        if handler is None:
            return f"Error: Unknown function '{name}'"

        try:
            args = _parse_arguments(arguments)
        except ValueError as exc:
            return f"Error parsing arguments: {exc}"

        try:
            return handler(args)
        except Exception as exc:
            logger.debug("Function %s raised", name, exc_info=True)
            return f"Error executing function: {exc}"

    def _register_builtins(self) -> None:
        self.register_function(
            "GetCurrentTime",
            "Get the current date and time in a specific timezone",
            {
                "type": "object",
                "properties": {
                    "timezone": {
                        "type": "string",
                        "description": (
                            "The timezone (e.g., 'UTC', 'PST', 'JST'). Default is UTC."
                        ),
                    }
                },
                "required": [],
            },
            get_current_time,
        )
        self.register_function(
            "GetWeather",
            "Get the current weather for a location",
            {
                "type": "object",
                "properties": {
                    "location": {
                        "type": "string",
                        "description": (
                            "The city and state/country, e.g., "
                            "'San Francisco, CA' or 'Tokyo, Japan'"
                        ),
                    },
                    "unit": {
                        "type": "string",
                        "enum": ["celsius", "fahrenheit"],
                        "description": "The temperature unit to use",
                    },
                },
                "required": ["location"],
            },
            get_weather,
        )
        self.register_function(
            "CalculateExpression",
            "Evaluate a simple arithmetic expression with one operator",
            {
                "type": "object",
                "properties": {
                    "expression": {
                        "type": "string",
                        "description": (
                            "Two numbers joined by one of + - * / (e.g., '12 * 4')"
                        ),
                    }
                },
                "required": ["expression"],
            },
            calculate_expression,
        )


def _parse_arguments(arguments: str | bytes | None) -> dict[str, Any]:
    """Decode a JSON argument payload; empty payloads mean no arguments."""
    if arguments is None:
        return {}
    if isinstance(arguments, bytes):
        arguments = arguments.decode("utf-8")
    if not arguments.strip():
        return {}
    parsed = json.loads(arguments)  # JSONDecodeError is a ValueError
    if not isinstance(parsed, dict):
        raise ValueError(f"expected a JSON object, got {type(parsed).__name__}")
    return parsed


def _string_arg(args: dict[str, Any], key: str) -> str | None:
    value = args.get(key)
    if value is None:
        return None
    return value if isinstance(value, str) else str(value)


# --- Built-in functions ---


def get_current_time(args: dict[str, Any]) -> str:
    """Current time for a small set of timezone aliases; unknown aliases use UTC."""
    timezone = _string_arg(args, "timezone") or "UTC"
    now = datetime.now(UTC)
    zone_name = _TIMEZONE_ALIASES.get(timezone.upper())
    if zone_name is None:
        return f"Current time in {timezone}: {now:{_TIME_FORMAT}}"
    try:
        local = now.astimezone(ZoneInfo(zone_name))
    except ZoneInfoNotFoundError:
        logger.debug("Timezone database has no entry for %s", zone_name)
        return f"Current time in UTC: {now:{_TIME_FORMAT}}"
    return f"Current time in {timezone}: {local:{_TIME_FORMAT}}"


def _location_seed(location: str) -> int:
    digest = hashlib.sha256(location.encode("utf-8")).digest()
    return int.from_bytes(digest[:8], "big")


def get_weather(args: dict[str, Any]) -> str:
    """Mock weather report, deterministic for a given location string."""
    location = _string_arg(args, "location")
    if location is None:
        return "Error: Location is required"
    unit = _string_arg(args, "unit") or "celsius"

    rng = random.Random(_location_seed(location))  # noqa: S311
    temperature = rng.randint(15, 29)
    condition = rng.choice(_WEATHER_CONDITIONS)

    if unit == "fahrenheit":
        temperature = int(temperature * 9 / 5 + 32)
        symbol = "°F"
    else:
        symbol = "°C"
    return f"Weather in {location}: {condition}, {temperature}{symbol}"


def calculate_expression(args: dict[str, Any]) -> str:
    """Evaluate ``<number> <op> <number>``; see :func:`evaluate_simple_expression`."""
    expression = _string_arg(args, "expression")
    if expression is None:
        return "Error: Expression is required"
    try:
        result = evaluate_simple_expression(expression)
    except (ValueError, ZeroDivisionError) as exc:
        return f"Error evaluating expression: {exc}"
    return f"Result: {_format_number(result)}"


def evaluate_simple_expression(expression: str) -> float:
    """Evaluate a bare number or a single binary operation on two numbers.

    Only one of ``+ - * /`` is supported, with exactly two operands. There is
    no precedence, no parentheses and no chaining.

    Raises:
        ZeroDivisionError: On division by zero.
        ValueError: For anything else that is not a supported expression.
    """
    compact = expression.replace(" ", "")
    value = _parse_number(compact)
    if value is not None:
        return value

    for op in ("+", "-", "*", "/"):
        if op not in compact or (op == "-" and compact.startswith("-")):
            continue
        parts = compact.split(op)
        if len(parts) != 2:
            continue
        left, right = _parse_number(parts[0]), _parse_number(parts[1])
        if left is None or right is None:
            continue
        if op == "+":
            return left + right
        if op == "-":
            return left - right
        if op == "*":
            return left * right
        if right == 0:
            raise ZeroDivisionError("Cannot divide by zero")
        return left / right

    raise ValueError(f"Unable to evaluate expression: {compact}")


def _parse_number(text: str) -> float | None:
    if not text:
        return None
    try:
        return float(text)
    except ValueError:
        return None


def _format_number(value: float) -> str:
    if value.is_integer():
        return str(int(value))
    return repr(value)
