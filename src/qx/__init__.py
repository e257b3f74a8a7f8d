"""qx: send a natural-language prompt to the OpenAI API from the command line.

Public API:
    - OpenAIService: Responses API adapter with inline function calling
    - ToolService: registry of local functions the model may call
    - ApiOptions / QueryOptions / RetryPolicy / Configuration: validated settings
    - Query / Response: request and result value objects
"""

from __future__ import annotations

import logging

from qx.config import Configuration
from qx.errors import (
    APIError,
    AuthenticationError,
    FileAccessError,
    NetworkError,
    OutputError,
    QxError,
    RateLimitError,
    RequestTimeoutError,
    ValidationError,
)
from qx.models import Query, Response, ResponseMetadata
from qx.options import ApiOptions, ContextSize, EffortLevel, QueryOptions
from qx.providers.openai import OpenAIService
from qx.retry import RetryPolicy
from qx.tools import ToolService

try:
    from importlib.metadata import PackageNotFoundError, version

    __version__ = version("qx-cli")
except PackageNotFoundError:
    __version__ = "0.0.0+unknown"

# Library-level NullHandler: stay silent unless the consumer configures logging.
logging.getLogger("qx").addHandler(logging.NullHandler())

__all__ = [
    "APIError",
    "ApiOptions",
    "AuthenticationError",
    "Configuration",
    "ContextSize",
    "EffortLevel",
    "FileAccessError",
    "NetworkError",
    "OpenAIService",
    "OutputError",
    "Query",
    "QueryOptions",
    "QxError",
    "RateLimitError",
    "RequestTimeoutError",
    "Response",
    "ResponseMetadata",
    "RetryPolicy",
    "ToolService",
    "ValidationError",
]
