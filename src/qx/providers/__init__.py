"""Provider implementations."""

from .base import CompletionService
from .openai import NO_CONTENT_MESSAGE, OpenAIService

__all__ = [
    "NO_CONTENT_MESSAGE",
    "CompletionService",
    "OpenAIService",
]
