"""
MCP tool result helpers.

Success: ``{"content": [{"type": "text", "text": ...}], "data": {...}}``

Failure: ``{"isError": True, "content": [...], "error": {...}}`` where
``error`` carries the type, HTTP-like status, message and (for validation
failures) every violated field.
"""

import logging
from typing import Any

from pydantic import ValidationError

from ..errors import LibraryError, RequestValidationError


def success_response(message: str, data: dict[str, Any]) -> dict[str, Any]:
    return {
        "content": [{"type": "text", "text": message}],
        "data": data,
    }


def error_response(error: LibraryError) -> dict[str, Any]:
    text = str(error)
    if isinstance(error, RequestValidationError) and error.fields:
        violations = "; ".join(f"{f['field']}: {f['message']}" for f in error.fields)
        text = f"{text}: {violations}"
    return {
        "isError": True,
        "content": [{"type": "text", "text": text}],
        "error": error.to_dict(),
    }


def invalid_arguments(
    logger: logging.Logger, exc: ValidationError, message: str
) -> dict[str, Any]:
    """Report arguments that failed schema validation, before any storage access."""
    logger.warning("%s: %s", message, exc)
    return error_response(RequestValidationError.from_pydantic(exc, message))


def failed(logger: logging.Logger, action: str, error: LibraryError) -> dict[str, Any]:
    """Report a domain or store failure raised while performing ``action``."""
    if isinstance(error, RequestValidationError):
        logger.warning("%s failed - invalid input: %s", action, error)
    else:
        logger.info("%s failed - %s: %s", action, error.error_type, error)
    return error_response(error)


def unexpected(logger: logging.Logger, tool_name: str, exc: Exception) -> dict[str, Any]:
    """Report an unexpected error without crashing the server."""
    logger.exception("Unexpected error in %s tool", tool_name)
    return error_response(LibraryError(f"An unexpected error occurred: {exc!s}"))
