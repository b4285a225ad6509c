"""Global exception handlers — map SDK exceptions to HTTP status codes.

The controller raises ``ValidationError`` for rejected answers and plain
``ValueError`` subclasses for unknown chats and operations called from the
wrong state.  Rather than catching these in every route, global handlers
inspect the exception and pick the right HTTP status code.
"""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from rehab_survey.errors import ValidationError

logger = logging.getLogger(__name__)

# --- Keyword patterns in ValueError messages and their HTTP status codes ---
# Checked in order; first match wins.
_VALUE_ERROR_PATTERNS: list[tuple[str, int]] = [
    # Unknown or expired chat
    ("not found", 404),
    # Operation called from the wrong controller state
    ("only valid during", 409),
    # Same call kind already pending for this chat
    ("already in flight", 409),
]

# --- Client-safe messages keyed by HTTP status code ---
_SAFE_MESSAGES: dict[int, str] = {
    404: "Chat not found",
    409: "Operation not allowed in the current state",
    400: "Invalid request",
}


async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    """Rejected answers are user-facing: return the reason as-is with 422."""
    logger.info("Answer rejected at %s: %s", request.url, exc.reason)
    return JSONResponse(status_code=422, content={"detail": exc.reason})


async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
    """Map SDK ``ValueError`` to a contextual HTTP error response.

    The raw message is logged server-side; the client gets a generic
    description for the status code.
    """
    msg = str(exc)
    status = 400
    for pattern, code in _VALUE_ERROR_PATTERNS:
        if pattern in msg.lower():
            status = code
            break

    logger.warning("ValueError [%d] at %s: %s", status, request.url, msg)
    return JSONResponse(
        status_code=status,
        content={"detail": _SAFE_MESSAGES.get(status, "Invalid request")},
    )


async def generic_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unhandled exceptions — log full traceback, return 500."""
    logger.exception("Unhandled exception at %s", request.url)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )
