"""
Error boundary for workflow operations.

Standardizes every failed operation to a structured result with:
- error_code: machine-readable identifier
- message: human-readable description
- hint: suggested recovery action

Only domain errors are converted. Store failures (aiosqlite.Error) are not
caught here and reach the caller unchanged.
"""

from collections.abc import Awaitable, Callable
from typing import Any

import pydantic

from stockflow.application.dto.responses import ErrorResponse, OperationResult
from stockflow.config import get_logger, operation_context
from stockflow.core.exceptions import StockflowError

logger = get_logger(__name__)

# Hint messages per error code
HINT_MAP: dict[str, str] = {
    "NOT_FOUND": "Check the ID; the document or reference record does not exist.",
    "INVALID_STATE_TRANSITION": "Reload the document; its status no longer allows this action.",
    "ALREADY_VALIDATED": "The receipt is already DONE; no further action is needed.",
    "FORBIDDEN": "The action requires a different role or a warehouse in your scope.",
    "INSUFFICIENT_STOCK": "Reduce the quantities or source the listed lines from elsewhere.",
    "VALIDATION_ERROR": "Check the request fields: lines, quantities and warehouse IDs.",
}


def to_error_response(exc: StockflowError) -> ErrorResponse:
    """Convert a domain exception to its structured form."""
    return ErrorResponse(
        error_code=exc.code,
        message=exc.message,
        details=exc.details,
        hint=HINT_MAP.get(exc.code),
    )


async def capture_errors(
    operation: str,
    call: Callable[[], Awaitable[Any]],
) -> OperationResult:
    """
    Run ``call`` and wrap its outcome.

    Usage:
        result = await capture_errors("validate_delivery", lambda: wf.validate(ctx, id))
    """
    try:
        with operation_context(operation):
            data = await call()
    except StockflowError as e:
        logger.warning(
            "operation_failed",
            operation=operation,
            error_code=e.code,
            error=e.message,
        )
        return OperationResult(ok=False, error=to_error_response(e))
    except pydantic.ValidationError as e:
        errors = [
            f"{' -> '.join(str(part) for part in error['loc'])}: {error['msg']}"
            for error in e.errors()
        ]
        logger.warning("operation_rejected", operation=operation, errors=errors)
        return OperationResult(
            ok=False,
            error=ErrorResponse(
                error_code="VALIDATION_ERROR",
                message="Request validation failed",
                details={"errors": errors},
                hint=HINT_MAP["VALIDATION_ERROR"],
            ),
        )
    return OperationResult(ok=True, data=data)
