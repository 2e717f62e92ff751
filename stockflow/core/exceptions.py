"""
Failures raised by the inventory core.

Every error carries a stable ``code`` that the operation boundary copies into
``OperationResult.error.error_code``; ``details`` holds whatever the caller
needs to correct the request.
"""

from typing import Any


class StockflowError(Exception):
    """Root of every failure a ledger operation can report."""

    code: str | None = None

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.code or type(self).__name__
        self.details = details or {}

    def to_dict(self) -> dict:
        return {"error": self.code, "message": self.message, "details": self.details}


class NotFoundError(StockflowError):
    """A referenced product, warehouse, location or document does not exist."""

    code = "NOT_FOUND"

    def __init__(self, entity: str, entity_id: str):
        super().__init__(
            f"{entity} not found: {entity_id}",
            details={"entity": entity, "id": entity_id},
        )


class WorkflowError(StockflowError):
    """A transition was refused."""


class InvalidStateTransitionError(WorkflowError):
    code = "INVALID_STATE_TRANSITION"

    def __init__(
        self,
        document: str,
        document_id: str,
        current_status: str | None,
        action: str,
        reason: str | None = None,
    ):
        message = f"Cannot {action} {document} {document_id} in status {current_status}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(
            message,
            details={
                "document": document,
                "id": document_id,
                "current_status": current_status,
                "action": action,
                "reason": reason,
            },
        )


class AlreadyValidatedError(InvalidStateTransitionError):
    """Second validation of a receipt or delivery that is already DONE."""

    code = "ALREADY_VALIDATED"

    def __init__(self, document: str, document_id: str):
        super().__init__(document, document_id, "DONE", "validate", "already validated")


class ForbiddenError(WorkflowError):
    """The acting user's role or warehouse scope does not cover the action."""

    code = "FORBIDDEN"

    def __init__(self, action: str, reason: str | None = None):
        message = f"Forbidden: {action}"
        if reason:
            message = f"{message} - {reason}"
        super().__init__(message, details={"action": action, "reason": reason})


class InsufficientStockError(WorkflowError):
    """Stock cannot cover one or more lines.

    ``shortfalls`` lists every short line, so a document can be fixed in one
    pass rather than one line per attempt.
    """

    code = "INSUFFICIENT_STOCK"

    def __init__(self, shortfalls: list[dict[str, Any]]):
        self.shortfalls = shortfalls
        summary = ", ".join(
            f"{s['product_id']} (requested {s['requested']}, available {s['available']})"
            for s in shortfalls
        )
        super().__init__(f"Insufficient stock: {summary}", details={"shortfalls": shortfalls})


class ValidationError(StockflowError):
    """A field value breaks a business rule that the input model cannot express."""

    code = "VALIDATION_ERROR"

    def __init__(self, field: str, message: str, value: Any = None):
        shown = None if value is None else str(value)[:100]
        super().__init__(
            f"Invalid {field}: {message}",
            details={"field": field, "message": message, "value": shown},
        )
