"""
Application layer - Use cases, DTOs, and service factories.

This layer orchestrates the workflows by:
1. Defining request/response DTOs for operation contracts
2. Implementing use cases that coordinate the ledger and document stores
3. Converting domain errors into structured results
4. Providing factory functions for dependency injection

The operations facade is the only entry point for the hosting layer.
"""

from stockflow.application.dto import (
    ApplyAdjustmentRequest,
    CreateDeliveryRequest,
    CreateReceiptRequest,
    CreateRequisitionRequest,
    CreateTransferRequest,
    ErrorResponse,
    OperationResult,
)
from stockflow.application.services import (
    InventoryOperations,
    get_inventory_operations,
    reset_services,
)

__all__ = [
    # Request DTOs
    "ApplyAdjustmentRequest",
    "CreateDeliveryRequest",
    "CreateReceiptRequest",
    "CreateRequisitionRequest",
    "CreateTransferRequest",
    # Response DTOs
    "ErrorResponse",
    "OperationResult",
    # Facade
    "InventoryOperations",
    "get_inventory_operations",
    "reset_services",
]
