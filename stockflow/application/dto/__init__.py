"""Data Transfer Objects for workflow operations.

Request DTOs: Carry caller input into the use cases.
Response DTOs: Structure operation results for the hosting layer.
"""

from stockflow.application.dto.requests import (
    ApplyAdjustmentRequest,
    CreateDeliveryRequest,
    CreateReceiptRequest,
    CreateRequisitionRequest,
    CreateTransferRequest,
    DeliveryLineInput,
    ReceiptLineInput,
    RequisitionLineInput,
    TransferLineInput,
    UpdateDeliveryRequest,
    UpdateReceiptRequest,
    UpdateRequisitionRequest,
    UpdateTransferRequest,
)
from stockflow.application.dto.responses import (
    ErrorResponse,
    HydratedDocument,
    HydratedLine,
    LocationStockLevel,
    LowStockReport,
    MovementPage,
    OperationResult,
    ProductStockLevels,
    ReconciliationReport,
    RequisitionApproval,
    SourceSuggestion,
    WarehouseStockLevels,
)

__all__ = [
    # Requests
    "ApplyAdjustmentRequest",
    "CreateDeliveryRequest",
    "CreateReceiptRequest",
    "CreateRequisitionRequest",
    "CreateTransferRequest",
    "DeliveryLineInput",
    "ReceiptLineInput",
    "RequisitionLineInput",
    "TransferLineInput",
    "UpdateDeliveryRequest",
    "UpdateReceiptRequest",
    "UpdateRequisitionRequest",
    "UpdateTransferRequest",
    # Responses
    "ErrorResponse",
    "HydratedDocument",
    "HydratedLine",
    "LocationStockLevel",
    "LowStockReport",
    "MovementPage",
    "OperationResult",
    "ProductStockLevels",
    "ReconciliationReport",
    "RequisitionApproval",
    "SourceSuggestion",
    "WarehouseStockLevels",
]
