"""Application use cases."""

from stockflow.application.use_cases.adjustment_workflow import (
    AdjustmentResult,
    AdjustmentWorkflow,
)
from stockflow.application.use_cases.delivery_workflow import DeliveryWorkflow
from stockflow.application.use_cases.receipt_workflow import ReceiptWorkflow
from stockflow.application.use_cases.requisition_workflow import RequisitionWorkflow
from stockflow.application.use_cases.stock_queries import StockQueries
from stockflow.application.use_cases.transfer_workflow import TransferWorkflow

__all__ = [
    "AdjustmentResult",
    "AdjustmentWorkflow",
    "DeliveryWorkflow",
    "ReceiptWorkflow",
    "RequisitionWorkflow",
    "StockQueries",
    "TransferWorkflow",
]
