"""Pure domain services."""

from stockflow.core.services import authorization
from stockflow.core.services.numbering import (
    global_document_number,
    warehouse_document_number,
)

__all__ = [
    "authorization",
    "global_document_number",
    "warehouse_document_number",
]
