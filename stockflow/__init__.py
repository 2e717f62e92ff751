"""
Stockflow - multi-warehouse inventory core.

Stock ledger plus Receipt, Delivery, Transfer, Requisition and Adjustment
workflows over SQLite.
"""

__version__ = "1.0.0"
