"""Abstract interface for the stock ledger."""

from abc import ABC, abstractmethod

from stockflow.core.entities.stock import (
    Availability,
    BalanceDiscrepancy,
    DocumentType,
    MovementFilter,
    MovementRoute,
    MovementType,
    StockBalance,
    StockMovement,
    WarehouseStock,
)


class IStockLedger(ABC):
    """
    Materialized balances plus the append-only movement log.

    Every stock mutation goes through ``apply_movement`` or
    ``decrement_if_available``; both update the balance and append the
    movement as one unit.
    """

    @abstractmethod
    async def apply_movement(
        self,
        product_id: str,
        warehouse_id: str,
        location_id: str | None,
        change: int,
        movement_type: MovementType,
        source_doc_type: DocumentType,
        source_doc_id: str,
        actor_id: str,
        route: MovementRoute | None = None,
    ) -> StockMovement:
        """Add ``change`` to the balance (creating it lazily) and log it.

        Never rejects for insufficient stock.
        """
        pass

    @abstractmethod
    async def decrement_if_available(
        self,
        product_id: str,
        warehouse_id: str,
        location_id: str | None,
        quantity: int,
        movement_type: MovementType,
        source_doc_type: DocumentType,
        source_doc_id: str,
        actor_id: str,
        route: MovementRoute | None = None,
    ) -> StockMovement | None:
        """Take ``quantity`` only if the balance stays >= 0.

        Returns None, with nothing written, when it would go negative.
        """
        pass

    @abstractmethod
    async def query_balance(
        self, product_id: str, warehouse_id: str, location_id: str | None = None
    ) -> int:
        """Current quantity for the triple, 0 if no row exists."""
        pass

    @abstractmethod
    async def query_availability(
        self,
        product_id: str,
        warehouse_id: str,
        required_qty: int,
        location_id: str | None = None,
        fallback_to_warehouse: bool = False,
    ) -> Availability:
        """Check ``required_qty`` against one balance.

        With ``fallback_to_warehouse`` a short location is re-checked
        against the sum of every location in the warehouse.
        """
        pass

    @abstractmethod
    async def warehouse_total(self, product_id: str, warehouse_id: str) -> int:
        """Sum of all balances of a product in a warehouse."""
        pass

    @abstractmethod
    async def list_balances(
        self, product_id: str, warehouse_id: str | None = None
    ) -> list[StockBalance]:
        """Balances of a product grouped by warehouse, largest first within each.

        Every warehouse when ``warehouse_id`` is None.
        """
        pass

    @abstractmethod
    async def list_movements(self, filters: MovementFilter) -> list[StockMovement]:
        """Movements matching the filters, newest first."""
        pass

    @abstractmethod
    async def count_movements(self, filters: MovementFilter) -> int:
        """Number of movements matching the filters (ignores paging)."""
        pass

    @abstractmethod
    async def stock_by_warehouse(
        self, product_id: str, exclude_warehouse_id: str | None = None
    ) -> list[WarehouseStock]:
        """Positive stock per warehouse, largest first."""
        pass

    @abstractmethod
    async def product_totals(self, warehouse_id: str | None = None) -> dict[str, int]:
        """Total quantity per product id, optionally for one warehouse."""
        pass

    @abstractmethod
    async def find_discrepancies(self) -> list[BalanceDiscrepancy]:
        """Balances whose quantity differs from the sum of their movements."""
        pass
