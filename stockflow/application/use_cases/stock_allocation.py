"""
All-or-nothing stock decrements for multi-line documents.

Every line is planned against the current balances before anything is
written. If any line is short the whole document fails with one
InsufficientStockError listing every short line. Planned picks are then
taken with conditional decrements, so a balance is never driven negative
even if the plan went stale.
"""

from dataclasses import dataclass

from stockflow.core.entities.stock import (
    DocumentType,
    MovementRoute,
    MovementType,
    StockMovement,
    StockPick,
    StockShortfall,
)
from stockflow.core.exceptions import InsufficientStockError
from stockflow.core.interfaces.ledger_store import IStockLedger


@dataclass
class StockDemand:
    """Quantity one document line needs to take out of a warehouse."""

    product_id: str
    warehouse_id: str
    location_id: str | None
    quantity: int
    allow_other_locations: bool = False
    warehouse_to_id: str | None = None
    location_to_id: str | None = None


async def plan_picks(ledger: IStockLedger, demands: list[StockDemand]) -> list[list[StockPick]]:
    """
    Decide which balances each demand draws from.

    The requested location (None = unlocated stock) is used first. With
    ``allow_other_locations`` the rest comes from the warehouse's other
    balances, largest first. Earlier lines reduce what later lines see.
    """
    remaining: dict[tuple[str, str], dict[str | None, int]] = {}
    shortfalls: list[StockShortfall] = []
    plans: list[list[StockPick]] = []

    for demand in demands:
        key = (demand.product_id, demand.warehouse_id)
        if key not in remaining:
            balances = await ledger.list_balances(demand.product_id, demand.warehouse_id)
            remaining[key] = {b.location_id: max(b.quantity, 0) for b in balances}
        stock = remaining[key]

        order: list[str | None] = [demand.location_id]
        if demand.allow_other_locations:
            others = [loc for loc in stock if loc != demand.location_id]
            others.sort(key=lambda loc: (-stock[loc], loc or ""))
            order.extend(others)

        obtainable = sum(stock.get(loc, 0) for loc in order)
        if obtainable < demand.quantity:
            shortfalls.append(
                StockShortfall(
                    product_id=demand.product_id,
                    warehouse_id=demand.warehouse_id,
                    location_id=demand.location_id,
                    requested=demand.quantity,
                    available=obtainable,
                )
            )
            plans.append([])
            continue

        picks: list[StockPick] = []
        needed = demand.quantity
        for loc in order:
            if needed == 0:
                break
            take = min(needed, stock.get(loc, 0))
            if take > 0:
                picks.append(StockPick(location_id=loc, quantity=take))
                stock[loc] -= take
                needed -= take
        plans.append(picks)

    if shortfalls:
        raise InsufficientStockError([s.model_dump() for s in shortfalls])
    return plans


async def take_stock(
    ledger: IStockLedger,
    demands: list[StockDemand],
    movement_type: MovementType,
    source_doc_type: DocumentType,
    source_doc_id: str,
    actor_id: str,
) -> list[StockMovement]:
    """Plan every demand, then decrement; one movement per pick."""
    plans = await plan_picks(ledger, demands)

    movements: list[StockMovement] = []
    for demand, picks in zip(demands, plans, strict=True):
        for pick in picks:
            movement = await ledger.decrement_if_available(
                demand.product_id,
                demand.warehouse_id,
                pick.location_id,
                pick.quantity,
                movement_type,
                source_doc_type,
                source_doc_id,
                actor_id,
                MovementRoute(
                    warehouse_from_id=demand.warehouse_id,
                    location_from_id=pick.location_id,
                    warehouse_to_id=demand.warehouse_to_id,
                    location_to_id=demand.location_to_id,
                ),
            )
            if movement is None:
                available = await ledger.query_balance(
                    demand.product_id, demand.warehouse_id, pick.location_id
                )
                raise InsufficientStockError([
                    StockShortfall(
                        product_id=demand.product_id,
                        warehouse_id=demand.warehouse_id,
                        location_id=pick.location_id,
                        requested=pick.quantity,
                        available=available,
                    ).model_dump()
                ])
            movements.append(movement)
    return movements
