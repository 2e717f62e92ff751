"""Pytest configuration and fixtures."""

from collections.abc import AsyncGenerator, Awaitable, Callable, Generator
from dataclasses import dataclass
from pathlib import Path

import pytest

from stockflow.application.services import InventoryOperations, reset_services
from stockflow.config import Settings, reset_settings
from stockflow.core.entities import IdentityContext, Location, Product, Receipt, Role, Warehouse
from stockflow.core.interfaces.unit_of_work import UnitOfWorkFactory
from stockflow.infrastructure.storage.sqlite import ConnectionPool, get_unit_of_work_factory
from stockflow.infrastructure.storage.sqlite.migrations import initialize_database


@dataclass(frozen=True)
class ReferenceIds:
    """IDs of the rows seeded by ``reference_data``."""

    wh_a: str = "wh-a"
    wh_b: str = "wh-b"
    wh_c: str = "wh-c"
    loc_a1: str = "loc-a1"
    loc_a2: str = "loc-a2"
    loc_b1: str = "loc-b1"
    product_p: str = "prod-p"
    product_q: str = "prod-q"


@pytest.fixture(autouse=True)
def _reset_singletons() -> Generator[None, None, None]:
    """Drop cached settings and services between tests."""
    reset_settings()
    reset_services()
    yield
    reset_settings()
    reset_services()


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings rooted in the test's temporary directory."""
    return Settings(storage={"data_dir": tmp_path})


@pytest.fixture
async def db_path(tmp_path: Path) -> Path:
    """A database file with every migration applied."""
    path = tmp_path / "stockflow-test.db"
    results = await initialize_database(path, create_backup_before=False)
    assert results and all(r.success for r in results)
    return path


@pytest.fixture
async def pool(db_path: Path) -> AsyncGenerator[ConnectionPool, None]:
    pool = ConnectionPool(db_path, pool_size=5)
    await pool.initialize()
    yield pool
    await pool.close()


@pytest.fixture
def uow_factory(pool: ConnectionPool) -> UnitOfWorkFactory:
    return get_unit_of_work_factory(pool)


@pytest.fixture
def refs() -> ReferenceIds:
    return ReferenceIds()


@pytest.fixture
async def reference_data(uow_factory: UnitOfWorkFactory, refs: ReferenceIds) -> None:
    """Three warehouses, locations L1/L2 in A and L1 in B, two products."""
    async with uow_factory() as uow:
        for wid, code in ((refs.wh_a, "A"), (refs.wh_b, "B"), (refs.wh_c, "C")):
            await uow.references.add_warehouse(
                Warehouse(id=wid, code=code, name=f"Warehouse {code}")
            )
        await uow.references.add_location(
            Location(id=refs.loc_a1, warehouse_id=refs.wh_a, code="L1")
        )
        await uow.references.add_location(
            Location(id=refs.loc_a2, warehouse_id=refs.wh_a, code="L2")
        )
        await uow.references.add_location(
            Location(id=refs.loc_b1, warehouse_id=refs.wh_b, code="L1")
        )
        await uow.references.add_product(
            Product(id=refs.product_p, sku="P-001", name="Pallet wrap", reorder_level=50)
        )
        await uow.references.add_product(
            Product(id=refs.product_q, sku="Q-001", name="Cable ties")
        )


@pytest.fixture
def ops(
    uow_factory: UnitOfWorkFactory, settings: Settings, reference_data: None
) -> InventoryOperations:
    """Operations facade over the seeded test database."""
    return InventoryOperations(uow_factory, settings=settings)


# --- Identities ---


@pytest.fixture
def admin() -> IdentityContext:
    return IdentityContext(user_id="admin", role=Role.ADMIN)


@pytest.fixture
def operator_a(refs: ReferenceIds) -> IdentityContext:
    return IdentityContext.for_user("op-a", Role.OPERATOR, refs.wh_a)


@pytest.fixture
def operator_b(refs: ReferenceIds) -> IdentityContext:
    return IdentityContext.for_user("op-b", Role.OPERATOR, refs.wh_b)


@pytest.fixture
def operator_c(refs: ReferenceIds) -> IdentityContext:
    return IdentityContext.for_user("op-c", Role.OPERATOR, refs.wh_c)


@pytest.fixture
def manager_a(refs: ReferenceIds) -> IdentityContext:
    return IdentityContext.for_user("mgr-a", Role.MANAGER, refs.wh_a)


@pytest.fixture
def manager_b(refs: ReferenceIds) -> IdentityContext:
    return IdentityContext.for_user("mgr-b", Role.MANAGER, refs.wh_b)


@pytest.fixture
def manager_c(refs: ReferenceIds) -> IdentityContext:
    return IdentityContext.for_user("mgr-c", Role.MANAGER, refs.wh_c)


# --- Helpers ---


@pytest.fixture
def receive(
    ops: InventoryOperations, admin: IdentityContext
) -> Callable[..., Awaitable[Receipt]]:
    """Put stock on hand through a validated receipt."""

    async def _receive(
        warehouse_id: str, product_id: str, quantity: int, location_id: str | None = None
    ) -> Receipt:
        created = await ops.create_receipt(
            admin,
            {
                "warehouse_id": warehouse_id,
                "lines": [
                    {"product_id": product_id, "location_id": location_id, "quantity": quantity}
                ],
            },
        )
        assert created.ok, created.error
        validated = await ops.validate_receipt(admin, created.data.id)
        assert validated.ok, validated.error
        return validated.data

    return _receive


@pytest.fixture
def balance(ops: InventoryOperations) -> Callable[..., Awaitable[int]]:
    """Read one balance through the facade."""

    async def _balance(product_id: str, warehouse_id: str, location_id: str | None = None) -> int:
        result = await ops.query_stock_balance(product_id, warehouse_id, location_id)
        assert result.ok, result.error
        return result.data

    return _balance
