"""Tests for SQLite document stores and the unit of work."""

import pytest

from stockflow.core.entities import (
    Delivery,
    DeliveryLine,
    DeliveryStatus,
    Receipt,
    ReceiptLine,
    ReceiptStatus,
    Transfer,
    TransferLine,
    TransferStatus,
)
from stockflow.core.entities.clock import utcnow


@pytest.fixture
def make_receipt(refs):
    def _make_receipt(receipt_id: str = "r-1", number: str = "WH-A-IN-000001") -> Receipt:
        return Receipt(
            id=receipt_id,
            number=number,
            warehouse_id=refs.wh_a,
            supplier_name="Acme",
            lines=[
                ReceiptLine(product_id=refs.product_p, location_id=refs.loc_a1, quantity=10),
                ReceiptLine(product_id=refs.product_q, quantity=3),
            ],
            created_by="op-a",
        )

    return _make_receipt


class TestReceiptStore:
    async def test_create_and_get(self, refs, make_receipt, uow_factory, reference_data):
        async with uow_factory() as uow:
            await uow.receipts.create(make_receipt())

        async with uow_factory() as uow:
            stored = await uow.receipts.get("r-1")

        assert stored is not None
        assert stored.number == "WH-A-IN-000001"
        assert stored.supplier_name == "Acme"
        assert [(l.product_id, l.location_id, l.quantity) for l in stored.lines] == [
            (refs.product_p, refs.loc_a1, 10),
            (refs.product_q, None, 3),
        ]
        assert stored.version == 1

    async def test_get_missing(self, uow_factory, reference_data):
        async with uow_factory() as uow:
            assert await uow.receipts.get("nope") is None

    async def test_transition_updates_entity(self, make_receipt, uow_factory, reference_data):
        async with uow_factory() as uow:
            await uow.receipts.create(make_receipt())

        now = utcnow()
        async with uow_factory() as uow:
            receipt = await uow.receipts.get("r-1")
            assert await uow.receipts.transition(
                receipt, ReceiptStatus.DONE, validated_by="op-a", validated_at=now
            )
        assert receipt.status == ReceiptStatus.DONE
        assert receipt.version == 2

        async with uow_factory() as uow:
            stored = await uow.receipts.get("r-1")
        assert stored.status == ReceiptStatus.DONE
        assert stored.validated_by == "op-a"
        assert stored.validated_at == now

    async def test_stale_transition_refused(self, make_receipt, uow_factory, reference_data):
        async with uow_factory() as uow:
            await uow.receipts.create(make_receipt())

        async with uow_factory() as uow:
            first = await uow.receipts.get("r-1")
            stale = await uow.receipts.get("r-1")
            assert await uow.receipts.transition(first, ReceiptStatus.WAITING)
            assert not await uow.receipts.transition(stale, ReceiptStatus.DONE)

        assert stale.status == ReceiptStatus.DRAFT
        assert stale.version == 1

    async def test_transition_rejects_unknown_columns(
        self, refs, make_receipt, uow_factory, reference_data
    ):
        async with uow_factory() as uow:
            await uow.receipts.create(make_receipt())

        async with uow_factory() as uow:
            receipt = await uow.receipts.get("r-1")
            with pytest.raises(ValueError):
                await uow.receipts.transition(receipt, ReceiptStatus.DONE, warehouse_id=refs.wh_b)

    async def test_update_replaces_header_and_lines(
        self, refs, make_receipt, uow_factory, reference_data
    ):
        async with uow_factory() as uow:
            await uow.receipts.create(make_receipt())

        async with uow_factory() as uow:
            receipt = await uow.receipts.get("r-1")
            assert await uow.receipts.update(
                receipt,
                [ReceiptLine(product_id=refs.product_q, quantity=7)],
                supplier_name="Globex",
            )
        assert receipt.version == 2
        assert receipt.status == ReceiptStatus.DRAFT

        async with uow_factory() as uow:
            stored = await uow.receipts.get("r-1")
        assert stored.supplier_name == "Globex"
        assert stored.version == 2
        assert [(l.product_id, l.quantity) for l in stored.lines] == [(refs.product_q, 7)]

    async def test_update_without_lines_keeps_them(self, make_receipt, uow_factory, reference_data):
        async with uow_factory() as uow:
            await uow.receipts.create(make_receipt())

        async with uow_factory() as uow:
            receipt = await uow.receipts.get("r-1")
            assert await uow.receipts.update(receipt, notes="Dock 4")

        async with uow_factory() as uow:
            stored = await uow.receipts.get("r-1")
        assert stored.notes == "Dock 4"
        assert stored.supplier_name == "Acme"
        assert len(stored.lines) == 2

    async def test_stale_update_refused(self, refs, make_receipt, uow_factory, reference_data):
        async with uow_factory() as uow:
            await uow.receipts.create(make_receipt())

        async with uow_factory() as uow:
            first = await uow.receipts.get("r-1")
            stale = await uow.receipts.get("r-1")
            assert await uow.receipts.transition(first, ReceiptStatus.DONE)
            assert not await uow.receipts.update(
                stale, [ReceiptLine(product_id=refs.product_q, quantity=1)], notes="late"
            )

        async with uow_factory() as uow:
            stored = await uow.receipts.get("r-1")
        assert stored.notes is None
        assert len(stored.lines) == 2

    async def test_update_rejects_fixed_columns(
        self, refs, make_receipt, uow_factory, reference_data
    ):
        async with uow_factory() as uow:
            await uow.receipts.create(make_receipt())

        async with uow_factory() as uow:
            receipt = await uow.receipts.get("r-1")
            with pytest.raises(ValueError):
                await uow.receipts.update(receipt, warehouse_id=refs.wh_b)

    async def test_list_scoped_by_warehouse(self, refs, make_receipt, uow_factory, reference_data):
        async with uow_factory() as uow:
            await uow.receipts.create(make_receipt())
            await uow.receipts.create(make_receipt("r-2", "WH-A-IN-000002"))

        async with uow_factory() as uow:
            assert await uow.receipts.count_for_warehouse(refs.wh_a) == 2
            assert len(await uow.receipts.list_receipts({refs.wh_a})) == 2
            assert await uow.receipts.list_receipts({refs.wh_b}) == []
            assert await uow.receipts.list_receipts(set()) == []
            assert len(await uow.receipts.list_receipts(None, ReceiptStatus.DRAFT)) == 2
            assert len(await uow.receipts.list_receipts(None, limit=1)) == 1


class TestDeliveryAndTransferStores:
    async def test_transfer_found_by_delivery(self, refs, uow_factory, reference_data):
        delivery = Delivery(
            id="d-1",
            number="WH-A-OUT-000001",
            warehouse_id=refs.wh_a,
            target_warehouse_id=refs.wh_b,
            lines=[DeliveryLine(product_id=refs.product_p, quantity=5)],
            status=DeliveryStatus.READY,
            created_by="op-a",
        )
        transfer = Transfer(
            id="t-1",
            number="TRF-0001",
            source_warehouse_id=refs.wh_a,
            target_warehouse_id=refs.wh_b,
            delivery_id="d-1",
            lines=[TransferLine(product_id=refs.product_p, quantity=5)],
            created_by="op-a",
        )
        async with uow_factory() as uow:
            await uow.deliveries.create(delivery)
            await uow.transfers.create(transfer)

        async with uow_factory() as uow:
            found = await uow.transfers.get_by_delivery("d-1")
            assert found is not None
            assert found.status == TransferStatus.DRAFT
            assert await uow.transfers.count() == 1
            # Deliveries are visible from both ends
            assert len(await uow.deliveries.list_deliveries({refs.wh_b})) == 1


class TestUnitOfWork:
    async def test_rolls_back_on_error(self, make_receipt, uow_factory, reference_data):
        with pytest.raises(RuntimeError):
            async with uow_factory() as uow:
                await uow.receipts.create(make_receipt())
                raise RuntimeError("abort")

        async with uow_factory() as uow:
            assert await uow.receipts.get("r-1") is None
