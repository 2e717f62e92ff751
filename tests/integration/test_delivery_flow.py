"""Integration tests for receipts and deliveries on a real database."""

import asyncio

import pytest

from stockflow.core.entities import DeliveryStatus, MovementType, ReceiptStatus


@pytest.fixture
def create_delivery(ops, refs):
    """Create a delivery of product P out of warehouse A."""

    async def _create(ctx, quantity: int = 10, location_id=None, **extra):
        result = await ops.create_delivery(
            ctx,
            {
                "warehouse_id": refs.wh_a,
                "lines": [
                    {
                        "product_id": refs.product_p,
                        "from_location_id": location_id,
                        "quantity": quantity,
                    }
                ],
                **extra,
            },
        )
        assert result.ok, result.error
        return result.data

    return _create


class TestReceipts:
    async def test_receipt_credits_stock_and_numbers_per_warehouse(
        self, refs, ops, balance, operator_a, operator_b
    ):
        first = await ops.create_receipt(
            operator_a,
            {
                "warehouse_id": refs.wh_a,
                "supplier_name": "Acme",
                "lines": [
                    {"product_id": refs.product_p, "location_id": refs.loc_a1, "quantity": 12},
                    {"product_id": refs.product_q, "quantity": 4},
                ],
            },
        )
        second = await ops.create_receipt(
            operator_a,
            {"warehouse_id": refs.wh_a, "lines": [{"product_id": refs.product_p, "quantity": 1}]},
        )
        other = await ops.create_receipt(
            operator_b,
            {"warehouse_id": refs.wh_b, "lines": [{"product_id": refs.product_p, "quantity": 1}]},
        )
        assert first.data.number == "WH-A-IN-000001"
        assert second.data.number == "WH-A-IN-000002"
        assert other.data.number == "WH-B-IN-000001"

        validated = await ops.validate_receipt(operator_a, first.data.id)

        assert validated.data.status == ReceiptStatus.DONE
        assert validated.data.validated_by == operator_a.user_id
        assert await balance(refs.product_p, refs.wh_a, refs.loc_a1) == 12
        assert await balance(refs.product_q, refs.wh_a) == 4
        page = (await ops.list_movements({"movement_type": MovementType.RECEIPT})).data
        assert page.total == 2
        assert all(m.warehouse_to_id == refs.wh_a for m in page.items)

    async def test_second_validate_reports_already_validated(self, refs, ops, balance, operator_a):
        created = await ops.create_receipt(
            operator_a,
            {"warehouse_id": refs.wh_a, "lines": [{"product_id": refs.product_p, "quantity": 5}]},
        )
        await ops.validate_receipt(operator_a, created.data.id)

        again = await ops.validate_receipt(operator_a, created.data.id)

        assert again.error.error_code == "ALREADY_VALIDATED"
        assert await balance(refs.product_p, refs.wh_a) == 5

    async def test_concurrent_validates_credit_once(self, refs, ops, balance, operator_a):
        created = await ops.create_receipt(
            operator_a,
            {"warehouse_id": refs.wh_a, "lines": [{"product_id": refs.product_p, "quantity": 5}]},
        )

        results = await asyncio.gather(
            ops.validate_receipt(operator_a, created.data.id),
            ops.validate_receipt(operator_a, created.data.id),
        )

        assert sorted(r.ok for r in results) == [False, True]
        [failed] = [r for r in results if not r.ok]
        assert failed.error.error_code == "ALREADY_VALIDATED"
        assert await balance(refs.product_p, refs.wh_a) == 5

    async def test_receipt_outside_scope_forbidden(self, refs, ops, operator_b):
        result = await ops.create_receipt(
            operator_b,
            {"warehouse_id": refs.wh_a, "lines": [{"product_id": refs.product_p, "quantity": 5}]},
        )

        assert result.error.error_code == "FORBIDDEN"

    async def test_malformed_request_is_a_validation_error(self, ops, operator_a):
        result = await ops.create_receipt(operator_a, {"lines": []})

        assert result.ok is False
        assert result.error.error_code == "VALIDATION_ERROR"
        assert any("warehouse_id" in e for e in result.error.details["errors"])

    async def test_unknown_product_not_found(self, refs, ops, operator_a):
        result = await ops.create_receipt(
            operator_a,
            {"warehouse_id": refs.wh_a, "lines": [{"product_id": "ghost", "quantity": 1}]},
        )

        assert result.error.error_code == "NOT_FOUND"


class TestReceiptEdits:
    async def test_draft_edit_replaces_lines(self, refs, ops, balance, operator_a):
        created = await ops.create_receipt(
            operator_a,
            {
                "warehouse_id": refs.wh_a,
                "supplier_name": "Acme",
                "lines": [{"product_id": refs.product_p, "quantity": 5}],
            },
        )

        updated = await ops.update_receipt(
            operator_a,
            created.data.id,
            {
                "supplier_name": "Globex",
                "lines": [
                    {"product_id": refs.product_q, "location_id": refs.loc_a2, "quantity": 9}
                ],
            },
        )

        assert updated.ok, updated.error
        assert updated.data.supplier_name == "Globex"
        assert updated.data.number == created.data.number
        assert updated.data.version == created.data.version + 1
        assert (await ops.validate_receipt(operator_a, created.data.id)).ok
        assert await balance(refs.product_q, refs.wh_a, refs.loc_a2) == 9
        assert await balance(refs.product_p, refs.wh_a) == 0

    async def test_header_only_edit_keeps_lines(self, refs, ops, operator_a):
        created = await ops.create_receipt(
            operator_a,
            {"warehouse_id": refs.wh_a, "lines": [{"product_id": refs.product_p, "quantity": 5}]},
        )

        updated = await ops.update_receipt(operator_a, created.data.id, {"notes": "Dock 4"})

        stored = (await ops.get_receipt(created.data.id)).data
        assert updated.data.notes == stored.notes == "Dock 4"
        assert [(l.product_id, l.quantity) for l in stored.lines] == [(refs.product_p, 5)]

    async def test_edit_refused_once_validated(self, refs, ops, balance, operator_a):
        created = await ops.create_receipt(
            operator_a,
            {"warehouse_id": refs.wh_a, "lines": [{"product_id": refs.product_p, "quantity": 5}]},
        )
        await ops.validate_receipt(operator_a, created.data.id)

        result = await ops.update_receipt(
            operator_a,
            created.data.id,
            {"lines": [{"product_id": refs.product_p, "quantity": 500}]},
        )

        assert result.error.error_code == "INVALID_STATE_TRANSITION"
        stored = (await ops.get_receipt(created.data.id)).data
        assert [l.quantity for l in stored.lines] == [5]
        assert await balance(refs.product_p, refs.wh_a) == 5

    async def test_waiting_receipt_is_not_editable(self, refs, ops, operator_a):
        created = await ops.create_receipt(
            operator_a,
            {
                "warehouse_id": refs.wh_a,
                "status": "WAITING",
                "lines": [{"product_id": refs.product_p, "quantity": 5}],
            },
        )

        result = await ops.update_receipt(operator_a, created.data.id, {"notes": "late"})

        assert result.error.error_code == "INVALID_STATE_TRANSITION"

    async def test_edit_rechecks_line_references(self, refs, ops, operator_a):
        created = await ops.create_receipt(
            operator_a,
            {"warehouse_id": refs.wh_a, "lines": [{"product_id": refs.product_p, "quantity": 5}]},
        )

        foreign_location = await ops.update_receipt(
            operator_a,
            created.data.id,
            {"lines": [{"product_id": refs.product_p, "location_id": refs.loc_b1, "quantity": 5}]},
        )
        no_lines = await ops.update_receipt(operator_a, created.data.id, {"lines": []})
        zero = await ops.update_receipt(
            operator_a, created.data.id, {"lines": [{"product_id": refs.product_p, "quantity": 0}]}
        )
        ghost = await ops.update_receipt(
            operator_a, created.data.id, {"lines": [{"product_id": "ghost", "quantity": 1}]}
        )

        assert foreign_location.error.error_code == "VALIDATION_ERROR"
        assert no_lines.error.error_code == "VALIDATION_ERROR"
        assert zero.error.error_code == "VALIDATION_ERROR"
        assert ghost.error.error_code == "NOT_FOUND"
        assert (await ops.get_receipt(created.data.id)).data.version == created.data.version

    async def test_edit_outside_scope_forbidden(self, refs, ops, operator_a, operator_b):
        created = await ops.create_receipt(
            operator_a,
            {"warehouse_id": refs.wh_a, "lines": [{"product_id": refs.product_p, "quantity": 5}]},
        )

        result = await ops.update_receipt(operator_b, created.data.id, {"notes": "mine now"})

        assert result.error.error_code == "FORBIDDEN"

    async def test_edit_unknown_receipt_not_found(self, ops, operator_a):
        result = await ops.update_receipt(operator_a, "missing", {"notes": "x"})

        assert result.error.error_code == "NOT_FOUND"


class TestDeliveries:
    async def test_external_delivery_decrements_stock(
        self, refs, create_delivery, ops, receive, balance, operator_a
    ):
        await receive(refs.wh_a, refs.product_p, 100, refs.loc_a1)
        delivery = await create_delivery(operator_a, 40, refs.loc_a1, customer_name="Bolt Ltd")
        assert delivery.number == "WH-A-OUT-000001"
        assert delivery.status == DeliveryStatus.DRAFT

        validated = await ops.validate_delivery(operator_a, delivery.id)

        assert validated.data.status == DeliveryStatus.DONE
        assert await balance(refs.product_p, refs.wh_a, refs.loc_a1) == 60
        [movement] = (await ops.list_movements({"movement_type": MovementType.DELIVERY})).data.items
        assert movement.change == -40
        assert movement.warehouse_from_id == refs.wh_a
        assert movement.warehouse_to_id is None

    async def test_pick_location_is_exact(
        self, refs, create_delivery, ops, receive, balance, operator_a
    ):
        await receive(refs.wh_a, refs.product_p, 5, refs.loc_a1)
        await receive(refs.wh_a, refs.product_p, 50, refs.loc_a2)
        delivery = await create_delivery(operator_a, 8, refs.loc_a1)

        result = await ops.validate_delivery(operator_a, delivery.id)

        assert result.error.error_code == "INSUFFICIENT_STOCK"
        [shortfall] = result.error.details["shortfalls"]
        assert (shortfall["location_id"], shortfall["available"]) == (refs.loc_a1, 5)
        assert await balance(refs.product_p, refs.wh_a, refs.loc_a2) == 50
        assert (await ops.get_delivery(delivery.id)).data.status == DeliveryStatus.DRAFT

    async def test_every_short_line_reported_and_nothing_applied(
        self, refs, create_delivery, ops, receive, balance, operator_a
    ):
        await receive(refs.wh_a, refs.product_p, 10)
        created = await ops.create_delivery(
            operator_a,
            {
                "warehouse_id": refs.wh_a,
                "lines": [
                    {"product_id": refs.product_p, "quantity": 4},
                    {"product_id": refs.product_p, "quantity": 8},
                    {"product_id": refs.product_q, "quantity": 1},
                ],
            },
        )

        result = await ops.validate_delivery(operator_a, created.data.id)

        shortfalls = result.error.details["shortfalls"]
        assert [(s["product_id"], s["available"]) for s in shortfalls] == [
            (refs.product_p, 6),
            (refs.product_q, 0),
        ]
        assert await balance(refs.product_p, refs.wh_a) == 10
        assert (await ops.list_movements({"movement_type": MovementType.DELIVERY})).data.total == 0

    async def test_concurrent_validates_decrement_once(
        self, refs, create_delivery, ops, receive, balance, operator_a
    ):
        await receive(refs.wh_a, refs.product_p, 100)
        delivery = await create_delivery(operator_a, 10)

        results = await asyncio.gather(
            ops.validate_delivery(operator_a, delivery.id),
            ops.validate_delivery(operator_a, delivery.id),
        )

        assert sorted(r.ok for r in results) == [False, True]
        [failed] = [r for r in results if not r.ok]
        assert failed.error.error_code == "INVALID_STATE_TRANSITION"
        assert await balance(refs.product_p, refs.wh_a) == 90

    async def test_inter_warehouse_delivery_needs_target_manager(
        self, refs, create_delivery, ops, receive, balance, operator_a, manager_a, manager_b
    ):
        await receive(refs.wh_a, refs.product_p, 20)
        delivery = await create_delivery(operator_a, 5, target_warehouse_id=refs.wh_b)
        assert delivery.status == DeliveryStatus.WAITING

        early = await ops.validate_delivery(operator_a, delivery.id)
        assert early.error.error_code == "INVALID_STATE_TRANSITION"

        wrong_manager = await ops.approve_delivery(manager_a, delivery.id)
        assert wrong_manager.error.error_code == "FORBIDDEN"

        approved = await ops.approve_delivery(manager_b, delivery.id)
        assert approved.data.status == DeliveryStatus.READY
        assert approved.data.approved_by == manager_b.user_id

        assert (await ops.validate_delivery(operator_a, delivery.id)).ok
        assert await balance(refs.product_p, refs.wh_a) == 15

    async def test_reject_appends_reason(self, refs, create_delivery, ops, operator_a, manager_b):
        delivery = await create_delivery(
            operator_a, 5, target_warehouse_id=refs.wh_b, notes="Urgent"
        )

        rejected = await ops.reject_delivery(manager_b, delivery.id, "No space")

        assert rejected.data.status == DeliveryStatus.REJECTED
        assert rejected.data.notes == "Urgent\nRejected: No space"
        stored = (await ops.get_delivery(delivery.id)).data
        assert stored.notes == "Urgent\nRejected: No space"

        revalidate = await ops.validate_delivery(operator_a, delivery.id)
        assert revalidate.error.error_code == "INVALID_STATE_TRANSITION"

    async def test_reject_uses_default_reason(
        self, refs, create_delivery, ops, operator_a, manager_b
    ):
        delivery = await create_delivery(operator_a, 5, target_warehouse_id=refs.wh_b)

        rejected = await ops.reject_delivery(manager_b, delivery.id)

        assert rejected.data.notes == "Rejected: Rejected by manager"

    async def test_operator_of_other_warehouse_cannot_validate(
        self, refs, create_delivery, ops, receive, operator_a, operator_b
    ):
        await receive(refs.wh_a, refs.product_p, 10)
        delivery = await create_delivery(operator_a, 5)

        result = await ops.validate_delivery(operator_b, delivery.id)

        assert result.error.error_code == "FORBIDDEN"
        assert result.error.hint is not None

    async def test_listing_is_scoped(
        self, refs, create_delivery, ops, admin, operator_a, operator_b, manager_b
    ):
        await create_delivery(operator_a, 1)
        await create_delivery(operator_a, 1, target_warehouse_id=refs.wh_b)

        assert len((await ops.list_deliveries(operator_a)).data) == 2
        assert len((await ops.list_deliveries(manager_b)).data) == 1
        assert len((await ops.list_deliveries(admin, DeliveryStatus.WAITING)).data) == 1
        assert (await ops.list_deliveries(operator_b, DeliveryStatus.DRAFT)).data == []

    async def test_competing_deliveries_cannot_overdraw(
        self, refs, create_delivery, ops, receive, balance, operator_a
    ):
        await receive(refs.wh_a, refs.product_p, 10)
        first = await create_delivery(operator_a, 7)
        second = await create_delivery(operator_a, 7)

        results = await asyncio.gather(
            ops.validate_delivery(operator_a, first.id),
            ops.validate_delivery(operator_a, second.id),
        )

        assert sorted(r.ok for r in results) == [False, True]
        [failed] = [r for r in results if not r.ok]
        assert failed.error.error_code == "INSUFFICIENT_STOCK"
        assert await balance(refs.product_p, refs.wh_a) == 3
        page = (await ops.list_movements({"movement_type": MovementType.DELIVERY})).data
        assert page.total == 1

    async def test_requisition_link_refused_on_create(self, refs, ops, operator_a):
        result = await ops.create_delivery(
            operator_a,
            {
                "warehouse_id": refs.wh_a,
                "target_warehouse_id": refs.wh_b,
                "requisition_id": "q-1",
                "lines": [{"product_id": refs.product_p, "quantity": 1}],
            },
        )

        assert result.error.error_code == "VALIDATION_ERROR"
        assert (await ops.list_deliveries(operator_a)).data == []


class TestDeliveryEdits:
    async def test_draft_edit_replaces_lines(
        self, refs, create_delivery, ops, receive, balance, operator_a
    ):
        await receive(refs.wh_a, refs.product_p, 50, refs.loc_a2)
        delivery = await create_delivery(operator_a, 40, refs.loc_a1)

        updated = await ops.update_delivery(
            operator_a,
            delivery.id,
            {
                "customer_name": "Bolt Ltd",
                "lines": [
                    {"product_id": refs.product_p, "from_location_id": refs.loc_a2, "quantity": 15}
                ],
            },
        )

        assert updated.ok, updated.error
        assert updated.data.customer_name == "Bolt Ltd"
        assert (await ops.validate_delivery(operator_a, delivery.id)).ok
        assert await balance(refs.product_p, refs.wh_a, refs.loc_a2) == 35

    async def test_edit_refused_once_validated(
        self, refs, create_delivery, ops, receive, balance, operator_a
    ):
        await receive(refs.wh_a, refs.product_p, 50)
        delivery = await create_delivery(operator_a, 10)
        await ops.validate_delivery(operator_a, delivery.id)

        result = await ops.update_delivery(
            operator_a, delivery.id, {"lines": [{"product_id": refs.product_p, "quantity": 1}]}
        )

        assert result.error.error_code == "INVALID_STATE_TRANSITION"
        assert [l.quantity for l in (await ops.get_delivery(delivery.id)).data.lines] == [10]
        assert await balance(refs.product_p, refs.wh_a) == 40

    async def test_waiting_delivery_is_not_editable(self, refs, create_delivery, ops, operator_a):
        delivery = await create_delivery(operator_a, 5, target_warehouse_id=refs.wh_b)

        result = await ops.update_delivery(operator_a, delivery.id, {"notes": "late"})

        assert result.error.error_code == "INVALID_STATE_TRANSITION"

    async def test_edit_rechecks_pick_locations(self, refs, create_delivery, ops, operator_a):
        delivery = await create_delivery(operator_a, 5)

        result = await ops.update_delivery(
            operator_a,
            delivery.id,
            {
                "lines": [
                    {"product_id": refs.product_p, "from_location_id": refs.loc_b1, "quantity": 5}
                ]
            },
        )

        assert result.error.error_code == "VALIDATION_ERROR"
        assert result.error.details["field"] == "lines[0].from_location_id"

    async def test_edit_outside_scope_forbidden(
        self, create_delivery, ops, operator_a, operator_b
    ):
        delivery = await create_delivery(operator_a, 5)

        result = await ops.update_delivery(operator_b, delivery.id, {"notes": "mine"})

        assert result.error.error_code == "FORBIDDEN"
