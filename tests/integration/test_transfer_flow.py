"""Integration tests for transfers and requisition fulfilment on a real database."""

import asyncio

import pytest

from stockflow.core.entities import (
    DeliveryStatus,
    MovementFilter,
    MovementType,
    RequisitionStatus,
    TransferStatus,
)


@pytest.fixture
def raise_requisition(ops, operator_b, refs):
    """Submit a requisition from warehouse B for product P."""

    async def _raise(quantity: int = 20, **extra):
        result = await ops.create_requisition(
            operator_b,
            {
                "requesting_warehouse_id": refs.wh_b,
                "lines": [{"product_id": refs.product_p, "quantity_requested": quantity}],
                **extra,
            },
        )
        assert result.ok, result.error
        return result.data

    return _raise


@pytest.fixture
def draft_transfer(ops, operator_a, refs):
    """Create a DRAFT transfer of product P from warehouse A to B."""

    async def _create(quantity: int = 10):
        created = await ops.create_transfer(
            operator_a,
            {
                "source_warehouse_id": refs.wh_a,
                "target_warehouse_id": refs.wh_b,
                "lines": [{"product_id": refs.product_p, "quantity": quantity}],
            },
        )
        assert created.ok, created.error
        return created.data

    return _create


class TestDirectTransfer:
    """30 units from A/L1 (holding 100) to B."""

    async def test_stock_in_flight_between_dispatch_and_accept(
        self, refs, ops, receive, balance, operator_a, operator_b
    ):
        await receive(refs.wh_a, refs.product_p, 100, refs.loc_a1)

        created = await ops.create_transfer(
            operator_a,
            {
                "source_warehouse_id": refs.wh_a,
                "target_warehouse_id": refs.wh_b,
                "lines": [
                    {"product_id": refs.product_p, "source_location_id": refs.loc_a1, "quantity": 30}
                ],
            },
        )
        assert created.ok, created.error
        transfer = created.data
        assert transfer.number == "TRF-0001"
        assert transfer.status == TransferStatus.DRAFT

        dispatched = await ops.dispatch_transfer(operator_a, transfer.id)
        assert dispatched.ok, dispatched.error
        assert dispatched.data.status == TransferStatus.IN_TRANSIT
        assert await balance(refs.product_p, refs.wh_a, refs.loc_a1) == 70
        assert (await ops.warehouse_total(refs.product_p, refs.wh_b)).data == 0

        accepted = await ops.accept_transfer(operator_b, transfer.id)
        assert accepted.ok, accepted.error
        assert accepted.data.status == TransferStatus.DONE
        assert accepted.data.received_by == operator_b.user_id
        assert await balance(refs.product_p, refs.wh_b) == 30

        total_a = (await ops.warehouse_total(refs.product_p, refs.wh_a)).data
        total_b = (await ops.warehouse_total(refs.product_p, refs.wh_b)).data
        assert total_a + total_b == 100

        page = (await ops.list_movements({"movement_type": MovementType.TRANSFER})).data
        assert page.total == 2
        assert sorted(m.change for m in page.items) == [-30, 30]
        assert all(
            m.warehouse_from_id == refs.wh_a and m.warehouse_to_id == refs.wh_b for m in page.items
        )

    async def test_target_location_is_credited(
        self, refs, ops, receive, balance, operator_a, operator_b
    ):
        await receive(refs.wh_a, refs.product_p, 10, refs.loc_a1)
        created = await ops.create_transfer(
            operator_a,
            {
                "source_warehouse_id": refs.wh_a,
                "target_warehouse_id": refs.wh_b,
                "lines": [
                    {
                        "product_id": refs.product_p,
                        "source_location_id": refs.loc_a1,
                        "target_location_id": refs.loc_b1,
                        "quantity": 4,
                    }
                ],
            },
        )
        await ops.dispatch_transfer(operator_a, created.data.id)
        await ops.accept_transfer(operator_b, created.data.id)

        assert await balance(refs.product_p, refs.wh_b, refs.loc_b1) == 4
        assert await balance(refs.product_p, refs.wh_b) == 0

    async def test_same_warehouse_rejected(self, refs, ops, operator_a):
        result = await ops.create_transfer(
            operator_a,
            {
                "source_warehouse_id": refs.wh_a,
                "target_warehouse_id": refs.wh_a,
                "lines": [{"product_id": refs.product_p, "quantity": 1}],
            },
        )
        assert result.error.error_code == "VALIDATION_ERROR"

    async def test_terminal_transfer_stays_terminal(
        self, refs, ops, receive, operator_a, operator_b
    ):
        await receive(refs.wh_a, refs.product_p, 10)
        created = await ops.create_transfer(
            operator_a,
            {
                "source_warehouse_id": refs.wh_a,
                "target_warehouse_id": refs.wh_b,
                "lines": [{"product_id": refs.product_p, "quantity": 5}],
            },
        )
        transfer_id = created.data.id
        assert (await ops.dispatch_transfer(operator_a, transfer_id)).ok
        assert (await ops.accept_transfer(operator_b, transfer_id)).ok

        again = await ops.accept_transfer(operator_b, transfer_id)
        redispatch = await ops.dispatch_transfer(operator_a, transfer_id)

        assert again.error.error_code == "INVALID_STATE_TRANSITION"
        assert redispatch.error.error_code == "INVALID_STATE_TRANSITION"
        assert (await ops.warehouse_total(refs.product_p, refs.wh_b)).data == 5

    async def test_accept_by_source_operator_forbidden(self, refs, ops, receive, operator_a):
        await receive(refs.wh_a, refs.product_p, 10)
        created = await ops.create_transfer(
            operator_a,
            {
                "source_warehouse_id": refs.wh_a,
                "target_warehouse_id": refs.wh_b,
                "lines": [{"product_id": refs.product_p, "quantity": 5}],
            },
        )
        await ops.dispatch_transfer(operator_a, created.data.id)

        result = await ops.accept_transfer(operator_a, created.data.id)

        assert result.error.error_code == "FORBIDDEN"

    async def test_multi_line_shortfall_moves_nothing(
        self, refs, ops, receive, balance, operator_a
    ):
        await receive(refs.wh_a, refs.product_p, 5, refs.loc_a1)
        created = await ops.create_transfer(
            operator_a,
            {
                "source_warehouse_id": refs.wh_a,
                "target_warehouse_id": refs.wh_b,
                "lines": [
                    {"product_id": refs.product_p, "source_location_id": refs.loc_a1, "quantity": 3},
                    {"product_id": refs.product_q, "quantity": 2},
                ],
            },
        )

        result = await ops.dispatch_transfer(operator_a, created.data.id)

        assert result.error.error_code == "INSUFFICIENT_STOCK"
        [shortfall] = result.error.details["shortfalls"]
        assert shortfall["product_id"] == refs.product_q
        assert await balance(refs.product_p, refs.wh_a, refs.loc_a1) == 5
        assert (await ops.get_transfer(created.data.id)).data.status == TransferStatus.DRAFT


class TestRequisitionFulfilment:
    async def test_approval_spawns_exactly_one_delivery(
        self, refs, raise_requisition, ops, operator_b, manager_a
    ):
        requisition = await raise_requisition()
        assert requisition.number == "REQ-0001"
        assert requisition.status == RequisitionStatus.SUBMITTED

        approved = await ops.approve_requisition(manager_a, requisition.id, refs.wh_a)
        assert approved.ok, approved.error
        delivery = approved.data.delivery
        assert approved.data.requisition.status == RequisitionStatus.APPROVED
        assert approved.data.requisition.final_source_warehouse_id == refs.wh_a
        assert delivery.status == DeliveryStatus.WAITING
        assert delivery.reference == requisition.number
        assert (delivery.warehouse_id, delivery.target_warehouse_id) == (refs.wh_a, refs.wh_b)

        again = await ops.approve_requisition(manager_a, requisition.id, refs.wh_a)
        assert again.error.error_code == "INVALID_STATE_TRANSITION"

        deliveries = (await ops.list_deliveries(manager_a)).data
        assert [d.requisition_id for d in deliveries] == [requisition.id]

    async def test_rejected_requisition_has_no_delivery(
        self, raise_requisition, ops, admin, operator_b, manager_a
    ):
        requisition = await raise_requisition()

        rejected = await ops.reject_requisition(manager_a, requisition.id, "Not this month")

        assert rejected.data.status == RequisitionStatus.REJECTED
        assert rejected.data.rejected_reason == "Not this month"
        assert (await ops.list_deliveries(admin)).data == []

    async def test_draft_requisition_submitted_later(
        self, refs, raise_requisition, ops, operator_b, manager_a
    ):
        requisition = await raise_requisition(submit=False)
        assert requisition.status == RequisitionStatus.DRAFT

        early = await ops.approve_requisition(manager_a, requisition.id, refs.wh_a)
        assert early.error.error_code == "INVALID_STATE_TRANSITION"

        submitted = await ops.submit_requisition(operator_b, requisition.id)
        assert submitted.data.status == RequisitionStatus.SUBMITTED
        assert submitted.data.submitted_at is not None

    async def test_linked_delivery_cannot_be_validated(
        self, refs, raise_requisition, ops, receive, operator_a, operator_b, manager_a, manager_b
    ):
        await receive(refs.wh_a, refs.product_p, 100)
        requisition = await raise_requisition()
        outcome = await ops.approve_requisition(manager_a, requisition.id, refs.wh_a)
        delivery = outcome.data.delivery
        approved = await ops.approve_delivery(manager_b, delivery.id)
        assert approved.data.status == DeliveryStatus.READY

        before = (await ops.list_movements()).data.total
        result = await ops.validate_delivery(operator_a, delivery.id)

        assert result.ok is False
        assert result.error.error_code == "INVALID_STATE_TRANSITION"
        assert (await ops.list_movements()).data.total == before
        assert (await ops.get_delivery(delivery.id)).data.status == DeliveryStatus.READY

    async def test_short_source_fails_at_dispatch(
        self, refs, raise_requisition, ops, receive, operator_b, operator_c, manager_b, manager_c
    ):
        """Requisition for 20 approved from C, which holds only 5."""
        await receive(refs.wh_c, refs.product_p, 5)
        requisition = await raise_requisition(20)

        approved = await ops.approve_requisition(manager_c, requisition.id, refs.wh_c)
        assert approved.ok, approved.error
        delivery = approved.data.delivery
        assert (await ops.approve_delivery(manager_b, delivery.id)).ok

        created = await ops.create_transfer_from_delivery(operator_c, delivery.id)
        assert created.ok, created.error
        transfer = created.data
        assert transfer.source_warehouse_id == refs.wh_c
        assert transfer.target_warehouse_id == refs.wh_b
        assert transfer.requisition_id == requisition.id

        result = await ops.dispatch_transfer(operator_c, transfer.id)

        assert result.error.error_code == "INSUFFICIENT_STOCK"
        [shortfall] = result.error.details["shortfalls"]
        assert (shortfall["requested"], shortfall["available"]) == (20, 5)
        assert (await ops.warehouse_total(refs.product_p, refs.wh_c)).data == 5
        assert (await ops.get_transfer(transfer.id)).data.status == TransferStatus.DRAFT

    async def test_accept_completes_linked_delivery(
        self, refs, raise_requisition, ops, receive, operator_a, operator_b, manager_a, manager_b
    ):
        await receive(refs.wh_a, refs.product_p, 50, refs.loc_a1)
        requisition = await raise_requisition(20)
        outcome = await ops.approve_requisition(manager_a, requisition.id, refs.wh_a)
        delivery = outcome.data.delivery
        await ops.approve_delivery(manager_b, delivery.id)
        transfer = (await ops.create_transfer_from_delivery(operator_a, delivery.id)).data

        duplicate = await ops.create_transfer_from_delivery(operator_a, delivery.id)
        assert duplicate.error.error_code == "INVALID_STATE_TRANSITION"

        assert (await ops.dispatch_transfer(operator_a, transfer.id)).ok
        assert (await ops.warehouse_total(refs.product_p, refs.wh_a)).data == 30
        assert (await ops.accept_transfer(operator_b, transfer.id)).ok

        completed = (await ops.get_delivery(delivery.id)).data
        assert completed.status == DeliveryStatus.DONE
        assert completed.validated_by == operator_b.user_id
        assert (await ops.warehouse_total(refs.product_p, refs.wh_b)).data == 20

        page = (await ops.list_movements(MovementFilter(product_id=refs.product_p))).data
        assert sum(m.change for m in page.items) == 50

    async def test_transfer_from_unapproved_delivery_refused(
        self, refs, raise_requisition, ops, operator_a, operator_b, manager_a
    ):
        requisition = await raise_requisition()
        outcome = await ops.approve_requisition(manager_a, requisition.id, refs.wh_a)
        delivery = outcome.data.delivery

        result = await ops.create_transfer_from_delivery(operator_a, delivery.id)

        assert result.error.error_code == "INVALID_STATE_TRANSITION"

    async def test_manager_cannot_approve_from_foreign_source(
        self, refs, raise_requisition, ops, operator_b, manager_a
    ):
        requisition = await raise_requisition()

        result = await ops.approve_requisition(manager_a, requisition.id, refs.wh_c)

        assert result.error.error_code == "FORBIDDEN"
        assert (await ops.get_requisition(requisition.id)).data.status == RequisitionStatus.SUBMITTED

    async def test_concurrent_approvals_spawn_one_delivery(
        self, refs, raise_requisition, ops, admin, manager_a
    ):
        requisition = await raise_requisition()

        results = await asyncio.gather(
            *(ops.approve_requisition(manager_a, requisition.id, refs.wh_a) for _ in range(3))
        )

        assert sorted(r.ok for r in results) == [False, False, True]
        assert {r.error.error_code for r in results if not r.ok} == {"INVALID_STATE_TRANSITION"}
        deliveries = (await ops.list_deliveries(admin)).data
        assert [d.requisition_id for d in deliveries] == [requisition.id]


class TestTransferEdits:
    async def test_draft_edit_replaces_lines(
        self, draft_transfer, refs, ops, receive, balance, operator_a, operator_b
    ):
        await receive(refs.wh_a, refs.product_p, 100, refs.loc_a1)
        transfer = await draft_transfer()

        updated = await ops.update_transfer(
            operator_a,
            transfer.id,
            {
                "notes": "Second truck",
                "lines": [
                    {
                        "product_id": refs.product_p,
                        "source_location_id": refs.loc_a1,
                        "target_location_id": refs.loc_b1,
                        "quantity": 25,
                    }
                ],
            },
        )

        assert updated.ok, updated.error
        assert updated.data.notes == "Second truck"
        assert (await ops.dispatch_transfer(operator_a, transfer.id)).ok
        assert (await ops.accept_transfer(operator_b, transfer.id)).ok
        assert await balance(refs.product_p, refs.wh_a, refs.loc_a1) == 75
        assert await balance(refs.product_p, refs.wh_b, refs.loc_b1) == 25

    async def test_edit_refused_once_dispatched(
        self, draft_transfer, refs, ops, receive, balance, operator_a
    ):
        await receive(refs.wh_a, refs.product_p, 100)
        transfer = await draft_transfer()
        await ops.dispatch_transfer(operator_a, transfer.id)

        result = await ops.update_transfer(
            operator_a, transfer.id, {"lines": [{"product_id": refs.product_p, "quantity": 1}]}
        )

        assert result.error.error_code == "INVALID_STATE_TRANSITION"
        stored = (await ops.get_transfer(transfer.id)).data
        assert stored.status == TransferStatus.IN_TRANSIT
        assert [l.quantity for l in stored.lines] == [10]
        assert await balance(refs.product_p, refs.wh_a) == 90

    async def test_edit_rechecks_target_locations(
        self, draft_transfer, refs, ops, operator_a
    ):
        transfer = await draft_transfer()

        result = await ops.update_transfer(
            operator_a,
            transfer.id,
            {
                "lines": [
                    {"product_id": refs.product_p, "target_location_id": refs.loc_a1, "quantity": 5}
                ]
            },
        )

        assert result.error.error_code == "VALIDATION_ERROR"
        assert result.error.details["field"] == "lines[0].target_location_id"

    async def test_lines_of_delivery_transfer_are_fixed(
        self, refs, raise_requisition, ops, operator_a, manager_a, manager_b
    ):
        requisition = await raise_requisition()
        outcome = await ops.approve_requisition(manager_a, requisition.id, refs.wh_a)
        await ops.approve_delivery(manager_b, outcome.data.delivery.id)
        built = await ops.create_transfer_from_delivery(operator_a, outcome.data.delivery.id)
        transfer = built.data

        lines = await ops.update_transfer(
            operator_a, transfer.id, {"lines": [{"product_id": refs.product_p, "quantity": 1}]}
        )
        notes = await ops.update_transfer(operator_a, transfer.id, {"notes": "Bay 2"})

        assert lines.error.error_code == "VALIDATION_ERROR"
        assert notes.ok, notes.error
        assert [l.quantity for l in notes.data.lines] == [20]

    async def test_edit_by_target_operator_forbidden(self, draft_transfer, ops, operator_b):
        transfer = await draft_transfer()

        result = await ops.update_transfer(operator_b, transfer.id, {"notes": "mine"})

        assert result.error.error_code == "FORBIDDEN"


class TestRequisitionEdits:
    async def test_draft_edit_replaces_lines(
        self, refs, raise_requisition, ops, operator_b, manager_a
    ):
        requisition = await raise_requisition(submit=False)

        updated = await ops.update_requisition(
            operator_b,
            requisition.id,
            {
                "suggested_source_warehouse_id": refs.wh_c,
                "lines": [{"product_id": refs.product_q, "quantity_requested": 4}],
            },
        )

        assert updated.ok, updated.error
        assert updated.data.suggested_source_warehouse_id == refs.wh_c
        assert (await ops.submit_requisition(operator_b, requisition.id)).ok
        outcome = await ops.approve_requisition(manager_a, requisition.id, refs.wh_a)
        assert [(l.product_id, l.quantity) for l in outcome.data.delivery.lines] == [
            (refs.product_q, 4)
        ]

    async def test_edit_refused_once_submitted(self, refs, raise_requisition, ops, operator_b):
        requisition = await raise_requisition()

        result = await ops.update_requisition(
            operator_b,
            requisition.id,
            {"lines": [{"product_id": refs.product_p, "quantity_requested": 999}]},
        )

        assert result.error.error_code == "INVALID_STATE_TRANSITION"
        stored = (await ops.get_requisition(requisition.id)).data
        assert [l.quantity_requested for l in stored.lines] == [20]

    async def test_suggested_source_must_be_another_warehouse(
        self, refs, raise_requisition, ops, operator_b
    ):
        requisition = await raise_requisition(submit=False)

        same = await ops.update_requisition(
            operator_b, requisition.id, {"suggested_source_warehouse_id": refs.wh_b}
        )
        unknown = await ops.update_requisition(
            operator_b, requisition.id, {"suggested_source_warehouse_id": "wh-ghost"}
        )

        assert same.error.error_code == "VALIDATION_ERROR"
        assert unknown.error.error_code == "NOT_FOUND"

    async def test_edit_by_other_warehouse_forbidden(
        self, raise_requisition, ops, operator_a, operator_b
    ):
        requisition = await raise_requisition(submit=False)

        result = await ops.update_requisition(operator_a, requisition.id, {"notes": "mine"})

        assert result.error.error_code == "FORBIDDEN"
