import uuid
from datetime import date

import pytest
from sqlalchemy import func, select

from core import errors
from db.models import AuditLog, Movement
from services import inbound, ledger, rules
from services.inbound import derive_inbound_status


class TestDeriveStatus:
    def test_nothing_received_is_open(self):
        assert derive_inbound_status([(10, 0), (5, 0)]) == "OPEN"

    def test_partial_is_in_progress(self):
        assert derive_inbound_status([(10, 4), (5, 5)]) == "IN_PROGRESS"

    def test_everything_received_is_closed(self):
        assert derive_inbound_status([(10, 10), (5, 5)]) == "CLOSED"

    def test_over_receipt_still_closes(self):
        assert derive_inbound_status([(10, 12), (5, 5)]) == "CLOSED"


async def _order(session, wh, reference="PO-1"):
    order = await inbound.create_order(
        session,
        reference=reference,
        warehouse_id=wh.id,
        supplier_name="ACME",
        lines=[
            {"item_id": wh.box, "expected_qty": 10},
            {"item_id": wh.tape, "expected_qty": 5},
        ],
    )
    return order.id, [ln.id for ln in order.lines]


class TestCreateOrder:
    async def test_creates_open_order_with_lines(self, session, wh):
        order_id, line_ids = await _order(session, wh)
        order = await inbound.get_order(session, order_id)
        assert order.status == "OPEN"
        assert len(line_ids) == 2
        assert all(ln.received_qty == 0 for ln in order.lines)

        audit = await session.scalar(select(AuditLog).where(AuditLog.entity_id == order_id))
        assert audit.action == "CREATE"

    @pytest.mark.parametrize("case", ["empty", "null_item", "missing_item", "zero_qty"])
    async def test_rejects_bad_lines(self, session, wh, case):
        lines = {
            "empty": [],
            "null_item": [{"item_id": None, "expected_qty": 3}],
            "missing_item": [{"expected_qty": 3}],
            "zero_qty": [{"item_id": wh.box, "expected_qty": 0}],
        }[case]
        with pytest.raises(errors.ValidationError):
            await inbound.create_order(session, reference="PO-X", warehouse_id=wh.id, lines=lines)

    async def test_unknown_warehouse(self, session, wh):
        with pytest.raises(errors.NotFound):
            await inbound.create_order(
                session, reference="PO-X", warehouse_id=uuid.uuid4(), lines=[{"item_id": wh.box, "expected_qty": 1}]
            )

    async def test_duplicate_reference(self, session, wh):
        await _order(session, wh, reference="PO-DUP")
        with pytest.raises(errors.ValidationError):
            await _order(session, wh, reference="PO-DUP")


class TestReceive:
    async def test_partial_then_full_receipt(self, session, wh):
        order_id, (box_line, tape_line) = await _order(session, wh)

        order = await inbound.receive(
            session,
            order_id=order_id,
            receipts=[
                {"line_id": box_line, "received_qty": 4, "to_location_id": wh.rcv},
                {"line_id": tape_line, "received_qty": 5, "to_location_id": wh.rcv},
            ],
        )
        assert order.status == "IN_PROGRESS"
        assert await ledger.stock_quantity(session, wh.box, wh.rcv) == 4

        order = await inbound.receive(
            session,
            order_id=order_id,
            receipts=[{"line_id": box_line, "received_qty": 6, "to_location_id": wh.rcv}],
        )
        assert order.status == "CLOSED"
        assert await ledger.stock_quantity(session, wh.box, wh.rcv) == 10

        movements = (await session.execute(select(Movement).where(Movement.source_id == order_id))).scalars().all()
        assert {m.movement_type for m in movements} == {"RECEIPT"}
        assert sum(m.quantity for m in movements) == 15

    async def test_closed_order_rejects_receipts(self, session, wh):
        order_id, (box_line, tape_line) = await _order(session, wh)
        await inbound.receive(
            session,
            order_id=order_id,
            receipts=[
                {"line_id": box_line, "received_qty": 10, "to_location_id": wh.rcv},
                {"line_id": tape_line, "received_qty": 5, "to_location_id": wh.rcv},
            ],
        )
        with pytest.raises(errors.InvalidState):
            await inbound.receive(
                session,
                order_id=order_id,
                receipts=[{"line_id": box_line, "received_qty": 1, "to_location_id": wh.rcv}],
            )

    async def test_batch_is_all_or_nothing(self, session, wh):
        order_id, (box_line, _) = await _order(session, wh)
        _, (other_line, _) = await _order(session, wh, reference="PO-2")

        with pytest.raises(errors.NotFound) as exc:
            await inbound.receive(
                session,
                order_id=order_id,
                receipts=[
                    {"line_id": box_line, "received_qty": 3, "to_location_id": wh.rcv},
                    {"line_id": other_line, "received_qty": 2, "to_location_id": wh.rcv},
                ],
            )
        assert exc.value.context["line_id"] == other_line

        order = await inbound.get_order(session, order_id)
        assert order.status == "OPEN"
        assert all(ln.received_qty == 0 for ln in order.lines)
        assert await ledger.stock_quantity(session, wh.box, wh.rcv) == 0
        assert await session.scalar(select(func.count()).select_from(Movement)) == 0

    async def test_receipt_fields_are_validated(self, session, wh):
        order_id, (box_line, _) = await _order(session, wh)
        with pytest.raises(errors.ValidationError) as exc:
            await inbound.receive(session, order_id=order_id, receipts=[{"line_id": box_line, "received_qty": 3}])
        assert exc.value.context["field"] == "to_location_id"

        with pytest.raises(errors.ValidationError):
            await inbound.receive(
                session,
                order_id=order_id,
                receipts=[{"line_id": box_line, "received_qty": -1, "to_location_id": wh.rcv}],
            )

    async def test_location_must_belong_to_order_warehouse(self, session, wh):
        order_id, (box_line, _) = await _order(session, wh)
        with pytest.raises(errors.ValidationError):
            await inbound.receive(
                session,
                order_id=order_id,
                receipts=[{"line_id": box_line, "received_qty": 1, "to_location_id": wh.foreign}],
            )

    async def test_batch_and_expiry_go_to_their_own_balance(self, session, wh):
        order_id, (box_line, _) = await _order(session, wh)
        await inbound.receive(
            session,
            order_id=order_id,
            receipts=[
                {
                    "line_id": box_line,
                    "received_qty": 4,
                    "to_location_id": wh.rcv,
                    "batch_number": "LOT-7",
                    "expiration_date": date(2031, 6, 30),
                }
            ],
        )
        assert await ledger.stock_quantity(session, wh.box, wh.rcv) == 0
        assert await ledger.stock_quantity(session, wh.box, wh.rcv, "LOT-7", date(2031, 6, 30)) == 4


class TestPutawaySuggestions:
    async def test_matching_rule_wins_and_default_otherwise(self, session, wh):
        await rules.create_rule(
            session,
            name="Rolls to A-02",
            strategy="fixed_location",
            priority=5,
            criteria={"unit": "ROLL"},
            target_location_id=wh.a2,
        )
        order_id, _ = await _order(session, wh)
        suggestions = {s["sku"]: s["suggestion"] for s in await inbound.putaway_suggestions(session, order_id)}

        assert suggestions["SKU-TAPE"]["location_id"] == wh.a2
        assert suggestions["SKU-TAPE"]["strategy"] == "FIXED_LOCATION"
        assert suggestions["SKU-BOX"]["is_default"] is True
        assert suggestions["SKU-BOX"]["zone"] == "RECEIVING"
