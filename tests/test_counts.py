import uuid

import pytest

from core import errors
from services import counts, ledger


class TestCampaign:
    async def test_lines_snapshot_system_quantity(self, session, wh):
        await ledger.move_stock(session, item_id=wh.box, quantity=12, to_location_id=wh.a1)
        campaign = await counts.open_campaign(session, wh.id)
        assert campaign.status == "OPEN"

        lines = await counts.record_lines(
            session,
            campaign.id,
            [
                {"item_id": wh.box, "location_id": wh.a1, "counted_qty": 10},
                {"item_id": wh.tape, "location_id": wh.a2, "counted_qty": 3},
            ],
        )
        assert [(ln.system_qty, ln.difference) for ln in lines] == [(12, -2), (0, 3)]

        # counting never moves stock
        assert await ledger.stock_quantity(session, wh.box, wh.a1) == 12
        assert await ledger.stock_quantity(session, wh.tape, wh.a2) == 0

    async def test_closed_campaign_is_immutable(self, session, wh):
        campaign = await counts.open_campaign(session, wh.id)
        campaign_id = campaign.id
        await counts.record_lines(session, campaign_id, [{"item_id": wh.box, "location_id": wh.a1, "counted_qty": 1}])
        closed = await counts.close_campaign(session, campaign_id)
        assert closed.status == "CLOSED"
        assert closed.closed_at is not None

        with pytest.raises(errors.InvalidState):
            await counts.record_lines(
                session, campaign_id, [{"item_id": wh.box, "location_id": wh.a1, "counted_qty": 5}]
            )
        with pytest.raises(errors.InvalidState):
            await counts.close_campaign(session, campaign_id)

        campaign = await counts.get_campaign(session, campaign_id)
        assert len(campaign.lines) == 1

    async def test_unknown_warehouse(self, session, wh):
        with pytest.raises(errors.NotFound):
            await counts.open_campaign(session, uuid.uuid4())

    async def test_unknown_campaign(self, session, wh):
        with pytest.raises(errors.NotFound):
            await counts.record_lines(
                session, uuid.uuid4(), [{"item_id": wh.box, "location_id": wh.a1, "counted_qty": 1}]
            )

    @pytest.mark.parametrize(
        "line",
        [
            {"location_id": "a1", "counted_qty": 1},
            {"item_id": "box", "counted_qty": 1},
            {"item_id": "box", "location_id": "a1"},
            {"item_id": "box", "location_id": "a1", "counted_qty": -1},
        ],
    )
    async def test_invalid_lines(self, session, wh, line):
        campaign = await counts.open_campaign(session, wh.id)
        resolved = {k: getattr(wh, v) if k in ("item_id", "location_id") else v for k, v in line.items()}
        with pytest.raises(errors.ValidationError):
            await counts.record_lines(session, campaign.id, [resolved])

    async def test_empty_batch(self, session, wh):
        campaign = await counts.open_campaign(session, wh.id)
        with pytest.raises(errors.ValidationError):
            await counts.record_lines(session, campaign.id, [])

    async def test_zero_count_is_allowed(self, session, wh):
        await ledger.move_stock(session, item_id=wh.box, quantity=2, to_location_id=wh.a1)
        campaign = await counts.open_campaign(session, wh.id)
        [line] = await counts.record_lines(
            session, campaign.id, [{"item_id": wh.box, "location_id": wh.a1, "counted_qty": 0}]
        )
        assert line.difference == -2
