import uuid

import pytest

from core import errors
from db.models import PutawayRule
from services import rules


def _rule(name, priority, criteria, strategy="FIXED", active=True, **kwargs):
    return PutawayRule(
        id=uuid.uuid4(),
        name=name,
        rule_type=kwargs.pop("rule_type", "PUTAWAY"),
        priority=priority,
        is_active=active,
        criteria=criteria,
        strategy=strategy,
        **kwargs,
    )


class TestMatchRule:
    def test_highest_priority_match_wins(self):
        low = _rule("low", 1, {"unit": "PAL"})
        high = _rule("high", 9, {"unit": "PAL"})
        assert rules.match_rule([low, high], {"unit": "PAL", "sku": "X"}) is high

    def test_criteria_must_all_match(self):
        r = _rule("pal-in-wh", 5, {"unit": "PAL", "warehouse_id": "W1"})
        assert rules.match_rule([r], {"unit": "PAL"}) is None
        assert rules.match_rule([r], {"unit": "PAL", "warehouse_id": "W2"}) is None
        assert rules.match_rule([r], {"unit": "PAL", "warehouse_id": "W1"}) is r

    def test_inactive_rules_are_ignored(self):
        r = _rule("off", 10, {}, active=False)
        fallback = _rule("catch-all", 0, {})
        assert rules.match_rule([r, fallback], {"unit": "PCS"}) is fallback

    def test_equal_priority_keeps_input_order(self):
        a = _rule("a", 3, {})
        b = _rule("b", 3, {})
        assert rules.match_rule([a, b], {}) is a

    def test_uuid_criteria_match_string_attributes(self):
        wh_id = uuid.uuid4()
        r = _rule("by-warehouse", 1, {"warehouse_id": str(wh_id)})
        assert rules.match_rule([r], {"warehouse_id": wh_id}) is r

    def test_matching_does_not_mutate_rules(self):
        criteria = {"unit": "PAL"}
        r = _rule("pal", 1, criteria)
        rules.match_rule([r], {"unit": "PAL"})
        assert r.criteria == {"unit": "PAL"}
        assert r.priority == 1


class TestSuggestions:
    def test_putaway_default(self):
        s = rules.suggest_putaway([], {"unit": "PCS"})
        assert s["is_default"] is True
        assert s["zone"] == "RECEIVING"
        assert s["strategy"] == "DEFAULT"

    def test_picking_default_is_fifo(self):
        s = rules.suggest_picking([], {})
        assert s["strategy"] == "FIFO"
        assert s["is_default"] is True

    def test_matched_suggestion_carries_target(self):
        target = uuid.uuid4()
        r = _rule("pal", 2, {"unit": "PAL"}, strategy="CLOSEST", target_location_id=target, target_zone="Z1")
        s = rules.suggest_putaway([r], {"unit": "PAL"})
        assert s["rule_id"] == r.id
        assert s["location_id"] == target
        assert s["zone"] == "Z1"
        assert s["is_default"] is False


class TestRuleAdmin:
    async def test_create_and_load_by_type(self, session, wh):
        await rules.create_rule(session, name="put", strategy="fixed", priority=1)
        await rules.create_rule(session, name="pick", strategy="fefo", rule_type="picking", priority=2)

        putaway = await rules.load_rules(session, "PUTAWAY")
        picking = await rules.load_rules(session, "PICKING")
        assert [r.name for r in putaway] == ["put"]
        assert [r.strategy for r in picking] == ["FEFO"]

    async def test_invalid_rule_type(self, session, wh):
        with pytest.raises(errors.ValidationError):
            await rules.create_rule(session, name="x", strategy="fixed", rule_type="SHIPPING")

    async def test_unknown_target_location(self, session, wh):
        with pytest.raises(errors.NotFound):
            await rules.create_rule(session, name="x", strategy="fixed", target_location_id=uuid.uuid4())
