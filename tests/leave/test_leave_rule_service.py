from __future__ import annotations

from dataclasses import replace

from src.academy_hours.academy_hours.core.enums import LeaveRuleType, Role
from src.academy_hours.academy_hours.leave.model import LeaveRule
from src.academy_hours.academy_hours.leave.rule_service import LeaveRuleService


class FakeRulesRepo:
    def __init__(self):
        self._next_id = 1
        self._rules: dict[int, LeaveRule] = {}

    def list_rules(self, *, active_only=False):
        return [r for r in self._rules.values() if r.is_active or not active_only]

    def get_rule(self, *, rule_id):
        return self._rules.get(int(rule_id))

    def create_rule(self, *, rule, created_by):
        rid = self._next_id
        self._next_id += 1
        self._rules[rid] = LeaveRule(
            rule_id=rid,
            rule_name=rule.rule_name,
            rule_type=rule.rule_type,
            rule_value=rule.rule_value,
            priority=rule.priority,
            blackout_dates=rule.blackout_dates,
            created_by=created_by,
        )
        return self._rules[rid]

    def update_rule(self, *, rule_id, changes):
        current = self._rules.get(int(rule_id))
        if not current:
            return None
        self._rules[current.rule_id] = replace(current, **changes)
        return self._rules[current.rule_id]

    def deactivate_rule(self, *, rule_id):
        self._rules[int(rule_id)] = replace(self._rules[int(rule_id)], is_active=False)
        return True


def test_create_rule_requires_admin():
    service = LeaveRuleService(FakeRulesRepo())

    denied = service.create_rule(
        rule_name="Monthly cap", rule_type="monthly_limit", rule_value=3, actor_id=2, actor_role=Role.TEACHER
    )
    created = service.create_rule(
        rule_name="Monthly cap", rule_type="monthly_limit", rule_value=3, actor_id=1, actor_role=Role.ADMIN
    )

    assert denied.error.code == "PERMISSION_DENIED"
    assert created.data.rule_type == LeaveRuleType.MONTHLY_LIMIT
    assert created.data.created_by == 1


def test_create_rule_validates_value():
    service = LeaveRuleService(FakeRulesRepo())

    bad_number = service.create_rule(
        rule_name="Notice", rule_type="advance_notice", rule_value="soon", actor_id=1, actor_role=Role.ADMIN
    )
    negative = service.create_rule(
        rule_name="Notice", rule_type="advance_notice", rule_value={"value": -1}, actor_id=1, actor_role=Role.ADMIN
    )
    unknown = service.create_rule(rule_name="X", rule_type="weekly_limit", rule_value=1, actor_id=1, actor_role=Role.ADMIN)

    assert bad_number.error.code == "VALIDATION_ERROR"
    assert negative.error.message == "Rule value must not be negative"
    assert unknown.error.message == "Unknown leave rule type: weekly_limit"


def test_update_rule_rejects_unknown_fields_and_changes_type():
    repo = FakeRulesRepo()
    service = LeaveRuleService(repo)
    rule = service.create_rule(
        rule_name="Cap", rule_type="monthly_limit", rule_value=3, actor_id=1, actor_role=Role.ADMIN
    ).data

    unknown = service.update_rule(rule_id=rule.rule_id, changes={"owner": 5}, actor_id=1, actor_role=Role.ADMIN)
    updated = service.update_rule(
        rule_id=rule.rule_id,
        changes={"rule_type": "blackout_dates", "blackout_dates": [{"startDate": "2026-04-01"}]},
        actor_id=1,
        actor_role=Role.ADMIN,
    )

    assert unknown.error.code == "VALIDATION_ERROR"
    assert updated.data.rule_type == LeaveRuleType.BLACKOUT_DATES
    assert updated.data.blackout_dates == [{"startDate": "2026-04-01"}]


def test_deactivate_rule():
    repo = FakeRulesRepo()
    service = LeaveRuleService(repo)
    rule = service.create_rule(
        rule_name="Review", rule_type="approval_required", rule_value=True, actor_id=1, actor_role=Role.ADMIN
    ).data

    assert service.deactivate_rule(rule_id=rule.rule_id, actor_id=1, actor_role=Role.ADMIN).data is True
    assert service.list_rules(active_only=True).data == []
    assert service.deactivate_rule(rule_id=99, actor_id=1, actor_role=Role.ADMIN).error.code == "NOT_FOUND"
