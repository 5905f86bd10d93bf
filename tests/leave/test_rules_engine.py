from __future__ import annotations

from datetime import date, datetime

from src.academy_hours.academy_hours.core.enums import LeaveRuleType, LeaveType
from src.academy_hours.academy_hours.leave.model import LeaveRule, StudentProfile
from src.academy_hours.academy_hours.leave.rules.engine import LeaveRulesEngine

NOW = datetime(2026, 3, 2, 10, 0, 0)


class FakeRulesRepo:
    def __init__(self, rules):
        self._rules = list(rules)

    def list_rules(self, *, active_only=False):
        return [r for r in self._rules if r.is_active or not active_only]


class FakeRequestsRepo:
    def __init__(self, approved_this_month=0, profile=None):
        self.approved_this_month = approved_this_month
        self.profile = profile
        self.month_queries = []

    def count_approved_in_month(self, *, student_id, month_start, month_end):
        self.month_queries.append((month_start, month_end))
        return self.approved_this_month

    def get_student_profile(self, *, student_id):
        return self.profile


def _rule(rule_id, rule_type, value=None, **kwargs):
    return LeaveRule(
        rule_id=rule_id, rule_name=f"{rule_type.value} rule", rule_type=rule_type, rule_value=value, **kwargs
    )


def _evaluate(engine, start=date(2026, 3, 10), end=None, hours=1):
    return engine.evaluate(
        student_id=1, start_date=start, end_date=end or start, leave_type=LeaveType.PERSONAL, total_hours=hours, now=NOW
    )


def test_no_rules_is_valid():
    result = _evaluate(LeaveRulesEngine(FakeRulesRepo([]), FakeRequestsRepo()))

    assert result.is_valid
    assert result.summary.total_rules_checked == 0


def test_monthly_limit_counts_approved_requests_in_class_month():
    requests = FakeRequestsRepo(approved_this_month=3)
    engine = LeaveRulesEngine(FakeRulesRepo([_rule(1, LeaveRuleType.MONTHLY_LIMIT, {"value": 3})]), requests)

    result = _evaluate(engine)

    assert not result.is_valid
    assert result.errors[0].message == "Monthly limit of 3 leaves exceeded"
    assert requests.month_queries == [(date(2026, 3, 1), date(2026, 3, 31))]
    assert result.summary.requires_approval is True


def test_blackout_overlap_is_an_error():
    rule = _rule(
        1,
        LeaveRuleType.BLACKOUT_DATES,
        blackout_dates=[{"startDate": "2026-03-09", "endDate": "2026-03-11", "reason": "Exams"}],
    )
    engine = LeaveRulesEngine(FakeRulesRepo([rule]), FakeRequestsRepo())

    inside = _evaluate(engine, start=date(2026, 3, 11))
    outside = _evaluate(engine, start=date(2026, 3, 12))

    assert inside.errors[0].message == "Leave request overlaps with blackout dates"
    assert outside.is_valid


def test_minimum_hours_only_warns():
    engine = LeaveRulesEngine(FakeRulesRepo([_rule(1, LeaveRuleType.MINIMUM_HOURS, 2)]), FakeRequestsRepo())

    result = _evaluate(engine, hours=1)

    assert result.is_valid
    assert result.warnings[0].severity == "warning"
    assert result.summary.rules_violated == 0


def test_approval_required_forces_review_without_error():
    engine = LeaveRulesEngine(FakeRulesRepo([_rule(1, LeaveRuleType.APPROVAL_REQUIRED, True)]), FakeRequestsRepo())

    result = _evaluate(engine)

    assert result.is_valid
    assert result.summary.requires_approval is True


def test_advance_notice_and_consecutive_days():
    rules = [
        _rule(1, LeaveRuleType.ADVANCE_NOTICE, 3, priority=10),
        _rule(2, LeaveRuleType.CONSECUTIVE_DAYS, "2", priority=5),
    ]
    engine = LeaveRulesEngine(FakeRulesRepo(rules), FakeRequestsRepo())

    result = _evaluate(engine, start=date(2026, 3, 4), end=date(2026, 3, 6))

    assert [e.rule_id for e in result.errors] == [1, 2]
    assert result.summary.rules_violated == 2


def test_misconfigured_rule_is_skipped():
    rules = [_rule(1, LeaveRuleType.MONTHLY_LIMIT, "lots"), _rule(2, LeaveRuleType.MINIMUM_HOURS, 0)]
    engine = LeaveRulesEngine(FakeRulesRepo(rules), FakeRequestsRepo())

    result = _evaluate(engine)

    assert result.is_valid
    assert result.summary.total_rules_checked == 2


def test_rules_scoped_to_other_course_types_do_not_apply():
    rule = _rule(1, LeaveRuleType.MONTHLY_LIMIT, 0, applies_to_course_types=["ielts"])
    profile = StudentProfile(student_id=1, student_type="adult", course_type="toeic")
    engine = LeaveRulesEngine(FakeRulesRepo([rule]), FakeRequestsRepo(profile=profile))

    assert _evaluate(engine).is_valid


def test_inactive_rules_ignored():
    rule = _rule(1, LeaveRuleType.MONTHLY_LIMIT, 0, is_active=False)
    engine = LeaveRulesEngine(FakeRulesRepo([rule]), FakeRequestsRepo())

    assert _evaluate(engine).is_valid
