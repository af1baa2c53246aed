"""
Mutabaah Service - Aggregation Engine Tests

Matrix building, the max rule, month gating, and percentages.
"""

from zoneinfo import ZoneInfo

import pytest

from app.config.activity_catalog import ACTIVITIES_BY_ID, VirtueCategory
from app.models.mutabaah import SubmissionStatus
from app.services.aggregation_engine import (
    DailyCompletionMatrix,
    MutabaahAggregator,
    build_matrices,
    compute_percentage,
)
from app.services.source_readers import CompletionSignal, SourceReaders, SourceSnapshot, parse_manual_report
from tests.fixtures.mutabaah_data import activate, add_employee, add_prayer_days, add_submission

JAKARTA = ZoneInfo("Asia/Jakarta")
AMANAH_PRAYER_ONLY = [ACTIVITIES_BY_ID["shalat_berjamaah"]]


def prayer_signals(employee_id: str, month_key: str, days):
    return [CompletionSignal(employee_id, month_key, f"{d:02d}", "shalat_berjamaah") for d in days]


def march_snapshot(status=SubmissionStatus.APPROVED, activated=True) -> SourceSnapshot:
    snapshot = SourceSnapshot(year=2025, signals=prayer_signals("E", "2025-03", range(1, 16)))
    if status is not None:
        snapshot.approvals[("E", "2025-03")] = status
    if activated:
        snapshot.activations.add(("E", "2025-03"))
    return snapshot


class TestPercentage:

    @pytest.mark.parametrize("achieved,target,expected", [
        (15, 20, 75),
        (0, 20, 0),
        (1, 3, 33),
        (1, 8, 13),   # 12.5 rounds half up
        (5, 8, 63),   # 62.5 rounds half up
        (30, 20, 100),
        (0, 0, 0),
        (5, 0, 0),
    ])
    def test_compute_percentage(self, achieved, target, expected):
        assert compute_percentage(achieved, target) == expected


class TestDailyCompletionMatrix:

    def test_mark_complete_is_idempotent(self):
        matrix = DailyCompletionMatrix("E")
        matrix.mark_complete("2025-03", "05", "doa_bersama")
        matrix.mark_complete("2025-03", "05", "doa_bersama")
        assert matrix.days_for("2025-03", "doa_bersama") == 1

    def test_same_tuple_from_two_sources_counts_once(self):
        team = CompletionSignal("E", "2025-03", "11", "kajian_selasa")
        activity = CompletionSignal("E", "2025-03", "11", "kajian_selasa")
        once = build_matrices([team])["E"]
        twice = build_matrices([team, activity])["E"]
        assert twice.days_for("2025-03", "kajian_selasa") == once.days_for("2025-03", "kajian_selasa") == 1

    def test_month_view(self):
        matrix = build_matrices([
            CompletionSignal("E", "2025-03", "02", "infaq"),
            CompletionSignal("E", "2025-03", "01", "shalat_berjamaah"),
            CompletionSignal("E", "2025-03", "01", "doa_bersama"),
        ])["E"]
        assert matrix.month_view("2025-03") == {
            "01": ["doa_bersama", "shalat_berjamaah"],
            "02": ["infaq"],
        }
        assert matrix.month_view("2025-04") == {}
        assert matrix.month_keys == ["2025-03"]


class TestAggregation:

    def test_employee_without_data_is_all_zero(self):
        summary = MutabaahAggregator().aggregate(["E"], SourceSnapshot(year=2025))["E"]
        for category in VirtueCategory:
            score = summary.score(category)
            assert (score.achieved, score.target, score.percentage) == (0, 0, 0)
        assert summary.months_count == 0
        assert summary.total.percentage == 0

    def test_march_approved_scenario(self):
        aggregator = MutabaahAggregator(activities=AMANAH_PRAYER_ONLY, require_activation=True)
        summary = aggregator.aggregate(["E"], march_snapshot())["E"]

        amanah = summary.score(VirtueCategory.AMANAH)
        assert summary.months_count == 1
        assert (amanah.achieved, amanah.target, amanah.percentage) == (15, 20, 75)

    def test_march_pending_supervisor_scenario(self):
        aggregator = MutabaahAggregator(
            activities=AMANAH_PRAYER_ONLY, require_activation=True, accrue_unapproved_targets=True,
        )
        summary = aggregator.aggregate(["E"], march_snapshot(SubmissionStatus.PENDING_SUPERVISOR))["E"]

        amanah = summary.score(VirtueCategory.AMANAH)
        assert summary.months_count == 1
        assert (amanah.achieved, amanah.target, amanah.percentage) == (0, 20, 0)
        assert summary.months[0].status == SubmissionStatus.PENDING_SUPERVISOR
        assert not summary.months[0].is_open

    def test_march_with_full_catalog(self):
        summary = MutabaahAggregator(require_activation=True).aggregate(["E"], march_snapshot())["E"]
        amanah = summary.score(VirtueCategory.AMANAH)
        assert (amanah.achieved, amanah.target, amanah.percentage) == (15, 41, 37)
        assert summary.total.target == 6 + 41 + 41 + 25

    def test_approved_but_not_activated_counts_nothing(self):
        aggregator = MutabaahAggregator(activities=AMANAH_PRAYER_ONLY, require_activation=True)
        summary = aggregator.aggregate(["E"], march_snapshot(activated=False))["E"]
        assert summary.score(VirtueCategory.AMANAH).achieved == 0
        assert summary.score(VirtueCategory.AMANAH).target == 20

    def test_activation_not_required(self):
        aggregator = MutabaahAggregator(activities=AMANAH_PRAYER_ONLY, require_activation=False)
        summary = aggregator.aggregate(["E"], march_snapshot(activated=False))["E"]
        assert summary.score(VirtueCategory.AMANAH).achieved == 15

    def test_unapproved_month_excluded_when_accrual_off(self):
        aggregator = MutabaahAggregator(
            activities=AMANAH_PRAYER_ONLY, require_activation=True, accrue_unapproved_targets=False,
        )
        summary = aggregator.aggregate(["E"], march_snapshot(status=None))["E"]
        assert summary.months_count == 0
        assert summary.score(VirtueCategory.AMANAH).target == 0

    def test_revoking_approval_never_raises_percentage(self):
        aggregator = MutabaahAggregator(activities=AMANAH_PRAYER_ONLY, require_activation=True)
        snapshot = march_snapshot()
        snapshot.signals.extend(prayer_signals("E", "2025-04", range(1, 11)))
        snapshot.approvals[("E", "2025-04")] = SubmissionStatus.APPROVED
        snapshot.activations.add(("E", "2025-04"))

        before = aggregator.aggregate(["E"], snapshot)["E"].score(VirtueCategory.AMANAH).percentage
        snapshot.approvals[("E", "2025-04")] = SubmissionStatus.PENDING_MENTOR
        after_summary = aggregator.aggregate(["E"], snapshot)["E"]
        after = after_summary.score(VirtueCategory.AMANAH).percentage

        assert after <= before
        assert after_summary.months_count == 2

    def test_max_rule_uses_manual_count_over_days(self):
        snapshot = SourceSnapshot(year=2025)
        snapshot.manual_logs["E"] = parse_manual_report("E", {
            "2025-03": {"jujur": {
                "count": 5,
                "entries": [{"date": "2025-03-01"}, {"date": "2025-03-02"}, {"date": "2025-03-03"}],
            }},
        }, 2025)
        for log in snapshot.manual_logs["E"]["2025-03"].values():
            snapshot.signals.extend(log.signals(JAKARTA))
        snapshot.approvals[("E", "2025-03")] = SubmissionStatus.APPROVED
        snapshot.activations.add(("E", "2025-03"))

        aggregator = MutabaahAggregator(activities=[ACTIVITIES_BY_ID["jujur"]])
        summary = aggregator.aggregate(["E"], snapshot)["E"]

        assert summary.score(VirtueCategory.SIDIQ).achieved == 5

    def test_max_rule_uses_days_over_lower_manual_count(self):
        snapshot = SourceSnapshot(year=2025, signals=prayer_signals("E", "2025-03", range(1, 8)))
        snapshot.manual_logs["E"] = parse_manual_report("E", {
            "2025-03": {"shalat_berjamaah": {"count": 2}},
        }, 2025)
        snapshot.approvals[("E", "2025-03")] = SubmissionStatus.APPROVED
        snapshot.activations.add(("E", "2025-03"))

        summary = MutabaahAggregator(activities=AMANAH_PRAYER_ONLY).aggregate(["E"], snapshot)["E"]

        assert summary.score(VirtueCategory.AMANAH).achieved == 7

    def test_manual_only_month_is_counted(self):
        snapshot = SourceSnapshot(year=2025)
        snapshot.manual_logs["E"] = parse_manual_report("E", {"2025-02": {}}, 2025)
        summary = MutabaahAggregator().aggregate(["E"], snapshot)["E"]
        assert summary.months_count == 1
        assert [m.month_key for m in summary.months] == ["2025-02"]

    def test_percentage_clamped_when_achieved_exceeds_target(self):
        snapshot = SourceSnapshot(year=2025)
        snapshot.manual_logs["E"] = parse_manual_report("E", {
            "2025-03": {"infaq": {"count": 9}},
        }, 2025)
        snapshot.approvals[("E", "2025-03")] = SubmissionStatus.APPROVED
        snapshot.activations.add(("E", "2025-03"))

        summary = MutabaahAggregator(activities=[ACTIVITIES_BY_ID["infaq"]]).aggregate(["E"], snapshot)["E"]

        sidiq = summary.score(VirtueCategory.SIDIQ)
        assert sidiq.achieved == 9
        assert sidiq.target == 1
        assert sidiq.percentage == 100

    def test_employees_do_not_share_data(self):
        snapshot = march_snapshot()
        summaries = MutabaahAggregator(activities=AMANAH_PRAYER_ONLY).aggregate(["E", "F"], snapshot)
        assert summaries["E"].score(VirtueCategory.AMANAH).achieved == 15
        assert summaries["F"].months_count == 0


class TestAggregationFromDatabase:
    """The March scenarios end to end through the readers."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status,expected", [
        (SubmissionStatus.APPROVED, (15, 20, 75)),
        (SubmissionStatus.PENDING_SUPERVISOR, (0, 20, 0)),
    ])
    async def test_march_2025(self, db_session, session_factory, status, expected):
        employee = await add_employee(db_session, "E", "Employee", mentor_id="M", supervisor_id="S")
        await add_prayer_days(db_session, "E", 2025, 3, range(1, 16))
        # A second prayer on the same days adds nothing
        await add_prayer_days(db_session, "E", 2025, 3, range(1, 16), prayer="ashar")
        await activate(db_session, "E", "2025-03")
        await add_submission(db_session, employee, "2025-03", status)

        snapshot = await SourceReaders(session_factory, "Asia/Jakarta").fetch_all(["E"], 2025)
        summary = MutabaahAggregator(
            activities=AMANAH_PRAYER_ONLY, require_activation=True, accrue_unapproved_targets=True,
        ).aggregate(["E"], snapshot)["E"]

        amanah = summary.score(VirtueCategory.AMANAH)
        assert (amanah.achieved, amanah.target, amanah.percentage) == expected
        assert summary.months_count == 1
