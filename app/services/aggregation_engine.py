"""
Mutabaah Service - Activity Aggregation Engine

Builds the per-employee daily completion matrix from normalized source
signals and rolls it up into yearly achieved/target/percentage figures per
virtue category.

Rules:
- A month counts only if the matrix or the manual log has data for it.
- Achieved per activity is the larger of distinct marked days and the raw
  manual count; the two are never summed.
- A month whose gate is closed (not approved, or not activated when
  activation is required) contributes zero achieved. Its target still
  accrues unless accrual for unapproved months is switched off.
- Percentage is rounded half up and clamped to 100; a zero target gives 0.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Iterable, List, Optional, Sequence, Set

from app.config import settings
from app.config.activity_catalog import (
    CATEGORY_ORDER,
    DAILY_ACTIVITIES,
    ActivityDefinition,
    VirtueCategory,
)
from app.models.mutabaah import SubmissionStatus
from app.services.source_readers import CompletionSignal, ManualActivityLog, SourceSnapshot

logger = logging.getLogger(__name__)


def compute_percentage(achieved: int, target: int) -> int:
    """``min(100, round_half_up(achieved / target * 100))``, 0 for a zero target."""
    if target <= 0:
        return 0
    ratio = Decimal(achieved) * 100 / Decimal(target)
    value = int(ratio.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    return max(0, min(100, value))


# =============================================================================
# DAILY COMPLETION MATRIX
# =============================================================================

class DailyCompletionMatrix:
    """
    month_key -> day_key -> set of activity ids, for one employee.
    Marking the same activity on the same day twice is a no-op.
    """

    def __init__(self, employee_id: str):
        self.employee_id = employee_id
        self._months: Dict[str, Dict[str, Set[str]]] = defaultdict(lambda: defaultdict(set))

    def mark_complete(self, month_key: str, day_key: str, activity_id: str) -> None:
        self._months[month_key][day_key].add(activity_id)

    def has_month(self, month_key: str) -> bool:
        return month_key in self._months

    def days_for(self, month_key: str, activity_id: str) -> int:
        """Distinct days in the month on which the activity is marked."""
        days = self._months.get(month_key)
        if not days:
            return 0
        return sum(1 for activities in days.values() if activity_id in activities)

    def month_view(self, month_key: str) -> Dict[str, List[str]]:
        """``{day_key: sorted activity ids}`` for one month."""
        days = self._months.get(month_key, {})
        return {day: sorted(activities) for day, activities in sorted(days.items())}

    @property
    def month_keys(self) -> List[str]:
        return sorted(self._months)


def build_matrices(signals: Iterable[CompletionSignal]) -> Dict[str, DailyCompletionMatrix]:
    matrices: Dict[str, DailyCompletionMatrix] = {}
    for signal in signals:
        matrix = matrices.get(signal.employee_id)
        if matrix is None:
            matrix = matrices[signal.employee_id] = DailyCompletionMatrix(signal.employee_id)
        matrix.mark_complete(signal.month_key, signal.day_key, signal.activity_id)
    return matrices


# =============================================================================
# RESULTS
# =============================================================================

@dataclass
class CategoryScore:
    achieved: int = 0
    target: int = 0

    @property
    def percentage(self) -> int:
        return compute_percentage(self.achieved, self.target)


@dataclass
class MonthGate:
    month_key: str
    approved: bool
    activated: bool
    status: Optional[SubmissionStatus] = None

    @property
    def is_open(self) -> bool:
        return self.approved and self.activated


@dataclass
class EmployeeYearSummary:
    """Yearly roll-up for one employee."""
    employee_id: str
    year: int
    categories: Dict[VirtueCategory, CategoryScore] = field(
        default_factory=lambda: {c: CategoryScore() for c in CATEGORY_ORDER}
    )
    months: List[MonthGate] = field(default_factory=list)

    @property
    def months_count(self) -> int:
        return len(self.months)

    @property
    def total(self) -> CategoryScore:
        return CategoryScore(
            achieved=sum(s.achieved for s in self.categories.values()),
            target=sum(s.target for s in self.categories.values()),
        )

    def score(self, category: VirtueCategory) -> CategoryScore:
        return self.categories[category]


# =============================================================================
# AGGREGATOR
# =============================================================================

class MutabaahAggregator:
    """
    Rolls a SourceSnapshot up into yearly summaries.

    ``activities`` defaults to the full catalog; a narrower catalog only
    changes which activities make up each category.
    """

    def __init__(
        self,
        activities: Sequence[ActivityDefinition] = DAILY_ACTIVITIES,
        require_activation: Optional[bool] = None,
        accrue_unapproved_targets: Optional[bool] = None,
    ):
        self.activities = tuple(activities)
        self.require_activation = (
            settings.require_activation_for_report if require_activation is None else require_activation
        )
        self.accrue_unapproved_targets = (
            settings.accrue_target_for_unapproved_months
            if accrue_unapproved_targets is None else accrue_unapproved_targets
        )
        self._by_category: Dict[VirtueCategory, List[ActivityDefinition]] = {c: [] for c in CATEGORY_ORDER}
        for activity in self.activities:
            self._by_category[activity.category].append(activity)
        self._monthly_targets = {
            c: sum(a.monthly_target for a in acts) for c, acts in self._by_category.items()
        }

    def monthly_target(self, category: VirtueCategory) -> int:
        return self._monthly_targets[category]

    def achieved_for_activity(
        self,
        matrix: Optional[DailyCompletionMatrix],
        manual_month: Optional[Dict[str, ManualActivityLog]],
        month_key: str,
        activity_id: str,
    ) -> int:
        count = matrix.days_for(month_key, activity_id) if matrix else 0
        if manual_month:
            log = manual_month.get(activity_id)
            if log and log.count > count:
                count = log.count
        return count

    def summarize_employee(
        self,
        employee_id: str,
        year: int,
        matrix: Optional[DailyCompletionMatrix],
        manual_logs: Dict[str, Dict[str, ManualActivityLog]],
        approvals: Dict[str, SubmissionStatus],
        activations: Set[str],
    ) -> EmployeeYearSummary:
        """
        Summarize one employee's year. ``approvals`` and ``activations`` are
        keyed by month key only.
        """
        summary = EmployeeYearSummary(employee_id=employee_id, year=year)

        for month in range(1, 13):
            month_key = f"{year:04d}-{month:02d}"
            manual_month = manual_logs.get(month_key)
            has_matrix = matrix is not None and matrix.has_month(month_key)
            if not has_matrix and manual_month is None:
                continue

            status = approvals.get(month_key)
            gate = MonthGate(
                month_key=month_key,
                approved=status == SubmissionStatus.APPROVED,
                activated=(month_key in activations) or not self.require_activation,
                status=status,
            )
            if not gate.is_open and not self.accrue_unapproved_targets:
                continue
            summary.months.append(gate)

            for category in CATEGORY_ORDER:
                score = summary.categories[category]
                score.target += self._monthly_targets[category]
                if gate.is_open:
                    score.achieved += sum(
                        self.achieved_for_activity(matrix, manual_month, month_key, a.id)
                        for a in self._by_category[category]
                    )

        return summary

    def aggregate(self, employee_ids: Iterable[str], snapshot: SourceSnapshot) -> Dict[str, EmployeeYearSummary]:
        """Summaries for every requested employee, including ones with no data."""
        matrices = build_matrices(snapshot.signals)

        approvals_by_employee: Dict[str, Dict[str, SubmissionStatus]] = defaultdict(dict)
        for (employee_id, month_key), status in snapshot.approvals.items():
            approvals_by_employee[employee_id][month_key] = status

        activations_by_employee: Dict[str, Set[str]] = defaultdict(set)
        for employee_id, month_key in snapshot.activations:
            activations_by_employee[employee_id].add(month_key)

        summaries = {}
        for employee_id in employee_ids:
            summaries[employee_id] = self.summarize_employee(
                employee_id,
                snapshot.year,
                matrices.get(employee_id),
                snapshot.manual_logs.get(employee_id, {}),
                approvals_by_employee.get(employee_id, {}),
                activations_by_employee.get(employee_id, set()),
            )
        return summaries
