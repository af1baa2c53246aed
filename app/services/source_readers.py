"""
Mutabaah Service - Raw Source Readers

Query adapters for the five activity sources plus the activation lookup.
Every reader is scoped to a set of employees and one calendar year, and
normalizes its rows into CompletionSignal tuples
``(employee_id, month_key, day_key, activity_id)``.

Rows whose type string is not in the normalization tables are dropped,
counted, and logged. They never fail a read. A database error in any
reader fails the whole fetch with SourceReadException.
"""

import asyncio
import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Dict, Iterable, List, NamedTuple, Optional, Set, Tuple, Union
from zoneinfo import ZoneInfo

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from app.config import settings
from app.config.activity_catalog import (
    PRAYER_ACTIVITY_ID,
    map_activity_session_type,
    map_team_session_type,
)
from app.models.activity import (
    ATTENDED_STATUS,
    Activity,
    ActivityAttendance,
    EmployeeMonthlyReport,
    PrayerAttendance,
    TeamAttendanceRecord,
)
from app.models.mutabaah import MonthlySubmission, MutabaahActivation, SubmissionStatus
from app.utils.error_handling import SourceReadException

logger = logging.getLogger(__name__)


class CompletionSignal(NamedTuple):
    """One activity completed by one employee on one day."""
    employee_id: str
    month_key: str
    day_key: str
    activity_id: str


def month_key_for(value: date) -> str:
    return f"{value.year:04d}-{value.month:02d}"


def day_key_for(value: date) -> str:
    return f"{value.day:02d}"


def to_report_date(value: datetime, tz: ZoneInfo) -> date:
    """
    Calendar date of a timestamp in the report timezone.
    Naive timestamps are taken as UTC.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(tz).date()


def parse_timestamp(value: Union[str, datetime]) -> datetime:
    if isinstance(value, datetime):
        return value
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


def _as_date(value: Union[str, date]) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(value[:10])


# =============================================================================
# ROW NORMALIZERS
# =============================================================================

def normalize_prayer_row(employee_id: str, timestamp: Union[str, datetime], tz: ZoneInfo) -> CompletionSignal:
    local_date = to_report_date(parse_timestamp(timestamp), tz)
    return CompletionSignal(employee_id, month_key_for(local_date), day_key_for(local_date), PRAYER_ACTIVITY_ID)


def normalize_team_row(
    employee_id: str,
    session_date: Union[str, date],
    session_type: Optional[str],
) -> Optional[CompletionSignal]:
    """Map a team-session attendance row, or None when the type is unknown."""
    activity_id = map_team_session_type(session_type)
    if activity_id is None:
        return None
    day = _as_date(session_date)
    return CompletionSignal(employee_id, month_key_for(day), day_key_for(day), activity_id)


def normalize_activity_row(
    employee_id: str,
    activity_date: Union[str, date],
    activity_type: Optional[str],
) -> Optional[CompletionSignal]:
    """Map a scheduled-activity attendance row, or None when the type is unknown."""
    activity_id = map_activity_session_type(activity_type)
    if activity_id is None:
        return None
    day = _as_date(activity_date)
    return CompletionSignal(employee_id, month_key_for(day), day_key_for(day), activity_id)


# =============================================================================
# MANUAL LOG ENCODINGS
# A manual activity entry is stored in one of three shapes. Each is parsed
# once into its own variant; each variant knows how to produce day keys.
# =============================================================================

def _day_from_date_string(value: Any) -> Optional[str]:
    if not isinstance(value, str) or len(value) < 10:
        return None
    day = value[8:10]
    return day if day.isdigit() else None


@dataclass(frozen=True)
class EntriesEncoding:
    """``entries: [{date: 'YYYY-MM-DD', ...}]``"""
    dates: Tuple[str, ...]

    def day_keys(self, tz: ZoneInfo) -> List[str]:
        return [d for d in (_day_from_date_string(v) for v in self.dates) if d]


@dataclass(frozen=True)
class BookEntriesEncoding:
    """``bookEntries: [{dateCompleted: 'YYYY-MM-DD', bookTitle, ...}]``"""
    dates_completed: Tuple[str, ...]

    def day_keys(self, tz: ZoneInfo) -> List[str]:
        return [d for d in (_day_from_date_string(v) for v in self.dates_completed) if d]


@dataclass(frozen=True)
class CompletedAtEncoding:
    """Legacy single ``completedAt`` timestamp."""
    completed_at: str

    def day_keys(self, tz: ZoneInfo) -> List[str]:
        try:
            local_date = to_report_date(parse_timestamp(self.completed_at), tz)
        except (TypeError, ValueError):
            return []
        return [day_key_for(local_date)]


ManualEncoding = Union[EntriesEncoding, BookEntriesEncoding, CompletedAtEncoding]


@dataclass(frozen=True)
class ManualActivityLog:
    """One activity's manual log for one month."""
    employee_id: str
    month_key: str
    activity_id: str
    count: int
    encodings: Tuple[ManualEncoding, ...]

    def signals(self, tz: ZoneInfo) -> List[CompletionSignal]:
        return [
            CompletionSignal(self.employee_id, self.month_key, day, self.activity_id)
            for encoding in self.encodings
            for day in encoding.day_keys(tz)
        ]


def parse_manual_activity(employee_id: str, month_key: str, activity_id: str, raw: Any) -> ManualActivityLog:
    """
    Resolve the encodings present in a raw manual-log entry.

    ``entries`` and ``bookEntries`` may both be present. ``completedAt`` is
    only used when neither list is.
    """
    if not isinstance(raw, dict):
        raw = {}

    encodings: List[ManualEncoding] = []
    entries = raw.get("entries")
    book_entries = raw.get("bookEntries")

    if isinstance(entries, list):
        encodings.append(EntriesEncoding(tuple(
            e.get("date") for e in entries if isinstance(e, dict) and e.get("date")
        )))
    if isinstance(book_entries, list):
        encodings.append(BookEntriesEncoding(tuple(
            e.get("dateCompleted") for e in book_entries if isinstance(e, dict) and e.get("dateCompleted")
        )))
    if entries is None and book_entries is None and raw.get("completedAt"):
        encodings.append(CompletedAtEncoding(str(raw["completedAt"])))

    try:
        count = int(raw.get("count") or 0)
    except (TypeError, ValueError):
        count = 0

    return ManualActivityLog(employee_id, month_key, activity_id, count, tuple(encodings))


def parse_manual_report(
    employee_id: str,
    reports: Optional[Dict[str, Any]],
    year: Optional[int] = None,
    dropped: Optional[Counter] = None,
) -> Dict[str, Dict[str, ManualActivityLog]]:
    """
    Parse a manual report document into ``{month_key: {activity_id: log}}``.

    A month key present in the document is kept even when it holds no
    activities, since it still marks the month as observed. Months that
    are not an object keyed by activity are skipped and, when ``dropped``
    is given, counted there as ``manual:<month_key>``.
    """
    parsed: Dict[str, Dict[str, ManualActivityLog]] = {}
    if not isinstance(reports, dict):
        return parsed
    prefix = f"{year:04d}-" if year is not None else ""
    for month_key, month_data in reports.items():
        if not isinstance(month_key, str) or not month_key.startswith(prefix):
            continue
        if month_data is None:
            month_data = {}
        if not isinstance(month_data, dict):
            if dropped is not None:
                dropped[f"manual:{month_key}"] += 1
            continue
        parsed[month_key] = {
            str(activity_id): parse_manual_activity(employee_id, month_key, str(activity_id), raw)
            for activity_id, raw in month_data.items()
        }
    return parsed


# =============================================================================
# FETCH RESULT
# =============================================================================

ManualReportCache = Dict[str, Dict[str, Dict[str, ManualActivityLog]]]


@dataclass
class SourceSnapshot:
    """Everything the aggregation engine needs for one set of employees and one year."""
    year: int
    signals: List[CompletionSignal] = field(default_factory=list)
    manual_logs: ManualReportCache = field(default_factory=dict)
    approvals: Dict[Tuple[str, str], SubmissionStatus] = field(default_factory=dict)
    activations: Set[Tuple[str, str]] = field(default_factory=set)
    dropped: Counter = field(default_factory=Counter)

    @property
    def approved_count(self) -> int:
        return sum(1 for s in self.approvals.values() if s == SubmissionStatus.APPROVED)


# =============================================================================
# READERS
# =============================================================================

class SourceReaders:
    """
    Reads the raw activity sources.

    Each read opens its own session from the factory so the reads can run
    concurrently under ``fetch_all``.
    """

    def __init__(self, session_factory: async_sessionmaker, report_timezone: Optional[str] = None):
        self.session_factory = session_factory
        self.tz = ZoneInfo(report_timezone or settings.report_timezone)

    def _year_bounds_utc(self, year: int) -> Tuple[datetime, datetime]:
        start = datetime(year, 1, 1, tzinfo=self.tz).astimezone(timezone.utc)
        end = datetime(year + 1, 1, 1, tzinfo=self.tz).astimezone(timezone.utc)
        return start, end

    async def _execute(self, source: str, stmt):
        try:
            async with self.session_factory() as session:
                result = await session.execute(stmt)
                return result.all()
        except SQLAlchemyError as e:
            logger.error(f"Source read failed for {source}: {e}")
            raise SourceReadException(source, original_error=e) from e

    @staticmethod
    def _log_dropped(source: str, dropped: Counter) -> None:
        if dropped:
            summary = ", ".join(f"{t!r}={n}" for t, n in dropped.most_common())
            logger.warning(f"Dropped {sum(dropped.values())} {source} rows with unrecognized type: {summary}")

    async def read_prayer_attendance(self, employee_ids: List[str], year: int) -> List[CompletionSignal]:
        start, end = self._year_bounds_utc(year)
        rows = await self._execute("prayer_attendance", select(
            PrayerAttendance.employee_id, PrayerAttendance.timestamp,
        ).where(
            PrayerAttendance.employee_id.in_(employee_ids),
            PrayerAttendance.status == ATTENDED_STATUS,
            PrayerAttendance.timestamp >= start,
            PrayerAttendance.timestamp < end,
        ))
        return [normalize_prayer_row(employee_id, ts, self.tz) for employee_id, ts in rows]

    async def read_team_attendance(
        self, employee_ids: List[str], year: int
    ) -> Tuple[List[CompletionSignal], Counter]:
        rows = await self._execute("team_attendance", select(
            TeamAttendanceRecord.employee_id,
            TeamAttendanceRecord.session_date,
            TeamAttendanceRecord.session_type,
        ).where(
            TeamAttendanceRecord.employee_id.in_(employee_ids),
            TeamAttendanceRecord.session_date >= date(year, 1, 1),
            TeamAttendanceRecord.session_date <= date(year, 12, 31),
        ))
        signals, dropped = [], Counter()
        for employee_id, session_date, session_type in rows:
            signal = normalize_team_row(employee_id, session_date, session_type)
            if signal is None:
                dropped[(session_type or "").strip().lower()] += 1
            else:
                signals.append(signal)
        self._log_dropped("team_attendance", dropped)
        return signals, dropped

    async def read_activity_attendance(
        self, employee_ids: List[str], year: int
    ) -> Tuple[List[CompletionSignal], Counter]:
        rows = await self._execute("activity_attendance", select(
            ActivityAttendance.employee_id,
            Activity.activity_date,
            Activity.activity_type,
        ).join(
            Activity, ActivityAttendance.activity_id == Activity.id,
        ).where(
            ActivityAttendance.employee_id.in_(employee_ids),
            ActivityAttendance.status == ATTENDED_STATUS,
            Activity.activity_date >= date(year, 1, 1),
            Activity.activity_date <= date(year, 12, 31),
        ))
        signals, dropped = [], Counter()
        for employee_id, activity_date, activity_type in rows:
            signal = normalize_activity_row(employee_id, activity_date, activity_type)
            if signal is None:
                dropped[(activity_type or "").strip().lower()] += 1
            else:
                signals.append(signal)
        self._log_dropped("activity_attendance", dropped)
        return signals, dropped

    async def read_manual_reports(
        self, employee_ids: List[str], year: int
    ) -> Tuple[ManualReportCache, Counter]:
        rows = await self._execute("manual_reports", select(
            EmployeeMonthlyReport.employee_id, EmployeeMonthlyReport.reports,
        ).where(EmployeeMonthlyReport.employee_id.in_(employee_ids)))
        cache, dropped = {}, Counter()
        for employee_id, reports in rows:
            cache[employee_id] = parse_manual_report(employee_id, reports, year, dropped)
        self._log_dropped("manual_reports", dropped)
        return cache, dropped

    async def read_submission_statuses(
        self, employee_ids: List[str], year: int
    ) -> Dict[Tuple[str, str], SubmissionStatus]:
        rows = await self._execute("submissions", select(
            MonthlySubmission.employee_id, MonthlySubmission.month_key, MonthlySubmission.status,
        ).where(
            MonthlySubmission.employee_id.in_(employee_ids),
            MonthlySubmission.month_key.like(f"{year:04d}-%"),
        ))
        return {(employee_id, month_key): status for employee_id, month_key, status in rows}

    async def read_activations(self, employee_ids: List[str], year: int) -> Set[Tuple[str, str]]:
        rows = await self._execute("activations", select(
            MutabaahActivation.employee_id, MutabaahActivation.month_key,
        ).where(
            MutabaahActivation.employee_id.in_(employee_ids),
            MutabaahActivation.month_key.like(f"{year:04d}-%"),
        ))
        return {(employee_id, month_key) for employee_id, month_key in rows}

    async def fetch_all(self, employee_ids: Iterable[str], year: int) -> SourceSnapshot:
        """
        Read every source for the employees and year concurrently.
        Any failing read fails the whole fetch.
        """
        ids = list(employee_ids)
        snapshot = SourceSnapshot(year=year)
        if not ids:
            return snapshot

        results = await asyncio.gather(
            self.read_prayer_attendance(ids, year),
            self.read_team_attendance(ids, year),
            self.read_activity_attendance(ids, year),
            self.read_manual_reports(ids, year),
            self.read_submission_statuses(ids, year),
            self.read_activations(ids, year),
            return_exceptions=True,
        )
        # Every read has finished; the first failure fails the fetch
        for result in results:
            if isinstance(result, BaseException):
                raise result
        (
            prayer,
            (team, team_dropped),
            (activity, activity_dropped),
            (manual_logs, manual_dropped),
            approvals,
            activations,
        ) = results

        snapshot.signals.extend(prayer)
        snapshot.signals.extend(team)
        snapshot.signals.extend(activity)
        for months in manual_logs.values():
            for logs in months.values():
                for log in logs.values():
                    snapshot.signals.extend(log.signals(self.tz))
        snapshot.manual_logs = manual_logs
        snapshot.approvals = approvals
        snapshot.activations = activations
        snapshot.dropped.update({f"team:{k}": v for k, v in team_dropped.items()})
        snapshot.dropped.update({f"activity:{k}": v for k, v in activity_dropped.items()})
        snapshot.dropped.update(manual_dropped)
        return snapshot
