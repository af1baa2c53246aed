"""
Mutabaah Service - Raw Source Reader Tests

Row normalizers, manual-log encodings, and the concurrent fetch.
"""

from collections import Counter
from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from app.models.activity import (
    Activity,
    ActivityAttendance,
    EmployeeMonthlyReport,
    PrayerAttendance,
    TeamAttendanceRecord,
)
from app.models.mutabaah import SubmissionStatus
from app.services.source_readers import (
    BookEntriesEncoding,
    CompletedAtEncoding,
    CompletionSignal,
    EntriesEncoding,
    SourceReaders,
    normalize_activity_row,
    normalize_prayer_row,
    normalize_team_row,
    parse_manual_activity,
    parse_manual_report,
)
from app.utils.error_handling import SourceReadException
from tests.fixtures.mutabaah_data import activate, add_employee, add_prayer_days, add_submission

JAKARTA = ZoneInfo("Asia/Jakarta")


class TestRowNormalizers:
    """Raw rows become (employee, month, day, activity) tuples."""

    def test_prayer_timestamp_uses_report_timezone(self):
        # 18:00 UTC on 31 March is already 1 April in Jakarta
        signal = normalize_prayer_row("E1", datetime(2025, 3, 31, 18, 0, tzinfo=timezone.utc), JAKARTA)
        assert signal == CompletionSignal("E1", "2025-04", "01", "shalat_berjamaah")

    def test_prayer_naive_timestamp_is_utc(self):
        signal = normalize_prayer_row("E1", datetime(2025, 3, 10, 16, 30), JAKARTA)
        assert signal.day_key == "10"
        signal = normalize_prayer_row("E1", datetime(2025, 3, 10, 17, 30), JAKARTA)
        assert signal.day_key == "11"

    def test_prayer_iso_string_with_z(self):
        signal = normalize_prayer_row("E1", "2025-03-05T01:00:00Z", JAKARTA)
        assert (signal.month_key, signal.day_key) == ("2025-03", "05")

    def test_team_row(self):
        signal = normalize_team_row("E1", date(2025, 3, 4), "KIE")
        assert signal == CompletionSignal("E1", "2025-03", "04", "tepat_waktu_kie")

    def test_team_row_unknown_type(self):
        assert normalize_team_row("E1", date(2025, 3, 4), "Senam Pagi") is None

    def test_activity_row_from_string_date(self):
        signal = normalize_activity_row("E1", "2025-03-11", "BBQ")
        assert signal == CompletionSignal("E1", "2025-03", "11", "tadarus")


class TestManualEncodings:
    """Manual logs resolve to one encoding per shape present."""

    def test_entries_encoding(self):
        log = parse_manual_activity("E1", "2025-03", "infaq", {
            "count": 2,
            "entries": [{"date": "2025-03-02"}, {"date": "2025-03-09"}],
        })
        assert log.count == 2
        assert log.encodings == (EntriesEncoding(("2025-03-02", "2025-03-09")),)
        assert [s.day_key for s in log.signals(JAKARTA)] == ["02", "09"]

    def test_book_entries_encoding(self):
        log = parse_manual_activity("E1", "2025-03", "baca_alquran_buku", {
            "count": 1,
            "bookEntries": [{"dateCompleted": "2025-03-20", "bookTitle": "Riyadhus Shalihin"}],
        })
        assert log.encodings == (BookEntriesEncoding(("2025-03-20",)),)
        assert log.signals(JAKARTA)[0].day_key == "20"

    def test_entries_and_book_entries_both_used(self):
        log = parse_manual_activity("E1", "2025-03", "baca_alquran_buku", {
            "entries": [{"date": "2025-03-01"}],
            "bookEntries": [{"dateCompleted": "2025-03-02"}],
            "completedAt": "2025-03-03T05:00:00Z",
        })
        assert sorted(s.day_key for s in log.signals(JAKARTA)) == ["01", "02"]

    def test_completed_at_only_without_lists(self):
        log = parse_manual_activity("E1", "2025-03", "jujur", {
            "count": 3,
            "completedAt": "2025-03-14T20:00:00Z",
        })
        assert log.encodings == (CompletedAtEncoding("2025-03-14T20:00:00Z"),)
        # 20:00 UTC is the next morning in Jakarta
        assert [s.day_key for s in log.signals(JAKARTA)] == ["15"]

    def test_malformed_entries_are_ignored(self):
        log = parse_manual_activity("E1", "2025-03", "infaq", {
            "count": "x",
            "entries": [{"date": "bad"}, "nope", {"other": 1}],
        })
        assert log.count == 0
        assert log.signals(JAKARTA) == []

    def test_report_filtered_by_year_keeps_empty_months(self):
        parsed = parse_manual_report("E1", {
            "2024-12": {"infaq": {"count": 1}},
            "2025-01": {},
            "2025-02": {"infaq": {"count": 1}},
        }, 2025)
        assert sorted(parsed) == ["2025-01", "2025-02"]
        assert parsed["2025-01"] == {}

    def test_malformed_months_are_dropped_and_counted(self):
        dropped = Counter()
        parsed = parse_manual_report("E1", {
            "2025-03": ["garbage"],
            "2025-04": "x",
            "2025-05": {"infaq": {"count": 2}},
        }, 2025, dropped)
        assert list(parsed) == ["2025-05"]
        assert parsed["2025-05"]["infaq"].count == 2
        assert dropped == Counter({"manual:2025-03": 1, "manual:2025-04": 1})

    def test_document_that_is_not_an_object_parses_empty(self):
        assert parse_manual_report("E1", ["2025-03"], 2025) == {}


class TestSourceReaders:
    """Readers against a real database."""

    @pytest.mark.asyncio
    async def test_fetch_all_reads_every_source(self, db_session, session_factory):
        await add_employee(db_session, "E1", "Employee One")
        await add_prayer_days(db_session, "E1", 2025, 3, [1, 2])
        db_session.add(TeamAttendanceRecord(
            employee_id="E1", session_type="Doa Bersama", session_date=date(2025, 3, 3),
        ))
        db_session.add(TeamAttendanceRecord(
            employee_id="E1", session_type="Senam Pagi", session_date=date(2025, 3, 3),
        ))
        activity = Activity(name="BBQ Maret", activity_type="BBQ", activity_date=date(2025, 3, 4))
        db_session.add(activity)
        await db_session.flush()
        db_session.add(ActivityAttendance(activity_id=activity.id, employee_id="E1", status="hadir"))
        db_session.add(EmployeeMonthlyReport(employee_id="E1", reports={
            "2025-03": {"infaq": {"count": 1, "entries": [{"date": "2025-03-05"}]}},
        }))
        await db_session.commit()
        await activate(db_session, "E1", "2025-03")

        snapshot = await SourceReaders(session_factory, "Asia/Jakarta").fetch_all(["E1"], 2025)

        activities = sorted((s.day_key, s.activity_id) for s in snapshot.signals)
        assert activities == [
            ("01", "shalat_berjamaah"),
            ("02", "shalat_berjamaah"),
            ("03", "doa_bersama"),
            ("04", "tadarus"),
            ("05", "infaq"),
        ]
        assert snapshot.dropped == Counter({"team:senam pagi": 1})
        assert snapshot.activations == {("E1", "2025-03")}
        assert snapshot.manual_logs["E1"]["2025-03"]["infaq"].count == 1

    @pytest.mark.asyncio
    async def test_rows_outside_year_and_absent_are_excluded(self, db_session, session_factory):
        await add_employee(db_session, "E1", "Employee One")
        await add_prayer_days(db_session, "E1", 2024, 12, [15])
        db_session.add(PrayerAttendance(
            employee_id="E1",
            entity_id="subuh-2025-03-01",
            status="tidak hadir",
            timestamp=datetime(2025, 3, 1, 0, 0, tzinfo=timezone.utc),
        ))
        await db_session.commit()

        snapshot = await SourceReaders(session_factory).fetch_all(["E1"], 2025)

        assert snapshot.signals == []

    @pytest.mark.asyncio
    async def test_submission_statuses_scoped_to_year(self, db_session, session_factory):
        employee = await add_employee(db_session, "E1", "Employee One", mentor_id="M1")
        await add_submission(db_session, employee, "2025-03", SubmissionStatus.APPROVED)
        await add_submission(db_session, employee, "2024-03", SubmissionStatus.APPROVED)

        snapshot = await SourceReaders(session_factory).fetch_all(["E1"], 2025)

        assert snapshot.approvals == {("E1", "2025-03"): SubmissionStatus.APPROVED}
        assert snapshot.approved_count == 1

    @pytest.mark.asyncio
    async def test_malformed_manual_month_does_not_fail_the_fetch(self, db_session, session_factory):
        await add_employee(db_session, "E1", "Employee One")
        db_session.add(EmployeeMonthlyReport(employee_id="E1", reports={
            "2025-03": "x",
            "2025-04": {"jujur": {"count": 1, "entries": [{"date": "2025-04-02"}]}},
        }))
        await db_session.commit()

        snapshot = await SourceReaders(session_factory).fetch_all(["E1"], 2025)

        assert snapshot.dropped == Counter({"manual:2025-03": 1})
        assert list(snapshot.manual_logs["E1"]) == ["2025-04"]
        assert [(s.month_key, s.day_key) for s in snapshot.signals] == [("2025-04", "02")]

    @pytest.mark.asyncio
    async def test_empty_employee_list_reads_nothing(self, session_factory):
        snapshot = await SourceReaders(session_factory).fetch_all([], 2025)
        assert snapshot.signals == []
        assert snapshot.approvals == {}

    @pytest.mark.asyncio
    async def test_failing_source_fails_the_fetch(self, tmp_path):
        """A database without the source tables fails the read, not just one source."""
        engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'empty.db'}")
        try:
            readers = SourceReaders(async_sessionmaker(engine, expire_on_commit=False))
            with pytest.raises(SourceReadException) as exc_info:
                await readers.fetch_all(["E1"], 2025)
        finally:
            await engine.dispose()

        assert exc_info.value.status_code == 503
        assert exc_info.value.code.value == "SOURCE_READ_ERROR"
        assert isinstance(exc_info.value.original_error, OperationalError)
