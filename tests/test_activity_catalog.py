"""
Mutabaah Service - Activity Catalog Tests
"""

import pytest

from app.config.activity_catalog import (
    ACTIVITIES_BY_ID,
    CATEGORY_ORDER,
    DAILY_ACTIVITIES,
    AutomationTrigger,
    VirtueCategory,
    get_activities_for_category,
    get_activity,
    get_monthly_target,
    map_activity_session_type,
    map_tadarus_request_category,
    map_team_session_type,
)


class TestCatalog:
    """The fixed activity catalog."""

    def test_twelve_activities_with_unique_ids(self):
        assert len(DAILY_ACTIVITIES) == 12
        assert len(ACTIVITIES_BY_ID) == 12

    def test_every_category_has_three_activities(self):
        for category in CATEGORY_ORDER:
            assert len(get_activities_for_category(category)) == 3

    @pytest.mark.parametrize("category,target", [
        (VirtueCategory.SIDIQ, 6),
        (VirtueCategory.TABLIGH, 41),
        (VirtueCategory.AMANAH, 41),
        (VirtueCategory.FATONAH, 25),
    ])
    def test_monthly_target_per_category(self, category, target):
        assert get_monthly_target(category) == target

    def test_category_keys(self):
        assert [c.key for c in CATEGORY_ORDER] == ["sidiq", "tabligh", "amanah", "fatonah"]

    def test_prayer_activity(self):
        activity = get_activity("shalat_berjamaah")
        assert activity.category == VirtueCategory.AMANAH
        assert activity.monthly_target == 20
        assert activity.trigger == AutomationTrigger.PRAYER_WAJIB
        assert not activity.accepts_manual_entries

    def test_manual_and_book_activities_accept_entries(self):
        assert get_activity("infaq").accepts_manual_entries
        assert get_activity("baca_alquran_buku").accepts_manual_entries
        assert not get_activity("doa_bersama").accepts_manual_entries

    def test_unknown_activity(self):
        assert get_activity("nonexistent") is None


class TestTypeNormalization:
    """Source type strings map onto catalog ids."""

    @pytest.mark.parametrize("raw,expected", [
        ("KIE", "tepat_waktu_kie"),
        ("  Doa Bersama ", "doa_bersama"),
        ("kajian selasa", "kajian_selasa"),
        ("Pengajian Persyarikatan", "persyarikatan"),
        ("Persyarikatan", "persyarikatan"),
    ])
    def test_team_session_types(self, raw, expected):
        assert map_team_session_type(raw) == expected

    @pytest.mark.parametrize("raw,expected", [
        ("BBQ", "tadarus"),
        ("Umum", "tadarus"),
        ("tadarus", "tadarus"),
        ("Membaca Al-Quran dan Buku", "baca_alquran_buku"),
        ("Kajian Selasa", "kajian_selasa"),
    ])
    def test_activity_session_types(self, raw, expected):
        assert map_activity_session_type(raw) == expected

    @pytest.mark.parametrize("raw", ["senam pagi", "", None])
    def test_unknown_types_map_to_none(self, raw):
        assert map_team_session_type(raw) is None
        assert map_activity_session_type(raw) is None

    def test_tadarus_request_category_defaults_to_tadarus(self):
        assert map_tadarus_request_category("UMUM") == "tadarus"
        assert map_tadarus_request_category("Kajian Selasa") == "kajian_selasa"
        assert map_tadarus_request_category("something else") == "tadarus"
        assert map_tadarus_request_category(None) == "tadarus"

    def test_every_mapped_id_is_in_catalog(self):
        for raw in ("kie", "doa bersama", "kajian selasa", "persyarikatan", "bbq", "baca alquran buku"):
            mapped = map_activity_session_type(raw) or map_team_session_type(raw)
            assert mapped in ACTIVITIES_BY_ID
