"""
Mutabaah Service - Activity Catalog

Central configuration for the trackable daily activities.
Every activity belongs to exactly one virtue category and carries one
monthly target. The normalization tables map the free-text type strings
recorded by attendance sources onto catalog activity ids.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple


# =============================================================================
# ENUMS
# =============================================================================

class VirtueCategory(str, Enum):
    """The four virtue categories that partition all activities."""
    SIDIQ = "SIDIQ (Integritas)"
    TABLIGH = "TABLIGH (Teamwork)"
    AMANAH = "AMANAH (Disiplin)"
    FATONAH = "FATONAH (Belajar)"

    @property
    def key(self) -> str:
        """Short lowercase key used in report payloads (``sidiq``, ...)."""
        return self.name.lower()


class AutomationTrigger(str, Enum):
    """Which raw source feeds an activity."""
    PRAYER_WAJIB = "PRAYER_WAJIB"
    TEAM_ATTENDANCE = "TEAM_ATTENDANCE"
    TADARUS_SESSION = "TADARUS_SESSION"
    MANUAL_USER_REPORT = "MANUAL_USER_REPORT"
    BOOK_READING_REPORT = "BOOK_READING_REPORT"


# Report column order
CATEGORY_ORDER: Tuple[VirtueCategory, ...] = (
    VirtueCategory.SIDIQ,
    VirtueCategory.TABLIGH,
    VirtueCategory.AMANAH,
    VirtueCategory.FATONAH,
)


# =============================================================================
# ACTIVITY DEFINITIONS
# =============================================================================

@dataclass(frozen=True)
class ActivityDefinition:
    """A trackable daily activity."""
    id: str
    category: VirtueCategory
    title: str
    monthly_target: int
    trigger: AutomationTrigger
    trigger_value: Optional[str] = None

    @property
    def accepts_manual_entries(self) -> bool:
        return self.trigger in (
            AutomationTrigger.MANUAL_USER_REPORT,
            AutomationTrigger.BOOK_READING_REPORT,
        )


DAILY_ACTIVITIES: Tuple[ActivityDefinition, ...] = (
    # SIDIQ (Integritas)
    ActivityDefinition("infaq", VirtueCategory.SIDIQ, "Gemar berinfaq", 1,
                       AutomationTrigger.MANUAL_USER_REPORT),
    ActivityDefinition("jujur", VirtueCategory.SIDIQ, "Jujur menyampaikan informasi", 4,
                       AutomationTrigger.MANUAL_USER_REPORT),
    ActivityDefinition("tanggung_jawab", VirtueCategory.SIDIQ, "Tanggung jawab terhadap pekerjaan", 1,
                       AutomationTrigger.MANUAL_USER_REPORT),

    # TABLIGH (Teamwork)
    ActivityDefinition("persyarikatan", VirtueCategory.TABLIGH, "Aktif dalam kegiatan persyarikatan", 1,
                       AutomationTrigger.MANUAL_USER_REPORT),
    ActivityDefinition("doa_bersama", VirtueCategory.TABLIGH, "Doa bersama mengawali pekerjaan", 20,
                       AutomationTrigger.TEAM_ATTENDANCE, "Doa Bersama"),
    ActivityDefinition("lima_s", VirtueCategory.TABLIGH, "5S (Salam, Senyum, Sapa, Sopan, Santun)", 20,
                       AutomationTrigger.MANUAL_USER_REPORT),

    # AMANAH (Disiplin)
    ActivityDefinition("shalat_berjamaah", VirtueCategory.AMANAH, "Sholat lima waktu berjamaah", 20,
                       AutomationTrigger.PRAYER_WAJIB),
    ActivityDefinition("penampilan_diri", VirtueCategory.AMANAH, "Menjaga penampilan diri", 20,
                       AutomationTrigger.MANUAL_USER_REPORT),
    ActivityDefinition("tepat_waktu_kie", VirtueCategory.AMANAH, "Tepat waktu menghadiri KIE", 1,
                       AutomationTrigger.TEAM_ATTENDANCE, "KIE"),

    # FATONAH (Belajar)
    ActivityDefinition("tadarus", VirtueCategory.FATONAH, "RSIJ bertadarus (berkelompok)", 3,
                       AutomationTrigger.TADARUS_SESSION),
    ActivityDefinition("kajian_selasa", VirtueCategory.FATONAH, "Kajian Selasa", 2,
                       AutomationTrigger.MANUAL_USER_REPORT),
    ActivityDefinition("baca_alquran_buku", VirtueCategory.FATONAH, "Membaca Al-Quran dan buku", 20,
                       AutomationTrigger.BOOK_READING_REPORT),
)

ACTIVITIES_BY_ID: Dict[str, ActivityDefinition] = {a.id: a for a in DAILY_ACTIVITIES}


# =============================================================================
# SOURCE TYPE NORMALIZATION
# Keys are lowercased, trimmed type strings.
# =============================================================================

PRAYER_ACTIVITY_ID = "shalat_berjamaah"

TEAM_SESSION_TYPE_MAP: Dict[str, str] = {
    "kie": "tepat_waktu_kie",
    "doa bersama": "doa_bersama",
    "kajian selasa": "kajian_selasa",
    "pengajian persyarikatan": "persyarikatan",
    "persyarikatan": "persyarikatan",
}

ACTIVITY_SESSION_TYPE_MAP: Dict[str, str] = {
    "kajian selasa": "kajian_selasa",
    "pengajian persyarikatan": "persyarikatan",
    "persyarikatan": "persyarikatan",
    "kie": "tepat_waktu_kie",
    "doa bersama": "doa_bersama",
    "bbq": "tadarus",
    "umum": "tadarus",
    "tadarus": "tadarus",
    "membaca al-quran dan buku": "baca_alquran_buku",
    "baca alquran buku": "baca_alquran_buku",
}

# Manual tadarus/study-session requests fall back to tadarus
TADARUS_REQUEST_CATEGORY_MAP: Dict[str, str] = {
    "bbq": "tadarus",
    "umum": "tadarus",
    "kie": "tepat_waktu_kie",
    "doa bersama": "doa_bersama",
    "kajian selasa": "kajian_selasa",
    "pengajian persyarikatan": "persyarikatan",
    "membaca al-quran dan buku": "baca_alquran_buku",
}
TADARUS_REQUEST_DEFAULT_ACTIVITY = "tadarus"


def _type_key(value: Optional[str]) -> str:
    return (value or "").strip().lower()


def map_team_session_type(session_type: Optional[str]) -> Optional[str]:
    """Map a team-session type string to an activity id, or None if unknown."""
    return TEAM_SESSION_TYPE_MAP.get(_type_key(session_type))


def map_activity_session_type(activity_type: Optional[str]) -> Optional[str]:
    """Map an activity-session type string to an activity id, or None if unknown."""
    return ACTIVITY_SESSION_TYPE_MAP.get(_type_key(activity_type))


def map_tadarus_request_category(category: Optional[str]) -> str:
    return TADARUS_REQUEST_CATEGORY_MAP.get(_type_key(category), TADARUS_REQUEST_DEFAULT_ACTIVITY)


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def get_activity(activity_id: str) -> Optional[ActivityDefinition]:
    """Get an activity definition by id."""
    return ACTIVITIES_BY_ID.get(activity_id)


def get_activities_for_category(category: VirtueCategory) -> List[ActivityDefinition]:
    """Get all activities belonging to a category, in catalog order."""
    return [a for a in DAILY_ACTIVITIES if a.category == category]


def get_monthly_target(category: VirtueCategory) -> int:
    """Sum of monthly targets of every activity in a category."""
    return sum(a.monthly_target for a in get_activities_for_category(category))
