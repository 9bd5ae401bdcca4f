"""
Case File Schema

Typed data model for a student's special-education case file.

A StudentRecord is the root aggregate. Every section is replaced as a whole
when an editor saves (see `Section` and `replace_section`); nothing patches
individual fields of a stored record.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime, time
from enum import Enum
from typing import Any, List, Optional, Union

from .errors import SchemaError, UnsupportedAttachment


# =============================================================================
# ENUMERATIONS
# =============================================================================

class MessageRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class GoalType(str, Enum):
    ACADEMIC = "أكاديمي"
    LINGUISTIC = "لغوي"
    BEHAVIORAL = "سلوكي"
    MOTOR = "حركي"
    SOCIAL = "اجتماعي"
    SELF_CARE = "رعاية ذاتية"


class MasteryLevel(str, Enum):
    INITIAL = "مبدئي"
    ADVANCED = "متقدم"
    MASTERED = "متقن"


class Section(str, Enum):
    """Replaceable sections of a StudentRecord (attribute names)."""

    PERSONAL_INFO = "personal_info"
    MEDICAL_DIAGNOSIS = "medical_diagnosis"
    CASE_STUDY = "case_study"
    ASSESSMENTS = "assessments"
    SESSIONS = "sessions"
    ACHIEVED_GOALS = "achieved_goals"
    PLAN_HISTORY = "plan_history"
    CHAT_HISTORY = "chat_history"


DIAGNOSIS_OPTIONS = [
    "اضطراب طيف التوحد",
    "صعوبات التعلم",
    "بطء التعلم",
    "تأخر نمائي",
    "فرط الحركة وتشتت الانتباه (ADHD)",
    "متلازمة داون",
    "أخرى",
]

ASSESSMENT_AREAS = {
    "academic_skills": "المهارات الأكاديمية",
    "language_and_communication": "اللغة والتواصل",
    "sensory_and_cognitive_skills": "المهارات الحسية والإدراكية",
    "social_skills": "المهارات الاجتماعية",
    "behavior_and_self_regulation": "السلوك والتنظيم الذاتي",
    "motor_skills": "المهارات الحركية",
}

ATTACHMENT_MIME_TYPES = {
    "application/pdf",
    "image/png",
    "image/jpeg",
}

MIN_LEVEL = 1
MAX_LEVEL = 5
NEW_STUDENT_NAME = "طالب جديد"


# =============================================================================
# PERSONAL / MEDICAL / NARRATIVE SECTIONS
# =============================================================================

@dataclass
class PersonalInfo:
    full_name: str = ""
    student_id: str = ""
    birth_date: str = ""
    grade: str = ""
    parent_contact: str = ""
    enrollment_date: str = ""
    photo_url: Optional[str] = None


@dataclass
class Attachment:
    """
    Diagnosis report artifact picked by the user.

    Only `filename` and `mime_type` are persisted; `data` lives in memory for
    upstream summarization and is None after a reload.
    """

    filename: str
    mime_type: str
    data: Optional[bytes] = field(default=None, repr=False, compare=False)

    def __post_init__(self) -> None:
        if self.mime_type not in ATTACHMENT_MIME_TYPES:
            raise UnsupportedAttachment(
                f"Unsupported attachment type {self.mime_type!r} for {self.filename!r}",
                "يرجى رفع ملف بصيغة PDF أو PNG أو JPEG.",
            )

    def same_file(self, other: Optional["Attachment"]) -> bool:
        return other is not None and other.filename == self.filename


@dataclass
class MedicalDiagnosis:
    primary_diagnosis: str = ""
    secondary_diagnoses: str = ""
    report_file: Optional[Attachment] = None
    report_file_summary: Optional[str] = None
    diagnosis_date: str = ""
    diagnosing_entity: str = ""


@dataclass
class CaseStudy:
    medical_history: str = ""
    developmental_history: str = ""
    family_situation: str = ""
    strengths: str = ""
    challenges: str = ""
    prominent_behaviors: str = ""
    interests_and_motivators: str = ""


@dataclass
class AssessmentArea:
    """One skill area on the closed 1 (weak) to 5 (excellent) scale."""

    level: int = MIN_LEVEL
    notes: str = ""

    def __post_init__(self) -> None:
        if isinstance(self.level, bool) or not isinstance(self.level, int):
            raise SchemaError(f"Assessment level must be an integer, got {self.level!r}")
        if not MIN_LEVEL <= self.level <= MAX_LEVEL:
            raise SchemaError(
                f"Assessment level {self.level} outside [{MIN_LEVEL}, {MAX_LEVEL}]"
            )


@dataclass
class Assessments:
    academic_skills: AssessmentArea = field(default_factory=AssessmentArea)
    language_and_communication: AssessmentArea = field(default_factory=AssessmentArea)
    sensory_and_cognitive_skills: AssessmentArea = field(default_factory=AssessmentArea)
    social_skills: AssessmentArea = field(default_factory=AssessmentArea)
    behavior_and_self_regulation: AssessmentArea = field(default_factory=AssessmentArea)
    motor_skills: AssessmentArea = field(default_factory=AssessmentArea)

    def area(self, name: str) -> AssessmentArea:
        if name not in ASSESSMENT_AREAS:
            raise KeyError(f"Unknown assessment area: {name}")
        return getattr(self, name)


# =============================================================================
# HISTORY: PLANS, CHAT, SESSIONS, GOALS
# =============================================================================

@dataclass
class GeneratedPlan:
    """An AI-authored education plan the user explicitly accepted."""

    content: str
    created_at: datetime = field(default_factory=datetime.now)


@dataclass
class ChatMessage:
    role: MessageRole
    content: str


@dataclass
class SessionLog:
    """A completed session."""

    id: str
    date: date
    time: Optional[time]
    duration: int
    notes: str

    def __post_init__(self) -> None:
        if self.duration < 0:
            raise SchemaError(f"Session duration must be >= 0, got {self.duration}")

    @property
    def sort_key(self):
        return (self.date, self.time or time.min)


@dataclass
class UpcomingSession:
    """A scheduled future session."""

    id: str
    date: date
    time: time
    duration: int

    def __post_init__(self) -> None:
        if self.duration < 0:
            raise SchemaError(f"Session duration must be >= 0, got {self.duration}")

    @property
    def sort_key(self):
        return (self.date, self.time)


@dataclass
class SessionCalendar:
    """Logged and scheduled sessions, saved together by the calendar editor."""

    logs: List[SessionLog] = field(default_factory=list)
    upcoming: List[UpcomingSession] = field(default_factory=list)


@dataclass
class AchievedGoal:
    id: str
    description: str
    achieved_at: datetime
    goal_type: GoalType
    mastery_level: MasteryLevel


# =============================================================================
# ROOT AGGREGATE
# =============================================================================

@dataclass
class StudentRecord:
    """One student's complete case file."""

    id: str
    personal_info: PersonalInfo = field(default_factory=PersonalInfo)
    medical_diagnosis: MedicalDiagnosis = field(default_factory=MedicalDiagnosis)
    case_study: CaseStudy = field(default_factory=CaseStudy)
    assessments: Assessments = field(default_factory=Assessments)
    plan_history: List[GeneratedPlan] = field(default_factory=list)
    chat_history: List[ChatMessage] = field(default_factory=list)
    sessions: SessionCalendar = field(default_factory=SessionCalendar)
    achieved_goals: List[AchievedGoal] = field(default_factory=list)

    @property
    def display_name(self) -> str:
        return self.personal_info.full_name or NEW_STUDENT_NAME


SectionValue = Union[
    PersonalInfo,
    MedicalDiagnosis,
    CaseStudy,
    Assessments,
    SessionCalendar,
    List[GeneratedPlan],
    List[ChatMessage],
    List[AchievedGoal],
]


def get_section(record: StudentRecord, section: Section) -> Any:
    return getattr(record, Section(section).value)


def replace_section(record: StudentRecord, section: Section, value: SectionValue) -> StudentRecord:
    """Return a copy of `record` with one section swapped out wholesale."""
    section = Section(section)
    return replace(record, **{section.value: value})


def sort_session_logs(logs: List[SessionLog]) -> List[SessionLog]:
    """Newest first by (date, time)."""
    return sorted(logs, key=lambda log: log.sort_key, reverse=True)


def sort_upcoming_sessions(sessions: List[UpcomingSession]) -> List[UpcomingSession]:
    """Soonest first by (date, time)."""
    return sorted(sessions, key=lambda session: session.sort_key)


def sort_achieved_goals(goals: List[AchievedGoal]) -> List[AchievedGoal]:
    """Newest first by achievement timestamp."""
    return sorted(goals, key=lambda goal: goal.achieved_at, reverse=True)


def new_student_record(
    record_id: str,
    today: Optional[date] = None,
    photo_seed: Optional[str] = None,
) -> StudentRecord:
    """Create a record with the defaults a freshly added student starts from."""
    today = today or date.today()
    seed = photo_seed or record_id
    return StudentRecord(
        id=record_id,
        personal_info=PersonalInfo(
            full_name=NEW_STUDENT_NAME,
            enrollment_date=today.isoformat(),
            photo_url=f"https://picsum.photos/seed/{seed}/200",
        ),
    )


def diagnosis_choices(current: Optional[str] = None) -> List[str]:
    """Diagnosis picker options; a stored free-text value is kept as a choice."""
    choices = ["", *DIAGNOSIS_OPTIONS]
    if current and current not in choices:
        choices.append(current)
    return choices


def coerce_goal_type(value: Union[str, GoalType]) -> GoalType:
    try:
        return GoalType(value)
    except ValueError:
        raise SchemaError(f"Unknown goal type: {value!r}") from None


def coerce_mastery_level(value: Union[str, MasteryLevel]) -> MasteryLevel:
    try:
        return MasteryLevel(value)
    except ValueError:
        raise SchemaError(f"Unknown mastery level: {value!r}") from None