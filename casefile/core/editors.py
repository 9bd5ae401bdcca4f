"""
Section editors.

Each editor clones one section of a stored record into a draft, reports
whether the draft differs from its source, and on save replaces the whole
section in the store. Receiving a new source (because the record changed
elsewhere) drops the draft: unsaved edits do not survive an outside update.
"""

from __future__ import annotations

import time as _time
from copy import deepcopy
from dataclasses import fields, replace
from datetime import date, datetime, time
from typing import Any, Iterable, Optional, Set, Union

from .errors import SchemaError, ValidationError
from .record_store import RecordStore
from .schema import (
    ASSESSMENT_AREAS,
    AchievedGoal,
    Attachment,
    GoalType,
    MasteryLevel,
    Section,
    SessionLog,
    StudentRecord,
    UpcomingSession,
    coerce_goal_type,
    coerce_mastery_level,
    get_section,
    sort_achieved_goals,
    sort_session_logs,
    sort_upcoming_sessions,
)

DateLike = Union[date, str]
TimeLike = Union[time, str, None]

DEFAULT_SESSION_MINUTES = 45


def _new_entry_id(prefix: str, taken: Iterable[str]) -> str:
    taken = set(taken)
    base = f"{prefix}-{int(_time.time() * 1000)}"
    candidate, n = base, 1
    while candidate in taken:
        n += 1
        candidate = f"{base}-{n}"
    return candidate


def _as_date(value: DateLike) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid date: {value!r}", "يرجى إدخال تاريخ صحيح.") from None


def _as_time(value: TimeLike) -> Optional[time]:
    if value is None or isinstance(value, time):
        return value
    if not value:
        return None
    try:
        return datetime.strptime(value[:5], "%H:%M").time()
    except ValueError:
        raise ValidationError(f"Invalid time: {value!r}", "يرجى إدخال وقت صحيح.") from None


def _as_duration(value: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValidationError(f"Invalid duration: {value!r}", "يجب أن تكون المدة عددًا موجبًا من الدقائق.")
    return value


# =============================================================================
# BASE
# =============================================================================

class SectionEditor:
    """Draft/dirty/save/cancel over one section of one record."""

    section: Section

    def __init__(self, store: RecordStore, record_id: str):
        self.store = store
        self.record_id = record_id
        self.receive(get_section(store.require(record_id), self.section))

    def receive(self, source: Any) -> None:
        """Take a new source section, discarding any unsaved draft."""
        self.source = deepcopy(source)
        self.draft = deepcopy(source)

    def sync(self) -> bool:
        """Re-read the section from the store; returns True if the draft was reset."""
        current = get_section(self.store.require(self.record_id), self.section)
        if self._same(current, self.source):
            return False
        self.receive(current)
        return True

    def _same(self, a: Any, b: Any) -> bool:
        return a == b

    @property
    def is_dirty(self) -> bool:
        return not self._same(self.draft, self.source)

    def save(self) -> Optional[StudentRecord]:
        """Replace the section in the store. No-op when nothing changed."""
        if not self.is_dirty:
            return None
        record = self.store.update_section(self.record_id, self.section, deepcopy(self.draft))
        self.receive(get_section(record, self.section))
        return record

    def cancel(self) -> None:
        self.draft = deepcopy(self.source)


class FieldEditor(SectionEditor):
    """Editor for a flat section of text fields."""

    readonly_fields: Set[str] = set()

    def set(self, name: str, value: Any) -> None:
        names = {f.name for f in fields(self.draft)} - self.readonly_fields
        if name not in names:
            raise KeyError(f"{type(self.draft).__name__} has no editable field {name!r}")
        self.draft = replace(self.draft, **{name: value})


# =============================================================================
# SECTION EDITORS
# =============================================================================

class PersonalInfoEditor(FieldEditor):
    section = Section.PERSONAL_INFO


class CaseStudyEditor(FieldEditor):
    section = Section.CASE_STUDY


class DiagnosisEditor(FieldEditor):
    """
    The attached report is compared by name and presence only, separately
    from the text fields.
    """

    section = Section.MEDICAL_DIAGNOSIS
    readonly_fields = {"report_file", "report_file_summary"}

    @property
    def file_changed(self) -> bool:
        current, original = self.draft.report_file, self.source.report_file
        if current is None or original is None:
            return (current is None) != (original is None)
        return current.filename != original.filename

    @property
    def fields_changed(self) -> bool:
        strip = dict(report_file=None)
        return replace(self.draft, **strip) != replace(self.source, **strip)

    @property
    def is_dirty(self) -> bool:
        return self.file_changed or self.fields_changed

    def attach_file(self, attachment: Attachment) -> None:
        """A new file invalidates the previous summary."""
        self.draft = replace(self.draft, report_file=attachment, report_file_summary=None)

    def remove_file(self) -> None:
        self.draft = replace(
            self.draft,
            report_file=None,
            report_file_summary=self.source.report_file_summary,
        )


class AssessmentEditor(SectionEditor):
    section = Section.ASSESSMENTS

    def _set_area(self, area: str, **changes: Any) -> None:
        if area not in ASSESSMENT_AREAS:
            raise KeyError(f"Unknown assessment area: {area}")
        current = getattr(self.draft, area)
        try:
            updated = replace(current, **changes)
        except SchemaError as exc:
            raise ValidationError(str(exc), "يجب أن يكون المستوى بين 1 و 5.") from exc
        self.draft = replace(self.draft, **{area: updated})

    def set_level(self, area: str, level: int) -> None:
        self._set_area(area, level=level)

    def set_notes(self, area: str, notes: str) -> None:
        self._set_area(area, notes=notes)

    def level(self, area: str) -> int:
        return self.draft.area(area).level


class SessionCalendarEditor(SectionEditor):
    """
    Logged sessions stay newest first and upcoming sessions soonest first
    after every add or delete. Order is part of the comparison.
    """

    section = Section.SESSIONS

    def _taken_ids(self) -> Set[str]:
        return {e.id for e in self.draft.logs} | {e.id for e in self.draft.upcoming}

    def add_log(
        self,
        session_date: DateLike,
        session_time: TimeLike,
        notes: str,
        duration: int = DEFAULT_SESSION_MINUTES,
    ) -> SessionLog:
        if not notes or not notes.strip():
            raise ValidationError("Session notes are required", "يرجى كتابة ملخص الجلسة.")
        parsed_time = _as_time(session_time)
        if parsed_time is None:
            raise ValidationError("Session time is required", "يرجى إدخال وقت البدء.")
        log = SessionLog(
            id=_new_entry_id("log", self._taken_ids()),
            date=_as_date(session_date),
            time=parsed_time,
            duration=_as_duration(duration),
            notes=notes,
        )
        self.draft = replace(self.draft, logs=sort_session_logs([log, *self.draft.logs]))
        return log

    def delete_log(self, log_id: str) -> None:
        self.draft = replace(self.draft, logs=[entry for entry in self.draft.logs if entry.id != log_id])

    def add_upcoming(
        self,
        session_date: DateLike,
        session_time: TimeLike,
        duration: int = DEFAULT_SESSION_MINUTES,
    ) -> UpcomingSession:
        parsed_time = _as_time(session_time)
        if parsed_time is None:
            raise ValidationError("Session time is required", "يرجى تحديد وقت الموعد.")
        session = UpcomingSession(
            id=_new_entry_id("session", self._taken_ids()),
            date=_as_date(session_date),
            time=parsed_time,
            duration=_as_duration(duration),
        )
        self.draft = replace(
            self.draft,
            upcoming=sort_upcoming_sessions([*self.draft.upcoming, session]),
        )
        return session

    def delete_upcoming(self, session_id: str) -> None:
        self.draft = replace(
            self.draft,
            upcoming=[s for s in self.draft.upcoming if s.id != session_id],
        )


class AchievedGoalsEditor(SectionEditor):
    """
    Goals are kept newest first. Only goals added in the current draft can be
    deleted; saved goals are permanent.
    """

    section = Section.ACHIEVED_GOALS

    def receive(self, source: Any) -> None:
        super().receive(source)
        self.pending_ids: Set[str] = set()

    def cancel(self) -> None:
        super().cancel()
        self.pending_ids = set()

    def _same(self, a: Any, b: Any) -> bool:
        return sorted(a, key=lambda g: g.id) == sorted(b, key=lambda g: g.id)

    def add_goal(
        self,
        description: str,
        goal_type: Union[GoalType, str] = GoalType.ACADEMIC,
        mastery_level: Union[MasteryLevel, str] = MasteryLevel.INITIAL,
        achieved_at: Optional[datetime] = None,
    ) -> AchievedGoal:
        if not description or not description.strip():
            raise ValidationError("Goal description is required", "يرجى كتابة وصف الهدف المحقق.")
        try:
            goal = AchievedGoal(
                id=_new_entry_id("goal", (g.id for g in self.draft)),
                description=description,
                achieved_at=achieved_at or datetime.now(),
                goal_type=coerce_goal_type(goal_type),
                mastery_level=coerce_mastery_level(mastery_level),
            )
        except SchemaError as exc:
            raise ValidationError(str(exc), "نوع الهدف أو مستوى الإتقان غير معروف.") from exc
        self.draft = sort_achieved_goals([goal, *self.draft])
        self.pending_ids.add(goal.id)
        return goal

    def delete_goal(self, goal_id: str) -> None:
        if goal_id not in self.pending_ids:
            raise ValidationError(
                f"Goal {goal_id!r} is saved and cannot be removed",
                "لا يمكن حذف هدف محفوظ.",
            )
        self.draft = [g for g in self.draft if g.id != goal_id]
        self.pending_ids.discard(goal_id)


EDITORS = {
    Section.PERSONAL_INFO: PersonalInfoEditor,
    Section.MEDICAL_DIAGNOSIS: DiagnosisEditor,
    Section.CASE_STUDY: CaseStudyEditor,
    Section.ASSESSMENTS: AssessmentEditor,
    Section.SESSIONS: SessionCalendarEditor,
    Section.ACHIEVED_GOALS: AchievedGoalsEditor,
}


def open_editor(store: RecordStore, record_id: str, section: Section) -> SectionEditor:
    """Create the editor for `section` of the given record."""
    try:
        editor_class = EDITORS[Section(section)]
    except KeyError:
        raise ValueError(f"Section {section!r} has no editor") from None
    return editor_class(store, record_id)
