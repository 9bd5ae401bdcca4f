"""
Formatting helpers shared by the prompt builders and the interface.
"""

from __future__ import annotations

from datetime import date, datetime, time
from typing import Optional, Union

from .schema import AchievedGoal, GeneratedPlan, SessionLog, StudentRecord, UpcomingSession

AGE_UNKNOWN_LABEL = "غير معروف"


def compute_age(birth_date: Union[str, date, None], today: Optional[date] = None) -> Optional[int]:
    """
    Whole years completed between `birth_date` and `today`.

    Returns None for an empty or unparseable birth date, or one after `today`.
    """
    if not birth_date:
        return None
    if isinstance(birth_date, str):
        try:
            birth_date = date.fromisoformat(birth_date.strip()[:10])
        except ValueError:
            return None
    if isinstance(birth_date, datetime):
        birth_date = birth_date.date()
    today = today or date.today()
    if birth_date > today:
        return None
    years = today.year - birth_date.year
    if (today.month, today.day) < (birth_date.month, birth_date.day):
        years -= 1
    return years


def format_age(birth_date: Union[str, date, None], today: Optional[date] = None) -> str:
    age = compute_age(birth_date, today)
    if age is None:
        return AGE_UNKNOWN_LABEL
    return f"{age} سنوات"


def format_day(value: Union[date, datetime, str]) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, datetime):
        value = value.date()
    return value.strftime("%Y/%m/%d")


def format_clock(value: Optional[time]) -> str:
    return value.strftime("%H:%M") if value else "--:--"


def format_log_line(log: SessionLog) -> str:
    line = f"{format_day(log.date)}"
    if log.time and log.duration > 0:
        line += f" | الوقت: {format_clock(log.time)} | المدة: {log.duration} دقيقة"
    return line


def format_upcoming_line(session: UpcomingSession) -> str:
    line = f"{format_day(session.date)} | الوقت: {format_clock(session.time)}"
    if session.duration > 0:
        line += f" | المدة: {session.duration} دقيقة"
    return line


def format_goal_line(goal: AchievedGoal) -> str:
    return (
        f"- {goal.description} (النوع: {goal.goal_type.value}, "
        f"الإتقان: {goal.mastery_level.value}, التاريخ: {format_day(goal.achieved_at)})"
    )


def format_plan_title(plan: GeneratedPlan) -> str:
    return f"الخطة المعتمدة بتاريخ: {format_day(plan.created_at)}"


def format_record_card(record: StudentRecord, today: Optional[date] = None) -> dict:
    """Fields shown on a student's card in the list view."""
    return {
        "id": record.id,
        "name": record.display_name,
        "diagnosis": record.medical_diagnosis.primary_diagnosis,
        "age": format_age(record.personal_info.birth_date, today),
        "grade": record.personal_info.grade,
        "photo_url": record.personal_info.photo_url,
    }
