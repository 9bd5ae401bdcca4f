"""
Narrative request builders.

Assemble the text prompts sent to the generator for chat turns, progress
reports and attachment summaries. Nothing here talks to the network.
"""

from __future__ import annotations

import json
from datetime import date, timedelta
from typing import List, Optional, Sequence, Tuple, Union

from .errors import NoSessionsInRange, ValidationError
from .formatting import format_day, format_goal_line
from .llm import get_config
from .privacy import sanitized_record
from .prompting import CHAT_ASSISTANT_SYSTEM_PROMPT, REPORT_GENERATOR_SYSTEM_PROMPT
from .schema import ChatMessage, GeneratedPlan, SessionLog, StudentRecord

DateLike = Union[date, str]

NO_GOALS_TEXT = "لا توجد أهداف محققة مسجلة بعد."
NO_PLANS_TEXT = "لا توجد خطط سابقة."


def _as_date(value: DateLike) -> date:
    return value if isinstance(value, date) else date.fromisoformat(value)


# =============================================================================
# CHAT
# =============================================================================

def format_recent_plans(plans: Sequence[GeneratedPlan], count: int = 2) -> str:
    """The last `count` accepted plans, oldest first."""
    recent = list(plans)[-count:] if count > 0 else []
    return "\n\n---\n\n".join(
        f"### الخطة السابقة {i} ({format_day(plan.created_at)})\n\n{plan.content}"
        for i, plan in enumerate(recent, start=1)
    )


def format_goals_summary(record: StudentRecord) -> str:
    return "\n".join(format_goal_line(goal) for goal in record.achieved_goals)


def format_conversation(messages: Sequence[ChatMessage], turns: int = 6) -> str:
    recent = list(messages)[-turns:] if turns > 0 else []
    return "\n".join(f"{msg.role.value}: {msg.content}" for msg in recent)


def build_chat_prompt(
    record: StudentRecord,
    recent_messages: Sequence[ChatMessage],
    new_message: str,
    school_name: Optional[str] = None,
    context_turns: Optional[int] = None,
    plan_count: Optional[int] = None,
) -> str:
    """
    Build the full prompt for one chat turn.

    Only the last `context_turns` messages are included, followed by the new
    message and an open assistant turn.
    """
    if not new_message or not new_message.strip():
        raise ValidationError("Chat message is empty", "يرجى كتابة رسالة.")

    config = get_config()
    school_name = school_name or config.school_name
    context_turns = config.chat_context_turns if context_turns is None else context_turns
    plan_count = config.plan_context_count if plan_count is None else plan_count

    student_json = json.dumps(sanitized_record(record), ensure_ascii=False, indent=2)
    goals = format_goals_summary(record) or NO_GOALS_TEXT
    plans = format_recent_plans(record.plan_history, plan_count) or NO_PLANS_TEXT
    conversation = format_conversation(recent_messages, context_turns)

    context_prompt = f"""{CHAT_ASSISTANT_SYSTEM_PROMPT.format(school_name=school_name)}

## سياق الطالب الحالي

### بيانات الطالب
```json
{student_json}
```

### سجل الأهداف التي تم تحقيقها (للإطلاع ومنع التكرار)
{goals}

### ملخص آخر خطتين (إن وجد)
{plans}
"""

    lines = [context_prompt, "## المحادثة الحالية", ""]
    if conversation:
        lines.append(conversation)
    lines.append(f"user: {new_message}")
    lines.append("assistant: ")
    return "\n".join(lines)


# =============================================================================
# REPORTS
# =============================================================================

def report_range(days: int, today: Optional[date] = None) -> Tuple[date, date]:
    """Inclusive range covering the last `days` days up to today."""
    end = today or date.today()
    return end - timedelta(days=days), end


def filter_logs_in_range(logs: Sequence[SessionLog], start: DateLike, end: DateLike) -> List[SessionLog]:
    """Logs whose date is within [start, end], both ends inclusive."""
    start, end = _as_date(start), _as_date(end)
    return [log for log in logs if start <= log.date <= end]


def report_header(student_name: str, start: DateLike, end: DateLike, school_name: Optional[str] = None) -> str:
    school_name = school_name or get_config().school_name
    return (
        f"### **{school_name}**\n\n"
        f"**تقرير التقدم للطالب/ة:** {student_name}\n"
        f"**عن الفترة من:** {format_day(_as_date(start))} **إلى:** {format_day(_as_date(end))}\n\n"
        "---\n\n"
    )


def build_report_prompt(
    record: StudentRecord,
    logs: Sequence[SessionLog],
    start: DateLike,
    end: DateLike,
) -> str:
    """
    Build the progress report prompt from the logs inside [start, end].

    Raises NoSessionsInRange when nothing falls in the range, before any
    request is made.
    """
    start, end = _as_date(start), _as_date(end)
    in_range = filter_logs_in_range(logs, start, end)
    if not in_range:
        raise NoSessionsInRange(start, end)

    student_name = record.display_name
    logs_for_prompt = [
        {"date": log.date.isoformat(), "duration": log.duration, "notes": log.notes}
        for log in sorted(in_range, key=lambda log: log.sort_key)
    ]

    return f"""{REPORT_GENERATOR_SYSTEM_PROMPT.format(student_name=student_name)}

## بيانات الطالب
- **الاسم:** {student_name}

## سجل الجلسات للفترة المحددة
```json
{json.dumps(logs_for_prompt, ensure_ascii=False, indent=2)}
```

## المطلوب
بناءً على السجل أعلاه فقط، قم بكتابة "تقرير التقدم" لولي الأمر عن الفترة من {format_day(start)} إلى {format_day(end)}.
"""
