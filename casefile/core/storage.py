"""
Student Record Serialization

Convert records to and from plain JSON structures. Deserialization validates
every section so malformed persisted data fails at load time with a
SchemaError instead of surfacing later in an editor or prompt.
"""

import json
from datetime import date, datetime, time
from typing import Any, Dict, List, Optional

from .errors import SchemaError
from .schema import (
    ASSESSMENT_AREAS,
    AchievedGoal,
    AssessmentArea,
    Assessments,
    Attachment,
    CaseStudy,
    ChatMessage,
    GeneratedPlan,
    MedicalDiagnosis,
    MessageRole,
    PersonalInfo,
    SessionCalendar,
    SessionLog,
    StudentRecord,
    UpcomingSession,
    coerce_goal_type,
    coerce_mastery_level,
)


# Older transcripts tagged generated turns as "model".
LEGACY_ROLES = {"model": MessageRole.ASSISTANT}

TIME_FORMAT = "%H:%M"

# Object sections every stored record carries. A payload without them is
# foreign data and must fail the load rather than read as a blank record.
REQUIRED_SECTIONS = ("personal_info", "medical_diagnosis", "case_study", "assessments")


# =============================================================================
# SERIALIZATION
# =============================================================================

def _serialize_datetime(dt: Optional[datetime]) -> Optional[str]:
    return dt.isoformat() if dt else None


def _serialize_time(t: Optional[time]) -> str:
    return t.strftime(TIME_FORMAT) if t else ""


def _serialize_attachment(attachment: Optional[Attachment]) -> Optional[Dict]:
    if not attachment:
        return None
    return {"filename": attachment.filename, "mime_type": attachment.mime_type}


def serialize_record(record: StudentRecord) -> Dict[str, Any]:
    """Serialize a record to a JSON-compatible dictionary."""
    info = record.personal_info
    diagnosis = record.medical_diagnosis
    case = record.case_study
    return {
        "id": record.id,
        "personal_info": {
            "full_name": info.full_name,
            "student_id": info.student_id,
            "birth_date": info.birth_date,
            "grade": info.grade,
            "parent_contact": info.parent_contact,
            "enrollment_date": info.enrollment_date,
            "photo_url": info.photo_url,
        },
        "medical_diagnosis": {
            "primary_diagnosis": diagnosis.primary_diagnosis,
            "secondary_diagnoses": diagnosis.secondary_diagnoses,
            "report_file": _serialize_attachment(diagnosis.report_file),
            "report_file_summary": diagnosis.report_file_summary,
            "diagnosis_date": diagnosis.diagnosis_date,
            "diagnosing_entity": diagnosis.diagnosing_entity,
        },
        "case_study": {
            "medical_history": case.medical_history,
            "developmental_history": case.developmental_history,
            "family_situation": case.family_situation,
            "strengths": case.strengths,
            "challenges": case.challenges,
            "prominent_behaviors": case.prominent_behaviors,
            "interests_and_motivators": case.interests_and_motivators,
        },
        "assessments": {
            name: {
                "level": record.assessments.area(name).level,
                "notes": record.assessments.area(name).notes,
            }
            for name in ASSESSMENT_AREAS
        },
        "plan_history": [
            {"content": plan.content, "created_at": _serialize_datetime(plan.created_at)}
            for plan in record.plan_history
        ],
        "chat_history": [
            {"role": msg.role.value, "content": msg.content}
            for msg in record.chat_history
        ],
        "session_logs": [
            {
                "id": log.id,
                "date": log.date.isoformat(),
                "time": _serialize_time(log.time),
                "duration": log.duration,
                "notes": log.notes,
            }
            for log in record.sessions.logs
        ],
        "upcoming_sessions": [
            {
                "id": session.id,
                "date": session.date.isoformat(),
                "time": _serialize_time(session.time),
                "duration": session.duration,
            }
            for session in record.sessions.upcoming
        ],
        "achieved_goals": [
            {
                "id": goal.id,
                "description": goal.description,
                "achieved_at": _serialize_datetime(goal.achieved_at),
                "goal_type": goal.goal_type.value,
                "mastery_level": goal.mastery_level.value,
            }
            for goal in record.achieved_goals
        ],
    }


def serialize_records(records: List[StudentRecord]) -> str:
    """Serialize the whole collection to the JSON text stored in the slot."""
    return json.dumps(
        [serialize_record(r) for r in records],
        ensure_ascii=False,
        indent=2,
    )


# =============================================================================
# DESERIALIZATION
# =============================================================================

def _require(data: Dict[str, Any], key: str) -> Any:
    if key not in data:
        raise SchemaError(f"Missing required field: {key}")
    return data[key]


def _parse_datetime(s: Optional[str]) -> datetime:
    if not s:
        raise SchemaError("Missing timestamp")
    try:
        parsed = datetime.fromisoformat(s.replace("Z", "+00:00"))
    except ValueError:
        raise SchemaError(f"Invalid timestamp: {s!r}") from None
    # Timestamps are kept naive in local time so they compare with datetime.now().
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def _parse_date(s: Optional[str]) -> date:
    try:
        return date.fromisoformat(s or "")
    except ValueError:
        raise SchemaError(f"Invalid date: {s!r}") from None


def _parse_time(s: Optional[str]) -> Optional[time]:
    if not s:
        return None
    try:
        return datetime.strptime(s[:5], TIME_FORMAT).time()
    except ValueError:
        raise SchemaError(f"Invalid time: {s!r}") from None


def _parse_duration(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise SchemaError(f"Invalid duration: {value!r}")
    return int(value)


def _parse_role(value: Any) -> MessageRole:
    if value in LEGACY_ROLES:
        return LEGACY_ROLES[value]
    try:
        return MessageRole(value)
    except ValueError:
        raise SchemaError(f"Unknown chat role: {value!r}") from None


def _parse_attachment(data: Optional[Dict]) -> Optional[Attachment]:
    # Browser-era payloads stored File objects, which serialized to {}.
    if not data or not data.get("filename"):
        return None
    return Attachment(filename=data["filename"], mime_type=data["mime_type"])


def _parse_assessments(data: Dict[str, Any]) -> Assessments:
    areas = {}
    for name in ASSESSMENT_AREAS:
        area = data.get(name) or {}
        areas[name] = AssessmentArea(level=area.get("level", 1), notes=area.get("notes", ""))
    return Assessments(**areas)


def deserialize_record(data: Dict[str, Any]) -> StudentRecord:
    """Deserialize one record, raising SchemaError on malformed input."""
    if not isinstance(data, dict):
        raise SchemaError(f"Record must be an object, got {type(data).__name__}")

    for key in REQUIRED_SECTIONS:
        if not isinstance(data.get(key), dict):
            raise SchemaError(f"Record {data.get('id')!r} is missing section {key!r}")

    info = data.get("personal_info") or {}
    diagnosis = data.get("medical_diagnosis") or {}
    case = data.get("case_study") or {}

    try:
        return StudentRecord(
            id=str(_require(data, "id")),
            personal_info=PersonalInfo(
                full_name=info.get("full_name", ""),
                student_id=info.get("student_id", ""),
                birth_date=info.get("birth_date", ""),
                grade=info.get("grade", ""),
                parent_contact=info.get("parent_contact", ""),
                enrollment_date=info.get("enrollment_date", ""),
                photo_url=info.get("photo_url"),
            ),
            medical_diagnosis=MedicalDiagnosis(
                primary_diagnosis=diagnosis.get("primary_diagnosis", ""),
                secondary_diagnoses=diagnosis.get("secondary_diagnoses", ""),
                report_file=_parse_attachment(diagnosis.get("report_file")),
                report_file_summary=diagnosis.get("report_file_summary"),
                diagnosis_date=diagnosis.get("diagnosis_date", ""),
                diagnosing_entity=diagnosis.get("diagnosing_entity", ""),
            ),
            case_study=CaseStudy(**{k: case.get(k, "") for k in CaseStudy.__dataclass_fields__}),
            assessments=_parse_assessments(data.get("assessments") or {}),
            plan_history=[
                GeneratedPlan(
                    content=_require(p, "content"),
                    created_at=_parse_datetime(p.get("created_at")),
                )
                for p in data.get("plan_history", [])
            ],
            chat_history=[
                ChatMessage(role=_parse_role(m.get("role")), content=_require(m, "content"))
                for m in data.get("chat_history", [])
            ],
            sessions=SessionCalendar(
                logs=[
                    SessionLog(
                        id=str(_require(log, "id")),
                        date=_parse_date(log.get("date")),
                        time=_parse_time(log.get("time")),
                        duration=_parse_duration(log.get("duration", 0)),
                        notes=log.get("notes", ""),
                    )
                    for log in data.get("session_logs", [])
                ],
                upcoming=[
                    UpcomingSession(
                        id=str(_require(s, "id")),
                        date=_parse_date(s.get("date")),
                        time=_parse_time(s.get("time")) or time.min,
                        duration=_parse_duration(s.get("duration", 0)),
                    )
                    for s in data.get("upcoming_sessions", [])
                ],
            ),
            achieved_goals=[
                AchievedGoal(
                    id=str(_require(g, "id")),
                    description=_require(g, "description"),
                    achieved_at=_parse_datetime(g.get("achieved_at")),
                    goal_type=coerce_goal_type(g.get("goal_type")),
                    mastery_level=coerce_mastery_level(g.get("mastery_level")),
                )
                for g in data.get("achieved_goals", [])
            ],
        )
    except (AttributeError, KeyError, TypeError, ValueError) as exc:
        if isinstance(exc, SchemaError):
            raise
        raise SchemaError(f"Malformed record {data.get('id')!r}: {exc}") from exc


def deserialize_records(text: str) -> List[StudentRecord]:
    """Parse the stored JSON text back into records."""
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise SchemaError(f"Stored collection is not valid JSON: {exc}") from exc
    if not isinstance(payload, list):
        raise SchemaError("Stored collection must be a JSON array")
    return [deserialize_record(item) for item in payload]
