from datetime import date, datetime, time
from typing import List, Optional, Tuple

import pytest

from casefile.core.errors import GenerationError
from casefile.core.record_store import MemoryStorage, RecordStore
from casefile.core.schema import (
    AchievedGoal,
    ChatMessage,
    GeneratedPlan,
    GoalType,
    MasteryLevel,
    MessageRole,
    PersonalInfo,
    SessionCalendar,
    SessionLog,
    StudentRecord,
    UpcomingSession,
)


class FakeGenerationClient:
    """Records prompts and answers with canned text."""

    def __init__(self, reply: str = "رد المساعد", fail: bool = False):
        self.reply = reply
        self.fail = fail
        self.calls: List[Tuple[str, str]] = []
        self.summaries: List[Tuple[str, bytes, str]] = []
        self.on_send = None

    def send(self, prompt: str, kind: str = "chat") -> str:
        self.calls.append((kind, prompt))
        if self.on_send is not None:
            self.on_send()
        if self.fail:
            raise GenerationError("service unavailable")
        return self.reply

    def summarize(self, prompt: str, data: bytes, mime_type: str) -> str:
        self.summaries.append((prompt, data, mime_type))
        if self.fail:
            raise GenerationError("service unavailable")
        return self.reply

    def health(self) -> bool:
        return not self.fail


def make_record(record_id: str = "student-1", name: str = "سارة أحمد", **overrides) -> StudentRecord:
    record = StudentRecord(
        id=record_id,
        personal_info=PersonalInfo(full_name=name, birth_date="2015-03-10", grade="الثالث"),
    )
    for key, value in overrides.items():
        setattr(record, key, value)
    return record


def make_log(log_id: str, day: date, notes: str = "ملاحظات", at: Optional[time] = time(9, 0)) -> SessionLog:
    return SessionLog(id=log_id, date=day, time=at, duration=45, notes=notes)


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def store(storage: MemoryStorage) -> RecordStore:
    return RecordStore(storage)


@pytest.fixture
def full_record() -> StudentRecord:
    return make_record(
        plan_history=[
            GeneratedPlan(content="خطة أولى", created_at=datetime(2024, 1, 5, 10, 0)),
            GeneratedPlan(content="خطة ثانية", created_at=datetime(2024, 2, 5, 10, 0)),
            GeneratedPlan(content="خطة ثالثة", created_at=datetime(2024, 3, 5, 10, 0)),
        ],
        chat_history=[
            ChatMessage(MessageRole.USER, "سؤال"),
            ChatMessage(MessageRole.ASSISTANT, "جواب"),
        ],
        sessions=SessionCalendar(
            logs=[
                make_log("log-2", date(2024, 5, 20), "جلسة نطق"),
                make_log("log-1", date(2024, 5, 1), "جلسة قراءة"),
            ],
            upcoming=[
                UpcomingSession(id="session-1", date=date(2024, 6, 1), time=time(10, 30), duration=30),
            ],
        ),
        achieved_goals=[
            AchievedGoal(
                id="goal-1",
                description="يقرأ كلمات من ثلاثة أحرف",
                achieved_at=datetime(2024, 4, 1, 12, 0),
                goal_type=GoalType.ACADEMIC,
                mastery_level=MasteryLevel.MASTERED,
            ),
        ],
    )


@pytest.fixture
def client() -> FakeGenerationClient:
    return FakeGenerationClient()
