from datetime import date

import pytest

from casefile.core.assistant import CaseAssistant
from casefile.core.errors import (
    ConfirmationRequired,
    GenerationBusy,
    GenerationError,
    NoSessionsInRange,
    ValidationError,
)
from casefile.core.prompting import PLAN_MARKER
from casefile.core.schema import Attachment, ChatMessage, MedicalDiagnosis, MessageRole, PersonalInfo, Section
from casefile.tests.conftest import FakeGenerationClient


@pytest.fixture
def assistant(store, full_record, client):
    store.add(full_record)
    return CaseAssistant(store, client=client)


# =============================================================================
# CHAT
# =============================================================================

def test_send_message_appends_both_turns(assistant, store, client):
    record = assistant.send_message("student-1", "اقترح نشاطًا")

    assert record.chat_history[-2:] == [
        ChatMessage(MessageRole.USER, "اقترح نشاطًا"),
        ChatMessage(MessageRole.ASSISTANT, "رد المساعد"),
    ]
    assert store.get("student-1") == record
    kind, prompt = client.calls[0]
    assert kind == "chat"
    assert prompt.endswith("user: اقترح نشاطًا\nassistant: ")


def test_failed_request_leaves_record_unchanged(store, full_record):
    store.add(full_record)
    assistant = CaseAssistant(store, client=FakeGenerationClient(fail=True))

    with pytest.raises(GenerationError):
        assistant.send_message("student-1", "سؤال")
    assert store.get("student-1") == full_record
    assert not assistant.is_busy("student-1")


def test_empty_message_never_reaches_the_generator(assistant, client):
    with pytest.raises(ValidationError):
        assistant.send_message("student-1", "  ")
    assert client.calls == []


def test_reply_lands_on_latest_record(assistant, store, client):
    client.on_send = lambda: store.update_section(
        "student-1", Section.PERSONAL_INFO, PersonalInfo(full_name="ليلى")
    )
    record = assistant.send_message("student-1", "سؤال")
    assert record.personal_info.full_name == "ليلى"
    assert record.chat_history[-1].content == "رد المساعد"


def test_overlapping_request_is_rejected(assistant, client):
    def nested_send():
        client.on_send = None
        with pytest.raises(GenerationBusy):
            assistant.send_message("student-1", "سؤال ثان")

    client.on_send = nested_send
    assistant.send_message("student-1", "سؤال أول")
    assert len(client.calls) == 1


def test_accept_plan(assistant):
    content = f"{PLAN_MARKER}\n\nأهداف الفصل"
    record = assistant.accept_plan("student-1", content)
    assert record.plan_history[-1].content == content
    assert len(record.plan_history) == 4


# =============================================================================
# REPORTS
# =============================================================================

def test_generate_report(assistant, client):
    report = assistant.generate_report("student-1", date(2024, 5, 1), date(2024, 5, 31))

    assert report.session_count == 2
    assert report.text.startswith("### **مدرسة الإيمان**")
    assert report.text.endswith("رد المساعد")
    assert client.calls[0][0] == "report"


def test_report_for_last_days(assistant):
    report = assistant.report_for_last_days("student-1", 7, today=date(2024, 5, 25))
    assert (report.start, report.end) == (date(2024, 5, 18), date(2024, 5, 25))
    assert report.session_count == 1


def test_empty_range_short_circuits(assistant, client):
    with pytest.raises(NoSessionsInRange):
        assistant.report_for_last_days("student-1", 30, today=date(2023, 1, 1))
    assert client.calls == []


# =============================================================================
# ATTACHMENTS + DELETION
# =============================================================================

def test_summarize_attachment_stores_summary(assistant, store, client):
    store.update_section(
        "student-1",
        Section.MEDICAL_DIAGNOSIS,
        MedicalDiagnosis(report_file=Attachment("scan.png", "image/png", b"\x89PNG")),
    )
    client.reply = "  ملخص التقرير  "
    record = assistant.summarize_attachment("student-1")

    assert record.medical_diagnosis.report_file_summary == "ملخص التقرير"
    assert client.summaries[0][1:] == (b"\x89PNG", "image/png")


def test_summarize_without_bytes_is_rejected(assistant, store, client):
    store.update_section(
        "student-1",
        Section.MEDICAL_DIAGNOSIS,
        MedicalDiagnosis(report_file=Attachment("scan.png", "image/png")),
    )
    with pytest.raises(ValidationError):
        assistant.summarize_attachment("student-1")
    assert client.summaries == []


def test_delete_requires_confirmation(assistant, store):
    with pytest.raises(ConfirmationRequired):
        assistant.delete_record("student-1")
    assert "student-1" in store

    assistant.delete_record("student-1", confirmed=True)
    assert "student-1" not in store
