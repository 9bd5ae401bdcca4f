"""
Case assistant orchestrating the generation features against the store.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from typing import Optional, Union

from .errors import ConfirmationRequired, ValidationError
from .generation import GenerationClient, GenerationSlots, create_generation_client
from .llm import get_config
from .narrative import (
    build_chat_prompt,
    build_report_prompt,
    filter_logs_in_range,
    report_header,
    report_range,
)
from .prompting import ATTACHMENT_SUMMARY_PROMPT, is_plan
from .record_store import RecordStore
from .schema import ChatMessage, GeneratedPlan, MessageRole, Section, StudentRecord

logger = logging.getLogger(__name__)

DateLike = Union[date, str]


@dataclass
class ProgressReport:
    """A generated parent-facing report. Displayed, never persisted."""

    record_id: str
    start: date
    end: date
    text: str
    session_count: int
    generated_at: datetime = field(default_factory=datetime.now)


class CaseAssistant:
    """
    Chat turns, plan acceptance, progress reports and attachment summaries.

    Every generation call holds the record's slot in `slots`; results are
    applied to the record as it is in the store when the response arrives.
    """

    def __init__(
        self,
        store: RecordStore,
        client: Optional[GenerationClient] = None,
        slots: Optional[GenerationSlots] = None,
    ):
        self.store = store
        self.client = client if client is not None else create_generation_client()
        self.slots = slots or GenerationSlots()
        self.config = get_config()

    def is_busy(self, record_id: str) -> bool:
        return self.slots.is_busy(record_id)

    # ------------------------------------------------------------------ Chat
    def send_message(self, record_id: str, text: str) -> StudentRecord:
        """
        Ask the assistant and append both turns to the chat history.

        On failure the stored record is left untouched and the error
        propagates to the caller.
        """
        if not text or not text.strip():
            raise ValidationError("Chat message is empty", "يرجى كتابة رسالة.")

        with self.slots.hold(record_id):
            record = self.store.require(record_id)
            prompt = build_chat_prompt(
                record,
                record.chat_history,
                text,
                school_name=self.config.school_name,
                context_turns=self.config.chat_context_turns,
                plan_count=self.config.plan_context_count,
            )
            reply = self.client.send(prompt, kind="chat")

            latest = self.store.require(record_id)
            history = [
                *latest.chat_history,
                ChatMessage(role=MessageRole.USER, content=text),
                ChatMessage(role=MessageRole.ASSISTANT, content=reply),
            ]
            return self.store.update_section(record_id, Section.CHAT_HISTORY, history)

    def accept_plan(self, record_id: str, content: str) -> StudentRecord:
        """Append a generated plan the user approved to the plan history."""
        if not is_plan(content):
            logger.warning("Accepting a reply without the plan heading for %s", record_id)
        record = self.store.require(record_id)
        plans = [*record.plan_history, GeneratedPlan(content=content)]
        return self.store.update_section(record_id, Section.PLAN_HISTORY, plans)

    # ------------------------------------------------------------------ Reports
    def generate_report(self, record_id: str, start: DateLike, end: DateLike) -> ProgressReport:
        """
        Generate a progress report for the sessions logged in [start, end].

        NoSessionsInRange is raised before any request when the range is empty.
        """
        record = self.store.require(record_id)
        prompt = build_report_prompt(record, record.sessions.logs, start, end)
        start_date = start if isinstance(start, date) else date.fromisoformat(start)
        end_date = end if isinstance(end, date) else date.fromisoformat(end)
        session_count = len(filter_logs_in_range(record.sessions.logs, start_date, end_date))

        with self.slots.hold(record_id):
            text = self.client.send(prompt, kind="report")

        header = report_header(record.display_name, start_date, end_date, self.config.school_name)
        return ProgressReport(
            record_id=record_id,
            start=start_date,
            end=end_date,
            text=header + text,
            session_count=session_count,
        )

    def report_for_last_days(self, record_id: str, days: int, today: Optional[date] = None) -> ProgressReport:
        start, end = report_range(days, today)
        return self.generate_report(record_id, start, end)

    # ------------------------------------------------------------------ Attachments
    def summarize_attachment(self, record_id: str) -> StudentRecord:
        """Summarize the attached diagnosis report and store the summary."""
        record = self.store.require(record_id)
        attachment = record.medical_diagnosis.report_file
        if attachment is None or attachment.data is None:
            raise ValidationError(
                f"No attachment bytes available for {record_id}",
                "يرجى رفع ملف التقرير أولًا.",
            )

        with self.slots.hold(record_id):
            summary = self.client.summarize(ATTACHMENT_SUMMARY_PROMPT, attachment.data, attachment.mime_type)

        latest = self.store.require(record_id)
        current_file = latest.medical_diagnosis.report_file
        if current_file is None or current_file.filename != attachment.filename:
            logger.warning("Attachment changed while summarizing for %s, summary dropped", record_id)
            return latest
        diagnosis = replace(latest.medical_diagnosis, report_file_summary=summary.strip())
        return self.store.update_section(record_id, Section.MEDICAL_DIAGNOSIS, diagnosis)

    # ------------------------------------------------------------------ Records
    def delete_record(self, record_id: str, confirmed: bool = False) -> None:
        """Remove a record for good. There is no undo."""
        if not confirmed:
            raise ConfirmationRequired(
                f"Deleting {record_id} needs confirmation",
                "هل أنت متأكد من رغبتك في حذف ملف هذا الطالب؟ لا يمكن التراجع عن هذا الإجراء.",
            )
        self.store.remove(record_id)
