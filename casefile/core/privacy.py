"""
Privacy helpers for preparing a record before it is embedded in a prompt.
"""

from __future__ import annotations

from typing import Any, Dict

from .schema import StudentRecord
from .storage import serialize_record

ATTACHMENT_PLACEHOLDER = "[تم رفع ملف باسم: {filename}]"

# The transcript is sent separately and truncated.
PROMPT_EXCLUDED_KEYS = ("chat_history",)


def sanitized_record(record: StudentRecord) -> Dict[str, Any]:
    """
    Return a JSON-ready copy of a record that is safe to send upstream.

    The photo reference is dropped and an attached report is replaced by a
    short placeholder naming the file. Raw attachment bytes are never
    serialized in the first place.
    """
    data = serialize_record(record)
    for key in PROMPT_EXCLUDED_KEYS:
        data.pop(key, None)

    data["personal_info"].pop("photo_url", None)

    attachment = record.medical_diagnosis.report_file
    if attachment is not None:
        data["medical_diagnosis"]["report_file"] = ATTACHMENT_PLACEHOLDER.format(
            filename=attachment.filename
        )
    else:
        data["medical_diagnosis"].pop("report_file", None)

    return data
