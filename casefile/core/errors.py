"""
Exception types shared across the case file core.
"""


class CaseFileError(Exception):
    """Base class for all case file errors."""


class RecordNotFound(CaseFileError, KeyError):
    """Raised when a record identifier is not in the collection."""

    def __init__(self, record_id: str):
        super().__init__(record_id)
        self.record_id = record_id

    def __str__(self) -> str:
        return f"No student record with id {self.record_id!r}"


class SchemaError(CaseFileError, ValueError):
    """Persisted data does not match the record schema."""


class ValidationError(CaseFileError, ValueError):
    """
    Input rejected before it reaches the store or the generator.

    `user_message` is the text shown inline in the interface.
    """

    def __init__(self, message: str, user_message: str = ""):
        super().__init__(message)
        self.user_message = user_message or message


class NoSessionsInRange(ValidationError):
    """No session logs fall inside the requested report range."""

    def __init__(self, start, end):
        super().__init__(
            f"No session logs between {start} and {end}",
            "لا توجد جلسات مسجلة في الفترة المحددة لتوليد التقرير.",
        )
        self.start = start
        self.end = end


class UnsupportedAttachment(ValidationError):
    """Attachment MIME type is not PDF, PNG or JPEG."""


class ConfirmationRequired(ValidationError):
    """A destructive action was requested without explicit confirmation."""


class GenerationError(CaseFileError):
    """The remote text generation call failed or returned no text."""

    user_message = "عذرًا، حدث خطأ أثناء التواصل مع المساعد الذكي. يرجى المحاولة مرة أخرى."


class GenerationBusy(GenerationError):
    """A generation request for the same record is already in flight."""

    user_message = "هناك طلب قيد التنفيذ لهذا الطالب. يرجى الانتظار حتى يكتمل."

    def __init__(self, record_id: str):
        super().__init__(f"Generation already in progress for {record_id!r}")
        self.record_id = record_id
