"""
Case File Assistant

Student case files for special-education teachers, with an AI assistant for
education plans, parent progress reports and diagnosis report summaries.

Modules:
    - schema: Record data types
    - storage: JSON serialization of the collection
    - record_store: Persistence port and record repository
    - editors: Draft/save/cancel editors per record section
    - narrative: Prompt builders for chat turns and reports
    - generation: Remote text generation backends and the in-flight guard
    - assistant: Chat, plan, report and summary orchestration
"""

__version__ = "0.1.0"

# LLM client and config
from .core.llm import (
    LLMClient,
    Config,
    get_config,
    get_available_models,
    AISUITE_AVAILABLE,
)
from .core.logging_config import setup_logging

# Store and selection
from .core import (
    RecordStore,
    FileSlotStorage,
    MemoryStorage,
    Selection,
    open_editor,
    CaseAssistant,
    ProgressReport,
    GenerationSlots,
    create_generation_client,
)

# Serialization
from .core.storage import (
    serialize_record,
    serialize_records,
    deserialize_record,
    deserialize_records,
)

# Errors
from .core.errors import (
    CaseFileError,
    RecordNotFound,
    SchemaError,
    ValidationError,
    NoSessionsInRange,
    UnsupportedAttachment,
    ConfirmationRequired,
    GenerationError,
    GenerationBusy,
)

# Schema
from .core.schema import (
    MessageRole, GoalType, MasteryLevel, Section,
    PersonalInfo, Attachment, MedicalDiagnosis, CaseStudy,
    AssessmentArea, Assessments,
    GeneratedPlan, ChatMessage,
    SessionLog, UpcomingSession, SessionCalendar,
    AchievedGoal, StudentRecord,
    new_student_record,
)

__all__ = [
    "__version__",
    # LLM
    "LLMClient", "Config", "get_config", "get_available_models", "AISUITE_AVAILABLE",
    "setup_logging",
    # Store
    "RecordStore", "FileSlotStorage", "MemoryStorage", "Selection", "open_editor",
    "CaseAssistant", "ProgressReport", "GenerationSlots", "create_generation_client",
    # Serialization
    "serialize_record", "serialize_records", "deserialize_record", "deserialize_records",
    # Errors
    "CaseFileError", "RecordNotFound", "SchemaError", "ValidationError",
    "NoSessionsInRange", "UnsupportedAttachment", "ConfirmationRequired",
    "GenerationError", "GenerationBusy",
    # Schema
    "MessageRole", "GoalType", "MasteryLevel", "Section",
    "PersonalInfo", "Attachment", "MedicalDiagnosis", "CaseStudy",
    "AssessmentArea", "Assessments",
    "GeneratedPlan", "ChatMessage",
    "SessionLog", "UpcomingSession", "SessionCalendar",
    "AchievedGoal", "StudentRecord",
    "new_student_record",
]
