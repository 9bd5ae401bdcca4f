"""
Core components for the case file assistant.
"""

from .record_store import FileSlotStorage, MemoryStorage, PersistencePort, RecordStore
from .selection import Selection
from .editors import (
    AchievedGoalsEditor,
    AssessmentEditor,
    CaseStudyEditor,
    DiagnosisEditor,
    PersonalInfoEditor,
    SectionEditor,
    SessionCalendarEditor,
    open_editor,
)
from .generation import (
    GenerationClient,
    GenerationSlots,
    HttpGenerationClient,
    LLMGenerationClient,
    create_generation_client,
)
from .assistant import CaseAssistant, ProgressReport

__all__ = [
    "FileSlotStorage",
    "MemoryStorage",
    "PersistencePort",
    "RecordStore",
    "Selection",
    "AchievedGoalsEditor",
    "AssessmentEditor",
    "CaseStudyEditor",
    "DiagnosisEditor",
    "PersonalInfoEditor",
    "SectionEditor",
    "SessionCalendarEditor",
    "open_editor",
    "GenerationClient",
    "GenerationSlots",
    "HttpGenerationClient",
    "LLMGenerationClient",
    "create_generation_client",
    "CaseAssistant",
    "ProgressReport",
]
