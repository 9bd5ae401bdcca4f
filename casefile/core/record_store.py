"""
Record store for the student case files.

The store owns the in-memory collection and writes the whole collection
through a persistence port after every mutation. Every mutation builds a new
list (copy-and-replace), so a snapshot handed out earlier never changes.
"""

from __future__ import annotations

import logging
import time
from datetime import date, datetime
from pathlib import Path
from typing import Dict, List, Optional, Protocol, Tuple

from .errors import RecordNotFound
from .llm import get_config
from .paths import resolve_storage_directory
from .schema import Section, SectionValue, StudentRecord, new_student_record, replace_section
from .storage import deserialize_records, serialize_records

logger = logging.getLogger(__name__)


# =============================================================================
# PERSISTENCE PORTS
# =============================================================================

class PersistencePort(Protocol):
    """Single named slot holding the serialized collection."""

    def read(self) -> Optional[str]:
        """Return the slot contents, or None when the slot is empty."""

    def write(self, text: str) -> None:
        ...

    def backup(self, text: str) -> str:
        """Keep an unreadable payload aside; returns where it went."""


class FileSlotStorage:
    """Stores the slot as `<directory>/<slot>.json`."""

    def __init__(self, directory: Optional[str] = None, slot: Optional[str] = None):
        config = get_config()
        self.directory = resolve_storage_directory(directory or config.storage_directory)
        self.slot = slot or config.storage_slot

    @property
    def path(self) -> Path:
        return self.directory / f"{self.slot}.json"

    def read(self) -> Optional[str]:
        if not self.path.exists():
            return None
        with open(self.path, "r", encoding="utf-8") as f:
            return f.read()

    def write(self, text: str) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(".json.tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            f.write(text)
        tmp_path.replace(self.path)

    def backup(self, text: str) -> str:
        self.directory.mkdir(parents=True, exist_ok=True)
        stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        backup_path = self.directory / f"{self.slot}.corrupt-{stamp}.json"
        with open(backup_path, "w", encoding="utf-8") as f:
            f.write(text)
        return str(backup_path)


class MemoryStorage:
    """In-memory slot, used by tests and throwaway sessions."""

    def __init__(self, text: Optional[str] = None):
        self.text = text
        self.backups: List[str] = []
        self.writes = 0

    def read(self) -> Optional[str]:
        return self.text

    def write(self, text: str) -> None:
        self.text = text
        self.writes += 1

    def backup(self, text: str) -> str:
        self.backups.append(text)
        return f"memory-backup-{len(self.backups)}"


# =============================================================================
# STORE
# =============================================================================

class RecordStore:
    """
    Repository for StudentRecords backed by a persistence port.

    Concurrent saves of the same section are last-write-wins: editors replace
    whole sections and nothing merges them.
    """

    def __init__(self, port: Optional[PersistencePort] = None, autoload: bool = True):
        self.port = port if port is not None else FileSlotStorage()
        self._records: List[StudentRecord] = []
        if autoload:
            self.load()

    # ------------------------------------------------------------------ Queries
    @property
    def records(self) -> Tuple[StudentRecord, ...]:
        return tuple(self._records)

    def get(self, record_id: str) -> Optional[StudentRecord]:
        for record in self._records:
            if record.id == record_id:
                return record
        return None

    def require(self, record_id: str) -> StudentRecord:
        record = self.get(record_id)
        if record is None:
            raise RecordNotFound(record_id)
        return record

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, record_id: object) -> bool:
        return any(r.id == record_id for r in self._records)

    # ------------------------------------------------------------------ Persistence
    def load(self) -> List[StudentRecord]:
        """
        Restore the collection from the port.

        An absent slot or unreadable content yields an empty collection. The
        unreadable payload is backed up first so the next persist() does not
        destroy the only copy.
        """
        try:
            text = self.port.read()
        except OSError as exc:
            logger.error("Could not read stored students: %s", exc)
            self._records = []
            return []

        if not text:
            self._records = []
            return []

        try:
            records = deserialize_records(text)
        except ValueError as exc:
            logger.error("Stored students could not be parsed, starting empty: %s", exc)
            try:
                location = self.port.backup(text)
                logger.warning("Unreadable student data kept at %s", location)
            except OSError as backup_exc:
                logger.error("Could not back up unreadable student data: %s", backup_exc)
            records = []

        self._records = records
        logger.info("Loaded %d student record(s)", len(records))
        return list(records)

    def persist(self) -> bool:
        """Write the full collection. Failures are logged, never raised."""
        try:
            self.port.write(serialize_records(self._records))
        except (OSError, TypeError, ValueError) as exc:
            logger.error("Error saving students: %s", exc)
            return False
        return True

    # ------------------------------------------------------------------ Mutations
    def _commit(self, records: List[StudentRecord]) -> None:
        self._records = records
        self.persist()

    def next_id(self) -> str:
        taken = {r.id for r in self._records}
        candidate = f"student-{int(time.time() * 1000)}"
        suffix = 1
        unique = candidate
        while unique in taken:
            suffix += 1
            unique = f"{candidate}-{suffix}"
        return unique

    def add(self, record: StudentRecord) -> StudentRecord:
        if record.id in self:
            raise ValueError(f"Duplicate student id: {record.id}")
        self._commit([*self._records, record])
        return record

    def create_record(self, today: Optional[date] = None) -> StudentRecord:
        """Add a new record with default sections and an assigned id."""
        record_id = self.next_id()
        return self.add(new_student_record(record_id, today=today))

    def replace(self, record_id: str, record: StudentRecord) -> StudentRecord:
        self.require(record_id)
        if record.id != record_id:
            raise ValueError(f"Record id {record.id!r} does not match {record_id!r}")
        self._commit([record if r.id == record_id else r for r in self._records])
        return record

    def remove(self, record_id: str) -> None:
        self.require(record_id)
        self._commit([r for r in self._records if r.id != record_id])
        logger.info("Removed student record %s", record_id)

    def update_section(self, record_id: str, section: Section, value: SectionValue) -> StudentRecord:
        """Replace one section of a stored record wholesale."""
        updated = replace_section(self.require(record_id), section, value)
        return self.replace(record_id, updated)

    def summary(self) -> Dict[str, int]:
        return {
            "students": len(self._records),
            "session_logs": sum(len(r.sessions.logs) for r in self._records),
            "achieved_goals": sum(len(r.achieved_goals) for r in self._records),
        }
