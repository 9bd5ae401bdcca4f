"""
Selection state: which record, if any, is being viewed.
"""

from __future__ import annotations

from typing import Optional

from .record_store import RecordStore
from .schema import StudentRecord


class Selection:
    """
    Derived view over the store.

    Only the identifier is remembered; the record is looked up again on every
    access, so a record removed while selected resolves to None.
    """

    def __init__(self, store: RecordStore):
        self.store = store
        self.record_id: Optional[str] = None

    def select(self, record_id: str) -> Optional[StudentRecord]:
        record = self.store.get(record_id)
        self.record_id = record.id if record else None
        return record

    def clear(self) -> None:
        self.record_id = None

    @property
    def current(self) -> Optional[StudentRecord]:
        if self.record_id is None:
            return None
        record = self.store.get(self.record_id)
        if record is None:
            self.record_id = None
        return record

    @property
    def is_list_view(self) -> bool:
        return self.current is None
