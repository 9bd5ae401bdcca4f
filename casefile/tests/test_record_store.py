import logging
from datetime import date

import pytest

from casefile.core.errors import RecordNotFound
from casefile.core.record_store import FileSlotStorage, MemoryStorage, RecordStore
from casefile.core.schema import Attachment, PersonalInfo, Section
from casefile.core.storage import serialize_records
from casefile.tests.conftest import make_record


def test_empty_slot_loads_empty_collection(store):
    assert store.records == ()
    assert len(store) == 0


def test_create_record_applies_defaults_and_persists(store, storage):
    record = store.create_record(today=date(2024, 9, 1))

    assert record.id.startswith("student-")
    assert record.personal_info.full_name == "طالب جديد"
    assert record.personal_info.enrollment_date == "2024-09-01"
    assert record.personal_info.photo_url == f"https://picsum.photos/seed/{record.id}/200"
    assert all(record.assessments.area(name).level == 1 for name in (
        "academic_skills", "language_and_communication", "sensory_and_cognitive_skills",
        "social_skills", "behavior_and_self_regulation", "motor_skills",
    ))
    assert storage.writes == 1
    assert RecordStore(MemoryStorage(storage.text)).records == (record,)


def test_next_id_never_collides(store, monkeypatch):
    monkeypatch.setattr("casefile.core.record_store.time.time", lambda: 1718000000.0)
    first = store.create_record()
    second = store.create_record()
    assert first.id == "student-1718000000000"
    assert second.id == "student-1718000000000-2"


def test_add_rejects_duplicate_ids(store):
    store.add(make_record("student-1"))
    with pytest.raises(ValueError):
        store.add(make_record("student-1"))


def test_update_section_replaces_whole_section(store):
    store.add(make_record("student-1"))
    updated = store.update_section("student-1", Section.PERSONAL_INFO, PersonalInfo(full_name="ليلى"))
    assert updated.personal_info == PersonalInfo(full_name="ليلى")
    assert store.get("student-1").personal_info.grade == ""


def test_snapshots_are_not_mutated_by_later_writes(store):
    store.add(make_record("student-1"))
    before = store.records
    store.update_section("student-1", Section.PERSONAL_INFO, PersonalInfo(full_name="ليلى"))
    assert before[0].personal_info.full_name == "سارة أحمد"


def test_replace_rejects_mismatched_id(store):
    store.add(make_record("student-1"))
    with pytest.raises(ValueError):
        store.replace("student-1", make_record("student-2"))


def test_unknown_record_raises(store):
    with pytest.raises(RecordNotFound):
        store.remove("student-404")
    with pytest.raises(KeyError):
        store.update_section("student-404", Section.CHAT_HISTORY, [])


def test_remove_drops_record_and_persists(store, storage):
    store.add(make_record("student-1"))
    store.add(make_record("student-2"))
    store.remove("student-1")
    assert [r.id for r in RecordStore(MemoryStorage(storage.text)).records] == ["student-2"]


def test_unreadable_slot_is_backed_up_and_starts_empty(caplog):
    storage = MemoryStorage("{not json")
    with caplog.at_level(logging.WARNING):
        store = RecordStore(storage)
    assert store.records == ()
    assert storage.backups == ["{not json"]
    assert "Unreadable student data kept at" in caplog.text


def test_persist_failure_is_logged_not_raised(caplog):
    class BrokenStorage(MemoryStorage):
        def write(self, text):
            raise OSError("quota exceeded")

    store = RecordStore(BrokenStorage())
    with caplog.at_level(logging.ERROR):
        store.add(make_record("student-1"))
    assert "student-1" in store
    assert "Error saving students" in caplog.text


def test_file_slot_round_trip(tmp_path):
    storage = FileSlotStorage(directory=str(tmp_path), slot="students")
    store = RecordStore(storage)
    store.add(make_record("student-1"))

    assert storage.path == tmp_path / "students.json"
    assert not (tmp_path / "students.json.tmp").exists()
    assert RecordStore(FileSlotStorage(directory=str(tmp_path))).get("student-1") == store.get("student-1")


def test_file_slot_backup_keeps_corrupt_payload(tmp_path):
    (tmp_path / "students.json").write_text("[{", encoding="utf-8")
    RecordStore(FileSlotStorage(directory=str(tmp_path)))
    backups = list(tmp_path.glob("students.corrupt-*.json"))
    assert len(backups) == 1
    assert backups[0].read_text(encoding="utf-8") == "[{"


def test_diagnosis_attachment_survives_save_and_reload(store, storage):
    store.add(make_record("student-1"))
    diagnosis = store.get("student-1").medical_diagnosis
    diagnosis_with_file = type(diagnosis)(
        primary_diagnosis="اضطراب طيف التوحد",
        report_file=Attachment("report.pdf", "application/pdf", b"%PDF"),
    )
    store.update_section("student-1", Section.MEDICAL_DIAGNOSIS, diagnosis_with_file)

    reloaded = RecordStore(MemoryStorage(storage.text)).get("student-1")
    assert reloaded.medical_diagnosis.primary_diagnosis == "اضطراب طيف التوحد"
    assert reloaded.medical_diagnosis.report_file.filename == "report.pdf"
    assert reloaded.medical_diagnosis.report_file.mime_type == "application/pdf"
    assert serialize_records(list(store.records)) == storage.text


def test_summary_counts(store, full_record):
    store.add(full_record)
    assert store.summary() == {"students": 1, "session_logs": 2, "achieved_goals": 1}


def test_foreign_payload_is_backed_up_not_overwritten():
    text = '[{"id": "student-1", "personalInfo": {"fullName": "سارة"}, "sessionLogs": []}]'
    storage = MemoryStorage(text)
    store = RecordStore(storage)

    assert store.records == ()
    assert storage.backups == [text]
    store.create_record()
    assert "سارة" in storage.backups[0]
