from pathlib import Path

import pytest

from casefile.core.record_store import FileSlotStorage, RecordStore
from casefile.scripts import generate_progress_report as gr
from casefile.tests.conftest import FakeGenerationClient


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch):
    monkeypatch.setattr(gr, "setup_logging", lambda level=None: None)


def seed(tmp_path: Path, record) -> Path:
    data_dir = tmp_path / "data"
    RecordStore(FileSlotStorage(directory=str(data_dir))).add(record)
    return data_dir


def test_list_students(tmp_path: Path, full_record, capsys):
    data_dir = seed(tmp_path, full_record)
    assert gr.main(["--data-dir", str(data_dir), "--list"]) == 0
    out = capsys.readouterr().out
    assert "1 student(s), 2 session log(s), 1 achieved goal(s)" in out
    assert "student-1" in out and "سارة أحمد" in out


def test_write_report_for_range(tmp_path: Path, full_record):
    data_dir = seed(tmp_path, full_record)
    out_file = tmp_path / "reports" / "may.md"
    client = FakeGenerationClient(reply="تقدم ملحوظ")

    code = gr.main(
        ["--data-dir", str(data_dir), "--student", "student-1",
         "--start", "2024-05-01", "--end", "2024-05-31", "--output", str(out_file)],
        client=client,
    )
    assert code == 0
    text = out_file.read_text(encoding="utf-8")
    assert "سارة أحمد" in text
    assert text.endswith("تقدم ملحوظ")
    assert client.calls[0][0] == "report"


def test_empty_range_prints_message(tmp_path: Path, full_record, capsys):
    data_dir = seed(tmp_path, full_record)
    client = FakeGenerationClient()
    code = gr.main(
        ["--data-dir", str(data_dir), "--student", "student-1", "--start", "2020-01-01", "--end", "2020-01-31"],
        client=client,
    )
    assert code == 1
    assert "لا توجد جلسات" in capsys.readouterr().out
    assert client.calls == []


def test_argument_errors(tmp_path: Path, full_record):
    data_dir = seed(tmp_path, full_record)
    assert gr.main(["--data-dir", str(data_dir)]) == 2
    assert gr.main(["--data-dir", str(data_dir), "--student", "student-1", "--start", "2024-05-01"]) == 2
    assert gr.main(["--data-dir", str(data_dir), "--student", "student-404"]) == 2


def test_generation_failure_returns_error_code(tmp_path: Path, full_record, capsys):
    data_dir = seed(tmp_path, full_record)
    code = gr.main(
        ["--data-dir", str(data_dir), "--student", "student-1", "--start", "2024-05-01", "--end", "2024-05-31"],
        client=FakeGenerationClient(fail=True),
    )
    assert code == 1
    assert "يرجى المحاولة مرة أخرى" in capsys.readouterr().out
