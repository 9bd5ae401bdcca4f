#!/usr/bin/env python3
"""Generate a parent progress report for one student from the command line.

Usage:
    python -m casefile.scripts.generate_progress_report --list
    python -m casefile.scripts.generate_progress_report --student student-1718000000000 --days 30
    python -m casefile.scripts.generate_progress_report --student student-1718000000000 \
        --start 2024-05-01 --end 2024-05-31 --output ./reports/may.md

Reads the stored collection, picks the session logs inside the requested
range and asks the configured generation backend for the report. Nothing is
written back to the collection.
"""
from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Iterable

from ..core.assistant import CaseAssistant
from ..core.errors import CaseFileError, GenerationError, ValidationError
from ..core.formatting import format_record_card
from ..core.generation import GenerationClient, create_generation_client
from ..core.logging_config import setup_logging
from ..core.record_store import FileSlotStorage, RecordStore

logger = logging.getLogger(__name__)


def list_students(store: RecordStore) -> None:
    totals = store.summary()
    print(
        f"{totals['students']} student(s), {totals['session_logs']} session log(s), "
        f"{totals['achieved_goals']} achieved goal(s)"
    )
    for record in store.records:
        card = format_record_card(record)
        print(f"  {card['id']}  {card['name']}  ({card['diagnosis'] or '-'}, {card['age']})")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Generate a student progress report")
    parser.add_argument("--data-dir", default=None, help="Directory holding the stored collection (default from config.yaml)")
    parser.add_argument("--list", action="store_true", help="List stored students and exit")
    parser.add_argument("--student", help="Record id of the student to report on")
    parser.add_argument("--days", type=int, default=7, help="Report on the last N days (ignored when --start/--end are given)")
    parser.add_argument("--start", help="First day of the range (YYYY-MM-DD)")
    parser.add_argument("--end", help="Last day of the range (YYYY-MM-DD)")
    parser.add_argument("--output", help="Write the report to this file instead of stdout")
    parser.add_argument("--log-level", default=None, help="Override the configured log level")
    return parser


def main(argv: Iterable[str] | None = None, client: GenerationClient | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level)

    store = RecordStore(FileSlotStorage(directory=args.data_dir))

    if args.list:
        list_students(store)
        return 0

    if not args.student:
        print("--student is required unless --list is given.")
        return 2
    if bool(args.start) != bool(args.end):
        print("--start and --end must be given together.")
        return 2
    if args.student not in store:
        print(f"No student with id {args.student}.")
        return 2

    assistant = CaseAssistant(store, client=client or create_generation_client())
    try:
        if args.start:
            report = assistant.generate_report(args.student, args.start, args.end)
        else:
            report = assistant.report_for_last_days(args.student, args.days)
    except ValidationError as exc:
        print(exc.user_message)
        return 1
    except GenerationError as exc:
        logger.error("Report generation failed for %s: %s", args.student, exc)
        print(exc.user_message)
        return 1
    except (CaseFileError, ValueError) as exc:
        print(f"Failed to generate report: {exc}")
        return 1

    if args.output:
        out_file = Path(args.output)
        out_file.parent.mkdir(parents=True, exist_ok=True)
        out_file.write_text(report.text, encoding="utf-8")
        print(f"Wrote report ({report.session_count} session(s)) -> {out_file}")
    else:
        print(report.text)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
