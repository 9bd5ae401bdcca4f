from datetime import date, datetime, time

import pytest

from casefile.core.formatting import (
    AGE_UNKNOWN_LABEL,
    compute_age,
    format_age,
    format_day,
    format_goal_line,
    format_log_line,
    format_record_card,
)
from casefile.core.schema import AchievedGoal, GoalType, MasteryLevel, new_student_record
from casefile.tests.conftest import make_log


@pytest.mark.parametrize(
    "birth, today, expected",
    [
        ("2015-03-10", date(2024, 3, 9), 8),
        ("2015-03-10", date(2024, 3, 10), 9),
        ("2015-03-10", date(2024, 3, 11), 9),
        ("2015-12-31", date(2024, 1, 1), 8),
        ("2016-02-29", date(2024, 2, 28), 7),
        ("2016-02-29", date(2024, 2, 29), 8),
    ],
)
def test_age_counts_completed_years(birth, today, expected):
    assert compute_age(birth, today) == expected


@pytest.mark.parametrize("birth", ["", None, "غير محدد", "2015-13-40", "2030-01-01"])
def test_unknown_birth_date(birth):
    assert compute_age(birth, date(2024, 1, 1)) is None
    assert format_age(birth, date(2024, 1, 1)) == AGE_UNKNOWN_LABEL


def test_format_age_label():
    assert format_age(date(2015, 3, 10), date(2024, 6, 1)) == "9 سنوات"


def test_format_day():
    assert format_day(date(2024, 5, 1)) == "2024/05/01"
    assert format_day(datetime(2024, 5, 1, 13, 0)) == "2024/05/01"
    assert format_day("قريبًا") == "قريبًا"


def test_log_line_hides_time_for_untimed_sessions():
    assert "الوقت" in format_log_line(make_log("l1", date(2024, 5, 1), at=time(9, 0)))
    assert "الوقت" not in format_log_line(make_log("l2", date(2024, 5, 1), at=None))


def test_goal_line():
    goal = AchievedGoal(
        id="goal-1",
        description="X",
        achieved_at=datetime(2024, 4, 1, 12, 0),
        goal_type=GoalType.ACADEMIC,
        mastery_level=MasteryLevel.MASTERED,
    )
    assert format_goal_line(goal) == "- X (النوع: أكاديمي, الإتقان: متقن, التاريخ: 2024/04/01)"


def test_record_card_for_new_student():
    card = format_record_card(new_student_record("student-1", today=date(2024, 9, 1)))
    assert card["name"] == "طالب جديد"
    assert card["age"] == AGE_UNKNOWN_LABEL
    assert card["photo_url"].endswith("/student-1/200")


def test_birth_date_in_the_future_is_unknown():
    assert compute_age("2030-01-01", date(2024, 1, 1)) is None
    assert compute_age(datetime(2024, 1, 2, 8, 0), date(2024, 1, 1)) is None
    assert format_age("2024-01-02", date(2024, 1, 1)) == AGE_UNKNOWN_LABEL
