from datetime import date, datetime

from taskquest.schemas import StreakState
from taskquest.scoring import update_streak


def test_first_completion_starts_streak():
    state = update_streak(StreakState(), datetime(2024, 1, 10, 12, 0))
    assert state == StreakState(current=1, longest=1, last_completion_date=date(2024, 1, 10))


def test_daily_streak_continues():
    state = update_streak(StreakState(), datetime(2024, 1, 10, 23, 30))
    state = update_streak(state, datetime(2024, 1, 11, 0, 15))
    assert state.current == 2
    assert state.last_completion_date == date(2024, 1, 11)


def test_same_day_is_noop():
    state = update_streak(StreakState(), datetime(2024, 1, 10, 8, 0))
    again = update_streak(state, datetime(2024, 1, 10, 20, 0))
    assert again == state


def test_gap_resets_to_one_and_keeps_longest():
    state = StreakState(current=5, longest=5, last_completion_date=date(2024, 1, 10))
    state = update_streak(state, datetime(2024, 1, 13, 9, 0))
    assert state.current == 1
    assert state.longest == 5
    assert state.last_completion_date == date(2024, 1, 13)


def test_longest_follows_current():
    state = StreakState(current=3, longest=3, last_completion_date=date(2024, 1, 10))
    state = update_streak(state, datetime(2024, 1, 11, 9, 0))
    assert state.longest == 4
