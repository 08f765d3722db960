import pytest

from habit_arc.models.habit import Habit
from habit_arc.services.habits.progress import (
    calculate_habit_stats,
    calculate_identity_score,
    completion_percentage,
    completion_rate,
    current_streak,
    longest_streak,
    progress_for_month,
    streak_runs,
    toggle_progress,
)


def make_habit(habit_id, progress, linked=()):
    return Habit(
        id=habit_id,
        name=f"habit {habit_id}",
        type="start",
        total_days=len(progress),
        linked_identities=list(linked),
        progress=progress,
        created_at="2025-10-01T00:00:00Z",
    )


@pytest.mark.parametrize("progress,expected", [
    ([], 0),
    ([False], 0),
    ([True, True, True], 3),
    ([True, True, False, True], 1),
    ([True, False, True, True], 2),
])
def test_current_streak_counts_trailing_run(progress, expected):
    assert current_streak(progress) == expected


def test_longest_streak_and_runs():
    progress = [True, True, False, True, True, True, False]
    assert longest_streak(progress) == 3
    runs = streak_runs(progress)
    assert [r.length for r in runs] == [2, 3]
    assert runs[0].start_date == "01/10"
    assert runs[1].end_date == "06/10"


def test_completion_values():
    progress = [True, False, True]
    assert completion_percentage(progress, 3) == 67
    assert completion_rate(progress, 3) == 66.7
    assert completion_percentage(progress, 0) == 0
    assert completion_rate([], 0) == 0.0


def test_calculate_habit_stats():
    stats = calculate_habit_stats(make_habit(1, [True, True, False, True]))
    assert stats.completed == 3
    assert stats.percentage == 75
    assert stats.current_streak == 1
    assert stats.longest_streak == 2
    assert stats.total_days == 4


def test_identity_score_averages_linked_habits():
    habits = [
        make_habit(1, [True, True], linked=[7]),
        make_habit(2, [False, False], linked=[7]),
        make_habit(3, [True, True], linked=[8]),
    ]
    assert calculate_identity_score(7, habits) == 50
    assert calculate_identity_score(99, habits) == 0


def test_progress_for_month_slices_calendar_month():
    progress = [True] * 31 + [False] * 10
    habit = make_habit(1, progress)
    assert progress_for_month(habit, 10, 2025) == [True] * 31
    assert progress_for_month(habit, 11, 2025) == [False] * 10
    assert progress_for_month(habit, 12, 2025) == []


def test_toggle_flips_a_day():
    assert toggle_progress([False, False], 1) == [False, True]
    assert toggle_progress([False, True], 1) == [False, False]


def test_toggle_past_end_extends_with_false():
    updated = toggle_progress([True], 3)
    assert updated == [True, False, False, True]


def test_toggle_does_not_mutate_input():
    original = [False]
    toggle_progress(original, 0)
    assert original == [False]


def test_toggle_rejects_negative_index():
    with pytest.raises(ValueError):
        toggle_progress([False], -1)
