"""
Habit progress model - streaks and completion statistics
All values are recomputed from the boolean-per-day progress array, never stored.
"""
from calendar import monthrange
from datetime import date
from typing import List, Sequence, Tuple

from habit_arc.models.habit import Habit, HabitStats, Streak
from habit_arc.utils.timezone import date_for_day_index, day_index_for_date


def format_day(day_index: int) -> str:
    """Short dd/MM label for a day index"""
    return date_for_day_index(day_index).strftime("%d/%m")


def completed_count(progress: Sequence[bool]) -> int:
    """Number of completed days"""
    return sum(1 for done in progress if done)


def current_streak(progress: Sequence[bool]) -> int:
    """
    Count trailing completed days

    Examples:
        [True, True, False, True] -> 1
        [True, True, True] -> 3
        [False] -> 0
    """
    streak = 0
    for done in reversed(progress):
        if not done:
            break
        streak += 1
    return streak


def _runs(progress: Sequence[bool]) -> List[Tuple[int, int]]:
    """(start_index, length) for every run of completed days"""
    runs = []
    start = None
    for i, done in enumerate(progress):
        if done and start is None:
            start = i
        elif not done and start is not None:
            runs.append((start, i - start))
            start = None
    if start is not None:
        runs.append((start, len(progress) - start))
    return runs


def longest_streak(progress: Sequence[bool]) -> int:
    """Longest run of completed days anywhere in the window"""
    return max((length for _, length in _runs(progress)), default=0)


def streak_runs(progress: Sequence[bool]) -> List[Streak]:
    """All runs of completed days with their calendar boundaries"""
    return [
        Streak(length=length, start_date=format_day(start), end_date=format_day(start + length - 1))
        for start, length in _runs(progress)
    ]


def completion_percentage(progress: Sequence[bool], total_days: int) -> int:
    """Completed days over total days, as a rounded integer percentage"""
    if total_days <= 0:
        return 0
    return int(round(completed_count(progress) / total_days * 100))


def completion_rate(progress: Sequence[bool], total_days: int) -> float:
    """Completed days over total days, as a percentage with one decimal"""
    if total_days <= 0:
        return 0.0
    return round(completed_count(progress) / total_days * 100, 1)


def calculate_habit_stats(habit: Habit) -> HabitStats:
    """Compute the full statistics block for a habit"""
    return HabitStats(
        completed=completed_count(habit.progress),
        percentage=completion_percentage(habit.progress, habit.total_days),
        current_streak=current_streak(habit.progress),
        longest_streak=longest_streak(habit.progress),
        streaks=streak_runs(habit.progress),
        total_days=habit.total_days,
    )


def calculate_identity_score(identity_id: int, habits: Sequence[Habit]) -> int:
    """
    Average completion percentage of the habits linked to an identity

    Returns:
        Rounded percentage, 0 when no habit is linked
    """
    linked = [h for h in habits if identity_id in h.linked_identities]
    if not linked:
        return 0
    total = sum(completion_percentage(h.progress, h.total_days) for h in linked)
    return int(round(total / len(linked)))


def progress_for_month(habit: Habit, month: int, year: int) -> List[bool]:
    """
    Slice of a habit's progress covering one calendar month

    Args:
        habit: The habit
        month: Month number, 1-12
        year: Four digit year
    """
    first = date(year, month, 1)
    last = date(year, month, monthrange(year, month)[1])
    start_index = day_index_for_date(first)
    end_index = min(len(habit.progress) - 1, day_index_for_date(last))
    if end_index < start_index:
        return []
    return list(habit.progress[start_index:end_index + 1])


def toggle_progress(progress: Sequence[bool], day_index: int) -> List[bool]:
    """
    Flip one day of a progress array

    The array is extended with False up to day_index when it is too short,
    so toggling past the end always marks that day complete.
    """
    if day_index < 0:
        raise ValueError("day_index must be non-negative")
    updated = list(progress)
    if day_index >= len(updated):
        updated.extend([False] * (day_index + 1 - len(updated)))
    updated[day_index] = not updated[day_index]
    return updated
