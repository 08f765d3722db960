"""
Habits module - Core habit data, progress statistics and persistence adapters
"""
from . import progress
from . import store
from . import repository

from .progress import (
    calculate_habit_stats,
    calculate_identity_score,
    current_streak,
    longest_streak,
    toggle_progress
)

from .store import HabitStore, get_habit_store

__all__ = [
    'progress',
    'store',
    'repository',
    'calculate_habit_stats',
    'calculate_identity_score',
    'current_streak',
    'longest_streak',
    'toggle_progress',
    'HabitStore',
    'get_habit_store'
]
