"""
Business logic services
"""
from . import habits
from . import scheduler
from . import notifications
from . import external
from . import reports

__all__ = [
    'habits',
    'scheduler',
    'notifications',
    'external',
    'reports'
]
