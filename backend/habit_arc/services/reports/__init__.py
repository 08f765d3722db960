"""
Reports module
Coach API aggregation and weekly summaries
"""
from . import coach
from . import weekly

__all__ = ['coach', 'weekly']
