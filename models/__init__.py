"""
Models Package

Exports the db instance, the weekly settings model and the raw record type
used by the migration pipeline.
"""

from .base import db

from .weekly_settings import WeeklyDaySettings, WeeklySettingsRecord, default_categories

__all__ = [
    'db',
    'WeeklyDaySettings',
    'WeeklySettingsRecord',
    'default_categories',
]
