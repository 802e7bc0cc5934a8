"""
Constants Package

Exports the fixed day, slot and table names used throughout the application.
"""

from .days import (
    DAY_NAMES,
    MEAL_SLOTS,
    SETTINGS_TABLE,
    BACKUP_TABLE,
    LEGACY_COLUMN,
    CATEGORIES_COLUMN,
    DEFAULT_CATEGORIES_JSON,
)

__all__ = [
    'DAY_NAMES',
    'MEAL_SLOTS',
    'SETTINGS_TABLE',
    'BACKUP_TABLE',
    'LEGACY_COLUMN',
    'CATEGORIES_COLUMN',
    'DEFAULT_CATEGORIES_JSON',
]
