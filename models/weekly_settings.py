"""
Weekly Day Settings Model

Contains the WeeklyDaySettings model and the plain WeeklySettingsRecord
used by the migration pipeline, which works on raw rows because the legacy
and category columns may or may not exist at run time.
"""

import uuid
from dataclasses import dataclass, replace
from typing import Any, Optional

from sqlalchemy.sql import func

from constants import DAY_NAMES, MEAL_SLOTS
from .base import db


def default_categories():
    """All seven days with every meal slot enabled (fresh copy)."""
    return {day: {slot: True for slot in MEAL_SLOTS} for day in DAY_NAMES}


class WeeklyDaySettings(db.Model):
    """Per-week meal slot availability, keyed by the week's start date.

    The legacy enabled_days column is not mapped: it only exists until the
    migration cleanup drops it, so day-level code reads it with plain SQL.
    """
    __tablename__ = 'weekly_day_settings'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    week_start_date = db.Column(db.Date, unique=True, nullable=False, index=True)
    enabled_categories = db.Column(db.JSON, nullable=False, default=default_categories)
    last_updated_by = db.Column(db.String(36), nullable=True)
    created_at = db.Column(db.DateTime, server_default=func.now())
    updated_at = db.Column(db.DateTime, server_default=func.now(), onupdate=func.now())


@dataclass
class WeeklySettingsRecord:
    """One weekly_day_settings row as read from either backend.

    enabled_days and enabled_categories hold whatever the driver returned:
    None, JSON text (SQLite) or an already decoded object (PostgreSQL).
    """
    id: Any
    week_start_date: str
    enabled_days: Any = None
    enabled_categories: Any = None
    last_updated_by: Optional[str] = None
    created_at: Any = None
    updated_at: Any = None

    def with_categories(self, categories, legacy=None) -> 'WeeklySettingsRecord':
        return replace(self, enabled_categories=categories, enabled_days=legacy)
