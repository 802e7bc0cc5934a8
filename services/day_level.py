"""
Day-Level Settings Service

Operations the runtime API performs on a week's enabled_categories:
enable or disable every meal slot of a day at once, check whether a day is
fully enabled, and summarize a week. They read and write exactly the shape
the migration produces.
"""

import json
import logging

from sqlalchemy import inspect, text

from constants import DAY_NAMES, MEAL_SLOTS, SETTINGS_TABLE, LEGACY_COLUMN
from models import db, WeeklyDaySettings, WeeklySettingsRecord, default_categories
from utils.dates import parse_week_key, week_key
from .categories import DaySettingsError, convert, derive_categories

logger = logging.getLogger(__name__)


class InvalidDayError(DaySettingsError, ValueError):
    """Raised when a day name is not one of sunday..saturday."""
    pass


def _validate_day(day):
    name = str(day).strip().lower()
    if name not in DAY_NAMES:
        raise InvalidDayError(f"Invalid day: {day}. Must be one of: {', '.join(DAY_NAMES)}")
    return name


def _parse_week(week_start):
    parsed = parse_week_key(week_start)
    if parsed is None:
        raise ValueError(f"Invalid week start: {week_start!r}")
    return parsed


def _find(week_start):
    return WeeklyDaySettings.query.filter_by(week_start_date=week_start).first()


def _has_legacy_column():
    inspector = inspect(db.session.connection())
    return any(col['name'] == LEGACY_COLUMN for col in inspector.get_columns(SETTINGS_TABLE))


def _stored_legacy(row):
    """Raw enabled_days value for a row, or None once the column is gone."""
    if not _has_legacy_column():
        return None
    return db.session.execute(
        text(f"SELECT {LEGACY_COLUMN} FROM {SETTINGS_TABLE} WHERE id = :id"),
        {'id': row.id},
    ).scalar()


def _store_legacy(row, legacy):
    db.session.flush()
    db.session.execute(
        text(f"UPDATE {SETTINGS_TABLE} SET {LEGACY_COLUMN} = :legacy WHERE id = :id"),
        {'legacy': json.dumps(legacy), 'id': row.id},
    )


def _current_state(row):
    """
    Complete category map and decoded legacy map for a stored row.

    Gaps in the categories are filled from legacy data.
    """
    record = WeeklySettingsRecord(
        id=row.id,
        week_start_date=week_key(row.week_start_date),
        enabled_days=_stored_legacy(row),
        enabled_categories=row.enabled_categories,
    )
    result = convert(record)
    if not result.ok:
        logger.warning(f"Week {record.week_start_date}: unreadable settings, using defaults")
        return default_categories(), None
    return result.record.enabled_categories, result.record.enabled_days


def _current_categories(row):
    return _current_state(row)[0]


def _as_dict(row, week_start, categories):
    return {
        'week_start_date': week_start.isoformat(),
        'enabled_categories': categories,
        'last_updated_by': row.last_updated_by if row is not None else None,
        'updated_at': row.updated_at if row is not None else None,
    }


def get_week_settings(week_start):
    """
    Settings for a week. A week with no stored row gets the all-enabled
    default; nothing is written.
    """
    start = _parse_week(week_start)
    row = _find(start)
    if row is None:
        return _as_dict(None, start, default_categories())
    return _as_dict(row, start, _current_categories(row))


def toggle_day(week_start, day, enabled, user_id=None):
    """
    Enable or disable all four meal slots of one day, creating the week's
    row if needed.

    Returns:
        The week's settings after the change
    """
    day = _validate_day(day)
    if not isinstance(enabled, bool):
        raise ValueError("enabled must be a boolean")
    start = _parse_week(week_start)

    row = _find(start)
    if row is None:
        row = WeeklyDaySettings(week_start_date=start)
        db.session.add(row)
        categories, legacy = default_categories(), None
    else:
        categories, legacy = _current_state(row)

    categories[day] = derive_categories(enabled)
    # Assign a new object so the JSON column is flagged dirty
    row.enabled_categories = categories
    row.last_updated_by = user_id
    if legacy is not None:
        # Keep the legacy flag in step until the column is dropped
        _store_legacy(row, dict(legacy, **{day: enabled}))
    db.session.commit()
    logger.info(f"Week {start.isoformat()}: {day} {'enabled' if enabled else 'disabled'}")
    return _as_dict(row, start, categories)


def _fully_enabled(categories, day):
    slots = categories.get(day)
    if not isinstance(slots, dict):
        return True
    return all(slots.get(slot) is not False for slot in MEAL_SLOTS)


def is_day_fully_enabled(week_start, day):
    """True if every meal slot of the day is enabled. Unknown days are never enabled."""
    try:
        day = _validate_day(day)
    except InvalidDayError:
        return False
    row = _find(_parse_week(week_start))
    if row is None:
        return True
    return _fully_enabled(_current_categories(row), day)


def get_week_summary(week_start):
    """Map of day name to whether that day is fully enabled."""
    row = _find(_parse_week(week_start))
    if row is None:
        return {day: True for day in DAY_NAMES}
    categories = _current_categories(row)
    return {day: _fully_enabled(categories, day) for day in DAY_NAMES}


def batch_toggle(week_start, day_settings, user_id=None):
    """
    Toggle several days at once. All day names are validated before any
    change is made.
    """
    if not isinstance(day_settings, dict):
        raise ValueError("day_settings must be a mapping of day name to boolean")
    for day in day_settings:
        _validate_day(day)

    updated = [
        toggle_day(week_start, day, enabled, user_id=user_id)
        for day, enabled in day_settings.items()
    ]
    return {
        'week_start_date': _parse_week(week_start).isoformat(),
        'updated_days': updated,
        'summary': get_week_summary(week_start),
    }
