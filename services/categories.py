"""
Category Conversion Service

The day -> meal slot default policy and the conversion engine that turns a
legacy weekly settings row into the enabled_categories format.

Conversion rules:
- A day absent from enabled_days is enabled. Only an explicit false
  disables it, and then all four slots of that day are disabled.
- Categories that are already well formed (all seven days, all four
  boolean slots) are left exactly as they are, so re-running is a no-op.
- When both columns are present and the categories are incomplete, the
  boolean slots that exist win and the legacy value fills the gaps.
"""

import json
import logging
from dataclasses import dataclass
from typing import Optional

from constants import DAY_NAMES, MEAL_SLOTS, LEGACY_COLUMN, CATEGORIES_COLUMN
from models import WeeklySettingsRecord, default_categories

logger = logging.getLogger(__name__)

CONVERTED = 'converted'
UNCHANGED = 'unchanged'
FAILED = 'failed'


class DaySettingsError(Exception):
    """Base class for weekly day settings errors."""
    pass


class RecordParseError(DaySettingsError):
    """Raised when a record holds malformed JSON in one of its settings columns."""

    def __init__(self, week_start_date, column, reason):
        self.week_start_date = week_start_date
        self.column = column
        self.reason = reason
        super().__init__(f"Week {week_start_date}: could not parse {column} ({reason})")


def derive_categories(legacy_day):
    """Map one day's legacy flag to its four meal slots."""
    enabled = legacy_day is not False
    return {slot: enabled for slot in MEAL_SLOTS}


def is_well_formed(categories):
    """True if categories has exactly the seven days, each with exactly four boolean slots."""
    if not isinstance(categories, dict) or set(categories) != set(DAY_NAMES):
        return False
    for day in DAY_NAMES:
        slots = categories[day]
        if not isinstance(slots, dict) or set(slots) != set(MEAL_SLOTS):
            return False
        if not all(isinstance(slots[slot], bool) for slot in MEAL_SLOTS):
            return False
    return True


def decode_settings(value, week_start_date, column):
    """
    Decode a settings column value into a dict.

    Returns None for NULL, empty text or a JSON null. Raises RecordParseError for
    malformed JSON or JSON that is not an object.
    """
    if value is None:
        return None
    if isinstance(value, (bytes, bytearray)):
        value = value.decode('utf-8', errors='replace')
    if isinstance(value, str):
        if not value.strip():
            return None
        try:
            value = json.loads(value)
        except ValueError as e:
            raise RecordParseError(week_start_date, column, str(e))
    if value is None:
        return None
    if not isinstance(value, dict):
        raise RecordParseError(week_start_date, column, f"expected an object, got {type(value).__name__}")
    return value


def merge_categories(legacy, categories):
    """Build a complete category map, keeping existing boolean slots and filling gaps from legacy."""
    legacy = legacy or {}
    categories = categories if isinstance(categories, dict) else {}
    merged = {}
    for day in DAY_NAMES:
        fallback = derive_categories(legacy.get(day))
        existing = categories.get(day)
        if not isinstance(existing, dict):
            existing = {}
        merged[day] = {
            slot: existing[slot] if isinstance(existing.get(slot), bool) else fallback[slot]
            for slot in MEAL_SLOTS
        }
    return merged


@dataclass
class ConversionResult:
    """Outcome of converting a single record."""
    record: WeeklySettingsRecord
    outcome: str
    error: Optional[RecordParseError] = None

    @property
    def ok(self):
        return self.error is None

    @property
    def changed(self):
        return self.outcome == CONVERTED


def convert(record, prefer_legacy=False):
    """
    Convert one record to the enabled_categories format.

    Args:
        record: WeeklySettingsRecord as read from storage
        prefer_legacy: re-derive from enabled_days even when the stored
            categories are already well formed (repairs rows pre-filled by
            a column default)

    Returns:
        ConversionResult. On success the record carries decoded legacy data
        and a complete category map; outcome is CONVERTED if the stored
        categories need to be rewritten, UNCHANGED otherwise.
    """
    try:
        legacy = decode_settings(record.enabled_days, record.week_start_date, LEGACY_COLUMN)
        categories = decode_settings(record.enabled_categories, record.week_start_date, CATEGORIES_COLUMN)
    except RecordParseError as e:
        logger.warning(str(e))
        return ConversionResult(record=record, outcome=FAILED, error=e)

    if prefer_legacy and legacy is not None:
        new_categories = {day: derive_categories(legacy.get(day)) for day in DAY_NAMES}
    elif is_well_formed(categories):
        new_categories = {day: dict(categories[day]) for day in DAY_NAMES}
    elif legacy is None and categories is None:
        new_categories = default_categories()
    else:
        new_categories = merge_categories(legacy, categories)

    outcome = UNCHANGED if new_categories == categories else CONVERTED
    logger.debug("Week %s: %s", record.week_start_date, outcome)
    return ConversionResult(record=record.with_categories(new_categories, legacy), outcome=outcome)


def convert_all(records, prefer_legacy=False):
    """Convert a batch; per-record failures are returned, never raised."""
    return [convert(record, prefer_legacy=prefer_legacy) for record in records]
