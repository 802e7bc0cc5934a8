"""
Verification Service

Re-reads weekly settings and checks every record is in the category
format: all seven days present, every slot boolean, and slots matching the
legacy day flag wherever the legacy value is still stored. Never writes.
"""

import logging
from dataclasses import dataclass, field
from typing import List

from constants import DAY_NAMES, MEAL_SLOTS, LEGACY_COLUMN, CATEGORIES_COLUMN
from utils.dates import is_week_start
from .categories import RecordParseError, decode_settings
from .storage import BackendUnavailable

logger = logging.getLogger(__name__)

# Record statuses, as reported by the old verify script
STATUS_CONVERTED = 'converted'
STATUS_ALREADY_NEW = 'already_new'
STATUS_NEEDS_FIX = 'needs_fix'


@dataclass
class RecordCheck:
    week_start_date: str
    status: str
    problems: List[str] = field(default_factory=list)

    @property
    def passed(self):
        return self.status != STATUS_NEEDS_FIX


@dataclass
class VerificationReport:
    checks: List[RecordCheck] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    table_exists: bool = True

    @property
    def total(self):
        return len(self.checks)

    @property
    def failures(self):
        return [check for check in self.checks if not check.passed]

    @property
    def passed(self):
        return not self.failures

    def count(self, status):
        return sum(1 for check in self.checks if check.status == status)

    @property
    def safe_to_drop_legacy(self):
        return self.table_exists and self.passed and self.total > 0


def check_record(record):
    """Check one record; returns a RecordCheck."""
    key = record.week_start_date
    try:
        legacy = decode_settings(record.enabled_days, key, LEGACY_COLUMN)
        categories = decode_settings(record.enabled_categories, key, CATEGORIES_COLUMN)
    except RecordParseError as e:
        return RecordCheck(key, STATUS_NEEDS_FIX, [str(e)])

    if categories is None:
        reason = 'still in legacy format only' if legacy is not None else 'no settings data'
        return RecordCheck(key, STATUS_NEEDS_FIX, [reason])

    problems = []
    for day in DAY_NAMES:
        slots = categories.get(day)
        if not isinstance(slots, dict):
            problems.append(f"{day}: missing")
            continue
        for slot in MEAL_SLOTS:
            if not isinstance(slots.get(slot), bool):
                problems.append(f"{day}.{slot}: not a boolean")
        if legacy is not None:
            expected = legacy.get(day) is not False
            mismatched = [slot for slot in MEAL_SLOTS if slots.get(slot) is not expected]
            if mismatched:
                problems.append(f"{day}: legacy={expected}, mismatched {', '.join(mismatched)}")

    if problems:
        return RecordCheck(key, STATUS_NEEDS_FIX, problems)
    return RecordCheck(key, STATUS_CONVERTED if legacy is not None else STATUS_ALREADY_NEW)


def verify_records(records, week_starts_on=0):
    """Verify records that are already in memory (used by dry runs)."""
    report = VerificationReport()
    for record in records:
        check = check_record(record)
        report.checks.append(check)
        if not check.passed:
            logger.warning(f"Week {check.week_start_date} needs attention: {'; '.join(check.problems)}")
        if not is_week_start(record.week_start_date, week_starts_on):
            report.warnings.append(f"Week key {record.week_start_date} is not a week start")
    return report


def verify(backend, limit=None, week_starts_on=0):
    """
    Re-read persisted records and check them.

    Args:
        backend: StorageBackend to read from
        limit: only check the first N records by week
        week_starts_on: weekday number keys are expected to fall on (0 = Monday)

    Returns:
        VerificationReport. A missing table yields an empty, passing report.
    """
    try:
        records = backend.read_records(limit=limit)
    except BackendUnavailable:
        logger.info("Nothing to verify, settings table does not exist")
        return VerificationReport(table_exists=False)
    report = verify_records(records, week_starts_on=week_starts_on)
    logger.info(f"Verified {report.total} records, {len(report.failures)} need attention")
    return report
