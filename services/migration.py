"""
Migration Service

Runs the enabled_days -> enabled_categories migration end to end:
read, convert, write, verify. A run moves through

    NotStarted -> ColumnEnsured -> Converted -> Verified -> Cleanup

Cleanup (dropping the legacy column) is never automatic. It must be asked
for explicitly and is refused unless verification passed.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional

from constants import SETTINGS_TABLE, LEGACY_COLUMN, CATEGORIES_COLUMN
from .categories import DaySettingsError, CONVERTED, UNCHANGED, convert_all
from .storage import BackendUnavailable
from .verification import (
    STATUS_CONVERTED, STATUS_ALREADY_NEW,
    VerificationReport, verify, verify_records,
)

logger = logging.getLogger(__name__)


class MigrationState(Enum):
    NOT_STARTED = 'NotStarted'
    COLUMN_ENSURED = 'ColumnEnsured'
    CONVERTED = 'Converted'
    VERIFIED = 'Verified'
    CLEANUP = 'Cleanup'


# Verified is reachable straight from NotStarted for verify-only runs and
# for databases without a settings table.
TRANSITIONS = {
    MigrationState.NOT_STARTED: {MigrationState.COLUMN_ENSURED, MigrationState.VERIFIED},
    MigrationState.COLUMN_ENSURED: {MigrationState.CONVERTED},
    MigrationState.CONVERTED: {MigrationState.VERIFIED},
    MigrationState.VERIFIED: {MigrationState.CLEANUP},
    MigrationState.CLEANUP: set(),
}


class MigrationStateError(DaySettingsError):
    """Raised on an out-of-order step, e.g. cleanup before a passing verification."""
    pass


@dataclass
class MigrationSummary:
    """Counts and findings for one run; render() gives the console summary."""
    backend: str
    dry_run: bool = False
    verify_only: bool = False
    table_exists: bool = True
    total: int = 0
    converted: int = 0
    unchanged: int = 0
    failed: Dict[str, DaySettingsError] = field(default_factory=dict)
    column_added: bool = False
    backup_created: bool = False
    backup_dropped: bool = False
    legacy_dropped: bool = False
    verification: Optional[VerificationReport] = None

    @property
    def exit_code(self):
        """0 on full success, 2 if any record failed or (after a real run) fails verification."""
        if self.failed:
            return 2
        if self.verification is not None and not self.verification.passed and not self.dry_run:
            return 2
        return 0

    def render(self):
        mode = 'verify only' if self.verify_only else ('dry run' if self.dry_run else 'run')
        lines = [
            '=' * 50,
            f"Weekly day settings migration ({self.backend}, {mode})",
            '=' * 50,
        ]
        if not self.table_exists:
            lines.append(f"Table {SETTINGS_TABLE} does not exist. Nothing to migrate.")
            return '\n'.join(lines)

        if not self.verify_only:
            would = 'Would convert' if self.dry_run else 'Converted'
            lines += [
                f"Records found:     {self.total}",
                f"{would + ':':<19}{self.converted}",
                f"Already correct:   {self.unchanged}",
                f"Failed:            {len(self.failed)}",
            ]
            for key, error in self.failed.items():
                lines.append(f"  - {key}: {error}")
            if self.column_added:
                verb = 'would be added' if self.dry_run else 'added'
                lines.append(f"Column {CATEGORIES_COLUMN} {verb}")
            if self.backup_created:
                lines.append("Backup table created before writing")
            if self.backup_dropped:
                lines.append("Backup table dropped after a successful run")

        report = self.verification
        if report is not None:
            lines.append(
                f"Verification: {report.total} checked, "
                f"{report.count(STATUS_CONVERTED)} converted, "
                f"{report.count(STATUS_ALREADY_NEW)} already new, "
                f"{len(report.failures)} need attention"
            )
            for check in report.failures:
                lines.append(f"  - {check.week_start_date}: {'; '.join(check.problems)}")
            for warning in report.warnings:
                lines.append(f"  ! {warning}")

            if self.legacy_dropped:
                lines.append(f"Column {LEGACY_COLUMN} dropped")
            elif report.safe_to_drop_legacy and not self.dry_run:
                lines += [
                    f"Safe to remove the old {LEGACY_COLUMN} column:",
                    f"  ALTER TABLE {SETTINGS_TABLE} DROP COLUMN {LEGACY_COLUMN};",
                    "  (or re-run with --drop-legacy)",
                ]
            elif report.failures:
                lines.append(f"Do NOT remove {LEGACY_COLUMN} yet: {len(report.failures)} records need attention")
        return '\n'.join(lines)


class MigrationRun:
    """One migration run against one backend."""

    def __init__(self, backend, week_starts_on=0):
        self.backend = backend
        self.week_starts_on = week_starts_on
        self.state = MigrationState.NOT_STARTED
        self.summary = MigrationSummary(backend=backend.name)

    def _advance(self, state):
        if state not in TRANSITIONS[self.state]:
            raise MigrationStateError(f"Cannot move from {self.state.value} to {state.value}")
        logger.debug(f"Migration state: {self.state.value} -> {state.value}")
        self.state = state

    def execute(self, dry_run=False, prefer_legacy=False, sample=None):
        """
        Read, convert, write and verify.

        Args:
            dry_run: convert and verify in memory only; nothing is written
            prefer_legacy: re-derive categories from enabled_days even where
                they already look complete
            sample: verify only the first N records

        Returns:
            MigrationSummary

        Raises:
            BackendConnectionError: database unreachable
            WriteFailure: embedded batch rolled back
        """
        summary = self.summary
        summary.dry_run = dry_run
        backend = self.backend

        try:
            records = backend.read_records()
        except BackendUnavailable as e:
            logger.info(f"{e}, nothing to migrate")
            summary.table_exists = False
            summary.verification = VerificationReport(table_exists=False)
            self._advance(MigrationState.VERIFIED)
            return summary
        summary.total = len(records)

        if dry_run:
            summary.column_added = CATEGORIES_COLUMN not in backend.columns()
        else:
            summary.backup_created = backend.ensure_backup()
            summary.column_added = backend.ensure_categories_column()
        self._advance(MigrationState.COLUMN_ENSURED)

        results = convert_all(records, prefer_legacy=prefer_legacy)
        summary.unchanged = sum(1 for result in results if result.outcome == UNCHANGED)
        for result in results:
            if not result.ok:
                summary.failed[result.record.week_start_date] = result.error

        if dry_run:
            summary.converted = sum(1 for result in results if result.outcome == CONVERTED)
        else:
            report = backend.write(results)
            summary.converted = len(report.written)
            summary.failed.update(report.failed)
        self._advance(MigrationState.CONVERTED)
        logger.info(
            f"Converted {summary.converted}, already correct {summary.unchanged}, "
            f"failed {len(summary.failed)}"
        )

        if dry_run:
            # Failed records keep their original data, as they would on disk
            checked = [result.record for result in results]
            if sample is not None:
                checked = checked[:sample]
            summary.verification = verify_records(checked, week_starts_on=self.week_starts_on)
        else:
            summary.verification = verify(backend, limit=sample, week_starts_on=self.week_starts_on)
            if sample is None and not summary.failed and summary.verification.passed:
                # A later run must snapshot the table as it is then
                summary.backup_dropped = backend.drop_backup()
        self._advance(MigrationState.VERIFIED)
        return summary

    def verify_only(self, sample=None):
        """Verify without converting anything."""
        self.summary.verify_only = True
        report = verify(self.backend, limit=sample, week_starts_on=self.week_starts_on)
        self.summary.verification = report
        self.summary.table_exists = report.table_exists
        self.summary.total = report.total
        self._advance(MigrationState.VERIFIED)
        return self.summary

    def cleanup(self, drop_backup=True):
        """
        Drop the legacy enabled_days column (and the backup table).

        Every record is verified again first, whatever sample the run used.

        Raises:
            MigrationStateError: unless the run is Verified with no failures
                and the full table verifies
        """
        report = self.summary.verification
        if self.state is not MigrationState.VERIFIED or report is None:
            raise MigrationStateError("Cleanup requires a verified run")
        if self.summary.dry_run:
            raise MigrationStateError("Cleanup is not available in a dry run")
        if self.summary.failed or not report.safe_to_drop_legacy:
            raise MigrationStateError(
                f"Cleanup refused: {len(report.failures)} records need attention"
            )
        full = verify(self.backend, week_starts_on=self.week_starts_on)
        if not full.safe_to_drop_legacy:
            raise MigrationStateError(
                f"Cleanup refused: {len(full.failures)} of {full.total} records need attention"
            )
        self.summary.legacy_dropped = self.backend.drop_legacy_column()
        if drop_backup:
            self.backend.drop_backup()
        self._advance(MigrationState.CLEANUP)
        return self.summary.legacy_dropped


def migrate(backend, dry_run=False, prefer_legacy=False, sample=None, week_starts_on=0):
    """Convenience wrapper: execute one run and return its summary."""
    run = MigrationRun(backend, week_starts_on=week_starts_on)
    return run.execute(dry_run=dry_run, prefer_legacy=prefer_legacy, sample=sample)
