"""
Storage Service

Reads and writes weekly_day_settings rows on either backend:
- embedded: SQLite file used in development. Writes happen in a single
  transaction that is rolled back as a whole on any error.
- relational: PostgreSQL server used in production. The table is copied
  to a backup table before the first write, then rows are updated one
  transaction at a time so a bad row does not stop the batch.

All statements are plain SQL through SQLAlchemy Core. Settings values are
bound as JSON text, which PostgreSQL casts to JSONB on assignment.
"""

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List

from sqlalchemy import inspect, text
from sqlalchemy.exc import DBAPIError, SQLAlchemyError

from constants import SETTINGS_TABLE, BACKUP_TABLE, LEGACY_COLUMN, CATEGORIES_COLUMN
from models import WeeklySettingsRecord
from utils.dates import week_key
from .categories import DaySettingsError, RecordParseError, decode_settings, is_well_formed

logger = logging.getLogger(__name__)


class BackendUnavailable(DaySettingsError):
    """Raised when the weekly_day_settings table does not exist (fresh install)."""
    pass


class BackendConnectionError(DaySettingsError):
    """Raised when the database cannot be reached."""
    pass


class WriteFailure(DaySettingsError):
    """Raised (or recorded) when persisting a converted record fails."""

    def __init__(self, week_start_date, reason):
        self.week_start_date = week_start_date
        self.reason = reason
        super().__init__(f"Week {week_start_date}: write failed ({reason})")


@dataclass
class WriteReport:
    """Which records were persisted and which failed, by week key."""
    written: List[str] = field(default_factory=list)
    failed: Dict[str, DaySettingsError] = field(default_factory=dict)

    @property
    def ok(self):
        return not self.failed


class StorageBackend(ABC):
    """Read/write/transaction primitives shared by both backends."""

    name = None

    def __init__(self, engine, backup_table=BACKUP_TABLE):
        self.engine = engine
        self.backup_table = backup_table

    def __repr__(self):
        return f"<{type(self).__name__} {self.engine.url.render_as_string(hide_password=True)}>"

    @property
    def json_column_type(self):
        return 'JSONB' if self.engine.dialect.name == 'postgresql' else 'TEXT'

    def connect(self):
        try:
            return self.engine.connect()
        except DBAPIError as e:
            logger.error(f"Could not connect to {self!r}: {e}")
            raise BackendConnectionError(str(e.orig or e)) from e

    # ============================================
    # SCHEMA
    # ============================================

    def table_exists(self, table_name=SETTINGS_TABLE):
        with self.connect() as conn:
            return inspect(conn).has_table(table_name)

    def columns(self, table_name=SETTINGS_TABLE):
        """Column names of a table, or an empty list if it does not exist."""
        with self.connect() as conn:
            inspector = inspect(conn)
            if not inspector.has_table(table_name):
                return []
            return [col['name'] for col in inspector.get_columns(table_name)]

    def ensure_categories_column(self):
        """
        Add a nullable enabled_categories column if it is missing.

        No server default is set, so rows written before the column existed
        read as NULL and are picked up by the conversion.

        Returns:
            True if the column was added, False if it already existed
        """
        existing = self.columns()
        if not existing:
            raise BackendUnavailable(f"Table {SETTINGS_TABLE} does not exist")
        if CATEGORIES_COLUMN in existing:
            return False
        with self.connect() as conn:
            conn.execute(text(
                f"ALTER TABLE {SETTINGS_TABLE} ADD COLUMN {CATEGORIES_COLUMN} {self.json_column_type}"
            ))
            conn.commit()
        logger.info(f"Added {CATEGORIES_COLUMN} column to {SETTINGS_TABLE}")
        return True

    def drop_legacy_column(self):
        """Drop enabled_days. Returns False if it was already gone."""
        if LEGACY_COLUMN not in self.columns():
            return False
        with self.connect() as conn:
            conn.execute(text(f"ALTER TABLE {SETTINGS_TABLE} DROP COLUMN {LEGACY_COLUMN}"))
            conn.commit()
        logger.info(f"Dropped {LEGACY_COLUMN} column from {SETTINGS_TABLE}")
        return True

    # ============================================
    # BACKUP
    # ============================================

    def ensure_backup(self):
        """Snapshot the table before writing. Only the relational backend keeps one."""
        return False

    def has_backup(self):
        return self.table_exists(self.backup_table)

    def drop_backup(self):
        if not self.has_backup():
            return False
        with self.connect() as conn:
            conn.execute(text(f"DROP TABLE {self.backup_table}"))
            conn.commit()
        logger.info(f"Dropped backup table {self.backup_table}")
        return True

    def restore_backup(self):
        """
        Replace the table contents with the backup, then drop the backup.

        Columns added after the backup was taken are left NULL.
        """
        if not self.has_backup():
            raise BackendUnavailable(f"Backup table {self.backup_table} does not exist")
        backup_columns = set(self.columns(self.backup_table))
        shared = [col for col in self.columns() if col in backup_columns]
        column_list = ', '.join(shared)
        with self.connect() as conn, conn.begin():
            conn.execute(text(f"DELETE FROM {SETTINGS_TABLE}"))
            result = conn.execute(text(
                f"INSERT INTO {SETTINGS_TABLE} ({column_list}) "
                f"SELECT {column_list} FROM {self.backup_table}"
            ))
            conn.execute(text(f"DROP TABLE {self.backup_table}"))
        logger.info(f"Restored {result.rowcount} rows from {self.backup_table}")
        return result.rowcount

    # ============================================
    # READ
    # ============================================

    def read_records(self, limit=None):
        """
        Read every weekly settings row, ordered by week.

        Raises:
            BackendUnavailable: if the table does not exist
        """
        if not self.table_exists():
            raise BackendUnavailable(f"Table {SETTINGS_TABLE} does not exist")
        query = f"SELECT * FROM {SETTINGS_TABLE} ORDER BY week_start_date"
        params = {}
        if limit is not None:
            query += " LIMIT :limit"
            params['limit'] = int(limit)
        with self.connect() as conn:
            rows = conn.execute(text(query), params).mappings().all()
        records = [row_to_record(row) for row in rows]
        logger.info(f"Read {len(records)} records from {SETTINGS_TABLE}")
        return records

    # ============================================
    # WRITE
    # ============================================

    @abstractmethod
    def write(self, results):
        """Persist converted records and return a WriteReport."""

    def _pending(self, results):
        return [result.record for result in results if result.ok and result.changed]


class EmbeddedBackend(StorageBackend):
    """SQLite: the whole batch commits or rolls back together."""

    name = 'embedded'

    def write(self, results):
        """
        Persist converted records in one transaction.

        Raises:
            WriteFailure: on any error; nothing from the batch is kept
        """
        report = WriteReport()
        current = None
        try:
            with self.connect() as conn, conn.begin():
                for record in self._pending(results):
                    current = record.week_start_date
                    update_categories(conn, record)
                    report.written.append(record.week_start_date)
        except SQLAlchemyError as e:
            logger.error(f"Batch rolled back at week {current}: {e}")
            raise WriteFailure(current, str(e)) from e
        logger.info(f"Wrote {len(report.written)} records in one transaction")
        return report


class RelationalBackend(StorageBackend):
    """PostgreSQL: backup table first, then one transaction per row."""

    name = 'relational'

    def ensure_backup(self):
        """
        Copy the table to the backup table.

        An existing backup is kept, since it holds the state from before an
        interrupted run.
        """
        if self.has_backup():
            logger.warning(f"Backup table {self.backup_table} already exists, keeping it")
            return False
        with self.connect() as conn:
            conn.execute(text(f"CREATE TABLE {self.backup_table} AS SELECT * FROM {SETTINGS_TABLE}"))
            conn.commit()
        logger.info(f"Created backup table {self.backup_table}")
        return True

    def write(self, results):
        """Persist converted records row by row; failures are recorded and skipped."""
        report = WriteReport()
        pending = self._pending(results)
        if pending and not self.has_backup():
            self.ensure_backup()
        with self.connect() as conn:
            for record in pending:
                try:
                    with conn.begin():
                        update_categories(conn, record)
                except SQLAlchemyError as e:
                    logger.warning(f"Week {record.week_start_date}: update failed: {e}")
                    report.failed[record.week_start_date] = WriteFailure(record.week_start_date, str(e))
                    continue
                report.written.append(record.week_start_date)
        logger.info(f"Wrote {len(report.written)} records, {len(report.failed)} failed")
        return report


BACKENDS = {
    EmbeddedBackend.name: EmbeddedBackend,
    RelationalBackend.name: RelationalBackend,
}


def infer_backend_name(url):
    """Pick the backend from a database URL's dialect."""
    return RelationalBackend.name if str(url).startswith('postgres') else EmbeddedBackend.name


def get_backend(name, engine, backup_table=BACKUP_TABLE):
    """Instantiate a backend by name ('embedded' or 'relational')."""
    try:
        backend_class = BACKENDS[name]
    except KeyError:
        raise ValueError(f"Unknown backend {name!r}, expected one of: {', '.join(BACKENDS)}")
    return backend_class(engine, backup_table=backup_table)


def read_legacy_records(backend, limit=None):
    """Read all weekly settings rows from a backend."""
    return backend.read_records(limit=limit)


def row_to_record(row):
    return WeeklySettingsRecord(
        id=row.get('id'),
        week_start_date=week_key(row.get('week_start_date')),
        enabled_days=row.get(LEGACY_COLUMN),
        enabled_categories=row.get(CATEGORIES_COLUMN),
        last_updated_by=row.get('last_updated_by'),
        created_at=row.get('created_at'),
        updated_at=row.get('updated_at'),
    )


def classify_record(record):
    """Label a record's storage format: new, legacy, mixed, incomplete, empty or unparseable."""
    try:
        legacy = decode_settings(record.enabled_days, record.week_start_date, LEGACY_COLUMN)
        categories = decode_settings(record.enabled_categories, record.week_start_date, CATEGORIES_COLUMN)
    except RecordParseError:
        return 'unparseable'
    if categories is not None and not is_well_formed(categories):
        return 'incomplete'
    if categories is not None:
        return 'mixed' if legacy is not None else 'new'
    return 'legacy' if legacy is not None else 'empty'


def describe_table(backend):
    """
    Summarize the table's columns and the format of each record.

    Returns:
        dict with 'exists', 'columns' and 'formats' (format -> count)
    """
    columns = backend.columns()
    if not columns:
        return {'exists': False, 'columns': [], 'formats': {}}
    formats = {}
    for record in backend.read_records():
        label = classify_record(record)
        formats[label] = formats.get(label, 0) + 1
    return {
        'exists': True,
        'columns': columns,
        'formats': formats,
        'has_backup': backend.has_backup(),
    }


def update_categories(conn, record):
    """Write one record's enabled_categories (as JSON text) and bump updated_at."""
    conn.execute(
        text(
            f"UPDATE {SETTINGS_TABLE} "
            f"SET {CATEGORIES_COLUMN} = :categories, updated_at = CURRENT_TIMESTAMP "
            f"WHERE id = :id"
        ),
        {'categories': json.dumps(record.enabled_categories), 'id': record.id},
    )
