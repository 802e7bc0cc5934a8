"""
Pytest configuration and shared fixtures.

Every test gets its own SQLite file under tmp_path. Legacy tables are
created with raw SQL in the shape the old application used, so the
migration sees exactly what it would find on a real database.
"""

import json

import pytest
from sqlalchemy import create_engine, text

from app import create_app
from models import db as _db
from services import EmbeddedBackend, RelationalBackend

# Mondays
WEEKS = ['2024-01-01', '2024-01-08', '2024-01-15', '2024-01-22', '2024-01-29']

LEGACY_SCHEMA = """
    CREATE TABLE weekly_day_settings (
        id TEXT PRIMARY KEY,
        week_start_date DATE NOT NULL UNIQUE,
        enabled_days TEXT,
        last_updated_by TEXT,
        created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
        updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
    )
"""

MIXED_SCHEMA = """
    CREATE TABLE weekly_day_settings (
        id TEXT PRIMARY KEY,
        week_start_date DATE NOT NULL UNIQUE,
        enabled_days TEXT,
        enabled_categories TEXT,
        last_updated_by TEXT,
        created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
        updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
    )
"""


def _encode(value):
    if value is None or isinstance(value, str):
        return value
    return json.dumps(value)


@pytest.fixture
def db_url(tmp_path):
    return f"sqlite:///{tmp_path / 'sqlite.db'}"


@pytest.fixture
def engine(db_url):
    engine = create_engine(db_url)
    yield engine
    engine.dispose()


@pytest.fixture
def seed(engine):
    """
    Create the settings table and insert rows.

    Usage in tests:
        seed([('2024-01-01', {'friday': False})])
        seed([('2024-01-01', None, {...categories...})], with_categories=True)

    enabled_days / enabled_categories may be dicts (stored as JSON) or raw
    strings (stored as-is, e.g. to plant malformed JSON).
    """
    def _seed(rows, with_categories=False):
        with engine.begin() as conn:
            conn.execute(text(MIXED_SCHEMA if with_categories else LEGACY_SCHEMA))
            for index, row in enumerate(rows):
                week, legacy = row[0], row[1]
                params = {'id': f"row-{index + 1}", 'week': week, 'legacy': _encode(legacy)}
                if with_categories:
                    params['categories'] = _encode(row[2] if len(row) > 2 else None)
                    conn.execute(text(
                        "INSERT INTO weekly_day_settings (id, week_start_date, enabled_days, enabled_categories) "
                        "VALUES (:id, :week, :legacy, :categories)"
                    ), params)
                else:
                    conn.execute(text(
                        "INSERT INTO weekly_day_settings (id, week_start_date, enabled_days) "
                        "VALUES (:id, :week, :legacy)"
                    ), params)
    return _seed


@pytest.fixture
def fetch(engine):
    """Read one week's stored row back as a dict with decoded JSON columns."""
    def _fetch(week):
        with engine.connect() as conn:
            row = conn.execute(
                text("SELECT * FROM weekly_day_settings WHERE week_start_date = :week"),
                {'week': week},
            ).mappings().first()
        if row is None:
            return None
        row = dict(row)
        for column in ('enabled_days', 'enabled_categories'):
            value = row.get(column)
            if isinstance(value, str):
                try:
                    row[column] = json.loads(value)
                except ValueError:
                    pass
        return row
    return _fetch


@pytest.fixture
def embedded(engine):
    return EmbeddedBackend(engine)


@pytest.fixture
def relational(engine):
    """The relational write strategy, exercised against SQLite."""
    return RelationalBackend(engine)


@pytest.fixture
def app(db_url):
    """Flask app in testing config on the per-test SQLite file, tables created."""
    app = create_app('testing', SQLALCHEMY_DATABASE_URI=db_url)
    with app.app_context():
        _db.create_all()
        yield app
        _db.session.remove()
