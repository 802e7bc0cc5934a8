"""
Tests for the day-level operations the runtime API uses, and for their
interplay with migrated rows.
"""

import pytest

from app import create_app
from conftest import WEEKS
from models import db, WeeklyDaySettings, default_categories
from services import EmbeddedBackend, MigrationRun, migrate, verify
from services.day_level import (
    InvalidDayError,
    batch_toggle,
    get_week_settings,
    get_week_summary,
    is_day_fully_enabled,
    toggle_day,
)
from services.verification import STATUS_ALREADY_NEW, STATUS_CONVERTED

OFF = {'breakfast': False, 'lunch': False, 'dinner': False, 'snack': False}
ON = {'breakfast': True, 'lunch': True, 'dinner': True, 'snack': True}


class TestGetWeekSettings:

    def test_missing_week_gets_default_without_writing(self, app):
        settings = get_week_settings(WEEKS[0])

        assert settings['week_start_date'] == WEEKS[0]
        assert settings['enabled_categories'] == default_categories()
        assert settings['last_updated_by'] is None
        assert WeeklyDaySettings.query.count() == 0

    def test_invalid_week(self, app):
        with pytest.raises(ValueError):
            get_week_settings('next tuesday')


class TestToggleDay:

    def test_disable_day_creates_row(self, app):
        settings = toggle_day(WEEKS[0], 'friday', False, user_id='user-1')

        assert settings['enabled_categories']['friday'] == OFF
        assert settings['enabled_categories']['monday'] == ON
        assert settings['last_updated_by'] == 'user-1'
        assert WeeklyDaySettings.query.count() == 1

    def test_enable_again(self, app):
        toggle_day(WEEKS[0], 'friday', False)
        toggle_day(WEEKS[0], 'friday', True)

        assert get_week_settings(WEEKS[0])['enabled_categories'] == default_categories()
        assert WeeklyDaySettings.query.count() == 1

    def test_day_name_is_case_insensitive(self, app):
        toggle_day(WEEKS[0], 'Sunday', False)
        assert not is_day_fully_enabled(WEEKS[0], 'sunday')

    def test_invalid_day(self, app):
        with pytest.raises(InvalidDayError):
            toggle_day(WEEKS[0], 'funday', False)
        with pytest.raises(ValueError):
            toggle_day(WEEKS[0], 'funday', False)

    def test_enabled_must_be_boolean(self, app):
        with pytest.raises(ValueError):
            toggle_day(WEEKS[0], 'monday', 'false')

    def test_toggled_rows_pass_verification(self, app):
        toggle_day(WEEKS[0], 'tuesday', False)
        toggle_day(WEEKS[1], 'saturday', False)

        report = verify(EmbeddedBackend(db.engine))

        assert report.passed
        assert report.count(STATUS_ALREADY_NEW) == 2


class TestQueries:

    def test_is_day_fully_enabled(self, app):
        toggle_day(WEEKS[0], 'wednesday', False)

        assert not is_day_fully_enabled(WEEKS[0], 'wednesday')
        assert is_day_fully_enabled(WEEKS[0], 'thursday')

    def test_missing_week_is_fully_enabled(self, app):
        assert is_day_fully_enabled(WEEKS[3], 'monday')

    def test_unknown_day_is_never_enabled(self, app):
        assert is_day_fully_enabled(WEEKS[0], 'caturday') is False

    def test_week_summary(self, app):
        toggle_day(WEEKS[0], 'monday', False)

        summary = get_week_summary(WEEKS[0])

        assert summary['monday'] is False
        assert all(summary[day] for day in summary if day != 'monday')
        assert len(summary) == 7

    def test_summary_of_missing_week(self, app):
        assert all(get_week_summary(WEEKS[4]).values())


class TestBatchToggle:

    def test_toggles_several_days(self, app):
        result = batch_toggle(WEEKS[0], {'monday': False, 'tuesday': False}, user_id='user-2')

        assert result['week_start_date'] == WEEKS[0]
        assert len(result['updated_days']) == 2
        assert result['summary']['monday'] is False
        assert result['summary']['tuesday'] is False
        assert result['summary']['wednesday'] is True

    def test_invalid_day_changes_nothing(self, app):
        with pytest.raises(InvalidDayError):
            batch_toggle(WEEKS[0], {'monday': False, 'someday': False})
        assert WeeklyDaySettings.query.count() == 0

    def test_requires_a_mapping(self, app):
        with pytest.raises(ValueError):
            batch_toggle(WEEKS[0], ['monday'])


class TestMigratedRows:
    """Rows written by the migration are read and updated by the ORM."""

    @pytest.fixture
    def migrated_app(self, seed, engine, db_url):
        seed([(WEEKS[0], {'friday': False}), (WEEKS[1], None)])
        migrate(EmbeddedBackend(engine))
        app = create_app('testing', SQLALCHEMY_DATABASE_URI=db_url)
        with app.app_context():
            yield app
            db.session.remove()

    def test_reads_migrated_categories(self, migrated_app):
        assert not is_day_fully_enabled(WEEKS[0], 'friday')
        assert get_week_settings(WEEKS[1])['enabled_categories'] == default_categories()

    def test_toggle_keeps_legacy_flag_in_step(self, migrated_app, fetch):
        toggle_day(WEEKS[0], 'monday', False)
        toggle_day(WEEKS[0], 'friday', True)

        db.session.remove()
        assert fetch(WEEKS[0])['enabled_days'] == {'friday': True, 'monday': False}

        report = verify(EmbeddedBackend(db.engine))
        assert report.passed
        assert report.count(STATUS_CONVERTED) == 1

    def test_unmigrated_row_falls_back_to_legacy(self, seed, db_url):
        seed([(WEEKS[2], {'sunday': False}, None)], with_categories=True)
        app = create_app('testing', SQLALCHEMY_DATABASE_URI=db_url)
        with app.app_context():
            assert not is_day_fully_enabled(WEEKS[2], 'sunday')
            assert get_week_summary(WEEKS[2])['monday'] is True
            db.session.remove()


class TestAfterCleanup:
    """Once enabled_days is dropped the operations run on categories alone."""

    @pytest.fixture
    def cleaned_app(self, seed, engine, db_url):
        seed([(WEEKS[0], {'friday': False}), (WEEKS[1], None)])
        run = MigrationRun(EmbeddedBackend(engine))
        run.execute()
        run.cleanup()
        app = create_app('testing', SQLALCHEMY_DATABASE_URI=db_url)
        with app.app_context():
            yield app
            db.session.remove()

    def test_legacy_column_is_gone(self, cleaned_app):
        assert 'enabled_days' not in EmbeddedBackend(db.engine).columns()

    def test_reads(self, cleaned_app):
        assert get_week_settings(WEEKS[0])['enabled_categories']['friday'] == OFF
        assert not is_day_fully_enabled(WEEKS[0], 'friday')
        assert all(get_week_summary(WEEKS[1]).values())

    def test_toggles(self, cleaned_app, fetch):
        toggle_day(WEEKS[0], 'friday', True, user_id='user-3')
        batch_toggle(WEEKS[1], {'monday': False, 'sunday': False})
        toggle_day(WEEKS[2], 'tuesday', False)
        db.session.remove()

        assert fetch(WEEKS[0])['enabled_categories'] == default_categories()
        assert fetch(WEEKS[1])['enabled_categories']['sunday'] == OFF
        assert fetch(WEEKS[2])['enabled_categories']['tuesday'] == OFF
        assert verify(EmbeddedBackend(db.engine)).passed
