"""
Smoke tests for the weekly day settings app.
Run with: python tests/smoke.py
"""

import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

def test_app_imports():
    """Verify the app factory and db can be imported without errors."""
    from app import create_app, db
    assert callable(create_app)
    assert db is not None
    print("OK: App imports successfully")

def test_models_import():
    """Verify models can be imported."""
    from models import WeeklyDaySettings, WeeklySettingsRecord
    assert WeeklyDaySettings.__tablename__ == 'weekly_day_settings'
    assert WeeklySettingsRecord is not None
    print("OK: Models import successfully")

def test_services_import():
    """Verify the migration and day-level services can be imported."""
    from services import convert, migrate, verify, toggle_day, get_backend
    assert callable(convert)
    assert callable(migrate)
    assert callable(verify)
    assert callable(toggle_day)
    assert callable(get_backend)
    print("OK: Services import successfully")

def test_default_categories_unchanged():
    """Verify the stored default literal has the expected value."""
    from constants import DEFAULT_CATEGORIES_JSON

    # This value must not change, existing rows were written with it
    slots = '{"breakfast":true,"lunch":true,"dinner":true,"snack":true}'
    days = ['sunday', 'monday', 'tuesday', 'wednesday', 'thursday', 'friday', 'saturday']
    expected = '{' + ','.join(f'"{day}":{slots}' for day in days) + '}'
    assert DEFAULT_CATEGORIES_JSON == expected
    print("OK: Default categories unchanged")

def test_command_imports():
    """Verify the migration command can be imported."""
    from commands import migrate_day_settings, main
    assert migrate_day_settings.name == 'migrate-day-settings'
    assert callable(main)
    print("OK: Command imports successfully")

def test_app_runs():
    """Verify the app can create tables and answer a settings query."""
    from app import create_app, init_db
    from services import get_week_settings
    app = create_app('testing')
    init_db(app)
    with app.app_context():
        settings = get_week_settings('2024-01-01')
        assert settings['enabled_categories']['friday']['dinner'] is True
        print("OK: App serves default week settings")

if __name__ == '__main__':
    print("Running smoke tests...\n")

    tests = [
        test_app_imports,
        test_models_import,
        test_services_import,
        test_default_categories_unchanged,
        test_command_imports,
        test_app_runs,
    ]

    failed = 0
    for test in tests:
        try:
            test()
        except Exception as e:
            print(f"FAIL: {test.__name__} - {e}")
            failed += 1

    print(f"\n{'='*40}")
    if failed:
        print(f"FAILED: {failed}/{len(tests)} tests")
        sys.exit(1)
    else:
        print(f"PASSED: {len(tests)}/{len(tests)} tests")
        sys.exit(0)
