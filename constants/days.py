"""
Day and Meal Slot Constants

Day names, meal slots and table names shared by the migration pipeline
and the day-level settings operations.
"""

import json

# Order matches the JSON literal the application has always written
DAY_NAMES = (
    'sunday', 'monday', 'tuesday', 'wednesday',
    'thursday', 'friday', 'saturday',
)

MEAL_SLOTS = ('breakfast', 'lunch', 'dinner', 'snack')

SETTINGS_TABLE = 'weekly_day_settings'
BACKUP_TABLE = 'weekly_day_settings_backup'
LEGACY_COLUMN = 'enabled_days'
CATEGORIES_COLUMN = 'enabled_categories'

# Server-side default for enabled_categories, all seven days fully enabled
DEFAULT_CATEGORIES_JSON = json.dumps(
    {day: {slot: True for slot in MEAL_SLOTS} for day in DAY_NAMES},
    separators=(',', ':'),
)
