# Utility modules for the weekly day settings tools
from .dates import week_key, parse_week_key, week_start_for, is_week_start
