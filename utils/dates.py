"""
Week Start Helpers

Normalizes week keys read from either backend and computes the canonical
week start (Monday) used by the runtime API.
"""

from datetime import date, datetime, timedelta


def week_key(value):
    """
    Normalize a stored week_start_date to a 'YYYY-MM-DD' string.

    SQLite hands back text (sometimes with a time part), PostgreSQL hands
    back date objects. Anything unrecognised is returned as str(value).
    """
    if value is None:
        return ''
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    text = str(value).strip()
    try:
        return date.fromisoformat(text[:10]).isoformat()
    except ValueError:
        return text


def parse_week_key(value):
    """Parse a week key into a date, or None if it is not a valid date."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(week_key(value))
    except ValueError:
        return None


def week_start_for(day, week_starts_on=0):
    """
    Return the first day of the week containing `day`.

    week_starts_on uses date.weekday() numbering: 0 is Monday, 6 is Sunday.
    """
    day = parse_week_key(day)
    if day is None:
        raise ValueError('Not a valid date')
    offset = (day.weekday() - week_starts_on) % 7
    return day - timedelta(days=offset)


def is_week_start(value, week_starts_on=0):
    """True if the key parses and falls on the configured week start."""
    parsed = parse_week_key(value)
    return parsed is not None and parsed.weekday() == week_starts_on
