"""
Helper Utilities Module
Common utility functions used across the sync tasks.
"""

import json
import re
from datetime import date, datetime
from typing import Any, Dict, Iterable, Optional

import pytz
from dateutil import parser as date_parser


SPRINT_ID_PATTERN = re.compile(r'id=(\d+)')


def parse_jira_datetime(dt_string: Optional[str]) -> Optional[datetime]:
    """
    Parse Jira datetime string to Python datetime.

    Args:
        dt_string: Jira datetime string (ISO 8601 format)

    Returns:
        datetime object or None if parsing fails
    """
    if not dt_string:
        return None

    try:
        return date_parser.parse(dt_string)
    except (ValueError, TypeError, OverflowError):
        return None


def parse_jira_date(date_string: Optional[str]) -> Optional[date]:
    """
    Parse Jira date string (YYYY-MM-DD) to Python date.

    Args:
        date_string: Date string in YYYY-MM-DD format

    Returns:
        date object or None if parsing fails
    """
    if not date_string:
        return None

    try:
        return datetime.strptime(date_string[:10], '%Y-%m-%d').date()
    except (ValueError, TypeError):
        return None


def to_utc_naive(dt: Optional[datetime]) -> Optional[datetime]:
    """Convert an aware datetime to naive UTC for storage; naive values pass through."""
    if dt is None or dt.tzinfo is None:
        return dt
    return dt.astimezone(pytz.UTC).replace(tzinfo=None)


def parse_jira_timestamp(dt_string: Optional[str]) -> Optional[datetime]:
    """Parse a Jira datetime string into naive UTC, ready for a DateTime column."""
    return to_utc_naive(parse_jira_datetime(dt_string))


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(pytz.UTC)


def safe_get(data: Dict, *keys, default=None) -> Any:
    """
    Safely get nested dictionary value.

    Args:
        data: Dictionary to traverse
        *keys: Keys to follow
        default: Default value if key not found

    Returns:
        Value at path or default
    """
    result = data
    for key in keys:
        if isinstance(result, dict):
            result = result.get(key)
        else:
            return default
        if result is None:
            return default
    return result


def sanitize_string(text: Optional[str], max_length: int = None) -> Optional[str]:
    """
    Sanitize string for database storage.

    Args:
        text: Text to sanitize
        max_length: Maximum length (truncate if exceeded)

    Returns:
        Sanitized string
    """
    if text is None:
        return None

    text = text.replace('\x00', '')

    if max_length and len(text) > max_length:
        text = text[:max_length - 3] + '...'

    return text


def first_non_null(data: Dict, keys: Iterable[str]) -> Any:
    """Return the first value among ``keys`` in ``data`` that is not None."""
    for key in keys:
        value = data.get(key)
        if value is not None:
            return value
    return None


def extract_sprint_id(sprint_ref: Any) -> Optional[str]:
    """
    Extract the Jira sprint id from an entry of the sprint custom field.

    The field holds either sprint objects (``{"id": 42, ...}``), bare ids, or
    legacy encoded strings such as
    ``com.atlassian.greenhopper.service.sprint.Sprint@1a2b[id=42,name=...]``.

    Returns:
        Sprint id as a string, or None if no id can be found
    """
    if sprint_ref is None or isinstance(sprint_ref, bool):
        return None

    if isinstance(sprint_ref, int):
        return str(sprint_ref)

    if isinstance(sprint_ref, dict):
        sprint_id = sprint_ref.get('id')
        return str(sprint_id) if sprint_id not in (None, '') else None

    if isinstance(sprint_ref, str):
        if sprint_ref.strip().isdigit():
            return sprint_ref.strip()
        match = SPRINT_ID_PATTERN.search(sprint_ref)
        return match.group(1) if match else None

    return None


def serialize_field_value(value: Any) -> str:
    """
    Convert a custom field value to its stored string form.

    Structured values (objects, arrays) are stored as compact JSON; booleans
    as ``true``/``false``; integral floats without a fraction (``5.0`` is
    stored as ``5``); everything else as ``str(value)``.
    """
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False, separators=(',', ':'))
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def format_progress(current: int, total: int) -> str:
    """Format a ``current/total (pct%)`` progress string."""
    percentage = round((current / total) * 100) if total else 100
    return f"{current}/{total} ({percentage}%)"


def should_log_progress(index: int, total: int, interval: int) -> bool:
    """True on every ``interval``-th record and on the last one."""
    return interval > 0 and (index % interval == 0 or index == total - 1)
