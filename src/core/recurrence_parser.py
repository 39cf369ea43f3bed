"""Parsing utilities for template recurrence and daypart configuration.

Templates arrive from the store with loosely-typed columns: dayparts may be a
JSON array or a comma-joined string, per-daypart times may be either as well,
and the recurrence pattern is a JSON document. Everything is normalised here,
once, before any business logic sees it.
"""

import json
from typing import Any


def load_json_field(value: Any) -> Any:
    """Decode a JSON-encoded column value, leaving anything else untouched.

    Only strings that look like a JSON array or object are decoded, so a plain
    comma-joined string such as ``"before_open,during_service"`` passes through.
    """
    if isinstance(value, str):
        stripped = value.strip()
        if stripped[:1] in ("[", "{"):
            try:
                return json.loads(stripped)
            except ValueError:
                return value
    return value


def parse_list_field(value: Any) -> list[str]:
    """Normalise an array, comma-joined string, single string or absent value into a list.

    Entries are stringified and trimmed; empty entries are dropped.

    Examples:
        >>> parse_list_field("12:00, 15:00")
        ['12:00', '15:00']
        >>> parse_list_field(["before_open", " "])
        ['before_open']
        >>> parse_list_field(None)
        []
    """
    value = load_json_field(value)
    if value is None:
        return []
    if isinstance(value, str):
        items: list[Any] = value.split(",")
    elif isinstance(value, list | tuple):
        items = list(value)
    else:
        items = [value]
    return [str(item).strip() for item in items if item is not None and str(item).strip()]


def parse_daypart_times(value: Any) -> dict[str, list[str]]:
    """Normalise a daypart → times mapping; each value may be a list or a comma-joined string."""
    value = load_json_field(value)
    if not isinstance(value, dict):
        return {}
    return {str(daypart).strip(): parse_list_field(times) for daypart, times in value.items()}


def parse_weekdays(value: Any) -> list[int]:
    """Normalise a list of weekday numbers (Sunday=0; 7 is also accepted as Sunday)."""
    days = []
    for item in parse_list_field(value):
        day = int(item)
        if not 0 <= day <= 7:  # noqa: PLR2004
            msg = f"Invalid weekday in recurrence pattern: {item}"
            raise ValueError(msg)
        days.append(day % 7)
    return days


def parse_checklist_items(value: Any) -> list[str]:
    """Extract checklist item texts from strings or ``{text|label}`` objects."""
    value = load_json_field(value)
    if not isinstance(value, list):
        return []
    texts = []
    for item in value:
        if isinstance(item, str):
            text = item
        elif isinstance(item, dict):
            text = item.get("text") or item.get("label") or ""
        else:
            continue
        if text and text.strip():
            texts.append(text.strip())
    return texts
