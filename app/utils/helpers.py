"""Shared parsing helpers for blueprint payloads.

parse_datetime:  ISO-8601 string → aware datetime (raises ValueError on bad input)
parse_optional_id:  JSON id field → int | None (raises ValueError on bad input)
"""
from datetime import datetime, timezone


def parse_datetime(value):
    """Parse an ISO-8601 datetime string.

    Returns None for empty input. Naive values are treated as UTC.
    Raises ValueError on anything else so the caller can answer 400.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError as exc:
            raise ValueError(f"Invalid datetime {value!r}. Use ISO-8601.") from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_optional_id(value):
    """Coerce an optional foreign-key id from a JSON payload.

    ``None`` and ``""`` clear the reference. Booleans are rejected even
    though Python treats them as ints.
    """
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValueError("id must be an integer")
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError("id must be an integer") from exc
