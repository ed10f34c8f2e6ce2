"""
Field Service Platform
Blueprint registry and shared request helpers.
"""

from flask import jsonify, request

from app.utils.errors import E, api_error
from app.utils.helpers import parse_optional_id


def paginate(items, default_limit=200, max_limit=1000):
    """Apply limit/offset pagination to an already scope-filtered list.

    Query params:
        limit  — max items (default 200, capped at max_limit)
        offset — starting position (default 0)

    Returns:
        (items_page, total_count)
    """
    total = len(items)
    try:
        limit = min(max(int(request.args.get("limit", default_limit)), 0), max_limit)
    except (ValueError, TypeError):
        limit = default_limit
    try:
        offset = max(int(request.args.get("offset", 0)), 0)
    except (ValueError, TypeError):
        offset = 0
    return items[offset:offset + limit], total


def list_response(items):
    """``{"items": [...], "total": n}`` envelope for a list of models or dicts."""
    page, total = paginate(items)
    return jsonify({
        "items": [i if isinstance(i, dict) else i.to_dict() for i in page],
        "total": total,
    })


def require_text(data, field, max_length=200):
    """Return an api_error if ``data[field]`` is not a non-blank string within max_length."""
    value = data.get(field)
    if not isinstance(value, str) or not value.strip():
        return api_error(E.VALIDATION_REQUIRED, f"{field} is required")
    if len(value.strip()) > max_length:
        return api_error(E.VALIDATION_INVALID, f"{field} must be at most {max_length} characters")
    return None


def optional_text(data, *fields, max_length=300):
    """Return an api_error if any present, non-null ``fields`` value is not a string within max_length."""
    for field in fields:
        value = data.get(field)
        if value is None:
            continue
        if not isinstance(value, str):
            return api_error(E.VALIDATION_INVALID, f"{field} must be a string")
        if len(value.strip()) > max_length:
            return api_error(E.VALIDATION_INVALID, f"{field} must be at most {max_length} characters")
    return None


def require_choice(data, field, choices, required=False):
    """Return an api_error if ``data[field]`` is present (or required) and not in ``choices``."""
    value = data.get(field)
    if value is None and not required:
        return None
    if value not in choices:
        return api_error(
            E.VALIDATION_INVALID, f"{field} must be one of {sorted(choices)}",
            details={field: value},
        )
    return None


def coerce_ids(data, *fields, required=()):
    """Normalise id fields of ``data`` in place via parse_optional_id.

    Returns an api_error for the first field that is malformed, or missing
    while listed in ``required``; otherwise None.
    """
    for field in fields:
        if field not in data:
            if field in required:
                return api_error(E.VALIDATION_REQUIRED, f"{field} is required")
            continue
        try:
            data[field] = parse_optional_id(data[field])
        except ValueError:
            return api_error(E.VALIDATION_INVALID, f"{field} must be an integer")
        if data[field] is None and field in required:
            return api_error(E.VALIDATION_REQUIRED, f"{field} is required")
    return None
