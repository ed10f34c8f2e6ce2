"""
Rate limiting configuration.

Applies per-blueprint rate limits using Flask-Limiter.
The Limiter instance is created in app/__init__.py with no default limits;
this module applies granular limits per route category, keyed by the
authenticated organization when there is one.

Usage:
    from app.middleware.rate_limiter import init_rate_limits
    init_rate_limits(app, limiter)
"""

import logging

from flask import g, request as flask_request

logger = logging.getLogger(__name__)

# Office-facing blueprints: writes are dispatcher/admin actions
OFFICE_BLUEPRINTS = ("customer", "work_order", "visit", "user")

# Field-facing blueprints: technicians post status and evidence from the site
FIELD_BLUEPRINTS = ("task",)


def org_rate_limit_key():
    """Dynamic rate limit key: org_id if authenticated, else remote IP."""
    principal = getattr(g, "principal", None)
    if principal is not None:
        return f"org:{principal.org_id}"
    return flask_request.remote_addr or "unknown"


def init_rate_limits(app, limiter):
    """
    Apply rate limits to API blueprints.

    Limits (per organization, falling back to remote IP):
        - Office routes:  120/minute
        - Field routes:   300/minute
        - Auth echo:      60/minute
        - Health check:   exempt

    Rate limiting is disabled in testing mode.
    """

    if app.config.get("TESTING") or not app.config.get("RATELIMIT_ENABLED", True):
        app.logger.info("Rate limiter disabled")
        return

    for bp_name in OFFICE_BLUEPRINTS:
        bp = app.blueprints.get(bp_name)
        if bp:
            limiter.limit("120/minute", key_func=org_rate_limit_key)(bp)

    for bp_name in FIELD_BLUEPRINTS:
        bp = app.blueprints.get(bp_name)
        if bp:
            limiter.limit("300/minute", key_func=org_rate_limit_key)(bp)

    bp = app.blueprints.get("auth")
    if bp:
        limiter.limit("60/minute")(bp)

    bp = app.blueprints.get("health")
    if bp:
        limiter.exempt(bp)

    app.logger.info("Rate limiter configured — office: 120/min, field: 300/min, auth: 60/min")
