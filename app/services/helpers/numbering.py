"""
Per-organization human-readable record numbers (V00001, WO00001, ...).

The number column carries a unique (org_id, number) constraint. Two
concurrent inserts may compute the same next number; the loser hits the
constraint, rolls back and retries with the following number.
"""

import logging
import re

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from app.core.exceptions import ConflictError
from app.models import db

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 5
NUMBER_WIDTH = 5


def next_number(model, column_name: str, org_id: int, prefix: str, skip: int = 0) -> str:
    """Return the next free ``<prefix><digits>`` number for an organization."""
    column = getattr(model, column_name)
    pattern = re.compile(rf"^{re.escape(prefix)}(\d+)$")

    last = db.session.execute(
        select(column)
        .where(model.org_id == org_id, column.is_not(None))
        .order_by(model.id.desc())
        .limit(1)
    ).scalar_one_or_none()

    match = pattern.match(last) if last else None
    last_num = int(match.group(1)) if match else 0
    return f"{prefix}{last_num + 1 + skip:0{NUMBER_WIDTH}d}"


def insert_numbered(build, model, column_name: str, org_id: int, prefix: str):
    """Insert the record produced by ``build(number)`` and commit.

    Retries on unique-constraint collisions only; any other integrity
    failure propagates.

    Raises:
        ConflictError: every attempt collided.
    """
    number = None
    for attempt in range(MAX_ATTEMPTS):
        number = next_number(model, column_name, org_id, prefix, skip=attempt)
        record = build(number)
        db.session.add(record)
        try:
            db.session.commit()
            return record
        except IntegrityError as exc:
            db.session.rollback()
            if "unique" not in str(exc.orig).lower():
                raise
            logger.warning(
                "%s number collision org=%s number=%s attempt=%d",
                model.__name__, org_id, number, attempt + 1,
            )
    raise ConflictError(model.__name__, column_name, number)
