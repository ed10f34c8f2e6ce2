"""
User Service — org membership lookups and user administration.

Passwords and sessions live with the identity provider; this service only
manages the org/role rows the API authorizes against.
"""

import logging

from email_validator import EmailNotValidError, validate_email
from sqlalchemy import select

from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.core.principal import Principal
from app.models import db
from app.models.auth import ROLE_ADMIN, USER_ROLES, Organization, User
from app.services.helpers.scoped_queries import get_scoped_or_none

logger = logging.getLogger(__name__)


def resolve_org_user(org_id: int, user_id: int | None, label: str = "User") -> User | None:
    """Resolve a user reference from a write payload.

    ``None`` passes through (the reference is being cleared). A user from
    another organization is reported exactly like a missing one.
    """
    if user_id is None:
        return None
    user = get_scoped_or_none(User, user_id, org_id=org_id)
    if user is None:
        raise NotFoundError(resource=label, resource_id=user_id)
    return user


def get_profile(principal: Principal) -> tuple[User | None, Organization | None]:
    """User and organization rows behind a principal (either may be missing for header auth)."""
    user = get_scoped_or_none(User, principal.user_id, org_id=principal.org_id)
    org = db.session.get(Organization, principal.org_id)
    return user, org


def list_users(principal: Principal, role: str | None = None) -> list[User]:
    """All users of the principal's organization, optionally filtered by role."""
    stmt = select(User).where(User.org_id == principal.org_id)
    if role:
        stmt = stmt.where(User.role == role)
    return list(db.session.execute(stmt.order_by(User.id)).scalars())


def create_user(principal: Principal, data: dict) -> User:
    """Add a user to the principal's organization.

    Raises:
        ValidationError: email is malformed or role is unknown.
        ConflictError: email already registered in this organization.
    """
    try:
        email = validate_email(data.get("email") or "", check_deliverability=False).normalized
    except EmailNotValidError as e:
        raise ValidationError(f"Invalid email: {e}", details={"email": str(e)})

    role = data.get("role") or "TECH"
    if role not in USER_ROLES:
        raise ValidationError(f"role must be one of {list(USER_ROLES)}", details={"role": role})

    existing = db.session.execute(
        select(User).where(User.org_id == principal.org_id, User.email == email)
    ).scalar_one_or_none()
    if existing is not None:
        raise ConflictError("User", "email", email)

    user = User(
        org_id=principal.org_id,
        email=email,
        full_name=(data.get("full_name") or "").strip() or None,
        role=role,
    )
    db.session.add(user)
    db.session.commit()
    logger.info("User created: id=%s org=%s role=%s", user.id, principal.org_id, role)
    return user


def update_user_role(principal: Principal, user_id: int, role: str) -> User:
    """Change a member's role.

    Raises:
        NotFoundError: user absent or in another organization.
        ValidationError: role is unknown, or an admin tried to demote themselves.
    """
    if role not in USER_ROLES:
        raise ValidationError(f"role must be one of {list(USER_ROLES)}", details={"role": role})

    user = resolve_org_user(principal.org_id, user_id)
    if user.id == principal.user_id and role != ROLE_ADMIN:
        raise ValidationError("You cannot demote yourself.", details={"role": role})

    previous = user.role
    user.role = role
    db.session.commit()
    logger.info(
        "User role changed: id=%s org=%s %s -> %s by user=%s",
        user.id, principal.org_id, previous, role, principal.user_id,
    )
    return user
