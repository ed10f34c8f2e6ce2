"""
Platform-wide exception hierarchy.

Services raise these types; the app factory registers one handler per
type so every endpoint maps them to the same HTTP status and JSON body.

Usage:
    from app.core.exceptions import NotFoundError, ValidationError

    raise NotFoundError(resource="Visit", resource_id=42)
    raise ValidationError("note_text is required", details={"note_text": "..."})
"""


class NotFoundError(Exception):
    """Raised when a requested resource does not exist within the caller's scope.

    Security note: Used for BOTH genuinely missing records AND records that
    exist outside the principal's organization or assignment scope. A 403
    would confirm the record exists; a 404 does not.

    Args:
        resource: Human-readable model/entity name (e.g. "Visit", "Task").
        resource_id: The PK that was looked up. Included in logs, not in HTTP response.
        org_id: Optional — the scope that was enforced. For debug logging only.
    """

    def __init__(
        self,
        resource: str,
        resource_id: int | str | None = None,
        org_id: int | None = None,
    ) -> None:
        self.resource = resource
        self.resource_id = resource_id
        self.org_id = org_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        if org_id is not None:
            msg += f" (org={org_id})"
        super().__init__(msg)

    @property
    def public_message(self) -> str:
        """Message safe to return to the caller (no ids, no scope)."""
        return f"{self.resource} not found."


class ValidationError(Exception):
    """Raised when input fails business-rule validation in the service layer.

    Distinct from HTTP 400 (malformed input, caught in blueprint) — this
    exception signals that the data was well-formed but violated a business
    rule (e.g. technician from another organization, empty evidence note).

    Maps to HTTP 422.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown for structured API responses.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class ConflictError(Exception):
    """Raised when an operation would violate a unique constraint.

    Maps to HTTP 409.
    """

    def __init__(self, resource: str, field: str, value: str | None = None) -> None:
        self.resource = resource
        self.field = field
        self.value = value
        msg = f"{resource} with {field}={value!r} already exists"
        super().__init__(msg)


class InvalidRoleError(Exception):
    """Raised when a principal carries a role outside the recognized set.

    The auth context validates roles before building a principal, so this
    only fires if a caller constructs one by hand. Maps to HTTP 403.
    """

    def __init__(self, role: object) -> None:
        self.role = role
        super().__init__(f"Unrecognized role {role!r}")


class PermissionDeniedError(Exception):
    """Raised when the principal's role may not perform a write action.

    Maps to HTTP 403.
    """

    def __init__(self, role: str, allowed: tuple[str, ...]) -> None:
        self.role = role
        self.allowed = allowed
        super().__init__(f"Role {role} not in {', '.join(allowed)}")
