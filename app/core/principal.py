"""Request principal — the authenticated actor issuing a request."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Principal:
    """Organization, user and role of the caller.

    Built once per request by the auth context middleware and never mutated.
    """

    org_id: int
    user_id: int
    role: str

    def to_dict(self) -> dict:
        return {"org_id": self.org_id, "user_id": self.user_id, "role": self.role}
