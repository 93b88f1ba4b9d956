# Overview: Resolved caller identity handed to services by the request layer.

"""
Identity Context

WHY: Authentication lives in the hosted identity provider. By the time a
request reaches us, an upstream proxy has verified the session and forwarded
the user id, active organization id, and org role as trusted headers.

TENANT INVARIANTS:
1. Every authenticated request carries a non-empty org_id
2. Services receive org_id from Identity, never from client payloads
3. Permission decisions go through Identity.has(), which resolves the role
   against ROLE_PERMISSIONS
"""

from __future__ import annotations

from dataclasses import dataclass, field

from .errors import Forbidden, Unauthorized
from .permissions import Permission, Role, parse_role, permissions_for_role


@dataclass(frozen=True)
class Identity:
    user_id: str
    org_id: str
    role: Role | None = None
    permissions: frozenset[Permission] = field(default_factory=frozenset)

    @classmethod
    def for_role(cls, user_id: str, org_id: str, role: Role | None) -> "Identity":
        return cls(
            user_id=user_id,
            org_id=org_id,
            role=role,
            permissions=permissions_for_role(role),
        )

    def has(self, permission: Permission) -> bool:
        return permission in self.permissions

    def require(self, permission: Permission, message: str | None = None) -> None:
        if not self.has(permission):
            raise Forbidden(message or f"Forbidden: missing permission {permission.value}")


def resolve_identity(headers, config) -> Identity:
    """
    Build an Identity from forwarded identity headers.

    Raises Unauthorized when the user or organization is missing.
    """
    user_id = (headers.get(config["IDENTITY_USER_HEADER"]) or "").strip()
    if not user_id:
        raise Unauthorized("Not authenticated - please sign in")

    org_id = (headers.get(config["IDENTITY_ORG_HEADER"]) or "").strip()
    if not org_id:
        raise Unauthorized("No organization selected - please select an organization")

    role = parse_role(headers.get(config["IDENTITY_ROLE_HEADER"]))
    return Identity.for_role(user_id, org_id, role)
