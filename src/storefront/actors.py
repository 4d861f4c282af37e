"""Caller identity as handed over by the upstream identity provider.

Operations never read ambient session state; the acting user and role are
passed in explicitly and travel on every command as ``actor_id`` /
``actor_role``.
"""

from dataclasses import dataclass
from enum import Enum

from storefront.errors import Forbidden, Unauthorized


class Role(Enum):
    ADMIN = "ADMIN"
    CUSTOMER = "CUSTOMER"


@dataclass(frozen=True)
class Actor:
    user_id: str
    role: Role = Role.CUSTOMER

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN

    def owns(self, owner_id) -> bool:
        return str(owner_id) == str(self.user_id)


def actor_from(actor_id, actor_role) -> Actor:
    """Build an Actor from raw identity values, rejecting incomplete identities."""
    if not actor_id:
        raise Unauthorized("Unauthorized")
    try:
        role = Role(str(actor_role or Role.CUSTOMER.value).upper())
    except ValueError:
        raise Unauthorized(f"Unknown role: {actor_role}") from None
    return Actor(user_id=str(actor_id), role=role)


def require_admin(actor_id, actor_role) -> Actor:
    actor = actor_from(actor_id, actor_role)
    if not actor.is_admin:
        raise Forbidden("You don't have permission to perform this action", user_id=actor.user_id)
    return actor
