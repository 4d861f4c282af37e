"""Caller identity for API requests.

Authentication happens upstream; the gateway forwards the authenticated
user's id and role in the ``X-User-Id`` / ``X-User-Role`` headers.
"""

from fastapi import Depends, Header

from storefront.actors import Actor, actor_from
from storefront.errors import Forbidden
from storefront.utils.logging import add_context


async def current_actor(
    x_user_id: str | None = Header(default=None),
    x_user_role: str | None = Header(default=None),
) -> Actor:
    actor = actor_from(x_user_id, x_user_role)
    add_context(user_id=actor.user_id, role=actor.role.value)
    return actor


async def admin_actor(actor: Actor = Depends(current_actor)) -> Actor:
    if not actor.is_admin:
        raise Forbidden("You don't have permission to perform this action", user_id=actor.user_id)
    return actor
