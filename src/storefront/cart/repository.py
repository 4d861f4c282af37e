"""Repository for the Cart aggregate."""

import threading

from protean.exceptions import DatabaseError, ValidationError

from storefront.cart.cart import Cart
from storefront.domain import storefront

_opening = threading.Lock()


@storefront.repository(part_of=Cart)
class CartRepository:
    def for_user(self, user_id) -> Cart | None:
        """The user's cart, or None if they never added anything."""
        return self._dao.query.filter(user_id=str(user_id)).all().first

    def open_for(self, user_id) -> Cart:
        """Return the user's cart, committing an empty one first if there is none.

        The cart is written outside the caller's Unit of Work, so it must be
        called before the command reads anything. Concurrent first adds then
        load the same cart and race on its version instead of each creating one.
        """
        with _opening:
            dao = self._dao.outside_uow()
            cart = dao.query.filter(user_id=str(user_id)).all().first
            if cart is not None:
                return cart
            try:
                return dao.save(Cart.create(user_id))
            except (ValidationError, DatabaseError):
                # Opened by another process in the meantime
                cart = self._dao.outside_uow().query.filter(user_id=str(user_id)).all().first
                if cart is None:
                    raise
                return cart
