"""Cart aggregate — a user's mutable selection of products before checkout.

A user has at most one cart, created lazily on the first add. Checkout
empties it; the cart itself is kept for the next purchase.
"""

import json
from datetime import UTC, datetime

from protean.fields import DateTime, HasMany, Identifier, Integer

from storefront.cart.events import CartCheckedOut, CartItemAdded, CartItemRemoved, CartItemUpdated
from storefront.domain import storefront
from storefront.errors import CartItemNotFound, EmptyCart, InsufficientStock, InvalidInput


@storefront.entity(part_of="Cart")
class CartItem:
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    added_at = DateTime()


@storefront.aggregate
class Cart:
    user_id = Identifier(required=True, unique=True)
    items = HasMany(CartItem)
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, user_id):
        # One cart per user, keyed by the user's identity
        now = datetime.now(UTC)
        return cls(id=str(user_id), user_id=str(user_id), created_at=now, updated_at=now)

    # -------------------------------------------------------------------
    # Lines
    # -------------------------------------------------------------------
    def line_for(self, product_id):
        return next((i for i in self.items if str(i.product_id) == str(product_id)), None)

    def item(self, item_id):
        item = next((i for i in self.items if str(i.id) == str(item_id)), None)
        if item is None:
            raise CartItemNotFound(str(item_id))
        return item

    def add_item(self, product_id, quantity, stock=None, name=None):
        """Add ``quantity`` units of a product, merging into an existing line.

        ``stock`` is the product's current counter (``None`` when untracked);
        the merged line may not exceed it. Checkout validates again.
        """
        if quantity < 1:
            raise InvalidInput("Quantity must be at least 1", quantity=quantity)

        existing = self.line_for(product_id)
        in_cart = existing.quantity if existing else 0
        if stock is not None and in_cart + quantity > stock:
            raise InsufficientStock(str(product_id), available=max(stock - in_cart, 0), requested=quantity, name=name)

        now = datetime.now(UTC)
        if existing:
            existing.quantity = in_cart + quantity
            item = existing
        else:
            item = CartItem(product_id=product_id, quantity=quantity, added_at=now)
            self.add_items(item)
        self.updated_at = now

        self.raise_(
            CartItemAdded(
                cart_id=str(self.id),
                user_id=str(self.user_id),
                item_id=str(item.id),
                product_id=str(product_id),
                quantity=quantity,
                line_quantity=item.quantity,
            )
        )
        return item

    def update_item_quantity(self, item_id, quantity, stock=None, name=None):
        """Set a line's quantity; anything below 1 removes the line."""
        item = self.item(item_id)
        if quantity < 1:
            self.remove_item(item_id)
            return None

        if stock is not None and quantity > stock:
            raise InsufficientStock(str(item.product_id), available=stock, requested=quantity, name=name)

        previous = item.quantity
        item.quantity = quantity
        self.updated_at = datetime.now(UTC)

        self.raise_(
            CartItemUpdated(
                cart_id=str(self.id),
                item_id=str(item.id),
                previous_quantity=previous,
                new_quantity=quantity,
            )
        )
        return item

    def remove_item(self, item_id):
        """Remove a line. Removing a line that is not there changes nothing."""
        item = next((i for i in self.items if str(i.id) == str(item_id)), None)
        if item is None:
            return False

        self.remove_items(item)
        self.updated_at = datetime.now(UTC)

        self.raise_(
            CartItemRemoved(
                cart_id=str(self.id),
                item_id=str(item.id),
                product_id=str(item.product_id),
            )
        )
        return True

    # -------------------------------------------------------------------
    # Checkout
    # -------------------------------------------------------------------
    def lines(self):
        """``(product_id, quantity)`` for every line, in insertion order."""
        if not self.items:
            raise EmptyCart(str(self.user_id))
        return [(str(i.product_id), i.quantity) for i in self.items]

    def clear(self, order_id):
        """Empty the cart after its lines became ``order_id``."""
        snapshot = [{"product_id": str(i.product_id), "quantity": i.quantity} for i in self.items]
        if not snapshot:
            raise EmptyCart(str(self.user_id))

        self.remove_items(list(self.items))
        now = datetime.now(UTC)
        self.updated_at = now

        self.raise_(
            CartCheckedOut(
                cart_id=str(self.id),
                user_id=str(self.user_id),
                order_id=str(order_id),
                items=json.dumps(snapshot),
                checked_out_at=now,
            )
        )
