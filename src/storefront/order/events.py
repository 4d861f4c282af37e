"""Domain events for the Order aggregate.

Events are raised inside the Unit of Work that changes the order, so they
are only published when the order, its stock movements and the cart change
have all been persisted.
"""

from protean.fields import Boolean, DateTime, Float, Identifier, String, Text

from storefront.domain import storefront


@storefront.event(part_of="Order")
class OrderPlaced:
    """A cart was converted into a priced, stock-reserved order."""

    __version__ = 1

    order_id = Identifier(required=True)
    user_id = Identifier(required=True)
    items = Text(required=True)  # JSON: list of {item_id, product_id, name, price, quantity}
    total = Float(required=True)
    placed_at = DateTime(required=True)


@storefront.event(part_of="Order")
class OrderStatusChanged:
    """An administrator moved the order along its status graph.

    ``verification_overridden`` is set when the order was marked delivered
    without the delivery code having been checked.
    """

    __version__ = 1

    order_id = Identifier(required=True)
    previous_status = String(required=True, max_length=20)
    new_status = String(required=True, max_length=20)
    changed_by = Identifier(required=True)
    verification_overridden = Boolean(default=False)
    changed_at = DateTime(required=True)


@storefront.event(part_of="Order")
class OrderCancelled:
    __version__ = 1

    order_id = Identifier(required=True)
    previous_status = String(required=True, max_length=20)
    cancelled_by = Identifier(required=True)
    cancelled_at = DateTime(required=True)


@storefront.event(part_of="Order")
class DeliveryVerified:
    """The recipient's delivery code matched; the order is delivered."""

    __version__ = 1

    order_id = Identifier(required=True)
    previous_status = String(required=True, max_length=20)
    verified_by = Identifier(required=True)
    verified_at = DateTime(required=True)


@storefront.event(part_of="Order")
class OrderItemsEdited:
    __version__ = 1

    order_id = Identifier(required=True)
    changes = Text(required=True)  # JSON: list of {item_id, product_id, previous_quantity, new_quantity}
    previous_total = Float(required=True)
    new_total = Float(required=True)
    edited_by = Identifier(required=True)
    edited_at = DateTime(required=True)
