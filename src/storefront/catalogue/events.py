"""Domain events for the Product aggregate."""

from protean.fields import DateTime, Float, Identifier, Integer, String, Text

from storefront.domain import storefront


@storefront.event(part_of="Product")
class ProductRegistered:
    """A product was added to the sellable catalogue."""

    __version__ = 1

    product_id = Identifier(required=True)
    name = String(required=True, max_length=255)
    mrp = Float(required=True)
    offers = Text()  # JSON: {threshold: discount}
    stock = Integer()  # None when untracked
    registered_at = DateTime(required=True)


@storefront.event(part_of="Product")
class OffersChanged:
    __version__ = 1

    product_id = Identifier(required=True)
    offers = Text(required=True)  # JSON: {threshold: discount}
    changed_at = DateTime(required=True)


@storefront.event(part_of="Product")
class StockAdjusted:
    """A product's stock counter moved by ``delta``.

    ``reason`` names the business event (see ``StockReason``) and
    ``reference`` the order it belongs to, when there is one.
    """

    __version__ = 1

    product_id = Identifier(required=True)
    delta = Integer(required=True)
    previous_stock = Integer(required=True)
    new_stock = Integer(required=True)
    reason = String(required=True, max_length=50)
    reference = Identifier()
    adjusted_at = DateTime(required=True)


@storefront.event(part_of="Product")
class StockTrackingChanged:
    """Stock tracking was switched on (with a level) or off (``stock`` is None)."""

    __version__ = 1

    product_id = Identifier(required=True)
    stock = Integer()
    changed_at = DateTime(required=True)
