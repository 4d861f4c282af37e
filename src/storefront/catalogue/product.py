"""Product aggregate — the sellable item, its tiered offers and its stock counter.

Only the stock ledger (``storefront.inventory.ledger``) moves the stock
counter. A ``None`` counter means the product is not stock-tracked and any
quantity can be sold.
"""

import json
from datetime import UTC, datetime

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, Integer, String, Text

from storefront.catalogue.events import OffersChanged, ProductRegistered, StockAdjusted, StockTrackingChanged
from storefront.catalogue.pricing import dump_offer_table, parse_offer_table, resolve_unit_price, validate_offer_table
from storefront.domain import storefront
from storefront.errors import InsufficientStock, InvalidInput


@storefront.aggregate
class Product:
    name = String(required=True, max_length=255)
    mrp = Float(required=True, min_value=0.0)
    offers = Text()  # JSON: {"1": 0, "6": 10, "12": 20}
    images = Text()  # JSON array of image URLs, primary first
    stock = Integer()  # None = untracked
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def stock_cannot_be_negative(self):
        if self.stock is not None and self.stock < 0:
            raise ValidationError({"stock": ["Stock cannot be negative"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def register(cls, name, mrp, offers=None, images=None, stock=None):
        if stock is not None and stock < 0:
            raise InvalidInput("Stock cannot be negative", stock=stock)

        table = validate_offer_table(offers) if offers else {}
        now = datetime.now(UTC)
        product = cls(
            name=name,
            mrp=mrp,
            offers=dump_offer_table(table),
            images=json.dumps(list(images or [])),
            stock=stock,
            created_at=now,
            updated_at=now,
        )
        product.raise_(
            ProductRegistered(
                product_id=str(product.id),
                name=name,
                mrp=mrp,
                offers=product.offers,
                stock=stock,
                registered_at=now,
            )
        )
        return product

    # -------------------------------------------------------------------
    # Pricing
    # -------------------------------------------------------------------
    @property
    def offer_table(self):
        return parse_offer_table(self.offers)

    def unit_price_for(self, quantity):
        return resolve_unit_price(self.mrp, self.offer_table, quantity)

    def set_offers(self, offers):
        table = validate_offer_table(offers)
        now = datetime.now(UTC)
        self.offers = dump_offer_table(table)
        self.updated_at = now

        self.raise_(
            OffersChanged(
                product_id=str(self.id),
                offers=self.offers,
                changed_at=now,
            )
        )

    @property
    def primary_image(self):
        try:
            images = json.loads(self.images) if self.images else []
        except json.JSONDecodeError:
            return None
        return images[0] if isinstance(images, list) and images else None

    # -------------------------------------------------------------------
    # Stock
    # -------------------------------------------------------------------
    @property
    def is_stock_tracked(self):
        return self.stock is not None

    def can_supply(self, quantity):
        return self.stock is None or self.stock >= quantity

    def adjust_stock(self, delta, reason, reference=None):
        """Move the stock counter by ``delta``; a no-op for untracked products.

        Returns True when the counter changed.
        """
        if self.stock is None or delta == 0:
            return False

        previous = self.stock
        new_stock = previous + delta
        if new_stock < 0:
            raise InsufficientStock(str(self.id), available=previous, requested=-delta, name=self.name)

        now = datetime.now(UTC)
        self.stock = new_stock
        self.updated_at = now

        self.raise_(
            StockAdjusted(
                product_id=str(self.id),
                delta=delta,
                previous_stock=previous,
                new_stock=new_stock,
                reason=reason,
                reference=str(reference) if reference else None,
                adjusted_at=now,
            )
        )
        return True

    def track_stock(self, level):
        """Switch tracking on at ``level`` units, or off when ``level`` is None."""
        if level is not None and level < 0:
            raise InvalidInput("Stock cannot be negative", stock=level)

        now = datetime.now(UTC)
        self.stock = level
        self.updated_at = now

        self.raise_(
            StockTrackingChanged(
                product_id=str(self.id),
                stock=level,
                changed_at=now,
            )
        )
