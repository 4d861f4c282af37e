"""Stock ledger — the only path by which product stock counters change.

A ledger is created inside a command handler and shares its Unit of Work:
every product it touches is persisted together with the order or cart change
that caused the movement, and an exception anywhere in the handler discards
all of it. Each product is loaded at most once per ledger so that several
movements against the same product within one command compose.
"""

import structlog
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from storefront.catalogue.product import Product
from storefront.errors import InsufficientStock, ProductNotFound

logger = structlog.get_logger(__name__)


class StockReason:
    CHECKOUT = "checkout"
    CANCELLATION = "cancellation"
    FAILURE = "failure"
    ORDER_EDIT = "order_edit"
    ADMIN = "admin"


class StockLedger:
    def __init__(self):
        self._repo = current_domain.repository_for(Product)
        self._products = {}

    def product(self, product_id) -> Product:
        key = str(product_id)
        if key not in self._products:
            try:
                self._products[key] = self._repo.get(key)
            except ObjectNotFoundError:
                raise ProductNotFound(key) from None
        return self._products[key]

    def ensure_available(self, product, quantity):
        """Raise InsufficientStock unless ``quantity`` units can be debited now."""
        if not product.can_supply(quantity):
            raise InsufficientStock(str(product.id), available=product.stock, requested=quantity, name=product.name)

    def adjust(self, product_id, delta, reason, reference=None) -> Product:
        """Credit (positive ``delta``) or debit (negative) a product's counter."""
        product = self.product(product_id)
        if product.adjust_stock(delta, reason=reason, reference=reference):
            self._repo.add(product)
            logger.info(
                "Stock adjusted",
                product_id=str(product.id),
                delta=delta,
                new_stock=product.stock,
                reason=reason,
                reference=str(reference) if reference else None,
            )
        return product

    def debit(self, product_id, quantity, reason, reference=None) -> Product:
        return self.adjust(product_id, -quantity, reason=reason, reference=reference)

    def reconcile(self, product_id, delta, reason, reference=None) -> Product | None:
        """Apply ``delta`` for an existing order line.

        Order lines only reference their product, so the product may have left
        the catalogue since checkout; such lines are skipped.
        """
        try:
            return self.adjust(product_id, delta, reason=reason, reference=reference)
        except ProductNotFound:
            logger.warning(
                "Product no longer exists, stock not reconciled",
                product_id=str(product_id),
                delta=delta,
                reference=str(reference) if reference else None,
            )
            return None

    def credit(self, product_id, quantity, reason, reference=None) -> Product | None:
        return self.reconcile(product_id, quantity, reason=reason, reference=reference)

    def restore_order(self, order, reason):
        """Credit every line of ``order`` back to its product."""
        for item in order.items:
            if item.quantity > 0:
                self.credit(item.product_id, item.quantity, reason=reason, reference=order.id)

    def set_level(self, product_id, level) -> Product:
        """Set an absolute stock level (``None`` stops tracking) for catalogue administration."""
        product = self.product(product_id)
        if product.stock is not None and level is not None:
            return self.adjust(product_id, level - product.stock, reason=StockReason.ADMIN)

        product.track_stock(level)
        self._repo.add(product)
        logger.info("Stock tracking changed", product_id=str(product.id), stock=level)
        return product
