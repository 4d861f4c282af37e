"""Catalogue stock administration — commands and handler.

All stock changes go through the stock ledger, the same as checkout and
cancellation do.
"""

import json

import structlog
from protean import handle
from protean.fields import Boolean, Float, Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from storefront.actors import require_admin
from storefront.catalogue.product import Product
from storefront.domain import storefront
from storefront.inventory.ledger import StockLedger, StockReason

logger = structlog.get_logger(__name__)


@storefront.command(part_of="Product")
class RegisterProduct:
    name = String(required=True, max_length=255)
    mrp = Float(required=True, min_value=0.0)
    offers = Text()  # JSON: {threshold: discount}
    images = Text()  # JSON: list of URLs
    stock = Integer()  # Omit for untracked products
    actor_id = Identifier(required=True)
    actor_role = String(required=True, max_length=20)


@storefront.command(part_of="Product")
class SetProductOffers:
    product_id = Identifier(required=True)
    offers = Text(required=True)  # JSON: {threshold: discount}
    actor_id = Identifier(required=True)
    actor_role = String(required=True, max_length=20)


@storefront.command(part_of="Product")
class AdjustProductStock:
    product_id = Identifier(required=True)
    delta = Integer(required=True)  # Can be negative
    actor_id = Identifier(required=True)
    actor_role = String(required=True, max_length=20)


@storefront.command(part_of="Product")
class SetProductStock:
    product_id = Identifier(required=True)
    stock = Integer()
    untracked = Boolean(default=False)
    actor_id = Identifier(required=True)
    actor_role = String(required=True, max_length=20)


@storefront.command_handler(part_of=Product)
class ProductManagementHandler:
    @handle(RegisterProduct)
    def register_product(self, command):
        require_admin(command.actor_id, command.actor_role)
        product = Product.register(
            name=command.name,
            mrp=command.mrp,
            offers=json.loads(command.offers) if command.offers else None,
            images=json.loads(command.images) if command.images else None,
            stock=command.stock,
        )
        current_domain.repository_for(Product).add(product)
        logger.info("Product registered", product_id=str(product.id), stock=product.stock)
        return str(product.id)

    @handle(SetProductOffers)
    def set_product_offers(self, command):
        require_admin(command.actor_id, command.actor_role)
        ledger = StockLedger()
        product = ledger.product(command.product_id)
        product.set_offers(command.offers)
        current_domain.repository_for(Product).add(product)

    @handle(AdjustProductStock)
    def adjust_product_stock(self, command):
        require_admin(command.actor_id, command.actor_role)
        product = StockLedger().adjust(command.product_id, command.delta, reason=StockReason.ADMIN)
        return product.stock

    @handle(SetProductStock)
    def set_product_stock(self, command):
        require_admin(command.actor_id, command.actor_role)
        level = None if command.untracked else command.stock
        product = StockLedger().set_level(command.product_id, level)
        return product.stock
