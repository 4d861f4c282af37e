"""Cart item management — commands and handler."""

import structlog
from protean import handle
from protean.fields import Identifier, Integer
from protean.utils.globals import current_domain

from storefront.cart.cart import Cart
from storefront.domain import storefront
from storefront.errors import CartItemNotFound
from storefront.inventory.ledger import StockLedger

logger = structlog.get_logger(__name__)


@storefront.command(part_of="Cart")
class AddToCart:
    user_id = Identifier(required=True)
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)


@storefront.command(part_of="Cart")
class UpdateCartItem:
    user_id = Identifier(required=True)
    item_id = Identifier(required=True)
    quantity = Integer(required=True)  # < 1 removes the line


@storefront.command(part_of="Cart")
class RemoveCartItem:
    user_id = Identifier(required=True)
    item_id = Identifier(required=True)


@storefront.command_handler(part_of=Cart)
class ManageCartItemsHandler:
    @handle(AddToCart)
    def add_to_cart(self, command):
        repo = current_domain.repository_for(Cart)
        repo.open_for(command.user_id)

        product = StockLedger().product(command.product_id)
        cart = repo.for_user(command.user_id)
        item = cart.add_item(
            product_id=str(product.id),
            quantity=command.quantity,
            stock=product.stock,
            name=product.name,
        )
        repo.add(cart)

        logger.info(
            "Added to cart",
            user_id=str(command.user_id),
            product_id=str(product.id),
            quantity=command.quantity,
            line_quantity=item.quantity,
        )
        return str(item.id)

    @handle(UpdateCartItem)
    def update_cart_item(self, command):
        repo = current_domain.repository_for(Cart)
        cart = repo.for_user(command.user_id)
        if cart is None:
            raise CartItemNotFound(str(command.item_id))

        line = cart.item(command.item_id)
        stock, name = None, None
        if command.quantity >= 1:
            product = StockLedger().product(line.product_id)
            stock, name = product.stock, product.name

        cart.update_item_quantity(command.item_id, command.quantity, stock=stock, name=name)
        repo.add(cart)

        logger.info("Cart item updated", user_id=str(command.user_id), item_id=str(command.item_id), quantity=command.quantity)

    @handle(RemoveCartItem)
    def remove_cart_item(self, command):
        repo = current_domain.repository_for(Cart)
        cart = repo.for_user(command.user_id)
        if cart is None or not cart.remove_item(command.item_id):
            return

        repo.add(cart)
        logger.info("Cart item removed", user_id=str(command.user_id), item_id=str(command.item_id))
