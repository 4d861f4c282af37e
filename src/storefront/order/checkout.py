"""Checkout — converts a user's cart into an order.

The handler body is a single Unit of Work: the order, every stock debit and
the emptied cart are persisted together or not at all.
"""

import structlog
from protean import handle
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from storefront.cart.cart import Cart
from storefront.domain import storefront
from storefront.errors import EmptyCart
from storefront.inventory.ledger import StockLedger, StockReason
from storefront.order.order import Order

logger = structlog.get_logger(__name__)


@storefront.command(part_of="Order")
class Checkout:
    user_id = Identifier(required=True)
    phone = String(required=True, min_length=10, max_length=20)
    address = String(required=True, min_length=5, max_length=500)
    note = Text()


@storefront.command_handler(part_of=Order)
class CheckoutHandler:
    @handle(Checkout)
    def checkout(self, command):
        carts = current_domain.repository_for(Cart)
        cart = carts.for_user(command.user_id)
        if cart is None:
            raise EmptyCart(str(command.user_id))
        cart_lines = cart.lines()

        # Every line is checked before anything is debited
        ledger = StockLedger()
        lines = []
        for product_id, quantity in cart_lines:
            product = ledger.product(product_id)
            ledger.ensure_available(product, quantity)
            lines.append(
                {
                    "product_id": str(product.id),
                    "name": product.name,
                    "price": product.unit_price_for(quantity),
                    "image": product.primary_image,
                    "quantity": quantity,
                }
            )

        order = Order.place(
            user_id=command.user_id,
            phone=command.phone,
            address=command.address,
            note=command.note,
            lines=lines,
        )
        current_domain.repository_for(Order).add(order)

        for product_id, quantity in cart_lines:
            ledger.debit(product_id, quantity, reason=StockReason.CHECKOUT, reference=order.id)

        cart.clear(order.id)
        carts.add(cart)

        logger.info(
            "Order placed",
            order_id=str(order.id),
            user_id=str(command.user_id),
            total=order.total,
            items=len(lines),
        )
        return str(order.id)
