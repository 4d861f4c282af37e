"""Administrative order status changes — command and handler.

Cancelling or failing an order that still holds stock hands the stock back
in the same Unit of Work as the status change.
"""

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from storefront.actors import require_admin
from storefront.domain import storefront
from storefront.errors import OrderNotFound
from storefront.inventory.ledger import StockLedger, StockReason
from storefront.order.order import Order, OrderStatus, parse_status

logger = structlog.get_logger(__name__)


@storefront.command(part_of="Order")
class SetOrderStatus:
    order_id = Identifier(required=True)
    status = String(required=True, max_length=20)
    actor_id = Identifier(required=True)
    actor_role = String(required=True, max_length=20)


@storefront.command_handler(part_of=Order)
class OrderStatusHandler:
    @handle(SetOrderStatus)
    def set_order_status(self, command):
        admin = require_admin(command.actor_id, command.actor_role)
        target = parse_status(command.status)

        repo = current_domain.repository_for(Order)
        try:
            order = repo.get(str(command.order_id))
        except ObjectNotFoundError:
            raise OrderNotFound(str(command.order_id)) from None

        restore = order.restores_stock_on(target)
        previous = order.change_status(target, changed_by=admin.user_id)
        repo.add(order)

        if restore:
            reason = StockReason.CANCELLATION if target is OrderStatus.CANCELLED else StockReason.FAILURE
            StockLedger().restore_order(order, reason=reason)

        logger.info(
            "Order status changed",
            order_id=str(order.id),
            previous_status=previous.value,
            new_status=target.value,
            stock_restored=restore,
            changed_by=admin.user_id,
        )
        return target.value
