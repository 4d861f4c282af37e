"""Order cancellation by its owner (or an administrator) — command and handler."""

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from storefront.actors import actor_from
from storefront.domain import storefront
from storefront.errors import OrderNotFound
from storefront.inventory.ledger import StockLedger, StockReason
from storefront.order.order import Order

logger = structlog.get_logger(__name__)


def load_visible_order(order_id, actor) -> Order:
    """Load an order the actor may see; other users' orders look missing."""
    try:
        order = current_domain.repository_for(Order).get(str(order_id))
    except ObjectNotFoundError:
        raise OrderNotFound(str(order_id)) from None
    if not order.is_accessible_by(actor):
        raise OrderNotFound(str(order_id))
    return order


@storefront.command(part_of="Order")
class CancelOrder:
    order_id = Identifier(required=True)
    actor_id = Identifier(required=True)
    actor_role = String(required=True, max_length=20)


@storefront.command_handler(part_of=Order)
class CancelOrderHandler:
    @handle(CancelOrder)
    def cancel_order(self, command):
        actor = actor_from(command.actor_id, command.actor_role)
        order = load_visible_order(command.order_id, actor)

        previous = order.cancel(cancelled_by=actor.user_id)
        current_domain.repository_for(Order).add(order)
        StockLedger().restore_order(order, reason=StockReason.CANCELLATION)

        logger.info(
            "Order cancelled",
            order_id=str(order.id),
            previous_status=previous.value,
            cancelled_by=actor.user_id,
        )
