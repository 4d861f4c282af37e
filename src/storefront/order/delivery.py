"""Delivery confirmation with the order's one-time code — command and handler."""

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from storefront.actors import actor_from
from storefront.domain import storefront
from storefront.errors import Forbidden, OrderNotFound
from storefront.order.order import Order

logger = structlog.get_logger(__name__)


@storefront.command(part_of="Order")
class VerifyDeliveryCode:
    order_id = Identifier(required=True)
    code = String(required=True, max_length=20)
    actor_id = Identifier(required=True)
    actor_role = String(required=True, max_length=20)


@storefront.command_handler(part_of=Order)
class DeliveryHandler:
    @handle(VerifyDeliveryCode)
    def verify_delivery_code(self, command):
        actor = actor_from(command.actor_id, command.actor_role)
        repo = current_domain.repository_for(Order)
        try:
            order = repo.get(str(command.order_id))
        except ObjectNotFoundError:
            raise OrderNotFound(str(command.order_id)) from None

        if not order.is_accessible_by(actor):
            raise Forbidden("You are not authorized to verify this order", order_id=str(order.id))

        order.verify_delivery(command.code, verified_by=actor.user_id)
        repo.add(order)

        logger.info("Delivery verified", order_id=str(order.id), verified_by=actor.user_id)
