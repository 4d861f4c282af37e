"""Administrative edits of a partially delivered order's line quantities.

Each changed line moves stock by ``previous - new``: lowering a quantity
hands units back, raising it takes more and fails with ``InsufficientStock``
when the product cannot supply them. The edit, its stock movements and the
recomputed total are one Unit of Work.
"""

import json

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from storefront.actors import require_admin
from storefront.domain import storefront
from storefront.errors import InvalidInput, OrderNotFound
from storefront.inventory.ledger import StockLedger, StockReason
from storefront.order.order import Order
from storefront.order.queries import order_snapshot

logger = structlog.get_logger(__name__)


@storefront.command(part_of="Order")
class EditOrderItems:
    order_id = Identifier(required=True)
    items = Text(required=True)  # JSON: list of {item_id, quantity}
    actor_id = Identifier(required=True)
    actor_role = String(required=True, max_length=20)


def parse_item_edits(raw) -> dict:
    """Turn ``[{"item_id": ..., "quantity": ...}]`` into ``{item_id: quantity}``."""
    try:
        entries = json.loads(raw) if isinstance(raw, str) else raw
    except json.JSONDecodeError:
        raise InvalidInput("Items must be a JSON list") from None

    if not isinstance(entries, list) or not entries:
        raise InvalidInput("At least one item is required")

    edits = {}
    for entry in entries:
        if not isinstance(entry, dict) or "item_id" not in entry or "quantity" not in entry:
            raise InvalidInput("Each item needs an item_id and a quantity")
        item_id = str(entry["item_id"])
        if item_id in edits:
            raise InvalidInput("Duplicate item ids are not allowed", item_id=item_id)
        edits[item_id] = entry["quantity"]
    return edits


@storefront.command_handler(part_of=Order)
class EditOrderItemsHandler:
    @handle(EditOrderItems)
    def edit_order_items(self, command):
        admin = require_admin(command.actor_id, command.actor_role)
        edits = parse_item_edits(command.items)

        repo = current_domain.repository_for(Order)
        try:
            order = repo.get(str(command.order_id))
        except ObjectNotFoundError:
            raise OrderNotFound(str(command.order_id)) from None

        changes = order.edit_items(edits, edited_by=admin.user_id)
        repo.add(order)

        ledger = StockLedger()
        for item, delta in changes:
            ledger.reconcile(item.product_id, delta, reason=StockReason.ORDER_EDIT, reference=order.id)

        logger.info(
            "Order items edited",
            order_id=str(order.id),
            changed_items=len(changes),
            total=order.total,
            edited_by=admin.user_id,
        )
        return order_snapshot(order, include_code=False)
