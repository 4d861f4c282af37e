"""Order aggregate — a priced, stock-reserved snapshot of a cart.

Line name, price and image are copied from the catalogue at checkout, so
later catalogue edits never change an existing order. ``total`` always
equals the sum of ``price * quantity`` over the lines.

State Machine:
    PENDING → SHIPPED → DELIVERED
    PENDING | SHIPPED → PARTIAL → DELIVERED | CANCELLED
    PENDING | SHIPPED → CANCELLED | FAILED   (stock is restored)
    DELIVERED, CANCELLED and FAILED are terminal.

Delivery requires the order's one-time delivery code to have been verified;
an administrator may mark an order delivered directly, which records the
code as verified.
"""

import json
import secrets
from datetime import UTC, datetime
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, HasMany, Identifier, Integer, String, Text

from storefront.catalogue.pricing import total_of
from storefront.domain import storefront
from storefront.errors import (
    AlreadyVerified,
    DeliveryCodeMismatch,
    ForeignItem,
    InvalidInput,
    InvalidState,
    InvalidTransition,
)
from storefront.order.events import (
    DeliveryVerified,
    OrderCancelled,
    OrderItemsEdited,
    OrderPlaced,
    OrderStatusChanged,
)

DELIVERY_CODE_LENGTH = 6


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PENDING = "PENDING"
    SHIPPED = "SHIPPED"
    PARTIAL = "PARTIAL"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"
    FAILED = "FAILED"


# State machine transition map
_VALID_TRANSITIONS = {
    OrderStatus.PENDING: {
        OrderStatus.SHIPPED,
        OrderStatus.PARTIAL,
        OrderStatus.DELIVERED,
        OrderStatus.CANCELLED,
        OrderStatus.FAILED,
    },
    OrderStatus.SHIPPED: {
        OrderStatus.PARTIAL,
        OrderStatus.DELIVERED,
        OrderStatus.CANCELLED,
        OrderStatus.FAILED,
    },
    OrderStatus.PARTIAL: {OrderStatus.DELIVERED, OrderStatus.CANCELLED},
    OrderStatus.DELIVERED: set(),  # Terminal
    OrderStatus.CANCELLED: set(),  # Terminal
    OrderStatus.FAILED: set(),  # Terminal
}

TERMINAL_STATES = frozenset(status for status, targets in _VALID_TRANSITIONS.items() if not targets)

# Cancelling or failing an order from these states hands its stock back
_STOCK_HOLDING_STATES = {OrderStatus.PENDING, OrderStatus.SHIPPED}
_STOCK_RELEASING_STATES = {OrderStatus.CANCELLED, OrderStatus.FAILED}


def generate_delivery_code() -> str:
    return "".join(secrets.choice("0123456789") for _ in range(DELIVERY_CODE_LENGTH))


def parse_status(value) -> OrderStatus:
    try:
        return OrderStatus(str(value).upper())
    except ValueError:
        raise InvalidInput(f"Unknown order status: {value}", status=str(value)) from None


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@storefront.entity(part_of="Order")
class OrderItem:
    product_id = Identifier(required=True)  # Reference only; the product may be deleted later
    name = String(required=True, max_length=255)
    price = Float(required=True, min_value=0.0)  # Unit price resolved at checkout
    image = String(max_length=1000)
    quantity = Integer(required=True, min_value=0)


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@storefront.aggregate
class Order:
    user_id = Identifier(required=True)
    total = Float(required=True, min_value=0.0)
    phone = String(required=True, max_length=20)
    address = String(required=True, max_length=500)
    note = Text()
    otp = String(required=True, max_length=DELIVERY_CODE_LENGTH)
    otp_verified = Boolean(default=False)
    status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    items = HasMany(OrderItem)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def total_must_equal_sum_of_line_amounts(self):
        if self.total != self.compute_total():
            raise ValidationError({"total": ["Order total must equal the sum of its line amounts"]})

    @invariant.post
    def delivered_orders_are_verified(self):
        if self.status == OrderStatus.DELIVERED.value and not self.otp_verified:
            raise ValidationError({"otp_verified": ["A delivered order must have a verified delivery code"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def place(cls, user_id, phone, address, lines, note=None):
        """Create a PENDING order from priced line snapshots.

        Args:
            lines: List of dicts with product_id, name, price, image, quantity.
        """
        now = datetime.now(UTC)
        items = [
            OrderItem(
                product_id=line["product_id"],
                name=line["name"],
                price=line["price"],
                image=line.get("image"),
                quantity=line["quantity"],
            )
            for line in lines
        ]

        order = cls(
            user_id=str(user_id),
            total=total_of((item.price, item.quantity) for item in items),
            phone=phone,
            address=address,
            note=note,
            otp=generate_delivery_code(),
            otp_verified=False,
            status=OrderStatus.PENDING.value,
            items=items,
            created_at=now,
            updated_at=now,
        )

        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                user_id=str(user_id),
                items=json.dumps(
                    [
                        {
                            "item_id": str(item.id),
                            "product_id": str(item.product_id),
                            "name": item.name,
                            "price": item.price,
                            "quantity": item.quantity,
                        }
                        for item in order.items
                    ]
                ),
                total=order.total,
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def current_status(self) -> OrderStatus:
        return OrderStatus(self.status)

    @property
    def is_terminal(self) -> bool:
        return self.current_status in TERMINAL_STATES

    def compute_total(self) -> float:
        return total_of((item.price, item.quantity) for item in self.items)

    def is_accessible_by(self, actor) -> bool:
        return actor.is_admin or actor.owns(self.user_id)

    def restores_stock_on(self, target: OrderStatus) -> bool:
        """Whether moving to ``target`` hands this order's stock back."""
        return self.current_status in _STOCK_HOLDING_STATES and target in _STOCK_RELEASING_STATES

    # -------------------------------------------------------------------
    # State transition helper
    # -------------------------------------------------------------------
    def _assert_can_transition(self, target: OrderStatus):
        current = self.current_status
        if self.is_terminal:
            raise InvalidState(
                f"Order is already {current.value}",
                order_id=str(self.id),
                status=current.value,
            )
        if target not in _VALID_TRANSITIONS[current]:
            raise InvalidTransition(current.value, target.value)

    # -------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------
    def change_status(self, target: OrderStatus, changed_by):
        """Move to ``target`` on an administrator's request.

        Delivering an unverified order records the code as verified.
        """
        self._assert_can_transition(target)

        previous = self.current_status
        overridden = target is OrderStatus.DELIVERED and not self.otp_verified
        now = datetime.now(UTC)
        with atomic_change(self):
            if overridden:
                self.otp_verified = True
            self.status = target.value
            self.updated_at = now

        self.raise_(
            OrderStatusChanged(
                order_id=str(self.id),
                previous_status=previous.value,
                new_status=target.value,
                changed_by=str(changed_by),
                verification_overridden=overridden,
                changed_at=now,
            )
        )
        return previous

    def cancel(self, cancelled_by):
        """Cancel on the owner's request; only unverified PENDING or SHIPPED orders."""
        previous = self.current_status
        if previous not in _STOCK_HOLDING_STATES:
            raise InvalidState(
                f"Cannot cancel an order that is {previous.value}",
                order_id=str(self.id),
                status=previous.value,
            )
        if self.otp_verified:
            raise AlreadyVerified(str(self.id))

        now = datetime.now(UTC)
        self.status = OrderStatus.CANCELLED.value
        self.updated_at = now

        self.raise_(
            OrderCancelled(
                order_id=str(self.id),
                previous_status=previous.value,
                cancelled_by=str(cancelled_by),
                cancelled_at=now,
            )
        )
        return previous

    def verify_delivery(self, code, verified_by):
        """Check the delivery code; a match marks the order verified and delivered."""
        if self.otp_verified:
            raise AlreadyVerified(str(self.id))

        code = str(code or "").strip()
        if len(code) != DELIVERY_CODE_LENGTH or not code.isdigit():
            raise InvalidInput("Delivery code must be 6 digits", order_id=str(self.id))

        previous = self.current_status
        if self.is_terminal:
            raise InvalidState(
                f"Order is already {previous.value}",
                order_id=str(self.id),
                status=previous.value,
            )
        if not secrets.compare_digest(code, str(self.otp)):
            raise DeliveryCodeMismatch(str(self.id))

        now = datetime.now(UTC)
        with atomic_change(self):
            self.otp_verified = True
            self.status = OrderStatus.DELIVERED.value
            self.updated_at = now

        self.raise_(
            DeliveryVerified(
                order_id=str(self.id),
                previous_status=previous.value,
                verified_by=str(verified_by),
                verified_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Item edits (partially fulfilled orders only)
    # -------------------------------------------------------------------
    def edit_items(self, quantities: dict, edited_by):
        """Set new line quantities, keeping the snapshot unit prices.

        Args:
            quantities: Mapping of order item id to its new quantity (>= 0).

        Returns:
            List of ``(item, delta)`` for every line that changed, where
            ``delta = previous - new`` is the stock to hand back (negative
            when more stock is needed).
        """
        if self.current_status is not OrderStatus.PARTIAL:
            raise InvalidState(
                "Only partially delivered orders can be edited",
                order_id=str(self.id),
                status=self.status,
            )

        lines = {str(item.id): item for item in self.items}
        for item_id, quantity in quantities.items():
            if str(item_id) not in lines:
                raise ForeignItem(str(self.id), str(item_id))
            if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 0:
                raise InvalidInput("Quantity must be a whole number of at least 0", item_id=str(item_id))

        changes = []
        previous_total = self.total
        now = datetime.now(UTC)
        with atomic_change(self):
            for item_id, quantity in quantities.items():
                item = lines[str(item_id)]
                if item.quantity == quantity:
                    continue
                changes.append((item, item.quantity - quantity))
                item.quantity = quantity
            self.total = self.compute_total()
            self.updated_at = now

        self.raise_(
            OrderItemsEdited(
                order_id=str(self.id),
                changes=json.dumps(
                    [
                        {
                            "item_id": str(item.id),
                            "product_id": str(item.product_id),
                            "previous_quantity": item.quantity + delta,
                            "new_quantity": item.quantity,
                        }
                        for item, delta in changes
                    ]
                ),
                previous_total=previous_total,
                new_total=self.total,
                edited_by=str(edited_by),
                edited_at=now,
            )
        )
        return changes
