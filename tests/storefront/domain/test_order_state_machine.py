"""Tests for the Order aggregate's status graph and delivery code gate."""

import pytest
from protean.exceptions import ValidationError

from storefront.actors import Actor, Role
from storefront.errors import (
    AlreadyVerified,
    DeliveryCodeMismatch,
    ForeignItem,
    InvalidInput,
    InvalidState,
    InvalidTransition,
)
from storefront.order import order as order_module
from storefront.order.events import DeliveryVerified, OrderStatusChanged
from storefront.order.order import Order, OrderStatus, generate_delivery_code


@pytest.fixture(autouse=True)
def fixed_code(monkeypatch):
    monkeypatch.setattr(order_module, "generate_delivery_code", lambda: "123456")


def _order(status=OrderStatus.PENDING, verified=False):
    order = Order.place(
        user_id="user-1",
        phone="9876543210",
        address="12 Market Road",
        lines=[
            {"product_id": "prod-1", "name": "Widget", "price": 90.0, "image": None, "quantity": 6},
            {"product_id": "prod-2", "name": "Gadget", "price": 19.99, "image": "g.jpg", "quantity": 3},
        ],
    )
    if status is not OrderStatus.PENDING:
        order.change_status(status, changed_by="admin-1")
    if verified:
        order.otp_verified = True
    return order


class TestPlacement:
    def test_new_order_is_pending_and_unverified(self):
        order = _order()
        assert order.status == OrderStatus.PENDING.value
        assert order.otp_verified is False
        assert not order.is_terminal
        assert order.otp == "123456"

    def test_total_is_sum_of_line_amounts(self):
        assert _order().total == 599.97

    def test_generated_code_is_six_digits(self):
        code = generate_delivery_code()
        assert len(code) == 6
        assert code.isdigit()

    def test_total_tampering_violates_invariant(self):
        order = _order()
        with pytest.raises(ValidationError):
            order.total = 1.0


class TestTransitions:
    @pytest.mark.parametrize(
        ("start", "target"),
        [
            (OrderStatus.PENDING, OrderStatus.SHIPPED),
            (OrderStatus.PENDING, OrderStatus.CANCELLED),
            (OrderStatus.PENDING, OrderStatus.FAILED),
            (OrderStatus.SHIPPED, OrderStatus.PARTIAL),
            (OrderStatus.SHIPPED, OrderStatus.FAILED),
            (OrderStatus.PARTIAL, OrderStatus.CANCELLED),
        ],
    )
    def test_legal_transitions(self, start, target):
        order = _order(status=start)
        order.change_status(target, changed_by="admin-1")
        assert order.status == target.value

    @pytest.mark.parametrize(
        ("start", "target"),
        [
            (OrderStatus.SHIPPED, OrderStatus.PENDING),
            (OrderStatus.PARTIAL, OrderStatus.SHIPPED),
            (OrderStatus.PARTIAL, OrderStatus.FAILED),
            (OrderStatus.PENDING, OrderStatus.PENDING),
        ],
    )
    def test_illegal_transitions(self, start, target):
        order = _order(status=start)
        with pytest.raises(InvalidTransition):
            order.change_status(target, changed_by="admin-1")
        assert order.status == start.value

    @pytest.mark.parametrize("terminal", [OrderStatus.DELIVERED, OrderStatus.CANCELLED, OrderStatus.FAILED])
    def test_terminal_orders_cannot_move(self, terminal):
        order = _order(status=terminal)
        assert order.is_terminal
        with pytest.raises(InvalidState):
            order.change_status(OrderStatus.SHIPPED, changed_by="admin-1")

    def test_admin_delivery_overrides_verification(self):
        order = _order(status=OrderStatus.SHIPPED)
        order.change_status(OrderStatus.DELIVERED, changed_by="admin-1")
        assert order.otp_verified is True
        event = order._events[-1]
        assert isinstance(event, OrderStatusChanged)
        assert event.verification_overridden is True

    def test_delivered_requires_verification(self):
        order = _order()
        with pytest.raises(ValidationError):
            order.status = OrderStatus.DELIVERED.value

    @pytest.mark.parametrize(
        ("start", "target", "restores"),
        [
            (OrderStatus.PENDING, OrderStatus.CANCELLED, True),
            (OrderStatus.SHIPPED, OrderStatus.FAILED, True),
            (OrderStatus.PARTIAL, OrderStatus.CANCELLED, False),
            (OrderStatus.PENDING, OrderStatus.SHIPPED, False),
        ],
    )
    def test_stock_restoration_rule(self, start, target, restores):
        assert _order(status=start).restores_stock_on(target) is restores


class TestCancel:
    def test_cancel_pending(self):
        order = _order()
        previous = order.cancel(cancelled_by="user-1")
        assert previous is OrderStatus.PENDING
        assert order.status == OrderStatus.CANCELLED.value

    def test_cancel_partial_fails(self):
        order = _order(status=OrderStatus.PARTIAL)
        with pytest.raises(InvalidState):
            order.cancel(cancelled_by="user-1")

    def test_cancel_verified_fails(self):
        order = _order(status=OrderStatus.SHIPPED, verified=True)
        with pytest.raises(AlreadyVerified):
            order.cancel(cancelled_by="user-1")


class TestDeliveryCode:
    def test_correct_code_delivers(self):
        order = _order(status=OrderStatus.SHIPPED)
        order.verify_delivery("123456", verified_by="user-1")
        assert order.otp_verified is True
        assert order.status == OrderStatus.DELIVERED.value
        assert isinstance(order._events[-1], DeliveryVerified)

    def test_repeat_verification_fails(self):
        order = _order(status=OrderStatus.SHIPPED)
        order.verify_delivery("123456", verified_by="user-1")
        with pytest.raises(AlreadyVerified):
            order.verify_delivery("123456", verified_by="user-1")

    def test_wrong_code_leaves_order_untouched(self):
        order = _order(status=OrderStatus.SHIPPED)
        with pytest.raises(DeliveryCodeMismatch):
            order.verify_delivery("654321", verified_by="user-1")
        assert order.otp_verified is False
        assert order.status == OrderStatus.SHIPPED.value

    @pytest.mark.parametrize("code", ["12345", "1234567", "abcdef", ""])
    def test_malformed_code_is_invalid_input(self, code):
        with pytest.raises(InvalidInput):
            _order().verify_delivery(code, verified_by="user-1")

    def test_cancelled_order_cannot_be_verified(self):
        order = _order(status=OrderStatus.CANCELLED)
        with pytest.raises(InvalidState):
            order.verify_delivery("123456", verified_by="user-1")


class TestItemEdits:
    def test_edit_requires_partial(self):
        order = _order(status=OrderStatus.SHIPPED)
        with pytest.raises(InvalidState):
            order.edit_items({str(order.items[0].id): 2}, edited_by="admin-1")

    def test_edit_returns_deltas_and_recomputes_total(self):
        order = _order(status=OrderStatus.PARTIAL)
        first, second = order.items
        changes = order.edit_items({str(first.id): 4, str(second.id): 3}, edited_by="admin-1")

        assert [(str(item.id), delta) for item, delta in changes] == [(str(first.id), 2)]
        assert order.total == 419.97

    def test_edit_to_zero_is_allowed(self):
        order = _order(status=OrderStatus.PARTIAL)
        first = order.items[0]
        order.edit_items({str(first.id): 0}, edited_by="admin-1")
        assert order.total == 59.97

    def test_foreign_item_fails(self):
        order = _order(status=OrderStatus.PARTIAL)
        with pytest.raises(ForeignItem):
            order.edit_items({"not-on-this-order": 1}, edited_by="admin-1")

    def test_negative_quantity_fails(self):
        order = _order(status=OrderStatus.PARTIAL)
        with pytest.raises(InvalidInput):
            order.edit_items({str(order.items[0].id): -1}, edited_by="admin-1")


class TestAccess:
    def test_owner_and_admin_can_access(self):
        order = _order()
        assert order.is_accessible_by(Actor("user-1"))
        assert order.is_accessible_by(Actor("admin-1", Role.ADMIN))
        assert not order.is_accessible_by(Actor("user-2"))
