"""Order reads for customers and administrators.

Customers only ever see their own orders, including the delivery code they
hand to the courier. Administrator views never include the code.
"""

from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from storefront.errors import InvalidInput, OrderNotFound
from storefront.order.order import Order, OrderStatus, parse_status

MAX_PAGE_SIZE = 100

# Admin list filters; "delivered" and "cancelled" also cover their partial or failed variants
_STATUS_FILTERS = {
    "pending": [OrderStatus.PENDING],
    "shipped": [OrderStatus.SHIPPED],
    "delivered": [OrderStatus.DELIVERED, OrderStatus.PARTIAL],
    "cancelled": [OrderStatus.CANCELLED, OrderStatus.FAILED],
}


def order_snapshot(order: Order, include_code: bool = False) -> dict:
    snapshot = {
        "id": str(order.id),
        "user_id": str(order.user_id),
        "status": order.status,
        "total": order.total,
        "phone": order.phone,
        "address": order.address,
        "note": order.note,
        "otp_verified": bool(order.otp_verified),
        "items": [
            {
                "id": str(item.id),
                "product_id": str(item.product_id),
                "name": item.name,
                "price": item.price,
                "image": item.image,
                "quantity": item.quantity,
            }
            for item in order.items
        ],
        "created_at": order.created_at.isoformat() if order.created_at else None,
        "updated_at": order.updated_at.isoformat() if order.updated_at else None,
    }
    if include_code:
        snapshot["otp"] = order.otp
    return snapshot


def _orders():
    return current_domain.repository_for(Order)._dao.query


def orders_for_user(user_id) -> list[dict]:
    """Every order the user has placed, newest first."""
    orders = _orders().filter(user_id=str(user_id)).order_by("-created_at").limit(None).all()
    return [order_snapshot(order, include_code=True) for order in orders.items]


def order_for_user(user_id, order_id) -> dict:
    try:
        order = current_domain.repository_for(Order).get(str(order_id))
    except ObjectNotFoundError:
        raise OrderNotFound(str(order_id)) from None
    if str(order.user_id) != str(user_id):
        raise OrderNotFound(str(order_id))
    return order_snapshot(order, include_code=True)


def status_filter(status) -> list[str] | None:
    """Statuses matched by an admin list filter; any other status matches exactly."""
    if not status:
        return None
    grouped = _STATUS_FILTERS.get(str(status).lower())
    if grouped is None:
        return [parse_status(status).value]
    return [s.value for s in grouped]


def admin_orders(status=None, page: int = 1, limit: int = 10) -> dict:
    """One page of all orders, newest first, optionally filtered by status."""
    if page < 1:
        raise InvalidInput("Page must be at least 1", page=page)
    if not 1 <= limit <= MAX_PAGE_SIZE:
        raise InvalidInput(f"Limit must be between 1 and {MAX_PAGE_SIZE}", limit=limit)

    query = _orders()
    statuses = status_filter(status)
    if statuses:
        query = query.filter(status__in=statuses)

    result = query.order_by("-created_at").offset((page - 1) * limit).limit(limit).all()
    return {
        "orders": [order_snapshot(order) for order in result.items],
        "page": page,
        "limit": limit,
        "total": result.total,
        "pages": (result.total + limit - 1) // limit,
    }


def order_counts() -> dict:
    def count(key):
        return _orders().filter(status__in=status_filter(key)).all().total

    return {
        "pending": count("pending"),
        "shipped": count("shipped"),
        "delivered": count("delivered"),
        "cancelled": count("cancelled"),
        "total": _orders().all().total,
    }


def order_for_admin(order_id) -> dict:
    try:
        order = current_domain.repository_for(Order).get(str(order_id))
    except ObjectNotFoundError:
        raise OrderNotFound(str(order_id)) from None
    return order_snapshot(order)
