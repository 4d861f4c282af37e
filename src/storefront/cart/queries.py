"""Cart read model — the caller's cart with a priced preview."""

from decimal import ROUND_HALF_UP, Decimal

from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from storefront.cart.cart import Cart
from storefront.catalogue.pricing import CENT, line_amount
from storefront.catalogue.product import Product


def _money(amount: Decimal) -> float:
    return float(amount.quantize(CENT, rounding=ROUND_HALF_UP))


def cart_view(user_id) -> dict:
    """Lines with their product snapshot plus subtotal (at MRP), discount and total.

    Lines whose product has left the catalogue are listed without a price and
    do not count towards the totals; checkout rejects them.
    """
    cart = current_domain.repository_for(Cart).for_user(user_id)
    products = current_domain.repository_for(Product)

    lines = []
    subtotal = Decimal(0)
    total = Decimal(0)
    for item in (cart.items if cart else []):
        line = {
            "id": str(item.id),
            "product_id": str(item.product_id),
            "quantity": item.quantity,
            "product": None,
            "unit_price": None,
            "amount": None,
        }
        try:
            product = products.get(str(item.product_id))
        except ObjectNotFoundError:
            lines.append(line)
            continue

        unit_price = product.unit_price_for(item.quantity)
        subtotal += line_amount(product.mrp, item.quantity)
        total += line_amount(unit_price, item.quantity)
        line.update(
            product={
                "id": str(product.id),
                "name": product.name,
                "mrp": product.mrp,
                "image": product.primary_image,
                "stock": product.stock,
            },
            unit_price=unit_price,
            amount=_money(line_amount(unit_price, item.quantity)),
        )
        lines.append(line)

    return {
        "id": str(cart.id) if cart else None,
        "user_id": str(user_id),
        "items": lines,
        "subtotal": _money(subtotal),
        "discount": _money(subtotal - total),
        "total": _money(total),
    }
