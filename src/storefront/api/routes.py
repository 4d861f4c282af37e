"""FastAPI routes for the Storefront — carts, orders and administration."""

import json

from fastapi import APIRouter, Depends, Query

from storefront import concurrency
from storefront.actors import Actor
from storefront.api.dependencies import admin_actor, current_actor
from storefront.api.schemas import (
    AddToCartRequest,
    AdjustProductStockRequest,
    CartItemIdResponse,
    CheckoutRequest,
    EditOrderItemsRequest,
    OrderIdResponse,
    ProductIdResponse,
    RegisterProductRequest,
    SetOrderStatusRequest,
    SetProductOffersRequest,
    SetProductStockRequest,
    StatusResponse,
    StockResponse,
    UpdateCartItemRequest,
    VerifyDeliveryCodeRequest,
)
from storefront.cart.items import AddToCart, RemoveCartItem, UpdateCartItem
from storefront.cart.queries import cart_view
from storefront.catalogue.management import (
    AdjustProductStock,
    RegisterProduct,
    SetProductOffers,
    SetProductStock,
)
from storefront.order.cancellation import CancelOrder
from storefront.order.checkout import Checkout
from storefront.order.delivery import VerifyDeliveryCode
from storefront.order.modification import EditOrderItems
from storefront.order.queries import (
    admin_orders,
    order_counts,
    order_for_admin,
    order_for_user,
    orders_for_user,
)
from storefront.order.status import SetOrderStatus

# ---------------------------------------------------------------------------
# Cart Router
# ---------------------------------------------------------------------------
cart_router = APIRouter(prefix="/cart", tags=["cart"])


@cart_router.get("")
async def get_cart(actor: Actor = Depends(current_actor)) -> dict:
    return cart_view(actor.user_id)


@cart_router.post("/items", status_code=201, response_model=CartItemIdResponse)
async def add_to_cart(body: AddToCartRequest, actor: Actor = Depends(current_actor)) -> CartItemIdResponse:
    command = AddToCart(
        user_id=actor.user_id,
        product_id=body.product_id,
        quantity=body.quantity,
    )
    result = concurrency.process(command)
    return CartItemIdResponse(item_id=result)


@cart_router.put("/items/{item_id}", response_model=StatusResponse)
async def update_cart_item(
    item_id: str, body: UpdateCartItemRequest, actor: Actor = Depends(current_actor)
) -> StatusResponse:
    command = UpdateCartItem(
        user_id=actor.user_id,
        item_id=item_id,
        quantity=body.quantity,
    )
    concurrency.process(command)
    return StatusResponse()


@cart_router.delete("/items/{item_id}", response_model=StatusResponse)
async def remove_cart_item(item_id: str, actor: Actor = Depends(current_actor)) -> StatusResponse:
    concurrency.process(RemoveCartItem(user_id=actor.user_id, item_id=item_id))
    return StatusResponse()


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("", status_code=201, response_model=OrderIdResponse)
async def checkout(body: CheckoutRequest, actor: Actor = Depends(current_actor)) -> OrderIdResponse:
    command = Checkout(
        user_id=actor.user_id,
        phone=body.phone,
        address=body.address,
        note=body.note,
    )
    result = concurrency.process(command)
    return OrderIdResponse(order_id=result)


@order_router.get("")
async def list_orders(actor: Actor = Depends(current_actor)) -> list[dict]:
    return orders_for_user(actor.user_id)


@order_router.get("/{order_id}")
async def get_order(order_id: str, actor: Actor = Depends(current_actor)) -> dict:
    return order_for_user(actor.user_id, order_id)


@order_router.post("/{order_id}/cancel", response_model=StatusResponse)
async def cancel_order(order_id: str, actor: Actor = Depends(current_actor)) -> StatusResponse:
    command = CancelOrder(
        order_id=order_id,
        actor_id=actor.user_id,
        actor_role=actor.role.value,
    )
    concurrency.process(command)
    return StatusResponse()


@order_router.post("/{order_id}/verify", response_model=StatusResponse)
async def verify_delivery_code(
    order_id: str, body: VerifyDeliveryCodeRequest, actor: Actor = Depends(current_actor)
) -> StatusResponse:
    command = VerifyDeliveryCode(
        order_id=order_id,
        code=body.otp,
        actor_id=actor.user_id,
        actor_role=actor.role.value,
    )
    concurrency.process(command)
    return StatusResponse()


# ---------------------------------------------------------------------------
# Admin Router
# ---------------------------------------------------------------------------
admin_router = APIRouter(prefix="/admin", tags=["admin"])


@admin_router.get("/orders")
async def list_all_orders(
    status: str | None = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    admin: Actor = Depends(admin_actor),
) -> dict:
    return admin_orders(status=status, page=page, limit=limit)


@admin_router.get("/orders/counts")
async def count_orders(admin: Actor = Depends(admin_actor)) -> dict:
    return order_counts()


@admin_router.get("/orders/{order_id}")
async def get_any_order(order_id: str, admin: Actor = Depends(admin_actor)) -> dict:
    return order_for_admin(order_id)


@admin_router.put("/orders/{order_id}/status", response_model=StatusResponse)
async def set_order_status(
    order_id: str, body: SetOrderStatusRequest, admin: Actor = Depends(admin_actor)
) -> StatusResponse:
    command = SetOrderStatus(
        order_id=order_id,
        status=body.status,
        actor_id=admin.user_id,
        actor_role=admin.role.value,
    )
    concurrency.process(command)
    return StatusResponse()


@admin_router.put("/orders/{order_id}/items")
async def edit_order_items(order_id: str, body: EditOrderItemsRequest, admin: Actor = Depends(admin_actor)) -> dict:
    command = EditOrderItems(
        order_id=order_id,
        items=json.dumps([item.model_dump() for item in body.items]),
        actor_id=admin.user_id,
        actor_role=admin.role.value,
    )
    return concurrency.process(command)


@admin_router.post("/products", status_code=201, response_model=ProductIdResponse)
async def register_product(body: RegisterProductRequest, admin: Actor = Depends(admin_actor)) -> ProductIdResponse:
    command = RegisterProduct(
        name=body.name,
        mrp=body.mrp,
        offers=json.dumps(body.offers) if body.offers else None,
        images=json.dumps(body.images),
        stock=body.stock,
        actor_id=admin.user_id,
        actor_role=admin.role.value,
    )
    result = concurrency.process(command)
    return ProductIdResponse(product_id=result)


@admin_router.put("/products/{product_id}/offers", response_model=StatusResponse)
async def set_product_offers(
    product_id: str, body: SetProductOffersRequest, admin: Actor = Depends(admin_actor)
) -> StatusResponse:
    command = SetProductOffers(
        product_id=product_id,
        offers=json.dumps(body.offers),
        actor_id=admin.user_id,
        actor_role=admin.role.value,
    )
    concurrency.process(command)
    return StatusResponse()


@admin_router.post("/products/{product_id}/stock/adjust", response_model=StockResponse)
async def adjust_product_stock(
    product_id: str, body: AdjustProductStockRequest, admin: Actor = Depends(admin_actor)
) -> StockResponse:
    command = AdjustProductStock(
        product_id=product_id,
        delta=body.delta,
        actor_id=admin.user_id,
        actor_role=admin.role.value,
    )
    stock = concurrency.process(command)
    return StockResponse(product_id=product_id, stock=stock)


@admin_router.put("/products/{product_id}/stock", response_model=StockResponse)
async def set_product_stock(
    product_id: str, body: SetProductStockRequest, admin: Actor = Depends(admin_actor)
) -> StockResponse:
    command = SetProductStock(
        product_id=product_id,
        stock=body.stock,
        untracked=body.stock is None,
        actor_id=admin.user_id,
        actor_role=admin.role.value,
    )
    stock = concurrency.process(command)
    return StockResponse(product_id=product_id, stock=stock)
