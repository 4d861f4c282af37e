"""Pydantic request/response schemas for the Storefront API.

These are external contracts (anti-corruption layer) — separate from
internal Protean commands.
"""

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Cart
# ---------------------------------------------------------------------------
class AddToCartRequest(BaseModel):
    product_id: str
    quantity: int = Field(default=1, ge=1)

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "product_id": "prod-001",
                    "quantity": 6,
                }
            ]
        }
    }


class UpdateCartItemRequest(BaseModel):
    quantity: int  # < 1 removes the line


class CartItemIdResponse(BaseModel):
    item_id: str


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------
class CheckoutRequest(BaseModel):
    phone: str = Field(min_length=10, max_length=20)
    address: str = Field(min_length=5, max_length=500)
    note: str | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "phone": "9876543210",
                    "address": "12 Market Road, Pune",
                    "note": "Ring the bell twice",
                }
            ]
        }
    }


class VerifyDeliveryCodeRequest(BaseModel):
    otp: str = Field(min_length=1, max_length=20)


class OrderIdResponse(BaseModel):
    order_id: str


# ---------------------------------------------------------------------------
# Admin
# ---------------------------------------------------------------------------
class SetOrderStatusRequest(BaseModel):
    status: str


class OrderItemEdit(BaseModel):
    item_id: str
    quantity: int = Field(ge=0)


class EditOrderItemsRequest(BaseModel):
    items: list[OrderItemEdit] = Field(min_length=1)


class RegisterProductRequest(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    mrp: float = Field(ge=0)
    offers: dict[str, float] | None = None  # {"6": 10, "12": 20}
    images: list[str] = Field(default_factory=list)
    stock: int | None = Field(default=None, ge=0)


class SetProductOffersRequest(BaseModel):
    offers: dict[str, float]


class AdjustProductStockRequest(BaseModel):
    delta: int


class SetProductStockRequest(BaseModel):
    stock: int | None = Field(default=None, ge=0)  # null stops tracking


class ProductIdResponse(BaseModel):
    product_id: str


class StockResponse(BaseModel):
    product_id: str
    stock: int | None


class StatusResponse(BaseModel):
    status: str = "ok"
