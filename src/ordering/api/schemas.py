"""Pydantic request/response schemas for the Ordering API.

These are external contracts (anti-corruption layer), separate from the
internal protean commands.
"""

from datetime import datetime

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class AddressSchema(BaseModel):
    name: str | None = None
    street: str
    city: str
    state: str | None = None
    zip_code: str | None = None
    country: str
    phone: str | None = None


class CouponSchema(BaseModel):
    code: str
    discount_value: float
    discount_kind: str


# ---------------------------------------------------------------------------
# Cart Request Schemas
# ---------------------------------------------------------------------------
class AddToCartRequest(BaseModel):
    product_id: str
    quantity: int = Field(ge=1, default=1)
    color: str | None = None
    size: str | None = None


class UpdateCartItemRequest(BaseModel):
    quantity: int
    color: str | None = None
    size: str | None = None


class ApplyCouponRequest(BaseModel):
    code: str = Field(min_length=1, max_length=100)
    discount_value: float = Field(gt=0)
    discount_kind: str = "percentage"

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "code": "WELCOME10",
                    "discount_value": 10,
                    "discount_kind": "percentage",
                }
            ]
        }
    }


# ---------------------------------------------------------------------------
# Cart Response Schemas
# ---------------------------------------------------------------------------
class CartItemResponse(BaseModel):
    product_id: str
    name: str
    price: float
    quantity: int
    color: str | None = None
    size: str | None = None
    image: str | None = None
    line_total: float


class CartResponse(BaseModel):
    owner_id: str
    items: list[CartItemResponse]
    coupon: CouponSchema | None = None
    total_items: int
    total_price: float


class CartSummaryResponse(BaseModel):
    total_items: int
    item_count: int
    subtotal: float
    discount: float
    tax: float
    shipping_fee: float
    total: float
    coupon: CouponSchema | None = None
    items: list[CartItemResponse]


# ---------------------------------------------------------------------------
# Order Request Schemas
# ---------------------------------------------------------------------------
class CheckoutRequest(BaseModel):
    shipping_address: AddressSchema
    billing_address: AddressSchema | None = None
    payment_method: str = "cash"
    notes: str | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "shipping_address": {
                        "name": "Ama Mensah",
                        "street": "12 Ring Road",
                        "city": "Accra",
                        "country": "GH",
                        "phone": "+233200000000",
                    },
                    "payment_method": "mobile_money",
                }
            ]
        }
    }


class TransitionOrderRequest(BaseModel):
    status: str
    tracking_number: str | None = None
    notes: str | None = None


# ---------------------------------------------------------------------------
# Order Response Schemas
# ---------------------------------------------------------------------------
class OrderItemResponse(BaseModel):
    product_id: str
    name: str
    price: float
    quantity: int
    color: str | None = None
    size: str | None = None
    image: str | None = None


class OrderResponse(BaseModel):
    id: str
    order_number: str
    owner_id: str
    items: list[OrderItemResponse]
    shipping_address: AddressSchema | None = None
    billing_address: AddressSchema | None = None
    payment_method: str
    payment_status: str
    status: str
    subtotal: float
    shipping_fee: float
    tax: float
    discount: float
    total: float
    coupon_code: str | None = None
    notes: str | None = None
    tracking_number: str | None = None
    created_at: datetime | None = None
    delivered_at: datetime | None = None
    cancelled_at: datetime | None = None


class OrderListResponse(BaseModel):
    orders: list[OrderResponse]
    total: int
    page: int = 1
    pages: int = 1


class MonthlyRevenueSchema(BaseModel):
    month: str
    revenue: float
    orders: int


class OrderStatsResponse(BaseModel):
    total_orders: int
    total_revenue: float
    by_status: dict[str, int]
    recent_orders: list[OrderResponse] = []
    monthly_revenue: list[MonthlyRevenueSchema] = []
