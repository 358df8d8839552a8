"""FastAPI routes for the Ordering domain: cart, checkout and orders.

Thin adapters that translate HTTP requests into domain commands. The owner
comes from the ``X-Customer-Id`` header set by the authentication layer in
front of this service.
"""

import json
import math
from datetime import datetime

from fastapi import APIRouter, Header, Query
from protean.utils.globals import current_domain

from ordering.api.schemas import (
    AddToCartRequest,
    ApplyCouponRequest,
    CartItemResponse,
    CartResponse,
    CartSummaryResponse,
    CheckoutRequest,
    OrderListResponse,
    OrderResponse,
    OrderStatsResponse,
    TransitionOrderRequest,
    UpdateCartItemRequest,
)
from ordering.cart.coupons import ApplyCouponToCart, RemoveCouponFromCart
from ordering.cart.items import AddToCart, RemoveFromCart, UpdateCartItem
from ordering.cart.management import ClearCart, RefreshCart
from ordering.checkout.checkout import PlaceOrder, place_order
from ordering.order.lifecycle import TransitionOrder, change_order_status
from ordering.order.order import Order


def _cart_items(data) -> list[CartItemResponse]:
    return [
        CartItemResponse(
            product_id=str(item["product_id"]),
            name=item["name"],
            price=item["price"],
            quantity=item["quantity"],
            color=item.get("color"),
            size=item.get("size"),
            image=item.get("image"),
            line_total=round(item["price"] * item["quantity"], 2),
        )
        for item in data.get("items", [])
    ]


def _cart_response(data) -> CartResponse:
    return CartResponse(
        owner_id=str(data["owner_id"]),
        items=_cart_items(data),
        coupon=data.get("coupon") or None,
        total_items=data.get("total_items") or 0,
        total_price=data.get("total_price") or 0.0,
    )


def _order_response(data) -> OrderResponse:
    return OrderResponse.model_validate(data)


# ---------------------------------------------------------------------------
# Cart Router
# ---------------------------------------------------------------------------
cart_router = APIRouter(prefix="/cart", tags=["cart"])


@cart_router.get("", response_model=CartResponse)
async def get_cart(x_customer_id: str = Header()) -> CartResponse:
    """Return the owner's cart after pruning lines the catalogue can no longer honour."""
    result = current_domain.process(RefreshCart(owner_id=x_customer_id), asynchronous=False)
    return _cart_response(result)


@cart_router.get("/summary", response_model=CartSummaryResponse)
async def get_cart_summary(x_customer_id: str = Header()) -> CartSummaryResponse:
    result = current_domain.process(RefreshCart(owner_id=x_customer_id), asynchronous=False)
    items = _cart_items(result)
    return CartSummaryResponse(
        total_items=result.get("total_items") or 0,
        item_count=len(items),
        subtotal=result.get("subtotal") or 0.0,
        discount=result.get("discount") or 0.0,
        tax=result.get("tax") or 0.0,
        shipping_fee=result.get("shipping_fee") or 0.0,
        total=result.get("total_price") or 0.0,
        coupon=result.get("coupon") or None,
        items=items,
    )


@cart_router.post("/items", response_model=CartResponse)
async def add_cart_item(body: AddToCartRequest, x_customer_id: str = Header()) -> CartResponse:
    command = AddToCart(
        owner_id=x_customer_id,
        product_id=body.product_id,
        quantity=body.quantity,
        color=body.color,
        size=body.size,
    )
    result = current_domain.process(command, asynchronous=False)
    return _cart_response(result)


@cart_router.put("/items/{product_id}", response_model=CartResponse)
async def update_cart_item(product_id: str, body: UpdateCartItemRequest, x_customer_id: str = Header()) -> CartResponse:
    command = UpdateCartItem(
        owner_id=x_customer_id,
        product_id=product_id,
        quantity=body.quantity,
        color=body.color,
        size=body.size,
    )
    result = current_domain.process(command, asynchronous=False)
    return _cart_response(result)


@cart_router.delete("/items/{product_id}", response_model=CartResponse)
async def remove_cart_item(
    product_id: str,
    color: str | None = None,
    size: str | None = None,
    x_customer_id: str = Header(),
) -> CartResponse:
    command = RemoveFromCart(owner_id=x_customer_id, product_id=product_id, color=color, size=size)
    result = current_domain.process(command, asynchronous=False)
    return _cart_response(result)


@cart_router.delete("", response_model=CartResponse)
async def clear_cart(x_customer_id: str = Header()) -> CartResponse:
    result = current_domain.process(ClearCart(owner_id=x_customer_id), asynchronous=False)
    return _cart_response(result)


@cart_router.post("/coupon", response_model=CartResponse)
async def apply_coupon(body: ApplyCouponRequest, x_customer_id: str = Header()) -> CartResponse:
    command = ApplyCouponToCart(
        owner_id=x_customer_id,
        code=body.code,
        discount_value=body.discount_value,
        discount_kind=body.discount_kind,
    )
    result = current_domain.process(command, asynchronous=False)
    return _cart_response(result)


@cart_router.delete("/coupon", response_model=CartResponse)
async def remove_coupon(x_customer_id: str = Header()) -> CartResponse:
    result = current_domain.process(RemoveCouponFromCart(owner_id=x_customer_id), asynchronous=False)
    return _cart_response(result)


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("", status_code=201, response_model=OrderResponse)
async def checkout(body: CheckoutRequest, x_customer_id: str = Header()) -> OrderResponse:
    command = PlaceOrder(
        owner_id=x_customer_id,
        shipping_address=json.dumps(body.shipping_address.model_dump()),
        billing_address=json.dumps(body.billing_address.model_dump()) if body.billing_address else None,
        payment_method=body.payment_method,
        notes=body.notes,
    )
    return _order_response(place_order(command))


@order_router.get("", response_model=OrderListResponse)
async def list_my_orders(x_customer_id: str = Header()) -> OrderListResponse:
    orders = current_domain.repository_for(Order).for_owner(x_customer_id)
    return OrderListResponse(
        orders=[_order_response(order.to_dict()) for order in orders],
        total=len(orders),
    )


@order_router.get("/{order_id}", response_model=OrderResponse)
async def get_my_order(order_id: str, x_customer_id: str = Header()) -> OrderResponse:
    order = current_domain.repository_for(Order).get_for_owner(order_id, x_customer_id)
    return _order_response(order.to_dict())


# ---------------------------------------------------------------------------
# Admin Router
# ---------------------------------------------------------------------------
admin_router = APIRouter(prefix="/admin/orders", tags=["admin"])


@admin_router.get("", response_model=OrderListResponse)
async def list_all_orders(
    status: str | None = None,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
) -> OrderListResponse:
    orders, total = current_domain.repository_for(Order).search(
        status=status,
        date_from=date_from,
        date_to=date_to,
        page=page,
        limit=limit,
    )
    return OrderListResponse(
        orders=[_order_response(order.to_dict()) for order in orders],
        total=total,
        page=page,
        pages=max(1, math.ceil(total / limit)),
    )


@admin_router.get("/stats", response_model=OrderStatsResponse)
async def order_stats() -> OrderStatsResponse:
    stats = current_domain.repository_for(Order).stats()
    stats["recent_orders"] = [_order_response(order.to_dict()) for order in stats["recent_orders"]]
    return OrderStatsResponse(**stats)


@admin_router.put("/{order_id}/status", response_model=OrderResponse)
async def transition_order(order_id: str, body: TransitionOrderRequest) -> OrderResponse:
    command = TransitionOrder(
        order_id=order_id,
        target_status=body.status,
        tracking_number=body.tracking_number,
        notes=body.notes,
    )
    return _order_response(change_order_status(command))
