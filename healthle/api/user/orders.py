"""
Order endpoints of the user portal.

Hosted checkout purchases live in ``vendor_orders`` and are looked up by
their checkout session id; cart orders (``POST /api/orders``) live in
``orders``.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import APIRouter, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError

from healthle.api.dependencies import CurrentUser, DatabaseSession, PaymentGateway
from healthle.core.config import settings
from healthle.core.errors import error_detail
from healthle.core.retry import retry_with_backoff
from healthle.models.order import OrderStatus, VendorOrder
from healthle.repositories.orders import (
    OrderRepository,
    VendorOrderRepository,
    format_shipping_address,
    generate_order_number,
)
from healthle.repositories.products import ProductRepository
from healthle.schemas.order import (
    CartOrderCreate,
    CheckoutOrderCreate,
    OrderEmailUpdate,
    OrderUserUpdate,
    SessionLookup,
)
from healthle.services.interfaces.payment_gateway import IPaymentGateway, PaymentGatewayError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/orders", tags=["orders"])

MISSING_FIELDS = "Missing required fields"
ORDER_NOT_FOUND = "注文が見つかりません"
UNKNOWN_PRODUCT = "不明な商品"

# Delivery rate offered on every hosted checkout
FREE_SHIPPING_RATE = {
    "shipping_rate_data": {
        "type": "fixed_amount",
        "fixed_amount": {"amount": 0, "currency": "jpy"},
        "display_name": "通常配送",
        "delivery_estimate": {
            "minimum": {"unit": "business_day", "value": 3},
            "maximum": {"unit": "business_day", "value": 7},
        },
    }
}


class OrderNotReadyError(Exception):
    """The order of a paid checkout session has not been stored yet."""


def timestamp_ms(iso: Optional[str]) -> Optional[int]:
    """Epoch milliseconds of an ISO timestamp."""
    if not iso:
        return None
    return int(datetime.fromisoformat(iso).timestamp() * 1000)


async def _paid_session(payments: IPaymentGateway, session_id: Optional[str]) -> Dict[str, Any]:
    if not session_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Session ID is required")
    try:
        checkout_session = await payments.retrieve_checkout_session(session_id)
    except PaymentGatewayError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=error_detail("Internal server error", e),
        ) from e
    if checkout_session.get("payment_status") != "paid":
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Payment not completed")
    return checkout_session


@retry_with_backoff(max_retries=2, base_delay=1.0, jitter=False, exceptions=(OrderNotReadyError,))
async def find_session_order(orders: VendorOrderRepository, session_id: str) -> VendorOrder:
    """Order of a checkout session; retried while the checkout write catches up."""
    order = await orders.get_by_session_id(session_id)
    if order is None:
        raise OrderNotReadyError(session_id)
    return order


@router.post("/create")
async def create_order(request: CheckoutOrderCreate, db: DatabaseSession, payments: PaymentGateway):
    """
    Start a hosted checkout for one product.

    Creates a pending order numbered ``ORD{ms}{base36}`` and returns the
    checkout URL. The purchaser's shipping address is collected by the
    processor and arrives with the completion webhook.
    """
    if not request.product_id or not request.user_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="product_id and user_id are required",
        )

    product = await ProductRepository(db).get(request.product_id)
    if product is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="商品情報の取得に失敗しました")

    orders = VendorOrderRepository(db)
    order = await orders.create(
        order_id=generate_order_number(),
        user_id=request.user_id,
        product_id=product.id,
        vendor_id=product.vendor_id,
        total_amount=product.price,
        status=OrderStatus.PENDING,
    )

    product_data: Dict[str, Any] = {"name": product.name}
    if product.description:
        product_data["description"] = product.description
    if product.image_url:
        product_data["images"] = [product.image_url]

    try:
        checkout_session = await payments.create_checkout_session({
            "payment_method_types": ["card"],
            "mode": "payment",
            "line_items": [
                {
                    "price_data": {
                        "currency": "jpy",
                        "product_data": product_data,
                        "unit_amount": product.price,
                    },
                    "quantity": 1,
                }
            ],
            "success_url": f"{settings.site_url}/purchase-complete?session_id={{CHECKOUT_SESSION_ID}}",
            "cancel_url": f"{settings.site_url}/result",
            "client_reference_id": request.client_reference_id or order.order_id,
            "metadata": {
                "user_id": request.user_id,
                "product_id": product.id,
                **(request.metadata or {}),
            },
            "shipping_address_collection": {"allowed_countries": ["JP"]},
            "shipping_options": [FREE_SHIPPING_RATE],
        })
    except PaymentGatewayError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=error_detail("Internal server error", e),
        ) from e

    try:
        await orders.update(order, {"stripe_session_id": checkout_session.get("id")})
    except SQLAlchemyError as e:
        logger.error(f"Failed to store checkout session id: {e}", extra={"order_id": order.order_id})

    logger.info("Checkout session created", extra={"order_id": order.order_id})
    return {"url": checkout_session.get("url")}


@router.get("/check-session")
async def confirm_session_order(db: DatabaseSession, payments: PaymentGateway, session_id: Optional[str] = None):
    """Mark the order of a paid checkout session paid and store its shipping details."""
    checkout_session = await _paid_session(payments, session_id)

    orders = VendorOrderRepository(db)
    try:
        order = await find_session_order(orders, session_id)
    except OrderNotReadyError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Order not found")

    shipping = checkout_session.get("shipping_details")
    fields: Dict[str, Any] = {"status": OrderStatus.PAID}
    if shipping:
        fields.update({
            "shipping_info": shipping,
            "shipping_name": shipping.get("name"),
            "shipping_address": format_shipping_address(shipping.get("address")),
            "shipping_phone": shipping.get("phone"),
        })
    await orders.update(order, fields)

    return {
        "order_id": order.order_id,
        "status": OrderStatus.PAID,
        "shipping_details": shipping,
        "customer_details": checkout_session.get("customer_details"),
    }


@router.post("/check-session")
async def session_order_summary(request: SessionLookup, db: DatabaseSession, payments: PaymentGateway):
    """Order number, time and product of a paid checkout session."""
    await _paid_session(payments, request.session_id)

    orders = VendorOrderRepository(db)
    try:
        order = await find_session_order(orders, request.session_id)
    except OrderNotReadyError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Order not found")

    product = await ProductRepository(db).get(order.product_id) if order.product_id else None
    return {
        "order_id": order.order_id,
        "timestamp": timestamp_ms(order.created_at),
        "product": {
            "id": order.product_id,
            "name": product.name if product else "",
            "price": order.total_amount,
        },
    }


@router.get("/list")
async def list_orders(db: DatabaseSession, current_user: CurrentUser):
    orders = VendorOrderRepository(db)
    user_orders = await orders.list_for_user(current_user.id)
    names = await orders.product_names([order.product_id for order in user_orders])
    return [
        {
            "id": order.id,
            "order_id": order.order_id,
            "created_at": order.created_at,
            "status": order.status,
            "total_amount": order.total_amount,
            "shipping_name": order.shipping_name,
            "product_name": names.get(order.product_id, UNKNOWN_PRODUCT),
        }
        for order in user_orders
    ]


@router.get("/latest")
async def latest_order(db: DatabaseSession):
    order = await VendorOrderRepository(db).get_latest()
    if order is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No order found")
    return {"order_id": order.order_id, "timestamp": timestamp_ms(order.created_at)}


@router.post("")
async def create_cart_order(request: CartOrderCreate, db: DatabaseSession, current_user: CurrentUser):
    """Cart order with one line item per entry; the total is Σ price × quantity."""
    order = await OrderRepository(db).create(
        current_user.id,
        [item.model_dump() for item in request.items],
    )
    return {"order_id": order.id, "total_amount": order.total_amount}


@router.post("/update-email")
async def update_order_email(request: OrderEmailUpdate, db: DatabaseSession):
    if not request.session_id or not request.email:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="セッションIDとメールアドレスは必須です",
        )

    order = await VendorOrderRepository(db).update_email_by_session(request.session_id, request.email)
    if order is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=ORDER_NOT_FOUND)
    return {"success": True, "order": order.to_dict()}


@router.post("/update-user")
async def assign_order_user(request: OrderUserUpdate, db: DatabaseSession):
    """Attach the orders placed during a consultation to the signed-up user."""
    if not request.user_id or not request.consultation_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=MISSING_FIELDS)

    orders = await VendorOrderRepository(db).assign_user_by_consultation(
        request.consultation_id, request.user_id
    )
    return {"success": True, "data": [order.to_dict() for order in orders]}


@router.get("/{id}")
async def get_order(id: str, db: DatabaseSession, current_user: CurrentUser):
    orders = VendorOrderRepository(db)
    order = await orders.get_for_user(id, current_user.id)
    if order is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=ORDER_NOT_FOUND)

    names = await orders.product_names([order.product_id])
    return {
        "id": order.id,
        "order_id": order.order_id,
        "created_at": order.created_at,
        "status": order.status,
        "total_amount": order.total_amount,
        "shipping_name": order.shipping_name,
        "shipping_address": order.shipping_address,
        "shipping_phone": order.shipping_phone,
        "customer_email": order.customer_email,
        "product_id": order.product_id,
        "product_name": names.get(order.product_id, UNKNOWN_PRODUCT),
    }
