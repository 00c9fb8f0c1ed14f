"""
Payment intent checkout and payment status endpoints.

The embedded payment flow: ``POST /api/checkout`` creates a payment
intent, the browser confirms it, and ``GET /api/checkout/check-session``
turns the succeeded intent into a paid vendor order.
"""

import logging
import uuid
from typing import Any, Dict, Optional

from fastapi import APIRouter, HTTPException, status

from healthle.api.dependencies import DatabaseSession, OptionalUser, PaymentGateway
from healthle.core.config import settings
from healthle.core.errors import error_detail
from healthle.models.order import OrderStatus
from healthle.repositories.orders import (
    OrderRepository,
    VendorOrderRepository,
    format_shipping_address,
)
from healthle.repositories.products import ProductRepository
from healthle.schemas.order import CheckoutRequest, OrderCheckoutSessionCreate
from healthle.services.interfaces.payment_gateway import IPaymentGateway, PaymentGatewayError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["checkout"])

SUCCEEDED = "succeeded"


async def _customer_email(payments: IPaymentGateway, payment_intent: Dict[str, Any]) -> Optional[str]:
    if payment_intent.get("receipt_email"):
        return payment_intent["receipt_email"]

    customer = payment_intent.get("customer")
    if isinstance(customer, dict):
        return customer.get("email")
    if isinstance(customer, str):
        try:
            record = await payments.retrieve_customer(customer)
        except PaymentGatewayError as e:
            logger.warning(f"Customer lookup failed: {e.message}", extra={"customer_id": customer})
            return None
        if not record.get("deleted"):
            return record.get("email")
    return None


@router.post("/api/checkout")
async def create_checkout(request: CheckoutRequest, db: DatabaseSession, payments: PaymentGateway):
    """Create a JPY payment intent for the first selected product."""
    if not request.items:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="商品が選択されていません")

    product_id = request.items[0].product_id
    product = await ProductRepository(db).get(product_id)
    if product is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="商品情報の取得に失敗しました",
        )

    try:
        payment_intent = await payments.create_payment_intent(
            amount=product.price,
            currency="jpy",
            metadata={"product_id": product_id},
        )
    except PaymentGatewayError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=error_detail("決済処理の初期化に失敗しました", e),
        ) from e

    return {
        "client_secret": payment_intent.get("client_secret"),
        "payment_intent_id": payment_intent.get("id"),
    }


@router.get("/api/checkout/check-session")
async def check_payment_intent(
    db: DatabaseSession,
    payments: PaymentGateway,
    current_user: OptionalUser,
    payment_intent: Optional[str] = None,
):
    """
    Record the order of a succeeded payment intent.

    The intent id is stored as the order's ``stripe_session_id``, so a
    repeated check finds the existing order and creates nothing.
    """
    if not payment_intent:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Payment Intent IDが必要です")

    try:
        intent = await payments.retrieve_payment_intent(
            payment_intent, expand=["shipping", "customer"]
        )
    except PaymentGatewayError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=error_detail("決済情報の確認に失敗しました", e),
        ) from e

    orders = VendorOrderRepository(db)
    existing = await orders.get_by_session_id(intent["id"])
    if existing is not None:
        return {
            "status": "success",
            "order_id": existing.order_id,
            "payment_status": intent.get("status"),
            "customer_email": existing.customer_email,
        }
    if intent.get("status") != SUCCEEDED:
        return {"status": "pending", "payment_status": intent.get("status")}

    metadata = intent.get("metadata") or {}
    product = await ProductRepository(db).get(metadata.get("product_id") or "")
    if product is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="商品情報が見つかりません")

    shipping = intent.get("shipping") or {}
    address = shipping.get("address") or {}
    customer_email = await _customer_email(payments, intent)

    order = await orders.create(
        order_id=uuid.uuid4().hex,
        user_id=current_user.id if current_user else None,
        product_id=product.id,
        vendor_id=product.vendor_id,
        interview_id=metadata.get("medical_interview_id"),
        total_amount=intent.get("amount") or 0,
        status=OrderStatus.PAID,
        stripe_session_id=intent["id"],
        stripe_payment_intent_id=intent["id"],
        customer_email=customer_email,
        shipping_info={
            "name": shipping.get("name"),
            "phone": shipping.get("phone"),
            "address": address,
        } if shipping else None,
        shipping_name=shipping.get("name"),
        shipping_address=format_shipping_address(address),
        shipping_phone=shipping.get("phone"),
    )
    logger.info("Order created from payment intent", extra={"order_id": order.order_id})

    return {
        "status": "success",
        "order_id": order.order_id,
        "payment_status": intent.get("status"),
        "customer_email": customer_email,
    }


@router.post("/api/create-checkout-session")
async def create_order_checkout_session(
    request: OrderCheckoutSessionCreate,
    db: DatabaseSession,
    payments: PaymentGateway,
):
    """Hosted checkout for a pending cart order."""
    orders = OrderRepository(db)
    order = await orders.get(request.order_id)
    if order is None or order.status != OrderStatus.PENDING:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid order")

    try:
        checkout_session = await payments.create_checkout_session({
            "payment_method_types": ["card"],
            "mode": "payment",
            "line_items": [
                {
                    "price_data": {
                        "currency": "jpy",
                        "product_data": {"name": f"Order #{order.id}"},
                        "unit_amount": request.total_amount,
                    },
                    "quantity": 1,
                }
            ],
            "success_url": f"{settings.site_url}/thanks?session_id={{CHECKOUT_SESSION_ID}}",
            "cancel_url": f"{settings.site_url}/cancel",
            "metadata": {"order_id": order.id},
        })
    except PaymentGatewayError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=error_detail("Error creating checkout session", e),
        ) from e

    order.stripe_session_id = checkout_session.get("id")
    await db.flush()
    return {"sessionUrl": checkout_session.get("url")}


@router.get("/api/payments/check-status")
async def check_payment_status(
    db: DatabaseSession,
    payments: PaymentGateway,
    payment_intent: Optional[str] = None,
):
    """Payment intent status; orders paid with a succeeded intent become ``paid``."""
    if not payment_intent:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="決済IDが指定されていません")

    try:
        intent = await payments.retrieve_payment_intent(payment_intent)
    except PaymentGatewayError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=error_detail("決済状態の確認に失敗しました", e),
        ) from e

    if intent.get("status") == SUCCEEDED:
        count = await VendorOrderRepository(db).mark_paid_by_payment_intent(payment_intent)
        logger.info("Orders marked paid", extra={"payment_intent_id": payment_intent, "count": count})

    return {
        "status": intent.get("status"),
        "amount": intent.get("amount"),
        "currency": intent.get("currency"),
    }
