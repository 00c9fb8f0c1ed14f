"""
Payment processor webhook event handling.

``PaymentEventProcessor.process`` applies one verified event to the
database and returns the data recorded in the webhook log. Events other
than the ones below are acknowledged without changes:

- ``checkout.session.completed``: the checkout order becomes ``paid``
  with the customer's email, shipping details and the charged total; the
  purchaser's shipping profile is updated
- ``payment_intent.payment_failed``: orders paid with the intent become
  ``failed``
"""

import logging
from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from healthle.models.order import OrderStatus
from healthle.repositories.orders import VendorOrderRepository, format_shipping_address
from healthle.repositories.users import UserRepository

logger = logging.getLogger(__name__)

CHECKOUT_COMPLETED = "checkout.session.completed"
PAYMENT_FAILED = "payment_intent.payment_failed"


class PaymentEventError(Exception):
    """An event could not be applied (for example its order is unknown)."""


def _street(address: Dict[str, Any]) -> str:
    line2 = address.get("line2")
    return f"{address.get('line1') or ''}{' ' + line2 if line2 else ''}"


class PaymentEventProcessor:
    """
    Apply webhook events in the caller's transaction.

    Usage:
        processed = await PaymentEventProcessor(db).process(event)
    """

    def __init__(self, session: AsyncSession):
        self.orders = VendorOrderRepository(session)
        self.users = UserRepository(session)

    async def process(self, event: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        event_type = event.get("type")
        data = (event.get("data") or {}).get("object") or {}

        if event_type == CHECKOUT_COMPLETED:
            return await self._checkout_completed(data)
        if event_type == PAYMENT_FAILED:
            return await self._payment_failed(data)

        logger.info("Webhook event ignored", extra={"event_type": event_type})
        return None

    async def _checkout_completed(self, checkout_session: Dict[str, Any]) -> Dict[str, Any]:
        session_id = checkout_session.get("id")
        order = await self.orders.get_by_session_id(session_id) if session_id else None
        if order is None:
            raise PaymentEventError(f"現在の注文情報の取得に失敗しました: {session_id}")

        shipping = checkout_session.get("shipping_details") or {}
        address = shipping.get("address") or {}
        customer = checkout_session.get("customer_details") or {}
        shipping_info = {
            "name": shipping.get("name") or "",
            "postal_code": address.get("postal_code") or "",
            "prefecture": address.get("state") or "",
            "city": address.get("city") or "",
            "address": _street(address),
            "phone": shipping.get("phone") or "",
        }

        order_before = order.to_dict()
        await self.orders.update(order, {
            "status": OrderStatus.PAID,
            "customer_email": customer.get("email") or "",
            "shipping_info": shipping or None,
            "shipping_name": shipping_info["name"],
            "shipping_address": format_shipping_address(address) or "",
            "shipping_phone": shipping_info["phone"],
            "total_amount": checkout_session.get("amount_total") or 0,
        })
        logger.info("Checkout order paid", extra={"order_id": order.order_id})

        metadata = checkout_session.get("metadata") or {}
        purchaser_id = metadata.get("user_id") or checkout_session.get("client_reference_id")
        if purchaser_id and shipping:
            updated = await self.users.update_shipping_profile(purchaser_id, {
                "name": shipping.get("name") or None,
                "postal_code": address.get("postal_code") or None,
                "prefecture": address.get("state") or None,
                "city": address.get("city") or None,
                "address": _street(address) or None,
                "phone": shipping.get("phone") or None,
            })
            if not updated:
                logger.warning("Purchaser not found for shipping profile", extra={"order_id": order.order_id})

        return {
            "order_before": order_before,
            "order_after": order.to_dict(),
            "shipping_info": shipping_info,
        }

    async def _payment_failed(self, payment_intent: Dict[str, Any]) -> Dict[str, Any]:
        payment_intent_id = payment_intent.get("id")
        if not payment_intent_id:
            raise PaymentEventError("payment_intent id is missing")

        count = await self.orders.mark_failed_by_payment_intent(payment_intent_id)
        error = payment_intent.get("last_payment_error") or {}
        logger.warning(
            "Payment failed",
            extra={"payment_intent_id": payment_intent_id, "orders_updated": count},
        )
        return {
            "payment_intent_id": payment_intent_id,
            "orders_updated": count,
            "failure_message": error.get("message"),
        }
