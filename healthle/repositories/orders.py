"""
Order repositories.

- OrderRepository: cart orders (``orders`` + ``order_items``)
- VendorOrderRepository: single-product checkout orders (``vendor_orders``)
"""

import random
import string
import time
from typing import Any, Dict, List, Optional

from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from healthle.models.base import utc_now_iso
from healthle.models.order import Order, OrderItem, OrderStatus, VendorOrder
from healthle.models.product import Product

_BASE36 = string.digits + string.ascii_lowercase


def generate_order_number() -> str:
    """
    Public order number: ``ORD`` + epoch milliseconds + 5 base36 chars.

    Example:
        >>> generate_order_number()
        'ORD1700000000000k3x9q'
    """
    suffix = "".join(random.choices(_BASE36, k=5))
    return f"ORD{int(time.time() * 1000)}{suffix}"


def format_shipping_address(address: Optional[Dict[str, Any]]) -> Optional[str]:
    """
    Render a processor address as ``〒{postal} {state}{city}{line1}[ {line2}]``.

    Returns None when there is no address.
    """
    if not address:
        return None
    line2 = address.get("line2")
    return (
        f"〒{address.get('postal_code') or ''} "
        f"{address.get('state') or ''}{address.get('city') or ''}{address.get('line1') or ''}"
        f"{' ' + line2 if line2 else ''}"
    )


class OrderRepository:
    """Cart orders with their line items."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, order_id: str) -> Optional[Order]:
        result = await self.session.execute(select(Order).where(Order.id == order_id))
        return result.unique().scalar_one_or_none()

    async def list_orders(self) -> list[Order]:
        """All orders, newest first."""
        result = await self.session.execute(select(Order).order_by(Order.created_at.desc()))
        return list(result.unique().scalars().all())

    async def create(self, user_id: Optional[str], items: List[Dict[str, Any]]) -> Order:
        """
        Create a pending order with one line item per entry.

        Args:
            user_id: Purchasing user
            items: ``[{"product_id", "quantity", "price"}]``; the total is
                the sum of price x quantity
        """
        total = sum(int(item["price"]) * int(item["quantity"]) for item in items)
        order = Order(user_id=user_id, total_amount=total, status=OrderStatus.PENDING)
        self.session.add(order)
        await self.session.flush()

        for item in items:
            self.session.add(OrderItem(
                order_id=order.id,
                product_id=item["product_id"],
                quantity=item["quantity"],
                price=item["price"],
            ))
        await self.session.flush()
        return order

    async def update_status(self, order: Order, status: str) -> Order:
        order.status = status
        order.updated_at = utc_now_iso()
        await self.session.flush()
        return order


class VendorOrderRepository:
    """Checkout orders keyed by their public order number."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, id: str) -> Optional[VendorOrder]:
        result = await self.session.execute(select(VendorOrder).where(VendorOrder.id == id))
        return result.scalar_one_or_none()

    async def get_for_user(self, id: str, user_id: str) -> Optional[VendorOrder]:
        result = await self.session.execute(
            select(VendorOrder).where(VendorOrder.id == id, VendorOrder.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def get_by_session_id(self, stripe_session_id: str) -> Optional[VendorOrder]:
        result = await self.session.execute(
            select(VendorOrder).where(VendorOrder.stripe_session_id == stripe_session_id)
        )
        return result.scalar_one_or_none()

    async def get_latest(self) -> Optional[VendorOrder]:
        result = await self.session.execute(
            select(VendorOrder).order_by(VendorOrder.created_at.desc()).limit(1)
        )
        return result.scalar_one_or_none()

    async def list_for_user(self, user_id: str) -> list[VendorOrder]:
        result = await self.session.execute(
            select(VendorOrder)
            .where(VendorOrder.user_id == user_id)
            .order_by(VendorOrder.created_at.desc())
        )
        return list(result.scalars().all())

    async def product_names(self, product_ids: List[str]) -> Dict[str, str]:
        """Map product id to name for the given ids."""
        ids = [product_id for product_id in product_ids if product_id]
        if not ids:
            return {}
        result = await self.session.execute(
            select(Product.id, Product.name).where(Product.id.in_(ids))
        )
        return {row.id: row.name for row in result}

    async def create(self, **fields: Any) -> VendorOrder:
        order = VendorOrder(**fields)
        self.session.add(order)
        await self.session.flush()
        return order

    async def update(self, order: VendorOrder, fields: Dict[str, Any]) -> VendorOrder:
        for key, value in fields.items():
            setattr(order, key, value)
        order.updated_at = utc_now_iso()
        await self.session.flush()
        return order

    async def mark_paid_by_payment_intent(self, payment_intent_id: str) -> int:
        """Mark every order carrying the payment intent as paid; returns the row count."""
        result = await self.session.execute(
            update(VendorOrder)
            .where(VendorOrder.stripe_payment_intent_id == payment_intent_id)
            .values(status=OrderStatus.PAID, updated_at=utc_now_iso())
        )
        return result.rowcount

    async def mark_failed_by_payment_intent(self, payment_intent_id: str) -> int:
        """
        Mark orders paid with the intent as failed.

        Orders created from a payment intent keep its id in
        ``stripe_session_id``, so both columns are matched.
        """
        result = await self.session.execute(
            update(VendorOrder)
            .where(or_(
                VendorOrder.stripe_payment_intent_id == payment_intent_id,
                VendorOrder.stripe_session_id == payment_intent_id,
            ))
            .values(status=OrderStatus.FAILED, updated_at=utc_now_iso())
        )
        return result.rowcount

    async def update_email_by_session(self, stripe_session_id: str, email: str) -> Optional[VendorOrder]:
        order = await self.get_by_session_id(stripe_session_id)
        if order is None:
            return None
        return await self.update(order, {"customer_email": email})

    async def assign_user_by_consultation(self, consultation_id: str, user_id: str) -> list[VendorOrder]:
        """Attach the orders of a consultation to a user; returns the updated rows."""
        result = await self.session.execute(
            select(VendorOrder).where(VendorOrder.consultation_id == consultation_id)
        )
        orders = list(result.scalars().all())
        for order in orders:
            await self.update(order, {"user_id": user_id})
        return orders
