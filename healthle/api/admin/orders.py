"""
Admin order endpoints.

Cart orders (``orders`` + ``order_items``) with vendor and customer
names resolved for display.
"""

import logging
from typing import Any, Dict

from fastapi import APIRouter, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError

from healthle.api.dependencies import AdminUser, DatabaseSession
from healthle.core.errors import error_detail
from healthle.models.order import Order
from healthle.repositories.orders import OrderRepository
from healthle.schemas.admin import OrderStatusUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin/orders", tags=["admin-orders"])

UNKNOWN = "不明"
ORDER_NOT_FOUND = "注文が見つかりません"


def order_summary(order: Order) -> Dict[str, Any]:
    return {
        "id": order.id,
        "user_id": order.user_id,
        "vendor_id": order.vendor_id,
        "total_amount": order.total_amount,
        "status": order.status,
        "payment_status": order.payment_status,
        "created_at": order.created_at,
        "updated_at": order.updated_at,
        "vendor_name": order.vendor.vendor_name if order.vendor else UNKNOWN,
        "user_name": (order.user.name if order.user else None) or UNKNOWN,
    }


def order_detail(order: Order) -> Dict[str, Any]:
    """Summary fields plus customer email, shipping address and line items."""
    detail = order_summary(order)
    detail["user_email"] = (order.user.email if order.user else None) or UNKNOWN
    detail["shipping_address"] = (
        f"〒{order.shipping_postal_code or ''} "
        f"{order.shipping_prefecture or ''}{order.shipping_city or ''}{order.shipping_address or ''}"
    )
    detail["items"] = [
        {
            "id": item.id,
            "product_id": item.product_id,
            "product_name": item.product.name if item.product else UNKNOWN,
            "quantity": item.quantity,
            "price": item.price,
        }
        for item in order.items
    ]
    return detail


@router.get("")
async def list_orders(db: DatabaseSession, admin: AdminUser):
    """All orders, newest first."""
    try:
        orders = await OrderRepository(db).list_orders()
    except SQLAlchemyError as e:
        logger.error(f"Failed to list orders: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=error_detail("注文情報の取得に失敗しました", e),
        )
    return [order_summary(order) for order in orders]


@router.get("/{order_id}")
async def get_order(order_id: str, db: DatabaseSession, admin: AdminUser):
    order = await OrderRepository(db).get(order_id)
    if order is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=ORDER_NOT_FOUND)
    return order_detail(order)


@router.patch("/{order_id}")
async def update_order_status(
    order_id: str,
    request: OrderStatusUpdate,
    db: DatabaseSession,
    admin: AdminUser,
):
    """
    Change an order's status.

    Raises:
        HTTPException 400: status missing
        HTTPException 404: Unknown order
    """
    if not request.status:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="ステータスは必須です")

    repo = OrderRepository(db)
    order = await repo.get(order_id)
    if order is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=ORDER_NOT_FOUND)

    await repo.update_status(order, request.status)
    logger.info(
        "Order status updated",
        extra={"order_id": order_id, "status": request.status, "admin_id": admin.id},
    )
    return order_detail(order)
