"""
Order models.

Two order tables exist side by side:
- ``orders`` / ``order_items``: cart orders, managed from the admin portal
- ``vendor_orders``: single-product purchases paid through the payment
  processor's checkout, keyed by the human-readable ``order_id``
"""

from sqlalchemy import Column, ForeignKey, Integer, JSON, String
from sqlalchemy.orm import relationship

from healthle.models.base import Base, UUIDMixin, TimestampMixin, ModelMixin


class OrderStatus:
    """Order lifecycle values shared by both order tables."""
    PENDING = "pending"
    PAID = "paid"
    PREPARING = "preparing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    FAILED = "failed"

    ALL = (PENDING, PAID, PREPARING, SHIPPED, DELIVERED, CANCELLED, FAILED)


class Order(Base, UUIDMixin, TimestampMixin, ModelMixin):
    """Cart order with line items."""

    __tablename__ = "orders"

    user_id = Column(String, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    vendor_id = Column(String, ForeignKey("vendors.id", ondelete="SET NULL"), nullable=True, index=True)
    total_amount = Column(Integer, nullable=False, default=0)
    status = Column(String(20), nullable=False, default=OrderStatus.PENDING)
    payment_status = Column(String(20), nullable=True)
    stripe_session_id = Column(String(255), nullable=True, index=True)
    customer_email = Column(String(255), nullable=True)

    shipping_name = Column(String(255), nullable=True)
    shipping_postal_code = Column(String(20), nullable=True)
    shipping_prefecture = Column(String(50), nullable=True)
    shipping_city = Column(String(100), nullable=True)
    shipping_address = Column(String(255), nullable=True)
    shipping_phone = Column(String(50), nullable=True)

    user = relationship("User", lazy="joined")
    vendor = relationship("Vendor", lazy="joined")
    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        lazy="selectin",
    )


class OrderItem(Base, UUIDMixin, TimestampMixin, ModelMixin):
    """Line item of a cart order; price is the unit price at order time."""

    __tablename__ = "order_items"

    order_id = Column(String, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(String, ForeignKey("products.id", ondelete="SET NULL"), nullable=True)
    quantity = Column(Integer, nullable=False, default=1)
    price = Column(Integer, nullable=False)

    order = relationship("Order", back_populates="items")
    product = relationship("Product", lazy="joined")


class VendorOrder(Base, UUIDMixin, TimestampMixin, ModelMixin):
    """
    Single-product checkout order.

    ``user_id`` may hold a guest or temporary id until the purchaser signs
    up, so it is not a foreign key.

    Attributes:
        order_id: Public order number (``ORD...`` or random id)
        stripe_session_id: Checkout session id, or payment intent id for
            orders created from a payment intent
        stripe_payment_intent_id: Payment intent id when known
        shipping_info: Structured shipping details from the processor
        shipping_address: Display form ``〒{postal} {prefecture}{city}{line1}``
    """

    __tablename__ = "vendor_orders"

    order_id = Column(String(64), nullable=False, unique=True, index=True)
    user_id = Column(String, nullable=True, index=True)
    product_id = Column(String, ForeignKey("products.id", ondelete="SET NULL"), nullable=True)
    vendor_id = Column(String, ForeignKey("vendors.id", ondelete="SET NULL"), nullable=True)
    interview_id = Column(String, nullable=True)
    consultation_id = Column(String, nullable=True, index=True)
    total_amount = Column(Integer, nullable=False, default=0)
    status = Column(String(20), nullable=False, default=OrderStatus.PENDING)

    stripe_session_id = Column(String(255), nullable=True, unique=True, index=True)
    stripe_payment_intent_id = Column(String(255), nullable=True, index=True)
    customer_email = Column(String(255), nullable=True)

    shipping_info = Column(JSON, nullable=True)
    shipping_name = Column(String(255), nullable=True)
    shipping_address = Column(String(512), nullable=True)
    shipping_phone = Column(String(50), nullable=True)
