"""Request schemas for checkout, orders and payments."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class CheckoutItem(BaseModel):
    product_id: str


class CheckoutRequest(BaseModel):
    items: List[CheckoutItem] = Field(default_factory=list)


class CheckoutOrderCreate(BaseModel):
    """
    Single-product purchase through hosted checkout.

    Attributes:
        client_reference_id: Reference echoed back by the processor
            (defaults to the order number)
        metadata: Extra metadata stored on the checkout session
    """
    product_id: Optional[str] = None
    user_id: Optional[str] = None
    client_reference_id: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None


class SessionLookup(BaseModel):
    session_id: Optional[str] = None


class OrderItemCreate(BaseModel):
    product_id: str
    quantity: int = Field(default=1, ge=1)
    price: int = Field(..., ge=0)


class CartOrderCreate(BaseModel):
    items: List[OrderItemCreate] = Field(..., min_length=1)


class OrderCheckoutSessionCreate(BaseModel):
    order_id: str
    total_amount: int = Field(..., ge=0)


class OrderEmailUpdate(BaseModel):
    session_id: Optional[str] = None
    email: Optional[str] = None


class OrderUserUpdate(BaseModel):
    user_id: Optional[str] = None
    consultation_id: Optional[str] = None
