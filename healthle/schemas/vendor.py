"""Request schemas of the vendor portal."""

from typing import Optional

from pydantic import BaseModel, Field


class PharmacyUpdate(BaseModel):
    """Store profile edited by its own staff; the status stays ``active``."""
    vendor_name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    email: Optional[str] = None
    phone: Optional[str] = None
    postal_code: Optional[str] = None
    prefecture: Optional[str] = None
    city: Optional[str] = None
    address_line1: Optional[str] = None
    address_line2: Optional[str] = None
    business_hours: Optional[str] = None
    consultation_hours: Optional[str] = None
    description: Optional[str] = None
