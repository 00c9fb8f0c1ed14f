"""
Request schemas for the admin portal and the vendor management routes.

Fields the handlers check themselves (to answer with their own 400
message) are Optional here.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class OrderStatusUpdate(BaseModel):
    status: Optional[str] = None


class ProductCreate(BaseModel):
    """
    Request schema for creating a product.

    Attributes:
        vendor_id: Owning vendor (checked by the handler)
        price: Price in yen
        status: draft / active / inactive
        purchase_limit: Maximum quantity per purchase
    """
    vendor_id: Optional[str] = None
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    category: Optional[str] = None
    price: int = Field(default=0, ge=0, description="Price in yen")
    status: Optional[str] = Field(default="draft")
    purchase_limit: Optional[int] = Field(default=None, ge=1)
    questionnaire_required: bool = False
    image_url: Optional[str] = None


class ProductUpdate(BaseModel):
    """Partial product update; only fields sent by the client are applied."""
    vendor_id: Optional[str] = None
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    category: Optional[str] = None
    price: Optional[int] = Field(default=None, ge=0)
    status: Optional[str] = None
    purchase_limit: Optional[int] = None
    questionnaire_required: Optional[bool] = None
    image_url: Optional[str] = None


class VendorRegistration(BaseModel):
    """
    Store registration with its owner account.

    ``address`` is a single free-form line stored as address line 1.
    """
    vendor_name: str = Field(..., min_length=1, max_length=255)
    email: Optional[str] = None
    phone: Optional[str] = None
    postal_code: Optional[str] = None
    prefecture: Optional[str] = None
    city: Optional[str] = None
    address: Optional[str] = None
    business_hours: Optional[str] = None
    consultation_hours: Optional[str] = None
    description: Optional[str] = None
    owner_email: EmailStr
    owner_password: str = Field(..., min_length=6)

    def vendor_fields(self) -> dict:
        fields = self.model_dump(exclude={"owner_email", "owner_password", "address"})
        fields["address_line1"] = self.address
        return fields


class VendorMemberCreate(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6)
    role: str = Field(default="Staff")


class VendorUpdate(BaseModel):
    vendor_name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    status: Optional[str] = None
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


class StaffCreate(BaseModel):
    name: Optional[str] = None
    email: EmailStr
    phone_number: Optional[str] = None
    role: str = Field(..., min_length=1)
    license_number: Optional[str] = None
    license_image_url: Optional[str] = None


class StaffUpdate(BaseModel):
    staff_id: str
    name: Optional[str] = None
    email: Optional[str] = None
    phone_number: Optional[str] = None
    status: Optional[str] = None
    license_number: Optional[str] = None
    license_image_url: Optional[str] = None
    verification_status: Optional[str] = None


class PharmacistCreate(BaseModel):
    """Pharmacist registration; the management UI posts camelCase license keys."""
    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = None
    email: EmailStr
    phone: Optional[str] = None
    license_number: Optional[str] = Field(default=None, alias="licenseNumber")
    verification_status: Optional[str] = Field(default=None, alias="verificationStatus")
