"""Request schemas for the public contact form."""

from typing import Literal, Optional

from pydantic import BaseModel, EmailStr, Field


class ContactCreate(BaseModel):
    """
    Contact form submission.

    Attributes:
        type: Inquiry category (product, service, recruitment, other)
    """
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    phone: Optional[str] = None
    company: Optional[str] = None
    type: Literal["product", "service", "recruitment", "other"]
    message: str = Field(..., min_length=1)
