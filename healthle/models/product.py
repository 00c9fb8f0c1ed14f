"""
Product model.

Products belong to a vendor. Prices are integer yen.
"""

from sqlalchemy import Boolean, Column, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from healthle.models.base import Base, UUIDMixin, TimestampMixin, ModelMixin


class Product(Base, UUIDMixin, TimestampMixin, ModelMixin):
    """
    Product sold by a vendor.

    Attributes:
        vendor_id: Owning vendor
        name, description, category: Catalogue fields
        price: Price in yen
        status: draft / active / inactive
        purchase_limit: Maximum quantity per purchase (None = unlimited)
        questionnaire_required: Whether an interview must precede purchase
        image_url: Product image
    """

    __tablename__ = "products"

    vendor_id = Column(String, ForeignKey("vendors.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String(100), nullable=True)
    price = Column(Integer, nullable=False, default=0)
    status = Column(String(20), nullable=False, default="draft")
    purchase_limit = Column(Integer, nullable=True)
    questionnaire_required = Column(Boolean, nullable=False, default=False)
    image_url = Column(Text, nullable=True)

    vendor = relationship("Vendor", lazy="joined")
