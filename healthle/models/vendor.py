"""
Vendor (pharmacy) models.

A vendor is a store selling on the platform. People are attached to it
two ways:
- ``vendor_users``: portal membership (Owner, Staff, Pharmacist)
- ``vendor_staff_roles``: staff records managed by the admin portal,
  pharmacists additionally carrying a license certification
"""

from sqlalchemy import Column, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from healthle.models.base import Base, UUIDMixin, TimestampMixin, ModelMixin


class Vendor(Base, UUIDMixin, TimestampMixin, ModelMixin):
    """
    Vendor store.

    Attributes:
        vendor_name: Store name
        status: active / inactive
        email, phone: Store contact
        postal_code, prefecture, city, address_line1, address_line2: Address
        business_hours, consultation_hours: Free-form opening hours
        description: Store description
    """

    __tablename__ = "vendors"

    vendor_name = Column(String(255), nullable=False)
    status = Column(String(20), nullable=False, default="active")
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    postal_code = Column(String(20), nullable=True)
    prefecture = Column(String(50), nullable=True)
    city = Column(String(100), nullable=True)
    address_line1 = Column(String(255), nullable=True)
    address_line2 = Column(String(255), nullable=True)
    business_hours = Column(Text, nullable=True)
    consultation_hours = Column(Text, nullable=True)
    description = Column(Text, nullable=True)

    def formatted_address(self) -> str:
        """Postal mark, prefecture, city and address lines, blanks skipped."""
        parts = [
            f"〒{self.postal_code}" if self.postal_code else None,
            self.prefecture,
            self.city,
            self.address_line1,
            self.address_line2,
        ]
        return " ".join(part for part in parts if part)


class VendorUser(Base, UUIDMixin, TimestampMixin, ModelMixin):
    """Membership of an auth user in a vendor's portal."""

    __tablename__ = "vendor_users"
    __table_args__ = (
        UniqueConstraint("vendor_id", "user_id", name="uq_vendor_users_vendor_user"),
    )

    ROLE_OWNER = "Owner"
    ROLE_PHARMACIST = "Pharmacist"

    vendor_id = Column(String, ForeignKey("vendors.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String, nullable=False, index=True)
    role = Column(String(50), nullable=False)
    status = Column(String(20), nullable=False, default="active")


class VendorStaffRole(Base, UUIDMixin, TimestampMixin, ModelMixin):
    """
    Staff record of a vendor.

    ``role`` is a lower-case job (``pharmacist``, ``staff``, ``manager``);
    only ``active`` roles may sign in to the vendor portal.
    """

    __tablename__ = "vendor_staff_roles"
    __table_args__ = (
        UniqueConstraint("vendor_id", "user_id", name="uq_vendor_staff_roles_vendor_user"),
    )

    PHARMACIST = "pharmacist"

    vendor_id = Column(String, ForeignKey("vendors.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    role = Column(String(50), nullable=False)
    status = Column(String(20), nullable=False, default="active")

    user = relationship("User", lazy="joined")
    certifications = relationship(
        "PharmacistCertification",
        back_populates="staff_role",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="PharmacistCertification.created_at",
    )


class PharmacistCertification(Base, UUIDMixin, TimestampMixin, ModelMixin):
    """Pharmacist license attached to a staff role, pending until verified."""

    __tablename__ = "pharmacist_certifications"

    staff_role_id = Column(
        String,
        ForeignKey("vendor_staff_roles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    license_number = Column(String(100), nullable=False)
    license_image_url = Column(Text, nullable=False)
    verification_status = Column(String(20), nullable=False, default="pending")
    verified_at = Column(String, nullable=True)

    staff_role = relationship("VendorStaffRole", back_populates="certifications")


class VendorPharmacist(Base, UUIDMixin, TimestampMixin, ModelMixin):
    """Pharmacist registered directly on a vendor with license details."""

    __tablename__ = "vendor_pharmacists"

    vendor_id = Column(String, ForeignKey("vendors.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    license_number = Column(String(100), nullable=True)
    license_image_url = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default="active")
