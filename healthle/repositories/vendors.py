"""
Vendor repository: stores, portal memberships, staff roles and
pharmacist licenses.
"""

from typing import Any, Dict, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from healthle.models.base import utc_now_iso
from healthle.models.vendor import (
    PharmacistCertification,
    Vendor,
    VendorPharmacist,
    VendorStaffRole,
    VendorUser,
)

# Columns a vendor update may touch
VENDOR_FIELDS = (
    "vendor_name",
    "status",
    "email",
    "phone",
    "postal_code",
    "prefecture",
    "city",
    "address_line1",
    "address_line2",
    "business_hours",
    "consultation_hours",
    "description",
)


class VendorRepository:
    """
    Repository for vendor data access.

    Attributes:
        session: SQLAlchemy async session for database operations
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, vendor_id: str) -> Optional[Vendor]:
        result = await self.session.execute(select(Vendor).where(Vendor.id == vendor_id))
        return result.scalar_one_or_none()

    async def exists(self, vendor_id: str) -> bool:
        return await self.get(vendor_id) is not None

    async def list_vendors(self) -> list[Vendor]:
        """All vendors, newest first."""
        result = await self.session.execute(
            select(Vendor).order_by(Vendor.created_at.desc())
        )
        return list(result.scalars().all())

    async def list_names(self) -> list[Vendor]:
        """All vendors ordered by name (for select boxes)."""
        result = await self.session.execute(select(Vendor).order_by(Vendor.vendor_name))
        return list(result.scalars().all())

    async def create(self, vendor_id: Optional[str] = None, **fields: Any) -> Vendor:
        """
        Insert a vendor.

        Args:
            vendor_id: Explicit id (self sign-up uses the owner's user id)
            **fields: Column values, see VENDOR_FIELDS
        """
        vendor = Vendor(**fields)
        if vendor_id is not None:
            vendor.id = vendor_id
        self.session.add(vendor)
        await self.session.flush()
        return vendor

    async def update(self, vendor: Vendor, fields: Dict[str, Any]) -> Vendor:
        """Apply the given VENDOR_FIELDS values and bump ``updated_at``."""
        for key, value in fields.items():
            if key in VENDOR_FIELDS:
                setattr(vendor, key, value)
        vendor.updated_at = utc_now_iso()
        await self.session.flush()
        return vendor

    # Portal memberships

    async def list_vendor_users(self, vendor_id: str) -> list[VendorUser]:
        result = await self.session.execute(
            select(VendorUser)
            .where(VendorUser.vendor_id == vendor_id)
            .order_by(VendorUser.created_at)
        )
        return list(result.scalars().all())

    async def add_vendor_user(
        self,
        vendor_id: str,
        user_id: str,
        role: str,
        status: str = "active",
    ) -> VendorUser:
        member = VendorUser(vendor_id=vendor_id, user_id=user_id, role=role, status=status)
        self.session.add(member)
        await self.session.flush()
        return member

    async def is_member(self, vendor_id: str, user_id: str) -> bool:
        result = await self.session.execute(
            select(VendorUser.id).where(
                VendorUser.vendor_id == vendor_id,
                VendorUser.user_id == user_id,
            )
        )
        return result.first() is not None

    # Staff roles

    async def list_staff_roles(self, vendor_id: str) -> list[VendorStaffRole]:
        result = await self.session.execute(
            select(VendorStaffRole)
            .where(VendorStaffRole.vendor_id == vendor_id)
            .order_by(VendorStaffRole.created_at)
        )
        return list(result.unique().scalars().all())

    async def get_staff_role(self, staff_id: str, vendor_id: str) -> Optional[VendorStaffRole]:
        result = await self.session.execute(
            select(VendorStaffRole).where(
                VendorStaffRole.id == staff_id,
                VendorStaffRole.vendor_id == vendor_id,
            )
        )
        return result.unique().scalar_one_or_none()

    async def get_active_staff_role(
        self,
        user_id: str,
        vendor_id: Optional[str] = None,
    ) -> Optional[VendorStaffRole]:
        """
        Active staff role of a user, optionally for one vendor.

        A user normally belongs to one vendor; with several, the oldest
        role wins.
        """
        stmt = select(VendorStaffRole).where(
            VendorStaffRole.user_id == user_id,
            VendorStaffRole.status == "active",
        )
        if vendor_id is not None:
            stmt = stmt.where(VendorStaffRole.vendor_id == vendor_id)
        result = await self.session.execute(stmt.order_by(VendorStaffRole.created_at))
        return result.unique().scalars().first()

    async def create_staff_role(
        self,
        vendor_id: str,
        user_id: str,
        role: str,
        status: str = "active",
    ) -> VendorStaffRole:
        staff_role = VendorStaffRole(
            vendor_id=vendor_id,
            user_id=user_id,
            role=role,
            status=status,
        )
        self.session.add(staff_role)
        await self.session.flush()
        return staff_role

    async def add_certification(
        self,
        staff_role_id: str,
        license_number: str,
        license_image_url: str,
    ) -> PharmacistCertification:
        certification = PharmacistCertification(
            staff_role_id=staff_role_id,
            license_number=license_number,
            license_image_url=license_image_url,
            verification_status="pending",
        )
        self.session.add(certification)
        await self.session.flush()
        return certification

    async def update_certifications(self, staff_role_id: str, fields: Dict[str, Any]) -> None:
        """Apply non-None license fields to every certification of a staff role."""
        result = await self.session.execute(
            select(PharmacistCertification).where(
                PharmacistCertification.staff_role_id == staff_role_id
            )
        )
        now = utc_now_iso()
        for certification in result.scalars().all():
            for key, value in fields.items():
                if value is not None:
                    setattr(certification, key, value)
            if fields.get("verification_status") == "verified" and certification.verified_at is None:
                certification.verified_at = now
            certification.updated_at = now
        await self.session.flush()

    async def add_pharmacist(
        self,
        vendor_id: str,
        user_id: str,
        license_number: Optional[str] = None,
        status: str = "active",
    ) -> VendorPharmacist:
        pharmacist = VendorPharmacist(
            vendor_id=vendor_id,
            user_id=user_id,
            license_number=license_number,
            status=status,
        )
        self.session.add(pharmacist)
        await self.session.flush()
        return pharmacist
