"""
Vendor management endpoints (``/api/vendors``) of the admin portal.

Covers store details with their staff and pharmacists, and onboarding of
staff accounts. Staff user details come from the ``users`` row linked to
each staff role.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError

from healthle.api.admin.vendors import onboarding_http_error
from healthle.api.dependencies import AdminUser, AuthProvider, DatabaseSession
from healthle.core.errors import error_detail
from healthle.models.vendor import PharmacistCertification, VendorStaffRole
from healthle.repositories.users import UserRepository
from healthle.repositories.vendors import VendorRepository
from healthle.schemas.admin import PharmacistCreate, StaffCreate, StaffUpdate, VendorUpdate
from healthle.services.staff_onboarding import OnboardingError, StaffOnboarding

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/vendors", tags=["vendor-management"])

VENDOR_NOT_FOUND = "出店者が見つかりません"


def _staff_user(staff_role: VendorStaffRole) -> Optional[Dict[str, Any]]:
    user = staff_role.user
    if user is None:
        return None
    return {
        "id": user.id,
        "email": user.email,
        "name": user.name,
        "phone_number": user.phone_number,
    }


def _certification(certification: PharmacistCertification) -> Dict[str, Any]:
    return {
        "id": certification.id,
        "license_number": certification.license_number,
        "license_image_url": certification.license_image_url,
        "verification_status": certification.verification_status,
        "verified_at": certification.verified_at,
    }


def staff_member(staff_role: VendorStaffRole) -> Dict[str, Any]:
    member = {
        "id": staff_role.id,
        "role": staff_role.role,
        "status": staff_role.status,
        "created_at": staff_role.created_at,
        "user": _staff_user(staff_role),
    }
    if staff_role.role == VendorStaffRole.PHARMACIST:
        certifications = staff_role.certifications
        member["certification"] = _certification(certifications[0]) if certifications else None
    return member


@router.get("")
async def list_vendors(db: DatabaseSession, admin: AdminUser):
    """All vendors, newest first."""
    vendors = await VendorRepository(db).list_vendors()
    return [vendor.to_dict() for vendor in vendors]


@router.get("/{vendor_id}")
async def get_vendor(vendor_id: str, db: DatabaseSession, admin: AdminUser):
    """
    Vendor details for the management screen.

    Returns:
        Vendor columns plus ``address`` (formatted), ``staff_members``
        (non-pharmacist roles) and ``pharmacists`` (with their first
        certification)
    """
    repo = VendorRepository(db)
    vendor = await repo.get(vendor_id)
    if vendor is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=VENDOR_NOT_FOUND)

    staff_roles = await repo.list_staff_roles(vendor_id)

    data = vendor.to_dict()
    data["address"] = vendor.formatted_address()
    data["staff_members"] = [
        staff_member(role) for role in staff_roles if role.role != VendorStaffRole.PHARMACIST
    ]
    data["pharmacists"] = [
        staff_member(role) for role in staff_roles if role.role == VendorStaffRole.PHARMACIST
    ]
    return data


@router.put("/{vendor_id}")
async def update_vendor(
    vendor_id: str,
    request: VendorUpdate,
    db: DatabaseSession,
    admin: AdminUser,
):
    repo = VendorRepository(db)
    vendor = await repo.get(vendor_id)
    if vendor is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=VENDOR_NOT_FOUND)

    try:
        vendor = await repo.update(vendor, request.model_dump(exclude_unset=True))
    except SQLAlchemyError as e:
        logger.error(f"Failed to update vendor: {e}", extra={"vendor_id": vendor_id})
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=error_detail("出店者情報の更新に失敗しました", e),
        )
    return vendor.to_dict()


@router.post("/{vendor_id}/staff")
async def add_staff(
    vendor_id: str,
    request: StaffCreate,
    db: DatabaseSession,
    admin: AdminUser,
    auth_provider: AuthProvider,
):
    """
    Add a staff member with a login account.

    Pharmacists must come with their license number and image.

    Raises:
        HTTPException 400: Pharmacist without license details
        HTTPException 500: A step failed; earlier steps were undone
    """
    onboarding = StaffOnboarding(db, auth_provider)
    try:
        return await onboarding.add_staff(
            vendor_id,
            name=request.name,
            email=request.email,
            phone=request.phone_number,
            role=request.role,
            license_number=request.license_number,
            license_image_url=request.license_image_url,
        )
    except OnboardingError as e:
        raise onboarding_http_error(e)


@router.put("/{vendor_id}/staff")
async def update_staff(
    vendor_id: str,
    request: StaffUpdate,
    db: DatabaseSession,
    admin: AdminUser,
):
    """
    Update a staff member's profile, status and (pharmacists) license.

    Raises:
        HTTPException 404: The staff role does not belong to the vendor
    """
    vendors = VendorRepository(db)
    staff_role = await vendors.get_staff_role(request.staff_id, vendor_id)
    if staff_role is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="スタッフが見つかりません")

    try:
        users = UserRepository(db)
        user = await users.get(staff_role.user_id)
        if user is not None:
            profile = {
                "name": request.name,
                "email": request.email,
                "phone_number": request.phone_number,
            }
            await users.update(user, {k: v for k, v in profile.items() if v is not None})

        if request.status is not None:
            staff_role.status = request.status
            await db.flush()

        if staff_role.role == VendorStaffRole.PHARMACIST:
            await vendors.update_certifications(
                staff_role.id,
                {
                    "license_number": request.license_number,
                    "license_image_url": request.license_image_url,
                    "verification_status": request.verification_status,
                },
            )
    except SQLAlchemyError as e:
        logger.error(f"Failed to update staff: {e}", extra={"vendor_id": vendor_id})
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=error_detail("スタッフ情報の更新に失敗しました", e),
        )

    return {"message": "スタッフ情報を更新しました"}


@router.post("/{vendor_id}/pharmacists")
async def add_pharmacist(
    vendor_id: str,
    request: PharmacistCreate,
    db: DatabaseSession,
    admin: AdminUser,
    auth_provider: AuthProvider,
):
    """Register a pharmacist directly on the vendor."""
    if not await VendorRepository(db).exists(vendor_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=VENDOR_NOT_FOUND)

    onboarding = StaffOnboarding(db, auth_provider)
    try:
        return await onboarding.add_pharmacist(
            vendor_id,
            name=request.name,
            email=request.email,
            phone=request.phone,
            license_number=request.license_number,
            verification_status=request.verification_status,
        )
    except OnboardingError as e:
        raise onboarding_http_error(e)
