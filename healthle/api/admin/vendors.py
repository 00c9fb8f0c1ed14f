"""
Admin vendor endpoints (``/api/admin/vendors``).

Store registration creates rows in two systems, the database and the
hosted auth provider; StaffOnboarding undoes the completed steps when a
later one fails.
"""

import logging

from fastapi import APIRouter, HTTPException, status

from healthle.api.dependencies import AdminUser, AuthProvider, DatabaseSession
from healthle.core.errors import error_detail
from healthle.repositories.vendors import VendorRepository
from healthle.schemas.admin import VendorMemberCreate, VendorRegistration
from healthle.services.interfaces.auth_provider import AuthProviderError
from healthle.services.staff_onboarding import OnboardingError, StaffOnboarding

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin/vendors", tags=["admin-vendors"])

UNKNOWN_USER = "不明なユーザー"


def onboarding_http_error(e: OnboardingError) -> HTTPException:
    return HTTPException(status_code=e.status_code, detail=error_detail(e.message, e.__cause__))


@router.get("")
async def list_vendors(db: DatabaseSession, admin: AdminUser):
    """Vendor names for select boxes, ordered by name."""
    vendors = await VendorRepository(db).list_names()
    return [{"id": vendor.id, "vendor_name": vendor.vendor_name} for vendor in vendors]


@router.post("")
async def register_vendor(
    request: VendorRegistration,
    db: DatabaseSession,
    admin: AdminUser,
    auth_provider: AuthProvider,
):
    """
    Register a store and its owner account.

    Returns:
        ``{vendor_id, user_id, message}``

    Raises:
        HTTPException 500: A step failed; earlier steps were undone
    """
    onboarding = StaffOnboarding(db, auth_provider)
    try:
        return await onboarding.register_vendor(
            request.vendor_fields(),
            owner_email=request.owner_email,
            owner_password=request.owner_password,
        )
    except OnboardingError as e:
        raise onboarding_http_error(e)


@router.get("/{vendor_id}")
async def get_vendor(
    vendor_id: str,
    db: DatabaseSession,
    admin: AdminUser,
    auth_provider: AuthProvider,
):
    """
    Vendor with its portal members.

    Each member carries ``users: {email, created_at}`` from the auth
    provider; members without an account show ``不明なユーザー``.
    """
    repo = VendorRepository(db)
    vendor = await repo.get(vendor_id)
    if vendor is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="指定された店舗が見つかりません")

    members = await repo.list_vendor_users(vendor_id)
    try:
        auth_users = {user.id: user for user in await auth_provider.list_users()}
    except AuthProviderError as e:
        logger.error(f"Failed to list auth users: {e}", extra={"vendor_id": vendor_id})
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=error_detail("ユーザー情報の取得に失敗しました", e),
        )

    vendor_users = []
    for member in members:
        auth_user = auth_users.get(member.user_id)
        vendor_users.append({
            "id": member.id,
            "user_id": member.user_id,
            "role": member.role,
            "status": member.status,
            "created_at": member.created_at,
            "users": {
                "email": (auth_user.email if auth_user else None) or UNKNOWN_USER,
                "created_at": (auth_user.created_at if auth_user else None) or member.created_at,
            },
        })

    data = vendor.to_dict()
    data["vendor_users"] = vendor_users
    return data


@router.post("/{vendor_id}/staff")
async def add_vendor_member(
    vendor_id: str,
    request: VendorMemberCreate,
    db: DatabaseSession,
    admin: AdminUser,
    auth_provider: AuthProvider,
):
    """
    Create a portal account and link it to the vendor.

    The auth account is deleted again when the link insert fails.
    """
    onboarding = StaffOnboarding(db, auth_provider)
    try:
        return await onboarding.add_vendor_member(
            vendor_id,
            email=request.email,
            password=request.password,
            role=request.role,
        )
    except OnboardingError as e:
        raise onboarding_http_error(e)
