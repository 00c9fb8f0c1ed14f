"""
Account onboarding for vendors, staff and pharmacists.

Each flow spans two systems: the hosted auth provider (accounts) and the
database (vendor, user and role rows). Database steps share the request
transaction, so undoing them is a rollback; the auth account cannot be
rolled back and is deleted explicitly when a later step fails.
"""

import logging
import secrets
from typing import Any, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from healthle.models.user import UserType
from healthle.models.vendor import VendorStaffRole, VendorUser
from healthle.repositories.users import UserRepository
from healthle.repositories.vendors import VendorRepository
from healthle.services.interfaces.auth_provider import (
    AuthProviderError,
    AuthUser,
    IAuthProvider,
)

logger = logging.getLogger(__name__)

# Initial password of staff accounts created from the admin portal
DEFAULT_STAFF_PASSWORD = "12345678"


class OnboardingError(Exception):
    """
    A step of an onboarding flow failed; earlier steps were undone.

    Attributes:
        message: User-facing message naming the failed step
        status_code: HTTP status for the route to return
    """

    def __init__(self, message: str, status_code: int = 500):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def _staff_role_dict(staff_role: VendorStaffRole) -> Dict[str, Any]:
    return {
        "id": staff_role.id,
        "vendor_id": staff_role.vendor_id,
        "user_id": staff_role.user_id,
        "role": staff_role.role,
        "status": staff_role.status,
        "created_at": staff_role.created_at,
        "updated_at": staff_role.updated_at,
    }


class StaffOnboarding:
    """
    Onboarding flows with compensating rollback.

    Usage:
        onboarding = StaffOnboarding(db, auth_provider)
        result = await onboarding.register_vendor(vendor_fields, email, password)
    """

    def __init__(self, session: AsyncSession, auth_provider: IAuthProvider):
        self.session = session
        self.auth = auth_provider
        self.vendors = VendorRepository(session)
        self.users = UserRepository(session)

    async def _create_account(
        self,
        email: str,
        password: str,
        message: str,
        user_metadata: Optional[Dict[str, Any]] = None,
    ) -> AuthUser:
        try:
            return await self.auth.create_user(
                email=email,
                password=password,
                email_confirm=True,
                user_metadata=user_metadata,
            )
        except AuthProviderError as e:
            await self.session.rollback()
            raise OnboardingError(f"{message}: {e.message}") from e

    async def _undo(self, account: AuthUser, message: str, exc: Exception) -> OnboardingError:
        """Roll back the database steps and delete the auth account."""
        logger.warning(
            f"Onboarding step failed, rolling back: {exc}",
            extra={"auth_user_id": account.id},
        )
        await self.session.rollback()
        try:
            await self.auth.delete_user(account.id)
        except AuthProviderError as delete_error:
            logger.error(
                f"Failed to delete auth user during rollback: {delete_error}",
                extra={"auth_user_id": account.id},
            )
        return OnboardingError(message)

    async def register_vendor(
        self,
        vendor_fields: Dict[str, Any],
        owner_email: str,
        owner_password: str,
    ) -> Dict[str, str]:
        """
        Register a store with its owner account.

        1. insert the vendor (``active``)
        2. create the owner's auth account
        3. link the owner in ``vendor_users``
        """
        try:
            vendor = await self.vendors.create(status="active", **vendor_fields)
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise OnboardingError("店舗の登録に失敗しました") from e

        account = await self._create_account(
            owner_email, owner_password, "ユーザーの作成に失敗しました"
        )

        try:
            await self.vendors.add_vendor_user(vendor.id, account.id, VendorUser.ROLE_OWNER)
        except SQLAlchemyError as e:
            raise await self._undo(account, "店舗とユーザーの紐付けに失敗しました", e) from e

        logger.info("Vendor registered", extra={"vendor_id": vendor.id, "auth_user_id": account.id})
        return {
            "vendor_id": vendor.id,
            "user_id": account.id,
            "message": "出店者の登録が完了しました",
        }

    async def add_vendor_member(
        self,
        vendor_id: str,
        email: str,
        password: str,
        role: str,
    ) -> Dict[str, str]:
        """Create a portal account and link it to the vendor."""
        account = await self._create_account(email, password, "スタッフの登録に失敗しました")

        try:
            await self.vendors.add_vendor_user(vendor_id, account.id, role)
        except SQLAlchemyError as e:
            raise await self._undo(account, "スタッフと店舗の紐付けに失敗しました", e) from e

        logger.info("Vendor member added", extra={"vendor_id": vendor_id, "auth_user_id": account.id})
        return {"message": "スタッフを追加しました", "user_id": account.id}

    async def add_staff(
        self,
        vendor_id: str,
        name: Optional[str],
        email: str,
        phone: Optional[str],
        role: str,
        license_number: Optional[str] = None,
        license_image_url: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Add a staff member managed by the admin portal.

        1. create the auth account (default password, profile metadata)
        2. insert the ``users`` row (``vendor_staff``)
        3. insert the ``active`` staff role
        4. pharmacists only: insert the ``pending`` license certification

        Raises:
            OnboardingError: 400 when a pharmacist has no license details,
                500 when a step fails
        """
        is_pharmacist = role == VendorStaffRole.PHARMACIST
        if is_pharmacist and (not license_number or not license_image_url):
            raise OnboardingError("薬剤師の場合、ライセンス番号と画像は必須です", status_code=400)

        account = await self._create_account(
            email,
            DEFAULT_STAFF_PASSWORD,
            "認証ユーザーの作成に失敗しました",
            user_metadata={"name": name, "phone_number": phone, "role": role},
        )

        step = "ユーザー情報の作成に失敗しました"
        try:
            await self.users.create(
                account.id,
                user_type=UserType.VENDOR_STAFF,
                name=name,
                email=email,
                phone_number=phone,
            )
            step = "スタッフロールの作成に失敗しました"
            staff_role = await self.vendors.create_staff_role(vendor_id, account.id, role)
            if is_pharmacist:
                step = "薬剤師資格情報の登録に失敗しました"
                await self.vendors.add_certification(staff_role.id, license_number, license_image_url)
        except SQLAlchemyError as e:
            raise await self._undo(account, step, e) from e

        logger.info(
            "Staff member added",
            extra={"vendor_id": vendor_id, "auth_user_id": account.id, "role": role},
        )
        staff = _staff_role_dict(staff_role)
        staff["user"] = {"id": account.id, "name": name, "email": email, "phone_number": phone}
        return {"message": "スタッフを追加しました", "staff": staff}

    async def add_pharmacist(
        self,
        vendor_id: str,
        name: Optional[str],
        email: str,
        phone: Optional[str],
        license_number: Optional[str] = None,
        verification_status: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Register a pharmacist directly on a vendor.

        1. create the auth account (random password; the pharmacist resets it)
        2. insert the ``users`` row (``pharmacist``)
        3. insert ``vendor_pharmacists``
        4. link the account in ``vendor_users`` as Pharmacist
        """
        account = await self._create_account(
            email,
            secrets.token_urlsafe(16),
            "認証ユーザーの作成に失敗しました",
            user_metadata={"name": name, "phone_number": phone},
        )

        step = "ユーザーの作成に失敗しました"
        try:
            await self.users.create(
                account.id,
                user_type=UserType.PHARMACIST,
                name=name,
                email=email,
                phone_number=phone,
            )
            step = "薬剤師の関連付けに失敗しました"
            pharmacist = await self.vendors.add_pharmacist(
                vendor_id,
                account.id,
                license_number=license_number,
                status=verification_status or "pending",
            )
            step = "出店者ユーザーの登録に失敗しました"
            await self.vendors.add_vendor_user(vendor_id, account.id, VendorUser.ROLE_PHARMACIST)
        except SQLAlchemyError as e:
            raise await self._undo(account, step, e) from e

        logger.info("Pharmacist added", extra={"vendor_id": vendor_id, "auth_user_id": account.id})
        return {"message": "薬剤師を追加しました", "pharmacist": pharmacist.to_dict()}
