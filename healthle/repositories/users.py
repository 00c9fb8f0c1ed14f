"""
User repository: platform users, admin grants, health profiles and the
guest-to-registered account migration.
"""

from typing import Any, Dict, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from healthle.models.base import utc_now_iso
from healthle.models.consultation import Consultation, MedicalInterview
from healthle.models.order import VendorOrder
from healthle.models.user import AdminUser, User, UserProfile, UserType

# Shipping/profile columns copied from a guest onto the registered account
MIGRATED_PROFILE_FIELDS = (
    "name",
    "phone_number",
    "postal_code",
    "prefecture",
    "city",
    "address",
    "phone",
    "birthdate",
)


class UserRepository:
    """
    Repository for ``users`` and the tables keyed by user id.

    Attributes:
        session: SQLAlchemy async session for database operations
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, user_id: str) -> Optional[User]:
        result = await self.session.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def list_users(self) -> list[User]:
        """All users, newest first."""
        result = await self.session.execute(
            select(User).order_by(User.created_at.desc())
        )
        return list(result.scalars().all())

    async def create(
        self,
        user_id: str,
        user_type: str = UserType.CUSTOMER,
        **fields: Any,
    ) -> User:
        """
        Insert the ``users`` row mirroring an auth user.

        Args:
            user_id: Auth user id (becomes the row id)
            user_type: One of UserType
            **fields: Other column values (email, name, line_user_id, ...)
        """
        user = User(id=user_id, user_type=user_type, **fields)
        self.session.add(user)
        await self.session.flush()
        return user

    async def update(self, user: User, fields: Dict[str, Any]) -> User:
        for key, value in fields.items():
            setattr(user, key, value)
        user.updated_at = utc_now_iso()
        await self.session.flush()
        return user

    async def update_shipping_profile(self, user_id: str, fields: Dict[str, Any]) -> bool:
        """
        Overwrite shipping columns of a user, ignoring None values.

        Returns:
            False when the user does not exist
        """
        user = await self.get(user_id)
        if user is None:
            return False
        await self.update(user, {k: v for k, v in fields.items() if v is not None})
        return True

    async def get_admin(self, user_id: str) -> Optional[AdminUser]:
        result = await self.session.execute(
            select(AdminUser).where(AdminUser.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def is_admin(self, user_id: str) -> bool:
        admin = await self.get_admin(user_id)
        return admin is not None and admin.role == AdminUser.ADMIN_ROLE

    async def get_profile(self, user_id: str) -> Optional[UserProfile]:
        result = await self.session.execute(
            select(UserProfile).where(UserProfile.id == user_id)
        )
        return result.scalar_one_or_none()

    async def reassign_temp_records(self, temp_user_id: str, new_user_id: str) -> None:
        """
        Point interviews and vendor orders made under a temporary id at
        the newly registered user.
        """
        for model in (MedicalInterview, VendorOrder):
            await self.session.execute(
                update(model)
                .where(model.user_id == temp_user_id)
                .values(user_id=new_user_id, updated_at=utc_now_iso())
            )

    async def migrate_guest_data(
        self,
        old_user_id: str,
        new_user_id: str,
        migration_timestamp: Optional[str] = None,
    ) -> None:
        """
        Move a guest's data onto a registered account.

        Reassigns consultations, medical interviews and vendor orders, and
        fills empty profile columns of the new user from the guest. Runs
        inside the caller's transaction, so a failure leaves nothing
        half-migrated.

        Args:
            old_user_id: Guest user id
            new_user_id: Registered user id
            migration_timestamp: ``updated_at`` written on moved rows
        """
        timestamp = migration_timestamp or utc_now_iso()

        for model in (Consultation, MedicalInterview, VendorOrder):
            await self.session.execute(
                update(model)
                .where(model.user_id == old_user_id)
                .values(user_id=new_user_id, updated_at=timestamp)
            )

        old_user = await self.get(old_user_id)
        new_user = await self.get(new_user_id)
        if old_user is not None and new_user is not None:
            for field in MIGRATED_PROFILE_FIELDS:
                if getattr(new_user, field) is None and getattr(old_user, field) is not None:
                    setattr(new_user, field, getattr(old_user, field))
            new_user.is_guest = False
            new_user.updated_at = timestamp

        await self.session.flush()

    async def deactivate(self, user: User, migrated_to: Optional[str] = None) -> User:
        """Mark a migrated guest account inactive."""
        now = utc_now_iso()
        user.is_active = False
        user.deactivated_at = now
        user.migrated_to = migrated_to
        user.updated_at = now
        await self.session.flush()
        return user
