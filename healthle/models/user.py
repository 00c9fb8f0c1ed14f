"""
User models.

``users`` mirrors the hosted auth provider's users: the row id is the
auth user id. Guest users are created before sign-up and later migrated
into a registered account.
"""

from sqlalchemy import Boolean, Column, ForeignKey, JSON, String, Text

from healthle.models.base import Base, UUIDMixin, TimestampMixin, ModelMixin


class UserType:
    """Values of ``users.user_type``."""
    CUSTOMER = "customer"
    VENDOR_STAFF = "vendor_staff"
    PHARMACIST = "pharmacist"


class User(Base, UUIDMixin, TimestampMixin, ModelMixin):
    """
    Platform user (customer, guest, vendor staff or pharmacist).

    Attributes:
        email: Contact email (pseudo address for LINE users)
        name: Display name
        phone_number: Phone number
        user_type: One of UserType
        line_user_id: LINE subject id for LINE logins
        is_guest: True for guest accounts awaiting migration
        is_active: False once a guest has been migrated away
        deactivated_at: When the account was deactivated
        migrated_to: Id of the account this guest was migrated into
        postal_code, prefecture, city, address, phone: Shipping profile
        birthdate: Date of birth (ISO date string)
        stripe_customer_id: Payment processor customer id
    """

    __tablename__ = "users"

    email = Column(String(255), nullable=True, index=True)
    name = Column(String(255), nullable=True)
    phone_number = Column(String(50), nullable=True)
    user_type = Column(String(50), nullable=False, default=UserType.CUSTOMER)
    line_user_id = Column(String(255), nullable=True, unique=True)

    is_guest = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)
    deactivated_at = Column(String, nullable=True)
    migrated_to = Column(String, nullable=True)

    postal_code = Column(String(20), nullable=True)
    prefecture = Column(String(50), nullable=True)
    city = Column(String(100), nullable=True)
    address = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    birthdate = Column(String(20), nullable=True)
    stripe_customer_id = Column(String(255), nullable=True)


class AdminUser(Base, UUIDMixin, TimestampMixin, ModelMixin):
    """
    Admin portal access grant.

    Only rows with role ``Admin`` may use the admin portal.
    """

    __tablename__ = "admin_users"

    ADMIN_ROLE = "Admin"

    user_id = Column(String, nullable=False, unique=True, index=True)
    email = Column(String(255), nullable=True)
    role = Column(String(50), nullable=False, default=ADMIN_ROLE)


class UserProfile(Base, TimestampMixin, ModelMixin):
    """Health profile a user fills in on the user portal."""

    __tablename__ = "user_profiles"

    id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    nickname = Column(String(255), nullable=True)
    gender = Column(String(20), nullable=True)
    birthdate = Column(String(20), nullable=True)
    allergies = Column(JSON, nullable=True)
    medical_history = Column(Text, nullable=True)
