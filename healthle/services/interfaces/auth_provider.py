"""
Auth Provider Interface (IAuthProvider)

Abstract base class for the hosted auth provider that owns user accounts,
passwords and session tokens. The API only mirrors users into its own
``users`` table; credentials never touch the database.

Implementation guide:
- All methods must be async
- Provider failures are raised as AuthProviderError with the provider's
  message, so routes can surface it
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class AuthProviderError(Exception):
    """
    Raised when the auth provider rejects or fails a request.

    Attributes:
        message: Provider error message
        status_code: HTTP status returned by the provider (None on
            network failures)
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class AuthUser(BaseModel):
    """Account record held by the auth provider."""
    id: str
    email: Optional[str] = None
    created_at: Optional[str] = None
    user_metadata: Dict[str, Any] = Field(default_factory=dict)


class AuthSession(BaseModel):
    """Session returned by a successful sign-in."""
    access_token: str
    refresh_token: Optional[str] = None
    expires_at: Optional[int] = None
    user: AuthUser


class IAuthProvider(ABC):
    """
    Abstract interface for hosted auth operations.

    Admin operations (create/delete/list) use the service role; sign-in,
    sign-up and sign-out act on behalf of the end user.
    """

    @abstractmethod
    async def create_user(
        self,
        email: str,
        password: str,
        email_confirm: bool = True,
        user_metadata: Optional[Dict[str, Any]] = None,
    ) -> AuthUser:
        """
        Create an account as an administrator.

        Args:
            email: Login email
            password: Initial password
            email_confirm: Mark the email as confirmed (no confirmation mail)
            user_metadata: Metadata stored on the account (name, role, ...)

        Returns:
            The created AuthUser

        Raises:
            AuthProviderError: If the email is taken or the provider fails
        """

    @abstractmethod
    async def delete_user(self, user_id: str) -> None:
        """Delete an account. Used to undo a partially completed registration."""

    @abstractmethod
    async def update_user(
        self,
        user_id: str,
        password: Optional[str] = None,
        user_metadata: Optional[Dict[str, Any]] = None,
    ) -> AuthUser:
        """Change an account's password or metadata as an administrator."""

    @abstractmethod
    async def list_users(self) -> List[AuthUser]:
        """Return all accounts of the project."""

    @abstractmethod
    async def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        """
        Sign a user in.

        Raises:
            AuthProviderError: On invalid credentials (status 400)
        """

    @abstractmethod
    async def sign_up(
        self,
        email: str,
        password: str,
        user_metadata: Optional[Dict[str, Any]] = None,
    ) -> AuthUser:
        """Self-service sign-up (subject to the project's email confirmation)."""

    @abstractmethod
    async def sign_out(self, access_token: str) -> None:
        """Revoke the session that issued ``access_token``."""

    async def get_user_by_email(self, email: str) -> Optional[AuthUser]:
        """
        Find an account by email.

        Default implementation scans ``list_users``.
        """
        for user in await self.list_users():
            if user.email and user.email.lower() == email.lower():
                return user
        return None
