"""
FastAPI dependency functions.

Provides reusable dependencies for the portal routes: database sessions,
session-token authentication, admin and vendor-staff authorization, and
the external service clients (overridden with fakes in tests).
"""

from functools import lru_cache
from typing import Annotated, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from healthle.core.database import get_db
from healthle.core.security import SessionUser, decode_access_token
from healthle.models.vendor import VendorStaffRole
from healthle.repositories.users import UserRepository
from healthle.repositories.vendors import VendorRepository
from healthle.services.dify_client import DifyClient
from healthle.services.interfaces import IAuthProvider, IInterviewAI, IPaymentGateway
from healthle.services.line_oauth import LineOAuthClient
from healthle.services.stripe_client import StripeClient
from healthle.services.supabase_auth import SupabaseAuthClient


# HTTP Bearer token scheme; missing headers are reported by the dependencies
security = HTTPBearer(auto_error=False)

INVALID_AUTH_HEADER = "認証ヘッダーが不正です"
INVALID_SESSION = "認証が必要です"


DatabaseSession = Annotated[AsyncSession, Depends(get_db)]


@lru_cache
def get_auth_provider() -> IAuthProvider:
    return SupabaseAuthClient()


@lru_cache
def get_payment_gateway() -> IPaymentGateway:
    return StripeClient()


@lru_cache
def get_line_client() -> LineOAuthClient:
    return LineOAuthClient()


@lru_cache
def get_interview_ai() -> IInterviewAI:
    return DifyClient()


AuthProvider = Annotated[IAuthProvider, Depends(get_auth_provider)]
PaymentGateway = Annotated[IPaymentGateway, Depends(get_payment_gateway)]
LineClient = Annotated[LineOAuthClient, Depends(get_line_client)]
InterviewAI = Annotated[IInterviewAI, Depends(get_interview_ai)]


def _session_user(token: str) -> Optional[SessionUser]:
    token_data = decode_access_token(token)
    if token_data is None:
        return None
    return SessionUser(
        id=token_data.sub,
        email=token_data.email,
        role=token_data.role,
        expires_at=token_data.exp,
        access_token=token,
    )


async def get_current_user(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
) -> SessionUser:
    """
    Dependency to get the signed-in user from the session token.

    Returns:
        SessionUser built from the verified token

    Raises:
        HTTPException 401: Missing or malformed Authorization header, or a
            token that is invalid, expired or for another audience

    Example:
        @router.get("/api/orders/list")
        async def list_orders(current_user: CurrentUser):
            ...
    """
    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=INVALID_AUTH_HEADER,
            headers={"WWW-Authenticate": "Bearer"},
        )

    user = _session_user(credentials.credentials)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=INVALID_SESSION,
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


async def get_optional_user(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
) -> Optional[SessionUser]:
    """Like get_current_user, but anonymous callers (or bad tokens) get None."""
    if credentials is None or not credentials.credentials:
        return None
    return _session_user(credentials.credentials)


CurrentUser = Annotated[SessionUser, Depends(get_current_user)]
OptionalUser = Annotated[Optional[SessionUser], Depends(get_optional_user)]


async def require_admin(current_user: CurrentUser, db: DatabaseSession) -> SessionUser:
    """
    Dependency for admin portal routes.

    Raises:
        HTTPException 401: Not signed in
        HTTPException 403: No ``admin_users`` row with role Admin
    """
    if not await UserRepository(db).is_admin(current_user.id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="管理者権限が必要です",
        )
    return current_user


async def get_vendor_staff(current_user: CurrentUser, db: DatabaseSession) -> VendorStaffRole:
    """
    Dependency resolving the caller's active staff role.

    Raises:
        HTTPException 401: Not signed in, or no active staff role
    """
    staff_role = await VendorRepository(db).get_active_staff_role(current_user.id)
    if staff_role is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="店舗スタッフとして登録されていません",
        )
    return staff_role


AdminUser = Annotated[SessionUser, Depends(require_admin)]
VendorStaff = Annotated[VendorStaffRole, Depends(get_vendor_staff)]
