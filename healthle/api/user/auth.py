"""
User portal authentication endpoints.

- LINE Login: redirect to LINE, then turn the callback into a session
- sign-up with optional adoption of records made under a temporary id
- guest-to-registered account migration
- session verification
"""

import logging
import secrets
from urllib.parse import urlencode

from fastapi import APIRouter, HTTPException, Request, status
from fastapi.responses import JSONResponse, RedirectResponse
from sqlalchemy.exc import SQLAlchemyError

from healthle.api.dependencies import (
    AuthProvider,
    CurrentUser,
    DatabaseSession,
    LineClient,
    OptionalUser,
)
from healthle.core.config import settings
from healthle.core.errors import error_detail
from healthle.models.base import utc_now_iso
from healthle.repositories.users import UserRepository
from healthle.schemas.auth import MigrateRequest, SignupRequest
from healthle.services.interfaces.auth_provider import AuthProviderError
from healthle.services.line_oauth import (
    CallbackValidationError,
    LineAuthError,
    validate_callback_request,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])

MIN_PASSWORD_LENGTH = 8

NO_CACHE_HEADERS = {
    "Cache-Control": "no-store, no-cache, must-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}


def line_pseudo_email(line_user_id: str) -> str:
    """Auth accounts need an email; LINE users get a stable placeholder."""
    return f"line_{line_user_id}@line-auth.fake"


@router.get("/line")
async def line_login(line_client: LineClient, state: str | None = None, return_url: str | None = None):
    """Redirect the browser to LINE's authorization page."""
    if not state:
        logger.warning("LINE login requested without state")
        return RedirectResponse(f"{settings.site_url}/login?error=auth_failed")
    return RedirectResponse(line_client.authorize_url(state, return_url=return_url))


@router.get("/line/callback")
async def line_callback(
    request: Request,
    db: DatabaseSession,
    line_client: LineClient,
    auth_provider: AuthProvider,
):
    """
    Complete LINE Login.

    1. validate ``code`` and ``state``
    2. exchange the code and verify the ID token
    3. find or create the auth account ``line_{sub}@line-auth.fake``
       (new accounts also get a ``users`` row)
    4. sign in and redirect to ``/mypage?token=...``

    Raises:
        HTTPException 400: Invalid callback, no id_token, or no LINE user id
        HTTPException 500: LINE or the auth provider failed
    """
    try:
        callback = validate_callback_request(dict(request.query_params))
    except CallbackValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    try:
        tokens = await line_client.exchange_code(callback.code)
        id_token = tokens.get("id_token")
        if not id_token:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No id_token")

        profile = await line_client.verify_id_token(id_token)
        line_user_id = profile.get("sub")
        if not line_user_id:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No line_user_id")

        email = line_pseudo_email(line_user_id)
        password = secrets.token_urlsafe(24)

        account = await auth_provider.get_user_by_email(email)
        if account is None:
            account = await auth_provider.create_user(
                email=email,
                password=password,
                email_confirm=True,
                user_metadata={"line_user_id": line_user_id},
            )
            logger.info("LINE user registered", extra={"auth_user_id": account.id})
        else:
            # Passwords of LINE accounts are never shown; rotate to sign in
            await auth_provider.update_user(account.id, password=password)

        users = UserRepository(db)
        if await users.get(account.id) is None:
            await users.create(
                account.id,
                email=email,
                line_user_id=line_user_id,
                name=profile.get("name"),
            )

        session = await auth_provider.sign_in_with_password(email, password)
    except (LineAuthError, AuthProviderError) as e:
        logger.error(f"LINE login failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=error_detail("LINE認証に失敗しました", e),
        )

    query = urlencode({"token": session.access_token})
    return RedirectResponse(f"{settings.site_url}/mypage?{query}")


@router.post("/signup")
async def signup(request: SignupRequest, db: DatabaseSession, auth_provider: AuthProvider):
    """
    Register with email and password.

    With ``temp_uid``, interviews and orders made before sign-up are
    moved to the new account.
    """
    if not request.email or not request.password:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="メールアドレスとパスワードは必須です",
        )
    if len(request.password) < MIN_PASSWORD_LENGTH:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="パスワードは8文字以上である必要があります",
        )

    try:
        account = await auth_provider.create_user(
            email=request.email,
            password=request.password,
            email_confirm=True,
        )
    except AuthProviderError as e:
        logger.warning(f"Sign-up failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=error_detail("ユーザー登録に失敗しました", e),
        )

    users = UserRepository(db)
    await users.create(account.id, email=request.email)
    if request.temp_uid:
        await users.reassign_temp_records(request.temp_uid, account.id)
        logger.info(
            "Temporary records reassigned",
            extra={"temp_uid": request.temp_uid, "auth_user_id": account.id},
        )

    return {"success": True}


@router.post("/migrate")
async def migrate_guest(request: MigrateRequest, db: DatabaseSession, current_user: OptionalUser):
    """
    Move a guest's data onto the signed-in account.

    Consultations, interviews, orders and empty profile fields are moved
    in the request transaction; the guest is then deactivated.

    Raises:
        HTTPException 400: Missing ids, or the old user is not a guest
        HTTPException 401: The session user is not ``newUserId``
        HTTPException 500: Migration or its verification failed
    """
    if not request.old_user_id or not request.new_user_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="必要なパラメータが不足しています",
        )
    if current_user is None or current_user.id != request.new_user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="認証が必要です")

    users = UserRepository(db)
    old_user = await users.get(request.old_user_id)
    if old_user is None or not old_user.is_guest:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="無効なゲストユーザーIDです")

    try:
        await users.migrate_guest_data(
            request.old_user_id,
            request.new_user_id,
            migration_timestamp=utc_now_iso(),
        )
    except SQLAlchemyError as e:
        logger.error(f"Guest data migration failed: {e}", extra={"guest_id": request.old_user_id})
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=error_detail("データの移行に失敗しました", e),
        )

    new_user = await users.get(request.new_user_id)
    if new_user is None:
        logger.error("Migrated user not found", extra={"auth_user_id": request.new_user_id})
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="データ移行の検証に失敗しました",
        )

    await users.deactivate(old_user, migrated_to=request.new_user_id)
    logger.info(
        "Guest migrated",
        extra={"guest_id": request.old_user_id, "auth_user_id": request.new_user_id},
    )
    return {
        "status": "success",
        "message": "データの移行が完了しました",
        "user": {"id": new_user.id, "is_guest": new_user.is_guest},
    }


@router.get("/verify")
async def verify_session(db: DatabaseSession, current_user: CurrentUser):
    """
    Verify the bearer session and return the user row.

    The response is never cached.
    """
    user = await UserRepository(db).get(current_user.id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="ユーザー情報の取得に失敗しました")

    return JSONResponse(
        content={
            "status": "authenticated",
            "user": user.to_dict(),
            "session": {
                "expires_at": current_user.expires_at,
                "access_token": current_user.access_token,
            },
        },
        headers=NO_CACHE_HEADERS,
    )
