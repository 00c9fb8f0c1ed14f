"""
Session token handling.

Users sign in through the hosted auth provider, which issues HS256 JWT
access tokens. The API verifies those tokens locally with python-jose
against the project's JWT secret instead of calling the provider on
every request.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
from jose import JWTError, jwt
from pydantic import BaseModel

from healthle.core.config import settings

# JWT Algorithm used by the auth provider
ALGORITHM = "HS256"

# Lifetime of tokens minted by create_access_token
DEFAULT_TOKEN_TTL = timedelta(hours=1)


class TokenData(BaseModel):
    """
    Claims of a verified session token.

    Attributes:
        sub: Auth user id (same id as the ``users`` row)
        email: Email address of the auth user, when present
        role: Provider role claim (``authenticated`` for signed-in users)
        exp: Expiry as a Unix timestamp
        user_metadata: Metadata stored on the auth user
    """
    sub: str
    email: Optional[str] = None
    role: Optional[str] = None
    exp: Optional[int] = None
    user_metadata: Dict[str, Any] = {}


class SessionUser(BaseModel):
    """
    The caller of a protected route.

    Built from a verified token; carries the raw token so routes can
    echo it back or forward it to the auth provider (sign-out).
    """
    id: str
    email: Optional[str] = None
    role: Optional[str] = None
    expires_at: Optional[int] = None
    access_token: str


def create_access_token(
    subject: str,
    email: Optional[str] = None,
    expires_delta: Optional[timedelta] = None,
    extra_claims: Optional[Dict[str, Any]] = None,
) -> str:
    """
    Mint a session token in the auth provider's format.

    Used by local tooling and tests; production tokens come from the
    provider's sign-in endpoint.

    Args:
        subject: Auth user id
        email: Email claim
        expires_delta: Optional custom expiration time
        extra_claims: Additional claims merged into the payload

    Returns:
        Encoded JWT token string
    """
    expire = datetime.now(timezone.utc) + (expires_delta or DEFAULT_TOKEN_TTL)
    to_encode: Dict[str, Any] = {
        "sub": subject,
        "aud": settings.jwt_audience,
        "role": "authenticated",
        "exp": int(expire.timestamp()),
    }
    if email is not None:
        to_encode["email"] = email
    if extra_claims:
        to_encode.update(extra_claims)

    return jwt.encode(to_encode, settings.supabase_jwt_secret, algorithm=ALGORITHM)


def decode_access_token(token: str) -> Optional[TokenData]:
    """
    Decode and validate a session token.

    Args:
        token: JWT token string to decode

    Returns:
        TokenData if valid, None if invalid, expired or for another audience
    """
    try:
        payload = jwt.decode(
            token,
            settings.supabase_jwt_secret,
            algorithms=[ALGORITHM],
            audience=settings.jwt_audience,
        )
    except JWTError:
        return None

    subject = payload.get("sub")
    if not subject:
        return None

    return TokenData(
        sub=subject,
        email=payload.get("email"),
        role=payload.get("role"),
        exp=payload.get("exp"),
        user_metadata=payload.get("user_metadata") or {},
    )
