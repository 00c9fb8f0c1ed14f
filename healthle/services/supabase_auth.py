"""
Hosted auth provider client (Supabase GoTrue REST API).

Admin calls authenticate with the service role key; user calls (sign-in,
sign-up, sign-out) use the anon key. Every non-2xx answer is raised as
AuthProviderError carrying the provider's message.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from healthle.core.config import settings
from healthle.services.interfaces.auth_provider import (
    AuthProviderError,
    AuthSession,
    AuthUser,
    IAuthProvider,
)

logger = logging.getLogger(__name__)


class SupabaseAuthClient(IAuthProvider):
    """
    GoTrue client built on httpx.

    Usage:
        client = SupabaseAuthClient()
        user = await client.create_user("staff@example.com", "password123")

    Tests pass an ``httpx.MockTransport`` as ``transport``.
    """

    LIST_PAGE_SIZE = 1000

    def __init__(
        self,
        base_url: Optional[str] = None,
        service_role_key: Optional[str] = None,
        anon_key: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = f"{(base_url or settings.supabase_url).rstrip('/')}/auth/v1"
        self.service_role_key = service_role_key or settings.supabase_service_role_key
        self.anon_key = anon_key or settings.supabase_anon_key
        self.timeout = timeout or settings.http_timeout_seconds
        self._transport = transport

    def _admin_headers(self) -> Dict[str, str]:
        return {
            "apikey": self.service_role_key,
            "Authorization": f"Bearer {self.service_role_key}",
        }

    def _public_headers(self, access_token: Optional[str] = None) -> Dict[str, str]:
        return {
            "apikey": self.anon_key,
            "Authorization": f"Bearer {access_token or self.anon_key}",
        }

    async def _request(
        self,
        method: str,
        path: str,
        headers: Dict[str, str],
        **kwargs: Any,
    ) -> Any:
        """
        Send a request and return the decoded JSON body (None when empty).

        Raises:
            AuthProviderError: On network failure or non-2xx status
        """
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
            ) as client:
                response = await client.request(method, path, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"Auth provider request failed: {e}", extra={"auth_path": path})
            raise AuthProviderError(f"Auth provider unreachable: {e}") from e

        if response.status_code >= 400:
            message = _error_message(response)
            logger.warning(
                "Auth provider rejected request",
                extra={"auth_path": path, "status_code": response.status_code},
            )
            raise AuthProviderError(message, status_code=response.status_code)

        if not response.content:
            return None
        return response.json()

    async def create_user(
        self,
        email: str,
        password: str,
        email_confirm: bool = True,
        user_metadata: Optional[Dict[str, Any]] = None,
    ) -> AuthUser:
        body = await self._request(
            "POST",
            "/admin/users",
            headers=self._admin_headers(),
            json={
                "email": email,
                "password": password,
                "email_confirm": email_confirm,
                "user_metadata": user_metadata or {},
            },
        )
        user = _parse_user(body)
        logger.info("Auth user created", extra={"auth_user_id": user.id})
        return user

    async def delete_user(self, user_id: str) -> None:
        await self._request(
            "DELETE",
            f"/admin/users/{user_id}",
            headers=self._admin_headers(),
        )
        logger.info("Auth user deleted", extra={"auth_user_id": user_id})

    async def update_user(
        self,
        user_id: str,
        password: Optional[str] = None,
        user_metadata: Optional[Dict[str, Any]] = None,
    ) -> AuthUser:
        attributes: Dict[str, Any] = {}
        if password is not None:
            attributes["password"] = password
        if user_metadata is not None:
            attributes["user_metadata"] = user_metadata
        body = await self._request(
            "PUT",
            f"/admin/users/{user_id}",
            headers=self._admin_headers(),
            json=attributes,
        )
        return _parse_user(body)

    async def list_users(self) -> List[AuthUser]:
        users: List[AuthUser] = []
        page = 1
        while True:
            body = await self._request(
                "GET",
                "/admin/users",
                headers=self._admin_headers(),
                params={"page": page, "per_page": self.LIST_PAGE_SIZE},
            )
            batch = (body or {}).get("users", [])
            users.extend(_parse_user(item) for item in batch)
            if len(batch) < self.LIST_PAGE_SIZE:
                return users
            page += 1

    async def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        body = await self._request(
            "POST",
            "/token",
            headers=self._public_headers(),
            params={"grant_type": "password"},
            json={"email": email, "password": password},
        )
        return AuthSession(
            access_token=body["access_token"],
            refresh_token=body.get("refresh_token"),
            expires_at=body.get("expires_at"),
            user=_parse_user(body["user"]),
        )

    async def sign_up(
        self,
        email: str,
        password: str,
        user_metadata: Optional[Dict[str, Any]] = None,
    ) -> AuthUser:
        body = await self._request(
            "POST",
            "/signup",
            headers=self._public_headers(),
            json={"email": email, "password": password, "data": user_metadata or {}},
        )
        # Projects with auto-confirm answer with a session wrapping the user
        return _parse_user(body.get("user") or body)

    async def sign_out(self, access_token: str) -> None:
        await self._request(
            "POST",
            "/logout",
            headers=self._public_headers(access_token),
        )


def _parse_user(data: Dict[str, Any]) -> AuthUser:
    return AuthUser(
        id=data["id"],
        email=data.get("email"),
        created_at=data.get("created_at"),
        user_metadata=data.get("user_metadata") or {},
    )


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(body, dict):
        for key in ("msg", "error_description", "message", "error"):
            if body.get(key):
                return str(body[key])
    return f"HTTP {response.status_code}"
