"""
LINE Login (OAuth 2.1 / OpenID Connect) client.

Flow:
1. redirect the browser to ``authorize_url(state)``
2. LINE calls back with ``code`` and ``state``; check them with
   ``validate_callback_request``
3. ``exchange_code`` trades the code for tokens, ``verify_id_token``
   returns the verified profile claims (``sub`` is the LINE user id)
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional
from urllib.parse import urlencode, urlsplit, urlunsplit, parse_qsl

import httpx

from healthle.core.config import settings

logger = logging.getLogger(__name__)

AUTHORIZE_URL = "https://access.line.me/oauth2/v2.1/authorize"
TOKEN_URL = "https://api.line.me/oauth2/v2.1/token"
VERIFY_URL = "https://api.line.me/oauth2/v2.1/verify"
SCOPE = "profile openid email"


class LineAuthError(Exception):
    """Raised when LINE rejects a token exchange or verification."""


class CallbackValidationError(ValueError):
    """Raised when the OAuth callback parameters are incomplete."""


@dataclass
class CallbackRequest:
    code: str
    state: str


def validate_callback_request(body: Any) -> CallbackRequest:
    """
    Validate the OAuth callback parameters.

    Args:
        body: Mapping with ``code`` and ``state`` (query params or JSON)

    Returns:
        CallbackRequest with both values

    Raises:
        CallbackValidationError: ``code is required`` or ``state is required``
            when a value is missing, empty or not a string
    """
    body = body if isinstance(body, dict) else {}

    code = body.get("code")
    if not code or not isinstance(code, str):
        raise CallbackValidationError("code is required")

    state = body.get("state")
    if not state or not isinstance(state, str):
        raise CallbackValidationError("state is required")

    return CallbackRequest(code=code, state=state)


def _with_query_param(url: str, key: str, value: str) -> str:
    parts = urlsplit(url)
    query = parse_qsl(parts.query, keep_blank_values=True)
    query.append((key, value))
    return urlunsplit(parts._replace(query=urlencode(query)))


class LineOAuthClient:
    """LINE Login client built on httpx."""

    def __init__(
        self,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        callback_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.client_id = client_id or settings.line_client_id
        self.client_secret = client_secret or settings.line_client_secret
        self.callback_url = callback_url or settings.line_callback_url
        self.timeout = timeout or settings.http_timeout_seconds
        self._transport = transport

    def authorize_url(self, state: str, return_url: Optional[str] = None) -> str:
        """
        Build the LINE authorization URL.

        ``return_url`` is carried on the callback URL so the frontend can
        resume where the user started.
        """
        redirect_uri = self.callback_url
        if return_url:
            redirect_uri = _with_query_param(redirect_uri, "return_url", return_url)

        query = urlencode({
            "response_type": "code",
            "client_id": self.client_id,
            "redirect_uri": redirect_uri,
            "state": state,
            "scope": SCOPE,
        })
        return f"{AUTHORIZE_URL}?{query}"

    async def _post_form(self, url: str, data: Dict[str, str]) -> Dict[str, Any]:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(url, data=data)
        except httpx.HTTPError as e:
            logger.error(f"LINE request failed: {e}")
            raise LineAuthError(f"LINE unreachable: {e}") from e

        try:
            body = response.json()
        except ValueError:
            body = {}

        if response.status_code >= 400:
            logger.warning(
                "LINE rejected request",
                extra={"status_code": response.status_code, "line_error": body.get("error")},
            )
            raise LineAuthError(
                f"{body.get('error', 'HTTP ' + str(response.status_code))} "
                f"({body.get('error_description') or 'no description'})"
            )
        return body

    async def exchange_code(self, code: str, redirect_uri: Optional[str] = None) -> Dict[str, Any]:
        """
        Exchange an authorization code for tokens.

        Returns:
            Token response (``access_token``, ``id_token``, ...)

        Raises:
            LineAuthError: When LINE rejects the code
        """
        body = await self._post_form(
            TOKEN_URL,
            {
                "grant_type": "authorization_code",
                "code": code,
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "redirect_uri": redirect_uri or self.callback_url,
            },
        )
        logger.info(
            "LINE token received",
            extra={"has_id_token": bool(body.get("id_token"))},
        )
        return body

    async def verify_id_token(self, id_token: str) -> Dict[str, Any]:
        """
        Verify an ID token with LINE.

        Returns:
            ``{"sub", "name", "picture", "email"}``
        """
        body = await self._post_form(
            VERIFY_URL,
            {"id_token": id_token, "client_id": self.client_id},
        )
        return {
            "sub": body.get("sub"),
            "name": body.get("name"),
            "picture": body.get("picture"),
            "email": body.get("email"),
        }
