"""
Payment processor client (Stripe REST API).

Stripe takes form-encoded bodies with bracketed keys for nested values
(``metadata[product_id]=...``, ``line_items[0][quantity]=1``), and signs
webhook deliveries with HMAC-SHA256 in the ``Stripe-Signature`` header.
"""

import hashlib
import hmac
import json
import logging
import time
from typing import Any, Dict, List, Optional, Tuple

import httpx

from healthle.core.config import settings
from healthle.services.interfaces.payment_gateway import (
    IPaymentGateway,
    PaymentGatewayError,
    WebhookSignatureError,
)

logger = logging.getLogger(__name__)


def encode_form(params: Dict[str, Any], prefix: str = "") -> List[Tuple[str, str]]:
    """
    Flatten nested params into Stripe's bracketed form fields.

    Example:
        >>> encode_form({"metadata": {"a": "1"}, "expand": ["customer"]})
        [('metadata[a]', '1'), ('expand[0]', 'customer')]

    None values are dropped; booleans become ``true`` / ``false``.
    """
    fields: List[Tuple[str, str]] = []
    for key, value in params.items():
        name = f"{prefix}[{key}]" if prefix else str(key)
        fields.extend(_encode_value(name, value))
    return fields


def _encode_value(name: str, value: Any) -> List[Tuple[str, str]]:
    if value is None:
        return []
    if isinstance(value, dict):
        return encode_form(value, prefix=name)
    if isinstance(value, (list, tuple)):
        fields: List[Tuple[str, str]] = []
        for index, item in enumerate(value):
            fields.extend(_encode_value(f"{name}[{index}]", item))
        return fields
    if isinstance(value, bool):
        return [(name, "true" if value else "false")]
    return [(name, str(value))]


def verify_webhook_signature(
    payload: bytes,
    signature_header: str,
    secret: str,
    tolerance_seconds: int = 300,
    now: Optional[float] = None,
) -> Dict[str, Any]:
    """
    Verify a webhook delivery and return the parsed event.

    The header looks like ``t=1700000000,v1=<hex>[,v1=<hex>...]``; the
    signed message is ``"{t}.{payload}"``.

    Args:
        payload: Raw request body, exactly as received
        signature_header: Value of the Stripe-Signature header
        secret: Endpoint signing secret (``whsec_...``)
        tolerance_seconds: Maximum accepted age of the timestamp
        now: Current Unix time (tests)

    Returns:
        The decoded event object

    Raises:
        WebhookSignatureError: Missing header parts, no matching signature,
            stale timestamp or undecodable payload
    """
    if not signature_header:
        raise WebhookSignatureError("Missing signature header")

    timestamp: Optional[int] = None
    signatures: List[str] = []
    for part in signature_header.split(","):
        key, _, value = part.strip().partition("=")
        if key == "t":
            try:
                timestamp = int(value)
            except ValueError:
                raise WebhookSignatureError("Invalid signature timestamp")
        elif key == "v1":
            signatures.append(value)

    if timestamp is None or not signatures:
        raise WebhookSignatureError("Malformed signature header")

    signed_payload = f"{timestamp}.".encode() + payload
    expected = hmac.new(secret.encode(), signed_payload, hashlib.sha256).hexdigest()
    if not any(hmac.compare_digest(expected, candidate) for candidate in signatures):
        raise WebhookSignatureError("No signatures found matching the expected signature")

    current = time.time() if now is None else now
    if tolerance_seconds and current - timestamp > tolerance_seconds:
        raise WebhookSignatureError("Timestamp outside the tolerance zone")

    try:
        return json.loads(payload)
    except ValueError as e:
        raise WebhookSignatureError(f"Invalid payload: {e}") from e


class StripeClient(IPaymentGateway):
    """
    Stripe client built on httpx.

    Tests pass an ``httpx.MockTransport`` as ``transport``.
    """

    def __init__(
        self,
        secret_key: Optional[str] = None,
        webhook_secret: Optional[str] = None,
        api_base: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.secret_key = secret_key or settings.stripe_secret_key
        self.webhook_secret = webhook_secret or settings.stripe_webhook_secret
        self.api_base = (api_base or settings.stripe_api_base).rstrip("/")
        self.timeout = timeout or settings.http_timeout_seconds
        self._transport = transport

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Call the API and return the decoded object.

        GET params go to the query string, POST params to the form body.

        Raises:
            PaymentGatewayError: On network failure or non-2xx status
        """
        fields = encode_form(params or {})
        request_kwargs: Dict[str, Any] = {}
        if method == "GET":
            request_kwargs["params"] = fields
        else:
            request_kwargs["data"] = dict(fields)

        try:
            async with httpx.AsyncClient(
                base_url=self.api_base,
                timeout=self.timeout,
                transport=self._transport,
                auth=(self.secret_key, ""),
            ) as client:
                response = await client.request(method, path, **request_kwargs)
        except httpx.HTTPError as e:
            logger.error(f"Payment processor request failed: {e}", extra={"stripe_path": path})
            raise PaymentGatewayError(f"Payment processor unreachable: {e}") from e

        body = response.json() if response.content else {}
        if response.status_code >= 400:
            error = body.get("error", {}) if isinstance(body, dict) else {}
            message = error.get("message") or f"HTTP {response.status_code}"
            logger.warning(
                "Payment processor rejected request",
                extra={"stripe_path": path, "status_code": response.status_code},
            )
            raise PaymentGatewayError(message, status_code=response.status_code)
        return body

    async def create_payment_intent(
        self,
        amount: int,
        currency: str,
        metadata: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        return await self._request(
            "POST",
            "/payment_intents",
            {
                "amount": amount,
                "currency": currency,
                "automatic_payment_methods": {"enabled": True},
                "metadata": metadata or {},
            },
        )

    async def retrieve_payment_intent(
        self,
        payment_intent_id: str,
        expand: Optional[List[str]] = None,
    ) -> Dict[str, Any]:
        return await self._request(
            "GET",
            f"/payment_intents/{payment_intent_id}",
            {"expand": expand} if expand else None,
        )

    async def create_checkout_session(self, params: Dict[str, Any]) -> Dict[str, Any]:
        session = await self._request("POST", "/checkout/sessions", params)
        logger.info("Checkout session created", extra={"checkout_session_id": session.get("id")})
        return session

    async def retrieve_checkout_session(self, session_id: str) -> Dict[str, Any]:
        return await self._request("GET", f"/checkout/sessions/{session_id}")

    async def retrieve_customer(self, customer_id: str) -> Dict[str, Any]:
        return await self._request("GET", f"/customers/{customer_id}")

    def construct_event(self, payload: bytes, signature_header: str) -> Dict[str, Any]:
        if not self.webhook_secret:
            raise WebhookSignatureError("Webhook secret is not configured")
        return verify_webhook_signature(
            payload,
            signature_header,
            self.webhook_secret,
            tolerance_seconds=settings.stripe_webhook_tolerance_seconds,
        )
