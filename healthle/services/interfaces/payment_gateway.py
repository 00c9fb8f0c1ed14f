"""
Payment Gateway Interface (IPaymentGateway)

Abstract base class for the hosted payment processor. Objects are
returned as the processor's JSON (dicts), so routes read the same field
names the processor documents (``status``, ``metadata``,
``shipping_details``, ...).
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional


class PaymentGatewayError(Exception):
    """
    Raised when the payment processor rejects or fails a request.

    Attributes:
        message: Processor error message
        status_code: HTTP status returned by the processor
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class WebhookSignatureError(PaymentGatewayError):
    """Raised when a webhook payload fails signature verification."""


class IPaymentGateway(ABC):
    """
    Abstract interface for payment operations.

    Two purchase flows exist:
    - embedded payment: create a payment intent, confirm it client side,
      then look it up by id
    - hosted checkout: create a checkout session and redirect to its URL
    """

    @abstractmethod
    async def create_payment_intent(
        self,
        amount: int,
        currency: str,
        metadata: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        """
        Create a payment intent with automatic payment methods.

        Returns:
            Payment intent object (``id``, ``client_secret``, ``status``, ...)
        """

    @abstractmethod
    async def retrieve_payment_intent(
        self,
        payment_intent_id: str,
        expand: Optional[List[str]] = None,
    ) -> Dict[str, Any]:
        """Fetch a payment intent, optionally expanding related objects."""

    @abstractmethod
    async def create_checkout_session(self, params: Dict[str, Any]) -> Dict[str, Any]:
        """
        Create a hosted checkout session.

        Args:
            params: Session parameters in the processor's nested format
                (``line_items``, ``success_url``, ``metadata``, ...)

        Returns:
            Checkout session object (``id``, ``url``, ...)
        """

    @abstractmethod
    async def retrieve_checkout_session(self, session_id: str) -> Dict[str, Any]:
        """Fetch a checkout session (``payment_status``, ``shipping_details``, ...)."""

    @abstractmethod
    async def retrieve_customer(self, customer_id: str) -> Dict[str, Any]:
        """Fetch a customer; deleted customers carry ``deleted: true``."""

    @abstractmethod
    def construct_event(self, payload: bytes, signature_header: str) -> Dict[str, Any]:
        """
        Verify and parse a webhook delivery.

        Raises:
            WebhookSignatureError: If the signature is missing, stale or wrong
        """
