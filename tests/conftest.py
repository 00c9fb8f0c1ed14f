"""
Pytest configuration and shared fixtures.

This module provides:
- Environment variable setup for tests
- The in-memory database and seeding helpers
- Fakes for the auth provider, payment processor and AI service
- HTTP clients for the admin, user and vendor apps
"""

import hashlib
import hmac
import json
import os
import time
import uuid
from typing import Any, Dict, List, Optional

import pytest


# Set test environment variables BEFORE any imports
# This must happen first to ensure settings load with test values
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["SUPABASE_JWT_SECRET"] = "test_jwt_secret_at_least_32_characters_long"
os.environ["SUPABASE_URL"] = "http://supabase.test"
os.environ["ENVIRONMENT"] = "test"
os.environ["STRIPE_SECRET_KEY"] = "sk_test_key"
os.environ["STRIPE_WEBHOOK_SECRET"] = "whsec_test_secret"
os.environ["SITE_URL"] = "http://localhost:3000"
os.environ["LOG_JSON"] = "false"

from httpx import ASGITransport, AsyncClient  # noqa: E402

from healthle.api.dependencies import (  # noqa: E402
    get_auth_provider,
    get_interview_ai,
    get_payment_gateway,
)
from healthle.core.security import create_access_token  # noqa: E402
from healthle.services.interfaces import (  # noqa: E402
    AuthProviderError,
    AuthSession,
    AuthUser,
    IAuthProvider,
    IInterviewAI,
    IPaymentGateway,
    InterviewAIError,
    PaymentGatewayError,
)
from healthle.services.stripe_client import verify_webhook_signature  # noqa: E402

WEBHOOK_SECRET = "whsec_test_secret"


class FakeAuthProvider(IAuthProvider):
    """
    In-memory auth provider.

    Records deleted accounts, sign-outs and password changes so tests can
    assert on compensation and session handling.
    """

    def __init__(self):
        self.users: Dict[str, AuthUser] = {}
        self.passwords: Dict[str, str] = {}
        self.deleted_ids: List[str] = []
        self.signed_out: List[str] = []
        self.password_updates: List[str] = []
        self.fail_create = False
        self.fail_list = False

    def add_user(
        self,
        email: str,
        password: str = "password123",
        user_id: Optional[str] = None,
        user_metadata: Optional[Dict[str, Any]] = None,
    ) -> AuthUser:
        user = AuthUser(
            id=user_id or str(uuid.uuid4()),
            email=email,
            created_at="2024-01-01T00:00:00+00:00",
            user_metadata=user_metadata or {},
        )
        self.users[user.id] = user
        self.passwords[user.id] = password
        return user

    async def create_user(self, email, password, email_confirm=True, user_metadata=None):
        if self.fail_create:
            raise AuthProviderError("Auth provider unavailable", status_code=500)
        if any(u.email == email for u in self.users.values()):
            raise AuthProviderError("A user with this email address has already been registered", 422)
        return self.add_user(email, password, user_metadata=user_metadata)

    async def delete_user(self, user_id):
        self.deleted_ids.append(user_id)
        self.users.pop(user_id, None)

    async def update_user(self, user_id, password=None, user_metadata=None):
        user = self.users.get(user_id)
        if user is None:
            raise AuthProviderError("User not found", 404)
        if password is not None:
            self.passwords[user_id] = password
            self.password_updates.append(user_id)
        if user_metadata:
            user.user_metadata.update(user_metadata)
        return user

    async def list_users(self):
        if self.fail_list:
            raise AuthProviderError("Auth provider unavailable", status_code=500)
        return list(self.users.values())

    async def sign_in_with_password(self, email, password):
        for user in self.users.values():
            if user.email == email and self.passwords.get(user.id) == password:
                return AuthSession(
                    access_token=create_access_token(user.id, email=user.email),
                    user=user,
                )
        raise AuthProviderError("Invalid login credentials", 400)

    async def sign_up(self, email, password, user_metadata=None):
        return await self.create_user(email, password, email_confirm=False, user_metadata=user_metadata)

    async def sign_out(self, access_token):
        self.signed_out.append(access_token)


class FakePaymentGateway(IPaymentGateway):
    """
    In-memory payment processor.

    ``construct_event`` verifies signatures with the real algorithm, so
    webhook tests sign their payloads with ``sign_webhook``.
    """

    def __init__(self):
        self.payment_intents: Dict[str, Dict[str, Any]] = {}
        self.checkout_sessions: Dict[str, Dict[str, Any]] = {}
        self.customers: Dict[str, Dict[str, Any]] = {}
        self.created_sessions: List[Dict[str, Any]] = []
        self.fail_checkout = False

    async def create_payment_intent(self, amount, currency, metadata=None):
        intent_id = f"pi_test_{len(self.payment_intents) + 1}"
        intent = {
            "id": intent_id,
            "object": "payment_intent",
            "client_secret": f"{intent_id}_secret_abc",
            "amount": amount,
            "currency": currency,
            "status": "requires_payment_method",
            "metadata": metadata or {},
        }
        self.payment_intents[intent_id] = intent
        return intent

    async def retrieve_payment_intent(self, payment_intent_id, expand=None):
        if payment_intent_id not in self.payment_intents:
            raise PaymentGatewayError(f"No such payment_intent: '{payment_intent_id}'", 404)
        return dict(self.payment_intents[payment_intent_id])

    async def create_checkout_session(self, params):
        if self.fail_checkout:
            raise PaymentGatewayError("Invalid request", 400)
        session_id = f"cs_test_{len(self.created_sessions) + 1}"
        self.created_sessions.append(params)
        session = {
            "id": session_id,
            "object": "checkout.session",
            "url": f"https://checkout.stripe.test/pay/{session_id}",
            "payment_status": "unpaid",
            "metadata": params.get("metadata", {}),
        }
        self.checkout_sessions[session_id] = session
        return session

    async def retrieve_checkout_session(self, session_id):
        if session_id not in self.checkout_sessions:
            raise PaymentGatewayError(f"No such checkout.session: '{session_id}'", 404)
        return dict(self.checkout_sessions[session_id])

    async def retrieve_customer(self, customer_id):
        if customer_id not in self.customers:
            raise PaymentGatewayError(f"No such customer: '{customer_id}'", 404)
        return self.customers[customer_id]

    def construct_event(self, payload, signature_header):
        return verify_webhook_signature(payload, signature_header, WEBHOOK_SECRET)


class FakeInterviewAI(IInterviewAI):
    """Scripted AI service; set ``fail`` to make every call raise."""

    def __init__(self):
        self.questions: List[Dict[str, Any]] = [
            {"text": "いつから症状がありますか？", "type": "text"},
            {"text": "熱はありますか？", "type": "text"},
        ]
        self.analysis = "水分を十分にとり、安静にしてください。"
        self.fail = False
        self.calls: List[Dict[str, Any]] = []

    async def generate_questions(self, symptom_text):
        self.calls.append({"symptom_text": symptom_text})
        if self.fail:
            raise InterviewAIError("AI service unavailable")
        return self.questions

    async def analyze_answers(self, conversation_user, symptom_text, qa_pairs):
        self.calls.append({
            "conversation_user": conversation_user,
            "symptom_text": symptom_text,
            "qa_pairs": qa_pairs,
        })
        if self.fail:
            raise InterviewAIError("AI service unavailable")
        return self.analysis


def sign_webhook(payload: bytes, secret: str = WEBHOOK_SECRET, timestamp: Optional[int] = None) -> str:
    """Build a ``Stripe-Signature`` header for ``payload``."""
    timestamp = timestamp if timestamp is not None else int(time.time())
    signature = hmac.new(
        secret.encode(),
        f"{timestamp}.".encode() + payload,
        hashlib.sha256,
    ).hexdigest()
    return f"t={timestamp},v1={signature}"


def webhook_body(event_type: str, data: Dict[str, Any]) -> bytes:
    return json.dumps({
        "id": f"evt_{uuid.uuid4().hex[:12]}",
        "type": event_type,
        "data": {"object": data},
    }).encode()


def auth_headers(user_id: str, email: Optional[str] = None) -> Dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user_id, email=email)}"}


@pytest.fixture
def anyio_backend():
    """
    Configure anyio backend for async tests.

    Returns:
        str: Backend name ("asyncio")
    """
    return "asyncio"


@pytest.fixture(scope="function")
async def db_session():
    """
    Provide a database session for tests.

    Creates tables before test and cleans up after. The apps share the
    same in-memory database, so rows committed here are visible to them.
    """
    from healthle.core.database import engine, async_session_maker
    from healthle.models import Base

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with async_session_maker() as session:
        yield session

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
def auth_provider():
    return FakeAuthProvider()


@pytest.fixture
def payments():
    return FakePaymentGateway()


@pytest.fixture
def interview_ai():
    return FakeInterviewAI()


async def _client(app, auth_provider, payments, interview_ai):
    app.dependency_overrides[get_auth_provider] = lambda: auth_provider
    app.dependency_overrides[get_payment_gateway] = lambda: payments
    app.dependency_overrides[get_interview_ai] = lambda: interview_ai
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


@pytest.fixture
async def admin_client(db_session, auth_provider, payments, interview_ai):
    from healthle.main import admin_app

    client = await _client(admin_app, auth_provider, payments, interview_ai)
    async with client:
        yield client
    admin_app.dependency_overrides.clear()


@pytest.fixture
async def user_client(db_session, auth_provider, payments, interview_ai):
    from healthle.main import user_app

    client = await _client(user_app, auth_provider, payments, interview_ai)
    async with client:
        yield client
    user_app.dependency_overrides.clear()


@pytest.fixture
async def vendor_client(db_session, auth_provider, payments, interview_ai):
    from healthle.main import vendor_app

    client = await _client(vendor_app, auth_provider, payments, interview_ai)
    async with client:
        yield client
    vendor_app.dependency_overrides.clear()


@pytest.fixture
async def admin_user(db_session):
    """A signed-in platform admin; returns ``(user, headers)``."""
    from healthle.models import AdminUser, User

    user = User(id=str(uuid.uuid4()), email="admin@example.com", name="管理者")
    db_session.add(user)
    db_session.add(AdminUser(user_id=user.id, email=user.email))
    await db_session.commit()
    return user, auth_headers(user.id, user.email)


@pytest.fixture
async def vendor(db_session):
    from healthle.models import Vendor

    vendor = Vendor(
        vendor_name="さくら薬局",
        email="store@example.com",
        phone="03-0000-0000",
        postal_code="100-0001",
        prefecture="東京都",
        city="千代田区",
        address_line1="千代田1-1",
    )
    db_session.add(vendor)
    await db_session.commit()
    return vendor


@pytest.fixture
async def product(db_session, vendor):
    from healthle.models import Product

    product = Product(
        vendor_id=vendor.id,
        name="かぜ薬",
        description="総合かぜ薬",
        category="cold",
        price=1980,
        status="published",
        image_url="https://example.com/cold.png",
    )
    db_session.add(product)
    await db_session.commit()
    return product


@pytest.fixture
async def customer(db_session):
    """A signed-in end user; returns ``(user, headers)``."""
    from healthle.models import User

    user = User(id=str(uuid.uuid4()), email="customer@example.com", name="山田太郎")
    db_session.add(user)
    await db_session.commit()
    return user, auth_headers(user.id, user.email)
