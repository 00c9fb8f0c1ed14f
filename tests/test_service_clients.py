"""
Tests for the external service clients.

Each client is exercised against an ``httpx.MockTransport`` that records
the outgoing requests, so request shapes and error mapping are checked
without network access.
"""

import json
import time
from urllib.parse import parse_qs

import httpx
import pytest

from healthle.services.dify_client import DifyClient, parse_questions
from healthle.services.interfaces import (
    AuthProviderError,
    InterviewAIError,
    PaymentGatewayError,
    WebhookSignatureError,
)
from healthle.services.line_oauth import (
    CallbackValidationError,
    LineAuthError,
    LineOAuthClient,
    validate_callback_request,
)
from healthle.services.stripe_client import StripeClient, encode_form, verify_webhook_signature
from healthle.services.supabase_auth import SupabaseAuthClient
from tests.conftest import sign_webhook


class Recorder:
    """MockTransport handler answering from a queue of (status, json) pairs."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        status_code, body = self.responses.pop(0)
        if body is None:
            return httpx.Response(status_code)
        return httpx.Response(status_code, json=body)

    @property
    def transport(self):
        return httpx.MockTransport(self)


class TestEncodeForm:

    def test_nested_values_use_brackets(self):
        fields = encode_form({
            "amount": 1980,
            "automatic_payment_methods": {"enabled": True},
            "line_items": [{"price_data": {"currency": "jpy"}, "quantity": 1}],
            "metadata": {"product_id": "p1", "skip": None},
        })

        assert fields == [
            ("amount", "1980"),
            ("automatic_payment_methods[enabled]", "true"),
            ("line_items[0][price_data][currency]", "jpy"),
            ("line_items[0][quantity]", "1"),
            ("metadata[product_id]", "p1"),
        ]


class TestWebhookSignature:

    def test_valid_signature_returns_event(self):
        payload = json.dumps({"id": "evt_1", "type": "checkout.session.completed"}).encode()

        event = verify_webhook_signature(payload, sign_webhook(payload, secret="whsec_x"), "whsec_x")

        assert event["id"] == "evt_1"

    def test_any_matching_v1_is_accepted(self):
        payload = b'{"id": "evt_1"}'
        header = sign_webhook(payload, secret="whsec_x")
        timestamp, good = header.split(",")
        rotated = f"{timestamp},v1={'0' * 64},{good}"

        assert verify_webhook_signature(payload, rotated, "whsec_x")["id"] == "evt_1"

    @pytest.mark.parametrize(
        "header, message",
        [
            ("", "Missing signature header"),
            ("v1=abc", "Malformed signature header"),
            ("t=abc,v1=abc", "Invalid signature timestamp"),
            ("t=1700000000,v1=abc", "No signatures found matching the expected signature"),
        ],
    )
    def test_bad_headers(self, header, message):
        with pytest.raises(WebhookSignatureError) as exc_info:
            verify_webhook_signature(b"{}", header, "whsec_x")

        assert exc_info.value.message == message

    def test_stale_timestamp_rejected(self):
        payload = b"{}"
        header = sign_webhook(payload, secret="whsec_x", timestamp=int(time.time()) - 600)

        with pytest.raises(WebhookSignatureError) as exc_info:
            verify_webhook_signature(payload, header, "whsec_x")

        assert exc_info.value.message == "Timestamp outside the tolerance zone"

    def test_client_without_secret_rejects_events(self):
        client = StripeClient(secret_key="sk", webhook_secret="")
        client.webhook_secret = ""

        with pytest.raises(WebhookSignatureError):
            client.construct_event(b"{}", "t=1,v1=a")


@pytest.mark.anyio
class TestStripeClient:

    async def test_create_payment_intent_posts_form(self):
        recorder = Recorder((200, {"id": "pi_1", "client_secret": "pi_1_secret"}))
        client = StripeClient(secret_key="sk_test", api_base="https://stripe.test/v1", transport=recorder.transport)

        intent = await client.create_payment_intent(1980, "jpy", metadata={"product_id": "p1"})

        request = recorder.requests[0]
        assert intent["id"] == "pi_1"
        assert request.method == "POST"
        assert request.url.path == "/v1/payment_intents"
        assert request.headers["Authorization"].startswith("Basic ")
        form = parse_qs(request.content.decode())
        assert form["amount"] == ["1980"]
        assert form["metadata[product_id]"] == ["p1"]
        assert form["automatic_payment_methods[enabled]"] == ["true"]

    async def test_retrieve_with_expand_uses_query(self):
        recorder = Recorder((200, {"id": "pi_1"}))
        client = StripeClient(secret_key="sk_test", api_base="https://stripe.test/v1", transport=recorder.transport)

        await client.retrieve_payment_intent("pi_1", expand=["shipping", "customer"])

        query = parse_qs(recorder.requests[0].url.query.decode())
        assert query == {"expand[0]": ["shipping"], "expand[1]": ["customer"]}

    async def test_error_message_is_surfaced(self):
        recorder = Recorder((404, {"error": {"message": "No such checkout.session: 'cs_x'"}}))
        client = StripeClient(secret_key="sk_test", api_base="https://stripe.test/v1", transport=recorder.transport)

        with pytest.raises(PaymentGatewayError) as exc_info:
            await client.retrieve_checkout_session("cs_x")

        assert exc_info.value.status_code == 404
        assert "cs_x" in exc_info.value.message


@pytest.mark.anyio
class TestSupabaseAuthClient:

    def _client(self, recorder):
        return SupabaseAuthClient(
            base_url="https://project.supabase.test",
            service_role_key="service-key",
            anon_key="anon-key",
            transport=recorder.transport,
        )

    async def test_create_user_uses_service_role(self):
        recorder = Recorder((200, {"id": "u1", "email": "a@example.com", "user_metadata": {"role": "staff"}}))

        user = await self._client(recorder).create_user(
            "a@example.com", "password123", user_metadata={"role": "staff"}
        )

        request = recorder.requests[0]
        assert user.id == "u1"
        assert user.user_metadata == {"role": "staff"}
        assert request.url.path == "/auth/v1/admin/users"
        assert request.headers["Authorization"] == "Bearer service-key"
        assert json.loads(request.content)["email_confirm"] is True

    async def test_sign_in_returns_session(self):
        recorder = Recorder((200, {
            "access_token": "jwt",
            "refresh_token": "refresh",
            "expires_at": 1700000000,
            "user": {"id": "u1", "email": "a@example.com"},
        }))

        session = await self._client(recorder).sign_in_with_password("a@example.com", "password123")

        request = recorder.requests[0]
        assert session.access_token == "jwt"
        assert session.user.id == "u1"
        assert request.url.params["grant_type"] == "password"
        assert request.headers["apikey"] == "anon-key"

    async def test_list_users_pages(self, monkeypatch):
        monkeypatch.setattr(SupabaseAuthClient, "LIST_PAGE_SIZE", 2)
        recorder = Recorder(
            (200, {"users": [{"id": "u1"}, {"id": "u2"}]}),
            (200, {"users": [{"id": "u3"}]}),
        )

        users = await self._client(recorder).list_users()

        assert [u.id for u in users] == ["u1", "u2", "u3"]
        assert [r.url.params["page"] for r in recorder.requests] == ["1", "2"]

    async def test_sign_up_unwraps_session(self):
        recorder = Recorder((200, {"access_token": "jwt", "user": {"id": "u9", "email": "v@example.com"}}))

        user = await self._client(recorder).sign_up("v@example.com", "password123", {"role": "vendor"})

        assert user.id == "u9"
        assert json.loads(recorder.requests[0].content)["data"] == {"role": "vendor"}

    async def test_sign_out_forwards_token(self):
        recorder = Recorder((204, None))

        await self._client(recorder).sign_out("user-jwt")

        assert recorder.requests[0].headers["Authorization"] == "Bearer user-jwt"

    async def test_provider_message_is_raised(self):
        recorder = Recorder((422, {"msg": "A user with this email address has already been registered"}))

        with pytest.raises(AuthProviderError) as exc_info:
            await self._client(recorder).create_user("a@example.com", "password123")

        assert exc_info.value.status_code == 422
        assert exc_info.value.message == "A user with this email address has already been registered"

    async def test_network_failure_is_raised(self):
        def handler(request):
            raise httpx.ConnectError("connection refused")

        client = SupabaseAuthClient(
            base_url="https://project.supabase.test",
            service_role_key="k",
            transport=httpx.MockTransport(handler),
        )

        with pytest.raises(AuthProviderError) as exc_info:
            await client.delete_user("u1")

        assert exc_info.value.status_code is None


class TestParseQuestions:

    def test_fenced_json(self):
        answer = '```json\n{"questions": [{"text": "熱はありますか？", "type": "boolean"}]}\n```'

        assert parse_questions(answer) == [{"text": "熱はありますか？", "type": "boolean"}]

    @pytest.mark.parametrize("answer", ["not json", '{"items": []}', '{"questions": "none"}', ""])
    def test_unusable_answers(self, answer):
        with pytest.raises(InterviewAIError):
            parse_questions(answer)


@pytest.mark.anyio
class TestDifyClient:

    def _client(self, recorder):
        return DifyClient(
            api_url="https://dify.test/v1",
            question_api_key="q-key",
            answer_api_key="a-key",
            transport=recorder.transport,
        )

    async def test_generate_questions(self):
        recorder = Recorder((200, {"answer": '{"questions": [{"text": "いつから？"}]}'}))

        questions = await self._client(recorder).generate_questions("頭痛")

        request = recorder.requests[0]
        assert questions == [{"text": "いつから？"}]
        assert request.url.path == "/v1/completion-messages"
        assert request.headers["Authorization"] == "Bearer q-key"
        assert json.loads(request.content)["inputs"] == {"symptom": "頭痛"}

    async def test_analyze_answers_uses_conversation_user(self):
        recorder = Recorder((200, {"answer": "安静にしてください"}))
        qa_pairs = [{"question": "いつから？", "answer": "昨日"}]

        analysis = await self._client(recorder).analyze_answers("interview-1", "頭痛", qa_pairs)

        body = json.loads(recorder.requests[0].content)
        assert analysis == "安静にしてください"
        assert body["user"] == "interview-1"
        assert body["inputs"]["questions"] == qa_pairs
        assert recorder.requests[0].headers["Authorization"] == "Bearer a-key"

    async def test_error_status_raises(self):
        recorder = Recorder((500, {"message": "upstream"}))

        with pytest.raises(InterviewAIError):
            await self._client(recorder).analyze_answers("i", "s", [])

    async def test_non_text_answer_raises(self):
        recorder = Recorder((200, {"answer": None}))

        with pytest.raises(InterviewAIError):
            await self._client(recorder).analyze_answers("i", "s", [])


class TestLineCallbackValidation:

    def test_valid(self):
        callback = validate_callback_request({"code": "c", "state": "s"})

        assert (callback.code, callback.state) == ("c", "s")

    @pytest.mark.parametrize(
        "body, message",
        [
            ({}, "code is required"),
            ({"code": 1, "state": "s"}, "code is required"),
            ({"code": "c"}, "state is required"),
            ({"code": "c", "state": ""}, "state is required"),
            (None, "code is required"),
        ],
    )
    def test_invalid(self, body, message):
        with pytest.raises(CallbackValidationError) as exc_info:
            validate_callback_request(body)

        assert str(exc_info.value) == message


class TestLineAuthorizeUrl:

    def test_authorize_url_carries_return_url(self):
        client = LineOAuthClient(
            client_id="channel-id",
            callback_url="https://healthle.test/api/auth/line/callback",
        )

        url = httpx.URL(client.authorize_url("state-1", return_url="/mypage"))

        assert url.params["state"] == "state-1"
        assert url.params["client_id"] == "channel-id"
        assert url.params["redirect_uri"] == "https://healthle.test/api/auth/line/callback?return_url=%2Fmypage"
        assert url.params["scope"] == "profile openid email"


@pytest.mark.anyio
class TestLineOAuthClient:

    def _client(self, recorder):
        return LineOAuthClient(
            client_id="channel-id",
            client_secret="channel-secret",
            callback_url="https://healthle.test/api/auth/line/callback",
            transport=recorder.transport,
        )

    async def test_exchange_code(self):
        recorder = Recorder((200, {"access_token": "at", "id_token": "idt"}))

        tokens = await self._client(recorder).exchange_code("code-1")

        form = parse_qs(recorder.requests[0].content.decode())
        assert tokens["id_token"] == "idt"
        assert form["grant_type"] == ["authorization_code"]
        assert form["redirect_uri"] == ["https://healthle.test/api/auth/line/callback"]

    async def test_verify_id_token(self):
        recorder = Recorder((200, {"sub": "U1", "name": "LINE太郎", "aud": "channel-id"}))

        profile = await self._client(recorder).verify_id_token("idt")

        assert profile == {"sub": "U1", "name": "LINE太郎", "picture": None, "email": None}

    async def test_rejection_raises(self):
        recorder = Recorder((400, {"error": "invalid_grant", "error_description": "code expired"}))

        with pytest.raises(LineAuthError) as exc_info:
            await self._client(recorder).exchange_code("old")

        assert str(exc_info.value) == "invalid_grant (code expired)"
