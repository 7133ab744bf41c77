"""Tests for the completion proxy endpoint.

Covers input validation, upstream error normalization, secrecy of the
provider key, model pinning, method handling and CORS.
"""

import json
from typing import Any
from unittest.mock import AsyncMock

import httpx
import pytest
from fastapi.testclient import TestClient

from ai_proxy.adapters.llm.anthropic_client import AnthropicClient
from ai_proxy.adapters.llm.factory import create_llm_client
from ai_proxy.core.app_factory import create_app
from ai_proxy.core.config import LLMSettings
from ai_proxy.core.errors import LLMAppError, LLMTimeoutAppError
from ai_proxy.services.completion_service import CompletionService

VALID_BODY = {"systemPrompt": "You are a helpful assistant.", "userMessage": "Summarize this offer."}


def _client_for(service: CompletionService, **client_kwargs: Any) -> TestClient:
    app = create_app()
    app.state.completion_service = service
    return TestClient(app, **client_kwargs)


@pytest.fixture
def llm() -> AsyncMock:
    mock = AsyncMock()
    mock.generate_text.return_value = "Here is the summary."
    return mock


@pytest.fixture
def client(llm: AsyncMock) -> TestClient:
    return _client_for(CompletionService(llm=llm))


class TestSuccessfulCompletion:
    def test_returns_only_text(self, client: TestClient, llm: AsyncMock) -> None:
        resp = client.post("/api/completion", json=VALID_BODY)

        assert resp.status_code == 200
        assert resp.json() == {"text": "Here is the summary."}
        llm.generate_text.assert_awaited_once_with(
            VALID_BODY["systemPrompt"], VALID_BODY["userMessage"]
        )

    def test_client_supplied_model_is_ignored(self, client: TestClient, llm: AsyncMock) -> None:
        body = {**VALID_BODY, "model": "some-expensive-model", "max_tokens": 100000}

        resp = client.post("/api/completion", json=body)

        assert resp.status_code == 200
        llm.generate_text.assert_awaited_once_with(
            VALID_BODY["systemPrompt"], VALID_BODY["userMessage"]
        )

    def test_response_carries_request_id(self, client: TestClient) -> None:
        resp = client.post(
            "/api/completion", json=VALID_BODY, headers={"X-Request-ID": "req-42"}
        )
        assert resp.headers["X-Request-ID"] == "req-42"


class TestInputValidation:
    @pytest.mark.parametrize(
        "body, code, message",
        [
            (
                {"userMessage": "hi"},
                "system_prompt_required",
                "systemPrompt is required and must be a string.",
            ),
            (
                {"systemPrompt": "", "userMessage": "hi"},
                "system_prompt_required",
                "systemPrompt is required and must be a string.",
            ),
            (
                {"systemPrompt": "sys"},
                "user_message_required",
                "userMessage is required and must be a string.",
            ),
            (
                {"systemPrompt": "x" * 4001, "userMessage": "hi"},
                "system_prompt_too_long",
                "systemPrompt exceeds maximum length of 4000 characters.",
            ),
            (
                {"systemPrompt": "sys", "userMessage": "y" * 4001},
                "user_message_too_long",
                "userMessage exceeds maximum length of 4000 characters.",
            ),
        ],
    )
    def test_invalid_fields_return_400(
        self, client: TestClient, llm: AsyncMock, body: dict, code: str, message: str
    ) -> None:
        resp = client.post("/api/completion", json=body)

        assert resp.status_code == 400
        error = resp.json()["error"]
        assert error["code"] == code
        assert error["message"] == message
        assert "request_id" in error
        llm.generate_text.assert_not_awaited()

    def test_fields_at_max_length_are_accepted(self, client: TestClient) -> None:
        body = {"systemPrompt": "x" * 4000, "userMessage": "y" * 4000}
        assert client.post("/api/completion", json=body).status_code == 200

    def test_system_prompt_checked_before_user_message(self, client: TestClient) -> None:
        resp = client.post("/api/completion", json={})
        assert resp.json()["error"]["code"] == "system_prompt_required"

    @pytest.mark.parametrize(
        "body, code, message",
        [
            (
                {"systemPrompt": 123, "userMessage": "hi"},
                "system_prompt_required",
                "systemPrompt is required and must be a string.",
            ),
            (
                {"systemPrompt": "sys", "userMessage": {"text": "hi"}},
                "user_message_required",
                "userMessage is required and must be a string.",
            ),
            (
                {"systemPrompt": ["a"], "userMessage": 42},
                "system_prompt_required",
                "systemPrompt is required and must be a string.",
            ),
        ],
    )
    def test_non_string_fields_get_field_specific_errors(
        self, client: TestClient, llm: AsyncMock, body: dict, code: str, message: str
    ) -> None:
        resp = client.post("/api/completion", json=body)

        assert resp.status_code == 400
        error = resp.json()["error"]
        assert error["code"] == code
        assert error["message"] == message
        llm.generate_text.assert_not_awaited()

    def test_non_json_body_returns_400(self, client: TestClient) -> None:
        resp = client.post(
            "/api/completion",
            content=b"not json",
            headers={"Content-Type": "application/json"},
        )

        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "invalid_request"

    def test_non_object_json_body_returns_invalid_request(self, client: TestClient) -> None:
        resp = client.post("/api/completion", json=["systemPrompt", "userMessage"])

        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "invalid_request"

    def test_invalid_request_does_not_echo_input(self, client: TestClient) -> None:
        resp = client.post(
            "/api/completion", json={"systemPrompt": ["secret-prompt"], "userMessage": "hi"}
        )
        assert "secret-prompt" not in resp.text


class TestUpstreamErrors:
    @pytest.mark.parametrize(
        "error, status_code, code",
        [
            (LLMTimeoutAppError(code="upstream_timeout", message="Request timed out. Please try again."), 504, "upstream_timeout"),
            (LLMAppError(code="upstream_busy", message="busy"), 502, "upstream_busy"),
            (LLMAppError(code="upstream_error", message="error"), 502, "upstream_error"),
            (LLMAppError(code="upstream_bad_response", message="bad"), 502, "upstream_bad_response"),
        ],
    )
    def test_upstream_failures_are_normalized(
        self, client: TestClient, llm: AsyncMock, error: LLMAppError, status_code: int, code: str
    ) -> None:
        llm.generate_text.side_effect = error

        resp = client.post("/api/completion", json=VALID_BODY)

        assert resp.status_code == status_code
        assert resp.json()["error"]["code"] == code

    def test_unexpected_error_returns_generic_500(self, llm: AsyncMock) -> None:
        llm.generate_text.side_effect = RuntimeError("connection reset by peer")
        client = _client_for(CompletionService(llm=llm), raise_server_exceptions=False)

        resp = client.post("/api/completion", json=VALID_BODY, headers={"X-Request-ID": "rid-1"})

        assert resp.status_code == 500
        error = resp.json()["error"]
        assert error["code"] == "internal_server_error"
        assert error["request_id"] == "rid-1"
        assert resp.headers["X-Request-ID"] == "rid-1"
        assert "connection reset" not in resp.text

    def test_network_error_500_is_readable_cross_origin(self, llm: AsyncMock) -> None:
        request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
        llm.generate_text.side_effect = httpx.ConnectError("connection refused", request=request)
        client = _client_for(CompletionService(llm=llm))

        resp = client.post(
            "/api/completion",
            json=VALID_BODY,
            headers={"X-Request-ID": "rid-2", "Origin": "https://app.example.com"},
        )

        assert resp.status_code == 500
        assert resp.json()["error"]["request_id"] == "rid-2"
        assert resp.headers["X-Request-ID"] == "rid-2"
        assert resp.headers["access-control-allow-origin"] == "*"
        assert resp.headers["X-RateLimit-Remaining"] == "9"

    def test_missing_provider_key_returns_configuration_error(self) -> None:
        service = CompletionService(
            client_factory=lambda: create_llm_client(LLMSettings(api_key=None))
        )
        client = _client_for(service)

        resp = client.post("/api/completion", json=VALID_BODY)

        assert resp.status_code == 500
        error = resp.json()["error"]
        assert error["code"] == "llm_missing_api_key"
        assert error["message"] == "Server configuration error."
        assert "details" not in error
        assert "LLM_API_KEY" not in resp.text

    def test_validation_runs_before_configuration_check(self) -> None:
        factory_calls = []

        def _factory():
            factory_calls.append(1)
            return create_llm_client(LLMSettings(api_key=None))

        client = _client_for(CompletionService(client_factory=_factory))

        resp = client.post("/api/completion", json={"userMessage": "hi"})

        assert resp.status_code == 400
        assert factory_calls == []


class TestAnthropicWireThroughProxy:
    """End-to-end through the endpoint with the real Anthropic adapter."""

    def test_pinned_model_and_secret_key_stay_server_side(self) -> None:
        seen: dict[str, Any] = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["headers"] = request.headers
            seen["body"] = json.loads(request.content)
            return httpx.Response(
                200,
                json={
                    "id": "msg_123",
                    "model": "claude-3-5-haiku-20241022",
                    "content": [{"type": "text", "text": "Proxied reply"}],
                    "usage": {"input_tokens": 10, "output_tokens": 3},
                },
            )

        llm = AnthropicClient(
            api_key="sk-server-only",
            model="claude-3-5-haiku-20241022",
            transport=httpx.MockTransport(handler),
        )
        client = _client_for(CompletionService(llm=llm))

        resp = client.post("/api/completion", json={**VALID_BODY, "model": "other-model"})

        assert resp.status_code == 200
        assert resp.json() == {"text": "Proxied reply"}
        assert "sk-server-only" not in resp.text
        assert "usage" not in resp.json()
        assert seen["headers"]["x-api-key"] == "sk-server-only"
        assert seen["body"]["model"] == "claude-3-5-haiku-20241022"

    def test_provider_error_body_is_not_forwarded(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                500,
                json={"type": "error", "error": {"type": "api_error", "message": "internal shard 7 down"}},
            )

        llm = AnthropicClient(api_key="k", model="m", transport=httpx.MockTransport(handler))
        client = _client_for(CompletionService(llm=llm))

        resp = client.post("/api/completion", json=VALID_BODY)

        assert resp.status_code == 502
        assert resp.json()["error"]["message"] == "The AI service returned an error. Please try again."
        assert "shard" not in resp.text


class TestMethodsAndCors:
    def test_get_is_not_allowed(self, client: TestClient) -> None:
        assert client.get("/api/completion").status_code == 405

    def test_preflight_is_answered(self, client: TestClient) -> None:
        resp = client.options(
            "/api/completion",
            headers={
                "Origin": "https://example.github.io",
                "Access-Control-Request-Method": "POST",
                "Access-Control-Request-Headers": "Content-Type",
            },
        )

        assert resp.status_code == 200
        assert resp.headers["access-control-allow-origin"] == "*"
        assert "POST" in resp.headers["access-control-allow-methods"]

    def test_cors_headers_on_simple_request(self, client: TestClient) -> None:
        resp = client.post(
            "/api/completion", json=VALID_BODY, headers={"Origin": "https://example.github.io"}
        )

        assert resp.headers["access-control-allow-origin"] == "*"
        assert "X-RateLimit-Remaining" in resp.headers["access-control-expose-headers"]


def test_health_reports_upstream_configuration() -> None:
    client = TestClient(create_app())
    resp = client.get("/health")

    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "ok"
    assert body["provider"] == "anthropic"
    assert body["upstream_configured"] is True
    assert "test-upstream-key" not in resp.text
