from __future__ import annotations

import json

import httpx
import pytest

from storyroute.core.providers.azure_openai import AzureOpenAIAdapter
from storyroute.core.providers.base import ProviderRequest
from storyroute.core.providers.gemini import GeminiAdapter
from storyroute.core.runtime.errors import TransportFailure


def _azure(handler, **kwargs) -> AzureOpenAIAdapter:
    return AzureOpenAIAdapter(
        endpoint="https://example.openai.azure.com/",
        api_key_env="TEST_AZURE_KEY",
        deployments={"gpt-4o": "gpt-4o-2024-11-20"},
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


def _gemini(handler) -> GeminiAdapter:
    return GeminiAdapter(api_key_env="TEST_GEMINI_KEY", transport=httpx.MockTransport(handler))


def test_azure_request_shape_and_response_parsing(monkeypatch):
    monkeypatch.setenv("TEST_AZURE_KEY", "azure-secret")
    seen: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = request.url
        seen["headers"] = request.headers
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json={"choices": [{"message": {"content": "Act one."}}], "usage": {"prompt_tokens": 42}},
        )

    response = _azure(handler).generate(
        ProviderRequest(model="gpt-4o", prompt="outline", system_prompt="be brief", temperature=0.4, max_output_tokens=300)
    )

    assert response.output_text == "Act one."
    assert response.prompt_tokens == 42
    assert response.model == "gpt-4o"
    assert seen["url"].path == "/openai/deployments/gpt-4o-2024-11-20/chat/completions"
    assert seen["url"].params["api-version"] == "2024-12-01-preview"
    assert seen["headers"]["api-key"] == "azure-secret"
    assert seen["body"]["messages"] == [
        {"role": "system", "content": "be brief"},
        {"role": "user", "content": "outline"},
    ]
    assert seen["body"]["temperature"] == 0.4
    assert seen["body"]["max_tokens"] == 300


def test_azure_unmapped_model_is_used_as_deployment(monkeypatch):
    monkeypatch.setenv("TEST_AZURE_KEY", "azure-secret")
    paths: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        paths.append(request.url.path)
        return httpx.Response(200, json={"choices": [{"message": {"content": "ok"}}]})

    _azure(handler).generate(ProviderRequest(model="gpt-4.1", prompt="p"))
    assert paths == ["/openai/deployments/gpt-4.1/chat/completions"]


def test_azure_status_error_preserves_status(monkeypatch):
    monkeypatch.setenv("TEST_AZURE_KEY", "azure-secret")

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(429, text="rate limit exceeded")

    with pytest.raises(TransportFailure) as info:
        _azure(handler).generate(ProviderRequest(model="gpt-4.1", prompt="p"))
    assert info.value.status_code == 429
    assert "rate limit exceeded" in str(info.value)


def test_azure_missing_key_fails_before_any_request(monkeypatch):
    monkeypatch.delenv("TEST_AZURE_KEY", raising=False)
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json={})

    adapter = _azure(handler)
    with pytest.raises(TransportFailure, match="api key missing"):
        adapter.generate(ProviderRequest(model="gpt-4.1", prompt="p"))
    assert calls == []
    assert adapter.health() is False


def test_gemini_request_shape_and_response_parsing(monkeypatch):
    monkeypatch.setenv("TEST_GEMINI_KEY", "gemini-secret")
    seen: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["key"] = request.headers["x-goog-api-key"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json={
                "candidates": [{"content": {"parts": [{"text": "INT. "}, {"text": "DINER - NIGHT"}]}}],
                "usageMetadata": {"promptTokenCount": 11},
            },
        )

    response = _gemini(handler).generate(
        ProviderRequest(model="gemini-2.5-pro", prompt="open the scene", system_prompt="persona", temperature=0.9, max_output_tokens=800)
    )

    assert response.output_text == "INT. DINER - NIGHT"
    assert response.prompt_tokens == 11
    assert seen["url"].endswith("/v1beta/models/gemini-2.5-pro:generateContent")
    assert seen["key"] == "gemini-secret"
    assert seen["body"]["systemInstruction"] == {"parts": [{"text": "persona"}]}
    assert seen["body"]["contents"][0]["parts"][0]["text"] == "open the scene"
    assert seen["body"]["generationConfig"] == {"temperature": 0.9, "maxOutputTokens": 800}


def test_gemini_blocked_response_yields_empty_text(monkeypatch):
    monkeypatch.setenv("TEST_GEMINI_KEY", "gemini-secret")

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"promptFeedback": {"blockReason": "SAFETY"}})

    response = _gemini(handler).generate(ProviderRequest(model="gemini-2.5-pro", prompt="p"))
    assert response.output_text == ""


def test_gemini_connection_errors_are_retried_then_wrapped(monkeypatch):
    monkeypatch.setenv("TEST_GEMINI_KEY", "gemini-secret")
    attempts = {"n": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        attempts["n"] += 1
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(TransportFailure, match="connection refused"):
        _gemini(handler).generate(ProviderRequest(model="gemini-2.5-pro", prompt="p"))
    assert attempts["n"] == 2


def test_gemini_health_uses_models_endpoint(monkeypatch):
    monkeypatch.setenv("TEST_GEMINI_KEY", "gemini-secret")

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path.endswith("/models")
        return httpx.Response(200, json={"models": []})

    assert _gemini(handler).health() is True
