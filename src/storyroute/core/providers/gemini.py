from __future__ import annotations

import os

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_fixed

from storyroute.core.providers.base import ProviderAdapter, ProviderRequest, ProviderResponse
from storyroute.core.runtime.errors import TransportFailure


class GeminiAdapter(ProviderAdapter):
    name = "gemini"

    def __init__(
        self,
        api_key_env: str | None,
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        timeout_seconds: float = 180.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.api_key_env = api_key_env
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.transport = transport

    def _api_key(self) -> str:
        return os.getenv(self.api_key_env or "", "").strip()

    def _headers(self) -> dict[str, str]:
        return {"x-goog-api-key": self._api_key(), "Content-Type": "application/json"}

    def _client(self, timeout: float) -> httpx.Client:
        return httpx.Client(timeout=timeout, transport=self.transport)

    @retry(
        retry=retry_if_exception_type(httpx.TransportError),
        stop=stop_after_attempt(2),
        wait=wait_fixed(0.2),
        reraise=True,
    )
    def _post(self, url: str, payload: dict) -> httpx.Response:
        with self._client(self.timeout_seconds) as client:
            resp = client.post(url, json=payload, headers=self._headers())
            resp.raise_for_status()
            return resp

    def generate(self, request: ProviderRequest) -> ProviderResponse:
        model = request.model
        if not self._api_key():
            raise TransportFailure(self.name, model, f"api key missing from env {self.api_key_env}")

        payload: dict = {
            "contents": [{"role": "user", "parts": [{"text": request.prompt}]}],
            "generationConfig": {
                "temperature": request.temperature,
                "maxOutputTokens": request.max_output_tokens,
            },
        }
        if request.system_prompt:
            payload["systemInstruction"] = {"parts": [{"text": request.system_prompt}]}

        try:
            body = self._post(f"{self.base_url}/models/{model}:generateContent", payload).json()
        except httpx.HTTPStatusError as exc:
            raise TransportFailure(self.name, model, exc.response.text[:300], status_code=exc.response.status_code) from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise TransportFailure(self.name, model, str(exc) or exc.__class__.__name__) from exc

        candidates = body.get("candidates") or [{}]
        parts = (candidates[0].get("content") or {}).get("parts") or []
        text = "".join(part.get("text", "") for part in parts if isinstance(part, dict))
        usage = body.get("usageMetadata") or {}
        return ProviderResponse(
            provider=self.name,
            model=model,
            output_text=text,
            raw=body,
            prompt_tokens=usage.get("promptTokenCount"),
        )

    def health(self) -> bool:
        if not self._api_key():
            return False
        try:
            with self._client(5.0) as client:
                response = client.get(f"{self.base_url}/models", headers=self._headers())
                return response.status_code < 400
        except httpx.HTTPError:
            return False
