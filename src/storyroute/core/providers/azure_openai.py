from __future__ import annotations

import os
from collections.abc import Mapping

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_fixed

from storyroute.core.providers.base import ProviderAdapter, ProviderRequest, ProviderResponse
from storyroute.core.runtime.errors import TransportFailure


class AzureOpenAIAdapter(ProviderAdapter):
    name = "azure_openai"

    def __init__(
        self,
        endpoint: str | None,
        api_key_env: str | None,
        api_version: str = "2024-12-01-preview",
        deployments: Mapping[str, str] | None = None,
        timeout_seconds: float = 180.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.endpoint = (endpoint or "").strip().rstrip("/")
        self.api_key_env = api_key_env
        self.api_version = api_version
        self.deployments = dict(deployments or {})
        self.timeout_seconds = timeout_seconds
        self.transport = transport

    def _api_key(self) -> str:
        return os.getenv(self.api_key_env or "", "").strip()

    def _headers(self) -> dict[str, str]:
        return {"api-key": self._api_key(), "Content-Type": "application/json"}

    def deployment_for(self, model: str) -> str:
        return self.deployments.get(model, model)

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
            resp = client.post(url, params={"api-version": self.api_version}, json=payload, headers=self._headers())
            resp.raise_for_status()
            return resp

    def generate(self, request: ProviderRequest) -> ProviderResponse:
        model = request.model
        if not self._api_key():
            raise TransportFailure(self.name, model, f"api key missing from env {self.api_key_env}")
        if not self.endpoint.startswith("http"):
            raise TransportFailure(self.name, model, "endpoint is not configured")

        messages = []
        if request.system_prompt:
            messages.append({"role": "system", "content": request.system_prompt})
        messages.append({"role": "user", "content": request.prompt})
        payload = {
            "messages": messages,
            "temperature": request.temperature,
            "max_tokens": request.max_output_tokens,
        }
        url = f"{self.endpoint}/openai/deployments/{self.deployment_for(model)}/chat/completions"

        try:
            body = self._post(url, payload).json()
        except httpx.HTTPStatusError as exc:
            raise TransportFailure(self.name, model, exc.response.text[:300], status_code=exc.response.status_code) from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise TransportFailure(self.name, model, str(exc) or exc.__class__.__name__) from exc

        choices = body.get("choices") or [{}]
        text = (choices[0].get("message") or {}).get("content") or ""
        usage = body.get("usage") or {}
        return ProviderResponse(
            provider=self.name,
            model=model,
            output_text=text,
            raw=body,
            prompt_tokens=usage.get("prompt_tokens"),
        )

    def health(self) -> bool:
        if not self._api_key() or not self.endpoint.startswith("http"):
            return False
        try:
            with self._client(5.0) as client:
                response = client.get(
                    f"{self.endpoint}/openai/models",
                    params={"api-version": self.api_version},
                    headers=self._headers(),
                )
                return response.status_code < 400
        except httpx.HTTPError:
            return False
