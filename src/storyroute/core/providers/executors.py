from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass

from storyroute.core.config.schema import AppConfig
from storyroute.core.orchestrator.types import GenerationMetadata, GenerationResult
from storyroute.core.providers.azure_openai import AzureOpenAIAdapter
from storyroute.core.providers.base import ProviderAdapter, ProviderRequest, ProviderResponse
from storyroute.core.providers.gemini import GeminiAdapter
from storyroute.core.routing.registry import ProviderId
from storyroute.core.runtime.errors import EmptyContent, ErrorInfo, GenerationError, TransportFailure
from storyroute.core.runtime.retries import RetryPolicy, walk_fallback_chain
from storyroute.core.telemetry.logging import get_logger

AttemptLogger = Callable[[ProviderId, str, int, str, ErrorInfo | None], None]


@dataclass(slots=True, frozen=True)
class ParameterCeiling:
    max_temperature: float
    max_output_tokens: int

    def clamp(self, temperature: float, max_tokens: int) -> tuple[float, int]:
        clamped_temperature = min(max(float(temperature), 0.0), self.max_temperature)
        clamped_tokens = min(max(int(max_tokens), 1), self.max_output_tokens)
        return clamped_temperature, clamped_tokens


class ProviderExecutor(ABC):
    """Runs one request against a single provider, walking its model chain."""

    provider: ProviderId
    passthrough_single_failure = False

    def __init__(
        self,
        adapter: ProviderAdapter,
        ceiling: ParameterCeiling,
        *,
        retry_policy: RetryPolicy | None = None,
        enabled: bool = True,
        logger=None,
    ) -> None:
        self.adapter = adapter
        self.enabled = enabled
        self.ceiling = ceiling
        self.retry_policy = retry_policy or RetryPolicy()
        self.logger = logger or get_logger(f"storyroute.executor.{self.provider.value}")

    @abstractmethod
    def model_chain(self, model: str | None = None) -> list[str]:
        raise NotImplementedError

    def _attempt(self, request: ProviderRequest) -> ProviderResponse:
        try:
            response = self.adapter.generate(request)
        except GenerationError:
            raise
        except Exception as exc:  # noqa: BLE001
            raise TransportFailure(self.provider.value, request.model, str(exc) or exc.__class__.__name__) from exc
        if not (response.output_text or "").strip():
            raise EmptyContent(self.provider.value, request.model)
        return response

    def execute(
        self,
        prompt: str,
        system_prompt: str | None,
        temperature: float,
        max_tokens: int,
        model: str | None = None,
        *,
        on_attempt: AttemptLogger | None = None,
    ) -> GenerationResult:
        temperature, max_tokens = self.ceiling.clamp(temperature, max_tokens)
        chain = self.model_chain(model)
        if not self.enabled:
            raise TransportFailure(self.provider.value, chain[0], "provider disabled by configuration")

        def _call(candidate: str) -> ProviderResponse:
            return self._attempt(
                ProviderRequest(
                    model=candidate,
                    prompt=prompt,
                    system_prompt=system_prompt,
                    temperature=temperature,
                    max_output_tokens=max_tokens,
                )
            )

        def _hook(candidate: str, attempt: int, status: str, info: ErrorInfo | None) -> None:
            if info is not None:
                self.logger.warning(
                    "model_attempt_failed",
                    provider=self.provider.value,
                    model=candidate,
                    attempt=attempt,
                    error_type=info.error_type,
                    retryable=info.retryable,
                    http_status=info.http_status,
                )
            if on_attempt:
                on_attempt(self.provider, candidate, attempt, status, info)

        used_model, response = walk_fallback_chain(
            chain,
            _call,
            provider=self.provider.value,
            policy=self.retry_policy,
            on_attempt=_hook,
            passthrough_single=self.passthrough_single_failure,
        )
        content = response.output_text.strip()
        return GenerationResult(
            content=content,
            provider=self.provider,
            model=used_model,
            metadata=GenerationMetadata(
                content_length=len(content),
                completion_time_ms=0,
                prompt_token_count=response.prompt_tokens,
            ),
        )


class AzureOpenAIExecutor(ProviderExecutor):
    """Single target model per call; a failure surfaces unchanged."""

    provider = ProviderId.AZURE_OPENAI
    passthrough_single_failure = True

    def __init__(self, adapter: ProviderAdapter, ceiling: ParameterCeiling, default_model: str, **kwargs) -> None:
        super().__init__(adapter, ceiling, **kwargs)
        self.default_model = default_model

    def model_chain(self, model: str | None = None) -> list[str]:
        return [model or self.default_model]


class GeminiExecutor(ProviderExecutor):
    provider = ProviderId.GEMINI

    def __init__(self, adapter: ProviderAdapter, ceiling: ParameterCeiling, chain: Sequence[str], **kwargs) -> None:
        super().__init__(adapter, ceiling, **kwargs)
        if not chain:
            raise ValueError("gemini fallback chain must name at least one model")
        self.chain = tuple(dict.fromkeys(chain))

    def model_chain(self, model: str | None = None) -> list[str]:
        ordered = [model] if model else []
        ordered.extend(m for m in self.chain if m != model)
        return ordered


def build_executors(
    cfg: AppConfig,
    *,
    adapters: Mapping[ProviderId, ProviderAdapter] | None = None,
    retry_policy: RetryPolicy | None = None,
) -> dict[ProviderId, ProviderExecutor]:
    adapters = dict(adapters or {})
    azure_cfg = cfg.providers.azure_openai
    gemini_cfg = cfg.providers.gemini
    policy = retry_policy or RetryPolicy(
        max_attempts=cfg.runtime.provider_retry_attempts,
        base_backoff_seconds=cfg.runtime.retry_backoff_seconds,
        jitter_seconds=cfg.runtime.retry_jitter_seconds,
    )

    azure_adapter = adapters.get(ProviderId.AZURE_OPENAI) or AzureOpenAIAdapter(
        endpoint=azure_cfg.endpoint,
        api_key_env=azure_cfg.api_key_env,
        api_version=azure_cfg.api_version,
        deployments=azure_cfg.deployments,
        timeout_seconds=azure_cfg.timeout_seconds,
    )
    gemini_adapter = adapters.get(ProviderId.GEMINI) or GeminiAdapter(
        api_key_env=gemini_cfg.api_key_env,
        base_url=gemini_cfg.base_url,
        timeout_seconds=gemini_cfg.timeout_seconds,
    )

    return {
        ProviderId.AZURE_OPENAI: AzureOpenAIExecutor(
            azure_adapter,
            ParameterCeiling(azure_cfg.max_temperature, azure_cfg.max_output_tokens),
            default_model=azure_cfg.default_model,
            retry_policy=policy,
            enabled=azure_cfg.enabled,
        ),
        ProviderId.GEMINI: GeminiExecutor(
            gemini_adapter,
            ParameterCeiling(gemini_cfg.max_temperature, gemini_cfg.max_output_tokens),
            chain=[gemini_cfg.default_model, *gemini_cfg.fallback_models],
            retry_policy=policy,
            enabled=gemini_cfg.enabled,
        ),
    }
