from __future__ import annotations

from collections.abc import Mapping
from time import perf_counter

from pydantic import BaseModel

from storyroute.core.config.schema import AppConfig
from storyroute.core.providers.base import ProviderAdapter
from storyroute.core.routing.registry import ProviderId


class ProviderCheckResult(BaseModel):
    provider: str
    enabled: bool
    ok: bool
    latency_ms: float | None = None
    error: str | None = None


def _enabled(cfg: AppConfig, provider: ProviderId) -> bool:
    if provider is ProviderId.AZURE_OPENAI:
        return cfg.providers.azure_openai.enabled
    return cfg.providers.gemini.enabled


def check_configured_providers(
    cfg: AppConfig,
    adapters: Mapping[ProviderId, ProviderAdapter],
    skip_tests: bool = False,
) -> dict[str, ProviderCheckResult]:
    results: dict[str, ProviderCheckResult] = {}
    for provider in ProviderId:
        name = provider.value
        adapter = adapters.get(provider)
        if not _enabled(cfg, provider):
            results[name] = ProviderCheckResult(provider=name, enabled=False, ok=False, error="disabled")
        elif adapter is None:
            results[name] = ProviderCheckResult(provider=name, enabled=True, ok=False, error="no adapter")
        elif skip_tests:
            results[name] = ProviderCheckResult(provider=name, enabled=True, ok=False, error="skipped")
        else:
            started = perf_counter()
            try:
                ok = adapter.health()
                error = None if ok else "health check failed (credentials or endpoint)"
            except Exception as exc:  # noqa: BLE001
                ok, error = False, str(exc)
            results[name] = ProviderCheckResult(
                provider=name,
                enabled=True,
                ok=ok,
                latency_ms=round((perf_counter() - started) * 1000, 2),
                error=error,
            )
    return results
