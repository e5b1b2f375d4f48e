from __future__ import annotations

import asyncio
import threading
import uuid
from collections.abc import Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, replace
from time import perf_counter
from typing import TYPE_CHECKING

from storyroute.core.config.schema import DEFAULT_SYSTEM_PROMPT
from storyroute.core.orchestrator.types import GenerationRequest, GenerationResult
from storyroute.core.routing.registry import ProviderId
from storyroute.core.routing.selector import ProviderSelector, RouteDecision
from storyroute.core.runtime.errors import ErrorInfo, GenerationError, TotalFailure, compact_error_summary
from storyroute.core.telemetry.logging import get_logger
from storyroute.core.telemetry.tracing import GenerationTrace, prompt_preview, trace_event

if TYPE_CHECKING:
    from storyroute.core.providers.executors import ProviderExecutor


@dataclass(slots=True, frozen=True)
class GenerationDefaults:
    system_prompt: str = DEFAULT_SYSTEM_PROMPT
    temperature: float = 0.85
    max_tokens: int = 2000


class GenerationOrchestrator:
    """Selects a provider, runs it, and switches provider at most once.

    The selected executor gets the registry model hint; the fallback executor
    always starts from its own default chain. Only ``TotalFailure`` escapes
    ``generate``. At most ``max_concurrency`` generations run at once across
    ``generate``, ``agenerate`` and ``generate_many``.
    """

    def __init__(
        self,
        selector: ProviderSelector,
        executors: Mapping[ProviderId, ProviderExecutor],
        *,
        defaults: GenerationDefaults | None = None,
        max_concurrency: int = 8,
        logger=None,
    ) -> None:
        missing = [p.value for p in ProviderId if p not in executors]
        if missing:
            raise ValueError(f"no executor registered for: {', '.join(missing)}")
        self.selector = selector
        self.executors = dict(executors)
        self.defaults = defaults or GenerationDefaults()
        self.max_concurrency = max(1, max_concurrency)
        self._slots = threading.BoundedSemaphore(self.max_concurrency)
        self._pool = ThreadPoolExecutor(max_workers=self.max_concurrency, thread_name_prefix="storyroute-gen")
        self.logger = logger or get_logger("storyroute.orchestrator")

    def route(self, request: GenerationRequest) -> RouteDecision:
        return self.selector.decide(request)

    def _run(
        self,
        provider: ProviderId,
        request: GenerationRequest,
        model: str | None,
        trace: GenerationTrace,
    ) -> GenerationResult:
        def _on_attempt(p: ProviderId, candidate: str, attempt: int, status: str, info: ErrorInfo | None) -> None:
            extra = {"model": candidate, "attempt": attempt}
            if info is not None:
                extra.update({"error_type": info.error_type, "http_status": info.http_status})
            trace_event(self.logger, replace(trace, provider=p.value), event="provider_attempt", status=status, extra=extra)

        executor = self.executors[provider]
        return executor.execute(
            request.prompt,
            request.system_prompt or self.defaults.system_prompt,
            self.defaults.temperature if request.temperature is None else request.temperature,
            self.defaults.max_tokens if request.max_tokens is None else request.max_tokens,
            model=model,
            on_attempt=_on_attempt,
        )

    def generate(self, request: GenerationRequest) -> GenerationResult:
        started = perf_counter()
        with self._slots:
            return self._generate(request, started)

    def _generate(self, request: GenerationRequest, started: float) -> GenerationResult:
        decision = self.selector.decide(request)
        trace = GenerationTrace(
            request_id=uuid.uuid4().hex,
            engine_id=request.engine_id or "",
            provider=decision.provider.value,
            phase="primary",
        )
        trace_event(
            self.logger,
            trace,
            event="route_selected",
            status="ok",
            extra={
                "reason": decision.reason,
                "model_hint": decision.model,
                "prompt_chars": len(request.prompt),
                "prompt_preview": prompt_preview(request.prompt),
            },
        )

        errors: dict[ProviderId, Exception] = {}
        attempts = [(decision.provider, decision.model, "primary"), (decision.provider.other(), None, "fallback")]
        for provider, model, phase in attempts:
            phase_trace = replace(trace, provider=provider.value, phase=phase)
            if errors:
                trace_event(
                    self.logger,
                    phase_trace,
                    event="provider_fallback",
                    status="switching",
                    extra={"failed_provider": decision.provider.value},
                )
            try:
                result = self._run(provider, request, model, phase_trace)
            except GenerationError as exc:
                errors[provider] = exc
                trace_event(
                    self.logger,
                    phase_trace,
                    event="provider_failed",
                    status="error",
                    extra={"error": compact_error_summary(exc)},
                )
                continue

            elapsed_ms = max(0, int(round((perf_counter() - started) * 1000)))
            result = replace(result, metadata=replace(result.metadata, completion_time_ms=elapsed_ms))
            trace_event(
                self.logger,
                phase_trace,
                event="generation_complete",
                status="ok",
                extra={
                    "model": result.model,
                    "content_length": result.metadata.content_length,
                    "completion_time_ms": elapsed_ms,
                },
            )
            return result

        failure = TotalFailure(errors)
        trace_event(
            self.logger,
            trace,
            event="generation_failed",
            status="error",
            extra={"completion_time_ms": int(round((perf_counter() - started) * 1000)), "error": str(failure)},
        )
        raise failure

    async def agenerate(self, request: GenerationRequest) -> GenerationResult:
        # Cancelling the awaiting task abandons the worker thread's result.
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._pool, self.generate, request)

    def generate_many(self, requests: Sequence[GenerationRequest]) -> list[GenerationResult | GenerationError]:
        if not requests:
            return []

        def _safe(request: GenerationRequest) -> GenerationResult | GenerationError:
            try:
                return self.generate(request)
            except GenerationError as exc:
                return exc

        return list(self._pool.map(_safe, requests))

    def close(self) -> None:
        self._pool.shutdown(wait=False, cancel_futures=True)
