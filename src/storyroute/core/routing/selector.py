from __future__ import annotations

from dataclasses import dataclass

from storyroute.core.orchestrator.types import GenerationRequest
from storyroute.core.routing.classifier import is_creative_task, match_engine_pattern
from storyroute.core.routing.registry import EngineRegistry, ProviderId
from storyroute.core.telemetry.logging import get_logger


@dataclass(slots=True, frozen=True)
class RouteDecision:
    provider: ProviderId
    model: str | None
    reason: str


class ProviderSelector:
    """Precedence: forced provider, registry, engine-id pattern, prompt classifier.

    An engine id that is neither registered nor matches a keyword pattern goes
    to ``default_provider`` and is logged as ``engine_unrecognized``.
    """

    def __init__(
        self,
        registry: EngineRegistry,
        *,
        default_provider: ProviderId = ProviderId.GEMINI,
        logger=None,
    ) -> None:
        self.registry = registry
        self.default_provider = ProviderId(default_provider)
        self.logger = logger or get_logger("storyroute.selector")

    def decide(self, request: GenerationRequest) -> RouteDecision:
        if request.forced_provider is not None:
            return RouteDecision(provider=request.forced_provider, model=None, reason="forced")

        engine_id = request.engine_id
        if engine_id:
            provider = self.registry.provider_for(engine_id)
            if provider is not None:
                return RouteDecision(provider=provider, model=self.registry.model_for(engine_id), reason="registry")

            provider = match_engine_pattern(engine_id)
            if provider is not None:
                return RouteDecision(provider=provider, model=None, reason="engine_pattern")

            self.logger.warning(
                "engine_unrecognized",
                engine_id=engine_id,
                default_provider=self.default_provider.value,
            )
            return RouteDecision(provider=self.default_provider, model=None, reason="engine_default")

        provider = ProviderId.GEMINI if is_creative_task(request.prompt) else ProviderId.AZURE_OPENAI
        return RouteDecision(provider=provider, model=None, reason="prompt_classifier")

    def select_provider(self, request: GenerationRequest) -> ProviderId:
        return self.decide(request).provider
