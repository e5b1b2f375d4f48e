from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from storyroute.core.config.loader import load_app_config
from storyroute.core.config.schema import AppConfig
from storyroute.core.orchestrator.orchestrator import GenerationDefaults, GenerationOrchestrator
from storyroute.core.providers.base import ProviderAdapter
from storyroute.core.providers.executors import ProviderExecutor, build_executors
from storyroute.core.routing.registry import EngineRegistry, ProviderFamilies, ProviderId
from storyroute.core.routing.selector import ProviderSelector
from storyroute.core.telemetry.logging import configure_logging, get_logger


@dataclass(slots=True)
class GenerationRuntime:
    cfg: AppConfig
    registry: EngineRegistry
    selector: ProviderSelector
    executors: dict[ProviderId, ProviderExecutor]
    orchestrator: GenerationOrchestrator

    @property
    def adapters(self) -> dict[ProviderId, ProviderAdapter]:
        return {provider: executor.adapter for provider, executor in self.executors.items()}


def build_generation_runtime(
    config_path: str | Path | None = None,
    *,
    cfg: AppConfig | None = None,
    adapters: Mapping[ProviderId, ProviderAdapter] | None = None,
) -> GenerationRuntime:
    cfg = cfg or load_app_config(instance_path=config_path)
    configure_logging(cfg.telemetry.log_level, cfg.telemetry.json_logs, service=cfg.instance.name)
    logger = get_logger("storyroute.runtime")

    registry = EngineRegistry.from_config(cfg, ProviderFamilies.from_config(cfg))
    selector = ProviderSelector(
        registry,
        default_provider=ProviderId(cfg.routing.unknown_engine_provider),
        logger=get_logger("storyroute.selector"),
    )
    executors = build_executors(cfg, adapters=adapters)
    orchestrator = GenerationOrchestrator(
        selector,
        executors,
        defaults=GenerationDefaults(
            system_prompt=cfg.generation.default_system_prompt,
            temperature=cfg.generation.default_temperature,
            max_tokens=cfg.generation.default_max_tokens,
        ),
        max_concurrency=cfg.runtime.max_concurrency,
        logger=get_logger("storyroute.orchestrator"),
    )
    logger.info(
        "runtime_ready",
        instance=cfg.instance.name,
        environment=cfg.environment,
        engines=len(registry),
        unknown_engine_provider=cfg.routing.unknown_engine_provider,
    )
    return GenerationRuntime(
        cfg=cfg,
        registry=registry,
        selector=selector,
        executors=executors,
        orchestrator=orchestrator,
    )
