from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType

from storyroute.core.config.schema import AppConfig


class ProviderId(str, Enum):
    AZURE_OPENAI = "azure_openai"
    GEMINI = "gemini"

    def other(self) -> ProviderId:
        return ProviderId.GEMINI if self is ProviderId.AZURE_OPENAI else ProviderId.AZURE_OPENAI


CREATIVE_MODEL = "gemini-3-pro-preview"
ANALYTICAL_MODEL = "gpt-4.1"

_CREATIVE_ENGINES = (
    "character-engine-v2",
    "strategic-dialogue-engine",
    "world-building-engine",
    "hook-cliffhanger-engine-v2",
    "mystery-engine-v2",
    "comedy-timing-engine",
    "theme-integration-engine-v2",
    "engagement-engine-v2",
    "language-engine-v2",
    "interactive-choice-engine",
    "fractal-narrative-engine",
    "storyboard-engine-v2",
    "location-engine-v2",
    "sound-design-engine-v2",
)

_ANALYTICAL_ENGINES = (
    "premise-engine-v2",
    "serialized-continuity-engine-v2",
    "conflict-architecture-engine-v2",
    "production-engine-v2",
    "production-scheduling-engine",
    "directing-engine-v2",
    "cinematography-execution-engine",
    "performance-optimization-engine",
    "short-form-format-engine",
    "location-scouting-engine",
    "performance-coaching-engine",
)

DEFAULT_ENGINE_MODELS: Mapping[str, str] = MappingProxyType(
    {
        **{engine: CREATIVE_MODEL for engine in _CREATIVE_ENGINES},
        **{engine: ANALYTICAL_MODEL for engine in _ANALYTICAL_ENGINES},
    }
)


@dataclass(frozen=True, slots=True)
class ProviderFamilies:
    """Model-name prefixes that identify which provider serves a model."""

    prefixes: Mapping[ProviderId, tuple[str, ...]]

    @classmethod
    def from_config(cls, cfg: AppConfig) -> ProviderFamilies:
        return cls(
            prefixes=MappingProxyType(
                {
                    ProviderId.AZURE_OPENAI: tuple(p.lower() for p in cfg.providers.azure_openai.model_prefixes),
                    ProviderId.GEMINI: tuple(p.lower() for p in cfg.providers.gemini.model_prefixes),
                }
            )
        )

    def family_of(self, model: str) -> ProviderId | None:
        lowered = model.strip().lower()
        for provider, prefixes in self.prefixes.items():
            if any(lowered.startswith(prefix) for prefix in prefixes):
                return provider
        return None


@dataclass(frozen=True, slots=True)
class EngineRegistry:
    """Immutable engine id -> preferred model mapping, validated at build time."""

    families: ProviderFamilies
    engine_models: Mapping[str, str] = field(default_factory=dict)
    _providers: Mapping[str, ProviderId] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        providers: dict[str, ProviderId] = {}
        for engine_id, model in self.engine_models.items():
            provider = self.families.family_of(model)
            if provider is None:
                raise ValueError(f"engine {engine_id!r} maps to model {model!r} of no known provider family")
            providers[engine_id] = provider
        object.__setattr__(self, "engine_models", MappingProxyType(dict(self.engine_models)))
        object.__setattr__(self, "_providers", MappingProxyType(providers))

    @classmethod
    def from_config(cls, cfg: AppConfig, families: ProviderFamilies | None = None) -> EngineRegistry:
        models: dict[str, str] = dict(DEFAULT_ENGINE_MODELS) if cfg.routing.use_builtin_engines else {}
        models.update(cfg.routing.engines)
        return cls(families=families or ProviderFamilies.from_config(cfg), engine_models=models)

    def model_for(self, engine_id: str) -> str | None:
        return self.engine_models.get(engine_id)

    def provider_for(self, engine_id: str) -> ProviderId | None:
        return self._providers.get(engine_id)

    def items(self) -> list[tuple[str, str]]:
        return sorted(self.engine_models.items())

    def __contains__(self, engine_id: object) -> bool:
        return engine_id in self.engine_models

    def __len__(self) -> int:
        return len(self.engine_models)

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self.engine_models))
