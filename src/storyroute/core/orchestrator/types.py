from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from storyroute.core.orchestrator.presets import optimal_settings
from storyroute.core.routing.registry import ProviderId


@dataclass(slots=True)
class GenerationRequest:
    prompt: str
    system_prompt: str | None = None
    temperature: float | None = None
    max_tokens: int | None = None
    engine_id: str | None = None
    forced_provider: ProviderId | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not isinstance(self.prompt, str) or not self.prompt.strip():
            raise ValueError("prompt must be a non-empty string")
        if self.forced_provider is not None and not isinstance(self.forced_provider, ProviderId):
            self.forced_provider = ProviderId(self.forced_provider)
        if self.engine_id is not None:
            self.engine_id = self.engine_id.strip() or None

    @classmethod
    def for_content(cls, prompt: str, content_type: str, **kwargs: Any) -> GenerationRequest:
        temperature, max_tokens = optimal_settings(content_type)
        kwargs.setdefault("temperature", temperature)
        kwargs.setdefault("max_tokens", max_tokens)
        return cls(prompt=prompt, **kwargs)


@dataclass(slots=True, frozen=True)
class GenerationMetadata:
    content_length: int
    completion_time_ms: int
    prompt_token_count: int | None = None


@dataclass(slots=True, frozen=True)
class GenerationResult:
    content: str
    provider: ProviderId
    model: str
    metadata: GenerationMetadata

    def __post_init__(self) -> None:
        if not self.content or self.content != self.content.strip():
            raise ValueError("content must be non-empty and trimmed")
