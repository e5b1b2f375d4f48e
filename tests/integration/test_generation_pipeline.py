from __future__ import annotations

import asyncio

import pytest

from storyroute.apps.runtime_support import build_generation_runtime
from storyroute.core.config.schema import AppConfig
from storyroute.core.orchestrator.types import GenerationRequest, GenerationResult
from storyroute.core.providers.base import ProviderAdapter, ProviderRequest, ProviderResponse
from storyroute.core.routing.registry import ProviderId
from storyroute.core.runtime.errors import TotalFailure, TransportFailure
from storyroute.core.telemetry.tracing import recent_traces


class ModelScriptAdapter(ProviderAdapter):
    def __init__(self, name: str, replies: dict[str, str]):
        self.name = name
        self.replies = replies
        self.seen: list[ProviderRequest] = []

    def generate(self, request: ProviderRequest) -> ProviderResponse:
        self.seen.append(request)
        if request.model not in self.replies:
            raise TransportFailure(self.name, request.model, "model overloaded", status_code=503)
        return ProviderResponse(provider=self.name, model=request.model, output_text=self.replies[request.model], raw={})

    def health(self) -> bool:
        return True


def _runtime(azure: dict[str, str], gemini: dict[str, str], cfg: AppConfig | None = None):
    azure_adapter = ModelScriptAdapter("azure_openai", azure)
    gemini_adapter = ModelScriptAdapter("gemini", gemini)
    runtime = build_generation_runtime(
        cfg=cfg or AppConfig(),
        adapters={ProviderId.AZURE_OPENAI: azure_adapter, ProviderId.GEMINI: gemini_adapter},
    )
    return runtime, azure_adapter, gemini_adapter


def test_pipeline_walks_gemini_chain_before_switching():
    runtime, azure, gemini = _runtime({"gpt-4.1": "unused"}, {"gemini-2.5-flash": "  The lighthouse keeper hums.  "})
    result = runtime.orchestrator.generate(GenerationRequest(prompt="Tell a story about a lighthouse"))

    assert isinstance(result, GenerationResult)
    assert result.provider is ProviderId.GEMINI
    assert result.model == "gemini-2.5-flash"
    assert result.content == "The lighthouse keeper hums."
    assert result.metadata.content_length == len(result.content)
    assert [r.model for r in gemini.seen] == ["gemini-3-pro-preview", "gemini-2.5-pro", "gemini-2.5-flash"]
    assert azure.seen == []


def test_pipeline_applies_configured_defaults_and_ceilings():
    cfg = AppConfig()
    cfg.generation.default_temperature = 1.7
    cfg.providers.gemini.max_temperature = 1.0
    runtime, _azure, gemini = _runtime({}, {"gemini-3-pro-preview": "ok"}, cfg)

    runtime.orchestrator.generate(GenerationRequest(prompt="A story", max_tokens=999999))
    request = gemini.seen[0]
    assert request.temperature == 1.0
    assert request.max_output_tokens == cfg.providers.gemini.max_output_tokens
    assert request.system_prompt == cfg.generation.default_system_prompt


def test_pipeline_total_failure_records_trace():
    runtime, _azure, _gemini = _runtime({}, {})
    with pytest.raises(TotalFailure) as exc_info:
        runtime.orchestrator.generate(GenerationRequest(prompt="Analyze the plot structure", engine_id="world-engine"))

    assert set(exc_info.value.errors) == {ProviderId.AZURE_OPENAI, ProviderId.GEMINI}
    events = [item["event"] for item in recent_traces(limit=50)]
    assert "provider_fallback" in events
    assert events[-1] == "generation_failed"


def test_pipeline_from_yaml_config(tmp_path, monkeypatch):
    for name in ["STORYROUTE_CONFIG_FILE", "GEMINI_STABLE_MODE_MODEL", "STORYROUTE_ENVIRONMENT"]:
        monkeypatch.delenv(name, raising=False)
    instance = tmp_path / "instance.yaml"
    instance.write_text(
        """
routing:
  unknown_engine_provider: azure_openai
  engines:
    casting-engine: gpt-4o
""".strip(),
        encoding="utf-8",
    )
    monkeypatch.chdir(tmp_path)
    azure = ModelScriptAdapter("azure_openai", {"gpt-4o": "cast list"})
    gemini = ModelScriptAdapter("gemini", {})
    runtime = build_generation_runtime(
        config_path=instance,
        adapters={ProviderId.AZURE_OPENAI: azure, ProviderId.GEMINI: gemini},
    )

    assert runtime.registry.model_for("casting-engine") == "gpt-4o"
    result = runtime.orchestrator.generate(GenerationRequest(prompt="List the cast", engine_id="casting-engine"))
    assert result.provider is ProviderId.AZURE_OPENAI
    assert result.model == "gpt-4o"
    assert runtime.selector.decide(GenerationRequest(prompt="x", engine_id="orbital-relay")).provider is ProviderId.AZURE_OPENAI


def test_pipeline_batch_and_async():
    runtime, _azure, _gemini = _runtime({"gpt-4.1": "analysis"}, {"gemini-3-pro-preview": "story"})
    outcomes = runtime.orchestrator.generate_many(
        [
            GenerationRequest(prompt="Write a story", forced_provider=ProviderId.GEMINI),
            GenerationRequest(prompt="Analyze the data", forced_provider=ProviderId.AZURE_OPENAI),
        ]
    )
    assert [o.content for o in outcomes] == ["story", "analysis"]

    result = asyncio.run(runtime.orchestrator.agenerate(GenerationRequest(prompt="Write a poem")))
    assert result.provider is ProviderId.GEMINI
