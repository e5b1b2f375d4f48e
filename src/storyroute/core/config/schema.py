from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

DEFAULT_SYSTEM_PROMPT = "You are a professional AI assistant specialized in film and television production."


class InstanceConfig(BaseModel):
    name: str = "storyroute"


class RuntimeConfig(BaseModel):
    max_concurrency: int = Field(default=8, ge=1)
    provider_retry_attempts: int = Field(default=1, ge=1)
    retry_backoff_seconds: float = Field(default=0.2, ge=0.0)
    retry_jitter_seconds: float = Field(default=0.1, ge=0.0)


class TelemetryConfig(BaseModel):
    log_level: str = "INFO"
    json_logs: bool = True


class GenerationConfig(BaseModel):
    default_system_prompt: str = DEFAULT_SYSTEM_PROMPT
    default_temperature: float = 0.85
    default_max_tokens: int = Field(default=2000, ge=1)


class RoutingConfig(BaseModel):
    unknown_engine_provider: str = "gemini"
    use_builtin_engines: bool = True
    engines: dict[str, str] = Field(default_factory=dict)

    @field_validator("unknown_engine_provider")
    @classmethod
    def _known_provider(cls, value: str) -> str:
        if value not in {"azure_openai", "gemini"}:
            raise ValueError(f"unknown provider id: {value}")
        return value


class AzureOpenAIConfig(BaseModel):
    enabled: bool = True
    endpoint: str | None = None
    api_key_env: str = "AZURE_OPENAI_API_KEY"
    api_version: str = "2024-12-01-preview"
    default_model: str = "gpt-4.1"
    deployments: dict[str, str] = Field(default_factory=lambda: {"gpt-4.1": "gpt-4.1", "gpt-4o": "gpt-4o-2024-11-20"})
    model_prefixes: list[str] = Field(default_factory=lambda: ["gpt-", "o1", "o3", "o4"])
    max_temperature: float = Field(default=1.0, ge=0.0)
    max_output_tokens: int = Field(default=4096, ge=1)
    timeout_seconds: float = Field(default=180.0, gt=0)


class GeminiConfig(BaseModel):
    enabled: bool = True
    base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    api_key_env: str = "GEMINI_API_KEY"
    default_model: str = "gemini-3-pro-preview"
    fallback_models: list[str] = Field(default_factory=lambda: ["gemini-2.5-pro", "gemini-2.5-flash"])
    model_prefixes: list[str] = Field(default_factory=lambda: ["gemini"])
    max_temperature: float = Field(default=1.0, ge=0.0)
    max_output_tokens: int = Field(default=8192, ge=1)
    timeout_seconds: float = Field(default=180.0, gt=0)


class ProvidersConfig(BaseModel):
    azure_openai: AzureOpenAIConfig = Field(default_factory=AzureOpenAIConfig)
    gemini: GeminiConfig = Field(default_factory=GeminiConfig)


class AppConfig(BaseModel):
    instance: InstanceConfig = Field(default_factory=InstanceConfig)
    environment: str = "dev"
    runtime: RuntimeConfig = Field(default_factory=RuntimeConfig)
    telemetry: TelemetryConfig = Field(default_factory=TelemetryConfig)
    generation: GenerationConfig = Field(default_factory=GenerationConfig)
    routing: RoutingConfig = Field(default_factory=RoutingConfig)
    providers: ProvidersConfig = Field(default_factory=ProvidersConfig)
