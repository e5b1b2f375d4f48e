from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from storyroute.core.routing.registry import ProviderId


class GenerationError(RuntimeError):
    """Base class for every failure raised by the generation core."""


class EmptyContent(GenerationError):
    def __init__(self, provider: str, model: str) -> None:
        self.provider = provider
        self.model = model
        super().__init__(f"{provider}/{model} returned empty content")


class TransportFailure(GenerationError):
    def __init__(self, provider: str, model: str, message: str, status_code: int | None = None) -> None:
        self.provider = provider
        self.model = model
        self.status_code = status_code
        prefix = f"{provider}/{model}"
        if status_code is not None:
            prefix += f" http {status_code}"
        super().__init__(f"{prefix}: {message}")


class ChainExhausted(GenerationError):
    def __init__(self, provider: str, attempted: list[str], last_error: Exception) -> None:
        self.provider = provider
        self.attempted = list(attempted)
        self.last_error = last_error
        super().__init__(
            f"{provider} fallback chain exhausted after {len(self.attempted)} models "
            f"({', '.join(self.attempted)}): {last_error}"
        )


class TotalFailure(GenerationError):
    def __init__(self, errors: dict[ProviderId, Exception]) -> None:
        self.errors = dict(errors)
        # ProviderId values sort azure_openai before gemini.
        parts = [f"{provider.value}: {errors[provider]}" for provider in sorted(errors, key=lambda p: p.value)]
        super().__init__("Both providers failed: " + " | ".join(parts))


@dataclass(slots=True)
class ErrorInfo:
    category: str
    component: str
    error_type: str
    message_signature: str
    retryable: bool
    http_status: int | None = None


def _normalize_message(message: str, max_len: int = 180) -> str:
    msg = message.lower()
    msg = re.sub(r"\s+", " ", msg)
    msg = re.sub(r"\d+", "#", msg)
    return msg.strip()[:max_len]


def _compact_message(message: str, max_len: int = 220) -> str:
    msg = message.lower()
    msg = re.sub(r"\s+", " ", msg)
    return msg.strip()[:max_len]


def classify_error(exc: Exception, *, category: str, component: str) -> ErrorInfo:
    name = exc.__class__.__name__.lower()
    normalized = _normalize_message(str(exc))

    if isinstance(exc, EmptyContent):
        return ErrorInfo(
            category=category,
            component=component,
            error_type=exc.__class__.__name__,
            message_signature=normalized,
            retryable=False,
        )

    retryable = True
    lowered = f"{name} {normalized}"
    if any(k in lowered for k in ["auth", "unauthorized", "forbidden", "invalidrequest", "badrequest", "permission"]):
        retryable = False
    if any(k in lowered for k in ["timeout", "temporar", "connection", "reset", "unavailable"]):
        retryable = True

    status = getattr(exc, "status_code", None)
    if status is None:
        m = re.search(r"\b(4\d\d|5\d\d)\b", str(exc))
        if m:
            status = int(m.group(1))
    if status is not None and 400 <= status < 500 and status not in {408, 429}:
        retryable = False

    return ErrorInfo(
        category=category,
        component=component,
        error_type=exc.__class__.__name__,
        message_signature=normalized,
        retryable=retryable,
        http_status=status,
    )


def compact_error_summary(exc: Exception, max_len: int = 220) -> str:
    return f"{exc.__class__.__name__}: {_compact_message(str(exc), max_len=max_len)}"
