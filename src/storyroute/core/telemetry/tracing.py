from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import Any

_TRACE_EVENTS: deque[dict[str, Any]] = deque(maxlen=500)


@dataclass(slots=True)
class GenerationTrace:
    request_id: str
    engine_id: str
    provider: str
    phase: str


def trace_event(logger, ctx: GenerationTrace, event: str, status: str, extra: dict[str, Any] | None = None) -> None:
    payload = {
        "request_id": ctx.request_id,
        "engine_id": ctx.engine_id,
        "provider": ctx.provider,
        "phase": ctx.phase,
        "status": status,
    }
    if extra:
        payload.update(extra)
    _TRACE_EVENTS.append({"event": event, **payload})
    logger.info(event, **payload)


def recent_traces(request_id: str | None = None, limit: int = 20) -> list[dict[str, Any]]:
    items = list(_TRACE_EVENTS)
    if request_id is not None:
        items = [i for i in items if i.get("request_id") == request_id]
    return items[-limit:]


def prompt_preview(prompt: str, max_len: int = 100) -> str:
    return prompt if len(prompt) <= max_len else prompt[:max_len] + "..."
