from __future__ import annotations

import random
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import TypeVar

from storyroute.core.runtime.errors import ChainExhausted, ErrorInfo, classify_error

T = TypeVar("T")


@dataclass(slots=True, frozen=True)
class RetryPolicy:
    max_attempts: int = 1
    base_backoff_seconds: float = 0.2
    jitter_seconds: float = 0.1


def _sleep_backoff(policy: RetryPolicy, attempt: int) -> None:
    if attempt <= 0:
        return
    delay = policy.base_backoff_seconds * (2 ** (attempt - 1))
    delay += random.uniform(0.0, policy.jitter_seconds)
    time.sleep(min(delay, 0.5))


def run_with_retry_sync(
    fn: Callable[[], T],
    *,
    policy: RetryPolicy,
    category: str,
    component: str,
    on_attempt: Callable[[int, str, ErrorInfo | None], None] | None = None,
) -> T:
    """Call ``fn`` up to ``policy.max_attempts`` times.

    Non-retryable errors stop immediately. The last underlying exception is
    re-raised unchanged so callers keep its type. The success hook runs only
    after ``fn`` has returned, so a failing hook never triggers another call.
    """
    attempts = max(1, policy.max_attempts)
    for i in range(1, attempts + 1):
        try:
            value = fn()
        except Exception as exc:
            info = classify_error(exc, category=category, component=component)
            if on_attempt:
                on_attempt(i, "error", info)
            if (not info.retryable) or i >= attempts:
                raise
            _sleep_backoff(policy, i)
            continue
        if on_attempt:
            on_attempt(i, "ok", None)
        return value
    raise AssertionError("unreachable")


def walk_fallback_chain(
    models: Sequence[str],
    attempt: Callable[[str], T],
    *,
    provider: str,
    policy: RetryPolicy | None = None,
    on_attempt: Callable[[str, int, str, ErrorInfo | None], None] | None = None,
    passthrough_single: bool = False,
) -> tuple[str, T]:
    """Try ``attempt(model)`` for each model in order until one succeeds.

    Models are tried strictly sequentially. Returns the model that succeeded
    together with its value. An exhausted chain raises ``ChainExhausted``
    carrying the last error. With ``passthrough_single`` a one-model chain
    re-raises that model's own error instead.
    """
    if not models:
        raise ValueError(f"empty fallback chain for {provider}")

    policy = policy or RetryPolicy()
    attempted: list[str] = []
    last_error: Exception | None = None

    for model in models:
        attempted.append(model)
        calls = 0

        def _hook(n: int, status: str, info: ErrorInfo | None, _model: str = model) -> None:
            if on_attempt and status != "ok":
                on_attempt(_model, n, status, info)

        def _call(_model: str = model) -> T:
            nonlocal calls
            calls += 1
            return attempt(_model)

        try:
            value = run_with_retry_sync(
                _call,
                policy=policy,
                category="provider",
                component=f"{provider}:{model}",
                on_attempt=_hook,
            )
        except Exception as exc:
            last_error = exc
            continue
        if on_attempt:
            on_attempt(model, calls, "ok", None)
        return model, value

    assert last_error is not None
    if passthrough_single and len(attempted) == 1:
        raise last_error
    raise ChainExhausted(provider, attempted, last_error)
