from __future__ import annotations

_CONTENT_SETTINGS: dict[str, tuple[float, int]] = {
    "narrative": (0.8, 3000),
    "technical": (0.3, 2000),
    "creative": (0.9, 4000),
    "analytical": (0.4, 2500),
}

_FALLBACK_SETTINGS = (0.7, 2000)


def optimal_settings(content_type: str) -> tuple[float, int]:
    """Return ``(temperature, max_tokens)`` suited to a broad content type."""
    return _CONTENT_SETTINGS.get(content_type.strip().lower(), _FALLBACK_SETTINGS)
