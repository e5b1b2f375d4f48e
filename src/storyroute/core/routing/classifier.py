"""Keyword heuristics for routing requests that carry no registered engine id.

Both tables are matched as case-insensitive substrings, not whole tokens, so
``"characters"`` scores for ``"character"``. Everything here is pure.
"""

from __future__ import annotations

from dataclasses import dataclass

from storyroute.core.routing.registry import ProviderId

CREATIVE_PROMPT_KEYWORDS: tuple[str, ...] = (
    "character",
    "dialogue",
    "emotion",
    "mood",
    "feeling",
    "personality",
    "relationship",
    "voice",
    "romance",
    "humor",
    "drama",
    "tension",
    "atmosphere",
    "backstory",
    "motivation",
    "story",
    "narrative",
    "scene",
)

TECHNICAL_PROMPT_KEYWORDS: tuple[str, ...] = (
    "structure",
    "analysis",
    "analyze",
    "framework",
    "format",
    "schedule",
    "budget",
    "breakdown",
    "technical",
    "logistics",
    "timeline",
    "continuity",
    "metric",
    "outline",
    "checklist",
    "specification",
)

CREATIVE_ENGINE_KEYWORDS: tuple[str, ...] = (
    "character",
    "dialogue",
    "world",
    "hook",
    "cliffhanger",
    "mystery",
    "comedy",
    "theme",
    "engagement",
    "choice",
    "narrative",
    "storyboard",
    "sound",
    "casting",
    "marketing",
)

TECHNICAL_ENGINE_KEYWORDS: tuple[str, ...] = (
    "premise",
    "structure",
    "continuity",
    "conflict",
    "production",
    "schedul",
    "directing",
    "cinematography",
    "performance",
    "optimization",
    "format",
    "scouting",
    "analysis",
    "budget",
)


@dataclass(frozen=True, slots=True)
class TaskScore:
    creative: int
    technical: int

    @property
    def is_creative(self) -> bool:
        return self.creative >= self.technical


def _count(text: str, keywords: tuple[str, ...]) -> int:
    return sum(text.count(keyword) for keyword in keywords)


def score_task(prompt: str) -> TaskScore:
    text = prompt.lower()
    return TaskScore(
        creative=_count(text, CREATIVE_PROMPT_KEYWORDS),
        technical=_count(text, TECHNICAL_PROMPT_KEYWORDS),
    )


def is_creative_task(prompt: str) -> bool:
    # Ties, including 0 vs 0, go to creative.
    return score_task(prompt).is_creative


def match_engine_pattern(engine_id: str) -> ProviderId | None:
    """Guess a provider from an unregistered engine id; creative table wins first."""
    lowered = engine_id.lower()
    if any(keyword in lowered for keyword in CREATIVE_ENGINE_KEYWORDS):
        return ProviderId.GEMINI
    if any(keyword in lowered for keyword in TECHNICAL_ENGINE_KEYWORDS):
        return ProviderId.AZURE_OPENAI
    return None
