"""Deterministic keyword heuristic used when the oracle cannot answer."""

from __future__ import annotations

import re
from collections.abc import Sequence

from taskmatch.models import SkillPrediction, SkillView

FALLBACK_REASONING = "Fallback keyword-based prediction"
FALLBACK_CONFIDENCE = 0.5

FRONTEND_KEYWORDS: tuple[str, ...] = (
    "ui",
    "frontend",
    "page",
    "component",
    "responsive",
    "mobile",
    "design",
    "css",
    "html",
    "react",
)
BACKEND_KEYWORDS: tuple[str, ...] = (
    "api",
    "backend",
    "database",
    "server",
    "auth",
    "security",
    "log",
    "data",
)

_WORD_PATTERN = re.compile(r"[a-z0-9]+")


def keyword_fallback(title: str, available_skills: Sequence[SkillView]) -> SkillPrediction:
    """Select frontend/backend skills by title words, or every skill if none match."""

    words = _title_words(title)
    has_frontend = not words.isdisjoint(FRONTEND_KEYWORDS)
    has_backend = not words.isdisjoint(BACKEND_KEYWORDS)

    selected: list[str] = []
    for skill in available_skills:
        name = skill.name.lower()
        if has_frontend and "frontend" in name:
            selected.append(skill.name)
        elif has_backend and "backend" in name:
            selected.append(skill.name)

    if not selected:
        selected = [skill.name for skill in available_skills]

    return SkillPrediction(
        skill_names=selected,
        confidence={name: FALLBACK_CONFIDENCE for name in selected},
        reasoning=FALLBACK_REASONING,
    )


def _title_words(title: str) -> set[str]:
    """Word tokens of ``title`` plus the singular of simple plurals (apis, logs)."""

    words = set(_WORD_PATTERN.findall(title.lower()))
    words.update(word[:-1] for word in words.copy() if len(word) > 3 and word.endswith("s"))
    return words
