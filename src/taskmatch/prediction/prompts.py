"""Prompt templates for skill prediction and keyword extraction."""

from __future__ import annotations

import math
from collections.abc import Sequence

from taskmatch.models import SimilarTask, SkillPrediction

_RESPONSE_FORMAT = """\
Respond with valid JSON only:
{{
  "skills": ["skill1", "skill2"],
  "confidence": {{"skill1": 0.95, "skill2": 0.85}},
  "reasoning": "{reasoning_hint}"
}}"""

INITIAL_INSTRUCTIONS = """\
Analyze this task step-by-step:
1. What UI components or user interactions are needed? → Frontend skill
2. What server logic, APIs, or data persistence is needed? → Backend skill
3. Consider that tasks may require BOTH skills if they involve full-stack work
4. You should be resolute and concise in your selection. Focus ONLY on the title as \
the task's objective, not what could be tangentially related."""

VERIFICATION_INSTRUCTIONS = """\
Verify this prediction:
1. Does the initial prediction align with historical patterns above?
2. Is any required skill missing based on similar tasks?
3. Is any skill unnecessary?"""

KEYWORD_PROMPT = """\
Extract 3-5 core technical keywords from this task title.
Focus on: technologies, features, components, actions.
Ignore: filler words, "As a", "I want to", "so that".
Return only a JSON array of keywords.

Title: "{title}"

Example response: ["authentication", "API", "database"]"""


def skill_frequency(similar_tasks: Sequence[SimilarTask]) -> dict[str, float]:
    """Fraction of similar tasks requiring each skill, in first-seen order."""

    if not similar_tasks:
        return {}
    counts: dict[str, int] = {}
    for task in similar_tasks:
        for skill in task.skills:
            counts[skill.name] = counts.get(skill.name, 0) + 1
    return {name: count / len(similar_tasks) for name, count in counts.items()}


def build_initial_prompt(
    *,
    title: str,
    skill_names: Sequence[str],
    similar_tasks: Sequence[SimilarTask],
) -> str:
    legal = ", ".join(skill_names)
    sections = [
        "You are an experienced lead software engineer analyzing task requirements.",
        f'Task: "{title}"',
        f"Available skills: {legal}",
    ]
    sections.extend(
        _history_sections(
            similar_tasks,
            tasks_header="Similar tasks from our database:",
            pattern_header="Pattern analysis:",
        ),
    )
    sections.append(INITIAL_INSTRUCTIONS)
    sections.append(
        _RESPONSE_FORMAT.format(reasoning_hint="Detailed explanation of your analysis")
        + "\n\n"
        + _rules(legal, extra=("Be specific in reasoning",)),
    )
    return "\n\n".join(sections)


def build_verification_prompt(
    *,
    title: str,
    skill_names: Sequence[str],
    initial: SkillPrediction,
    similar_tasks: Sequence[SimilarTask],
) -> str:
    legal = ", ".join(skill_names)
    sections = [
        "You are a senior technical lead reviewing a skill assignment.",
        f'Task: "{title}"',
        f"Available skills: {legal}",
        "Initial prediction:\n"
        f"- Skills: {', '.join(initial.skill_names)}\n"
        f"- Reasoning: {initial.reasoning}",
    ]
    sections.extend(
        _history_sections(
            similar_tasks,
            tasks_header="Historical context from database:",
            pattern_header="Pattern from similar tasks:",
        ),
    )
    sections.append(VERIFICATION_INSTRUCTIONS)
    sections.append(
        _RESPONSE_FORMAT.format(
            reasoning_hint="Explanation referencing historical patterns if relevant",
        )
        + "\n\n"
        + _rules(legal),
    )
    return "\n\n".join(sections)


def build_keyword_prompt(title: str) -> str:
    return KEYWORD_PROMPT.format(title=title)


def _history_sections(
    similar_tasks: Sequence[SimilarTask],
    *,
    tasks_header: str,
    pattern_header: str,
) -> list[str]:
    if not similar_tasks:
        return []
    lines = [tasks_header]
    for index, task in enumerate(similar_tasks, start=1):
        task_skills = ", ".join(skill.name for skill in task.skills)
        lines.append(f'{index}. "{task.title}" → Skills: [{task_skills}]')
    sections = ["\n".join(lines)]

    frequency = skill_frequency(similar_tasks)
    if frequency:
        pattern = ", ".join(
            f"{_round_percent(share)}% needed {name}" for name, share in frequency.items()
        )
        sections.append(f"{pattern_header} {pattern}")
    return sections


def _round_percent(share: float) -> int:
    return math.floor(share * 100 + 0.5)


def _rules(legal: str, extra: tuple[str, ...] = ()) -> str:
    rules = [f"Only use skills from: {legal}", "Minimum confidence: 0.6", *extra]
    rules.append("Must be valid JSON")
    return "Rules:\n" + "\n".join(f"- {rule}" for rule in rules)
