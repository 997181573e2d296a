"""Two-pass skill prediction against a text-completion oracle."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from taskmatch.config import PredictionSettings
from taskmatch.models import SimilarTask, SkillPrediction, SkillView
from taskmatch.oracle.base import CompletionOracle, OracleError
from taskmatch.prediction.decoding import (
    OracleOutcome,
    OutcomeKind,
    consult,
    extract_json_array,
)
from taskmatch.prediction.fallback import keyword_fallback
from taskmatch.prediction.prompts import (
    build_initial_prompt,
    build_keyword_prompt,
    build_verification_prompt,
)
from taskmatch.similarity import SimilarityFinder

logger = logging.getLogger(__name__)

MAX_KEYWORDS = 5


class SkillPredictor:
    """Predict required skills for a task title.

    The initial pass falls back to the keyword heuristic on any oracle failure;
    a permanent transport failure also skips the verification pass.
    The verification pass keeps the initial result on any oracle failure.
    """

    def __init__(
        self,
        *,
        oracle: CompletionOracle,
        similarity_finder: SimilarityFinder,
        settings: PredictionSettings | None = None,
    ) -> None:
        self.oracle = oracle
        self.similarity_finder = similarity_finder
        self.settings = settings or PredictionSettings()

    def predict(self, title: str, available_skills: Sequence[SkillView]) -> SkillPrediction:
        keywords = self.extract_keywords(title) if self.settings.use_keyword_search else None
        similar_tasks = self.similarity_finder.find_similar(
            title,
            keywords=keywords,
            limit=self.settings.similar_tasks_limit,
        )
        logger.info("Similar tasks found for %r: %d", title, len(similar_tasks))

        outcome = self._initial_pass(title, available_skills, similar_tasks)
        if outcome.kind is OutcomeKind.SUCCESS and outcome.prediction is not None:
            initial = outcome.prediction
        else:
            initial = keyword_fallback(title, available_skills)
            if outcome.kind is OutcomeKind.TRANSPORT_FAILURE and not outcome.transient:
                logger.info(
                    "Oracle unavailable (%s); using keyword fallback without verification.",
                    outcome.detail,
                )
                return initial
            logger.warning(
                "Initial skill prediction failed (%s: %s); using keyword fallback.",
                outcome.kind.value,
                outcome.detail,
            )
        return self._verification_pass(title, available_skills, initial, similar_tasks)

    def extract_keywords(self, title: str) -> list[str]:
        """Ask the oracle for core technical keywords; empty list on any failure."""

        try:
            text = self.oracle.complete(build_keyword_prompt(title))
        except OracleError as error:
            logger.warning("Keyword extraction failed: %s", error)
            return []
        payload = extract_json_array(text)
        if payload is None:
            logger.warning("Keyword extraction returned no JSON array.")
            return []
        keywords = [item for item in payload if isinstance(item, str) and len(item) > 2]
        return keywords[:MAX_KEYWORDS]

    def _initial_pass(
        self,
        title: str,
        available_skills: Sequence[SkillView],
        similar_tasks: list[SimilarTask],
    ) -> OracleOutcome:
        skill_names = [skill.name for skill in available_skills]
        prompt = build_initial_prompt(
            title=title,
            skill_names=skill_names,
            similar_tasks=similar_tasks,
        )
        return consult(self.oracle, prompt, skill_names)

    def _verification_pass(
        self,
        title: str,
        available_skills: Sequence[SkillView],
        initial: SkillPrediction,
        similar_tasks: list[SimilarTask],
    ) -> SkillPrediction:
        skill_names = [skill.name for skill in available_skills]
        prompt = build_verification_prompt(
            title=title,
            skill_names=skill_names,
            initial=initial,
            similar_tasks=similar_tasks,
        )
        outcome = consult(self.oracle, prompt, skill_names)
        if outcome.kind is OutcomeKind.SUCCESS and outcome.prediction is not None:
            return outcome.prediction
        logger.warning(
            "Skill prediction verification failed (%s: %s); keeping initial prediction.",
            outcome.kind.value,
            outcome.detail,
        )
        return initial
