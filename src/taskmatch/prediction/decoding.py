"""Best-effort decoding of loosely structured oracle responses."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum

from taskmatch.errors import PredictionError
from taskmatch.models import SkillPrediction
from taskmatch.oracle.base import CompletionOracle, OracleError

logger = logging.getLogger(__name__)

DEFAULT_REASONING = "LLM analysis completed"

_DECODER = json.JSONDecoder()


class OutcomeKind(str, Enum):
    """Result of one oracle round trip."""

    SUCCESS = "success"
    PARSE_FAILURE = "parse_failure"
    TRANSPORT_FAILURE = "transport_failure"


@dataclass(slots=True)
class OracleOutcome:
    """Tagged oracle result; ``prediction`` is set only on success.

    ``transient`` is meaningful for transport failures: ``False`` means the same
    call would fail again (disabled oracle, broken command template).
    """

    kind: OutcomeKind
    prediction: SkillPrediction | None = None
    detail: str | None = None
    transient: bool = False


def extract_json_object(text: str) -> dict[str, object] | None:
    """Return the first well-formed JSON object found in ``text``."""

    found = _first_json_value(text, "{", dict)
    return found if isinstance(found, dict) else None


def extract_json_array(text: str) -> list[object] | None:
    """Return the first well-formed JSON array found in ``text``."""

    found = _first_json_value(text, "[", list)
    return found if isinstance(found, list) else None


def parse_prediction(text: str, available_skill_names: Iterable[str]) -> SkillPrediction:
    """Decode a prediction payload, keeping only catalog skill names.

    Raises ``PredictionError`` when no JSON object can be found or when
    ``skills`` is present but is not a list.
    """

    payload = extract_json_object(text)
    if payload is None:
        raise PredictionError("No JSON found in LLM response")

    valid_names = set(available_skill_names)
    raw_skills = payload.get("skills")
    if raw_skills is None:
        raw_skills = []
    if not isinstance(raw_skills, list):
        raise PredictionError(
            f"LLM response skills must be a list, got {type(raw_skills).__name__}",
        )
    skill_names: list[str] = []
    for name in raw_skills:
        if isinstance(name, str) and name in valid_names and name not in skill_names:
            skill_names.append(name)

    confidence: dict[str, float] = {}
    raw_confidence = payload.get("confidence")
    if isinstance(raw_confidence, dict):
        for name, value in raw_confidence.items():
            if name not in skill_names:
                continue
            if isinstance(value, bool) or not isinstance(value, int | float):
                continue
            confidence[name] = float(value)

    reasoning = payload.get("reasoning")
    if not isinstance(reasoning, str) or not reasoning.strip():
        reasoning = DEFAULT_REASONING
    return SkillPrediction(skill_names=skill_names, confidence=confidence, reasoning=reasoning)


def consult(
    oracle: CompletionOracle,
    prompt: str,
    available_skill_names: Iterable[str],
) -> OracleOutcome:
    """Run one oracle round trip and decode it into a tagged outcome."""

    try:
        text = oracle.complete(prompt)
    except OracleError as error:
        return OracleOutcome(
            kind=OutcomeKind.TRANSPORT_FAILURE,
            detail=str(error),
            transient=error.transient,
        )
    try:
        prediction = parse_prediction(text, available_skill_names)
    except PredictionError as error:
        logger.debug("Undecodable oracle response: %r", text[:500])
        return OracleOutcome(kind=OutcomeKind.PARSE_FAILURE, detail=str(error))
    return OracleOutcome(kind=OutcomeKind.SUCCESS, prediction=prediction)


def _first_json_value(text: str, opener: str, expected: type) -> object | None:
    index = text.find(opener)
    while index != -1:
        try:
            value, _ = _DECODER.raw_decode(text, index)
        except json.JSONDecodeError:
            value = None
        if isinstance(value, expected):
            return value
        index = text.find(opener, index + 1)
    return None
