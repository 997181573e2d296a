"""Skill inference from task titles."""

from taskmatch.prediction.decoding import OracleOutcome, OutcomeKind, parse_prediction
from taskmatch.prediction.fallback import keyword_fallback
from taskmatch.prediction.predictor import SkillPredictor

__all__ = [
    "OracleOutcome",
    "OutcomeKind",
    "SkillPredictor",
    "keyword_fallback",
    "parse_prediction",
]
