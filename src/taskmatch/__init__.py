"""Skill-aware task admission with LLM-assisted skill inference."""

__version__ = "0.1.0"
