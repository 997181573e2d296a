"""Runtime configuration for the task store, oracle and skill prediction."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

DEFAULT_LLM_COMMAND_TEMPLATE = "gemini --model {model} --prompt {prompt}"


@dataclass(slots=True)
class StoreSettings:
    """Entity store settings."""

    db_path: Path = Path(".taskmatch.db")
    busy_timeout_ms: int = 5_000


@dataclass(slots=True)
class OracleSettings:
    """Text-completion oracle settings."""

    enabled: bool = True
    command_template: str = DEFAULT_LLM_COMMAND_TEMPLATE
    model: str = "gemini-2.0-flash"
    timeout_seconds: int = 60


@dataclass(slots=True)
class PredictionSettings:
    """Skill prediction and similarity search settings."""

    similar_tasks_limit: int = 5
    similarity_threshold: float = 0.2
    word_similarity_threshold: float = 0.3
    use_keyword_search: bool = False


@dataclass(slots=True)
class ListingSettings:
    """Task listing defaults."""

    default_page_size: int = 10


@dataclass(slots=True)
class Settings:
    """Application settings grouped by domain concerns."""

    store: StoreSettings = field(default_factory=StoreSettings)
    oracle: OracleSettings = field(default_factory=OracleSettings)
    prediction: PredictionSettings = field(default_factory=PredictionSettings)
    listing: ListingSettings = field(default_factory=ListingSettings)

    @classmethod
    def from_env(cls, db_path: Path | None = None) -> Settings:
        """Load settings from environment with sane defaults for local development."""

        return cls(
            store=StoreSettings(
                db_path=db_path or Path(os.getenv("TASKMATCH_DB_PATH", ".taskmatch.db")),
                busy_timeout_ms=int(os.getenv("TASKMATCH_DB_BUSY_TIMEOUT_MS", "5000")),
            ),
            oracle=OracleSettings(
                enabled=_env_bool("TASKMATCH_LLM_ENABLED", default=True),
                command_template=os.getenv(
                    "TASKMATCH_LLM_COMMAND_TEMPLATE",
                    DEFAULT_LLM_COMMAND_TEMPLATE,
                ),
                model=os.getenv("TASKMATCH_LLM_MODEL", "gemini-2.0-flash"),
                timeout_seconds=int(os.getenv("TASKMATCH_LLM_TIMEOUT_SECONDS", "60")),
            ),
            prediction=PredictionSettings(
                similar_tasks_limit=int(os.getenv("TASKMATCH_SIMILAR_TASKS_LIMIT", "5")),
                similarity_threshold=float(
                    os.getenv("TASKMATCH_SIMILARITY_THRESHOLD", "0.2"),
                ),
                word_similarity_threshold=float(
                    os.getenv("TASKMATCH_WORD_SIMILARITY_THRESHOLD", "0.3"),
                ),
                use_keyword_search=_env_bool("TASKMATCH_USE_KEYWORD_SEARCH", default=False),
            ),
            listing=ListingSettings(
                default_page_size=int(os.getenv("TASKMATCH_DEFAULT_PAGE_SIZE", "10")),
            ),
        )

    def validate(self) -> None:
        """Raise configuration error if any setting is out of range."""

        if self.store.busy_timeout_ms <= 0:
            raise ValueError("TASKMATCH_DB_BUSY_TIMEOUT_MS must be > 0.")
        if self.oracle.enabled:
            if not self.oracle.command_template.strip():
                raise ValueError("TASKMATCH_LLM_COMMAND_TEMPLATE must not be empty.")
            template = self.oracle.command_template
            if "{prompt}" not in template and "{prompt_file}" not in template:
                raise ValueError(
                    "TASKMATCH_LLM_COMMAND_TEMPLATE must include {prompt} or {prompt_file}.",
                )
        if self.oracle.timeout_seconds <= 0:
            raise ValueError("TASKMATCH_LLM_TIMEOUT_SECONDS must be > 0.")
        if self.prediction.similar_tasks_limit <= 0:
            raise ValueError("TASKMATCH_SIMILAR_TASKS_LIMIT must be a positive integer.")
        for name, value in (
            ("TASKMATCH_SIMILARITY_THRESHOLD", self.prediction.similarity_threshold),
            ("TASKMATCH_WORD_SIMILARITY_THRESHOLD", self.prediction.word_similarity_threshold),
        ):
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be within [0, 1], got {value!r}.")
        if self.listing.default_page_size <= 0:
            raise ValueError("TASKMATCH_DEFAULT_PAGE_SIZE must be a positive integer.")


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    raise ValueError(f"Invalid boolean value for {name}: {value!r}")
