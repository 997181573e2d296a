from __future__ import annotations

from pathlib import Path

import allure
import pytest

from taskmatch.config import OracleSettings, PredictionSettings, Settings, StoreSettings

pytestmark = [
    allure.epic("Platform"),
    allure.feature("Configuration"),
]


def test_from_env_defaults(monkeypatch) -> None:
    for name in (
        "TASKMATCH_DB_PATH",
        "TASKMATCH_LLM_ENABLED",
        "TASKMATCH_LLM_MODEL",
        "TASKMATCH_SIMILAR_TASKS_LIMIT",
        "TASKMATCH_USE_KEYWORD_SEARCH",
        "TASKMATCH_DEFAULT_PAGE_SIZE",
    ):
        monkeypatch.delenv(name, raising=False)

    settings = Settings.from_env()

    assert settings.store.db_path == Path(".taskmatch.db")
    assert settings.oracle.enabled is True
    assert settings.oracle.model == "gemini-2.0-flash"
    assert settings.prediction.similar_tasks_limit == 5
    assert settings.prediction.use_keyword_search is False
    assert settings.listing.default_page_size == 10
    settings.validate()


def test_from_env_reads_overrides(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv("TASKMATCH_DB_PATH", str(tmp_path / "env.db"))
    monkeypatch.setenv("TASKMATCH_LLM_ENABLED", "off")
    monkeypatch.setenv("TASKMATCH_SIMILARITY_THRESHOLD", "0.5")
    monkeypatch.setenv("TASKMATCH_USE_KEYWORD_SEARCH", "yes")
    monkeypatch.setenv("TASKMATCH_DEFAULT_PAGE_SIZE", "25")

    settings = Settings.from_env()

    assert settings.store.db_path == tmp_path / "env.db"
    assert settings.oracle.enabled is False
    assert settings.prediction.similarity_threshold == pytest.approx(0.5)
    assert settings.prediction.use_keyword_search is True
    assert settings.listing.default_page_size == 25


def test_explicit_db_path_wins_over_env(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv("TASKMATCH_DB_PATH", str(tmp_path / "env.db"))

    settings = Settings.from_env(db_path=tmp_path / "cli.db")

    assert settings.store.db_path == tmp_path / "cli.db"


def test_invalid_boolean_env_is_rejected(monkeypatch) -> None:
    monkeypatch.setenv("TASKMATCH_LLM_ENABLED", "maybe")

    with pytest.raises(ValueError, match="Invalid boolean value for TASKMATCH_LLM_ENABLED"):
        Settings.from_env()


def test_validate_requires_prompt_placeholder_when_enabled() -> None:
    settings = Settings(oracle=OracleSettings(command_template="gemini --model {model}"))

    with pytest.raises(ValueError, match="must include"):
        settings.validate()


def test_validate_ignores_template_when_oracle_disabled() -> None:
    settings = Settings(oracle=OracleSettings(enabled=False, command_template=""))

    settings.validate()


def test_validate_accepts_prompt_file_placeholder() -> None:
    settings = Settings(oracle=OracleSettings(command_template="agent --input {prompt_file}"))

    settings.validate()


@pytest.mark.parametrize(
    ("settings", "message"),
    [
        (Settings(store=StoreSettings(busy_timeout_ms=0)), "BUSY_TIMEOUT"),
        (Settings(oracle=OracleSettings(timeout_seconds=0)), "TIMEOUT_SECONDS"),
        (Settings(prediction=PredictionSettings(similar_tasks_limit=0)), "SIMILAR_TASKS_LIMIT"),
        (
            Settings(prediction=PredictionSettings(similarity_threshold=1.5)),
            "SIMILARITY_THRESHOLD",
        ),
    ],
)
def test_validate_rejects_out_of_range_values(settings: Settings, message: str) -> None:
    with pytest.raises(ValueError, match=message):
        settings.validate()
