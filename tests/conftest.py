"""Shared test fixtures."""

from __future__ import annotations

import sys
from collections.abc import Iterator
from dataclasses import replace
from pathlib import Path

import pytest
from oracle_fakes import UnavailableOracle

from taskmatch.config import PredictionSettings, Settings
from taskmatch.prediction import SkillPredictor
from taskmatch.services import CatalogService, TaskService
from taskmatch.similarity import SimilarityFinder
from taskmatch.storage.database import Database
from taskmatch.storage.repository import DeveloperRepository, SkillRepository, TaskRepository

ECHO_AGENT_COMMAND_TEMPLATE = f"{sys.executable} -m taskmatch.oracle.echo_agent --prompt {{prompt}}"


@pytest.fixture()
def database(tmp_path: Path) -> Iterator[Database]:
    db = Database(tmp_path / "taskmatch.db")
    db.init_schema()
    yield db
    db.close()


@pytest.fixture()
def skill_repository(database: Database) -> SkillRepository:
    return SkillRepository(database)


@pytest.fixture()
def developer_repository(database: Database) -> DeveloperRepository:
    return DeveloperRepository(database)


@pytest.fixture()
def task_repository(database: Database) -> TaskRepository:
    return TaskRepository(database)


@pytest.fixture()
def seeded_catalog(
    skill_repository: SkillRepository,
    developer_repository: DeveloperRepository,
) -> dict[str, int]:
    """Skills Frontend=1 and Backend=2 plus three developers; returns ids by name."""

    frontend = skill_repository.add("Frontend")
    backend = skill_repository.add("Backend")
    alice = developer_repository.add("Alice", [frontend.id])
    bob = developer_repository.add("Bob", [backend.id])
    carol = developer_repository.add("Carol", [frontend.id, backend.id])
    return {
        "Frontend": frontend.id,
        "Backend": backend.id,
        "Alice": alice.id,
        "Bob": bob.id,
        "Carol": carol.id,
    }


@pytest.fixture()
def make_task_service(
    skill_repository: SkillRepository,
    developer_repository: DeveloperRepository,
    task_repository: TaskRepository,
):
    """Build a TaskService around the given oracle (unavailable by default)."""

    def _make(oracle=None, settings: PredictionSettings | None = None) -> TaskService:
        finder = SimilarityFinder(task_repository)
        predictor = SkillPredictor(
            oracle=oracle if oracle is not None else UnavailableOracle(),
            similarity_finder=finder,
            settings=settings,
        )
        return TaskService(
            skills=skill_repository,
            developers=developer_repository,
            tasks=task_repository,
            predictor=predictor,
        )

    return _make


@pytest.fixture()
def task_service(make_task_service) -> TaskService:
    return make_task_service()


@pytest.fixture()
def catalog_service(
    skill_repository: SkillRepository,
    developer_repository: DeveloperRepository,
) -> CatalogService:
    return CatalogService(skills=skill_repository, developers=developer_repository)


@pytest.fixture()
def echo_agent(monkeypatch):
    """Monkeypatch Settings.from_env to use the local echo agent as the LLM."""
    original_from_env = Settings.from_env

    def _patched_from_env(db_path=None):
        settings = original_from_env(db_path=db_path)
        new_oracle = replace(
            settings.oracle,
            enabled=True,
            command_template=ECHO_AGENT_COMMAND_TEMPLATE,
        )
        return replace(settings, oracle=new_oracle)

    monkeypatch.setattr(Settings, "from_env", staticmethod(_patched_from_env))
