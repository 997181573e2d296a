"""Controllers for taskmatch CLI commands."""

from __future__ import annotations

import json
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from taskmatch.config import Settings
from taskmatch.errors import EntityNotFoundError, InvalidRequestError, TaskManagerError
from taskmatch.models import UNSET, TaskCreate, TaskListQuery, TaskTreeNode, TaskUpdate, _Unset
from taskmatch.oracle import build_oracle
from taskmatch.prediction import SkillPredictor
from taskmatch.services import CatalogService, TaskService, create_task_tree
from taskmatch.similarity import SimilarityFinder
from taskmatch.storage.database import Database
from taskmatch.storage.repository import DeveloperRepository, SkillRepository, TaskRepository


@dataclass(slots=True)
class DbInitCommand:
    """CLI input for schema initialization."""

    db_path: Path | None


@dataclass(slots=True)
class CatalogSeedCommand:
    """CLI input for catalog seeding from a JSON file."""

    db_path: Path | None
    file: Path


@dataclass(slots=True)
class CatalogListCommand:
    """CLI input for skill and developer listings."""

    db_path: Path | None


@dataclass(slots=True)
class CatalogDeveloperCommand:
    """CLI input for one developer lookup."""

    db_path: Path | None
    developer_id: int


@dataclass(slots=True)
class TaskCreateCommand:
    """CLI input for task creation."""

    db_path: Path | None
    title: str
    skill_ids: tuple[int, ...]
    developer_id: int | None
    parent_task_id: int | None


@dataclass(slots=True)
class TaskCreateTreeCommand:
    """CLI input for nested task creation from a JSON file."""

    db_path: Path | None
    file: Path


@dataclass(slots=True)
class TaskShowCommand:
    """CLI input for task detail lookup."""

    db_path: Path | None
    task_id: int


@dataclass(slots=True)
class TaskUpdateCommand:
    """CLI input for task update. ``developer_id=UNSET`` leaves the developer untouched."""

    db_path: Path | None
    task_id: int
    status: str | None
    developer_id: int | None | _Unset


@dataclass(slots=True)
class TaskListCommand:
    """CLI input for paginated task listing."""

    db_path: Path | None
    page: int
    page_size: int | None
    status: str | None
    developer_id: int | None
    skill_ids: tuple[int, ...]
    parent_only: bool


@dataclass(slots=True)
class TaskSimilarCommand:
    """CLI input for similar-title search."""

    db_path: Path | None
    title: str
    limit: int | None


@dataclass(slots=True)
class TaskTreeCommandResult:
    """Rendered tree creation output plus the error that stopped it, if any."""

    lines: list[str]
    error: TaskManagerError | None


@dataclass(slots=True)
class _Services:
    settings: Settings
    tasks: TaskService
    catalog: CatalogService
    finder: SimilarityFinder


class DatabaseCliController:
    """Coordinates schema commands."""

    def init(self, command: DbInitCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        settings.validate()
        database = Database(settings.store.db_path, busy_timeout_ms=settings.store.busy_timeout_ms)
        try:
            database.init_schema()
        finally:
            database.close()
        return [_dump({"dbPath": str(settings.store.db_path), "status": "ready"})]


class CatalogCliController:
    """Coordinates skill catalog and developer commands."""

    def seed(self, command: CatalogSeedCommand) -> list[str]:
        payload = _load_json_file(command.file)
        if not isinstance(payload, dict):
            raise InvalidRequestError("Catalog file must contain a JSON object")
        with _services(command.db_path) as services:
            result = services.catalog.seed_catalog(payload)
        return [_dump(result.to_payload())]

    def skills(self, command: CatalogListCommand) -> list[str]:
        with _services(command.db_path) as services:
            skills = services.catalog.list_skills()
        return [_dump([skill.to_payload() for skill in skills])]

    def developers(self, command: CatalogListCommand) -> list[str]:
        with _services(command.db_path) as services:
            developers = services.catalog.list_developers()
        return [_dump([developer.to_payload() for developer in developers])]

    def developer(self, command: CatalogDeveloperCommand) -> list[str]:
        with _services(command.db_path) as services:
            developer = services.catalog.get_developer(command.developer_id)
        return [_dump(developer.to_payload())]


class TaskCliController:
    """Coordinates task admission, mutation and listing commands."""

    def create(self, command: TaskCreateCommand) -> list[str]:
        with _services(command.db_path) as services:
            detail = services.tasks.create_task(
                TaskCreate(
                    title=command.title,
                    skill_ids=list(command.skill_ids) or None,
                    developer_id=command.developer_id,
                    parent_task_id=command.parent_task_id,
                ),
            )
        return [_dump(detail.to_payload())]

    def create_tree(self, command: TaskCreateTreeCommand) -> TaskTreeCommandResult:
        payload = _load_json_file(command.file)
        if not isinstance(payload, dict):
            raise InvalidRequestError("Task tree file must contain a JSON object")
        try:
            root = TaskTreeNode.from_payload(payload)
        except (TypeError, ValueError) as error:
            raise InvalidRequestError(f"Invalid task tree: {error}") from error

        with _services(command.db_path) as services:
            result = create_task_tree(services.tasks, root)
        payload = {
            "created": [detail.to_payload() for detail in result.created],
            "failedTitle": result.failed_title,
            "error": str(result.error) if result.error is not None else None,
        }
        return TaskTreeCommandResult(lines=[_dump(payload)], error=result.error)

    def show(self, command: TaskShowCommand) -> list[str]:
        with _services(command.db_path) as services:
            detail = services.tasks.get_task(command.task_id)
        if detail is None:
            raise EntityNotFoundError("Task", command.task_id)
        return [_dump(detail.to_payload())]

    def update(self, command: TaskUpdateCommand) -> list[str]:
        update = TaskUpdate(
            status=command.status if command.status is not None else UNSET,
            developer_id=command.developer_id,
        )
        with _services(command.db_path) as services:
            detail = services.tasks.update_task(command.task_id, update)
        return [_dump(detail.to_payload())]

    def list_tasks(self, command: TaskListCommand) -> list[str]:
        with _services(command.db_path) as services:
            page = services.tasks.list_tasks(
                TaskListQuery(
                    page=command.page,
                    page_size=command.page_size or services.settings.listing.default_page_size,
                    status=command.status,
                    developer_id=command.developer_id,
                    skill_ids=command.skill_ids,
                    parent_only=command.parent_only,
                ),
            )
        return [_dump(page.to_payload())]

    def similar(self, command: TaskSimilarCommand) -> list[str]:
        with _services(command.db_path) as services:
            limit = command.limit or services.settings.prediction.similar_tasks_limit
            matches = services.finder.find_similar(command.title, limit=limit)
        return [_dump([match.to_payload() for match in matches])]


@contextmanager
def _services(db_path: Path | None) -> Iterator[_Services]:
    settings = Settings.from_env(db_path=db_path)
    settings.validate()
    database = Database(settings.store.db_path, busy_timeout_ms=settings.store.busy_timeout_ms)
    try:
        database.init_schema()
        skills = SkillRepository(database)
        developers = DeveloperRepository(database)
        tasks = TaskRepository(database)
        finder = SimilarityFinder(
            tasks,
            similarity_threshold=settings.prediction.similarity_threshold,
            word_similarity_threshold=settings.prediction.word_similarity_threshold,
        )
        predictor = SkillPredictor(
            oracle=build_oracle(settings.oracle),
            similarity_finder=finder,
            settings=settings.prediction,
        )
        yield _Services(
            settings=settings,
            tasks=TaskService(
                skills=skills,
                developers=developers,
                tasks=tasks,
                predictor=predictor,
            ),
            catalog=CatalogService(skills=skills, developers=developers),
            finder=finder,
        )
    finally:
        database.close()


def _load_json_file(path: Path) -> Any:
    try:
        return json.loads(path.read_text("utf-8"))
    except json.JSONDecodeError as error:
        raise InvalidRequestError(f"Invalid JSON in {path}: {error}") from error


def _dump(payload: Any) -> str:
    return json.dumps(payload, indent=2, ensure_ascii=False)
