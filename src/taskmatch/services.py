"""Use-case services for task admission, mutation, listing and the skill catalog."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from taskmatch.errors import (
    ConfigurationError,
    EntityNotFoundError,
    InvalidRequestError,
    TaskManagerError,
)
from taskmatch.models import (
    UNSET,
    DeveloperView,
    Page,
    Pagination,
    SkillView,
    TaskCreate,
    TaskDetail,
    TaskListItem,
    TaskListQuery,
    TaskStatus,
    TaskTreeNode,
    TaskTreeResult,
    TaskUpdate,
    TaskWrite,
)
from taskmatch.prediction.predictor import SkillPredictor
from taskmatch.storage.repository import DeveloperRepository, SkillRepository, TaskRepository
from taskmatch.storage.sqlmodel_models import TITLE_MAX_LENGTH

logger = logging.getLogger(__name__)

VALID_STATUSES = ", ".join(status.value for status in TaskStatus)


class TaskService:
    """Validates and applies task creation, updates and listings.

    Every validation step raises before anything is written.
    """

    def __init__(
        self,
        *,
        skills: SkillRepository,
        developers: DeveloperRepository,
        tasks: TaskRepository,
        predictor: SkillPredictor,
    ) -> None:
        self.skills = skills
        self.developers = developers
        self.tasks = tasks
        self.predictor = predictor

    def create_task(self, command: TaskCreate) -> TaskDetail:
        """Admit a new task in ``To-do`` status, predicting skills when none are given."""

        self._validate_title(command.title)
        skill_ids = list(command.skill_ids or [])
        if not skill_ids:
            skill_ids = self._predict_skill_ids(command.title)
        self._validate_unique_skill_ids(skill_ids)
        self._validate_skills_exist(skill_ids)
        if command.parent_task_id is not None and not self.tasks.exists_by_id(
            command.parent_task_id,
        ):
            raise EntityNotFoundError("Parent Task", command.parent_task_id)
        if command.developer_id is not None:
            self._validate_developer_covers(command.developer_id, skill_ids)

        detail = self.tasks.insert(
            TaskWrite(
                title=command.title,
                status=TaskStatus.TODO,
                skill_ids=skill_ids,
                developer_id=command.developer_id,
                parent_task_id=command.parent_task_id,
            ),
        )
        logger.info("Task created: id=%s title=%r skills=%s", detail.id, detail.title, skill_ids)
        return detail

    def get_task(self, task_id: int) -> TaskDetail | None:
        return self.tasks.load_detail(task_id)

    def update_task(self, task_id: int, update: TaskUpdate) -> TaskDetail:
        """Change status and/or developer of an existing task."""

        if not self.tasks.exists_by_id(task_id):
            raise EntityNotFoundError("Task", task_id)
        if update.is_empty:
            raise InvalidRequestError(
                "At least one field (developerId or status) must be provided for update",
            )
        if update.developer_id is not UNSET and update.developer_id is not None:
            self._validate_developer_covers(
                update.developer_id,
                self.tasks.skill_ids_for(task_id),
            )

        status: TaskStatus | None = None
        if update.status is not UNSET:
            status = self._validate_status(task_id, update.status)

        self.tasks.apply_update(task_id, status=status, developer_id=update.developer_id)
        detail = self.tasks.load_detail(task_id)
        if detail is None:
            raise EntityNotFoundError("Task", task_id)
        return detail

    def list_tasks(self, query: TaskListQuery) -> Page[TaskListItem]:
        if query.page < 1:
            raise InvalidRequestError("Page must be a positive integer")
        if query.page_size < 1:
            raise InvalidRequestError("Page size must be a positive integer")
        items, total = self.tasks.list_page(query)
        return Page(
            data=items,
            pagination=Pagination.build(
                page=query.page,
                page_size=query.page_size,
                total_items=total,
            ),
        )

    def _validate_title(self, title: str) -> None:
        if not title.strip():
            raise InvalidRequestError("Task title cannot be empty")
        if self.tasks.exists_by_title(title):
            raise InvalidRequestError(f'Task with title "{title}" already exists')
        if len(title) > TITLE_MAX_LENGTH:
            raise InvalidRequestError(
                f"Task title cannot exceed {TITLE_MAX_LENGTH} characters",
            )

    def _predict_skill_ids(self, title: str) -> list[int]:
        available = self.skills.list_all()
        if not available:
            raise ConfigurationError("No skills configured in the system. Please add skills first.")
        prediction = self.predictor.predict(title, available)
        ids_by_name = {skill.name: skill.id for skill in available}
        skill_ids = [
            ids_by_name[name] for name in prediction.skill_names if name in ids_by_name
        ]
        if not skill_ids:
            raise InvalidRequestError(
                "LLM could not determine valid skills. Please specify skills manually.",
            )
        logger.info(
            "Predicted skills for %r: %s (%s)",
            title,
            prediction.skill_names,
            prediction.reasoning,
        )
        return skill_ids

    @staticmethod
    def _validate_unique_skill_ids(skill_ids: Sequence[int]) -> None:
        if len(set(skill_ids)) != len(skill_ids):
            raise InvalidRequestError("Duplicate skill IDs are not allowed")

    def _validate_skills_exist(self, skill_ids: Sequence[int]) -> None:
        found = {skill.id for skill in self.skills.find_by_ids(skill_ids)}
        missing = [skill_id for skill_id in skill_ids if skill_id not in found]
        if missing:
            raise EntityNotFoundError(
                f"Skill(s) with ID(s) [{', '.join(str(skill_id) for skill_id in missing)}]",
                missing[0],
            )

    def _validate_developer_covers(self, developer_id: int, skill_ids: Sequence[int]) -> None:
        developer = self.developers.find_by_id(developer_id)
        if developer is None:
            raise EntityNotFoundError("Developer", developer_id)
        owned = developer.skill_ids
        missing = [skill_id for skill_id in skill_ids if skill_id not in owned]
        if missing:
            raise InvalidRequestError(
                f"Developer {developer.name} does not have required skill(s) with ID(s): "
                f"{', '.join(str(skill_id) for skill_id in missing)}",
            )

    def _validate_status(self, task_id: int, raw_status: str | None) -> TaskStatus:
        try:
            status = TaskStatus(raw_status)
        except ValueError:
            raise InvalidRequestError(
                f"Invalid status. Must be one of: {VALID_STATUSES}",
            ) from None
        if status is TaskStatus.DONE:
            incomplete = self.tasks.count_subtasks_not_in_status(task_id, TaskStatus.DONE)
            if incomplete > 0:
                raise InvalidRequestError(
                    f"Cannot mark task as Done. {incomplete} subtask(s) are not complete.",
                )
        return status


def create_task_tree(
    service: TaskService,
    node: TaskTreeNode,
    parent_task_id: int | None = None,
) -> TaskTreeResult:
    """Create ``node`` and its subtasks depth-first, parent before children.

    Stops at the first failure; tasks created before it are kept.
    """

    result = TaskTreeResult()
    _create_tree_node(service, node, parent_task_id, result)
    return result


def _create_tree_node(
    service: TaskService,
    node: TaskTreeNode,
    parent_task_id: int | None,
    result: TaskTreeResult,
) -> bool:
    try:
        detail = service.create_task(
            TaskCreate(
                title=node.title,
                skill_ids=node.skill_ids,
                developer_id=node.developer_id,
                parent_task_id=parent_task_id,
            ),
        )
    except TaskManagerError as error:
        logger.warning("Task tree creation stopped at %r: %s", node.title, error)
        result.failed_title = node.title
        result.error = error
        return False
    result.created.append(detail)
    for child in node.subtasks:
        if not _create_tree_node(service, child, detail.id, result):
            return False
    return True


@dataclass(slots=True)
class SeedResult:
    """Names inserted and skipped by a catalog seed."""

    skills_added: list[str] = field(default_factory=list)
    developers_added: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)

    def to_payload(self) -> dict[str, Any]:
        return {
            "skillsAdded": self.skills_added,
            "developersAdded": self.developers_added,
            "skipped": self.skipped,
        }


@dataclass(slots=True)
class _DeveloperSeed:
    name: str
    skill_names: list[str]


class CatalogService:
    """Read access to skills and developers plus out-of-band seeding."""

    def __init__(self, *, skills: SkillRepository, developers: DeveloperRepository) -> None:
        self.skills = skills
        self.developers = developers

    def list_skills(self) -> list[SkillView]:
        return self.skills.list_all(order_by_name=True)

    def get_skill(self, skill_id: int) -> SkillView | None:
        return self.skills.find_by_id(skill_id)

    def list_developers(self) -> list[DeveloperView]:
        return self.developers.list_all()

    def get_developer(self, developer_id: int) -> DeveloperView:
        developer = self.developers.find_by_id(developer_id)
        if developer is None:
            raise EntityNotFoundError("Developer", developer_id)
        return developer

    def seed_catalog(self, payload: Mapping[str, Any]) -> SeedResult:
        """Insert skills and developers that do not exist yet.

        Payload shape: ``{"skills": [name, ...], "developers": [{"name", "skills"}]}``.
        """

        skill_names = _string_list(payload.get("skills", []), "skills")
        developer_seeds = _developer_seeds(payload.get("developers", []))

        existing_skills = {skill.name for skill in self.skills.list_all()}
        known_skills = existing_skills | set(skill_names)
        for seed in developer_seeds:
            unknown = [name for name in seed.skill_names if name not in known_skills]
            if unknown:
                raise InvalidRequestError(
                    f"Unknown skill(s) for developer {seed.name}: {', '.join(unknown)}",
                )

        result = SeedResult()
        for name in dict.fromkeys(skill_names):
            if name in existing_skills:
                result.skipped.append(name)
                continue
            self.skills.add(name)
            result.skills_added.append(name)

        ids_by_name = {skill.name: skill.id for skill in self.skills.list_all()}
        for seed in developer_seeds:
            if self.developers.find_by_name(seed.name) is not None:
                result.skipped.append(seed.name)
                continue
            self.developers.add(seed.name, [ids_by_name[name] for name in seed.skill_names])
            result.developers_added.append(seed.name)

        logger.info(
            "Catalog seeded: skills_added=%d developers_added=%d skipped=%d",
            len(result.skills_added),
            len(result.developers_added),
            len(result.skipped),
        )
        return result


def _string_list(value: object, label: str) -> list[str]:
    if not isinstance(value, list) or not all(
        isinstance(item, str) and item.strip() for item in value
    ):
        raise InvalidRequestError(f"Catalog field {label!r} must be a list of non-empty names")
    return list(value)


def _developer_seeds(value: object) -> list[_DeveloperSeed]:
    if not isinstance(value, list):
        raise InvalidRequestError("Catalog field 'developers' must be a list")
    seeds: list[_DeveloperSeed] = []
    for item in value:
        if not isinstance(item, Mapping):
            raise InvalidRequestError("Each developer entry must be an object")
        name = item.get("name")
        if not isinstance(name, str) or not name.strip():
            raise InvalidRequestError("Each developer entry needs a non-empty name")
        seeds.append(
            _DeveloperSeed(
                name=name,
                skill_names=_string_list(item.get("skills", []), f"{name}.skills"),
            ),
        )
    return seeds
