"""Domain models for tasks, developers, skills and skill prediction."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Generic, TypeVar

from taskmatch.errors import TaskManagerError

T = TypeVar("T")


class TaskStatus(str, Enum):
    """Task lifecycle states."""

    TODO = "To-do"
    IN_PROGRESS = "In Progress"
    DONE = "Done"


class _Unset(Enum):
    UNSET = "unset"


UNSET = _Unset.UNSET
"""Marks an update field the caller did not send, as opposed to an explicit ``None``."""


@dataclass(slots=True)
class SkillView:
    """Skill catalog entry."""

    id: int
    name: str

    def to_payload(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name}


@dataclass(slots=True)
class DeveloperRef:
    """Short developer reference embedded in task views."""

    id: int
    name: str

    def to_payload(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name}


@dataclass(slots=True)
class DeveloperView:
    """Developer with the skills that make them eligible for tasks."""

    id: int
    name: str
    skills: list[SkillView]
    created_at: datetime
    updated_at: datetime

    @property
    def skill_ids(self) -> set[int]:
        return {skill.id for skill in self.skills}

    def to_payload(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "skills": [skill.to_payload() for skill in self.skills],
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
        }


@dataclass(slots=True)
class ParentTaskRef:
    """Immediate parent summary shown in task details."""

    id: int
    title: str
    status: TaskStatus

    def to_payload(self) -> dict[str, Any]:
        return {"id": self.id, "title": self.title, "status": self.status.value}


@dataclass(slots=True)
class TaskDetail:
    """Full task view with relations and a depth-bounded subtask tree."""

    id: int
    title: str
    status: TaskStatus
    skills: list[SkillView]
    developer: DeveloperRef | None
    parent_task: ParentTaskRef | None
    subtasks: list[TaskDetail]
    created_at: datetime
    updated_at: datetime

    def to_payload(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "status": self.status.value,
            "skills": [skill.to_payload() for skill in self.skills],
            "developer": self.developer.to_payload() if self.developer is not None else None,
            "parentTask": (
                self.parent_task.to_payload() if self.parent_task is not None else None
            ),
            "subtasks": [subtask.to_payload() for subtask in self.subtasks],
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
        }


@dataclass(slots=True)
class TaskListItem:
    """Task row for paginated listings."""

    id: int
    title: str
    status: TaskStatus
    skills: list[SkillView]
    developer: DeveloperRef | None
    parent_task_id: int | None
    subtask_count: int
    created_at: datetime
    updated_at: datetime

    def to_payload(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "status": self.status.value,
            "skills": [skill.to_payload() for skill in self.skills],
            "developer": self.developer.to_payload() if self.developer is not None else None,
            "parentTaskId": self.parent_task_id,
            "subtaskCount": self.subtask_count,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
        }


@dataclass(slots=True)
class Pagination:
    """Pagination metadata for a listing page."""

    page: int
    page_size: int
    total_items: int
    total_pages: int
    has_next: bool
    has_previous: bool

    @classmethod
    def build(cls, *, page: int, page_size: int, total_items: int) -> Pagination:
        return cls(
            page=page,
            page_size=page_size,
            total_items=total_items,
            total_pages=math.ceil(total_items / page_size),
            has_next=page * page_size < total_items,
            has_previous=page > 1,
        )

    def to_payload(self) -> dict[str, Any]:
        return {
            "page": self.page,
            "pageSize": self.page_size,
            "totalItems": self.total_items,
            "totalPages": self.total_pages,
            "hasNext": self.has_next,
            "hasPrevious": self.has_previous,
        }


@dataclass(slots=True)
class Page(Generic[T]):
    """Paginated envelope."""

    data: list[T]
    pagination: Pagination

    def to_payload(self) -> dict[str, Any]:
        return {
            "data": [item.to_payload() for item in self.data],  # type: ignore[attr-defined]
            "pagination": self.pagination.to_payload(),
        }


@dataclass(slots=True)
class TaskCreate:
    """Input payload for task admission."""

    title: str
    skill_ids: list[int] | None = None
    developer_id: int | None = None
    parent_task_id: int | None = None


@dataclass(slots=True)
class TaskUpdate:
    """Partial update; fields left as ``UNSET`` are not touched."""

    status: str | None | _Unset = UNSET
    developer_id: int | None | _Unset = UNSET

    @property
    def is_empty(self) -> bool:
        return self.status is UNSET and self.developer_id is UNSET


@dataclass(slots=True)
class TaskWrite:
    """Validated task record ready for persistence."""

    title: str
    status: TaskStatus
    skill_ids: list[int]
    developer_id: int | None
    parent_task_id: int | None


@dataclass(slots=True)
class TaskListQuery:
    """Filters and paging for task listings. Filters are AND-combined."""

    page: int = 1
    page_size: int = 10
    status: str | None = None
    developer_id: int | None = None
    skill_ids: tuple[int, ...] = ()
    parent_only: bool = False


@dataclass(slots=True)
class SimilarTask:
    """Historical task used as evidence for skill prediction."""

    id: int
    title: str
    skills: list[SkillView]

    def to_payload(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "skills": [skill.to_payload() for skill in self.skills],
        }


@dataclass(slots=True)
class SkillPrediction:
    """Predicted skill names with per-skill confidence."""

    skill_names: list[str]
    confidence: dict[str, float] = field(default_factory=dict)
    reasoning: str = ""


@dataclass(slots=True)
class TaskTreeNode:
    """Task with nested subtasks to be created parent-first."""

    title: str
    skill_ids: list[int] | None = None
    developer_id: int | None = None
    subtasks: list[TaskTreeNode] = field(default_factory=list)

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> TaskTreeNode:
        title = payload.get("title")
        if not isinstance(title, str):
            raise TypeError("task tree node title must be a string")
        skill_ids = payload.get("skillIds")
        if skill_ids is not None and not isinstance(skill_ids, list):
            raise TypeError("task tree node skillIds must be an array")
        raw_subtasks = payload.get("subtasks") or []
        if not isinstance(raw_subtasks, list):
            raise TypeError("task tree node subtasks must be an array")
        return cls(
            title=title,
            skill_ids=[int(value) for value in skill_ids] if skill_ids is not None else None,
            developer_id=payload.get("developerId"),
            subtasks=[cls.from_payload(item) for item in raw_subtasks],
        )


@dataclass(slots=True)
class TaskTreeResult:
    """Outcome of tree creation; ancestors created before a failure are kept."""

    created: list[TaskDetail] = field(default_factory=list)
    failed_title: str | None = None
    error: TaskManagerError | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None
