"""Per-aggregate repositories for skills, developers and tasks."""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, col, select

from taskmatch.errors import EntityNotFoundError, InvalidRequestError
from taskmatch.models import (
    UNSET,
    DeveloperRef,
    DeveloperView,
    ParentTaskRef,
    SimilarTask,
    SkillView,
    TaskDetail,
    TaskListItem,
    TaskListQuery,
    TaskStatus,
    TaskWrite,
    _Unset,
)
from taskmatch.storage.common import to_db_datetime, to_utc_aware_datetime, utc_now
from taskmatch.storage.database import Database
from taskmatch.storage.sqlmodel_models import Developer, DeveloperSkill, Skill, Task, TaskSkill

DETAIL_SUBTASK_DEPTH = 2


class SkillRepository:
    """Skill catalog access."""

    def __init__(self, database: Database) -> None:
        self.database = database

    def list_all(self, *, order_by_name: bool = False) -> list[SkillView]:
        order = col(Skill.name).asc() if order_by_name else col(Skill.id).asc()
        with self.database.session() as session:
            rows = session.exec(select(Skill).order_by(order)).all()
            return [_to_skill_view(row) for row in rows]

    def find_by_id(self, skill_id: int) -> SkillView | None:
        with self.database.session() as session:
            row = session.get(Skill, skill_id)
            return _to_skill_view(row) if row is not None else None

    def find_by_ids(self, skill_ids: Iterable[int]) -> list[SkillView]:
        ids = list(skill_ids)
        if not ids:
            return []
        with self.database.session() as session:
            rows = session.exec(
                select(Skill).where(col(Skill.id).in_(ids)).order_by(col(Skill.id).asc()),
            ).all()
            return [_to_skill_view(row) for row in rows]

    def count(self) -> int:
        with self.database.session() as session:
            return int(session.exec(select(func.count()).select_from(Skill)).one())

    def add(self, name: str) -> SkillView:
        """Insert a catalog skill. Used for out-of-band seeding only."""

        with self.database.session() as session:
            row = Skill(name=name, created_at=to_db_datetime(utc_now()))
            session.add(row)
            session.commit()
            session.refresh(row)
            return _to_skill_view(row)


class DeveloperRepository:
    """Developer access with their skill sets."""

    def __init__(self, database: Database) -> None:
        self.database = database

    def list_all(self) -> list[DeveloperView]:
        with self.database.session() as session:
            rows = session.exec(select(Developer).order_by(col(Developer.name).asc())).all()
            skills = _skills_by_developer(session, [_row_id(row) for row in rows])
            return [_to_developer_view(row, skills.get(_row_id(row), [])) for row in rows]

    def find_by_id(self, developer_id: int) -> DeveloperView | None:
        with self.database.session() as session:
            row = session.get(Developer, developer_id)
            if row is None:
                return None
            skills = _skills_by_developer(session, [developer_id])
            return _to_developer_view(row, skills.get(developer_id, []))

    def find_by_name(self, name: str) -> DeveloperView | None:
        with self.database.session() as session:
            row = session.exec(select(Developer).where(Developer.name == name)).one_or_none()
            if row is None:
                return None
            skills = _skills_by_developer(session, [_row_id(row)])
            return _to_developer_view(row, skills.get(_row_id(row), []))

    def add(self, name: str, skill_ids: Iterable[int]) -> DeveloperView:
        """Insert a developer with skills. Used for out-of-band seeding only."""

        now = to_db_datetime(utc_now())
        with self.database.session() as session:
            row = Developer(name=name, created_at=now, updated_at=now)
            session.add(row)
            session.flush()
            developer_id = _row_id(row)
            for skill_id in dict.fromkeys(skill_ids):
                session.add(DeveloperSkill(developer_id=developer_id, skill_id=skill_id))
            session.commit()
            session.refresh(row)
            skills = _skills_by_developer(session, [developer_id])
            return _to_developer_view(row, skills.get(developer_id, []))


class TaskRepository:
    """Task persistence, detail trees, listings and the similarity corpus."""

    def __init__(self, database: Database) -> None:
        self.database = database

    def exists_by_id(self, task_id: int) -> bool:
        with self.database.session() as session:
            return session.get(Task, task_id) is not None

    def exists_by_title(self, title: str) -> bool:
        with self.database.session() as session:
            row = session.exec(select(Task.id).where(Task.title == title)).first()
            return row is not None

    def skill_ids_for(self, task_id: int) -> list[int]:
        with self.database.session() as session:
            rows = session.exec(
                select(TaskSkill.skill_id)
                .where(TaskSkill.task_id == task_id)
                .order_by(col(TaskSkill.skill_id).asc()),
            ).all()
            return [int(skill_id) for skill_id in rows]

    def count_subtasks_not_in_status(self, parent_task_id: int, status: TaskStatus) -> int:
        """Count direct subtasks whose status differs from ``status``."""

        with self.database.session() as session:
            return int(
                session.exec(
                    select(func.count())
                    .select_from(Task)
                    .where(
                        Task.parent_task_id == parent_task_id,
                        Task.status != status.value,
                    ),
                ).one(),
            )

    def insert(self, record: TaskWrite) -> TaskDetail:
        """Persist a validated task; the returned view has no parent summary or subtasks."""

        now = to_db_datetime(utc_now())
        with self.database.session() as session:
            row = Task(
                title=record.title,
                status=record.status.value,
                developer_id=record.developer_id,
                parent_task_id=record.parent_task_id,
                created_at=now,
                updated_at=now,
            )
            session.add(row)
            try:
                session.flush()
            except IntegrityError as error:
                session.rollback()
                if _is_unique_title_violation(error):
                    raise InvalidRequestError(
                        f'Task with title "{record.title}" already exists',
                    ) from error
                raise
            task_id = _row_id(row)
            for skill_id in record.skill_ids:
                session.add(TaskSkill(task_id=task_id, skill_id=skill_id))
            session.commit()
            session.refresh(row)

            skills = _skills_by_task(session, [task_id])
            developers = _developer_refs(session, _developer_ids([row]))
            return _to_task_detail(
                row,
                skills=skills.get(task_id, []),
                developer=developers.get(row.developer_id) if row.developer_id else None,
                subtasks=[],
            )

    def apply_update(
        self,
        task_id: int,
        *,
        status: TaskStatus | None,
        developer_id: int | None | _Unset,
    ) -> None:
        """Apply status and/or developer change. ``developer_id=None`` unassigns."""

        with self.database.session() as session:
            row = session.get(Task, task_id)
            if row is None:
                raise EntityNotFoundError("Task", task_id)
            if status is not None:
                row.status = status.value
            if developer_id is not UNSET:
                row.developer_id = developer_id
            row.updated_at = to_db_datetime(utc_now())
            session.add(row)
            session.commit()

    def load_detail(
        self,
        task_id: int,
        *,
        max_depth: int = DETAIL_SUBTASK_DEPTH,
    ) -> TaskDetail | None:
        """Load a task with its parent summary and subtasks up to ``max_depth`` levels."""

        with self.database.session() as session:
            root = session.get(Task, task_id)
            if root is None:
                return None

            rows_by_id: dict[int, Task] = {task_id: root}
            children: dict[int, list[int]] = defaultdict(list)
            frontier = [task_id]
            for _ in range(max_depth):
                if not frontier:
                    break
                level = session.exec(
                    select(Task)
                    .where(col(Task.parent_task_id).in_(frontier))
                    .order_by(col(Task.id).asc()),
                ).all()
                frontier = []
                for child in level:
                    child_id = _row_id(child)
                    if child_id in rows_by_id:
                        continue
                    rows_by_id[child_id] = child
                    children[int(child.parent_task_id or 0)].append(child_id)
                    frontier.append(child_id)

            skills = _skills_by_task(session, list(rows_by_id))
            developers = _developer_refs(session, _developer_ids(rows_by_id.values()))

            def build(node_id: int, depth: int) -> TaskDetail:
                row = rows_by_id[node_id]
                return _to_task_detail(
                    row,
                    skills=skills.get(node_id, []),
                    developer=developers.get(row.developer_id) if row.developer_id else None,
                    subtasks=(
                        [build(child_id, depth - 1) for child_id in children[node_id]]
                        if depth > 0
                        else []
                    ),
                )

            detail = build(task_id, max_depth)
            if root.parent_task_id is not None:
                parent = session.get(Task, root.parent_task_id)
                if parent is not None:
                    detail.parent_task = ParentTaskRef(
                        id=_row_id(parent),
                        title=parent.title,
                        status=TaskStatus(parent.status),
                    )
            return detail

    def list_page(self, query: TaskListQuery) -> tuple[list[TaskListItem], int]:
        """Return one page of list rows plus the total number of matching tasks."""

        statement = select(Task)
        if query.parent_only:
            statement = statement.where(col(Task.parent_task_id).is_(None))
        if query.status:
            statement = statement.where(Task.status == query.status)
        if query.developer_id is not None:
            statement = statement.where(Task.developer_id == query.developer_id)
        if query.skill_ids:
            statement = statement.where(
                col(Task.id).in_(
                    select(TaskSkill.task_id).where(
                        col(TaskSkill.skill_id).in_(list(query.skill_ids)),
                    ),
                ),
            )

        skip = (query.page - 1) * query.page_size
        with self.database.session() as session:
            total = int(
                session.exec(select(func.count()).select_from(statement.subquery())).one(),
            )
            rows = session.exec(
                statement.order_by(col(Task.created_at).desc(), col(Task.id).desc())
                .offset(skip)
                .limit(query.page_size),
            ).all()

            task_ids = [_row_id(row) for row in rows]
            skills = _skills_by_task(session, task_ids)
            developers = _developer_refs(session, _developer_ids(rows))
            subtask_counts = _subtask_counts(session, task_ids)
            items = [
                TaskListItem(
                    id=_row_id(row),
                    title=row.title,
                    status=TaskStatus(row.status),
                    skills=skills.get(_row_id(row), []),
                    developer=developers.get(row.developer_id) if row.developer_id else None,
                    parent_task_id=row.parent_task_id,
                    subtask_count=subtask_counts.get(_row_id(row), 0),
                    created_at=to_utc_aware_datetime(row.created_at),
                    updated_at=to_utc_aware_datetime(row.updated_at),
                )
                for row in rows
            ]
            return items, total

    def list_with_skills(self) -> list[SimilarTask]:
        """All task titles with their skills, in store order, for similarity search."""

        with self.database.session() as session:
            rows = session.exec(select(Task).order_by(col(Task.id).asc())).all()
            skills = _skills_by_task(session, [_row_id(row) for row in rows])
            return [
                SimilarTask(id=_row_id(row), title=row.title, skills=skills.get(_row_id(row), []))
                for row in rows
            ]


def _row_id(row: Skill | Developer | Task) -> int:
    if row.id is None:
        raise RuntimeError(f"{type(row).__name__} row has no primary key yet.")
    return int(row.id)


def _developer_ids(rows: Iterable[Task]) -> set[int]:
    return {int(row.developer_id) for row in rows if row.developer_id is not None}


def _skills_by_task(session: Session, task_ids: list[int]) -> dict[int, list[SkillView]]:
    if not task_ids:
        return {}
    rows = session.exec(
        select(TaskSkill.task_id, Skill.id, Skill.name)
        .join(Skill, col(TaskSkill.skill_id) == col(Skill.id))
        .where(col(TaskSkill.task_id).in_(task_ids))
        .order_by(col(Skill.id).asc()),
    ).all()
    grouped: dict[int, list[SkillView]] = defaultdict(list)
    for task_id, skill_id, name in rows:
        grouped[int(task_id)].append(SkillView(id=int(skill_id), name=name))
    return grouped


def _skills_by_developer(
    session: Session,
    developer_ids: list[int],
) -> dict[int, list[SkillView]]:
    if not developer_ids:
        return {}
    rows = session.exec(
        select(DeveloperSkill.developer_id, Skill.id, Skill.name)
        .join(Skill, col(DeveloperSkill.skill_id) == col(Skill.id))
        .where(col(DeveloperSkill.developer_id).in_(developer_ids))
        .order_by(col(Skill.id).asc()),
    ).all()
    grouped: dict[int, list[SkillView]] = defaultdict(list)
    for developer_id, skill_id, name in rows:
        grouped[int(developer_id)].append(SkillView(id=int(skill_id), name=name))
    return grouped


def _developer_refs(session: Session, developer_ids: set[int]) -> dict[int, DeveloperRef]:
    if not developer_ids:
        return {}
    rows = session.exec(
        select(Developer).where(col(Developer.id).in_(sorted(developer_ids))),
    ).all()
    return {_row_id(row): DeveloperRef(id=_row_id(row), name=row.name) for row in rows}


def _subtask_counts(session: Session, task_ids: list[int]) -> dict[int, int]:
    if not task_ids:
        return {}
    rows = session.exec(
        select(Task.parent_task_id, func.count())
        .where(col(Task.parent_task_id).in_(task_ids))
        .group_by(col(Task.parent_task_id)),
    ).all()
    return {int(parent_id): int(count) for parent_id, count in rows}


def _is_unique_title_violation(error: IntegrityError) -> bool:
    message = str(error.orig).lower()
    return "unique" in message and "tasks.title" in message


def _to_skill_view(row: Skill) -> SkillView:
    return SkillView(id=_row_id(row), name=row.name)


def _to_developer_view(row: Developer, skills: list[SkillView]) -> DeveloperView:
    return DeveloperView(
        id=_row_id(row),
        name=row.name,
        skills=skills,
        created_at=to_utc_aware_datetime(row.created_at),
        updated_at=to_utc_aware_datetime(row.updated_at),
    )


def _to_task_detail(
    row: Task,
    *,
    skills: list[SkillView],
    developer: DeveloperRef | None,
    subtasks: list[TaskDetail],
) -> TaskDetail:
    return TaskDetail(
        id=_row_id(row),
        title=row.title,
        status=TaskStatus(row.status),
        skills=skills,
        developer=developer,
        parent_task=None,
        subtasks=subtasks,
        created_at=to_utc_aware_datetime(row.created_at),
        updated_at=to_utc_aware_datetime(row.updated_at),
    )
