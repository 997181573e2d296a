"""CLI entrypoint for taskmatch."""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import rich_click as click

from taskmatch import __version__
from taskmatch.controllers import (
    CatalogCliController,
    CatalogDeveloperCommand,
    CatalogListCommand,
    CatalogSeedCommand,
    DatabaseCliController,
    DbInitCommand,
    TaskCliController,
    TaskCreateCommand,
    TaskCreateTreeCommand,
    TaskListCommand,
    TaskShowCommand,
    TaskSimilarCommand,
    TaskUpdateCommand,
)
from taskmatch.errors import TaskManagerError
from taskmatch.models import UNSET, TaskStatus

click.rich_click.USE_MARKDOWN = True
DATABASE_CONTROLLER = DatabaseCliController()
CATALOG_CONTROLLER = CatalogCliController()
TASK_CONTROLLER = TaskCliController()

logger = logging.getLogger(__name__)

_DB_PATH_HELP = "SQLite DB path. Defaults to TASKMATCH_DB_PATH or .taskmatch.db."


@click.group()
@click.version_option(version=__version__, prog_name="taskmatch")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    show_default=True,
    help="Logging verbosity (logs go to stderr).",
)
def taskmatch(log_level: str) -> None:
    """Skill-based task assignment CLI."""

    logging.basicConfig(
        level=log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@taskmatch.group()
def db() -> None:
    """Database commands."""


@db.command("init")
@click.option("--db-path", type=click.Path(path_type=Path), default=None, help=_DB_PATH_HELP)
def db_init(db_path: Path | None) -> None:
    """Create or upgrade the database schema."""

    with _cli_errors():
        _emit_lines(DATABASE_CONTROLLER.init(DbInitCommand(db_path=db_path)))


@taskmatch.group()
def catalog() -> None:
    """Skill and developer catalog commands."""


@catalog.command("seed")
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--db-path", type=click.Path(path_type=Path), default=None, help=_DB_PATH_HELP)
def catalog_seed(file: Path, db_path: Path | None) -> None:
    """Insert skills and developers from a JSON file, skipping existing names.

    File shape: `{"skills": [names], "developers": [{"name": "Alice", "skills": [names]}]}`
    """

    with _cli_errors():
        _emit_lines(CATALOG_CONTROLLER.seed(CatalogSeedCommand(db_path=db_path, file=file)))


@catalog.command("skills")
@click.option("--db-path", type=click.Path(path_type=Path), default=None, help=_DB_PATH_HELP)
def catalog_skills(db_path: Path | None) -> None:
    """List skills ordered by name."""

    with _cli_errors():
        _emit_lines(CATALOG_CONTROLLER.skills(CatalogListCommand(db_path=db_path)))


@catalog.command("developers")
@click.option("--db-path", type=click.Path(path_type=Path), default=None, help=_DB_PATH_HELP)
def catalog_developers(db_path: Path | None) -> None:
    """List developers with their skills, ordered by name."""

    with _cli_errors():
        _emit_lines(CATALOG_CONTROLLER.developers(CatalogListCommand(db_path=db_path)))


@catalog.command("developer")
@click.argument("developer_id", type=int)
@click.option("--db-path", type=click.Path(path_type=Path), default=None, help=_DB_PATH_HELP)
def catalog_developer(developer_id: int, db_path: Path | None) -> None:
    """Show one developer."""

    with _cli_errors():
        _emit_lines(
            CATALOG_CONTROLLER.developer(
                CatalogDeveloperCommand(db_path=db_path, developer_id=developer_id),
            ),
        )


@taskmatch.group()
def tasks() -> None:
    """Task commands."""


@tasks.command("create")
@click.argument("title")
@click.option(
    "--skill-id",
    "skill_ids",
    type=int,
    multiple=True,
    help="Required skill id. Can be repeated. If omitted, skills are predicted from the title.",
)
@click.option("--developer-id", type=int, default=None, help="Assign a developer.")
@click.option("--parent-id", "parent_task_id", type=int, default=None, help="Parent task id.")
@click.option("--db-path", type=click.Path(path_type=Path), default=None, help=_DB_PATH_HELP)
def tasks_create(
    title: str,
    skill_ids: tuple[int, ...],
    developer_id: int | None,
    parent_task_id: int | None,
    db_path: Path | None,
) -> None:
    """Create a task in To-do status."""

    with _cli_errors():
        _emit_lines(
            TASK_CONTROLLER.create(
                TaskCreateCommand(
                    db_path=db_path,
                    title=title,
                    skill_ids=skill_ids,
                    developer_id=developer_id,
                    parent_task_id=parent_task_id,
                ),
            ),
        )


@tasks.command("create-tree")
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--db-path", type=click.Path(path_type=Path), default=None, help=_DB_PATH_HELP)
def tasks_create_tree(file: Path, db_path: Path | None) -> None:
    """Create a task with nested subtasks from a JSON file, parent first.

    File shape: `{"title": "...", "skillIds": [1], "developerId": 2, "subtasks": [...]}`
    """

    with _cli_errors():
        result = TASK_CONTROLLER.create_tree(TaskCreateTreeCommand(db_path=db_path, file=file))
        _emit_lines(result.lines)
        if result.error is not None:
            raise result.error


@tasks.command("show")
@click.argument("task_id", type=int)
@click.option("--db-path", type=click.Path(path_type=Path), default=None, help=_DB_PATH_HELP)
def tasks_show(task_id: int, db_path: Path | None) -> None:
    """Show a task with its parent and two levels of subtasks."""

    with _cli_errors():
        _emit_lines(TASK_CONTROLLER.show(TaskShowCommand(db_path=db_path, task_id=task_id)))


@tasks.command("update")
@click.argument("task_id", type=int)
@click.option("--status", default=None, help="New status: To-do, In Progress or Done.")
@click.option("--developer-id", type=int, default=None, help="Assign a developer.")
@click.option(
    "--unassign",
    is_flag=True,
    default=False,
    help="Remove the assigned developer.",
)
@click.option("--db-path", type=click.Path(path_type=Path), default=None, help=_DB_PATH_HELP)
def tasks_update(
    task_id: int,
    status: str | None,
    developer_id: int | None,
    unassign: bool,
    db_path: Path | None,
) -> None:
    """Update task status and/or developer."""

    if unassign and developer_id is not None:
        raise click.UsageError("--developer-id and --unassign are mutually exclusive.")
    if unassign:
        developer = None
    elif developer_id is not None:
        developer = developer_id
    else:
        developer = UNSET
    with _cli_errors():
        _emit_lines(
            TASK_CONTROLLER.update(
                TaskUpdateCommand(
                    db_path=db_path,
                    task_id=task_id,
                    status=status,
                    developer_id=developer,
                ),
            ),
        )


@tasks.command("list")
@click.option("--page", type=int, default=1, show_default=True, help="1-based page number.")
@click.option(
    "--page-size",
    type=int,
    default=None,
    help="Rows per page. Defaults to TASKMATCH_DEFAULT_PAGE_SIZE (10).",
)
@click.option(
    "--status",
    type=click.Choice([status.value for status in TaskStatus]),
    default=None,
    help="Only tasks in this status.",
)
@click.option("--developer-id", type=int, default=None, help="Only tasks of this developer.")
@click.option(
    "--skill-id",
    "skill_ids",
    type=int,
    multiple=True,
    help="Only tasks requiring any of these skills. Can be repeated.",
)
@click.option(
    "--parent-only/--all-levels",
    default=False,
    show_default=True,
    help="Only top-level tasks.",
)
@click.option("--db-path", type=click.Path(path_type=Path), default=None, help=_DB_PATH_HELP)
def tasks_list(  # noqa: PLR0913
    page: int,
    page_size: int | None,
    status: str | None,
    developer_id: int | None,
    skill_ids: tuple[int, ...],
    parent_only: bool,
    db_path: Path | None,
) -> None:
    """List tasks newest first with pagination."""

    with _cli_errors():
        _emit_lines(
            TASK_CONTROLLER.list_tasks(
                TaskListCommand(
                    db_path=db_path,
                    page=page,
                    page_size=page_size,
                    status=status,
                    developer_id=developer_id,
                    skill_ids=skill_ids,
                    parent_only=parent_only,
                ),
            ),
        )


@tasks.command("similar")
@click.argument("title")
@click.option(
    "--limit",
    type=click.IntRange(min=1, max=100),
    default=None,
    help="Max matches. Defaults to TASKMATCH_SIMILAR_TASKS_LIMIT (5).",
)
@click.option("--db-path", type=click.Path(path_type=Path), default=None, help=_DB_PATH_HELP)
def tasks_similar(title: str, limit: int | None, db_path: Path | None) -> None:
    """Show stored tasks with titles similar to TITLE."""

    with _cli_errors():
        _emit_lines(
            TASK_CONTROLLER.similar(TaskSimilarCommand(db_path=db_path, title=title, limit=limit)),
        )


@contextmanager
def _cli_errors() -> Iterator[None]:
    try:
        yield
    except TaskManagerError as error:
        raise click.ClickException(f"{error.kind}: {error}") from error
    except ValueError as error:
        raise click.ClickException(f"configuration_error: {error}") from error
    except click.ClickException:
        raise
    except Exception as error:
        logger.exception("Unexpected failure")
        raise click.ClickException("internal_error: unexpected failure") from error


def _emit_lines(lines: list[str]) -> None:
    for line in lines:
        click.echo(line)


if __name__ == "__main__":  # pragma: no cover
    taskmatch()
