from __future__ import annotations

import json
from pathlib import Path

import allure
from click.testing import CliRunner

from taskmatch import __version__
from taskmatch.main import taskmatch

pytestmark = [
    allure.epic("CLI"),
    allure.feature("Task and Catalog Commands"),
]

CATALOG = {
    "skills": ["Frontend", "Backend"],
    "developers": [
        {"name": "Alice", "skills": ["Frontend"]},
        {"name": "Bob", "skills": ["Backend"]},
    ],
}


def _extract_json(output: str):
    """Decode the first JSON document in CLI output that may include log lines."""
    starts = [index for index in (output.find("{"), output.find("[")) if index >= 0]
    document, _ = json.JSONDecoder().raw_decode(output[min(starts) :])
    return document


def _seeded(tmp_path: Path, runner: CliRunner) -> Path:
    db_path = tmp_path / "cli.db"
    catalog_file = tmp_path / "catalog.json"
    catalog_file.write_text(json.dumps(CATALOG), "utf-8")
    result = runner.invoke(
        taskmatch,
        ["catalog", "seed", str(catalog_file), "--db-path", str(db_path)],
    )
    assert result.exit_code == 0, result.output
    return db_path


def test_version() -> None:
    result = CliRunner().invoke(taskmatch, ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.output


def test_db_init_creates_schema(tmp_path: Path) -> None:
    db_path = tmp_path / "init.db"

    result = CliRunner().invoke(taskmatch, ["db", "init", "--db-path", str(db_path)])

    assert result.exit_code == 0, result.output
    assert _extract_json(result.output) == {"dbPath": str(db_path), "status": "ready"}
    assert db_path.exists()


def test_catalog_listing(tmp_path: Path) -> None:
    runner = CliRunner()
    db_path = _seeded(tmp_path, runner)

    skills = runner.invoke(taskmatch, ["catalog", "skills", "--db-path", str(db_path)])
    developers = runner.invoke(taskmatch, ["catalog", "developers", "--db-path", str(db_path)])
    missing = runner.invoke(taskmatch, ["catalog", "developer", "42", "--db-path", str(db_path)])

    assert [skill["name"] for skill in _extract_json(skills.output)] == ["Backend", "Frontend"]
    assert [developer["name"] for developer in _extract_json(developers.output)] == [
        "Alice",
        "Bob",
    ]
    assert missing.exit_code == 1
    assert "entity_not_found" in missing.output


def test_create_show_update_and_list_flow(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv("TASKMATCH_LLM_ENABLED", "false")
    runner = CliRunner()
    db_path = _seeded(tmp_path, runner)
    db = ["--db-path", str(db_path)]

    created = runner.invoke(taskmatch, ["tasks", "create", "Build login page", *db])
    assert created.exit_code == 0, created.output
    task = _extract_json(created.output)
    assert task["status"] == "To-do"
    assert [skill["name"] for skill in task["skills"]] == ["Frontend"]
    assert task["parentTask"] is None

    child = runner.invoke(
        taskmatch,
        [
            "tasks",
            "create",
            "Login form validation",
            "--skill-id",
            "1",
            "--parent-id",
            str(task["id"]),
            *db,
        ],
    )
    assert child.exit_code == 0, child.output
    child_id = _extract_json(child.output)["id"]

    blocked = runner.invoke(
        taskmatch,
        ["tasks", "update", str(task["id"]), "--status", "Done", *db],
    )
    assert blocked.exit_code == 1
    assert "invalid_request" in blocked.output
    assert "subtask(s)" in blocked.output

    assigned = runner.invoke(
        taskmatch,
        ["tasks", "update", str(child_id), "--status", "Done", "--developer-id", "1", *db],
    )
    assert assigned.exit_code == 0, assigned.output
    assert _extract_json(assigned.output)["developer"] == {"id": 1, "name": "Alice"}

    unassigned = runner.invoke(taskmatch, ["tasks", "update", str(child_id), "--unassign", *db])
    assert _extract_json(unassigned.output)["developer"] is None

    shown = runner.invoke(taskmatch, ["tasks", "show", str(task["id"]), *db])
    detail = _extract_json(shown.output)
    assert [subtask["title"] for subtask in detail["subtasks"]] == ["Login form validation"]

    listed = runner.invoke(taskmatch, ["tasks", "list", "--page-size", "1", "--parent-only", *db])
    page = _extract_json(listed.output)
    assert [row["title"] for row in page["data"]] == ["Build login page"]
    assert page["data"][0]["subtaskCount"] == 1
    assert page["pagination"] == {
        "page": 1,
        "pageSize": 1,
        "totalItems": 1,
        "totalPages": 1,
        "hasNext": False,
        "hasPrevious": False,
    }

    similar = runner.invoke(taskmatch, ["tasks", "similar", "login page", *db])
    assert [row["title"] for row in _extract_json(similar.output)][0] == "Build login page"


def test_create_reports_validation_errors_with_kind(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv("TASKMATCH_LLM_ENABLED", "false")
    runner = CliRunner()
    db_path = _seeded(tmp_path, runner)
    db = ["--db-path", str(db_path)]

    runner.invoke(taskmatch, ["tasks", "create", "Unique", "--skill-id", "1", *db])
    duplicate = runner.invoke(taskmatch, ["tasks", "create", "Unique", "--skill-id", "1", *db])
    lacking = runner.invoke(
        taskmatch,
        ["tasks", "create", "Full stack", "--skill-id", "1", "--skill-id", "2"]
        + ["--developer-id", "1", *db],
    )
    missing = runner.invoke(taskmatch, ["tasks", "show", "999", *db])

    assert duplicate.exit_code == 1
    assert "invalid_request" in duplicate.output
    assert "already exists" in duplicate.output
    assert lacking.exit_code == 1
    assert "Alice" in lacking.output
    assert missing.exit_code == 1
    assert "entity_not_found" in missing.output


def test_create_predicts_skills_with_echo_agent(tmp_path: Path, echo_agent) -> None:
    runner = CliRunner()
    db_path = _seeded(tmp_path, runner)

    result = runner.invoke(
        taskmatch,
        ["tasks", "create", "Backend cache warmup", "--db-path", str(db_path)],
    )

    assert result.exit_code == 0, result.output
    assert [skill["name"] for skill in _extract_json(result.output)["skills"]] == ["Backend"]


def test_create_tree_reports_partial_success(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv("TASKMATCH_LLM_ENABLED", "false")
    runner = CliRunner()
    db_path = _seeded(tmp_path, runner)
    tree_file = tmp_path / "tree.json"
    tree_file.write_text(
        json.dumps(
            {
                "title": "Checkout",
                "skillIds": [1, 2],
                "subtasks": [
                    {"title": "Cart UI", "skillIds": [1]},
                    {"title": "Payment API", "skillIds": [99]},
                ],
            },
        ),
        "utf-8",
    )

    result = runner.invoke(
        taskmatch,
        ["tasks", "create-tree", str(tree_file), "--db-path", str(db_path)],
    )

    assert result.exit_code == 1
    report = _extract_json(result.output)
    assert [task["title"] for task in report["created"]] == ["Checkout", "Cart UI"]
    assert report["failedTitle"] == "Payment API"
    assert "entity_not_found" in result.output


def test_update_rejects_conflicting_developer_flags(tmp_path: Path) -> None:
    result = CliRunner().invoke(
        taskmatch,
        ["tasks", "update", "1", "--developer-id", "2", "--unassign"]
        + ["--db-path", str(tmp_path / "x.db")],
    )

    assert result.exit_code == 2
    assert "mutually exclusive" in result.output


def test_invalid_configuration_is_reported(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv("TASKMATCH_DEFAULT_PAGE_SIZE", "0")

    result = CliRunner().invoke(taskmatch, ["tasks", "list", "--db-path", str(tmp_path / "c.db")])

    assert result.exit_code == 1
    assert "configuration_error" in result.output
