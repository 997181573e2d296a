from __future__ import annotations

import json
import sys
from pathlib import Path

import allure
import pytest

from taskmatch.config import OracleSettings
from taskmatch.oracle import CliCompletionOracle, DisabledOracle, OracleError, build_oracle
from taskmatch.oracle.cli_oracle import _build_run_args
from taskmatch.prediction.decoding import parse_prediction
from taskmatch.prediction.prompts import build_initial_prompt, build_keyword_prompt

pytestmark = [
    allure.epic("LLM Runtime"),
    allure.feature("CLI Completion Oracle"),
]

ECHO_TEMPLATE = f"{sys.executable} -m taskmatch.oracle.echo_agent --prompt {{prompt}}"


def _echo_oracle(timeout_seconds: int = 30) -> CliCompletionOracle:
    return CliCompletionOracle(
        command_template=ECHO_TEMPLATE,
        model="echo",
        timeout_seconds=timeout_seconds,
    )


def test_build_run_args_quotes_placeholder_values() -> None:
    run_args = _build_run_args(
        command_template="gemini --model {model} --prompt {prompt}",
        model="gemini-2.0-flash",
        prompt='Task: "Build login page"\nAvailable skills: Frontend',
        prompt_file=Path("/tmp/prompt.txt"),
    )

    assert run_args == [
        "gemini",
        "--model",
        "gemini-2.0-flash",
        "--prompt",
        'Task: "Build login page"\nAvailable skills: Frontend',
    ]


def test_build_run_args_supports_prompt_file() -> None:
    run_args = _build_run_args(
        command_template="agent --input {prompt_file}",
        model="m",
        prompt="ignored",
        prompt_file=Path("/tmp/with space/prompt.txt"),
    )

    assert run_args == ["agent", "--input", "/tmp/with space/prompt.txt"]


@pytest.mark.parametrize(
    ("template", "message"),
    [
        ("   ", "empty"),
        ("agent --model {model}", "must include"),
        ("agent {prompt} {unknown}", "Unsupported command template placeholder"),
    ],
)
def test_build_run_args_rejects_bad_templates(template: str, message: str) -> None:
    with pytest.raises(OracleError, match=message) as error_info:
        _build_run_args(
            command_template=template,
            model="m",
            prompt="p",
            prompt_file=Path("p.txt"),
        )
    assert error_info.value.transient is False


def test_echo_agent_answers_skill_prompt() -> None:
    prompt = build_initial_prompt(
        title="Polish Frontend layout",
        skill_names=["Frontend", "Backend"],
        similar_tasks=[],
    )

    reply = _echo_oracle().complete(prompt)

    assert reply.startswith("Analysis complete.")
    assert parse_prediction(reply, ["Frontend", "Backend"]).skill_names == ["Frontend"]


def test_echo_agent_answers_keyword_prompt() -> None:
    reply = _echo_oracle().complete(build_keyword_prompt("Add login to admin UI"))

    assert json.loads(reply) == ["Add", "login", "admin"]


def test_non_zero_exit_is_transient_failure(monkeypatch) -> None:
    monkeypatch.setenv("TASKMATCH_ECHO_MODE", "fail")

    with pytest.raises(OracleError, match="exited with code 2: echo agent") as info:
        _echo_oracle().complete("anything")
    assert info.value.transient is True


def test_missing_binary_is_permanent_failure() -> None:
    oracle = CliCompletionOracle(
        command_template="definitely-not-an-installed-llm-cli {prompt}",
        model="m",
        timeout_seconds=5,
    )

    with pytest.raises(OracleError, match="command not found") as info:
        oracle.complete("hello")
    assert info.value.transient is False


def test_build_oracle_respects_enabled_flag() -> None:
    assert isinstance(build_oracle(OracleSettings(enabled=False)), DisabledOracle)
    assert isinstance(build_oracle(OracleSettings()), CliCompletionOracle)
    with pytest.raises(OracleError, match="disabled"):
        DisabledOracle().complete("hi")
