"""Subprocess-based completion oracle for CLI LLM agents."""

from __future__ import annotations

import logging
import os
import shlex
import subprocess
import tempfile
from pathlib import Path

from taskmatch.config import OracleSettings
from taskmatch.oracle.base import CompletionOracle, DisabledOracle, OracleError

logger = logging.getLogger(__name__)


class CliCompletionOracle:
    """Render a command template with the prompt and return the agent's stdout.

    Supported placeholders: ``{prompt}``, ``{prompt_file}`` and ``{model}``.
    """

    def __init__(self, *, command_template: str, model: str, timeout_seconds: int) -> None:
        self.command_template = command_template
        self.model = model
        self.timeout_seconds = timeout_seconds

    def complete(self, prompt: str) -> str:
        with tempfile.TemporaryDirectory(prefix="taskmatch-oracle-") as workdir:
            prompt_file = Path(workdir) / "prompt.txt"
            prompt_file.write_text(prompt, "utf-8")
            run_args = _build_run_args(
                command_template=self.command_template,
                model=self.model,
                prompt=prompt,
                prompt_file=prompt_file,
            )

            env = os.environ.copy()
            env["TASKMATCH_LLM_MODEL"] = self.model
            try:
                completed = subprocess.run(  # noqa: S603
                    run_args,
                    env=env,
                    capture_output=True,
                    text=True,
                    timeout=self.timeout_seconds,
                    check=False,
                )
            except FileNotFoundError as error:
                raise OracleError(
                    f"CLI oracle command not found: {run_args[0]}",
                    transient=False,
                ) from error
            except subprocess.TimeoutExpired as error:
                raise OracleError(
                    f"CLI oracle timed out after {self.timeout_seconds}s.",
                    transient=True,
                ) from error
            except OSError as error:
                raise OracleError(f"CLI oracle failed to start: {error}", transient=True) from error

        if completed.returncode != 0:
            stderr_tail = completed.stderr.strip().splitlines()[-1:] or [""]
            raise OracleError(
                f"CLI oracle exited with code {completed.returncode}: {stderr_tail[0]}",
                transient=True,
            )
        logger.debug("CLI oracle returned %d chars", len(completed.stdout))
        return completed.stdout


def build_oracle(settings: OracleSettings) -> CompletionOracle:
    """Build the configured oracle."""

    if not settings.enabled:
        return DisabledOracle()
    return CliCompletionOracle(
        command_template=settings.command_template,
        model=settings.model,
        timeout_seconds=settings.timeout_seconds,
    )


def _build_run_args(
    *,
    command_template: str,
    model: str,
    prompt: str,
    prompt_file: Path,
) -> list[str]:
    stripped = command_template.strip()
    if not stripped:
        raise OracleError("CLI oracle command template is empty.", transient=False)
    if "{prompt}" not in stripped and "{prompt_file}" not in stripped:
        raise OracleError(
            "CLI oracle command template must include {prompt} or {prompt_file}.",
            transient=False,
        )

    try:
        rendered = stripped.format(
            model=shlex.quote(model),
            prompt=shlex.quote(prompt),
            prompt_file=shlex.quote(str(prompt_file)),
        )
    except KeyError as error:
        raise OracleError(
            f"Unsupported command template placeholder: {error}",
            transient=False,
        ) from error

    argv = shlex.split(rendered)
    if not argv:
        raise OracleError("CLI oracle command template rendered empty command.", transient=False)
    return argv
