"""Local deterministic agent for CLI oracle integration tests.

Picks every available skill whose name appears in the task title (or the first
available skill when none does). ``TASKMATCH_ECHO_MODE=garbage`` prints text with no
JSON payload and ``TASKMATCH_ECHO_MODE=fail`` exits non-zero.
"""

from __future__ import annotations

import argparse
import json
import os
import re
import sys
from pathlib import Path

_TASK_LINE = re.compile(r'^Task:\s*"(?P<title>.*)"\s*$', re.MULTILINE)
_TITLE_LINE = re.compile(r'^Title:\s*"(?P<title>.*)"\s*$', re.MULTILINE)
_SKILLS_LINE = re.compile(r"^Available skills:\s*(?P<skills>.*)$", re.MULTILINE)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser()
    parser.add_argument("--prompt", default=None)
    parser.add_argument("--prompt-file", default=None)
    args = parser.parse_args(argv)

    prompt = args.prompt
    if prompt is None and args.prompt_file:
        prompt = Path(args.prompt_file).read_text("utf-8")
    prompt = prompt or ""

    mode = os.getenv("TASKMATCH_ECHO_MODE", "")
    if mode == "fail":
        sys.stderr.write("echo agent: simulated failure\n")
        return 2
    if mode == "garbage":
        sys.stdout.write("I am not sure which skills this needs.\n")
        return 0

    title_match = _TITLE_LINE.search(prompt)
    if title_match is not None:
        words = [word for word in re.findall(r"\w+", title_match.group("title")) if len(word) > 2]
        sys.stdout.write(json.dumps(words[:5]) + "\n")
        return 0

    task_match = _TASK_LINE.search(prompt)
    skills_match = _SKILLS_LINE.search(prompt)
    title = task_match.group("title") if task_match else ""
    available = (
        [name.strip() for name in skills_match.group("skills").split(",") if name.strip()]
        if skills_match
        else []
    )
    chosen = [name for name in available if name.lower() in title.lower()]
    if not chosen and available:
        chosen = available[:1]
    payload = {
        "skills": chosen,
        "confidence": {name: 0.9 for name in chosen},
        "reasoning": "echo agent matched skill names in the task title",
    }
    sys.stdout.write("Analysis complete.\n" + json.dumps(payload) + "\n")
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
