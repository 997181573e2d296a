"""Text-completion oracle interface."""

from __future__ import annotations

from typing import Protocol


class OracleError(RuntimeError):
    """Oracle transport failure with retryability hint."""

    def __init__(self, message: str, *, transient: bool) -> None:
        super().__init__(message)
        self.transient = transient


class CompletionOracle(Protocol):
    """Protocol implemented by text-completion backends."""

    def complete(self, prompt: str) -> str:
        """Return raw completion text for ``prompt``; no structure is guaranteed."""


class DisabledOracle:
    """Oracle used when LLM calls are switched off; every call fails."""

    def complete(self, prompt: str) -> str:  # noqa: ARG002
        raise OracleError("LLM oracle is disabled by configuration.", transient=False)
