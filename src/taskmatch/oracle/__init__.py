"""Text-completion oracle implementations."""

from taskmatch.oracle.base import CompletionOracle, DisabledOracle, OracleError
from taskmatch.oracle.cli_oracle import CliCompletionOracle, build_oracle

__all__ = [
    "CliCompletionOracle",
    "CompletionOracle",
    "DisabledOracle",
    "OracleError",
    "build_oracle",
]
