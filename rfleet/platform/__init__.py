"""Platform adapters (process execution)."""

from .process import CommandOutput, ProcessError, run, run_combined

__all__ = [
    "CommandOutput",
    "ProcessError",
    "run",
    "run_combined",
]
