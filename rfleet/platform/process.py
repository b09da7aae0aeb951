"""Subprocess execution with Result-based error handling.

Two flavours:
- run(): stdout on success, ProcessError on non-zero exit (git plumbing)
- run_combined(): interleaved stdout/stderr plus exit status (action scripts)

Usage:
    match run(["git", "rev-parse", "HEAD"], cwd=repo_dir):
        case Ok(stdout):
            print(stdout.strip())
        case Err(error):
            print(f"Failed: {error.stderr}")
"""

from __future__ import annotations

import subprocess
from dataclasses import dataclass
from pathlib import Path

from rfleet.core.result import Err, Ok, Result

__all__ = ["CommandOutput", "ProcessError", "run", "run_combined"]


@dataclass(frozen=True, slots=True)
class ProcessError:
    """Error from a failed subprocess execution.

    Attributes:
        command: The command that was executed.
        returncode: Exit code (-1 when the process could not start or timed out).
        stdout: Standard output (may be empty).
        stderr: Standard error (contains error details).
    """

    command: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str

    @property
    def details(self) -> str:
        """Best available one-line description of the failure."""
        text = self.stderr.strip() or self.stdout.strip()
        return " ".join(text.splitlines())

    def __str__(self) -> str:
        cmd_str = " ".join(self.command[:3])
        if len(self.command) > 3:
            cmd_str += " ..."
        return f"{cmd_str} failed (exit {self.returncode})"


@dataclass(frozen=True, slots=True)
class CommandOutput:
    """Combined output and exit status of a finished command."""

    output: str
    returncode: int

    @property
    def ok(self) -> bool:
        return self.returncode == 0


def run(
    cmd: list[str],
    cwd: Path,
    env: dict[str, str] | None = None,
    *,
    timeout: float | None = None,
) -> Result[str, ProcessError]:
    """Execute a command and return stdout or error.

    Args:
        cmd: Command and arguments to execute.
        cwd: Working directory for the command.
        env: Environment variables (uses current env if None).
        timeout: Maximum seconds to wait (None for no limit).

    Returns:
        Ok(stdout) on success, Err(ProcessError) on failure.
    """
    try:
        proc = subprocess.run(
            cmd,
            cwd=str(cwd),
            env=env,
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired as e:
        return Err(
            ProcessError(
                command=tuple(cmd),
                returncode=-1,
                stdout=e.stdout if isinstance(e.stdout, str) else "",
                stderr=f"Command timed out after {timeout}s",
            )
        )
    except OSError as e:
        return Err(ProcessError(command=tuple(cmd), returncode=-1, stdout="", stderr=str(e)))

    if proc.returncode != 0:
        return Err(
            ProcessError(
                command=tuple(cmd),
                returncode=proc.returncode,
                stdout=proc.stdout,
                stderr=proc.stderr,
            )
        )

    return Ok(proc.stdout)


def run_combined(
    cmd: list[str],
    cwd: Path,
    *,
    timeout: float | None = None,
) -> CommandOutput:
    """Execute a command capturing stdout and stderr as one stream.

    Never raises: a command that cannot be started is reported with
    returncode -1 and the OS error as output.
    """
    try:
        proc = subprocess.run(
            cmd,
            cwd=str(cwd),
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired:
        return CommandOutput(output=f"Command timed out after {timeout}s", returncode=-1)
    except OSError as e:
        return CommandOutput(output=str(e), returncode=-1)

    return CommandOutput(output=proc.stdout or "", returncode=proc.returncode)
