"""Tests for platform/process.py."""

from __future__ import annotations

import subprocess
import sys
from pathlib import Path
from unittest.mock import MagicMock, patch

from rfleet.core.result import Err, Ok
from rfleet.platform.process import ProcessError, run, run_combined


class TestRun:
    """Tests for run()."""

    def test_success_returns_stdout(self, tmp_path: Path) -> None:
        result = run([sys.executable, "-c", "print('hello')"], cwd=tmp_path)
        assert isinstance(result, Ok)
        assert result.value.strip() == "hello"

    def test_failure_returns_process_error(self, tmp_path: Path) -> None:
        script = "import sys; sys.stderr.write('bad thing\\n'); sys.exit(3)"
        result = run([sys.executable, "-c", script], cwd=tmp_path)
        assert isinstance(result, Err)
        assert result.error.returncode == 3
        assert result.error.details == "bad thing"

    def test_missing_executable(self, tmp_path: Path) -> None:
        result = run(["definitely-not-a-real-binary-xyz"], cwd=tmp_path)
        assert isinstance(result, Err)
        assert result.error.returncode == -1

    @patch("subprocess.run")
    def test_timeout(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.side_effect = subprocess.TimeoutExpired(cmd=["git"], timeout=1.0)
        result = run(["git", "fetch"], cwd=tmp_path, timeout=1.0)
        assert isinstance(result, Err)
        assert "timed out" in result.error.stderr


class TestRunCombined:
    """Tests for run_combined()."""

    def test_interleaves_stdout_and_stderr(self, tmp_path: Path) -> None:
        script = "import sys; print('out', flush=True); sys.stderr.write('err\\n'); sys.exit(2)"
        result = run_combined([sys.executable, "-c", script], cwd=tmp_path)
        assert result.ok is False
        assert result.returncode == 2
        assert "out" in result.output
        assert "err" in result.output

    def test_missing_executable_never_raises(self, tmp_path: Path) -> None:
        result = run_combined(["definitely-not-a-real-binary-xyz"], cwd=tmp_path)
        assert result.returncode == -1
        assert result.ok is False


class TestProcessError:
    """Tests for ProcessError formatting."""

    def test_details_falls_back_to_stdout(self) -> None:
        error = ProcessError(command=("git", "push"), returncode=1, stdout="line1\nline2", stderr="")
        assert error.details == "line1 line2"

    def test_str_truncates_long_commands(self) -> None:
        error = ProcessError(
            command=("git", "-C", "/repo", "push", "-q"), returncode=128, stdout="", stderr=""
        )
        assert str(error) == "git -C /repo ... failed (exit 128)"
