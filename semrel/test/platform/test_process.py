"""Tests for semrel.platform.process."""

from __future__ import annotations

import subprocess
from pathlib import Path
from unittest.mock import MagicMock, patch

from semrel.core.result import Err, Ok
from semrel.platform.process import ProcessError, run


@patch("subprocess.run")
def test_run_success(mock_run: MagicMock, tmp_path: Path) -> None:
    mock_run.return_value = subprocess.CompletedProcess(
        args=["git", "status"], returncode=0, stdout="clean\n", stderr=""
    )
    result = run(["git", "status"], cwd=tmp_path, env={"A": "1"}, timeout=5)

    assert result == Ok("clean\n")
    kwargs = mock_run.call_args.kwargs
    assert kwargs["env"] == {"A": "1"}
    assert kwargs["timeout"] == 5
    assert kwargs["cwd"] == str(tmp_path)


@patch("subprocess.run")
def test_run_failure(mock_run: MagicMock, tmp_path: Path) -> None:
    mock_run.return_value = subprocess.CompletedProcess(
        args=["git", "push"], returncode=128, stdout="", stderr="denied"
    )
    result = run(["git", "push"], cwd=tmp_path)

    assert isinstance(result, Err)
    assert result.error.returncode == 128
    assert result.error.stderr == "denied"


@patch("subprocess.run")
def test_run_timeout(mock_run: MagicMock, tmp_path: Path) -> None:
    mock_run.side_effect = subprocess.TimeoutExpired(cmd=["git", "fetch"], timeout=1.0)
    result = run(["git", "fetch"], cwd=tmp_path, timeout=1.0)

    assert isinstance(result, Err)
    assert result.error.returncode == -1
    assert "timed out" in result.error.stderr


@patch("subprocess.run")
def test_run_missing_executable(mock_run: MagicMock, tmp_path: Path) -> None:
    mock_run.side_effect = FileNotFoundError("git")
    result = run(["git", "status"], cwd=tmp_path)

    assert isinstance(result, Err)
    assert result.error.returncode == -1


@patch("subprocess.run")
def test_run_failure_falls_back_to_stdout(mock_run: MagicMock, tmp_path: Path) -> None:
    mock_run.return_value = subprocess.CompletedProcess(
        args=["git", "tag"], returncode=1, stdout="fatal: tag exists", stderr=""
    )
    result = run(["git", "tag", "v1.0.0"], cwd=tmp_path)

    assert result == Err(ProcessError(("git", "tag", "v1.0.0"), 1, "fatal: tag exists"))
