"""Tests for git/repository.py."""

from __future__ import annotations

import subprocess
from pathlib import Path
from unittest.mock import MagicMock, patch

from semrel.core.result import Err, Ok
from semrel.git.repository import GitRepository


def make_completed_process(
    stdout: str = "", stderr: str = "", returncode: int = 0
) -> subprocess.CompletedProcess[str]:
    return subprocess.CompletedProcess(
        args=["git"], returncode=returncode, stdout=stdout, stderr=stderr
    )


def _git_args(mock_run: MagicMock, call: int = -1) -> list[str]:
    args = mock_run.call_args_list[call].args[0]
    # ["git", "-C", <path>, ...]
    return list(args[3:])


class TestRepository:
    def test_exists(self, tmp_path: Path) -> None:
        (tmp_path / ".git").mkdir()
        assert GitRepository(tmp_path).exists() is True

    def test_exists_no_git(self, tmp_path: Path) -> None:
        assert GitRepository(tmp_path).exists() is False

    @patch("subprocess.run")
    def test_env_is_passed(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.return_value = make_completed_process(stdout="abc\n")
        GitRepository(tmp_path, env={"GIT_ASKPASS": "echo"}).get_git_head()
        assert mock_run.call_args.kwargs["env"] == {"GIT_ASKPASS": "echo"}

    @patch("subprocess.run")
    def test_get_git_head(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.return_value = make_completed_process(stdout="0123abcd\n")
        assert GitRepository(tmp_path).get_git_head() == Ok("0123abcd")

    @patch("subprocess.run")
    def test_current_branch_detached(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.return_value = make_completed_process(stdout="HEAD\n")
        assert GitRepository(tmp_path).current_branch() is None

    @patch("subprocess.run")
    def test_remote_url(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.return_value = make_completed_process(stdout="git@host:o/r.git\n")
        assert GitRepository(tmp_path).remote_url() == "git@host:o/r.git"


class TestNetworkOperations:
    @patch("subprocess.run")
    def test_fetch_unshallow_first(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.return_value = make_completed_process()
        assert GitRepository(tmp_path).fetch() == Ok(None)
        assert _git_args(mock_run) == ["fetch", "--unshallow", "--tags"]

    @patch("subprocess.run")
    def test_fetch_falls_back_when_not_shallow(
        self, mock_run: MagicMock, tmp_path: Path
    ) -> None:
        mock_run.side_effect = [
            make_completed_process(returncode=128, stderr="not a shallow repository"),
            make_completed_process(),
        ]
        assert GitRepository(tmp_path).fetch() == Ok(None)
        assert _git_args(mock_run) == ["fetch", "--tags"]

    @patch("subprocess.run")
    def test_network_commands_use_long_timeout(
        self, mock_run: MagicMock, tmp_path: Path
    ) -> None:
        mock_run.return_value = make_completed_process()
        repo = GitRepository(tmp_path)
        repo.fetch()
        network_timeout = mock_run.call_args.kwargs["timeout"]
        repo.get_git_head()
        local_timeout = mock_run.call_args.kwargs["timeout"]
        assert network_timeout > local_timeout

    @patch("subprocess.run")
    def test_verify_auth_dry_run_push(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.return_value = make_completed_process()
        GitRepository(tmp_path).verify_auth("https://t@host/r.git", "main")
        assert _git_args(mock_run) == [
            "push",
            "--dry-run",
            "--no-verify",
            "https://t@host/r.git",
            "HEAD:main",
        ]

    @patch("subprocess.run")
    def test_verify_auth_failure(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.return_value = make_completed_process(returncode=128, stderr="denied\n")
        result = GitRepository(tmp_path).verify_auth("url", "main")
        assert isinstance(result, Err)
        assert result.error.message == "denied"
        assert result.error.returncode == 128

    @patch("subprocess.run")
    def test_push_tags(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.return_value = make_completed_process()
        GitRepository(tmp_path).push("url", "next")
        assert _git_args(mock_run) == ["push", "--tags", "url", "HEAD:next"]

    @patch("subprocess.run")
    def test_branch_up_to_date(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.side_effect = [
            make_completed_process(stdout="deadbeef\trefs/heads/main\n"),
            make_completed_process(),
        ]
        assert GitRepository(tmp_path).is_branch_up_to_date("main") is True
        assert _git_args(mock_run) == ["merge-base", "--is-ancestor", "deadbeef", "HEAD"]

    @patch("subprocess.run")
    def test_branch_behind(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.side_effect = [
            make_completed_process(stdout="deadbeef\trefs/heads/main\n"),
            make_completed_process(returncode=1),
        ]
        assert GitRepository(tmp_path).is_branch_up_to_date("main") is False

    @patch("subprocess.run")
    def test_branch_missing_on_remote(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.return_value = make_completed_process(stdout="")
        assert GitRepository(tmp_path).is_branch_up_to_date("main") is False


class TestHistory:
    @patch("subprocess.run")
    def test_tag(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.return_value = make_completed_process()
        GitRepository(tmp_path).tag("v1.0.0", "abc")
        assert _git_args(mock_run) == ["tag", "v1.0.0", "abc"]

    @patch("subprocess.run")
    def test_branch_ref_prefers_remote(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.return_value = make_completed_process(stdout="abc\n")
        assert GitRepository(tmp_path).branch_ref("main") == "refs/remotes/origin/main"

    @patch("subprocess.run")
    def test_branch_ref_local_only(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.side_effect = [
            make_completed_process(returncode=1),
            make_completed_process(stdout="abc\n"),
        ]
        assert GitRepository(tmp_path).branch_ref("main") == "refs/heads/main"

    @patch("subprocess.run")
    def test_branch_ref_missing(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.return_value = make_completed_process(returncode=1)
        assert GitRepository(tmp_path).branch_ref("gone") is None

    @patch("subprocess.run")
    def test_tags_merged_into(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.return_value = make_completed_process(stdout="v1.0.0\n\nv1.1.0\n")
        result = GitRepository(tmp_path).tags_merged_into("refs/heads/main")
        assert result == Ok(["v1.0.0", "v1.1.0"])

    @patch("subprocess.run")
    def test_commits_between(self, mock_run: MagicMock, tmp_path: Path) -> None:
        record = "\x1f".join(
            ["abc123", "Ann", "ann@x.org", "2024-01-01T00:00:00Z", "feat: a\n\nbody"]
        )
        mock_run.return_value = make_completed_process(stdout=record + "\x1e\n")

        result = GitRepository(tmp_path).commits_between("v1.0.0", "HEAD")

        assert isinstance(result, Ok)
        (commit,) = result.value
        assert commit.sha == "abc123"
        assert commit.subject == "feat: a"
        assert commit.author_email == "ann@x.org"
        assert _git_args(mock_run)[-1] == "v1.0.0..HEAD"

    @patch("subprocess.run")
    def test_commits_between_without_start(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.return_value = make_completed_process(stdout="")
        assert GitRepository(tmp_path).commits_between(None, "HEAD") == Ok([])
        assert _git_args(mock_run)[-1] == "HEAD"

    @patch("subprocess.run")
    def test_check_ref_format(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.return_value = make_completed_process(returncode=1)
        assert GitRepository(tmp_path).check_ref_format("refs/tags/a b") is False
