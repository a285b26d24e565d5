"""Git repository abstraction.

GitRepository implements the source-control operations a release run needs:
fetching, permission checks, tag listing, tagging and pushing. All operations
return Result types; failures are never retried.

Usage:
    repo = GitRepository(Path("."), env=dict(os.environ))

    match repo.get_git_head():
        case Ok(sha):
            print(f"HEAD: {sha}")
        case Err(e):
            print(f"git failed: {e.message}")
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from semrel.core.result import Err, Ok, Result
from semrel.platform.process import ProcessError
from semrel.platform.process import run as run_process

_GIT_TIMEOUT_SECONDS = 30.0
_GIT_NETWORK_TIMEOUT_SECONDS = 3 * 60.0
_NETWORK_COMMANDS = frozenset({"fetch", "pull", "push", "clone", "ls-remote"})

# ASCII unit/record separators for `git log` parsing
_FIELD_SEP = "\x1f"
_RECORD_SEP = "\x1e"

__all__ = [
    "Commit",
    "GitError",
    "GitProtocol",
    "GitRepository",
]


@dataclass(frozen=True, slots=True)
class GitError:
    """Error from a git operation.

    Attributes:
        command: The git command that failed
        message: Error message (stderr when available)
        returncode: Process return code
    """

    command: str
    message: str
    returncode: int = 1


@dataclass(frozen=True, slots=True)
class Commit:
    """A commit between two release points. Read-only for plugins."""

    sha: str
    message: str
    author_name: str = ""
    author_email: str = ""
    date: str | None = None

    @property
    def short_sha(self) -> str:
        return self.sha[:8]

    @property
    def subject(self) -> str:
        return self.message.split("\n", 1)[0]


class GitProtocol(Protocol):
    """Source-control operations used by the release orchestrator."""

    def fetch(self) -> Result[None, GitError]: ...

    def verify_auth(self, url: str, branch: str) -> Result[None, GitError]: ...

    def is_branch_up_to_date(self, branch: str) -> bool: ...

    def get_git_head(self) -> Result[str, GitError]: ...

    def tag(self, name: str, ref: str) -> Result[None, GitError]: ...

    def push(self, url: str, branch: str) -> Result[None, GitError]: ...

    def branch_ref(self, name: str) -> str | None: ...

    def tags_merged_into(self, ref: str) -> Result[list[str], GitError]: ...

    def tag_head(self, tag: str) -> Result[str, GitError]: ...

    def commits_between(self, start: str | None, end: str) -> Result[list[Commit], GitError]: ...

    def check_ref_format(self, ref: str) -> bool: ...


class GitRepository:
    """Git repository at `path`, running commands with a fixed environment.

    Attributes:
        path: Path to the repository root
        env: Environment passed to every git invocation (None = inherit)
    """

    def __init__(self, path: Path, env: Mapping[str, str] | None = None) -> None:
        self.path = path
        self.env = env

    def exists(self) -> bool:
        """Check if this is a valid git repository."""
        return (self.path / ".git").exists()

    def current_branch(self) -> str | None:
        """Get current branch name; None on detached HEAD or error."""
        match self._run(["rev-parse", "--abbrev-ref", "HEAD"]):
            case Ok(stdout):
                branch = stdout.strip()
                return None if branch == "HEAD" else branch
            case Err(_):
                return None

    def remote_url(self, remote: str = "origin") -> str | None:
        """Get the URL of a remote, None if not configured."""
        match self._run(["config", "--get", f"remote.{remote}.url"]):
            case Ok(stdout):
                return stdout.strip() or None
            case Err(_):
                return None

    def check_ref_format(self, ref: str) -> bool:
        """Return True if `ref` is a valid git reference name."""
        return isinstance(self._run(["check-ref-format", ref]), Ok)

    def fetch(self) -> Result[None, GitError]:
        """Fetch tags, unshallowing the clone when it is shallow."""
        if isinstance(self._run(["fetch", "--unshallow", "--tags"]), Ok):
            return Ok(None)
        return self._check(["fetch", "--tags"], command="fetch --tags")

    def verify_auth(self, url: str, branch: str) -> Result[None, GitError]:
        """Verify push permission with a dry-run push of HEAD to `branch`."""
        return self._check(
            ["push", "--dry-run", "--no-verify", url, f"HEAD:{branch}"],
            command="push --dry-run",
        )

    def is_branch_up_to_date(self, branch: str) -> bool:
        """Return True if the remote head of `branch` is in the local history.

        Any failure to resolve the remote head counts as not up to date.
        """
        match self._run(["ls-remote", "--heads", "origin", branch]):
            case Ok(stdout):
                fields = stdout.split()
                if not fields:
                    return False
                remote_head = fields[0]
            case Err(_):
                return False
        return isinstance(self._run(["merge-base", "--is-ancestor", remote_head, "HEAD"]), Ok)

    def get_git_head(self) -> Result[str, GitError]:
        """Get the commit id of HEAD."""
        return self._output(["rev-parse", "HEAD"], command="rev-parse HEAD")

    def tag(self, name: str, ref: str) -> Result[None, GitError]:
        """Create lightweight tag `name` on `ref`."""
        return self._check(["tag", name, ref], command=f"tag {name}")

    def push(self, url: str, branch: str) -> Result[None, GitError]:
        """Push tags and HEAD to `branch` on `url`."""
        return self._check(["push", "--tags", url, f"HEAD:{branch}"], command="push --tags")

    def branch_ref(self, name: str) -> str | None:
        """Resolve a branch name to a ref usable for history queries.

        Prefers the remote-tracking branch; returns None if the branch exists
        neither remotely nor locally.
        """
        for ref in (f"refs/remotes/origin/{name}", f"refs/heads/{name}"):
            if isinstance(self._run(["rev-parse", "--verify", "--quiet", ref]), Ok):
                return ref
        return None

    def tags_merged_into(self, ref: str) -> Result[list[str], GitError]:
        """List tags reachable from `ref`."""
        match self._output(["tag", "--merged", ref], command=f"tag --merged {ref}"):
            case Ok(stdout):
                return Ok([line.strip() for line in stdout.splitlines() if line.strip()])
            case Err(e):
                return Err(e)

    def tag_head(self, tag: str) -> Result[str, GitError]:
        """Get the commit id a tag points to."""
        return self._output(["rev-list", "-1", tag], command=f"rev-list -1 {tag}")

    def commits_between(self, start: str | None, end: str) -> Result[list[Commit], GitError]:
        """List commits in `start..end` (all history up to `end` when start is None)."""
        fmt = _FIELD_SEP.join(["%H", "%an", "%ae", "%cI", "%B"]) + _RECORD_SEP
        revision = f"{start}..{end}" if start else end
        match self._output(["log", f"--format={fmt}", revision], command=f"log {revision}"):
            case Ok(stdout):
                return Ok(self._parse_log(stdout))
            case Err(e):
                return Err(e)

    def _run(self, args: list[str]) -> Result[str, ProcessError]:
        """Run a git command in this repository."""
        command = args[0] if args else ""
        timeout = (
            _GIT_NETWORK_TIMEOUT_SECONDS if command in _NETWORK_COMMANDS else _GIT_TIMEOUT_SECONDS
        )
        return run_process(
            ["git", "-C", str(self.path), *args], cwd=self.path, env=self.env, timeout=timeout
        )

    def _output(self, args: list[str], *, command: str) -> Result[str, GitError]:
        match self._run(args):
            case Ok(stdout):
                return Ok(stdout.strip())
            case Err(e):
                return Err(
                    GitError(
                        command=command,
                        message=e.stderr.strip() or f"git {command} failed",
                        returncode=e.returncode,
                    )
                )

    def _check(self, args: list[str], *, command: str) -> Result[None, GitError]:
        match self._output(args, command=command):
            case Ok(_):
                return Ok(None)
            case Err(e):
                return Err(e)

    def _parse_log(self, output: str) -> list[Commit]:
        """Parse `git log` output produced with the field/record separators."""
        commits: list[Commit] = []
        for record in output.split(_RECORD_SEP):
            record = record.strip("\n")
            if not record:
                continue
            fields = record.split(_FIELD_SEP)
            if len(fields) != 5:
                continue
            sha, author_name, author_email, date, message = fields
            commits.append(
                Commit(
                    sha=sha,
                    message=message.strip(),
                    author_name=author_name,
                    author_email=author_email,
                    date=date or None,
                )
            )
        return commits
