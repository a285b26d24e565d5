from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from semrel.core.config import ReleaseConfig
from semrel.git.repository import Commit, GitProtocol
from semrel.output.console import ConsoleProtocol
from semrel.services.release.errors import ReleaseError
from semrel.services.release.model import Branch, LastRelease, NextRelease, Release


def _empty_branches() -> list[Branch]:
    return []


def _empty_commits() -> list[Commit]:
    return []


def _empty_releases() -> list[Release]:
    return []


@dataclass(slots=True)
class ReleaseContext:
    """State threaded through one release run and handed to plugin hooks.

    The run owns this object. Plugins read it; only the orchestrator writes
    `branch.tags`, `releases` and the release fields.

    Attributes:
        cwd: Repository root
        env: Environment used for git and plugins
        options: Effective options (dry_run may be forced on outside CI)
        console: Logger for the run
        git: Source-control collaborator
        repository_url: Authenticated repository URL, set after auth checks
        branches: Resolved release lines
        branch: The branch being released
        commits: Commits since last_release
        last_release: Newest release applicable to the branch
        next_release: Release being built
        current_release: The existing release being back-ported (add_channel only)
        releases: Releases published by this run, in order
        errors: Errors handed to the fail hook
    """

    cwd: Path
    env: dict[str, str]
    options: ReleaseConfig
    console: ConsoleProtocol
    git: GitProtocol
    repository_url: str = ""
    branches: list[Branch] = field(default_factory=_empty_branches)
    branch: Branch | None = None
    commits: list[Commit] = field(default_factory=_empty_commits)
    last_release: LastRelease | None = None
    next_release: NextRelease | None = None
    current_release: NextRelease | None = None
    releases: list[Release] = field(default_factory=_empty_releases)
    errors: tuple[ReleaseError, ...] = ()
