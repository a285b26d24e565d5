from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Literal

if TYPE_CHECKING:
    from semrel.git.repository import Commit
    from semrel.services.release.semver import SemverRange


BranchType = Literal["release", "prerelease", "maintenance"]
ReleaseBump = Literal["major", "minor", "patch", "prerelease"]

# Ascending significance; analyze_commits keeps the highest reported bump.
RELEASE_BUMPS: tuple[ReleaseBump, ...] = ("prerelease", "patch", "minor", "major")


@dataclass(frozen=True, slots=True)
class Tag:
    """A release tag found in (or added to) a branch history.

    `channel` is None for the default distribution channel.
    """

    version: str
    channel: str | None
    git_tag: str
    git_head: str | None = None


def _empty_tags() -> list[Tag]:
    return []


@dataclass(slots=True)
class Branch:
    """A classified release line.

    `tags` only grows during a run: tags created by the run are appended.
    """

    name: str
    type: BranchType
    channel: str | None
    range: SemverRange | None = None
    merge_range: SemverRange | None = None
    prerelease: str | None = None  # prerelease identifier (prerelease branches only)
    main: bool = False
    tags: list[Tag] = field(default_factory=_empty_tags)


@dataclass(frozen=True, slots=True)
class LastRelease:
    version: str
    git_tag: str
    channel: str | None
    git_head: str | None
    name: str


@dataclass(slots=True)
class NextRelease:
    """A release being built by the current run.

    `type`, `channel` and `git_head` are known first; `version`, `git_tag`
    and `name` once the bump is computed; `notes` once generated.
    """

    type: ReleaseBump
    channel: str | None
    git_head: str
    version: str = ""
    git_tag: str = ""
    name: str = ""
    notes: str = ""


@dataclass(frozen=True, slots=True)
class ReleaseToAdd:
    """An existing release that must also be published on the current branch channel."""

    last_release: LastRelease | None
    current_release: NextRelease
    next_release: NextRelease


def _empty_data() -> dict[str, object]:
    return {}


@dataclass(frozen=True, slots=True)
class Release:
    """A completed publish as reported by a plugin."""

    version: str
    channel: str | None
    git_tag: str
    git_head: str
    name: str
    plugin_name: str
    url: str | None = None
    data: dict[str, object] = field(default_factory=_empty_data)


@dataclass(frozen=True, slots=True)
class RunResult:
    """Outcome of a run that produced at least one release or a next version."""

    last_release: LastRelease | None
    commits: tuple[Commit, ...]
    next_release: NextRelease | None
    releases: tuple[Release, ...]
