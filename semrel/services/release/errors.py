"""Release error types and the error collector.

Validation steps that can fail independently (config checks, branch checks,
back-port merge ranges) append to an ErrorCollector and report together;
everything else fails with a single ReleaseError.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal

from semrel.core.result import Err, Ok, Result

if TYPE_CHECKING:
    from semrel.services.release.model import Branch, NextRelease

__all__ = [
    "AggregateReleaseError",
    "ErrorCollector",
    "PluginError",
    "ReleaseError",
    "ReleaseErrorKind",
    "ReleaseFailure",
    "extract_errors",
    "sort_for_report",
]


ReleaseErrorKind = Literal[
    "invalid_branch_config",
    "duplicate_branches",
    "invalid_maintenance_branch",
    "invalid_prerelease_branch",
    "invalid_release_branches",
    "invalid_merge_range",
    "invalid_next_version",
    "git_no_permission",
    "no_repository_url",
    "invalid_tag_format",
    "tag_no_version",
    "invalid_branch",
    "git_failed",
    "plugin_failed",
    "plugin_not_found",
    "config_invalid",
]


@dataclass(frozen=True, slots=True)
class ReleaseError:
    """Canonical release error payload.

    Attributes:
        kind: Stable error code
        message: One-line summary
        details: Longer explanation (Markdown)
        hint: Suggested fix
        internal: False for unexpected errors that did not come from semrel's
            own validation (e.g. a plugin raising an arbitrary exception)
    """

    kind: ReleaseErrorKind
    message: str
    details: str | None = None
    hint: str | None = None
    internal: bool = True

    def pretty(self) -> str:
        if self.hint:
            return f"{self.message} (hint: {self.hint})"
        return self.message


@dataclass(frozen=True, slots=True)
class AggregateReleaseError:
    """Several errors collected during one phase, reported together."""

    errors: tuple[ReleaseError, ...]

    @property
    def message(self) -> str:
        return f"{len(self.errors)} errors occurred"


ReleaseFailure = ReleaseError | AggregateReleaseError


class PluginError(Exception):
    """Raised by plugins to report an expected, user-facing failure."""

    def __init__(
        self,
        message: str,
        *,
        kind: ReleaseErrorKind = "plugin_failed",
        details: str | None = None,
    ) -> None:
        super().__init__(message)
        self.kind: ReleaseErrorKind = kind
        self.message = message
        self.details = details

    def to_release_error(self) -> ReleaseError:
        return ReleaseError(kind=self.kind, message=self.message, details=self.details)


def extract_errors(failure: ReleaseFailure) -> tuple[ReleaseError, ...]:
    if isinstance(failure, AggregateReleaseError):
        return failure.errors
    return (failure,)


def sort_for_report(errors: tuple[ReleaseError, ...]) -> list[ReleaseError]:
    """Order errors for reporting: semrel's own errors before unexpected ones."""
    return sorted(errors, key=lambda e: 0 if e.internal else 1)


class ErrorCollector:
    """Accumulate errors, then finish with none, one or an aggregate."""

    def __init__(self) -> None:
        self._errors: list[ReleaseError] = []

    def __len__(self) -> int:
        return len(self._errors)

    def __bool__(self) -> bool:
        return bool(self._errors)

    @property
    def errors(self) -> tuple[ReleaseError, ...]:
        return tuple(self._errors)

    def add(self, error: ReleaseError) -> None:
        self._errors.append(error)

    def extend(self, failure: ReleaseFailure) -> None:
        self._errors.extend(extract_errors(failure))

    def failure(self) -> ReleaseFailure:
        """The collected errors as one failure. Only meaningful when non-empty."""
        if len(self._errors) == 1:
            return self._errors[0]
        return AggregateReleaseError(tuple(self._errors))

    def finish(self) -> Result[None, ReleaseFailure]:
        if not self._errors:
            return Ok(None)
        return Err(self.failure())


# -----------------------------------------------------------------------------
# Error catalog
# -----------------------------------------------------------------------------


def invalid_next_version(version: str, branch: Branch) -> ReleaseError:
    return ReleaseError(
        kind="invalid_next_version",
        message=f"The release `{version}` on branch `{branch.name}` cannot be published "
        f"as it is out of range.",
        details=(
            f"Based on the releases published on other branches, only versions within "
            f"the range `{branch.range}` can be published from branch `{branch.name}`.\n\n"
            f"The commits on branch `{branch.name}` must be moved to a valid branch "
            f"with git merge or git cherry-pick and removed from branch `{branch.name}` "
            f"with git revert or git reset."
        ),
        hint="Move the offending commits to a branch whose range accepts this version.",
    )


def invalid_merge_range(next_release: NextRelease, branch: Branch) -> ReleaseError:
    return ReleaseError(
        kind="invalid_merge_range",
        message=f"The release `{next_release.version}` cannot be added to the maintenance "
        f"branch `{branch.name}`.",
        details=(
            f"Only releases within the range `{branch.merge_range}` can be merged into "
            f"the maintenance branch `{branch.name}` and published to the "
            f"`{branch.channel}` distribution channel.\n\n"
            f"The branch `{branch.name}` head should be reset to a previous commit so "
            f"the commit with tag `{next_release.git_tag}` is removed from the branch "
            f"history."
        ),
    )


def git_no_permission(repository_url: str, branch: str) -> ReleaseError:
    return ReleaseError(
        kind="git_no_permission",
        message=f"Cannot push to the Git repository on branch `{branch}`.",
        details=(
            f"semrel cannot push the version tag to the branch `{branch}` on the remote "
            f"Git repository with URL `{repository_url}`.\n\n"
            f"Make sure the credentials (`GH_TOKEN`, `GL_TOKEN`, `GIT_CREDENTIALS`...) "
            f"allow pushing to that branch."
        ),
    )


def git_failed(command: str, message: str) -> ReleaseError:
    return ReleaseError(kind="git_failed", message=f"git {command} failed: {message}")
