"""Error presentation utilities.

Centralized error formatting and exit code mapping for consistent UX.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from semrel.core.errors import ErrorCode
from semrel.output.console import Style
from semrel.services.release.errors import (
    ReleaseError,
    ReleaseFailure,
    extract_errors,
    sort_for_report,
)

if TYPE_CHECKING:
    from semrel.output.console import ConsoleProtocol

__all__ = ["failure_exit_code", "print_release_failure"]


def print_release_error(error: ReleaseError, console: ConsoleProtocol) -> None:
    if not error.internal:
        console.error(f"An error occurred while running semrel: {error.message}")
        return
    console.error(f"{error.kind}: {error.message}")
    if error.details:
        console.markdown(error.details)
    if error.hint:
        console.print(f"hint: {error.hint}", Style.DIM)


def print_release_failure(failure: ReleaseFailure, console: ConsoleProtocol) -> None:
    """Print every error of a failure, semrel's own errors first."""
    for error in sort_for_report(extract_errors(failure)):
        print_release_error(error, console)


def _error_exit_code(error: ReleaseError) -> ErrorCode:
    match error.kind:
        case "config_invalid" | "invalid_tag_format" | "tag_no_version" | "invalid_branch":
            return ErrorCode.CONFIG_ERROR
        case (
            "invalid_branch_config"
            | "duplicate_branches"
            | "invalid_maintenance_branch"
            | "invalid_prerelease_branch"
            | "invalid_release_branches"
        ):
            return ErrorCode.CONFIG_ERROR
        case "no_repository_url":
            return ErrorCode.ENV_ERROR
        case "git_no_permission" | "git_failed":
            return ErrorCode.GIT_ERROR
        case "plugin_failed" | "plugin_not_found":
            return ErrorCode.PLUGIN_ERROR
        case "invalid_merge_range" | "invalid_next_version":
            return ErrorCode.RELEASE_ERROR


def failure_exit_code(failure: ReleaseFailure) -> int:
    """Get exit code for a release failure (the first reported error decides)."""
    errors = sort_for_report(extract_errors(failure))
    if not errors:
        return int(ErrorCode.RELEASE_ERROR)
    return int(_error_exit_code(errors[0]))
