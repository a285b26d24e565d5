from __future__ import annotations

from semrel.core.config import ReleaseConfig
from semrel.core.result import Result
from semrel.git.repository import GitProtocol
from semrel.services.release.errors import ErrorCollector, ReleaseError, ReleaseFailure
from semrel.services.release.tag_format import VERSION_PLACEHOLDER, make_tag


def verify_config(options: ReleaseConfig, git: GitProtocol) -> Result[None, ReleaseFailure]:
    """Check the options a run cannot work without; report every problem at once."""
    errors = ErrorCollector()

    if not options.repository_url:
        errors.add(
            ReleaseError(
                kind="no_repository_url",
                message="The repository URL is not set.",
                hint="Set `repository_url` in the configuration or add an `origin` remote.",
            )
        )

    if not git.check_ref_format(f"refs/tags/{make_tag(options.tag_format, '0.0.0')}"):
        errors.add(
            ReleaseError(
                kind="invalid_tag_format",
                message=f"The tag format `{options.tag_format}` does not produce "
                f"valid git tag names.",
            )
        )

    if options.tag_format.count(VERSION_PLACEHOLDER) != 1:
        errors.add(
            ReleaseError(
                kind="tag_no_version",
                message=f"The tag format `{options.tag_format}` must contain "
                f"`{VERSION_PLACEHOLDER}` exactly once.",
            )
        )

    for index, branch in enumerate(options.branches):
        if not branch.name:
            errors.add(
                ReleaseError(
                    kind="invalid_branch",
                    message=f"The branch entry #{index + 1} has no name.",
                    hint="Each branch must be a name or a table with a `name` key.",
                )
            )

    return errors.finish()
