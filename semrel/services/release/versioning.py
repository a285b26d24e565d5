"""Last release lookup and next version computation."""

from __future__ import annotations

from semrel.core.result import Err, Ok, Result
from semrel.services.release.errors import ReleaseError
from semrel.services.release.model import Branch, LastRelease, ReleaseBump
from semrel.services.release.semver import SemVer, clean_version, parse_version
from semrel.services.release.tag_format import make_tag

FIRST_PRERELEASE = 1


def get_last_release(
    branch: Branch, tag_format: str, *, before: str | None = None
) -> LastRelease | None:
    """Find the newest release applicable to `branch`.

    Prerelease versions only count on a prerelease branch, and only when they
    were published on that branch's channel. With `before`, only versions
    strictly lower than it are considered.
    """
    limit = parse_version(before) if before else None
    candidates: list[tuple[SemVer, LastRelease]] = []
    for tag in branch.tags:
        version = parse_version(tag.version)
        if version is None:
            continue
        own_prerelease = branch.type == "prerelease" and tag.channel == branch.channel
        if version.is_prerelease and not own_prerelease:
            continue
        if limit is not None and not version < limit:
            continue
        candidates.append(
            (
                version,
                LastRelease(
                    version=tag.version,
                    git_tag=tag.git_tag,
                    channel=tag.channel,
                    git_head=tag.git_head,
                    name=make_tag(tag_format, tag.version),
                ),
            )
        )

    if not candidates:
        return None
    return max(candidates, key=lambda item: item[0])[1]


def get_next_version(
    branch: Branch,
    bump: ReleaseBump,
    last_release: LastRelease | None,
    *,
    first_release: str = "1.0.0",
) -> Result[str, ReleaseError]:
    """Compute the version of the next release on `branch`.

    - no previous release: `first_release` (`<first_release>-<id>.1` on a
      prerelease branch);
    - prerelease branch: bump the prerelease counter when the last release is
      already a prerelease, else bump the base and start `<id>.1`;
    - otherwise: bump the last release by `bump`.

    The result is not checked against the branch range here. A last release
    whose version does not parse is an `invalid_next_version` error.
    """
    initial = clean_version(first_release) or SemVer(1, 0, 0)

    if last_release is None:
        if branch.type == "prerelease" and branch.prerelease:
            return Ok(str(initial.with_prerelease(branch.prerelease, FIRST_PRERELEASE)))
        return Ok(str(initial))

    last = parse_version(last_release.version)
    if last is None:
        return Err(
            ReleaseError(
                kind="invalid_next_version",
                message=f"Cannot compute the next version from the last release "
                f"{last_release.git_tag}: `{last_release.version}` is not a valid version.",
            )
        )

    if branch.type == "prerelease" and branch.prerelease:
        if last.is_prerelease:
            return Ok(str(last.bump("prerelease")))
        base = last.bump(bump if bump != "prerelease" else "patch")
        return Ok(str(base.with_prerelease(branch.prerelease, FIRST_PRERELEASE)))

    return Ok(str(last.bump(bump)))
