"""Branch resolution.

Turns configured branch entries plus the tag history of each branch into the
classified release lines a run works with:

- maintenance branches (`1.x`, `1.2.x` or an explicit `range`) own a bounded
  range below the release line and only accept back-ports inside their merge
  range;
- release branches (one to three) share the release line, each owning the
  versions up to the first release of the next branch;
- prerelease branches publish `<version>-<identifier>.<n>` on their channel
  and own no range.

The result is ordered maintenance, release, prerelease: ascending version
lines, which is the order back-port computation relies on.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from semrel.core.config import BranchConfig
from semrel.core.result import Err, Ok, Result
from semrel.git.repository import GitProtocol
from semrel.services.release.errors import (
    ErrorCollector,
    ReleaseError,
    ReleaseFailure,
    git_failed,
)
from semrel.services.release.model import Branch, BranchType, Tag
from semrel.services.release.semver import (
    SemVer,
    SemverRange,
    clean_version,
    highest,
    is_maintenance_range,
    lowest,
    maintenance_range,
    parse_version,
)
from semrel.services.release.tag_format import parse_tag

_MAX_RELEASE_BRANCHES = 3


@dataclass(frozen=True, slots=True)
class _Candidate:
    config: BranchConfig
    tags: list[Tag]


def classify(config: BranchConfig) -> BranchType:
    if config.range is not None or is_maintenance_range(config.name):
        return "maintenance"
    if config.prerelease not in (None, False):
        return "prerelease"
    return "release"


def prerelease_identifier(config: BranchConfig) -> str:
    return config.name if config.prerelease is True else str(config.prerelease)


def _versions(tags: Sequence[Tag]) -> list[SemVer]:
    """Release (non-prerelease) versions of a tag list, ascending."""
    out: list[SemVer] = []
    for tag in tags:
        v = parse_version(tag.version)
        if v is not None and not v.is_prerelease:
            out.append(v)
    return sorted(set(out))


def _latest(tags: Sequence[Tag]) -> SemVer | None:
    versions = _versions(tags)
    return versions[-1] if versions else None


def _maintenance_name_range(config: BranchConfig) -> SemverRange | None:
    return maintenance_range(config.range or config.name)


def _validate(
    candidates: Sequence[_Candidate], errors: ErrorCollector
) -> dict[BranchType, list[_Candidate]]:
    by_type: dict[BranchType, list[_Candidate]] = {
        "maintenance": [],
        "release": [],
        "prerelease": [],
    }

    counts = Counter(c.config.name for c in candidates)
    duplicates = sorted(name for name, n in counts.items() if n > 1)
    if duplicates:
        errors.add(
            ReleaseError(
                kind="duplicate_branches",
                message="The branches configuration has duplicate branches: "
                + ", ".join(duplicates),
                hint="Each branch can only be configured once.",
            )
        )

    for candidate in candidates:
        config = candidate.config
        branch_type = classify(config)
        by_type[branch_type].append(candidate)

        if branch_type == "maintenance":
            if config.prerelease not in (None, False):
                errors.add(
                    ReleaseError(
                        kind="invalid_branch_config",
                        message=f"The branch `{config.name}` cannot be both a maintenance "
                        f"and a prerelease branch.",
                    )
                )
            if config.range is not None and not is_maintenance_range(config.range):
                errors.add(
                    ReleaseError(
                        kind="invalid_maintenance_branch",
                        message=f"The maintenance branch `{config.name}` has an invalid "
                        f"range `{config.range}`.",
                        hint="Use a range of the form `N.x`, `N.x.x` or `N.N.x`.",
                    )
                )

        if branch_type == "prerelease":
            identifier = prerelease_identifier(config)
            if parse_version(f"1.0.0-{identifier}.1") is None:
                errors.add(
                    ReleaseError(
                        kind="invalid_prerelease_branch",
                        message=f"The prerelease branch `{config.name}` has an invalid "
                        f"prerelease identifier `{identifier}`.",
                        hint="Only alphanumeric characters, `-` and `.` are allowed.",
                    )
                )

    releases = by_type["release"]
    if not 0 < len(releases) <= _MAX_RELEASE_BRANCHES:
        names = ", ".join(c.config.name for c in releases) or "none"
        errors.add(
            ReleaseError(
                kind="invalid_release_branches",
                message=f"The release branches are invalid ({names}).",
                details=f"A minimum of 1 and a maximum of {_MAX_RELEASE_BRANCHES} release "
                f"branches are required.",
            )
        )

    identifiers = Counter(prerelease_identifier(c.config) for c in by_type["prerelease"])
    for identifier, n in sorted(identifiers.items()):
        if n > 1:
            errors.add(
                ReleaseError(
                    kind="invalid_branch_config",
                    message=f"Several prerelease branches use the identifier `{identifier}`.",
                    hint="Each prerelease branch must have a unique prerelease identifier.",
                )
            )

    maintenance = by_type["maintenance"]
    for i, left in enumerate(maintenance):
        for right in maintenance[i + 1 :]:
            a = _maintenance_name_range(left.config)
            b = _maintenance_name_range(right.config)
            if a is not None and b is not None and a.overlaps(b):
                errors.add(
                    ReleaseError(
                        kind="invalid_branch_config",
                        message=f"The maintenance branches `{left.config.name}` (`{a}`) and "
                        f"`{right.config.name}` (`{b}`) claim overlapping ranges.",
                    )
                )

    return by_type


def _normalize_release(candidates: Sequence[_Candidate], first_release: SemVer) -> list[Branch]:
    if not candidates:
        return []

    last_version = _latest(candidates[0].tags) or first_release
    seen: set[SemVer] = set()
    branches: list[Branch] = []
    for idx, candidate in enumerate(candidates):
        versions = _versions(candidate.tags)
        seen.update(versions)
        last_version = highest(versions[-1] if versions else None, last_version) or first_release

        bound: SemVer | None = None
        if idx < len(candidates) - 1:
            newer = _versions(candidates[idx + 1].tags)
            bound = next((v for v in newer if v not in seen), None)

        config = candidate.config
        branches.append(
            Branch(
                name=config.name,
                type="release",
                channel=config.channel if idx == 0 else (config.channel or config.name),
                range=SemverRange(last_version, bound),
                main=idx == 0,
                tags=list(candidate.tags),
            )
        )
    return branches


def _normalize_maintenance(
    candidates: Sequence[_Candidate], release: Sequence[_Candidate]
) -> list[Branch]:
    ranged: list[tuple[SemverRange, _Candidate]] = []
    for candidate in candidates:
        name_range = _maintenance_name_range(candidate.config)
        if name_range is not None:
            ranged.append((name_range, candidate))
    ranged.sort(key=lambda item: item[0].lower or SemVer(0, 0, 0))

    release_versions = _versions(release[0].tags) if release else []
    branches: list[Branch] = []
    for idx, (name_range, candidate) in enumerate(ranged):
        latest = _latest(candidate.tags)
        lower = highest(name_range.lower, latest)
        floor = latest or name_range.lower
        next_maintenance = ranged[idx + 1][0].lower if idx < len(ranged) - 1 else None
        first_release_above = next(
            (v for v in release_versions if floor is not None and v > floor), None
        )
        upper = lowest(name_range.upper, next_maintenance, first_release_above)

        config = candidate.config
        branches.append(
            Branch(
                name=config.name,
                type="maintenance",
                channel=config.channel or config.name,
                range=SemverRange(lower, upper),
                merge_range=name_range,
                tags=list(candidate.tags),
            )
        )
    return branches


def _normalize_prerelease(candidates: Sequence[_Candidate]) -> list[Branch]:
    return [
        Branch(
            name=c.config.name,
            type="prerelease",
            channel=c.config.channel or c.config.name,
            prerelease=prerelease_identifier(c.config),
            tags=list(c.tags),
        )
        for c in candidates
    ]


def _check_overlaps(
    maintenance: Sequence[Branch],
    release: Sequence[Branch],
    prerelease: Sequence[Branch],
    errors: ErrorCollector,
) -> None:
    if release:
        main = release[0]
        for branch in maintenance:
            if branch.range is not None and main.range is not None:
                if branch.range.overlaps(main.range):
                    errors.add(
                        ReleaseError(
                            kind="invalid_branch_config",
                            message=f"The maintenance branch `{branch.name}` range "
                            f"`{branch.range}` overlaps the release branch `{main.name}` "
                            f"range `{main.range}`.",
                            hint="Maintenance branches must be behind the release line.",
                        )
                    )

    release_channels = {b.channel for b in release} | {b.name for b in release}
    for branch in prerelease:
        if branch.channel in release_channels:
            errors.add(
                ReleaseError(
                    kind="invalid_branch_config",
                    message=f"The prerelease branch `{branch.name}` channel `{branch.channel}` "
                    f"collides with a release branch.",
                )
            )


def resolve_branches(
    configs: Sequence[BranchConfig],
    tags_by_branch: Mapping[str, list[Tag]],
    *,
    first_release: str,
) -> Result[list[Branch], ReleaseFailure]:
    """Classify branches and compute their ranges.

    Args:
        configs: Configured branches that exist in the repository
        tags_by_branch: Release tags reachable from each branch, ascending
        first_release: Version of the very first release (e.g. "1.0.0")

    Returns:
        Ok(branches) ordered maintenance, release, prerelease; or Err with
        every configuration problem found.
    """
    initial = clean_version(first_release) or SemVer(1, 0, 0)
    candidates = [_Candidate(c, list(tags_by_branch.get(c.name, []))) for c in configs]

    errors = ErrorCollector()
    by_type = _validate(candidates, errors)
    if errors:
        return Err(errors.failure())

    release = _normalize_release(by_type["release"], initial)
    maintenance = _normalize_maintenance(by_type["maintenance"], by_type["release"])
    prerelease = _normalize_prerelease(by_type["prerelease"])

    _check_overlaps(maintenance, release, prerelease, errors)
    if errors:
        return Err(errors.failure())

    return Ok([*maintenance, *release, *prerelease])


def read_branch_tags(
    git: GitProtocol, ref: str, tag_format: str
) -> Result[list[Tag], ReleaseError]:
    """Read the release tags reachable from `ref`, ascending by version."""
    listed = git.tags_merged_into(ref)
    if isinstance(listed, Err):
        return Err(git_failed(listed.error.command, listed.error.message))

    tags: list[tuple[SemVer, Tag]] = []
    for name in listed.value:
        parsed = parse_tag(tag_format, name)
        if parsed is None:
            continue
        version, channel = parsed
        key = parse_version(version)
        if key is None:
            continue
        head = git.tag_head(name)
        if isinstance(head, Err):
            return Err(git_failed(head.error.command, head.error.message))
        tags.append((key, Tag(version, channel, git_tag=name, git_head=head.value)))

    tags.sort(key=lambda item: item[0])
    return Ok([tag for _, tag in tags])


def load_branches(
    git: GitProtocol,
    configs: Sequence[BranchConfig],
    *,
    tag_format: str,
    first_release: str,
) -> Result[list[Branch], ReleaseFailure]:
    """Resolve configured branches against the repository.

    Branches that exist neither remotely nor locally are ignored.
    """
    existing: list[BranchConfig] = []
    tags_by_branch: dict[str, list[Tag]] = {}
    for config in configs:
        ref = git.branch_ref(config.name)
        if ref is None:
            continue
        tags = read_branch_tags(git, ref, tag_format)
        if isinstance(tags, Err):
            return tags
        existing.append(config)
        tags_by_branch[config.name] = tags.value

    return resolve_branches(existing, tags_by_branch, first_release=first_release)
