"""Back-port (release-to-add) computation.

When a newer branch is merged into an older one (e.g. `next` into `main`),
the releases published on the newer branch's channel become part of the older
branch history. Each of them must also be tagged and published on the older
branch's channel.
"""

from __future__ import annotations

from collections.abc import Sequence

from semrel.services.release.model import Branch, NextRelease, ReleaseToAdd, Tag
from semrel.services.release.semver import SemVer, diff, parse_version
from semrel.services.release.tag_format import make_tag
from semrel.services.release.versioning import get_last_release


def _unique_by_version(tags: Sequence[Tag]) -> list[Tag]:
    seen: set[str] = set()
    out: list[Tag] = []
    for tag in tags:
        if tag.version not in seen:
            seen.add(tag.version)
            out.append(tag)
    return out


def _predates(branch: Branch, version: SemVer) -> bool:
    """True for releases older than the line a maintenance branch was cut for."""
    if branch.type != "maintenance" or branch.merge_range is None:
        return False
    lower = branch.merge_range.lower
    return lower is not None and version < lower


def get_releases_to_add(
    branches: Sequence[Branch], branch: Branch, tag_format: str
) -> list[ReleaseToAdd]:
    """List releases to add to `branch`'s channel, ascending by version.

    Only branches after `branch` in resolution order are considered, and
    prerelease branches never are. On a maintenance branch, releases below its
    merge range are history, not candidates; those above it are kept so the
    caller can reject them. The computation is read-only: calling it
    twice on the same tag state gives the same result.
    """
    index = next((i for i, b in enumerate(branches) if b.name == branch.name), len(branches))
    higher = [b for b in branches[index + 1 :] if b.type != "prerelease"]

    on_channel = {t.version for t in branch.tags if t.channel == branch.channel}
    to_add: list[tuple[SemVer, ReleaseToAdd]] = []
    for higher_branch in higher:
        merged = [t for t in branch.tags if t.channel == higher_branch.channel]
        for tag in _unique_by_version(merged):
            if tag.version in on_channel:
                continue
            version = parse_version(tag.version)
            if version is None or _predates(branch, version):
                continue
            on_channel.add(tag.version)

            last_release = get_last_release(branch, tag_format, before=tag.version)
            last = parse_version(last_release.version) if last_release else None
            bump = (diff(last, version) if last else None) or "major"
            name = make_tag(tag_format, tag.version)
            git_head = tag.git_head or tag.git_tag

            to_add.append(
                (
                    version,
                    ReleaseToAdd(
                        last_release=last_release,
                        current_release=NextRelease(
                            type=bump,
                            channel=higher_branch.channel,
                            git_head=git_head,
                            version=tag.version,
                            git_tag=tag.git_tag,
                            name=name,
                        ),
                        next_release=NextRelease(
                            type=bump,
                            channel=branch.channel,
                            git_head=git_head,
                            version=tag.version,
                            git_tag=make_tag(tag_format, tag.version, branch.channel),
                            name=name,
                        ),
                    ),
                )
            )

    to_add.sort(key=lambda item: item[0])
    return [item for _, item in to_add]
