"""Git tag names for releases.

A tag format is a template with exactly one `{version}` placeholder, e.g.
`v{version}`. Releases published on a non-default channel get the channel
appended to the version (`v1.2.0@next`) so that every (version, channel) pair
maps to its own tag.
"""

from __future__ import annotations

import re

from semrel.services.release.semver import clean_version

VERSION_PLACEHOLDER = "{version}"


def make_tag(tag_format: str, version: str, channel: str | None = None) -> str:
    rendered = f"{version}@{channel}" if channel else version
    return tag_format.replace(VERSION_PLACEHOLDER, rendered)


def tag_pattern(tag_format: str) -> re.Pattern[str]:
    """Regex matching tags produced by `tag_format`, capturing the version part."""
    prefix, _, suffix = tag_format.partition(VERSION_PLACEHOLDER)
    return re.compile(f"^{re.escape(prefix)}(.+){re.escape(suffix)}$")


def parse_tag(tag_format: str, tag: str) -> tuple[str, str | None] | None:
    """Return (version, channel) for a tag matching the format, else None."""
    m = tag_pattern(tag_format).match(tag)
    if m is None:
        return None
    version_part, _, channel = m.group(1).partition("@")
    version = clean_version(version_part)
    if version is None:
        return None
    return (str(version), channel or None)
