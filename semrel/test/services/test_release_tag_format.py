from __future__ import annotations

from semrel.services.release.tag_format import make_tag, parse_tag, tag_pattern


def test_make_tag() -> None:
    assert make_tag("v{version}", "1.0.0") == "v1.0.0"
    assert make_tag("v{version}", "1.0.0", "next") == "v1.0.0@next"
    assert make_tag("release/{version}-final", "2.1.0") == "release/2.1.0-final"


def test_parse_tag_default_channel() -> None:
    assert parse_tag("v{version}", "v1.2.3") == ("1.2.3", None)


def test_parse_tag_with_channel() -> None:
    assert parse_tag("v{version}", "v2.0.0-beta.1@beta") == ("2.0.0-beta.1", "beta")


def test_parse_tag_rejects_other_formats() -> None:
    assert parse_tag("v{version}", "release-1.0.0") is None
    assert parse_tag("v{version}", "vfoo") is None


def test_tag_pattern_escapes_literal_parts() -> None:
    pattern = tag_pattern("pkg+{version}")
    assert pattern.match("pkg+1.0.0")
    assert not pattern.match("pkgg1.0.0")
