from __future__ import annotations

from pathlib import Path

import pytest

from semrel.core.config import ReleaseConfig
from semrel.core.result import Err, Ok
from semrel.output.console import MockConsole
from semrel.services.release.context import ReleaseContext
from semrel.services.release.errors import AggregateReleaseError, PluginError, extract_errors
from semrel.services.release.model import NextRelease, ReleaseBump
from semrel.services.release.plugins import (
    PluginPipeline,
    PluginRegistry,
    PublishInfo,
    ReleasePlugin,
)


class Analyzer(ReleasePlugin):
    def __init__(self, bump: ReleaseBump | None) -> None:
        super().__init__()
        self.bump = bump

    def analyze_commits(self, context: ReleaseContext) -> ReleaseBump | None:
        return self.bump


class Notes(ReleasePlugin):
    def __init__(self, text: str | None) -> None:
        super().__init__()
        self.text = text

    def generate_notes(self, context: ReleaseContext) -> str | None:
        return self.text


class Changelog(ReleasePlugin):
    """Appends to its notes on prepare, like a changelog writer would."""

    def __init__(self) -> None:
        super().__init__()
        self.prepared = False

    def prepare(self, context: ReleaseContext) -> None:
        self.prepared = True

    def generate_notes(self, context: ReleaseContext) -> str | None:
        return "changelog updated" if self.prepared else None


class Failing(ReleasePlugin):
    def __init__(self, exc: Exception) -> None:
        super().__init__()
        self.exc = exc

    def verify_conditions(self, context: ReleaseContext) -> None:
        raise self.exc


class Publisher(ReleasePlugin):
    def publish(self, context: ReleaseContext) -> PublishInfo | None:
        return PublishInfo(name="PyPI release", url="https://pypi.org/p/app", data={"id": 1})


def _context() -> ReleaseContext:
    context = ReleaseContext(
        cwd=Path("/repo"),
        env={},
        options=ReleaseConfig(),
        console=MockConsole(),
        git=None,  # type: ignore[arg-type]
    )
    context.next_release = NextRelease(
        type="minor",
        channel="next",
        git_head="abc",
        version="1.1.0",
        git_tag="v1.1.0@next",
        name="v1.1.0",
    )
    return context


def _pipeline(*plugins: ReleasePlugin) -> PluginPipeline:
    return PluginPipeline([(type(p).__name__.lower(), p) for p in plugins])


class TestAnalyzeCommits:
    def test_highest_bump_wins(self) -> None:
        pipeline = _pipeline(
            Analyzer("patch"), Analyzer("major"), Analyzer(None), Analyzer("minor")
        )
        assert pipeline.analyze_commits(_context()) == Ok("major")

    def test_no_bump(self) -> None:
        assert _pipeline(Analyzer(None)).analyze_commits(_context()) == Ok(None)

    def test_invalid_bump(self) -> None:
        result = _pipeline(Analyzer("huge")).analyze_commits(_context())  # type: ignore[arg-type]
        assert isinstance(result, Err)
        assert "invalid release type" in result.error.message  # type: ignore[union-attr]


class TestNotes:
    def test_join_non_empty_notes(self) -> None:
        pipeline = _pipeline(Notes("## Features"), Notes(None), Notes("  "), Notes("## Fixes\n"))
        assert pipeline.generate_notes(_context()) == Ok("## Features\n\n## Fixes")

    def test_prepare_regenerates_notes(self) -> None:
        context = _context()
        pipeline = _pipeline(Notes("## Features"), Changelog())
        assert pipeline.prepare(context) == Ok(None)
        assert context.next_release is not None
        assert context.next_release.notes == "## Features\n\nchangelog updated"


class TestSettleAll:
    def test_every_plugin_runs_and_errors_are_aggregated(self) -> None:
        calls: list[str] = []

        class Recorder(ReleasePlugin):
            def verify_conditions(self, context: ReleaseContext) -> None:
                calls.append("recorder")

        pipeline = PluginPipeline(
            [
                ("npm", Failing(PluginError("No npm token"))),
                ("recorder", Recorder()),
                ("github", Failing(RuntimeError("boom"))),
            ]
        )
        result = pipeline.verify_conditions(_context())

        assert calls == ["recorder"]
        assert isinstance(result, Err)
        assert isinstance(result.error, AggregateReleaseError)
        first, second = result.error.errors
        assert first.message == "[npm] No npm token"
        assert first.internal is True
        assert second.kind == "plugin_failed"
        assert second.message == "[github] RuntimeError: boom"
        assert second.internal is False

    def test_single_failure_is_not_wrapped(self) -> None:
        result = _pipeline(Failing(PluginError("bad", kind="config_invalid"))).verify_conditions(
            _context()
        )
        assert isinstance(result, Err)
        (error,) = extract_errors(result.error)
        assert error.kind == "config_invalid"


class TestPublish:
    def test_releases_are_stamped(self) -> None:
        result = PluginPipeline([("pypi", Publisher()), ("noop", ReleasePlugin())]).publish(
            _context()
        )
        assert isinstance(result, Ok)
        (release,) = result.value
        assert release.plugin_name == "pypi"
        assert release.version == "1.1.0"
        assert release.channel == "next"
        assert release.git_tag == "v1.1.0@next"
        assert release.git_head == "abc"
        assert release.name == "PyPI release"
        assert release.url == "https://pypi.org/p/app"
        assert release.data == {"id": 1}

    def test_add_channel_defaults_to_no_release(self) -> None:
        assert _pipeline(ReleasePlugin()).add_channel(_context()) == Ok([])


def make_plugin(options: dict[str, object]) -> ReleasePlugin:
    return ReleasePlugin(options)


class TestRegistry:
    def test_registered_factory_gets_options(self) -> None:
        registry = PluginRegistry()
        registry.register("noop", make_plugin)
        result = registry.load(["noop"], {"noop": {"dry": True}})
        assert isinstance(result, Ok)
        assert result.value.names == ["noop"]

    def test_import_path(self) -> None:
        result = PluginRegistry().resolve("semrel.services.release.plugins:ReleasePlugin", {"a": 1})
        assert isinstance(result, Ok)
        assert result.value.options == {"a": 1}

    @pytest.mark.parametrize(
        "name",
        [
            "unknown",
            "semrel.does_not_exist:Plugin",
            "semrel.services.release.plugins:Missing",
            "semrel.services.release.plugins:RELEASE_NOTES_SEPARATOR",
        ],
    )
    def test_not_found(self, name: str) -> None:
        result = PluginRegistry().resolve(name, {})
        assert isinstance(result, Err)
        assert result.error.kind == "plugin_not_found"

    def test_factory_must_return_a_plugin(self) -> None:
        registry = PluginRegistry()
        registry.register("bad", lambda options: object())  # type: ignore[arg-type,return-value]
        result = registry.resolve("bad", {})
        assert isinstance(result, Err)
        assert result.error.kind == "plugin_not_found"

    def test_load_reports_every_failure(self) -> None:
        result = PluginRegistry().load(["a", "b"], {})
        assert isinstance(result, Err)
        assert isinstance(result.error, AggregateReleaseError)
        assert len(result.error.errors) == 2
