"""Release plugins.

A plugin is a ReleasePlugin subclass overriding any of the lifecycle hooks.
Plugins are named in the configuration either by a registered name or by an
import path (`package.module:ClassName`) and are resolved once, at startup,
into a PluginPipeline which runs each hook across all plugins in order.

Hook semantics:
- verify_conditions, verify_release, success, fail: every plugin runs, errors
  are collected and reported together
- analyze_commits: the highest bump reported by any plugin wins
- generate_notes: non-empty notes are joined by a blank line
- prepare: notes are regenerated after each plugin, so later plugins see
  notes reflecting earlier changes
- publish, add_channel: each plugin may report where it published
"""

from __future__ import annotations

import importlib
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, TypeVar

from semrel.core.result import Err, Ok, Result
from semrel.core.structured import StrDict
from semrel.services.release.errors import ErrorCollector, PluginError, ReleaseError, ReleaseFailure
from semrel.services.release.model import RELEASE_BUMPS, NextRelease, Release, ReleaseBump

if TYPE_CHECKING:
    from semrel.services.release.context import ReleaseContext

__all__ = [
    "PluginPipeline",
    "PluginRegistry",
    "PublishInfo",
    "ReleasePlugin",
]

RELEASE_NOTES_SEPARATOR = "\n\n"


def _empty_data() -> dict[str, object]:
    return {}


@dataclass(frozen=True, slots=True)
class PublishInfo:
    """What a plugin reports after publishing (or adding a channel)."""

    name: str | None = None
    url: str | None = None
    data: dict[str, object] = field(default_factory=_empty_data)


class ReleasePlugin:
    """Base class for plugins. Every hook is a no-op by default."""

    def __init__(self, options: Mapping[str, object] | None = None) -> None:
        self.options: dict[str, object] = dict(options or {})

    def verify_conditions(self, context: ReleaseContext) -> None:
        """Check the plugin can run (credentials, config...)."""

    def analyze_commits(self, context: ReleaseContext) -> ReleaseBump | None:
        """Return the bump warranted by `context.commits`, None for no release."""
        return None

    def verify_release(self, context: ReleaseContext) -> None:
        """Validate `context.next_release` before anything is published."""

    def generate_notes(self, context: ReleaseContext) -> str | None:
        return None

    def prepare(self, context: ReleaseContext) -> None:
        """Prepare the release (update files, build artifacts...)."""

    def publish(self, context: ReleaseContext) -> PublishInfo | None:
        return None

    def add_channel(self, context: ReleaseContext) -> PublishInfo | None:
        """Make `context.current_release` available on `context.next_release.channel`."""
        return None

    def success(self, context: ReleaseContext) -> None:
        """Notify about the releases of this run."""

    def fail(self, context: ReleaseContext) -> None:
        """Notify about `context.errors`."""


PluginFactory = Callable[[StrDict], ReleasePlugin]


class PluginRegistry:
    """Maps plugin names to factories.

    Names containing `:` that are not registered are imported as
    `module:attribute`, the attribute being called with the plugin options.
    """

    def __init__(self) -> None:
        self._factories: dict[str, PluginFactory] = {}

    def register(self, name: str, factory: PluginFactory) -> None:
        self._factories[name] = factory

    def resolve(self, name: str, options: StrDict) -> Result[ReleasePlugin, ReleaseError]:
        factory = self._factories.get(name)
        if factory is None:
            loaded = _import_factory(name)
            if isinstance(loaded, Err):
                return loaded
            factory = loaded.value

        try:
            plugin = factory(options)
        except PluginError as e:
            return Err(e.to_release_error())
        except (TypeError, ValueError) as e:
            return Err(
                ReleaseError(kind="config_invalid", message=f"Cannot create plugin {name}: {e}")
            )

        if not isinstance(plugin, ReleasePlugin):
            return Err(
                ReleaseError(
                    kind="plugin_not_found",
                    message=f"Plugin {name} does not provide a ReleasePlugin.",
                )
            )
        return Ok(plugin)

    def load(
        self, names: Sequence[str], options: Mapping[str, StrDict]
    ) -> Result[PluginPipeline, ReleaseFailure]:
        """Resolve every configured plugin, reporting all failures together."""
        errors = ErrorCollector()
        plugins: list[tuple[str, ReleasePlugin]] = []
        for name in names:
            match self.resolve(name, options.get(name, {})):
                case Ok(plugin):
                    plugins.append((name, plugin))
                case Err(error):
                    errors.add(error)
        if errors:
            return Err(errors.failure())
        return Ok(PluginPipeline(plugins))


def _import_factory(name: str) -> Result[PluginFactory, ReleaseError]:
    module_name, sep, attr = name.partition(":")
    if not sep or not module_name or not attr:
        return Err(
            ReleaseError(
                kind="plugin_not_found",
                message=f"Unknown plugin: {name}",
                hint="Use a registered plugin name or an import path like `pkg.module:Plugin`.",
            )
        )
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        return Err(ReleaseError(kind="plugin_not_found", message=f"Cannot import {name}: {e}"))

    factory = getattr(module, attr, None)
    if not callable(factory):
        return Err(
            ReleaseError(kind="plugin_not_found", message=f"{module_name} has no plugin {attr}")
        )
    return Ok(factory)


class PluginPipeline:
    """Runs each hook across the configured plugins, in configuration order."""

    def __init__(self, plugins: Sequence[tuple[str, ReleasePlugin]]) -> None:
        self._plugins = list(plugins)

    @property
    def names(self) -> list[str]:
        return [name for name, _ in self._plugins]

    def verify_conditions(self, context: ReleaseContext) -> Result[None, ReleaseFailure]:
        return self._settle_all(context, lambda p: p.verify_conditions)

    def analyze_commits(
        self, context: ReleaseContext
    ) -> Result[ReleaseBump | None, ReleaseFailure]:
        highest: ReleaseBump | None = None
        for name, plugin in self._plugins:
            result = _call(name, lambda: plugin.analyze_commits(context))
            if isinstance(result, Err):
                return result
            bump = result.value
            if bump is None:
                continue
            if bump not in RELEASE_BUMPS:
                return Err(
                    ReleaseError(
                        kind="plugin_failed",
                        message=f"Plugin {name} returned an invalid release type: {bump!r}",
                    )
                )
            if highest is None or RELEASE_BUMPS.index(bump) > RELEASE_BUMPS.index(highest):
                highest = bump
        return Ok(highest)

    def verify_release(self, context: ReleaseContext) -> Result[None, ReleaseFailure]:
        return self._settle_all(context, lambda p: p.verify_release)

    def generate_notes(self, context: ReleaseContext) -> Result[str, ReleaseFailure]:
        notes: list[str] = []
        for name, plugin in self._plugins:
            result = _call(name, lambda: plugin.generate_notes(context))
            if isinstance(result, Err):
                return result
            if result.value:
                notes.append(result.value.strip())
        return Ok(RELEASE_NOTES_SEPARATOR.join(n for n in notes if n))

    def prepare(self, context: ReleaseContext) -> Result[None, ReleaseFailure]:
        for name, plugin in self._plugins:
            result = _call(name, lambda: plugin.prepare(context))
            if isinstance(result, Err):
                return result
            if context.next_release is not None:
                notes = self.generate_notes(context)
                if isinstance(notes, Err):
                    return notes
                context.next_release.notes = notes.value
        return Ok(None)

    def publish(self, context: ReleaseContext) -> Result[list[Release], ReleaseFailure]:
        return self._collect_releases(context, lambda p: p.publish)

    def add_channel(self, context: ReleaseContext) -> Result[list[Release], ReleaseFailure]:
        return self._collect_releases(context, lambda p: p.add_channel)

    def success(self, context: ReleaseContext) -> Result[None, ReleaseFailure]:
        return self._settle_all(context, lambda p: p.success)

    def fail(self, context: ReleaseContext) -> Result[None, ReleaseFailure]:
        return self._settle_all(context, lambda p: p.fail)

    def _settle_all(
        self,
        context: ReleaseContext,
        hook: Callable[[ReleasePlugin], Callable[[ReleaseContext], None]],
    ) -> Result[None, ReleaseFailure]:
        errors = ErrorCollector()
        for name, plugin in self._plugins:
            result = _call(name, lambda: hook(plugin)(context))
            if isinstance(result, Err):
                errors.add(result.error)
        return errors.finish()

    def _collect_releases(
        self,
        context: ReleaseContext,
        hook: Callable[[ReleasePlugin], Callable[[ReleaseContext], PublishInfo | None]],
    ) -> Result[list[Release], ReleaseFailure]:
        releases: list[Release] = []
        for name, plugin in self._plugins:
            result = _call(name, lambda: hook(plugin)(context))
            if isinstance(result, Err):
                return result
            info = result.value
            if info is None or context.next_release is None:
                continue
            releases.append(_stamp(info, context.next_release, name))
        return Ok(releases)


def _stamp(info: PublishInfo, next_release: NextRelease, plugin_name: str) -> Release:
    return Release(
        version=next_release.version,
        channel=next_release.channel,
        git_tag=next_release.git_tag,
        git_head=next_release.git_head,
        name=info.name or next_release.name,
        plugin_name=plugin_name,
        url=info.url,
        data=dict(info.data),
    )


T = TypeVar("T")


def _call(name: str, fn: Callable[[], T]) -> Result[T, ReleaseError]:
    """Invoke a plugin hook, converting raised exceptions into errors."""
    try:
        return Ok(fn())
    except PluginError as e:
        return Err(replace(e.to_release_error(), message=f"[{name}] {e.message}"))
    except Exception as e:
        return Err(
            ReleaseError(
                kind="plugin_failed",
                message=f"[{name}] {type(e).__name__}: {e}",
                internal=False,
            )
        )
