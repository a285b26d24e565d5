"""Typed release configuration loading and access.

Configuration is read from `.semrel.toml` (root table) or from the
`[tool.semrel]` table of `pyproject.toml`:

    branches = ["1.x", "main", "next", { name = "beta", prerelease = true }]
    tag_format = "v{version}"
    plugins = ["mypkg.release:CommitAnalyzer", "mypkg.release:Publisher"]

    [plugin_options."mypkg.release:Publisher"]
    registry = "https://example.org"
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from .result import Err, Ok, Result
from .structured import (
    StrDict,
    as_str_dict,
    get_bool,
    get_list,
    get_str,
    get_str_list,
    get_table,
)

__all__ = [
    "BranchConfig",
    "ConfigError",
    "DEFAULT_BRANCHES",
    "DEFAULT_TAG_FORMAT",
    "FIRST_RELEASE",
    "ReleaseConfig",
    "load_config",
    "parse_branch_entry",
]

CONFIG_FILE_NAME = ".semrel.toml"
PYPROJECT_FILE_NAME = "pyproject.toml"

DEFAULT_TAG_FORMAT = "v{version}"
FIRST_RELEASE = "1.0.0"


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Error when config cannot be loaded or parsed."""

    message: str
    path: Path | None = None


@dataclass(frozen=True, slots=True)
class BranchConfig:
    """One configured release branch, before classification.

    Attributes:
        name: Git branch name (empty when the entry had no name)
        channel: Distribution channel override, None for the type default
        range: Maintenance range override (e.g. "1.x"), None to derive from name
        prerelease: True to use the name as prerelease identifier, or an explicit identifier
    """

    name: str
    channel: str | None = None
    range: str | None = None
    prerelease: bool | str | None = None


DEFAULT_BRANCHES: tuple[BranchConfig, ...] = (
    BranchConfig(name="main"),
    BranchConfig(name="master"),
    BranchConfig(name="next"),
    BranchConfig(name="next-major"),
    BranchConfig(name="beta", prerelease=True),
    BranchConfig(name="alpha", prerelease=True),
)


def _empty_plugin_options() -> dict[str, StrDict]:
    return {}


@dataclass(frozen=True, slots=True)
class ReleaseConfig:
    """Release options for one run.

    `ci=False` is the equivalent of `--no-ci`: it allows a live release outside
    a CI environment and on pull request builds.
    """

    branches: tuple[BranchConfig, ...] = DEFAULT_BRANCHES
    repository_url: str | None = None
    tag_format: str = DEFAULT_TAG_FORMAT
    plugins: tuple[str, ...] = ()
    plugin_options: dict[str, StrDict] = field(default_factory=_empty_plugin_options)
    first_release: str = FIRST_RELEASE
    dry_run: bool = False
    ci: bool = True

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> ReleaseConfig:
        """Create a ReleaseConfig from a mapping (parsed TOML)."""
        branches = DEFAULT_BRANCHES
        raw_branches = get_list(data, "branches")
        if raw_branches is not None:
            branches = tuple(parse_branch_entry(entry) for entry in raw_branches)

        plugins: tuple[str, ...] = ()
        if "plugins" in data:
            names = get_str_list(data, "plugins")
            if names is None:
                raise ValueError("plugins must be a list of plugin names")
            plugins = tuple(names)

        options: dict[str, StrDict] = {}
        for name, table in (get_table(data, "plugin_options") or {}).items():
            opts = as_str_dict(table)
            if opts is None:
                raise ValueError(f"plugin_options.{name} must be a table")
            options[name] = opts

        dry_run = get_bool(data, "dry_run")
        ci = get_bool(data, "ci")
        return cls(
            branches=branches,
            repository_url=get_str(data, "repository_url"),
            tag_format=get_str(data, "tag_format") or DEFAULT_TAG_FORMAT,
            plugins=plugins,
            plugin_options=options,
            first_release=get_str(data, "first_release") or FIRST_RELEASE,
            dry_run=bool(dry_run),
            ci=True if ci is None else ci,
        )


def parse_branch_entry(entry: object) -> BranchConfig:
    """Normalize a branch entry: a bare name or a table."""
    if isinstance(entry, str):
        return BranchConfig(name=entry.strip())

    table = as_str_dict(entry)
    if table is None:
        raise ValueError(f"invalid branch entry: {entry!r}")

    prerelease: bool | str | None = get_bool(table, "prerelease")
    if prerelease is None:
        prerelease = get_str(table, "prerelease")

    return BranchConfig(
        name=get_str(table, "name") or "",
        channel=get_str(table, "channel"),
        range=get_str(table, "range"),
        prerelease=prerelease,
    )


def _parse_toml(path: Path) -> Result[StrDict, ConfigError]:
    """Parse a TOML file, handling read and parse errors."""
    import tomllib

    try:
        data = as_str_dict(tomllib.loads(path.read_bytes().decode("utf-8")))
        if data is None:
            return Err(ConfigError("Config root must be a TOML table", path=path))
        return Ok(data)
    except FileNotFoundError:
        return Err(ConfigError(f"Config file not found: {path}", path=path))
    except PermissionError:
        return Err(ConfigError(f"Permission denied reading: {path}", path=path))
    except tomllib.TOMLDecodeError as e:
        return Err(ConfigError(f"Invalid TOML syntax: {e}", path=path))
    except UnicodeDecodeError as e:
        return Err(ConfigError(f"Error reading config: {e}", path=path))


def _find_config_table(
    cwd: Path, path: Path | None
) -> Result[tuple[StrDict, Path | None], ConfigError]:
    if path is not None:
        parsed = _parse_toml(path)
        if isinstance(parsed, Err):
            return parsed
        return Ok((parsed.value, path))

    dedicated = cwd / CONFIG_FILE_NAME
    if dedicated.is_file():
        parsed = _parse_toml(dedicated)
        if isinstance(parsed, Err):
            return parsed
        return Ok((parsed.value, dedicated))

    pyproject = cwd / PYPROJECT_FILE_NAME
    if pyproject.is_file():
        parsed = _parse_toml(pyproject)
        if isinstance(parsed, Err):
            return parsed
        tool = get_table(parsed.value, "tool") or {}
        table = get_table(tool, "semrel")
        if table is not None:
            return Ok((table, pyproject))

    return Ok(({}, None))


def load_config(cwd: Path, path: Path | None = None) -> Result[ReleaseConfig, ConfigError]:
    """Load release configuration for a repository.

    Args:
        cwd: Repository root used to look up `.semrel.toml` / `pyproject.toml`
        path: Explicit config file, overriding the lookup

    Returns:
        Ok(ReleaseConfig) on success (defaults when no config exists),
        Err(ConfigError) on failure
    """
    found = _find_config_table(cwd, path)
    if isinstance(found, Err):
        return found

    table, source = found.value
    try:
        return Ok(ReleaseConfig.from_dict(table))
    except (KeyError, TypeError, ValueError) as e:
        return Err(ConfigError(f"Invalid config structure: {e}", path=source))
