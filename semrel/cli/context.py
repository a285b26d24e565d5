from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path

import typer

from semrel.core.config import ReleaseConfig, load_config, parse_branch_entry
from semrel.core.errors import ErrorCode
from semrel.core.result import Err
from semrel.git.repository import GitRepository
from semrel.output.console import ConsoleProtocol, MaskedConsole, RichConsole
from semrel.platform.ci import CiEnvironment, detect_ci


@dataclass(frozen=True, slots=True)
class CLIContext:
    cwd: Path
    env: dict[str, str]
    config: ReleaseConfig
    console: ConsoleProtocol
    ci: CiEnvironment


def build_context(*, cwd: Path | None = None, config_path: Path | None = None) -> CLIContext:
    try:
        root = (cwd or Path.cwd()).expanduser().resolve()
    except OSError as e:
        typer.echo(f"error: invalid --cwd: {e}", err=True)
        raise typer.Exit(code=int(ErrorCode.ENV_ERROR))

    env = dict(os.environ)
    console = MaskedConsole(RichConsole(), env)

    config_result = load_config(root, config_path)
    if isinstance(config_result, Err):
        console.error(config_result.error.message)
        raise typer.Exit(code=int(ErrorCode.CONFIG_ERROR))

    return CLIContext(
        cwd=root,
        env=env,
        config=config_result.value,
        console=console,
        ci=detect_ci(env),
    )


def open_repository(ctx: CLIContext, env: dict[str, str] | None = None) -> GitRepository:
    repo = GitRepository(ctx.cwd, env=env if env is not None else ctx.env)
    if not repo.exists():
        ctx.console.error(f"not a git repository: {ctx.cwd}")
        raise typer.Exit(code=int(ErrorCode.ENV_ERROR))
    return repo


def apply_overrides(
    config: ReleaseConfig,
    *,
    dry_run: bool = False,
    no_ci: bool = False,
    branches: list[str] | None = None,
    repository_url: str | None = None,
    tag_format: str | None = None,
    plugins: list[str] | None = None,
) -> ReleaseConfig:
    """Apply command line flags on top of the file configuration."""
    updated = config
    if dry_run:
        updated = replace(updated, dry_run=True)
    if no_ci:
        updated = replace(updated, ci=False)
    if branches:
        updated = replace(updated, branches=tuple(parse_branch_entry(b) for b in branches))
    if repository_url:
        updated = replace(updated, repository_url=repository_url)
    if tag_format:
        updated = replace(updated, tag_format=tag_format)
    if plugins:
        updated = replace(updated, plugins=tuple(plugins))
    return updated
