from __future__ import annotations

from dataclasses import replace
from pathlib import Path

import typer

from semrel import __version__
from semrel.cli.context import apply_overrides, build_context, open_repository
from semrel.core.result import Err, Ok
from semrel.output.console import Style
from semrel.output.errors import failure_exit_code, print_release_failure
from semrel.services.release.orchestrator import forces_dry_run, run_environment, run_release
from semrel.services.release.plugins import PluginRegistry


def build_registry() -> PluginRegistry:
    """Registry of named plugins; other plugins are given as `module:attr` paths."""
    return PluginRegistry()


def run(
    dry_run: bool = typer.Option(
        False, "--dry-run", help="Compute the release without tagging or publishing."
    ),
    no_ci: bool = typer.Option(
        False, "--no-ci", help="Allow a release outside CI and on pull request builds."
    ),
    branches: list[str] | None = typer.Option(
        None, "--branches", "-b", help="Release branch (repeatable, overrides config)."
    ),
    repository_url: str | None = typer.Option(None, "--repository-url", "-r"),
    tag_format: str | None = typer.Option(
        None, "--tag-format", "-t", help="Git tag template, e.g. v{version}."
    ),
    plugins: list[str] | None = typer.Option(
        None, "--plugin", "-p", help="Plugin name or module:attr path (repeatable)."
    ),
    config: Path | None = typer.Option(None, "--config", help="Config file to use."),
    cwd: Path | None = typer.Option(None, "--cwd", help="Repository root."),
) -> None:
    """Run a release from the current branch."""
    ctx = build_context(cwd=cwd, config_path=config)
    console = ctx.console
    console.print(f"Running semrel version {__version__}", Style.DIM)

    options = apply_overrides(
        ctx.config,
        dry_run=dry_run,
        no_ci=no_ci,
        branches=branches,
        repository_url=repository_url,
        tag_format=tag_format,
        plugins=plugins,
    )

    env = ctx.env if forces_dry_run(ctx.ci, options) else run_environment(ctx.env)
    repo = open_repository(ctx, env)
    if not options.repository_url:
        options = replace(options, repository_url=repo.remote_url())
    ci = ctx.ci if ctx.ci.branch else replace(ctx.ci, branch=repo.current_branch())

    pipeline = build_registry().load(options.plugins, options.plugin_options)
    if isinstance(pipeline, Err):
        print_release_failure(pipeline.error, console)
        raise typer.Exit(code=failure_exit_code(pipeline.error))
    console.print(f"Loaded plugins: {', '.join(pipeline.value.names) or 'none'}", Style.DIM)

    outcome = run_release(
        cwd=ctx.cwd,
        env=env,
        options=options,
        console=console,
        git=repo,
        plugins=pipeline.value,
        ci=ci,
    )
    match outcome:
        case Ok(None):
            return
        case Ok(result):
            if result.next_release is not None and result.next_release.version:
                console.print(f"next release: {result.next_release.version}", Style.BOLD)
            for release in result.releases:
                url = f" {release.url}" if release.url else ""
                console.print(
                    f"published {release.name} ({release.plugin_name}){url}", Style.DIM
                )
        case Err(failure):
            print_release_failure(failure, console)
            raise typer.Exit(code=failure_exit_code(failure))
