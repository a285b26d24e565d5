from __future__ import annotations

from pathlib import Path

import typer

from semrel.cli.context import apply_overrides, build_context, open_repository
from semrel.core.result import Err
from semrel.output.console import Style
from semrel.output.errors import failure_exit_code, print_release_failure
from semrel.services.release.branches import load_branches
from semrel.services.release.model import Branch


def branches(
    branch: list[str] | None = typer.Option(
        None, "--branches", "-b", help="Release branch (repeatable, overrides config)."
    ),
    tag_format: str | None = typer.Option(None, "--tag-format", "-t"),
    config: Path | None = typer.Option(None, "--config", help="Config file to use."),
    cwd: Path | None = typer.Option(None, "--cwd", help="Repository root."),
) -> None:
    """Show the release branches, their channels and version ranges."""
    ctx = build_context(cwd=cwd, config_path=config)
    options = apply_overrides(ctx.config, branches=branch, tag_format=tag_format)
    repo = open_repository(ctx)

    resolved = load_branches(
        repo,
        options.branches,
        tag_format=options.tag_format,
        first_release=options.first_release,
    )
    if isinstance(resolved, Err):
        print_release_failure(resolved.error, ctx.console)
        raise typer.Exit(code=failure_exit_code(resolved.error))

    if not resolved.value:
        ctx.console.warning("no configured branch exists in this repository")
        return

    ctx.console.header("Branches")
    for b in resolved.value:
        ctx.console.print(_describe(b), Style.BOLD if b.main else Style.DEFAULT)


def _describe(branch: Branch) -> str:
    parts = [
        branch.name,
        branch.type,
        f"channel={branch.channel or 'default'}",
    ]
    if branch.range is not None:
        parts.append(f"range={branch.range}")
    if branch.merge_range is not None:
        parts.append(f"merge-range={branch.merge_range}")
    if branch.prerelease:
        parts.append(f"prerelease={branch.prerelease}")
    last = branch.tags[-1].git_tag if branch.tags else "-"
    parts.append(f"last-tag={last}")
    return "  ".join(parts)
