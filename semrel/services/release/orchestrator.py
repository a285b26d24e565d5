"""Release run orchestration.

One run walks these steps in order, each one able to end the run:

1. environment gate: outside CI the run is forced to dry-run; pull request
   builds never release
2. configuration and push permission checks; a local branch behind its
   remote is a silent no-release
3. branch resolution and selection of the branch being built
4. plugin preconditions
5. back-port pass: releases of newer branches merged into this one are
   tagged and published on this branch's channel, oldest first
6. commit analysis; no bump means no release
7. next version computation and validation
8. dry-run: notes are only displayed
9. live run: notes, prepare, tag and push, publish, success

Every step returns a Result. On failure outside dry-run, plugins' `fail`
hook gets the errors semrel raised itself before the failure is returned.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import replace
from pathlib import Path

from semrel.core.config import ReleaseConfig
from semrel.core.result import Err, Ok, Result
from semrel.git.repository import Commit, GitError, GitProtocol
from semrel.output.console import ConsoleProtocol
from semrel.output.errors import print_release_failure
from semrel.platform.ci import CiEnvironment
from semrel.services.release.auth_url import get_auth_url
from semrel.services.release.branches import load_branches
from semrel.services.release.context import ReleaseContext
from semrel.services.release.errors import (
    ErrorCollector,
    ReleaseError,
    ReleaseFailure,
    extract_errors,
    git_failed,
    git_no_permission,
    invalid_merge_range,
    invalid_next_version,
)
from semrel.services.release.model import (
    LastRelease,
    NextRelease,
    ReleaseToAdd,
    RunResult,
    Tag,
)
from semrel.services.release.plugins import PluginPipeline
from semrel.services.release.releases_to_add import get_releases_to_add
from semrel.services.release.semver import parse_version
from semrel.services.release.tag_format import make_tag
from semrel.services.release.verify import verify_config
from semrel.services.release.versioning import get_last_release, get_next_version

COMMIT_NAME = "semrel-bot"
COMMIT_EMAIL = "semrel-bot@users.noreply.github.com"

RunOutcome = Result[RunResult | None, ReleaseFailure]


def run_environment(env: Mapping[str, str]) -> dict[str, str]:
    """Environment for git on CI: default identity, never prompt for credentials."""
    return {
        "GIT_AUTHOR_NAME": COMMIT_NAME,
        "GIT_AUTHOR_EMAIL": COMMIT_EMAIL,
        "GIT_COMMITTER_NAME": COMMIT_NAME,
        "GIT_COMMITTER_EMAIL": COMMIT_EMAIL,
        **env,
        "GIT_ASKPASS": "echo",
        "GIT_TERMINAL_PROMPT": "0",
    }


def forces_dry_run(ci: CiEnvironment, options: ReleaseConfig) -> bool:
    return not ci.is_ci and not options.dry_run and options.ci


def run_release(
    *,
    cwd: Path,
    env: Mapping[str, str],
    options: ReleaseConfig,
    console: ConsoleProtocol,
    git: GitProtocol,
    plugins: PluginPipeline,
    ci: CiEnvironment,
) -> RunOutcome:
    """Run one release.

    Returns:
        Ok(RunResult) when something was released (or would be, in dry-run),
        Ok(None) when nothing had to be released,
        Err(ReleaseFailure) on failure
    """
    context = ReleaseContext(cwd=cwd, env=dict(env), options=options, console=console, git=git)
    outcome = _run(context, plugins, ci)
    if isinstance(outcome, Err) and not context.options.dry_run:
        _call_fail(context, plugins, outcome.error)
    return outcome


def _run(context: ReleaseContext, plugins: PluginPipeline, ci: CiEnvironment) -> RunOutcome:
    console = context.console
    git = context.git

    if forces_dry_run(ci, context.options):
        console.info(
            "This run was not triggered in a known CI environment, running in dry-run mode."
        )
        context.options = replace(context.options, dry_run=True)
    else:
        context.env = run_environment(context.env)
    options = context.options

    if ci.is_ci and ci.is_pr and options.ci:
        console.info(
            "This run was triggered by a pull request and therefore a new version "
            "won't be published."
        )
        return Ok(None)

    verified = verify_config(options, git)
    if isinstance(verified, Err):
        return verified

    configured = [b.name for b in options.branches]
    if ci.branch is None or ci.branch not in configured:
        console.info(
            f"This run was triggered on the branch {ci.branch}, while semrel is configured "
            f"to only publish from {', '.join(configured)}, therefore a new version won't "
            f"be published."
        )
        return Ok(None)
    branch_name = ci.branch
    console.success(f"Run automated release from branch {branch_name}")

    repository_url = options.repository_url or ""
    context.repository_url = get_auth_url(repository_url, context.env)
    auth = git.verify_auth(context.repository_url, branch_name)
    if isinstance(auth, Err):
        if not git.is_branch_up_to_date(branch_name):
            console.info(
                f"The local branch {branch_name} is behind the remote one, therefore a new "
                f"version won't be published."
            )
            return Ok(None)
        console.error(
            f'The command "git {auth.error.command}" failed with the error message '
            f"{auth.error.message}."
        )
        return Err(git_no_permission(repository_url, branch_name))
    console.success("Allowed to push to the Git repository")

    fetched = git.fetch()
    if isinstance(fetched, Err):
        return Err(_git_error(fetched.error))

    branches = load_branches(
        git,
        options.branches,
        tag_format=options.tag_format,
        first_release=options.first_release,
    )
    if isinstance(branches, Err):
        return branches
    context.branches = branches.value

    branch = next((b for b in context.branches if b.name == branch_name), None)
    if branch is None:
        console.info(
            f"The branch {branch_name} does not exist in the repository, therefore a new "
            f"version won't be published."
        )
        return Ok(None)
    context.branch = branch

    conditions = plugins.verify_conditions(context)
    if isinstance(conditions, Err):
        return conditions

    added = _add_releases(context, plugins)
    if isinstance(added, Err):
        return added

    return _release(context, plugins)


def _add_releases(context: ReleaseContext, plugins: PluginPipeline) -> Result[None, ReleaseFailure]:
    """Publish releases of newer branches merged into the current branch.

    Releases outside the branch merge range are skipped and reported together
    once every valid one has been published.
    """
    branch = context.branch
    if branch is None:
        return Ok(None)

    errors = ErrorCollector()
    for item in get_releases_to_add(context.branches, branch, context.options.tag_format):
        next_release = item.next_release
        if branch.merge_range is not None:
            version = parse_version(next_release.version)
            if version is None or not branch.merge_range.satisfies(version):
                errors.add(invalid_merge_range(next_release, branch))
                continue

        if context.options.dry_run:
            context.console.info(
                f"Skip adding release {next_release.version} to channel "
                f"{next_release.channel or 'default'} in dry-run mode"
            )
            continue

        added = _add_release(context, plugins, item)
        if isinstance(added, Err):
            return added

    return errors.finish()


def _add_release(
    context: ReleaseContext, plugins: PluginPipeline, item: ReleaseToAdd
) -> Result[None, ReleaseFailure]:
    branch = context.branch
    if branch is None:
        return Ok(None)
    next_release = item.next_release

    commits = _get_commits(context, item.last_release, next_release.git_head)
    if isinstance(commits, Err):
        return commits
    hook_context = replace(
        context,
        commits=commits.value,
        last_release=item.last_release,
        next_release=next_release,
    )

    notes = plugins.generate_notes(hook_context)
    if isinstance(notes, Err):
        return notes
    next_release.notes = notes.value

    context.console.info(f"Create tag {next_release.git_tag}")
    tagged = _tag_and_push(context, next_release)
    if isinstance(tagged, Err):
        return tagged

    hook_context.current_release = item.current_release
    released = plugins.add_channel(hook_context)
    if isinstance(released, Err):
        return released
    context.releases.extend(released.value)

    return plugins.success(replace(hook_context, releases=list(released.value)))


def _release(context: ReleaseContext, plugins: PluginPipeline) -> RunOutcome:
    branch = context.branch
    if branch is None:
        return Ok(None)
    console = context.console
    options = context.options

    context.last_release = get_last_release(branch, options.tag_format)
    head = context.git.get_git_head()
    if isinstance(head, Err):
        return Err(_git_error(head.error))
    commits = _get_commits(context, context.last_release, head.value)
    if isinstance(commits, Err):
        return commits
    context.commits = commits.value

    bump = plugins.analyze_commits(context)
    if isinstance(bump, Err):
        return bump
    if bump.value is None:
        console.info("There are no relevant changes, so no new version is released.")
        if context.releases:
            return Ok(_result(context))
        return Ok(None)

    next_release = NextRelease(type=bump.value, channel=branch.channel, git_head=head.value)
    context.next_release = next_release
    computed = get_next_version(
        branch, bump.value, context.last_release, first_release=options.first_release
    )
    if isinstance(computed, Err):
        return computed
    next_release.version = computed.value
    next_release.git_tag = make_tag(options.tag_format, next_release.version, branch.channel)
    next_release.name = make_tag(options.tag_format, next_release.version)

    if branch.type != "prerelease":
        version = parse_version(next_release.version)
        if branch.range is None or version is None or not branch.range.satisfies(version):
            return Err(invalid_next_version(next_release.version, branch))

    verified = plugins.verify_release(context)
    if isinstance(verified, Err):
        return verified

    notes = plugins.generate_notes(context)
    if isinstance(notes, Err):
        return notes

    if options.dry_run:
        console.info(f"Release note for version {next_release.version}:")
        if notes.value:
            console.markdown(notes.value)
        return Ok(_result(context))

    next_release.notes = notes.value
    prepared = plugins.prepare(context)
    if isinstance(prepared, Err):
        return prepared

    # Publishers may rely on the tag being on the remote
    tagged = _tag_and_push(context, next_release)
    if isinstance(tagged, Err):
        return tagged
    console.success(f"Created tag {next_release.git_tag}")

    published = plugins.publish(context)
    if isinstance(published, Err):
        return published
    context.releases.extend(published.value)

    succeeded = plugins.success(context)
    if isinstance(succeeded, Err):
        return succeeded

    console.success(f"Published release {next_release.version}")
    return Ok(_result(context))


def _tag_and_push(context: ReleaseContext, release: NextRelease) -> Result[None, ReleaseError]:
    branch = context.branch
    if branch is None:
        return Ok(None)

    tagged = context.git.tag(release.git_tag, release.git_head)
    if isinstance(tagged, Err):
        return Err(_git_error(tagged.error))
    pushed = context.git.push(context.repository_url, branch.name)
    if isinstance(pushed, Err):
        return Err(_git_error(pushed.error))

    branch.tags.append(
        Tag(
            version=release.version,
            channel=release.channel,
            git_tag=release.git_tag,
            git_head=release.git_head,
        )
    )
    return Ok(None)


def _get_commits(
    context: ReleaseContext, last_release: LastRelease | None, head: str
) -> Result[list[Commit], ReleaseError]:
    start = last_release.git_head if last_release else None
    if last_release is not None:
        context.console.info(
            f"Found git tag {last_release.git_tag} associated with version "
            f"{last_release.version} on branch {context.branch.name if context.branch else ''}"
        )
    else:
        context.console.info("No previous release found, retrieving all commits")

    commits = context.git.commits_between(start, head)
    if isinstance(commits, Err):
        return Err(_git_error(commits.error))
    context.console.info(f"Found {len(commits.value)} commits since last release")
    return Ok(commits.value)


def _git_error(error: GitError) -> ReleaseError:
    return git_failed(error.command, error.message)


def _result(context: ReleaseContext) -> RunResult:
    return RunResult(
        last_release=context.last_release,
        commits=tuple(context.commits),
        next_release=context.next_release,
        releases=tuple(context.releases),
    )


def _call_fail(context: ReleaseContext, plugins: PluginPipeline, failure: ReleaseFailure) -> None:
    """Give plugins the errors semrel raised itself; failures here are only logged."""
    errors = tuple(e for e in extract_errors(failure) if e.internal)
    if not errors:
        return
    notified = plugins.fail(replace(context, errors=errors))
    if isinstance(notified, Err):
        print_release_failure(notified.error, context.console)
