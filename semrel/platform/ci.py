"""CI environment detection.

Reads well-known environment variables of the supported CI services to tell
whether the run happens on CI, which branch is being built, and whether the
build belongs to a pull request. For pull request builds the reported branch
is the target branch.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum, auto

__all__ = ["CiEnvironment", "CiService", "detect_ci"]


class CiService(Enum):
    """Known CI services."""

    GITHUB_ACTIONS = auto()
    GITLAB = auto()
    TRAVIS = auto()
    CIRCLECI = auto()
    JENKINS = auto()
    GENERIC = auto()
    NONE = auto()

    def __str__(self) -> str:
        return self.name.lower().replace("_", "-")


@dataclass(frozen=True, slots=True)
class CiEnvironment:
    """Detected CI context.

    Attributes:
        is_ci: True when running on a CI service
        branch: Branch being built (target branch for PRs), None if unknown
        is_pr: True for pull/merge request builds
        service: The detected service
    """

    is_ci: bool
    branch: str | None
    is_pr: bool
    service: CiService


def _strip_ref(ref: str | None) -> str | None:
    if not ref:
        return None
    for prefix in ("refs/heads/", "origin/"):
        if ref.startswith(prefix):
            return ref[len(prefix) :]
    return ref


def _github(env: Mapping[str, str]) -> CiEnvironment:
    is_pr = env.get("GITHUB_EVENT_NAME") in {"pull_request", "pull_request_target"}
    branch = env.get("GITHUB_BASE_REF") if is_pr else env.get("GITHUB_REF")
    return CiEnvironment(True, _strip_ref(branch), is_pr, CiService.GITHUB_ACTIONS)


def _gitlab(env: Mapping[str, str]) -> CiEnvironment:
    is_pr = bool(env.get("CI_MERGE_REQUEST_ID"))
    if is_pr:
        branch = env.get("CI_MERGE_REQUEST_TARGET_BRANCH_NAME")
    else:
        branch = env.get("CI_COMMIT_REF_NAME")
    return CiEnvironment(True, _strip_ref(branch), is_pr, CiService.GITLAB)


def _travis(env: Mapping[str, str]) -> CiEnvironment:
    is_pr = env.get("TRAVIS_PULL_REQUEST", "false") not in {"", "false"}
    return CiEnvironment(True, _strip_ref(env.get("TRAVIS_BRANCH")), is_pr, CiService.TRAVIS)


def _circleci(env: Mapping[str, str]) -> CiEnvironment:
    is_pr = bool(env.get("CIRCLE_PULL_REQUEST") or env.get("CIRCLE_PR_NUMBER"))
    return CiEnvironment(True, _strip_ref(env.get("CIRCLE_BRANCH")), is_pr, CiService.CIRCLECI)


def _jenkins(env: Mapping[str, str]) -> CiEnvironment:
    is_pr = bool(env.get("CHANGE_ID"))
    if is_pr:
        branch = env.get("CHANGE_TARGET")
    else:
        branch = env.get("BRANCH_NAME") or env.get("GIT_BRANCH")
    return CiEnvironment(True, _strip_ref(branch), is_pr, CiService.JENKINS)


def detect_ci(env: Mapping[str, str]) -> CiEnvironment:
    """Detect the CI context from environment variables.

    Args:
        env: Environment of the run (usually os.environ)

    Returns:
        The detected CiEnvironment; is_ci is False outside CI.
    """
    if env.get("GITHUB_ACTIONS") == "true":
        return _github(env)
    if env.get("GITLAB_CI"):
        return _gitlab(env)
    if env.get("TRAVIS") == "true":
        return _travis(env)
    if env.get("CIRCLECI") == "true":
        return _circleci(env)
    if env.get("JENKINS_URL") and env.get("BUILD_ID"):
        return _jenkins(env)
    if env.get("CI", "").lower() in {"true", "1"}:
        return CiEnvironment(True, None, False, CiService.GENERIC)
    return CiEnvironment(False, None, False, CiService.NONE)
