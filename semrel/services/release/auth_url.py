"""Authenticated repository URL.

CI services expose push credentials as environment variables; when one is
set, the repository URL is rewritten to embed it so `git push` does not
prompt.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from urllib.parse import urlsplit, urlunsplit

# (variable, credential prefix) in lookup order
_TOKEN_VARIABLES: tuple[tuple[str, str], ...] = (
    ("GIT_CREDENTIALS", ""),
    ("GH_TOKEN", ""),
    ("GITHUB_TOKEN", ""),
    ("GL_TOKEN", "gitlab-ci-token:"),
    ("GITLAB_TOKEN", "gitlab-ci-token:"),
    ("BB_TOKEN", "x-token-auth:"),
    ("BITBUCKET_TOKEN", "x-token-auth:"),
)

_SSH_SHORTHAND_RE = re.compile(r"^(?:[\w.+-]+@)?(?P<host>[\w.-]+):(?P<path>(?!\d+/)[^/].*)$")


def find_credentials(env: Mapping[str, str]) -> str | None:
    """Return `<prefix><token>` for the first credential variable set."""
    for variable, prefix in _TOKEN_VARIABLES:
        token = env.get(variable)
        if token:
            return f"{prefix}{token}"
    return None


def to_https(repository_url: str) -> str:
    """Convert `git@host:owner/repo.git` and `ssh://` / `git+` URLs to https."""
    url = repository_url.removeprefix("git+")
    if "://" not in url:
        match = _SSH_SHORTHAND_RE.match(url)
        if match:
            return f"https://{match['host']}/{match['path']}"
        return repository_url

    parts = urlsplit(url)
    if parts.scheme in {"ssh", "git"} and parts.hostname:
        return urlunsplit(("https", parts.hostname, parts.path, parts.query, parts.fragment))
    return url


def get_auth_url(repository_url: str, env: Mapping[str, str]) -> str:
    """Embed CI credentials in `repository_url`.

    Without credentials the URL is returned unchanged, and SSH remotes keep
    working through the runner's SSH keys.
    """
    credentials = find_credentials(env)
    if credentials is None:
        return repository_url

    https = to_https(repository_url)
    parts = urlsplit(https)
    if parts.scheme not in {"http", "https"} or not parts.hostname:
        return repository_url

    host = parts.netloc.rsplit("@", 1)[-1]
    return urlunsplit((parts.scheme, f"{credentials}@{host}", parts.path, parts.query, ""))
