"""Git operations module.

Usage:
    from semrel.git import GitRepository

    repo = GitRepository(Path("."))
    match repo.get_git_head():
        case Ok(sha):
            print(sha)
"""

from semrel.git.repository import (
    Commit,
    GitError,
    GitProtocol,
    GitRepository,
)

__all__ = [
    "Commit",
    "GitError",
    "GitProtocol",
    "GitRepository",
]
