"""Error codes for CLI exit status.

Each release failure category maps to a stable process exit code so CI
pipelines can tell a configuration mistake from a push rejection.
"""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    """Exit codes for the semrel CLI.

    These values are used as process exit codes and should remain stable.
    - 0: Success (including runs that publish nothing)
    - 1: Configuration error (bad options, invalid branches, bad tag format)
    - 2: Environment error (not a git repository, missing remote)
    - 3: Release error (invalid next version, invalid merge range)
    - 4: Git error (permission denied, push or fetch failed)
    - 5: Plugin error (a plugin hook failed)
    """

    OK = 0
    CONFIG_ERROR = 1
    ENV_ERROR = 2
    RELEASE_ERROR = 3
    GIT_ERROR = 4
    PLUGIN_ERROR = 5
