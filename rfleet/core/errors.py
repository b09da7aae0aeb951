"""Exit codes for CLI commands.

Every command maps its failure to one of these codes so scripts driving
rfleet can tell a bad invocation from a broken environment or an aborted run.
"""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    """Process exit codes. Values are stable.

    - 0: Success
    - 1: User error (bad input, missing parameter)
    - 2: Environment error (no workspace, bad config, unknown provider)
    - 3: Action error (one or more repositories failed)
    - 4: Network error (provider API unreachable)
    - 5: I/O error (file not found, permission denied)
    - 6: Aborted by the operator at an interactive gate
    """

    OK = 0
    USER_ERROR = 1
    ENV_ERROR = 2
    ACTION_ERROR = 3
    NETWORK_ERROR = 4
    IO_ERROR = 5
    ABORTED = 6

    def __str__(self) -> str:
        return self.name.lower().replace("_", " ")

    @property
    def is_success(self) -> bool:
        return self == ErrorCode.OK

    @property
    def is_error(self) -> bool:
        return self != ErrorCode.OK
