"""Error codes for CLI exit status.

Each failure class of a publish run maps to one stable exit code so that
CI pipelines can tell a bad input apart from a rejected credential or a
backend outage without parsing output.
"""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    """Exit codes for CLI commands.

    These values are used as process exit codes and should remain stable:
    - 0: Success (edit committed, or check passed)
    - 1: Configuration error (bad input, nothing sent over the network)
    - 2: Authentication error (service account malformed or rejected)
    - 3: Backend error (publishing API answered with an error status)
    - 4: Network error (publishing API unreachable)
    - 5: Locked (another run is publishing the same package)
    """

    OK = 0
    CONFIG_ERROR = 1
    AUTH_ERROR = 2
    BACKEND_ERROR = 3
    NETWORK_ERROR = 4
    LOCKED = 5

    def __str__(self) -> str:
        """Return human-readable name."""
        return self.name.lower().replace("_", " ")

    @property
    def is_success(self) -> bool:
        """Check if this code indicates success."""
        return self == ErrorCode.OK

    @property
    def is_error(self) -> bool:
        """Check if this code indicates an error."""
        return self != ErrorCode.OK
