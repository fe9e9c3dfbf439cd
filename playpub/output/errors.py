"""Error presentation utilities.

Centralized error formatting and exit code mapping for consistent UX.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from playpub.core.errors import ErrorCode
from playpub.output.console import Style
from playpub.publish.errors import (
    AuthenticationError,
    BackendError,
    ConfigurationError,
    PublishError,
    PublishLocked,
)

if TYPE_CHECKING:
    from playpub.output.console import ConsoleProtocol

__all__ = ["print_publish_error", "publish_error_exit_code"]


def print_publish_error(error: PublishError, console: ConsoleProtocol) -> None:
    """Print a publish error; the final error line names the failing step."""
    match error:
        case ConfigurationError(message=message, problems=problems):
            if len(problems) > 1:
                for problem in problems:
                    console.print(f"- {problem}", Style.DIM)
            console.error(f"validate failed: {message}")
        case AuthenticationError(message=message, hint=hint):
            if hint:
                console.print(f"hint: {hint}", Style.DIM)
            console.error(f"authenticate failed: {message}")
        case BackendError() as e:
            if e.step == "commit":
                console.print(
                    "commit not confirmed; check Play Console before publishing again", Style.DIM
                )
            elif e.orphans_edit:
                console.print("the edit was not committed; nothing was released", Style.DIM)
            console.error(e.pretty())
        case PublishLocked() as e:
            console.error(e.pretty())


def publish_error_exit_code(error: PublishError) -> int:
    """Get exit code for a publish error."""
    match error:
        case ConfigurationError():
            return int(ErrorCode.CONFIG_ERROR)
        case AuthenticationError():
            return int(ErrorCode.AUTH_ERROR)
        case BackendError() as e:
            if e.is_transport:
                return int(ErrorCode.NETWORK_ERROR)
            return int(ErrorCode.BACKEND_ERROR)
        case PublishLocked():
            return int(ErrorCode.LOCKED)
