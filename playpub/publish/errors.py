"""Error payloads for a publish run.

Each payload is carried in ``Err(...)``. ``BackendError.step`` names the
call that failed, which tells an operator whether an edit may have been
left open on the backend.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Literal

BackendStep = Literal[
    "open_edit",
    "upload_bundle",
    "assign_track",
    "release_notes",
    "commit",
    "abandon",
]

# Steps that leave an edit behind when they fail.
ORPHANING_STEPS: frozenset[str] = frozenset(
    {"upload_bundle", "assign_track", "release_notes", "commit"}
)


@dataclass(frozen=True, slots=True)
class ConfigurationError:
    """Local input is missing or invalid; nothing was sent over the network."""

    message: str
    hint: str | None = None
    problems: tuple[str, ...] = ()

    def pretty(self) -> str:
        if self.hint:
            return f"{self.message} (hint: {self.hint})"
        return self.message


@dataclass(frozen=True, slots=True)
class AuthenticationError:
    message: str
    hint: str | None = None

    def pretty(self) -> str:
        if self.hint:
            return f"{self.message} (hint: {self.hint})"
        return self.message


@dataclass(frozen=True, slots=True)
class BackendError:
    """A publishing API call failed.

    Attributes:
        step: The workflow step that issued the call.
        status: HTTP status code, or 0 when the request never got an answer.
        message: Backend message (or transport error text).
    """

    step: BackendStep
    status: int
    message: str

    @property
    def is_transport(self) -> bool:
        return self.status == 0

    @property
    def orphans_edit(self) -> bool:
        return self.step in ORPHANING_STEPS

    def pretty(self) -> str:
        if self.status:
            return f"{self.step} failed: HTTP {self.status}: {self.message}"
        return f"{self.step} failed: {self.message}"


@dataclass(frozen=True, slots=True)
class PublishLocked:
    """Another run holds the publish lock for this package."""

    package_name: str
    lock_path: Path

    def pretty(self) -> str:
        return f"another publish for {self.package_name} is in progress (lock: {self.lock_path})"


type PublishError = ConfigurationError | AuthenticationError | BackendError | PublishLocked
