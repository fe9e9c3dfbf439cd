from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Literal, get_args

Track = Literal["internal", "alpha", "beta", "production"]
TRACKS: tuple[str, ...] = get_args(Track)

ReleaseStatus = Literal["completed", "draft", "halted", "inProgress"]

RELEASE_NOTES_LANGUAGE = "en-US"
PUBLISHER_SCOPE = "https://www.googleapis.com/auth/androidpublisher"


class PublishState(Enum):
    """Where a publish run currently stands.

    Runs only move forward; a failure leaves the state at the last step
    that completed.
    """

    IDLE = "idle"
    VALIDATED = "validated"
    AUTHENTICATED = "authenticated"
    EDIT_OPEN = "edit_open"
    BUNDLE_UPLOADED = "bundle_uploaded"
    TRACK_ASSIGNED = "track_assigned"
    NOTES_ATTACHED = "notes_attached"
    COMMITTED = "committed"

    def __str__(self) -> str:
        return self.value

    @property
    def has_open_edit(self) -> bool:
        return self in _EDIT_OPEN_STATES


_EDIT_OPEN_STATES = frozenset(
    {
        PublishState.EDIT_OPEN,
        PublishState.BUNDLE_UPLOADED,
        PublishState.TRACK_ASSIGNED,
        PublishState.NOTES_ATTACHED,
    }
)


@dataclass(frozen=True, slots=True)
class Credential:
    """Service-account key file used to obtain a bearer token."""

    path: Path


@dataclass(frozen=True, slots=True)
class PublishRequest:
    """A validated publish invocation."""

    package_name: str
    bundle_path: Path
    track: Track
    credential: Credential
    release_notes_path: Path | None = None


@dataclass(frozen=True, slots=True)
class EditSession:
    id: str
    expires_at: str | None = None  # epoch seconds, as reported by the backend


@dataclass(frozen=True, slots=True)
class BundleArtifact:
    version_code: int
    sha256: str | None = None


@dataclass(frozen=True, slots=True)
class ReleaseNote:
    language: str
    text: str


@dataclass(frozen=True, slots=True)
class Release:
    """One entry of a track: which version codes roll out, and how."""

    version_codes: tuple[int, ...]
    status: ReleaseStatus = "completed"
    release_notes: tuple[ReleaseNote, ...] = ()

    def to_body(self) -> dict[str, object]:
        body: dict[str, object] = {
            "versionCodes": [str(v) for v in self.version_codes],
            "status": self.status,
        }
        if self.release_notes:
            body["releaseNotes"] = [
                {"language": n.language, "text": n.text} for n in self.release_notes
            ]
        return body


@dataclass(frozen=True, slots=True)
class TrackAssignment:
    track: str
    release: Release


@dataclass(frozen=True, slots=True)
class PublishOutcome:
    """Summary of a committed publish run."""

    package_name: str
    track: str
    edit_id: str
    version_code: int
    notes_attached: bool
    notes_error: str | None = None
