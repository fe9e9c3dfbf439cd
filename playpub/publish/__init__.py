"""Release publishing workflow (edit -> upload -> track -> notes -> commit)."""

from .backend import GooglePlayBackend, MockBackend, PublishingBackend, connect_google_play
from .errors import (
    AuthenticationError,
    BackendError,
    ConfigurationError,
    PublishError,
    PublishLocked,
)
from .model import PublishOutcome, PublishRequest, PublishState, Track
from .publisher import ReleasePublisher, abandon_edit

__all__ = [
    # backend
    "GooglePlayBackend",
    "MockBackend",
    "PublishingBackend",
    "connect_google_play",
    # errors
    "AuthenticationError",
    "BackendError",
    "ConfigurationError",
    "PublishError",
    "PublishLocked",
    # model
    "PublishOutcome",
    "PublishRequest",
    "PublishState",
    "Track",
    # publisher
    "ReleasePublisher",
    "abandon_edit",
]
