"""Publishing backend abstraction.

This module provides:
- PublishingBackend: Protocol for the edit/commit publishing API (injectable for tests)
- GooglePlayBackend: Google Play Developer API v3 implementation
- connect_google_play: service-account authentication producing a GooglePlayBackend
- MockBackend: in-memory implementation recording every call
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from itertools import count
from pathlib import Path
from time import sleep
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from playpub.core.result import Err, Ok, Result
from playpub.core.structured import as_str_dict, get_int, get_str
from playpub.publish.errors import AuthenticationError, BackendError, BackendStep
from playpub.publish.model import (
    PUBLISHER_SCOPE,
    BundleArtifact,
    Credential,
    EditSession,
    Release,
    TrackAssignment,
)
from playpub.publish.timeouts import (
    BACKEND_RETRY_DELAY_SECONDS,
    HTTP_TIMEOUT_SECONDS,
    TRANSIENT_HTTP_STATUSES,
    UPLOAD_CHUNK_SIZE,
)

if TYPE_CHECKING:
    from google.oauth2.service_account import Credentials

__all__ = [
    "PublishingBackend",
    "Connector",
    "GooglePlayBackend",
    "connect_google_play",
    "MockBackend",
    "CommittedRelease",
]

ProgressCallback = Callable[[int], None]


@runtime_checkable
class PublishingBackend(Protocol):
    """Edit/commit publishing API.

    Every call after ``open_edit`` is scoped to the returned edit id.
    """

    def open_edit(self, package_name: str) -> Result[EditSession, BackendError]: ...

    def upload_bundle(
        self,
        package_name: str,
        edit_id: str,
        bundle_path: Path,
        progress: ProgressCallback | None = None,
    ) -> Result[BundleArtifact, BackendError]: ...

    def assign_track(
        self, package_name: str, edit_id: str, track: str, release: Release
    ) -> Result[TrackAssignment, BackendError]: ...

    def attach_release_notes(
        self, package_name: str, edit_id: str, track: str, release: Release
    ) -> Result[TrackAssignment, BackendError]: ...

    def commit_edit(
        self, package_name: str, edit_id: str, *, send_for_review: bool = True
    ) -> Result[str, BackendError]: ...

    def delete_edit(self, package_name: str, edit_id: str) -> Result[None, BackendError]: ...


class Connector(Protocol):
    """Turns a credential into an authenticated backend."""

    def __call__(
        self, credential: Credential, *, retry_attempts: int
    ) -> Result[PublishingBackend, AuthenticationError]: ...


# -----------------------------------------------------------------------------
# Google Play
# -----------------------------------------------------------------------------


def _is_transient(error: BackendError) -> bool:
    return error.is_transport or error.status in TRANSIENT_HTTP_STATUSES


def _http_error_message(e: Any) -> str:
    reason = getattr(e, "reason", None)
    if isinstance(reason, str) and reason.strip():
        return reason.strip()
    return str(e)


def _to_backend_error(step: BackendStep, e: Exception) -> BackendError:
    from googleapiclient.errors import HttpError

    if isinstance(e, HttpError):
        return BackendError(step=step, status=int(e.resp.status), message=_http_error_message(e))
    return BackendError(step=step, status=0, message=f"{type(e).__name__}: {e}")


def _request_exceptions() -> tuple[type[Exception], ...]:
    import httplib2
    from google.auth.exceptions import GoogleAuthError
    from googleapiclient.errors import Error as GoogleApiError

    return (GoogleApiError, httplib2.HttpLib2Error, GoogleAuthError, OSError)


def _unexpected(step: BackendStep, what: str) -> BackendError:
    return BackendError(step=step, status=200, message=f"unexpected response: {what}")


class GooglePlayBackend:
    """Google Play Developer API v3 client.

    ``service`` is the discovery resource returned by
    ``googleapiclient.discovery.build("androidpublisher", "v3", ...)``.
    """

    def __init__(self, service: Any, *, retry_attempts: int = 3) -> None:
        self._service = service
        self.retry_attempts = max(1, retry_attempts)

    def _edits(self) -> Any:
        return self._service.edits()

    def _execute(
        self, step: BackendStep, build_request: Callable[[], Any], *, idempotent: bool
    ) -> Result[dict[str, object], BackendError]:
        attempts = self.retry_attempts if idempotent else 1
        for attempt in range(attempts):
            try:
                raw: object = build_request().execute()
            except _request_exceptions() as e:
                error = _to_backend_error(step, e)
                if attempt < attempts - 1 and _is_transient(error):
                    sleep(BACKEND_RETRY_DELAY_SECONDS * (attempt + 1))
                    continue
                return Err(error)

            if raw is None or raw == "":
                return Ok({})
            data = as_str_dict(raw)
            if data is None:
                return Err(_unexpected(step, "expected a JSON object"))
            return Ok(data)

        return Err(BackendError(step=step, status=0, message="no attempt made"))

    def open_edit(self, package_name: str) -> Result[EditSession, BackendError]:
        result = self._execute(
            "open_edit",
            lambda: self._edits().insert(packageName=package_name, body={}),
            idempotent=False,
        )
        if isinstance(result, Err):
            return result

        edit_id = get_str(result.value, "id")
        if edit_id is None:
            return Err(_unexpected("open_edit", "missing edit id"))
        return Ok(EditSession(id=edit_id, expires_at=get_str(result.value, "expiryTimeSeconds")))

    def upload_bundle(
        self,
        package_name: str,
        edit_id: str,
        bundle_path: Path,
        progress: ProgressCallback | None = None,
    ) -> Result[BundleArtifact, BackendError]:
        from googleapiclient.http import MediaFileUpload

        try:
            media = MediaFileUpload(
                str(bundle_path),
                mimetype="application/octet-stream",
                chunksize=UPLOAD_CHUNK_SIZE,
                resumable=True,
            )
            request = self._edits().bundles().upload(
                packageName=package_name,
                editId=edit_id,
                media_body=media,
            )
            raw: object = None
            while raw is None:
                status, raw = request.next_chunk()
                if status is not None and progress is not None:
                    progress(int(status.progress() * 100))
        except _request_exceptions() as e:
            return Err(_to_backend_error("upload_bundle", e))

        data = as_str_dict(raw)
        if data is None:
            return Err(_unexpected("upload_bundle", "expected a JSON object"))
        version_code = get_int(data, "versionCode")
        if version_code is None:
            return Err(_unexpected("upload_bundle", "missing versionCode"))
        return Ok(BundleArtifact(version_code=version_code, sha256=get_str(data, "sha256")))

    def _update_track(
        self,
        step: BackendStep,
        package_name: str,
        edit_id: str,
        track: str,
        release: Release,
    ) -> Result[TrackAssignment, BackendError]:
        body = {"track": track, "releases": [release.to_body()]}
        result = self._execute(
            step,
            lambda: self._edits()
            .tracks()
            .update(packageName=package_name, editId=edit_id, track=track, body=body),
            idempotent=True,
        )
        if isinstance(result, Err):
            return result
        return Ok(TrackAssignment(track=get_str(result.value, "track") or track, release=release))

    def assign_track(
        self, package_name: str, edit_id: str, track: str, release: Release
    ) -> Result[TrackAssignment, BackendError]:
        return self._update_track("assign_track", package_name, edit_id, track, release)

    def attach_release_notes(
        self, package_name: str, edit_id: str, track: str, release: Release
    ) -> Result[TrackAssignment, BackendError]:
        # Notes live on the track release, so the same release is re-sent with them.
        return self._update_track("release_notes", package_name, edit_id, track, release)

    def commit_edit(
        self, package_name: str, edit_id: str, *, send_for_review: bool = True
    ) -> Result[str, BackendError]:
        params: dict[str, object] = {"packageName": package_name, "editId": edit_id}
        if not send_for_review:
            params["changesNotSentForReview"] = True

        result = self._execute(
            "commit",
            lambda: self._edits().commit(**params),
            idempotent=False,
        )
        if isinstance(result, Err):
            return result
        return Ok(get_str(result.value, "id") or edit_id)

    def delete_edit(self, package_name: str, edit_id: str) -> Result[None, BackendError]:
        result = self._execute(
            "abandon",
            lambda: self._edits().delete(packageName=package_name, editId=edit_id),
            idempotent=True,
        )
        if isinstance(result, Err):
            return result
        return Ok(None)


def _load_credentials(credential: Credential) -> Result[Credentials, AuthenticationError]:
    from google.oauth2 import service_account

    try:
        credentials = service_account.Credentials.from_service_account_file(
            str(credential.path),
            scopes=[PUBLISHER_SCOPE],
        )
    except (ValueError, KeyError, AttributeError, TypeError) as e:
        return Err(
            AuthenticationError(
                message=f"malformed service account key: {credential.path}",
                hint=str(e),
            )
        )
    except OSError as e:
        return Err(
            AuthenticationError(
                message=f"cannot read service account key: {credential.path}",
                hint=str(e),
            )
        )
    return Ok(credentials)


def connect_google_play(
    credential: Credential, *, retry_attempts: int = 3
) -> Result[PublishingBackend, AuthenticationError]:
    """Exchange the service account for a token and build the API client."""
    import google_auth_httplib2
    import httplib2
    from google.auth.exceptions import GoogleAuthError, RefreshError
    from google.auth.transport.requests import Request
    from googleapiclient.discovery import build

    loaded = _load_credentials(credential)
    if isinstance(loaded, Err):
        return loaded
    credentials = loaded.value

    try:
        credentials.refresh(Request())
    except RefreshError as e:
        return Err(
            AuthenticationError(
                message="service account rejected by token endpoint",
                hint=f"{e} (check the account has access in Play Console > Users and permissions)",
            )
        )
    except GoogleAuthError as e:
        return Err(AuthenticationError(message="token request failed", hint=str(e)))

    http = google_auth_httplib2.AuthorizedHttp(
        credentials, http=httplib2.Http(timeout=HTTP_TIMEOUT_SECONDS)
    )
    service = build("androidpublisher", "v3", http=http, cache_discovery=False)
    return Ok(GooglePlayBackend(service, retry_attempts=retry_attempts))


# -----------------------------------------------------------------------------
# Mock
# -----------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class CommittedRelease:
    package_name: str
    edit_id: str
    track: str
    version_codes: tuple[int, ...]
    release_notes: tuple[str, ...]


def _empty_calls() -> list[tuple[str, str]]:
    return []


def _empty_failures() -> dict[str, list[BackendError]]:
    return {}


@dataclass
class MockBackend:
    """In-memory publishing backend for tests.

    Usage:
        backend = MockBackend()
        backend.fail("upload_bundle", BackendError("upload_bundle", 500, "boom"))
        publisher = ReleasePublisher(config=cfg, console=c, connect=backend.connector())

    ``fail`` queues one failure per call; queue the same step several
    times to fail several consecutive attempts.
    """

    first_version_code: int = 100
    calls: list[tuple[str, str]] = field(default_factory=_empty_calls)
    committed: list[CommittedRelease] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)
    auth_error: AuthenticationError | None = None
    _failures: dict[str, list[BackendError]] = field(default_factory=_empty_failures)
    _tracks: dict[str, dict[str, Release]] = field(default_factory=dict)
    _open_edits: set[str] = field(default_factory=set)

    def __post_init__(self) -> None:
        self._edit_ids = count(1)
        self._version_codes = count(self.first_version_code)

    def fail(self, step: BackendStep, error: BackendError | None = None) -> None:
        err = error or BackendError(step=step, status=500, message="Internal error (mock)")
        self._failures.setdefault(step, []).append(err)

    def connector(self) -> Connector:
        backend = self

        def _connect(
            credential: Credential, *, retry_attempts: int
        ) -> Result[PublishingBackend, AuthenticationError]:
            del retry_attempts
            backend.calls.append(("authenticate", str(credential.path)))
            if backend.auth_error is not None:
                return Err(backend.auth_error)
            return Ok(backend)

        return _connect

    @property
    def steps(self) -> list[str]:
        return [step for step, _ in self.calls]

    def _take_failure(self, step: str) -> BackendError | None:
        queued = self._failures.get(step)
        if queued:
            return queued.pop(0)
        return None

    def _guard(self, step: BackendStep, edit_id: str) -> BackendError | None:
        queued = self._take_failure(step)
        if queued is not None:
            return queued
        if edit_id not in self._open_edits:
            return BackendError(step=step, status=404, message=f"edit {edit_id} not found (mock)")
        return None

    def open_edit(self, package_name: str) -> Result[EditSession, BackendError]:
        self.calls.append(("open_edit", package_name))
        if (err := self._take_failure("open_edit")) is not None:
            return Err(err)
        edit_id = f"edit-{next(self._edit_ids)}"
        self._open_edits.add(edit_id)
        self._tracks[edit_id] = {}
        return Ok(EditSession(id=edit_id))

    def upload_bundle(
        self,
        package_name: str,
        edit_id: str,
        bundle_path: Path,
        progress: ProgressCallback | None = None,
    ) -> Result[BundleArtifact, BackendError]:
        self.calls.append(("upload_bundle", edit_id))
        if (err := self._guard("upload_bundle", edit_id)) is not None:
            return Err(err)
        if progress is not None:
            progress(100)
        return Ok(BundleArtifact(version_code=next(self._version_codes)))

    def _store_track(
        self, step: BackendStep, edit_id: str, track: str, release: Release
    ) -> Result[TrackAssignment, BackendError]:
        self.calls.append((step, edit_id))
        if (err := self._guard(step, edit_id)) is not None:
            return Err(err)
        self._tracks[edit_id][track] = release
        return Ok(TrackAssignment(track=track, release=release))

    def assign_track(
        self, package_name: str, edit_id: str, track: str, release: Release
    ) -> Result[TrackAssignment, BackendError]:
        return self._store_track("assign_track", edit_id, track, release)

    def attach_release_notes(
        self, package_name: str, edit_id: str, track: str, release: Release
    ) -> Result[TrackAssignment, BackendError]:
        return self._store_track("release_notes", edit_id, track, release)

    def commit_edit(
        self, package_name: str, edit_id: str, *, send_for_review: bool = True
    ) -> Result[str, BackendError]:
        self.calls.append(("commit", edit_id))
        if (err := self._guard("commit", edit_id)) is not None:
            return Err(err)
        self._open_edits.discard(edit_id)
        for track, release in self._tracks.pop(edit_id, {}).items():
            self.committed.append(
                CommittedRelease(
                    package_name=package_name,
                    edit_id=edit_id,
                    track=track,
                    version_codes=release.version_codes,
                    release_notes=tuple(n.text for n in release.release_notes),
                )
            )
        return Ok(edit_id)

    def delete_edit(self, package_name: str, edit_id: str) -> Result[None, BackendError]:
        self.calls.append(("abandon", edit_id))
        if (err := self._guard("abandon", edit_id)) is not None:
            return Err(err)
        self._open_edits.discard(edit_id)
        self._tracks.pop(edit_id, None)
        self.deleted.append(edit_id)
        return Ok(None)
