"""Release publisher.

Drives a publishing backend through the fixed release sequence:

    validate -> authenticate -> open edit -> upload bundle
             -> assign track -> [attach release notes] -> commit

The run stops at the first fatal failure and reports which step failed.
Nothing is retried here and nothing is rolled back unless the config asks
for ``abandon_on_failure``; the backend retries only its idempotent calls.
A release-notes failure is the one backend failure that is not fatal: it
is reported as a warning and the edit is still committed.
"""

from __future__ import annotations

from pathlib import Path

from playpub.core.config import PublisherConfig
from playpub.core.result import Err, Ok, Result
from playpub.output.console import ConsoleProtocol, Style
from playpub.publish.backend import Connector, PublishingBackend, connect_google_play
from playpub.publish.errors import BackendError, PublishError
from playpub.publish.lock import package_lock
from playpub.publish.model import (
    Credential,
    EditSession,
    PublishOutcome,
    PublishRequest,
    PublishState,
    Release,
)
from playpub.publish.notes import RELEASE_NOTES_DIR, read_release_notes
from playpub.publish.validate import validate_request, validate_settings


class ReleasePublisher:
    """Runs one publish against one backend.

    A publisher is single use: build a new one per run.
    """

    def __init__(
        self,
        *,
        config: PublisherConfig,
        console: ConsoleProtocol,
        connect: Connector = connect_google_play,
    ) -> None:
        self._config = config
        self._console = console
        self._connect = connect
        self._state = PublishState.IDLE
        self._edit: EditSession | None = None

    @property
    def state(self) -> PublishState:
        return self._state

    @property
    def edit(self) -> EditSession | None:
        """The edit opened by this run, if any (kept after failures)."""
        return self._edit

    def _advance(self, state: PublishState) -> None:
        self._state = state

    def validate(self, bundle: Path | None) -> Result[PublishRequest, PublishError]:
        result = validate_request(self._config, bundle)
        if isinstance(result, Err):
            return result
        self._advance(PublishState.VALIDATED)
        return result

    def publish(self, bundle: Path | None) -> Result[PublishOutcome, PublishError]:
        if self._state is not PublishState.IDLE:
            raise RuntimeError(f"publisher already used (state: {self._state})")

        validated = self.validate(bundle)
        if isinstance(validated, Err):
            return validated
        request = validated.value

        if self._config.lock_dir is None:
            return self._run(request)

        with package_lock(self._config.lock_dir, request.package_name) as lock:
            if isinstance(lock, Err):
                return lock
            return self._run(request)

    def _run(self, request: PublishRequest) -> Result[PublishOutcome, PublishError]:
        console = self._console

        connected = self._connect(request.credential, retry_attempts=self._config.retry_attempts)
        if isinstance(connected, Err):
            return connected
        backend = connected.value
        self._advance(PublishState.AUTHENTICATED)
        console.success(f"authenticated with {request.credential.path.name}")

        result = self._run_edit(backend, request)
        if isinstance(result, Err) and self._state.has_open_edit:
            self._after_failure(backend, request)
        return result

    def _run_edit(
        self, backend: PublishingBackend, request: PublishRequest
    ) -> Result[PublishOutcome, PublishError]:
        console = self._console
        package = request.package_name

        opened = backend.open_edit(package)
        if isinstance(opened, Err):
            return opened
        edit = opened.value
        self._edit = edit
        self._advance(PublishState.EDIT_OPEN)
        console.success(f"opened edit {edit.id} for {package}")

        size_mb = request.bundle_path.stat().st_size / (1024 * 1024)
        console.print(f"uploading {request.bundle_path.name} ({size_mb:.1f} MB)", Style.DIM)
        uploaded = backend.upload_bundle(
            package, edit.id, request.bundle_path, progress=self._report_progress
        )
        if isinstance(uploaded, Err):
            return uploaded
        version_code = uploaded.value.version_code
        self._advance(PublishState.BUNDLE_UPLOADED)
        console.success(f"uploaded bundle: version code {version_code}")

        release = Release(version_codes=(version_code,), status="completed")
        assigned = backend.assign_track(package, edit.id, request.track, release)
        if isinstance(assigned, Err):
            return assigned
        self._advance(PublishState.TRACK_ASSIGNED)
        console.success(
            f"assigned track '{assigned.value.track}' with version code {version_code}"
        )

        notes_attached, notes_error = self._attach_notes(backend, request, edit, release)

        committed = backend.commit_edit(
            package, edit.id, send_for_review=self._config.send_for_review
        )
        if isinstance(committed, Err):
            return committed
        self._advance(PublishState.COMMITTED)
        console.success(f"committed edit {committed.value}")

        return Ok(
            PublishOutcome(
                package_name=package,
                track=assigned.value.track,
                edit_id=edit.id,
                version_code=version_code,
                notes_attached=notes_attached,
                notes_error=notes_error,
            )
        )

    def _attach_notes(
        self,
        backend: PublishingBackend,
        request: PublishRequest,
        edit: EditSession,
        release: Release,
    ) -> tuple[bool, str | None]:
        console = self._console
        path = request.release_notes_path
        if path is None:
            console.print(f"release notes: skipped (no {RELEASE_NOTES_DIR}/en-US.txt)", Style.DIM)
            return False, None

        note = read_release_notes(path)
        if isinstance(note, Err):
            console.warning(note.error)
            return False, note.error
        if note.value is None:
            console.print(f"release notes: skipped ({path.name} missing or empty)", Style.DIM)
            return False, None

        with_notes = Release(
            version_codes=release.version_codes,
            status=release.status,
            release_notes=(note.value,),
        )
        attached = backend.attach_release_notes(
            request.package_name, edit.id, request.track, with_notes
        )
        if isinstance(attached, Err):
            # Non-fatal: the release is valid without notes.
            console.warning(f"{attached.error.pretty()} (continuing without release notes)")
            return False, attached.error.pretty()

        self._advance(PublishState.NOTES_ATTACHED)
        console.success(f"attached release notes ({note.value.language})")
        return True, None

    def _after_failure(self, backend: PublishingBackend, request: PublishRequest) -> None:
        edit = self._edit
        if edit is None:
            return
        if not self._config.abandon_on_failure:
            self._console.print(
                f"edit {edit.id} left open (abandon with: playpub abandon {edit.id})",
                Style.DIM,
            )
            return

        deleted = backend.delete_edit(request.package_name, edit.id)
        if isinstance(deleted, Err):
            self._console.warning(f"could not abandon edit {edit.id}: {deleted.error.pretty()}")
            return
        self._console.print(f"abandoned edit {edit.id}", Style.DIM)

    def _report_progress(self, percent: int) -> None:
        if percent < 100:
            self._console.print(f"upload progress: {percent}%", Style.DIM)


def abandon_edit(
    *,
    config: PublisherConfig,
    edit_id: str,
    console: ConsoleProtocol,
    connect: Connector = connect_google_play,
) -> Result[None, PublishError]:
    """Delete an edit left open by a failed run."""
    ok = validate_settings(config)
    if isinstance(ok, Err):
        return ok
    assert config.package_name is not None
    assert config.service_account is not None

    connected = connect(
        Credential(path=config.service_account), retry_attempts=config.retry_attempts
    )
    if isinstance(connected, Err):
        return connected

    deleted: Result[None, BackendError] = connected.value.delete_edit(config.package_name, edit_id)
    if isinstance(deleted, Err):
        return deleted
    console.success(f"abandoned edit {edit_id} for {config.package_name}")
    return Ok(None)
