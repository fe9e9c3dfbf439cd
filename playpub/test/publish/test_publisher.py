from __future__ import annotations

from pathlib import Path

import pytest

from playpub.core.config import PublisherConfig
from playpub.core.result import Err, Ok
from playpub.output.console import MockConsole, Style
from playpub.publish.backend import MockBackend
from playpub.publish.errors import (
    AuthenticationError,
    BackendError,
    ConfigurationError,
    PublishLocked,
)
from playpub.publish.lock import package_lock
from playpub.publish.model import PublishState
from playpub.publish.publisher import ReleasePublisher, abandon_edit


def _config(tmp_path: Path, **overrides: object) -> PublisherConfig:
    sa = tmp_path / "sa.json"
    sa.write_text("{}", encoding="utf-8")
    values: dict[str, object] = {
        "package_name": "com.example.app",
        "service_account": sa,
        "track": "internal",
        "project_dir": tmp_path,
    }
    values.update(overrides)
    return PublisherConfig(**values)  # type: ignore[arg-type]


def _bundle(tmp_path: Path) -> Path:
    bundle = tmp_path / "app.aab"
    bundle.write_bytes(b"PK\x03\x04" + b"\x00" * 64)
    return bundle


def _notes(tmp_path: Path, text: str = "Bug fixes and performance improvements") -> Path:
    path = tmp_path / "distribution" / "whatsnew" / "en-US.txt"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def _publisher(
    config: PublisherConfig, backend: MockBackend
) -> tuple[ReleasePublisher, MockConsole]:
    console = MockConsole()
    return ReleasePublisher(config=config, console=console, connect=backend.connector()), console


class TestValidation:
    @pytest.mark.parametrize(
        "overrides",
        [
            {"package_name": None},
            {"service_account": None},
            {"track": "nightly"},
        ],
    )
    def test_invalid_settings_make_no_network_calls(
        self, tmp_path: Path, overrides: dict[str, object]
    ) -> None:
        backend = MockBackend()
        publisher, _ = _publisher(_config(tmp_path, **overrides), backend)

        result = publisher.publish(_bundle(tmp_path))

        assert isinstance(result, Err)
        assert isinstance(result.error, ConfigurationError)
        assert backend.calls == []
        assert publisher.state is PublishState.IDLE

    def test_missing_bundle_makes_no_network_calls(self, tmp_path: Path) -> None:
        backend = MockBackend()
        publisher, _ = _publisher(_config(tmp_path), backend)

        result = publisher.publish(tmp_path / "missing.aab")

        assert isinstance(result, Err)
        assert isinstance(result.error, ConfigurationError)
        assert backend.calls == []

    def test_publisher_is_single_use(self, tmp_path: Path) -> None:
        publisher, _ = _publisher(_config(tmp_path), MockBackend())
        publisher.publish(_bundle(tmp_path))

        with pytest.raises(RuntimeError, match="already used"):
            publisher.publish(_bundle(tmp_path))


class TestHappyPath:
    def test_scenario_without_release_notes(self, tmp_path: Path) -> None:
        backend = MockBackend(first_version_code=321)
        publisher, console = _publisher(_config(tmp_path), backend)

        result = publisher.publish(_bundle(tmp_path))

        assert isinstance(result, Ok)
        assert backend.steps == [
            "authenticate",
            "open_edit",
            "upload_bundle",
            "assign_track",
            "commit",
        ]
        assert publisher.state is PublishState.COMMITTED

        progress = [
            o.message for o in console.outputs if o.style in (Style.SUCCESS, Style.DIM)
        ]
        expected_order = [
            "opened edit edit-1",
            "uploaded bundle: version code 321",
            "assigned track 'internal' with version code 321",
            "release notes: skipped",
            "committed edit edit-1",
        ]
        positions = [
            next(i for i, line in enumerate(progress) if fragment in line)
            for fragment in expected_order
        ]
        assert positions == sorted(positions)
        assert not console.has_error()

    def test_committed_release_matches_upload_and_track(self, tmp_path: Path) -> None:
        backend = MockBackend(first_version_code=77)
        publisher, _ = _publisher(_config(tmp_path, track="beta"), backend)

        result = publisher.publish(_bundle(tmp_path))

        assert isinstance(result, Ok)
        outcome = result.value
        assert outcome.version_code == 77
        assert outcome.track == "beta"
        assert outcome.notes_attached is False
        assert len(backend.committed) == 1
        committed = backend.committed[0]
        assert committed.version_codes == (outcome.version_code,)
        assert committed.track == "beta"
        assert committed.edit_id == outcome.edit_id

    def test_release_notes_are_attached(self, tmp_path: Path) -> None:
        _notes(tmp_path, "  Faster uploads\n")
        backend = MockBackend()
        publisher, console = _publisher(_config(tmp_path), backend)

        result = publisher.publish(_bundle(tmp_path))

        assert isinstance(result, Ok)
        assert result.value.notes_attached is True
        assert backend.steps[-2:] == ["release_notes", "commit"]
        assert backend.committed[0].release_notes == ("Faster uploads",)
        assert console.find("attached release notes (en-US)")
        assert publisher.state is PublishState.COMMITTED

    def test_empty_release_notes_file_is_skipped(self, tmp_path: Path) -> None:
        _notes(tmp_path, "\n\n")
        backend = MockBackend()
        publisher, console = _publisher(_config(tmp_path), backend)

        result = publisher.publish(_bundle(tmp_path))

        assert isinstance(result, Ok)
        assert "release_notes" not in backend.steps
        assert console.find("en-US.txt missing or empty")

    def test_release_notes_removed_mid_run_are_skipped(self, tmp_path: Path) -> None:
        notes = _notes(tmp_path)

        class RemovingBackend(MockBackend):
            def upload_bundle(self, package_name, edit_id, bundle_path, progress=None):
                notes.unlink()
                return super().upload_bundle(package_name, edit_id, bundle_path, progress)

        backend = RemovingBackend()
        publisher, console = _publisher(_config(tmp_path), backend)

        result = publisher.publish(_bundle(tmp_path))

        assert isinstance(result, Ok)
        assert "release_notes" not in backend.steps
        assert console.find("en-US.txt missing or empty")
        assert not console.find("is empty")

    def test_two_runs_share_no_state(self, tmp_path: Path) -> None:
        bundle = _bundle(tmp_path)
        config = _config(tmp_path)
        first_backend, second_backend = MockBackend(), MockBackend()

        first, _ = _publisher(config, first_backend)
        second, _ = _publisher(config, second_backend)
        first_result = first.publish(bundle)
        second_result = second.publish(bundle)

        assert isinstance(first_result, Ok)
        assert isinstance(second_result, Ok)
        assert first_result.value == second_result.value
        assert len(first_backend.committed) == 1
        assert len(second_backend.committed) == 1
        assert first_backend.calls == second_backend.calls

    def test_no_review_is_forwarded(self, tmp_path: Path) -> None:
        seen: list[bool] = []

        class RecordingBackend(MockBackend):
            def commit_edit(self, package_name: str, edit_id: str, *, send_for_review: bool = True):
                seen.append(send_for_review)
                return super().commit_edit(package_name, edit_id, send_for_review=send_for_review)

        publisher, _ = _publisher(_config(tmp_path, send_for_review=False), RecordingBackend())
        assert isinstance(publisher.publish(_bundle(tmp_path)), Ok)
        assert seen == [False]


class TestFailures:
    def test_authentication_failure(self, tmp_path: Path) -> None:
        backend = MockBackend(auth_error=AuthenticationError("rejected"))
        publisher, _ = _publisher(_config(tmp_path), backend)

        result = publisher.publish(_bundle(tmp_path))

        assert isinstance(result, Err)
        assert isinstance(result.error, AuthenticationError)
        assert backend.steps == ["authenticate"]
        assert publisher.state is PublishState.VALIDATED

    def test_open_edit_failure(self, tmp_path: Path) -> None:
        backend = MockBackend()
        backend.fail("open_edit", BackendError("open_edit", 403, "forbidden"))
        publisher, console = _publisher(_config(tmp_path), backend)

        result = publisher.publish(_bundle(tmp_path))

        assert result == Err(BackendError("open_edit", 403, "forbidden"))
        assert publisher.edit is None
        assert not console.find("left open")

    def test_upload_failure_stops_before_track_and_commit(self, tmp_path: Path) -> None:
        backend = MockBackend()
        backend.fail("upload_bundle", BackendError("upload_bundle", 500, "boom"))
        publisher, console = _publisher(_config(tmp_path), backend)

        result = publisher.publish(_bundle(tmp_path))

        assert isinstance(result, Err)
        assert isinstance(result.error, BackendError)
        assert result.error.step == "upload_bundle"
        assert "assign_track" not in backend.steps
        assert "commit" not in backend.steps
        assert backend.committed == []
        assert publisher.state is PublishState.EDIT_OPEN
        assert console.find("edit edit-1 left open")

    def test_assign_track_failure_skips_commit(self, tmp_path: Path) -> None:
        backend = MockBackend()
        backend.fail("assign_track")
        publisher, _ = _publisher(_config(tmp_path), backend)

        result = publisher.publish(_bundle(tmp_path))

        assert isinstance(result, Err)
        assert isinstance(result.error, BackendError)
        assert result.error.step == "assign_track"
        assert "commit" not in backend.steps
        assert publisher.state is PublishState.BUNDLE_UPLOADED

    def test_release_notes_failure_still_commits(self, tmp_path: Path) -> None:
        _notes(tmp_path)
        backend = MockBackend()
        backend.fail("release_notes", BackendError("release_notes", 400, "notes too long"))
        publisher, console = _publisher(_config(tmp_path), backend)

        result = publisher.publish(_bundle(tmp_path))

        assert isinstance(result, Ok)
        assert result.value.notes_attached is False
        assert result.value.notes_error is not None
        assert "notes too long" in result.value.notes_error
        assert backend.steps[-1] == "commit"
        assert len(backend.committed) == 1
        assert backend.committed[0].release_notes == ()
        assert console.has_warning()
        assert not console.has_error()
        assert publisher.state is PublishState.COMMITTED

    def test_commit_failure(self, tmp_path: Path) -> None:
        backend = MockBackend()
        backend.fail("commit", BackendError("commit", 500, "backend error"))
        publisher, _ = _publisher(_config(tmp_path), backend)

        result = publisher.publish(_bundle(tmp_path))

        assert isinstance(result, Err)
        assert isinstance(result.error, BackendError)
        assert result.error.step == "commit"
        assert backend.committed == []
        assert publisher.state is PublishState.TRACK_ASSIGNED
        assert backend.deleted == []

    def test_abandon_on_failure_deletes_edit(self, tmp_path: Path) -> None:
        backend = MockBackend()
        backend.fail("assign_track")
        publisher, console = _publisher(_config(tmp_path, abandon_on_failure=True), backend)

        result = publisher.publish(_bundle(tmp_path))

        assert isinstance(result, Err)
        assert backend.steps[-1] == "abandon"
        assert backend.deleted == ["edit-1"]
        assert console.find("abandoned edit edit-1")

    def test_abandon_failure_keeps_original_error(self, tmp_path: Path) -> None:
        backend = MockBackend()
        backend.fail("commit", BackendError("commit", 500, "boom"))
        backend.fail("abandon", BackendError("abandon", 500, "also boom"))
        publisher, console = _publisher(_config(tmp_path, abandon_on_failure=True), backend)

        result = publisher.publish(_bundle(tmp_path))

        assert result == Err(BackendError("commit", 500, "boom"))
        assert console.has_warning()


class TestLocking:
    def test_held_lock_blocks_run_before_network(self, tmp_path: Path) -> None:
        lock_dir = tmp_path / "locks"
        backend = MockBackend()
        publisher, _ = _publisher(_config(tmp_path, lock_dir=lock_dir), backend)

        with package_lock(lock_dir, "com.example.app") as held:
            assert isinstance(held, Ok)
            result = publisher.publish(_bundle(tmp_path))

        assert isinstance(result, Err)
        assert isinstance(result.error, PublishLocked)
        assert backend.calls == []

    def test_unusable_lock_dir_is_reported_before_network(self, tmp_path: Path) -> None:
        lock_dir = tmp_path / "locks"
        lock_dir.write_text("", encoding="utf-8")
        backend = MockBackend()
        publisher, _ = _publisher(_config(tmp_path, lock_dir=lock_dir), backend)

        result = publisher.publish(_bundle(tmp_path))

        assert isinstance(result, Err)
        assert isinstance(result.error, ConfigurationError)
        assert str(lock_dir) in result.error.message
        assert backend.calls == []

    def test_lock_is_released_after_run(self, tmp_path: Path) -> None:
        lock_dir = tmp_path / "locks"
        publisher, _ = _publisher(_config(tmp_path, lock_dir=lock_dir), MockBackend())
        assert isinstance(publisher.publish(_bundle(tmp_path)), Ok)

        with package_lock(lock_dir, "com.example.app") as again:
            assert isinstance(again, Ok)


class TestAbandonEdit:
    def test_deletes_open_edit(self, tmp_path: Path) -> None:
        backend = MockBackend()
        edit = backend.open_edit("com.example.app").unwrap()
        console = MockConsole()

        result = abandon_edit(
            config=_config(tmp_path),
            edit_id=edit.id,
            console=console,
            connect=backend.connector(),
        )

        assert result == Ok(None)
        assert backend.deleted == [edit.id]
        assert console.find(f"abandoned edit {edit.id}")

    def test_unknown_edit_is_backend_error(self, tmp_path: Path) -> None:
        backend = MockBackend()
        result = abandon_edit(
            config=_config(tmp_path),
            edit_id="nope",
            console=MockConsole(),
            connect=backend.connector(),
        )
        assert isinstance(result, Err)
        assert isinstance(result.error, BackendError)
        assert result.error.step == "abandon"

    def test_invalid_settings_make_no_network_calls(self, tmp_path: Path) -> None:
        backend = MockBackend()
        result = abandon_edit(
            config=_config(tmp_path, package_name=None),
            edit_id="edit-1",
            console=MockConsole(),
            connect=backend.connector(),
        )
        assert isinstance(result, Err)
        assert isinstance(result.error, ConfigurationError)
        assert backend.calls == []
