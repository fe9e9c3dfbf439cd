from __future__ import annotations

from pathlib import Path

from playpub.core.result import Err, Ok, Result
from playpub.publish.model import RELEASE_NOTES_LANGUAGE, ReleaseNote

RELEASE_NOTES_DIR = "distribution/whatsnew"


def release_notes_path(project_dir: Path, language: str = RELEASE_NOTES_LANGUAGE) -> Path:
    return project_dir / RELEASE_NOTES_DIR / f"{language}.txt"


def find_release_notes(project_dir: Path) -> Path | None:
    """Return the conventional notes file if it exists, else None."""
    path = release_notes_path(project_dir)
    if path.is_file():
        return path
    return None


def read_release_notes(path: Path) -> Result[ReleaseNote | None, str]:
    """Read a notes file.

    Returns Ok(None) when the file is gone or holds only whitespace, so the
    caller can skip the step.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return Ok(None)
    except (OSError, UnicodeDecodeError) as e:
        return Err(f"failed to read release notes {path}: {e}")

    text = text.strip()
    if not text:
        return Ok(None)
    return Ok(ReleaseNote(language=RELEASE_NOTES_LANGUAGE, text=text))
