"""Filesystem operations for capsa content.

INVARIANT: Files are truth. There is no index or cache; every command
re-reads the files it needs and writes each changed file exactly once.

Capsa layout::

    <capsa>/
        #daily/YYYYMMDD/HHmmSS[-slug].md   daily notes
        #daily.md, #<tag>.md               index files (markdown links)
        note/<slug>.md                     permanent notes
        TASK.md                            task file
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from datetime import datetime
from pathlib import Path

DAILY_SUBDIR = "#daily"
NOTE_SUBDIR = "note"
INDEX_PREFIX = "#"
TASK_FILENAME = "TASK.md"
DAILY_DATE_FORMAT = "%Y%m%d"


# ---------------------------------------------------------------------------
# File I/O
# ---------------------------------------------------------------------------


def read_text(path: Path) -> str:
    """Read a UTF-8 text file, keeping its line endings as they are."""
    with path.open(encoding="utf-8", newline="") as fh:
        return fh.read()


def write_text(path: Path, content: str) -> None:
    """Write *content* to *path*, creating parent directories as needed."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8", newline="")


# ---------------------------------------------------------------------------
# Path resolution
# ---------------------------------------------------------------------------


def today_stamp(now: datetime | None = None) -> str:
    """Local date as ``YYYYMMDD`` (daily directory name)."""
    return (now or datetime.now()).strftime(DAILY_DATE_FORMAT)


def daily_dir(capsa_root: Path, date: str) -> Path:
    return capsa_root / DAILY_SUBDIR / date


def note_dir(capsa_root: Path) -> Path:
    return capsa_root / NOTE_SUBDIR


def task_file_path(capsa_root: Path, filename: str = TASK_FILENAME) -> Path:
    """Path of the task file; *filename* may be relative to the capsa root."""
    return capsa_root / filename


def relative_display(path: Path, capsa_root: Path) -> str:
    """*path* relative to the capsa root with forward slashes, when possible."""
    try:
        return path.relative_to(capsa_root).as_posix()
    except ValueError:
        return path.as_posix()


# ---------------------------------------------------------------------------
# Discovery
# ---------------------------------------------------------------------------


def has_extension(name: str, extensions: Iterable[str]) -> str | None:
    """The first extension in *extensions* that *name* ends with, else None.

    Extensions may be given with or without the leading dot.
    """
    for ext in extensions:
        if name.endswith(ext if ext.startswith(".") else f".{ext}"):
            return ext
    return None


def iter_files(directory: Path) -> Iterator[Path]:
    """Regular files directly inside *directory*, in enumeration order.

    Yields nothing if the directory does not exist.
    """
    if not directory.is_dir():
        return
    for entry in directory.iterdir():
        if entry.is_file():
            yield entry


def find_index_files(capsa_root: Path, extensions: Iterable[str]) -> list[Path]:
    """Index files (``#*.md``) in the capsa root."""
    exts = list(extensions)
    return [
        path
        for path in iter_files(capsa_root)
        if path.name.startswith(INDEX_PREFIX) and has_extension(path.name, exts)
    ]
