"""Note resolution — map a typed reference to exactly one file.

Rules, in priority order (the first rule whose pattern matches decides):

0. ``note/foo.md``      → that file, when it exists inside the capsa
1. ``YYYYMMDD/prefix``  → slugified prefix in ``#daily/YYYYMMDD/``
   (a leading ``#daily/`` or ``daily/`` segment is accepted)
2. ``YYYYMMDDHHmmSS``   → time prefix in ``#daily/YYYYMMDD/``
3. ``HH[mm[ss]]...``    → time prefix in today's ``#daily/`` directory
4. anything else       → slug, searched in today's daily directory, then
   ``note/``, then the links of every ``#*.md`` index file

A reference that merely *looks* date-like but fails validation falls
through to the slug rule. Only the slug rule cascades between stages.

INVARIANT: resolution never guesses. Two or more candidates in a stage
produce :class:`Ambiguous` with every candidate, in directory
enumeration order.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from capsactl.domain.ids import (
    extract_time_prefix,
    is_ascii_digits,
    leading_digits,
    parse_full_timestamp,
    slugify,
    validate_date,
)
from capsactl.domain.markdown import extract_links
from capsactl.infrastructure.filesystem import (
    DAILY_SUBDIR,
    daily_dir,
    find_index_files,
    has_extension,
    iter_files,
    note_dir,
    read_text,
    today_stamp,
)

logger = logging.getLogger(__name__)

DEFAULT_EXTENSIONS: tuple[str, ...] = (".md",)


# ---------------------------------------------------------------------------
# Result variants
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Found:
    """Exactly one file matched."""

    path: Path


@dataclass(frozen=True)
class Ambiguous:
    """Two or more files matched; the caller must disambiguate."""

    candidates: tuple[Path, ...]


@dataclass(frozen=True)
class NotFound:
    """Nothing matched."""


ResolvedNote = Found | Ambiguous | NotFound


class NoteResolutionError(Exception):
    """Base for hard resolution failures raised by :func:`resolve_note_paths`."""

    code = "NOTE_RESOLUTION_FAILED"

    def __init__(self, reference: str, message: str) -> None:
        self.reference = reference
        super().__init__(message)


class NoteNotFoundError(NoteResolutionError):
    code = "NOTE_NOT_FOUND"

    def __init__(self, reference: str) -> None:
        super().__init__(reference, f"Note '{reference}' not found")


class AmbiguousNoteError(NoteResolutionError):
    code = "NOTE_AMBIGUOUS"

    def __init__(self, reference: str, candidates: Sequence[Path]) -> None:
        self.candidates = tuple(candidates)
        super().__init__(
            reference,
            f"Ambiguous note reference '{reference}': {len(self.candidates)} candidates found",
        )


def _from_candidates(candidates: list[Path]) -> ResolvedNote:
    if not candidates:
        return NotFound()
    if len(candidates) == 1:
        return Found(candidates[0])
    return Ambiguous(tuple(candidates))


def _stem(name: str, ext: str) -> str:
    dotted = ext if ext.startswith(".") else f".{ext}"
    return name[: -len(dotted)]


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def resolve_note(
    capsa_root: Path,
    reference: str,
    extensions: Sequence[str] = DEFAULT_EXTENSIONS,
    *,
    today: str | None = None,
) -> ResolvedNote:
    """Resolve *reference* inside *capsa_root*.

    Args:
        capsa_root: Root directory of the capsa.
        reference: User-typed reference (timestamp, date/prefix, slug).
        extensions: Accepted file extensions (``".md"`` or ``"md"``).
        today: ``YYYYMMDD`` override for "today's" daily directory.
    """
    reference = reference.strip().replace("\\", "/")
    today = today or today_stamp()

    # Exact capsa-relative path to an existing note
    direct = _direct_path(capsa_root, reference, extensions)
    if direct is not None:
        return Found(direct)

    # Rule 1: [#daily/]YYYYMMDD/prefix
    if "/" in reference:
        date, prefix = _split_date_path(reference)
        if validate_date(date):
            logger.debug("resolve: date/prefix rule date=%s prefix=%s", date, prefix)
            return _resolve_in_date_dir(capsa_root, date, slugify(prefix), extensions)

    # Rule 2: YYYYMMDDHHmmSS
    timestamp = parse_full_timestamp(reference)
    if timestamp is not None:
        date, time = timestamp
        logger.debug("resolve: timestamp rule date=%s time=%s", date, time)
        return _resolve_in_date_dir(capsa_root, date, time, extensions)

    # Rule 3: HH / HHmm / HHmmSS in today's directory
    time_prefix = extract_time_prefix(reference)
    if time_prefix is not None:
        logger.debug("resolve: time-prefix rule today=%s prefix=%s", today, time_prefix)
        return _resolve_in_date_dir(capsa_root, today, time_prefix, extensions)

    # Rule 4: slug
    slug = slugify(reference)
    logger.debug("resolve: slug rule slug=%s", slug)
    return _resolve_by_title(capsa_root, slug, extensions, today)


def resolve_note_paths(
    capsa_root: Path,
    reference: str,
    extensions: Sequence[str] = DEFAULT_EXTENSIONS,
    *,
    force: bool = False,
    today: str | None = None,
) -> list[Path]:
    """Resolve *reference* to a list of paths, raising on failure.

    With *force*, an ambiguous reference resolves to all candidates
    (bulk operations); otherwise it raises :class:`AmbiguousNoteError`.
    """
    resolved = resolve_note(capsa_root, reference, extensions, today=today)
    if isinstance(resolved, Found):
        return [resolved.path]
    if isinstance(resolved, Ambiguous):
        if force:
            return list(resolved.candidates)
        raise AmbiguousNoteError(reference, resolved.candidates)
    raise NoteNotFoundError(reference)


# ---------------------------------------------------------------------------
# Path forms
# ---------------------------------------------------------------------------


def _direct_path(capsa_root: Path, reference: str, extensions: Sequence[str]) -> Path | None:
    """``note/foo.md`` style references naming an existing file in the capsa."""
    if not reference or has_extension(reference, extensions) is None:
        return None
    candidate = capsa_root / reference
    if not candidate.is_file():
        return None
    if not candidate.resolve().is_relative_to(capsa_root.resolve()):
        return None
    return candidate


def _split_date_path(reference: str) -> tuple[str, str]:
    """Split ``DATE/prefix`` (optionally under ``#daily/`` or ``daily/``)."""
    parts = reference.split("/")
    if len(parts) >= 3 and parts[0].strip() in (DAILY_SUBDIR, DAILY_SUBDIR.lstrip("#")):
        parts = parts[1:]
    return parts[0].strip(), "/".join(parts[1:]).strip()


# ---------------------------------------------------------------------------
# Date-directory matching
# ---------------------------------------------------------------------------


def _matches_date_prefix(stem: str, prefix: str) -> bool:
    """Whether a daily-note *stem* (``HHmmSS[-slug]``) matches *prefix*."""
    if stem.startswith(prefix):
        rest = stem[len(prefix) :]
        if is_ascii_digits(prefix):
            # "22" matches "221530", "22-x", "22"
            if not rest or rest.startswith("-") or rest[0].isdigit():
                return True
        else:
            digits = leading_digits(prefix)
            if digits:
                # "222714-s" = timestamp "222714" + title prefix "s"
                after_digits = stem[len(digits) :]
                title_prefix = prefix[len(digits) :]
                if (
                    after_digits.startswith("-")
                    and title_prefix.startswith("-")
                    and after_digits[1:].startswith(title_prefix[1:])
                ):
                    return True
            elif not rest or rest.startswith("-"):
                return True

    # "some" matches "222714-some-title"
    digits = leading_digits(stem)
    if digits and len(stem) > len(digits):
        title_part = stem[len(digits) :]
        if title_part.startswith("-") and title_part[1:].startswith(prefix):
            return True
    return False


def _resolve_in_date_dir(
    capsa_root: Path,
    date: str,
    prefix: str,
    extensions: Sequence[str],
) -> ResolvedNote:
    candidates: list[Path] = []
    for path in iter_files(daily_dir(capsa_root, date)):
        ext = has_extension(path.name, extensions)
        if ext is None:
            continue
        if _matches_date_prefix(_stem(path.name, ext), prefix):
            candidates.append(path)
    return _from_candidates(candidates)


# ---------------------------------------------------------------------------
# Slug resolution
# ---------------------------------------------------------------------------


def _resolve_by_title(
    capsa_root: Path,
    slug: str,
    extensions: Sequence[str],
    today: str,
) -> ResolvedNote:
    result = _find_by_prefix(daily_dir(capsa_root, today), slug, extensions, allow_time_prefix=True)
    if not isinstance(result, NotFound):
        return result

    result = _find_by_prefix(note_dir(capsa_root), slug, extensions, allow_time_prefix=False)
    if not isinstance(result, NotFound):
        return result

    return _search_index_files(capsa_root, slug, extensions)


def _find_by_prefix(
    directory: Path,
    prefix: str,
    extensions: Sequence[str],
    *,
    allow_time_prefix: bool,
) -> ResolvedNote:
    candidates: list[Path] = []
    for path in iter_files(directory):
        name = path.name
        if has_extension(name, extensions) is None:
            continue
        if allow_time_prefix and len(name) >= 7 and is_ascii_digits(name[:6]):
            rest = name[7:] if name[6] == "-" else name[6:]
            if rest.startswith(prefix):
                candidates.append(path)
                continue
        if name.startswith(prefix):
            candidates.append(path)
    return _from_candidates(candidates)


def _find_in_index_file(index_path: Path, slug: str) -> list[Path]:
    """Existing link targets in *index_path* whose text or target contains *slug*."""
    base_dir = index_path.parent
    found: list[Path] = []
    for link in extract_links(read_text(index_path)):
        if slug in link.text or slug in link.dest:
            target = base_dir / link.dest
            if target.exists():
                found.append(target)
    return found


def _search_index_files(
    capsa_root: Path,
    slug: str,
    extensions: Sequence[str],
) -> ResolvedNote:
    # The same note is usually linked from several index files.
    candidates: dict[str, Path] = {}
    for index_path in find_index_files(capsa_root, extensions):
        for target in _find_in_index_file(index_path, slug):
            candidates.setdefault(os.path.normpath(target), target)
    return _from_candidates(list(candidates.values()))
