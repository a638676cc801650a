"""NoteService — resolve and read notes by typed reference."""

from __future__ import annotations

import logging

from capsactl.infrastructure.filesystem import read_text
from capsactl.infrastructure.resolver import NoteResolutionError, resolve_note_paths
from capsactl.services._helpers import resolution_failure
from capsactl.services.base import BaseService
from capsactl.services.result import ServiceResult
from capsactl.services.telemetry import record, traced

logger = logging.getLogger(__name__)


class NoteService(BaseService):
    """Read-only note lookups."""

    @traced
    def resolve(self, reference: str, *, force: bool = False) -> ServiceResult:
        """Resolve *reference* to exactly one note.

        With *force*, an ambiguous reference succeeds with every candidate.
        """
        op = "resolve"
        extensions = self._settings.resolve.extensions
        try:
            paths = resolve_note_paths(self.root, reference, extensions, force=force)
        except NoteResolutionError as exc:
            logger.debug("resolve %r failed: %s", reference, exc.code)
            return resolution_failure(op, exc, self.root)

        record(matches=len(paths))
        return ServiceResult(
            ok=True,
            op=op,
            data={
                "reference": reference,
                "paths": [self._display(path) for path in paths],
                "absolute": [str(path) for path in paths],
                "count": len(paths),
            },
        )

    @traced
    def read(self, reference: str) -> ServiceResult:
        """Resolve *reference* to one note and return its text.

        Ambiguous references fail with the candidate list; there is no
        ``force`` here since only one note can be printed.
        """
        op = "print"
        extensions = self._settings.resolve.extensions
        try:
            paths = resolve_note_paths(self.root, reference, extensions)
        except NoteResolutionError as exc:
            return resolution_failure(op, exc, self.root)

        path = paths[0]
        content = read_text(path)
        record(note=self._display(path), chars=len(content))
        return ServiceResult(
            ok=True,
            op=op,
            data={
                "reference": reference,
                "path": self._display(path),
                "absolute": str(path),
                "content": content,
            },
        )
