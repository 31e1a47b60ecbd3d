"""JSON file cursor store.

Implements the core CursorStore port with a single small JSON file that is
replaced atomically on every save.
"""

from __future__ import annotations

import json
import os
import tempfile

from core.errors import CursorLoadError
from core.models import CursorState


class JsonCursorStore:
    """Load-or-default and atomic save for the ingestion cursor."""

    def __init__(self, path: str) -> None:
        self._path = path

    @property
    def path(self) -> str:
        return self._path

    def load(self) -> CursorState:
        """Return the stored cursor, or an empty one if nothing was saved yet."""

        if not os.path.exists(self._path):
            return CursorState()
        try:
            with open(self._path, "r", encoding="utf-8") as handle:
                data = json.load(handle)
        except (OSError, ValueError) as exc:
            raise CursorLoadError(f"Cannot read cursor file {self._path}: {exc}") from exc
        if not isinstance(data, dict):
            raise CursorLoadError(f"Cursor file {self._path} does not hold an object")
        return CursorState.from_dict(data)

    def save(self, state: CursorState) -> None:
        """Write the cursor to a temp file and swap it into place."""

        directory = os.path.dirname(os.path.abspath(self._path))
        os.makedirs(directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(prefix=".cursor-", suffix=".json", dir=directory)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(state.to_dict(), handle, ensure_ascii=False, indent=2)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_path, self._path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
