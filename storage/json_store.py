"""File-backed timer store.

Keeps every key in one JSON document. Each write rewrites the whole document
through a temporary file and ``os.replace`` so a crash mid-write leaves the
previous document intact.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Optional

from storage.base import TimerStore

logger = logging.getLogger(__name__)


class JsonFileTimerStore(TimerStore):
    """Timer store persisted to a JSON file on local disk."""

    def __init__(self, path: str):
        """Initialize the store.

        Args:
            path: Location of the JSON document; parent directories are created
                on first write
        """
        self.path = Path(os.path.expanduser(path))

    def _read_document(self) -> dict[str, Any]:
        """Read the document, raising if it exists but cannot be used.

        Raises:
            OSError: If the file cannot be read
            ValueError: If the file is not a JSON object
        """
        if not self.path.exists():
            return {}
        with open(self.path, encoding="utf-8") as f:
            document = json.load(f)
        if not isinstance(document, dict):
            raise ValueError(f"Timer state in '{self.path}' is not a JSON object")
        return document

    def _load_document(self) -> dict[str, Any]:
        try:
            return self._read_document()
        except (OSError, ValueError) as e:
            logger.error(f"Failed to read timer state from '{self.path}': {e}")
            return {}

    def _save_document(self, document: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(
            dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(document, f, indent=2, sort_keys=True)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    def _read(self, key: str) -> Optional[Any]:
        return self._load_document().get(key)

    # Writes start from a strict read so an unreadable file is never replaced
    def _write(self, key: str, value: Any) -> None:
        document = self._read_document()
        document[key] = value
        self._save_document(document)

    def _delete(self, key: str) -> None:
        document = self._read_document()
        if key in document:
            del document[key]
            self._save_document(document)
