"""Persistence collaborators for the workspace document."""

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Protocol

from promptmux.core.logging import get_logger

logger = get_logger(__name__)


class DocumentStore(Protocol):
    """Key-value style store holding one workspace document."""

    def load_document(self) -> dict[str, Any] | None:
        """Return the persisted document, or None on first run."""
        ...

    def save_document(self, document: dict[str, Any]) -> None:
        """Persist a complete document snapshot."""
        ...


class JsonFileDocumentStore:
    """Stores the workspace as pretty-printed JSON in a single file.

    Writes go to a temp file in the same directory and are moved into place
    with ``os.replace``, so readers see either the old or the new document.
    """

    def __init__(self, path: Path | str):
        self.path = Path(path)

    def load_document(self) -> dict[str, Any] | None:
        if not self.path.exists():
            return None

        with self.path.open("r", encoding="utf-8") as f:
            return json.load(f)

    def save_document(self, document: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(document, f, indent=2, ensure_ascii=False)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

        logger.debug(f"Saved workspace document to {self.path}")
