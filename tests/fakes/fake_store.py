"""Fake in-memory document store for workspace tests."""

import copy
from typing import Any, Dict, List


class FakeDocumentStore:
    """In-memory DocumentStore that records every saved snapshot."""

    def __init__(self, document: Dict[str, Any] | None = None):
        self.document = copy.deepcopy(document)
        self.saves: List[Dict[str, Any]] = []
        self.fail_writes = False

    def load_document(self) -> Dict[str, Any] | None:
        return copy.deepcopy(self.document)

    def save_document(self, document: Dict[str, Any]) -> None:
        if self.fail_writes:
            raise OSError("disk full")
        self.document = copy.deepcopy(document)
        self.saves.append(self.document)
