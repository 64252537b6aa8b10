"""Injectable owner of the in-memory workspace tree."""

import threading
from functools import lru_cache
from typing import Any

from promptmux.core.config import Settings, get_settings
from promptmux.core.errors import PersistenceError
from promptmux.core.logging import get_logger
from promptmux.core.ordered_tree import get_active_project, repack
from promptmux.core.schemas_workspace import Project, Workspace
from promptmux.core.undo_history import UndoHistory
from promptmux.db.document_store import DocumentStore, JsonFileDocumentStore

logger = get_logger(__name__)


class WorkspaceState:
    """One workspace tree, its lock, its store and its undo history.

    The tree is never read or written without holding ``lock``.
    """

    def __init__(self, workspace: Workspace, store: DocumentStore, history_depth: int = 50):
        self.workspace = workspace
        self.store = store
        self.lock = threading.Lock()
        self.history: UndoHistory[dict[str, Any]] = UndoHistory(max_history=history_depth)

    def snapshot(self) -> dict[str, Any]:
        """Full JSON-ready copy of the current tree."""
        return self.workspace.model_dump(mode="json")

    def persist(self) -> None:
        """Hand a complete snapshot to the store.

        Raises:
            PersistenceError: the in-memory tree changed but was not saved
        """
        try:
            self.store.save_document(self.snapshot())
        except Exception as e:
            logger.error(f"Failed to save workspace: {e}")
            raise PersistenceError(f"Failed to save workspace: {e}") from e


def _normalize_order(project: Project) -> bool:
    """Sort siblings by order_index, re-pack to 0..n-1 and fix topic back-references.

    Returns:
        True if anything changed
    """
    before = project.model_dump(include={"sections"})

    project.sections.sort(key=lambda s: s.order_index)
    repack(project.sections)
    for section in project.sections:
        section.topics.sort(key=lambda t: t.order_index)
        repack(section.topics)
        for topic in section.topics:
            topic.section_id = section.id

    return project.model_dump(include={"sections"}) != before


def load_or_create_workspace_state(
    store: DocumentStore, settings: Settings | None = None
) -> WorkspaceState:
    """
    Load the persisted workspace, or seed a first-run one.

    A loaded document with no projects is re-seeded, and a dangling
    active_project_id is pointed at the first project. Sibling order_index
    values are re-packed and topic section_id back-references corrected.

    Args:
        store: Document store to load from and save to
        settings: Settings override (defaults to get_settings())

    Returns:
        Ready WorkspaceState
    """
    settings = settings or get_settings()
    document = store.load_document()

    if document is None:
        workspace = Workspace.seeded(settings.DEFAULT_PROJECT_NAME)
        state = WorkspaceState(workspace, store, history_depth=settings.UNDO_HISTORY_DEPTH)
        state.persist()
        logger.info(f"Seeded new workspace with project {workspace.active_project_id}")
        return state

    workspace = Workspace.model_validate(document)
    repaired = False
    if not workspace.projects:
        seeded = Workspace.seeded(settings.DEFAULT_PROJECT_NAME)
        workspace.projects = seeded.projects
        workspace.active_project_id = seeded.active_project_id
        repaired = True
    elif get_active_project(workspace) is None:
        workspace.active_project_id = workspace.projects[0].id
        repaired = True

    for project in workspace.projects:
        if _normalize_order(project):
            repaired = True

    state = WorkspaceState(workspace, store, history_depth=settings.UNDO_HISTORY_DEPTH)
    if repaired:
        logger.warning("Loaded workspace was inconsistent, repaired")
        state.persist()

    logger.info(f"Loaded workspace with {len(workspace.projects)} projects")
    return state


@lru_cache(maxsize=1)
def get_workspace_state() -> WorkspaceState:
    """
    Get the file-backed workspace state (cached singleton for the API).

    Returns:
        WorkspaceState backed by the JSON document in the data directory
    """
    settings = get_settings()
    return load_or_create_workspace_state(JsonFileDocumentStore(settings.document_path), settings)
