"""Mutations of the workspace tree.

Every operation takes the WorkspaceState first, validates its target before
changing anything, and runs entirely under the state lock. A successful
mutation records an undo snapshot, stamps ``updated_at`` on the owning
project and the workspace, then persists a full snapshot. Validation failures
leave the tree untouched; a PersistenceError means the change was applied in
memory but not saved.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any

from promptmux.core.errors import InvalidKindError, LastItemError, NotFoundError
from promptmux.core.logging import get_logger, log_with_context
from promptmux.core.merge_renderer import render
from promptmux.core.ordered_tree import (
    find_project,
    find_section,
    find_section_containing_topic,
    find_topic,
    get_active_project,
    index_of,
    repack,
)
from promptmux.core.schemas_workspace import (
    DIAGRAM_FIELDS,
    ItemKind,
    Project,
    Refinement,
    Section,
    TargetKind,
    Topic,
    Workspace,
    utc_now,
)
from promptmux.core.workspace_state import WorkspaceState

logger = get_logger(__name__)


# ============================================================================
# Helpers (callers hold the lock)
# ============================================================================


def _as_utc(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def _next_timestamp(previous: datetime) -> datetime:
    """Wall-clock now, forced strictly past ``previous``."""
    now = utc_now()
    previous = _as_utc(previous)
    if now <= previous:
        now = previous + timedelta(microseconds=1)
    return now


def _touch(*entities: Project | Workspace) -> None:
    for entity in entities:
        entity.updated_at = _next_timestamp(entity.updated_at)


def _require_project(workspace: Workspace, project_id: str) -> Project:
    project = find_project(workspace, project_id)
    if project is None:
        raise NotFoundError("project", project_id)
    return project


def _require_active(workspace: Workspace) -> Project:
    project = get_active_project(workspace)
    if project is None:
        raise NotFoundError("project", workspace.active_project_id)
    return project


def _require_section(project: Project, section_id: str) -> Section:
    section = find_section(project, section_id)
    if section is None:
        raise NotFoundError("section", section_id)
    return section


def _require_topic(project: Project, topic_id: str) -> Topic:
    topic = find_topic(project, topic_id)
    if topic is None:
        raise NotFoundError("topic", topic_id)
    return topic


def _begin(state: WorkspaceState) -> None:
    """Record the pre-mutation snapshot for undo."""
    state.history.push(state.snapshot())


def _commit(state: WorkspaceState, *projects: Project) -> None:
    _touch(*projects, state.workspace)
    state.persist()
    for project in projects:
        log_with_context(logger, logging.DEBUG, "Workspace saved", project_id=project.id)


# ============================================================================
# Reads
# ============================================================================


def get_workspace(state: WorkspaceState) -> Workspace:
    """Deep copy of the whole workspace."""
    with state.lock:
        return state.workspace.model_copy(deep=True)


def get_project(state: WorkspaceState, project_id: str | None = None) -> Project:
    """Deep copy of a project (the active one by default)."""
    with state.lock:
        if project_id is None:
            project = _require_active(state.workspace)
        else:
            project = _require_project(state.workspace, project_id)
        return project.model_copy(deep=True)


def get_merged_output(state: WorkspaceState) -> str:
    """Merged text of the active project."""
    with state.lock:
        return render(_require_active(state.workspace))


def get_active_merged_output(state: WorkspaceState) -> tuple[str, str]:
    """(active project id, merged text), read under one lock hold."""
    with state.lock:
        project = _require_active(state.workspace)
        return project.id, render(project)


# ============================================================================
# Projects
# ============================================================================


def add_project(state: WorkspaceState, name: str) -> Project:
    """Append a new empty project. The active project is unchanged."""
    with state.lock:
        _begin(state)
        project = Project(name=name)
        state.workspace.projects.append(project)
        _commit(state, project)

        logger.info(f"Created project {project.id}: {name}")
        return project.model_copy(deep=True)


def remove_project(state: WorkspaceState, project_id: str) -> None:
    """
    Remove a project.

    If the removed project was active, the first remaining project becomes
    active.

    Raises:
        NotFoundError: unknown project id
        LastItemError: the project is the only one left
    """
    with state.lock:
        workspace = state.workspace
        position = index_of(workspace.projects, project_id)
        if position is None:
            raise NotFoundError("project", project_id)
        if len(workspace.projects) == 1:
            raise LastItemError("Cannot delete the last remaining project")

        _begin(state)
        del workspace.projects[position]
        if workspace.active_project_id == project_id:
            workspace.active_project_id = workspace.projects[0].id
        _commit(state)

        logger.info(f"Deleted project {project_id}, active is {workspace.active_project_id}")


def switch_active_project(state: WorkspaceState, project_id: str) -> Project:
    """Make a project active and return it."""
    with state.lock:
        project = _require_project(state.workspace, project_id)

        _begin(state)
        state.workspace.active_project_id = project.id
        _commit(state)

        return project.model_copy(deep=True)


def rename_project(state: WorkspaceState, project_id: str, name: str) -> None:
    with state.lock:
        project = _require_project(state.workspace, project_id)

        _begin(state)
        project.name = name
        _commit(state, project)


def set_project_diagram(
    state: WorkspaceState,
    kind: str,
    content: str | None,
    project_id: str | None = None,
) -> None:
    """
    Store (or clear, with None) a generated diagram on a project.

    Args:
        state: Workspace state
        kind: One of er, uml, flowchart, user_journey, user_stories
        content: Diagram text
        project_id: Target project (defaults to the active one)

    Raises:
        InvalidKindError: unknown diagram kind
        NotFoundError: unknown project id
    """
    field_name = DIAGRAM_FIELDS.get(kind)
    if field_name is None:
        raise InvalidKindError(f"Invalid diagram kind: {kind}")

    with state.lock:
        if project_id is None:
            project = _require_active(state.workspace)
        else:
            project = _require_project(state.workspace, project_id)

        _begin(state)
        setattr(project, field_name, content)
        _commit(state, project)


# ============================================================================
# Sections
# ============================================================================


def add_section(state: WorkspaceState, name: str) -> Section:
    """Append a section to the active project."""
    with state.lock:
        project = _require_active(state.workspace)

        _begin(state)
        section = Section(name=name, order_index=len(project.sections))
        project.sections.append(section)
        _commit(state, project)

        return section.model_copy(deep=True)


def rename_section(state: WorkspaceState, section_id: str, name: str) -> None:
    with state.lock:
        project = _require_active(state.workspace)
        section = _require_section(project, section_id)

        _begin(state)
        section.name = name
        _commit(state, project)


def remove_section(state: WorkspaceState, section_id: str) -> None:
    """Remove a section and re-pack its siblings."""
    with state.lock:
        project = _require_active(state.workspace)
        position = index_of(project.sections, section_id)
        if position is None:
            raise NotFoundError("section", section_id)

        _begin(state)
        del project.sections[position]
        repack(project.sections)
        _commit(state, project)


# ============================================================================
# Topics
# ============================================================================


def add_topic(state: WorkspaceState, section_id: str, name: str) -> Topic:
    """Append an empty topic to a section of the active project."""
    with state.lock:
        project = _require_active(state.workspace)
        section = _require_section(project, section_id)

        _begin(state)
        topic = Topic(name=name, order_index=len(section.topics), section_id=section.id)
        section.topics.append(topic)
        _commit(state, project)

        return topic.model_copy(deep=True)


def rename_topic(state: WorkspaceState, topic_id: str, name: str) -> None:
    with state.lock:
        project = _require_active(state.workspace)
        topic = _require_topic(project, topic_id)

        _begin(state)
        topic.name = name
        _commit(state, project)


def update_topic_content(state: WorkspaceState, topic_id: str, content: str) -> None:
    with state.lock:
        project = _require_active(state.workspace)
        topic = _require_topic(project, topic_id)

        _begin(state)
        topic.content = content
        _commit(state, project)


def remove_topic(state: WorkspaceState, topic_id: str) -> None:
    """Remove a topic and re-pack the remaining topics of its section."""
    with state.lock:
        project = _require_active(state.workspace)
        section = find_section_containing_topic(project, topic_id)
        if section is None:
            raise NotFoundError("topic", topic_id)

        _begin(state)
        section.topics = [t for t in section.topics if t.id != topic_id]
        repack(section.topics)
        _commit(state, project)


# ============================================================================
# Reorder
# ============================================================================


def reorder_item(state: WorkspaceState, kind: ItemKind | str, item_id: str, new_index: int) -> None:
    """
    Move a section or topic to a new position among its siblings.

    ``new_index`` is a drop position in the original list: when it lies after
    the item, removal shifts later siblings down by one, so the item is
    reinserted at ``new_index - 1``. Topics stay within their section.
    Moving an item to its current index changes nothing.

    Raises:
        InvalidKindError: kind is not "section" or "topic"
        NotFoundError: unknown id
    """
    if kind not in ("section", "topic"):
        raise InvalidKindError(f"Invalid item type: {kind}")

    with state.lock:
        project = _require_active(state.workspace)

        if kind == "section":
            siblings = project.sections
        else:
            owner = find_section_containing_topic(project, item_id)
            if owner is None:
                raise NotFoundError("topic", item_id)
            siblings = owner.topics

        current = index_of(siblings, item_id)
        if current is None:
            raise NotFoundError(kind, item_id)
        if new_index == current:
            return

        _begin(state)
        item = siblings.pop(current)
        target = new_index - 1 if new_index > current else new_index
        siblings.insert(max(target, 0), item)
        repack(siblings)
        _commit(state, project)


# ============================================================================
# Refinement history
# ============================================================================


def append_refinement(
    state: WorkspaceState,
    target_kind: TargetKind | str,
    target_id: str,
    refinement: Refinement,
) -> None:
    """
    Append a refinement to a project, section or topic history.

    Projects are looked up across the workspace; sections and topics within
    the active project. Tags are stored as provided.

    Raises:
        InvalidKindError: unknown target kind
        NotFoundError: unknown target id
    """
    with state.lock:
        if target_kind == "project":
            owner = _require_project(state.workspace, target_id)
            target: Project | Section | Topic = owner
        elif target_kind == "section":
            owner = _require_active(state.workspace)
            target = _require_section(owner, target_id)
        elif target_kind == "topic":
            owner = _require_active(state.workspace)
            target = _require_topic(owner, target_id)
        else:
            raise InvalidKindError(f"Invalid refinement target: {target_kind}")

        _begin(state)
        target.history.append(refinement)
        _commit(state, owner)


def delete_refinement(state: WorkspaceState, project_id: str, refinement_id: str) -> None:
    """Remove the first entry with this id from a project's own history."""
    with state.lock:
        project = _require_project(state.workspace, project_id)
        position = index_of(project.history, refinement_id)
        if position is None:
            raise NotFoundError("refinement", refinement_id)

        _begin(state)
        del project.history[position]
        _commit(state, project)


# ============================================================================
# Undo / redo
# ============================================================================


def _without_stamp(project: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in project.items() if k != "updated_at"}


def _restore(state: WorkspaceState, snapshot: dict[str, Any], current: dict[str, Any]) -> None:
    """Swap in a snapshot, re-stamping projects whose content changed."""
    before = {p["id"]: p for p in current["projects"]}
    restored = Workspace.model_validate(snapshot)

    for project, raw in zip(restored.projects, snapshot["projects"]):
        previous = before.get(project.id)
        if previous is not None and _without_stamp(previous) == _without_stamp(raw):
            continue
        floor = _as_utc(state.workspace.updated_at)
        live = find_project(state.workspace, project.id)
        if live is not None:
            floor = max(floor, _as_utc(live.updated_at))
        project.updated_at = _next_timestamp(max(floor, _as_utc(project.updated_at)))

    restored.updated_at = state.workspace.updated_at
    state.workspace = restored
    _commit(state)


def undo(state: WorkspaceState) -> bool:
    """Restore the previous snapshot. Returns False when there is none."""
    with state.lock:
        current = state.snapshot()
        previous = state.history.undo(current)
        if previous is None:
            return False

        _restore(state, previous, current)
        return True


def redo(state: WorkspaceState) -> bool:
    """Re-apply an undone snapshot. Returns False when there is none."""
    with state.lock:
        current = state.snapshot()
        following = state.history.redo(current)
        if following is None:
            return False

        _restore(state, following, current)
        return True
