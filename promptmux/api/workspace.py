"""API endpoints for the workspace tree."""

from fastapi import APIRouter, Depends

from promptmux.api.helpers import to_http_exception
from promptmux.core import tree_mutator
from promptmux.core.errors import PromptMuxError
from promptmux.core.schemas_workspace import (
    AppendRefinementRequest,
    CreateTopicRequest,
    DiagramRequest,
    MergedOutputResponse,
    NameRequest,
    Project,
    ReorderRequest,
    Section,
    Topic,
    TopicContentRequest,
    Workspace,
)
from promptmux.core.workspace_state import WorkspaceState, get_workspace_state

router = APIRouter()


@router.get("", response_model=Workspace)
def read_workspace(state: WorkspaceState = Depends(get_workspace_state)) -> Workspace:
    """Return the whole workspace."""
    return tree_mutator.get_workspace(state)


@router.get("/project", response_model=Project)
def read_active_project(state: WorkspaceState = Depends(get_workspace_state)) -> Project:
    """Return the active project."""
    try:
        return tree_mutator.get_project(state)
    except PromptMuxError as e:
        raise to_http_exception(e) from e


@router.get("/merged-output", response_model=MergedOutputResponse)
def read_merged_output(
    state: WorkspaceState = Depends(get_workspace_state),
) -> MergedOutputResponse:
    """Return the merged text of the active project."""
    try:
        project_id, content = tree_mutator.get_active_merged_output(state)
    except PromptMuxError as e:
        raise to_http_exception(e) from e
    return MergedOutputResponse(project_id=project_id, content=content)


# ============================================================================
# Projects
# ============================================================================


@router.post("/projects", response_model=Project)
def create_project(
    request: NameRequest, state: WorkspaceState = Depends(get_workspace_state)
) -> Project:
    try:
        return tree_mutator.add_project(state, request.name)
    except PromptMuxError as e:
        raise to_http_exception(e) from e


@router.delete("/projects/{project_id}", status_code=204)
def delete_project(project_id: str, state: WorkspaceState = Depends(get_workspace_state)) -> None:
    try:
        tree_mutator.remove_project(state, project_id)
    except PromptMuxError as e:
        raise to_http_exception(e) from e


@router.post("/projects/{project_id}/activate", response_model=Project)
def activate_project(project_id: str, state: WorkspaceState = Depends(get_workspace_state)) -> Project:
    try:
        return tree_mutator.switch_active_project(state, project_id)
    except PromptMuxError as e:
        raise to_http_exception(e) from e


@router.patch("/projects/{project_id}", status_code=204)
def update_project_name(
    project_id: str, request: NameRequest, state: WorkspaceState = Depends(get_workspace_state)
) -> None:
    try:
        tree_mutator.rename_project(state, project_id, request.name)
    except PromptMuxError as e:
        raise to_http_exception(e) from e


@router.put("/diagrams/{kind}", status_code=204)
def save_diagram(
    kind: str, request: DiagramRequest, state: WorkspaceState = Depends(get_workspace_state)
) -> None:
    """Store a generated diagram (er, uml, flowchart, user_journey, user_stories)."""
    try:
        tree_mutator.set_project_diagram(state, kind, request.content, request.project_id)
    except PromptMuxError as e:
        raise to_http_exception(e) from e


# ============================================================================
# Sections and topics
# ============================================================================


@router.post("/sections", response_model=Section)
def create_section(
    request: NameRequest, state: WorkspaceState = Depends(get_workspace_state)
) -> Section:
    try:
        return tree_mutator.add_section(state, request.name)
    except PromptMuxError as e:
        raise to_http_exception(e) from e


@router.patch("/sections/{section_id}", status_code=204)
def update_section_name(
    section_id: str, request: NameRequest, state: WorkspaceState = Depends(get_workspace_state)
) -> None:
    try:
        tree_mutator.rename_section(state, section_id, request.name)
    except PromptMuxError as e:
        raise to_http_exception(e) from e


@router.delete("/sections/{section_id}", status_code=204)
def delete_section(section_id: str, state: WorkspaceState = Depends(get_workspace_state)) -> None:
    try:
        tree_mutator.remove_section(state, section_id)
    except PromptMuxError as e:
        raise to_http_exception(e) from e


@router.post("/topics", response_model=Topic)
def create_topic(
    request: CreateTopicRequest, state: WorkspaceState = Depends(get_workspace_state)
) -> Topic:
    try:
        return tree_mutator.add_topic(state, request.section_id, request.name)
    except PromptMuxError as e:
        raise to_http_exception(e) from e


@router.patch("/topics/{topic_id}", status_code=204)
def update_topic_name(
    topic_id: str, request: NameRequest, state: WorkspaceState = Depends(get_workspace_state)
) -> None:
    try:
        tree_mutator.rename_topic(state, topic_id, request.name)
    except PromptMuxError as e:
        raise to_http_exception(e) from e


@router.put("/topics/{topic_id}/content", status_code=204)
def update_topic_content(
    topic_id: str,
    request: TopicContentRequest,
    state: WorkspaceState = Depends(get_workspace_state),
) -> None:
    try:
        tree_mutator.update_topic_content(state, topic_id, request.content)
    except PromptMuxError as e:
        raise to_http_exception(e) from e


@router.delete("/topics/{topic_id}", status_code=204)
def delete_topic(topic_id: str, state: WorkspaceState = Depends(get_workspace_state)) -> None:
    try:
        tree_mutator.remove_topic(state, topic_id)
    except PromptMuxError as e:
        raise to_http_exception(e) from e


@router.post("/reorder", status_code=204)
def reorder(request: ReorderRequest, state: WorkspaceState = Depends(get_workspace_state)) -> None:
    """Move a section or topic to a new position among its siblings."""
    try:
        tree_mutator.reorder_item(state, request.kind, request.id, request.new_index)
    except PromptMuxError as e:
        raise to_http_exception(e) from e


# ============================================================================
# History
# ============================================================================


@router.post("/refinements", status_code=204)
def save_refinement(
    request: AppendRefinementRequest, state: WorkspaceState = Depends(get_workspace_state)
) -> None:
    try:
        tree_mutator.append_refinement(
            state, request.target_kind, request.target_id, request.refinement
        )
    except PromptMuxError as e:
        raise to_http_exception(e) from e


@router.delete("/projects/{project_id}/refinements/{refinement_id}", status_code=204)
def delete_refinement(
    project_id: str, refinement_id: str, state: WorkspaceState = Depends(get_workspace_state)
) -> None:
    try:
        tree_mutator.delete_refinement(state, project_id, refinement_id)
    except PromptMuxError as e:
        raise to_http_exception(e) from e


@router.post("/undo")
def undo(state: WorkspaceState = Depends(get_workspace_state)) -> dict:
    """Restore the previous workspace snapshot."""
    try:
        return {"applied": tree_mutator.undo(state)}
    except PromptMuxError as e:
        raise to_http_exception(e) from e


@router.post("/redo")
def redo(state: WorkspaceState = Depends(get_workspace_state)) -> dict:
    """Re-apply an undone workspace snapshot."""
    try:
        return {"applied": tree_mutator.redo(state)}
    except PromptMuxError as e:
        raise to_http_exception(e) from e
