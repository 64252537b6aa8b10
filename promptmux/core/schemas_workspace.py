"""Pydantic schemas for the workspace document tree."""

import uuid
from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

# Known refinement tags. Stored verbatim; other values are kept as provided.
REFINEMENT_KINDS = ("text", "er", "uml", "flowchart", "user_journey")
REFINEMENT_MODES = ("edit", "qa")

# Diagram kind -> Project field holding its generated text
DIAGRAM_FIELDS = {
    "er": "er_diagram",
    "uml": "uml_diagram",
    "flowchart": "flowchart",
    "user_journey": "user_journey",
    "user_stories": "user_stories",
}

ItemKind = Literal["section", "topic"]
TargetKind = Literal["project", "section", "topic"]


def new_id() -> str:
    return str(uuid.uuid4())


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Refinement(BaseModel):
    """One original/refined text pair produced by a provider call."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id, description="Refinement id")
    original_content: str = Field(..., description="Text before refinement")
    refined_content: str = Field(..., description="Text after refinement")
    timestamp: datetime = Field(default_factory=utc_now, description="When it was produced")
    kind: str | None = Field(None, description="text, er, uml, flowchart or user_journey")
    mode: str | None = Field(None, description="edit or qa")


class Topic(BaseModel):
    """Leaf content unit of a section."""

    id: str = Field(default_factory=new_id)
    name: str
    content: str = ""
    order_index: int = 0
    section_id: str = ""
    history: list[Refinement] = Field(default_factory=list)


class Section(BaseModel):
    """Ordered group of topics."""

    id: str = Field(default_factory=new_id)
    name: str
    order_index: int = 0
    topics: list[Topic] = Field(default_factory=list)
    history: list[Refinement] = Field(default_factory=list)


class Project(BaseModel):
    """Named document with ordered sections, history and generated diagrams."""

    id: str = Field(default_factory=new_id)
    name: str
    sections: list[Section] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    history: list[Refinement] = Field(default_factory=list)
    er_diagram: str | None = None
    uml_diagram: str | None = None
    flowchart: str | None = None
    user_journey: str | None = None
    user_stories: str | None = None


class Workspace(BaseModel):
    """Top-level container tracking the active project."""

    projects: list[Project] = Field(default_factory=list)
    active_project_id: str
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @classmethod
    def seeded(cls, project_name: str) -> "Workspace":
        """Build a first-run workspace holding one default project."""
        project = Project(name=project_name)
        return cls(projects=[project], active_project_id=project.id)


# ============================================================================
# API request bodies
# ============================================================================


class NameRequest(BaseModel):
    """Request body for create/rename operations."""

    name: str = Field(..., min_length=1, max_length=200, description="Display name")


class CreateTopicRequest(NameRequest):
    """Request body for creating a topic."""

    section_id: str = Field(..., description="Owning section id")


class TopicContentRequest(BaseModel):
    """Request body for replacing a topic's content."""

    content: str = Field(..., description="New topic content")


class ReorderRequest(BaseModel):
    """Request body for reorder_item."""

    kind: str = Field(..., description="section or topic")
    id: str = Field(..., description="Item id")
    new_index: int = Field(..., ge=0, description="Target position")


class AppendRefinementRequest(BaseModel):
    """Request body for appending a refinement to a history list."""

    target_kind: str = Field(..., description="project, section or topic")
    target_id: str = Field(..., description="Target entity id")
    refinement: Refinement


class DiagramRequest(BaseModel):
    """Request body for storing a generated diagram."""

    content: str | None = Field(None, description="Diagram text, or null to clear")
    project_id: str | None = Field(None, description="Defaults to the active project")


class MergedOutputResponse(BaseModel):
    """Response schema for merged output."""

    project_id: str
    content: str


class StreamRequest(BaseModel):
    """Request body for a provider stream."""

    content: str = Field(..., description="Text forwarded to the provider")
