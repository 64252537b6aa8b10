"""Read accessors over the workspace tree.

Lookups return None for unknown ids and never raise. Trees are small and
interactive, so topic lookup is a linear scan across sections.
"""

from promptmux.core.schemas_workspace import Project, Section, Topic, Workspace


def find_project(workspace: Workspace, project_id: str) -> Project | None:
    """Return the project with this id, if any."""
    return next((p for p in workspace.projects if p.id == project_id), None)


def get_active_project(workspace: Workspace) -> Project | None:
    """Return the project named by active_project_id."""
    return find_project(workspace, workspace.active_project_id)


def find_section(project: Project, section_id: str) -> Section | None:
    """Return the section with this id within the project."""
    return next((s for s in project.sections if s.id == section_id), None)


def find_topic(project: Project, topic_id: str) -> Topic | None:
    """Return the topic with this id from any section of the project."""
    for section in project.sections:
        for topic in section.topics:
            if topic.id == topic_id:
                return topic
    return None


def find_section_containing_topic(project: Project, topic_id: str) -> Section | None:
    """Return the section whose topics include this id."""
    for section in project.sections:
        if any(t.id == topic_id for t in section.topics):
            return section
    return None


def index_of(items: list, item_id: str) -> int | None:
    """Position of the entity with this id in a sibling list."""
    for position, item in enumerate(items):
        if item.id == item_id:
            return position
    return None


def repack(items: list) -> None:
    """Rewrite order_index so siblings are 0..n-1 in list order."""
    for position, item in enumerate(items):
        item.order_index = position
