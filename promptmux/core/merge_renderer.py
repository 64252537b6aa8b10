"""Deterministic flattening of a project into one text artifact."""

from promptmux.core.schemas_workspace import Project

SECTION_HEADER = "// Section: {name}"
TOPIC_SEPARATOR = "\n\n"
SECTION_SEPARATOR = "\n\n---\n\n"


def render(project: Project) -> str:
    """
    Render a project's sections and topics in order.

    Each section becomes a header comment followed by its topics' content
    joined by a blank line; section blocks are joined by a ``---`` rule.

    Args:
        project: Project to render

    Returns:
        Merged text. Depends only on names, order_index and content.
    """
    blocks = []
    for section in sorted(project.sections, key=lambda s: s.order_index):
        topics = sorted(section.topics, key=lambda t: t.order_index)
        body = TOPIC_SEPARATOR.join(topic.content for topic in topics)
        blocks.append(f"{SECTION_HEADER.format(name=section.name)}\n{body}")

    return SECTION_SEPARATOR.join(blocks)
