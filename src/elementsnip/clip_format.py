from __future__ import annotations

from .models import BoxEdges, ElementSnapshot, SelectionRecord


def _edges(edges: BoxEdges) -> str:
    return f"{edges.top} {edges.right} {edges.bottom} {edges.left}".strip()


def metadata_rows(snapshot: ElementSnapshot) -> list[tuple[str, str]]:
    """Label/value rows for the side panel; empty values are left out."""
    rows: list[tuple[str, str]] = [("Tag", snapshot.tag_name)]
    if snapshot.class_name:
        rows.append(("Class", snapshot.class_name))

    context = snapshot.metadata.dom_context
    if context.id:
        rows.append(("ID", context.id))
    if snapshot.xpath:
        rows.append(("XPath", snapshot.xpath))

    rect = snapshot.rect
    rows.append(("Size", f"{rect.width:g} x {rect.height:g} at ({rect.x:g}, {rect.y:g})"))

    accessibility = snapshot.metadata.accessibility
    if accessibility.has_role:
        rows.append(("Role", accessibility.role))
    if accessibility.aria_label:
        rows.append(("ARIA Label", accessibility.aria_label))
    if accessibility.alt_text:
        rows.append(("Alt Text", accessibility.alt_text))
    if accessibility.title:
        rows.append(("Title", accessibility.title))

    font = snapshot.metadata.styles.font
    if font.family:
        rows.append(("Font", f"{font.family} {font.size} {font.weight}".strip()))
    if font.color:
        rows.append(("Color", font.color))

    layout = snapshot.metadata.styles.layout
    if layout.display:
        rows.append(("Display", layout.display))
    box = snapshot.metadata.styles.box
    if _edges(box.padding):
        rows.append(("Padding", _edges(box.padding)))
    if _edges(box.margin):
        rows.append(("Margin", _edges(box.margin)))

    if context.parent_tag:
        rows.append(("Parent", context.parent_tag))
    rows.append(("Children", str(context.children_count)))

    if snapshot.location.href:
        rows.append(("Page", snapshot.location.href))
    return rows


def format_selection_text(record: SelectionRecord) -> str:
    snapshot = record.snapshot
    lines = [f"{label}: {value}" for label, value in metadata_rows(snapshot)]
    if snapshot.text_content:
        lines.extend(["", "Text Content:", snapshot.text_content])
    lines.extend(["", "HTML:", snapshot.html])
    return "\n".join(lines)
