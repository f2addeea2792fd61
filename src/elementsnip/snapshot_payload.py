from __future__ import annotations

import logging
from typing import Any, Mapping

from .models import (
    AccessibilitySnapshot,
    BoxEdges,
    BoxModel,
    DomContext,
    ElementMetadata,
    ElementRect,
    ElementSnapshot,
    FontStyle,
    LayoutStyle,
    PageLocation,
    RestoreStyles,
    SiblingTags,
    StyleSnapshot,
)

logger = logging.getLogger("elementsnip.payload")


class InvalidSnapshotPayload(ValueError):
    """A selection payload is missing a required field or has the wrong type."""


def accept_selection_payload(payload: object) -> ElementSnapshot | None:
    """Boundary entry point: returns ``None`` for payloads that should be dropped."""
    try:
        return build_element_snapshot_from_payload(payload)
    except InvalidSnapshotPayload as exc:
        logger.debug("Dropped selection payload: %s", exc)
        return None


def build_element_snapshot_from_payload(payload: object) -> ElementSnapshot:
    if not isinstance(payload, Mapping):
        raise InvalidSnapshotPayload(f"payload must be a mapping, got {type(payload).__name__}")

    html_key = "html" if "html" in payload else "content"
    raw_metadata = payload.get("metadata")
    metadata = raw_metadata if isinstance(raw_metadata, Mapping) else {}

    return ElementSnapshot(
        html=_required_text(payload, html_key),
        tag_name=_required_text(payload, "tagName").lower(),
        class_name=_required_text(payload, "className"),
        text_content=_required_text(payload, "textContent"),
        rect=_parse_rect(payload.get("rect")),
        restore=_parse_restore(payload.get("restore")),
        metadata=ElementMetadata(
            styles=_parse_styles(metadata.get("styles")),
            accessibility=_parse_accessibility(metadata.get("accessibility")),
            dom_context=_parse_dom_context(metadata.get("domContext")),
        ),
        xpath=_as_text(payload.get("xpath")),
        location=_parse_location(payload.get("location")),
    )


def _required_text(payload: Mapping[str, Any], key: str) -> str:
    value = payload.get(key)
    if not isinstance(value, str):
        raise InvalidSnapshotPayload(f"'{key}' must be a string")
    return value


def _required_number(payload: Mapping[str, Any], key: str, owner: str) -> float:
    value = payload.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidSnapshotPayload(f"'{owner}.{key}' must be a number")
    return float(value)


def _parse_rect(raw: Any) -> ElementRect:
    if not isinstance(raw, Mapping):
        raise InvalidSnapshotPayload("'rect' must be a mapping")
    ratio = raw.get("devicePixelRatio", 1.0)
    if isinstance(ratio, bool) or not isinstance(ratio, (int, float)) or ratio <= 0:
        ratio = 1.0
    return ElementRect(
        x=_required_number(raw, "x", "rect"),
        y=_required_number(raw, "y", "rect"),
        width=_required_number(raw, "width", "rect"),
        height=_required_number(raw, "height", "rect"),
        device_pixel_ratio=float(ratio),
    )


def _parse_restore(raw: Any) -> RestoreStyles:
    if not isinstance(raw, Mapping):
        raise InvalidSnapshotPayload("'restore' must be a mapping")
    background = raw.get("background")
    outline = raw.get("outline")
    if not isinstance(background, str) or not isinstance(outline, str):
        raise InvalidSnapshotPayload("'restore.background' and 'restore.outline' must be strings")
    return RestoreStyles(background=background, outline=outline)


def _parse_edges(raw: Any) -> BoxEdges:
    data = _as_mapping(raw)
    return BoxEdges(
        top=_as_text(data.get("top")),
        right=_as_text(data.get("right")),
        bottom=_as_text(data.get("bottom")),
        left=_as_text(data.get("left")),
    )


def _parse_styles(raw: Any) -> StyleSnapshot:
    data = _as_mapping(raw)
    font = _as_mapping(data.get("font"))
    box = _as_mapping(data.get("box"))
    layout = _as_mapping(data.get("layout"))
    return StyleSnapshot(
        font=FontStyle(
            family=_as_text(font.get("family")),
            size=_as_text(font.get("size")),
            weight=_as_text(font.get("weight")),
            color=_as_text(font.get("color")),
        ),
        box=BoxModel(
            padding=_parse_edges(box.get("padding")),
            margin=_parse_edges(box.get("margin")),
            border=_parse_edges(box.get("border")),
        ),
        layout=LayoutStyle(
            display=_as_text(layout.get("display")),
            position=_as_text(layout.get("position")),
            z_index=_as_text(layout.get("zIndex")),
            visibility=_as_text(layout.get("visibility")),
            background_color=_as_text(layout.get("backgroundColor")),
        ),
    )


def _parse_accessibility(raw: Any) -> AccessibilitySnapshot:
    data = _as_mapping(raw)
    return AccessibilitySnapshot(
        role=_as_text(data.get("role")) or "none",
        tab_index=_as_int(data.get("tabIndex"), default=-1),
        aria_label=_as_text(data.get("ariaLabel")),
        alt_text=_as_text(data.get("altText")),
        title=_as_text(data.get("title")),
    )


def _parse_dom_context(raw: Any) -> DomContext:
    data = _as_mapping(raw)
    siblings = _as_mapping(data.get("siblings"))
    return DomContext(
        parent_tag=_as_optional_tag(data.get("parentTag")),
        children_count=max(0, _as_int(data.get("childrenCount"), default=0)),
        siblings=SiblingTags(
            prev=_as_optional_tag(siblings.get("prev")),
            next=_as_optional_tag(siblings.get("next")),
        ),
        id=_as_text(data.get("id")),
    )


def _parse_location(raw: Any) -> PageLocation:
    data = _as_mapping(raw)
    return PageLocation(
        href=_as_text(data.get("href")),
        pathname=_as_text(data.get("pathname")),
        search=_as_text(data.get("search")),
        hash=_as_text(data.get("hash")),
    )


def _as_mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def _as_optional_tag(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip().lower()
    return text or None


def _as_int(value: Any, default: int) -> int:
    if isinstance(value, bool):
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default
