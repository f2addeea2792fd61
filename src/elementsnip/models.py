from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(slots=True)
class ElementRect:
    x: float
    y: float
    width: float
    height: float
    device_pixel_ratio: float = 1.0

    @property
    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0


@dataclass(slots=True)
class RestoreStyles:
    background: str = ""
    outline: str = ""


@dataclass(slots=True)
class FontStyle:
    family: str = ""
    size: str = ""
    weight: str = ""
    color: str = ""


@dataclass(slots=True)
class BoxEdges:
    top: str = ""
    right: str = ""
    bottom: str = ""
    left: str = ""


@dataclass(slots=True)
class BoxModel:
    padding: BoxEdges = field(default_factory=BoxEdges)
    margin: BoxEdges = field(default_factory=BoxEdges)
    border: BoxEdges = field(default_factory=BoxEdges)


@dataclass(slots=True)
class LayoutStyle:
    display: str = ""
    position: str = ""
    z_index: str = ""
    visibility: str = ""
    background_color: str = ""


@dataclass(slots=True)
class StyleSnapshot:
    font: FontStyle = field(default_factory=FontStyle)
    box: BoxModel = field(default_factory=BoxModel)
    layout: LayoutStyle = field(default_factory=LayoutStyle)


@dataclass(slots=True)
class AccessibilitySnapshot:
    role: str = "none"
    tab_index: int = -1
    aria_label: str = ""
    alt_text: str = ""
    title: str = ""

    @property
    def has_role(self) -> bool:
        return self.role != "none"


@dataclass(slots=True)
class SiblingTags:
    prev: str | None = None
    next: str | None = None


@dataclass(slots=True)
class DomContext:
    parent_tag: str | None = None
    children_count: int = 0
    siblings: SiblingTags = field(default_factory=SiblingTags)
    id: str = ""


@dataclass(slots=True)
class ElementMetadata:
    styles: StyleSnapshot = field(default_factory=StyleSnapshot)
    accessibility: AccessibilitySnapshot = field(default_factory=AccessibilitySnapshot)
    dom_context: DomContext = field(default_factory=DomContext)


@dataclass(slots=True)
class PageLocation:
    href: str = ""
    pathname: str = ""
    search: str = ""
    hash: str = ""


@dataclass(slots=True)
class ElementSnapshot:
    html: str
    tag_name: str
    class_name: str
    text_content: str
    rect: ElementRect
    restore: RestoreStyles
    metadata: ElementMetadata = field(default_factory=ElementMetadata)
    xpath: str = ""
    location: PageLocation = field(default_factory=PageLocation)


@dataclass(slots=True)
class SelectionRecord:
    snapshot: ElementSnapshot
    image_png: bytes | None = None
    captured_at: datetime = field(default_factory=datetime.now)

    @property
    def has_image(self) -> bool:
        return bool(self.image_png)


@dataclass(frozen=True, slots=True)
class ViewRect:
    left: int
    top: int
    width: int
    height: int
