from __future__ import annotations

from concurrent.futures import Future
import math
from typing import Any

from .models import ElementRect, ViewRect


def document_rect_to_view(
    rect: ElementRect,
    scroll_x: float,
    scroll_y: float,
    zoom_factor: float,
    view_width: int,
    view_height: int,
) -> ViewRect | None:
    """Maps a document-coordinate rectangle onto the visible rendering surface.

    The page reports CSS pixels relative to the document origin; the view
    shows the document shifted by the scroll offset and scaled by its zoom.
    Returns ``None`` when nothing of the rectangle is on screen.
    """
    if rect.is_empty:
        return None
    try:
        zoom = float(zoom_factor)
    except (TypeError, ValueError):
        zoom = 1.0
    if not math.isfinite(zoom) or zoom <= 0:
        zoom = 1.0

    left = (rect.x - float(scroll_x)) * zoom
    top = (rect.y - float(scroll_y)) * zoom
    right = left + rect.width * zoom
    bottom = top + rect.height * zoom

    width = max(0, int(view_width))
    height = max(0, int(view_height))
    clamped_left = max(0, int(math.floor(left)))
    clamped_top = max(0, int(math.floor(top)))
    clamped_right = min(width, int(math.ceil(right)))
    clamped_bottom = min(height, int(math.ceil(bottom)))

    if clamped_right <= clamped_left or clamped_bottom <= clamped_top:
        return None
    return ViewRect(
        left=clamped_left,
        top=clamped_top,
        width=clamped_right - clamped_left,
        height=clamped_bottom - clamped_top,
    )


def screenshot_clip(rect: ElementRect) -> dict[str, float] | None:
    if rect.is_empty:
        return None
    left = max(0.0, rect.x)
    top = max(0.0, rect.y)
    width = rect.x + rect.width - left
    height = rect.y + rect.height - top
    if width <= 0 or height <= 0:
        return None
    return {"x": left, "y": top, "width": width, "height": height}


def resolved_future(value: Any) -> Future:
    future: Future = Future()
    future.set_result(value)
    return future
