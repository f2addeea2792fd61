from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable

from playwright.sync_api import Error as PlaywrightError

from .bitmap_capture import screenshot_clip
from .config import SnipConfig
from .inspection_lifecycle import InspectionLifecycle
from .models import ElementRect, ElementSnapshot, SelectionRecord
from .page_scripts import DELIVER_FUNCTION_NAME, build_install_script
from .runtime_checks import is_closed_target_error
from .snapshot_payload import accept_selection_payload

if TYPE_CHECKING:
    from playwright.sync_api import Frame, Page

SelectionCallback = Callable[[SelectionRecord], None]

_BUILD_SNAPSHOT_CALL = "(el) => window.__elementsnip.extractors.buildSnapshot(el)"


class PlaywrightInspector:
    """Drives the in-page inspector inside a Playwright page.

    Snapshots come back through an exposed function; each one is validated,
    optionally paired with a screenshot of its rectangle and handed to
    ``on_selection``. Records are also kept in ``selections``.
    """

    def __init__(
        self,
        page: Page,
        on_selection: SelectionCallback | None = None,
        config: SnipConfig | None = None,
        *,
        capture_bitmaps: bool = True,
    ) -> None:
        self._page = page
        self._on_selection = on_selection or (lambda _record: None)
        self._config = config or SnipConfig()
        self._capture_bitmaps = capture_bitmaps
        self._attached = False
        self.selections: list[SelectionRecord] = []
        self.logger = logging.getLogger("elementsnip.host")
        self.lifecycle = InspectionLifecycle(self._evaluate, self._config)

    @property
    def inspecting(self) -> bool:
        return self.lifecycle.active

    def attach(self) -> None:
        if self._attached:
            return
        self._page.expose_function(DELIVER_FUNCTION_NAME, self._on_payload)
        self._page.on("framenavigated", self._on_frame_navigated)
        self._page.on("load", self._on_load)
        self._attached = True

    def set_inspect_mode(self, enabled: bool) -> None:
        self.attach()
        self.lifecycle.set_enabled(enabled)
        self.logger.info("Inspect mode %s.", "ON" if enabled else "OFF")

    def snapshot_element(self, selector: str) -> ElementSnapshot | None:
        """Reads a snapshot of the first element matching ``selector`` without a click."""
        try:
            self._page.evaluate(build_install_script(self._config))
            locator = self._page.locator(selector)
            if locator.count() == 0:
                self.logger.info("No element matches %s.", selector)
                return None
            payload = locator.first.evaluate(_BUILD_SNAPSHOT_CALL)
        except PlaywrightError as exc:
            self.logger.warning("Snapshot of %s failed: %s", selector, exc)
            return None
        return accept_selection_payload(payload)

    def capture_bitmap(self, rect: ElementRect) -> bytes | None:
        clip = screenshot_clip(rect)
        if clip is None:
            return None
        try:
            return self._page.screenshot(clip=clip, full_page=True, type="png")
        except PlaywrightError as exc:
            if is_closed_target_error(exc):
                self.logger.info("Bitmap skipped; page is closed.")
            else:
                self.logger.warning("Bitmap capture failed: %s", exc)
            return None

    def _evaluate(self, script: str) -> None:
        self._page.evaluate(script)

    def _on_frame_navigated(self, frame: Frame) -> None:
        if frame == self._page.main_frame:
            self.lifecycle.page_load_started()

    def _on_load(self) -> None:
        self.lifecycle.page_load_finished(True)

    def _on_payload(self, payload: Any) -> None:
        snapshot = accept_selection_payload(payload)
        if snapshot is None:
            return
        image = self.capture_bitmap(snapshot.rect) if self._capture_bitmaps else None
        record = SelectionRecord(snapshot=snapshot, image_png=image)
        self.selections.append(record)
        self.logger.info("Selection received: <%s> %s", snapshot.tag_name, snapshot.xpath)
        self._on_selection(record)

