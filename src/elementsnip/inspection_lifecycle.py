from __future__ import annotations

import logging
from typing import Callable

from .config import SnipConfig
from .page_scripts import DISABLE_SCRIPT, build_enable_script

ScriptRunner = Callable[[str], None]


class InspectionLifecycle:
    """Keeps the in-page inspector in step with the host's inspection toggle.

    ``active`` is what the user asked for; ``installed`` tracks whether the
    current document has listeners attached. Enabling is idempotent on the
    host; disabling always asks the page to tear down, which the page treats
    as a no-op when nothing is attached. A fresh document gets the engine
    again once its load finishes.
    """

    def __init__(self, run_script: ScriptRunner, config: SnipConfig | None = None) -> None:
        self._run_script = run_script
        self._enable_script = build_enable_script(config)
        self._active = False
        self._installed = False
        self.logger = logging.getLogger("elementsnip.host")

    @property
    def active(self) -> bool:
        return self._active

    @property
    def installed(self) -> bool:
        return self._installed

    def set_enabled(self, enabled: bool) -> None:
        if enabled:
            self.enable()
        else:
            self.disable()

    def enable(self) -> None:
        self._active = True
        if self._installed:
            return
        self._install()

    def disable(self) -> None:
        # A stopped or failed load can leave the old document, listeners included, on screen.
        self._active = False
        self._installed = False
        self._evaluate(DISABLE_SCRIPT, "disable")

    def page_load_started(self) -> None:
        self._installed = False

    def page_load_finished(self, ok: bool) -> None:
        self._installed = False
        if not ok:
            self.logger.info("Page load failed; inspector not re-installed.")
            return
        if self._active:
            self.logger.info("Re-installing inspector after navigation.")
            self._install()

    def _install(self) -> None:
        self._installed = self._evaluate(self._enable_script, "enable")

    def _evaluate(self, script: str, label: str) -> bool:
        try:
            self._run_script(script)
        except Exception:
            self.logger.exception("Inspector %s script failed.", label)
            return False
        return True
