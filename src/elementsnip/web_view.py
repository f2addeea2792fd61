from __future__ import annotations

from PySide6.QtWebEngineWidgets import QWebEngineView


class SnipWebView(QWebEngineView):
    """Web view that opens ``target=_blank`` links and ``window.open`` in place."""

    def createWindow(self, window_type):  # noqa: N802 (Qt API)
        return self
