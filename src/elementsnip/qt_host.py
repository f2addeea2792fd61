from __future__ import annotations

from concurrent.futures import Future
import logging
from typing import Any

from PySide6.QtCore import QBuffer, QByteArray, QIODevice, QObject, QRect, QTimer, Signal, Slot
from PySide6.QtGui import QPixmap

from .bitmap_capture import document_rect_to_view
from .models import ElementRect

BRIDGE_OBJECT_NAME = "snipBridge"

BRIDGE_BOOTSTRAP_SCRIPT = r"""
(() => {
  if (typeof window.__elementsnipDeliver !== 'function') {
    window.__elementsnipDeliver = (payload) => {
      const bridge = window.__elementsnipBridge;
      if (bridge && typeof bridge.report === 'function') {
        bridge.report(payload);
      }
    };
  }

  function connectChannel() {
    if (window.__elementsnipBridge || window.__elementsnipChannelPending) {
      return;
    }
    if (typeof qt === 'undefined' || !qt.webChannelTransport) {
      return;
    }
    window.__elementsnipChannelPending = true;
    new QWebChannel(qt.webChannelTransport, (channel) => {
      window.__elementsnipChannelPending = false;
      window.__elementsnipBridge = channel.objects.snipBridge;
      if (window.__elementsnipBridge && window.__elementsnipBridge.log) {
        window.__elementsnipBridge.log('Snip bridge connected');
      }
    });
  }

  if (typeof QWebChannel !== 'undefined') {
    connectChannel();
    return;
  }
  if (window.__elementsnipChannelLoading) {
    return;
  }
  window.__elementsnipChannelLoading = true;
  const script = document.createElement('script');
  script.src = 'qrc:///qtwebchannel/qwebchannel.js';
  script.async = true;
  script.onload = () => {
    window.__elementsnipChannelLoading = false;
    connectChannel();
  };
  script.onerror = () => {
    window.__elementsnipChannelLoading = false;
  };
  document.documentElement.appendChild(script);
})()
"""


class SnipBridge(QObject):
    payload_received = Signal(object)
    log_received = Signal(str)

    @Slot("QVariant")
    def report(self, payload: Any) -> None:
        self.payload_received.emit(payload)

    @Slot(str)
    def log(self, message: str) -> None:
        self.log_received.emit(str(message))


class QtBitmapCapturer:
    """Grabs the on-screen pixels of a document rectangle from a web view.

    ``request`` returns a future that resolves on the Qt thread with PNG
    bytes, or ``None`` when the region is off screen or the grab failed.
    The grab is delayed by ``settle_ms`` so the page can repaint the element
    without its highlight first.
    """

    def __init__(self, view: Any, settle_ms: int = 30) -> None:
        self._view = view
        self._settle_ms = max(0, int(settle_ms))
        self.logger = logging.getLogger("elementsnip.host")

    def request(self, rect: ElementRect) -> Future:
        future: Future = Future()
        QTimer.singleShot(self._settle_ms, lambda: self._grab_into(rect, future))
        return future

    def _grab_into(self, rect: ElementRect, future: Future) -> None:
        try:
            future.set_result(self._grab(rect))
        except Exception:
            self.logger.exception("Bitmap capture failed.")
            future.set_result(None)

    def _grab(self, rect: ElementRect) -> bytes | None:
        view = self._view
        scroll = view.page().scrollPosition()
        region = document_rect_to_view(
            rect,
            scroll.x(),
            scroll.y(),
            view.zoomFactor(),
            view.width(),
            view.height(),
        )
        if region is None:
            return None
        pixmap = view.grab(QRect(region.left, region.top, region.width, region.height))
        return pixmap_to_png(pixmap)


def pixmap_to_png(pixmap: QPixmap) -> bytes | None:
    if pixmap.isNull():
        return None
    data = QByteArray()
    buffer = QBuffer(data)
    buffer.open(QIODevice.OpenModeFlag.WriteOnly)
    try:
        if not pixmap.save(buffer, "PNG"):
            return None
    finally:
        buffer.close()
    return bytes(data.data())
