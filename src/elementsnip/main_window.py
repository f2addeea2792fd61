from __future__ import annotations

from concurrent.futures import Future
import logging
from pathlib import Path
from typing import Any

from PySide6.QtCore import QTimer, Qt, QUrl, Signal
from PySide6.QtGui import QCloseEvent, QGuiApplication, QPixmap
from PySide6.QtWebChannel import QWebChannel
from PySide6.QtWidgets import (
    QApplication,
    QFormLayout,
    QFrame,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QMainWindow,
    QPlainTextEdit,
    QPushButton,
    QScrollArea,
    QSizePolicy,
    QSplitter,
    QVBoxLayout,
    QWidget,
)

from .bitmap_capture import resolved_future
from .clip_format import format_selection_text, metadata_rows
from .config import SnipConfig, load_config
from .inspection_lifecycle import InspectionLifecycle
from .models import ElementSnapshot, SelectionRecord
from .navigation import load_failure_message, normalize_url
from .qt_host import BRIDGE_BOOTSTRAP_SCRIPT, BRIDGE_OBJECT_NAME, QtBitmapCapturer, SnipBridge
from .snapshot_payload import accept_selection_payload


class NavigationBar(QFrame):
    back_requested = Signal()
    forward_requested = Signal()
    reload_requested = Signal()
    url_submitted = Signal(str)

    def __init__(self) -> None:
        super().__init__()
        self.setObjectName("NavigationBar")

        self.back_button = QPushButton("<")
        self.back_button.setToolTip("Back")
        self.forward_button = QPushButton(">")
        self.forward_button.setToolTip("Forward")
        self.reload_button = QPushButton("Reload")
        self.url_input = QLineEdit()
        self.url_input.setPlaceholderText("Enter URL")
        self.loading_label = QLabel("")
        self.loading_label.setObjectName("Muted")

        for button in (self.back_button, self.forward_button):
            button.setFixedWidth(32)
            button.setEnabled(False)

        root = QHBoxLayout(self)
        root.setContentsMargins(8, 6, 8, 6)
        root.setSpacing(8)
        root.addWidget(self.back_button)
        root.addWidget(self.forward_button)
        root.addWidget(self.reload_button)
        root.addWidget(self.url_input, 1)
        root.addWidget(self.loading_label)

        self.back_button.clicked.connect(self.back_requested.emit)
        self.forward_button.clicked.connect(self.forward_requested.emit)
        self.reload_button.clicked.connect(self.reload_requested.emit)
        self.url_input.returnPressed.connect(lambda: self.url_submitted.emit(self.url_input.text()))

    def set_loading(self, loading: bool) -> None:
        self.loading_label.setText("Loading..." if loading else "")
        self.reload_button.setEnabled(not loading)

    def set_history_state(self, can_go_back: bool, can_go_forward: bool) -> None:
        self.back_button.setEnabled(can_go_back)
        self.forward_button.setEnabled(can_go_forward)

    def set_url(self, url: str) -> None:
        if self.url_input.hasFocus():
            return
        self.url_input.setText(url)


class BrowserPanel(QFrame):
    def __init__(self) -> None:
        super().__init__()
        self.setObjectName("BrowserPanel")
        self.setSizePolicy(QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Expanding)

        self._web_view = None
        self._fallback_label = QLabel("")
        self._fallback_label.setObjectName("Muted")
        self._fallback_label.setWordWrap(True)

        root = QVBoxLayout(self)
        root.setContentsMargins(0, 0, 0, 0)

        try:
            from .web_view import SnipWebView

            self._web_view = SnipWebView(self)
            self._web_view.setSizePolicy(QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Expanding)
            root.addWidget(self._web_view, 1)
        except Exception:
            self._fallback_label.setText(
                "Qt WebEngine is not available in this environment. "
                "Clip mode cannot start."
            )
            root.addWidget(self._fallback_label, 1)

    @property
    def web_view(self):
        return self._web_view

    @property
    def has_web_view(self) -> bool:
        return self._web_view is not None

    def load_url(self, url: str) -> None:
        if self._web_view is not None and url:
            self._web_view.setUrl(QUrl(url))


class SnipPanel(QFrame):
    clip_mode_toggled = Signal(bool)

    def __init__(self) -> None:
        super().__init__()
        self.setObjectName("SnipPanel")
        self.setMinimumWidth(300)

        self._record: SelectionRecord | None = None

        self.clip_toggle = QPushButton("Clip Mode Off")
        self.clip_toggle.setCheckable(True)
        self.clip_toggle.setToolTip("Toggle Clip Mode")
        self.clip_toggle.toggled.connect(self._on_toggled)

        self.placeholder = QLabel("Select an element to inspect")
        self.placeholder.setObjectName("Muted")
        self.placeholder.setAlignment(Qt.AlignmentFlag.AlignCenter)

        self.metadata_form = QFormLayout()
        self.preview_label = QLabel()
        self.preview_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.preview_label.setMinimumHeight(80)
        self.text_view = QPlainTextEdit()
        self.text_view.setReadOnly(True)
        self.html_view = QPlainTextEdit()
        self.html_view.setReadOnly(True)

        self.copy_text_button = QPushButton("Copy Text")
        self.copy_html_button = QPushButton("Copy HTML")
        self.copy_all_button = QPushButton("Copy All")
        self.copy_image_button = QPushButton("Copy Image")
        copy_row = QHBoxLayout()
        for button in (self.copy_text_button, self.copy_html_button, self.copy_all_button, self.copy_image_button):
            copy_row.addWidget(button)

        details = QWidget()
        details_layout = QVBoxLayout(details)
        details_layout.setContentsMargins(0, 0, 0, 0)
        details_layout.setSpacing(10)
        details_layout.addLayout(self.metadata_form)
        details_layout.addWidget(QLabel("Visual Preview"))
        details_layout.addWidget(self.preview_label)
        details_layout.addWidget(QLabel("Text Content"))
        details_layout.addWidget(self.text_view, 1)
        details_layout.addWidget(QLabel("HTML"))
        details_layout.addWidget(self.html_view, 1)
        details_layout.addLayout(copy_row)

        self.details_scroll = QScrollArea()
        self.details_scroll.setWidgetResizable(True)
        self.details_scroll.setWidget(details)
        self.details_scroll.hide()

        root = QVBoxLayout(self)
        root.setContentsMargins(10, 10, 10, 10)
        root.setSpacing(8)
        root.addWidget(self.clip_toggle)
        root.addWidget(self.placeholder, 1)
        root.addWidget(self.details_scroll, 1)

        self.copy_text_button.clicked.connect(self._copy_text)
        self.copy_html_button.clicked.connect(self._copy_html)
        self.copy_all_button.clicked.connect(self._copy_all)
        self.copy_image_button.clicked.connect(self._copy_image)

    @property
    def record(self) -> SelectionRecord | None:
        return self._record

    def set_clip_mode(self, enabled: bool) -> None:
        self.clip_toggle.blockSignals(True)
        self.clip_toggle.setChecked(enabled)
        self.clip_toggle.blockSignals(False)
        self.clip_toggle.setText(f"Clip Mode {'On' if enabled else 'Off'}")

    def show_record(self, record: SelectionRecord) -> None:
        self._record = record
        snapshot = record.snapshot
        self._fill_metadata(snapshot)

        pixmap = QPixmap()
        if record.image_png and pixmap.loadFromData(record.image_png, "PNG"):
            width = max(120, self.details_scroll.viewport().width() - 20)
            self.preview_label.setPixmap(
                pixmap.scaledToWidth(min(width, pixmap.width()), Qt.TransformationMode.SmoothTransformation)
            )
        else:
            self.preview_label.clear()
            self.preview_label.setText("No preview available.")
        self.copy_image_button.setEnabled(record.has_image)

        self.text_view.setPlainText(snapshot.text_content)
        self.html_view.setPlainText(snapshot.html)
        self.placeholder.hide()
        self.details_scroll.show()

    def _fill_metadata(self, snapshot: ElementSnapshot) -> None:
        while self.metadata_form.rowCount():
            self.metadata_form.removeRow(0)
        for label, value in metadata_rows(snapshot):
            value_label = QLabel(value)
            value_label.setWordWrap(True)
            value_label.setTextInteractionFlags(Qt.TextInteractionFlag.TextSelectableByMouse)
            self.metadata_form.addRow(f"{label}:", value_label)

    def _on_toggled(self, checked: bool) -> None:
        self.clip_toggle.setText(f"Clip Mode {'On' if checked else 'Off'}")
        self.clip_mode_toggled.emit(checked)

    def _copy_text(self) -> None:
        if self._record is not None:
            QApplication.clipboard().setText(self._record.snapshot.text_content)

    def _copy_html(self) -> None:
        if self._record is not None:
            QApplication.clipboard().setText(self._record.snapshot.html)

    def _copy_all(self) -> None:
        if self._record is not None:
            QApplication.clipboard().setText(format_selection_text(self._record))

    def _copy_image(self) -> None:
        if self._record is None or not self._record.image_png:
            return
        pixmap = QPixmap()
        if pixmap.loadFromData(self._record.image_png, "PNG"):
            QApplication.clipboard().setPixmap(pixmap)


class SnipWindow(QMainWindow):
    def __init__(self, config: SnipConfig | None = None) -> None:
        super().__init__()
        self.config = config or load_config()
        self.logger = self._build_logger(self.config.log_dir)
        self.setWindowTitle("Snip")
        self._fit_window_to_screen()

        self.navigation_bar = NavigationBar()
        self.browser_panel = BrowserPanel()
        self.snip_panel = SnipPanel()
        self.status_label = QLabel("")
        self.status_label.setObjectName("Muted")

        splitter = QSplitter(Qt.Orientation.Horizontal)
        splitter.addWidget(self.browser_panel)
        splitter.addWidget(self.snip_panel)
        splitter.setStretchFactor(0, 1)
        splitter.setSizes([max(600, self.width() - 320), 320])

        central = QWidget()
        root = QVBoxLayout(central)
        root.setContentsMargins(0, 0, 0, 0)
        root.setSpacing(0)
        root.addWidget(self.navigation_bar)
        root.addWidget(splitter, 1)
        root.addWidget(self.status_label)
        self.setCentralWidget(central)

        self._channel: QWebChannel | None = None
        self._bridge: SnipBridge | None = None
        self._capturer: QtBitmapCapturer | None = None
        self._load_timer = QTimer(self)
        self._load_timer.setSingleShot(True)
        self._load_timer.timeout.connect(self._on_load_timeout)
        self.lifecycle = InspectionLifecycle(self._run_js, self.config)

        self.navigation_bar.back_requested.connect(self._go_back)
        self.navigation_bar.forward_requested.connect(self._go_forward)
        self.navigation_bar.reload_requested.connect(self._reload)
        self.navigation_bar.url_submitted.connect(self.load_url)
        self.snip_panel.clip_mode_toggled.connect(self._toggle_clip_mode)

        self._setup_web_view()
        self.load_url(self.config.start_url)

    def _setup_web_view(self) -> None:
        web_view = self.browser_panel.web_view
        if web_view is None:
            self._set_status("Embedded browser is unavailable; clip mode is disabled.")
            self.snip_panel.clip_toggle.setEnabled(False)
            return

        self._channel = QWebChannel(web_view.page())
        self._bridge = SnipBridge()
        self._bridge.payload_received.connect(self._on_selection_payload)
        self._bridge.log_received.connect(self._on_page_log)
        self._channel.registerObject(BRIDGE_OBJECT_NAME, self._bridge)
        web_view.page().setWebChannel(self._channel)
        self._capturer = QtBitmapCapturer(web_view)

        web_view.loadStarted.connect(self._on_load_started)
        web_view.loadFinished.connect(self._on_load_finished)
        web_view.titleChanged.connect(self._on_title_changed)
        web_view.urlChanged.connect(self._on_url_changed)
        loading_changed = getattr(web_view.page(), "loadingChanged", None)
        if loading_changed is not None:
            loading_changed.connect(self._on_loading_changed)

    def load_url(self, raw_url: str) -> None:
        url = normalize_url(raw_url)
        if not url:
            self._set_status("Please enter a URL.")
            return
        self.navigation_bar.url_input.setText(url)
        self.browser_panel.load_url(url)

    def _run_js(self, script: str) -> None:
        web_view = self.browser_panel.web_view
        if web_view is None:
            raise RuntimeError("Embedded browser is unavailable.")
        web_view.page().runJavaScript(script)

    def _install_bridge(self) -> None:
        try:
            self._run_js(BRIDGE_BOOTSTRAP_SCRIPT)
        except RuntimeError as exc:
            self.logger.warning("Bridge bootstrap skipped: %s", exc)

    def _toggle_clip_mode(self, enabled: bool) -> None:
        self.logger.info("Clip mode changed: %s", "ON" if enabled else "OFF")
        if enabled:
            self._install_bridge()
        self.lifecycle.set_enabled(enabled)
        self._set_status("Clip mode on: click an element to snip it." if enabled else "Clip mode off.")

    def _on_load_started(self) -> None:
        self.lifecycle.page_load_started()
        self.navigation_bar.set_loading(True)
        self._load_timer.start(self.config.load_timeout_ms)

    def _on_load_finished(self, ok: bool) -> None:
        self._load_timer.stop()
        self.navigation_bar.set_loading(False)
        self._refresh_history_state()
        if ok and self.lifecycle.active:
            self._install_bridge()
        self.lifecycle.page_load_finished(ok)

    def _on_loading_changed(self, info: Any) -> None:
        try:
            from PySide6.QtWebEngineCore import QWebEngineLoadingInfo
        except ImportError:
            return
        if info.status() != QWebEngineLoadingInfo.LoadStatus.LoadFailedStatus:
            return
        message = load_failure_message(info.errorString())
        if message:
            self._set_status(message)

    def _on_load_timeout(self) -> None:
        web_view = self.browser_panel.web_view
        if web_view is not None:
            web_view.stop()
        self.navigation_bar.set_loading(False)
        self._set_status(load_failure_message("", timed_out=True))

    def _on_title_changed(self, title: str) -> None:
        self.setWindowTitle(f"{title} - Snip" if title else "Snip")

    def _on_url_changed(self, url: QUrl) -> None:
        self.navigation_bar.set_url(url.toString())
        self._refresh_history_state()

    def _refresh_history_state(self) -> None:
        web_view = self.browser_panel.web_view
        if web_view is None:
            return
        history = web_view.history()
        self.navigation_bar.set_history_state(history.canGoBack(), history.canGoForward())

    def _go_back(self) -> None:
        if self.browser_panel.web_view is not None:
            self.browser_panel.web_view.back()

    def _go_forward(self) -> None:
        if self.browser_panel.web_view is not None:
            self.browser_panel.web_view.forward()

    def _reload(self) -> None:
        if self.browser_panel.web_view is not None:
            self.browser_panel.web_view.reload()

    def _on_page_log(self, message: str) -> None:
        clean = message.strip()
        if clean:
            self.logger.info(clean)

    def _on_selection_payload(self, payload: object) -> None:
        snapshot = accept_selection_payload(payload)
        if snapshot is None:
            self.logger.info("Selection payload dropped.")
            return
        self.logger.info("Selection received: <%s> %s", snapshot.tag_name, snapshot.xpath)
        if self._capturer is None:
            future = resolved_future(None)
        else:
            future = self._capturer.request(snapshot.rect)
        future.add_done_callback(lambda done, snapshot=snapshot: self._on_bitmap_ready(snapshot, done))

    def _on_bitmap_ready(self, snapshot: ElementSnapshot, future: Future) -> None:
        image = future.result()
        if image is None:
            self.logger.info("No bitmap captured for <%s>.", snapshot.tag_name)
        record = SelectionRecord(snapshot=snapshot, image_png=image)
        self.snip_panel.show_record(record)
        self._set_status(f"Snipped <{snapshot.tag_name}> at {record.captured_at:%H:%M:%S}.")

    def _set_status(self, message: str) -> None:
        self.status_label.setText(message)

    def _fit_window_to_screen(self) -> None:
        screen = QGuiApplication.primaryScreen()
        if screen is None:
            self.resize(1280, 800)
            return
        available = screen.availableGeometry()
        self.resize(min(1440, available.width()), min(900, available.height()))

    def closeEvent(self, event: QCloseEvent) -> None:  # noqa: N802 (Qt API)
        self._load_timer.stop()
        super().closeEvent(event)

    @staticmethod
    def _build_logger(log_dir: Path) -> logging.Logger:
        logger = logging.getLogger("elementsnip.ui")
        if logger.handlers:
            return logger

        logger.setLevel(logging.INFO)
        logger.propagate = False
        try:
            log_dir.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_dir / "ui.log", encoding="utf-8")
            file_handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(message)s"))
            logger.addHandler(file_handler)
        except OSError:
            stream_handler = logging.StreamHandler()
            stream_handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(message)s"))
            logger.addHandler(stream_handler)
        return logger
