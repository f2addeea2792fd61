from __future__ import annotations

import sys

from .config import configure_webengine_logging, load_config


def main() -> int:
    if sys.version_info < (3, 11):
        raise SystemExit(
            "elementsnip requires Python 3.11+. "
            f"Current interpreter: {sys.executable} (Python {sys.version.split()[0]})"
        )
    configure_webengine_logging()
    config = load_config()
    try:
        from PySide6.QtWidgets import QApplication
        from .main_window import SnipWindow
    except ModuleNotFoundError as exc:
        if exc.name == "PySide6":
            raise SystemExit(
                "PySide6 is not installed in this interpreter. "
                "Activate the project venv and run `pip install -e .`."
            ) from exc
        raise

    app = QApplication(sys.argv)
    app.setApplicationName("Snip")
    app.setStyle("Fusion")
    window = SnipWindow(config)
    window.show()
    return app.exec()


if __name__ == "__main__":
    raise SystemExit(main())
