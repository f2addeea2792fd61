from __future__ import annotations

from dataclasses import dataclass, field, replace
import os
from pathlib import Path
from typing import Mapping, MutableMapping

DEFAULT_START_URL = "https://www.apple.com"
DEFAULT_HIGHLIGHT_FILL = "rgba(75, 137, 255, 0.1)"
DEFAULT_HIGHLIGHT_OUTLINE = "2px solid rgb(75, 137, 255)"

ENV_PREFIX = "ELEMENTSNIP_"


@dataclass(frozen=True, slots=True)
class SnipConfig:
    start_url: str = DEFAULT_START_URL
    highlight_fill: str = DEFAULT_HIGHLIGHT_FILL
    highlight_outline: str = DEFAULT_HIGHLIGHT_OUTLINE
    restore_delay_ms: int = 100
    load_timeout_ms: int = 30_000
    log_dir: Path = field(default_factory=lambda: Path.home() / ".elementsnip")


def _read_int(value: str | None, default: int, minimum: int) -> int:
    if value is None:
        return default
    try:
        parsed = int(value.strip())
    except (TypeError, ValueError):
        return default
    return max(minimum, parsed)


def load_config(environ: Mapping[str, str] | None = None) -> SnipConfig:
    env = os.environ if environ is None else environ
    config = SnipConfig()

    def text(name: str, default: str) -> str:
        value = str(env.get(f"{ENV_PREFIX}{name}", "") or "").strip()
        return value or default

    log_dir_raw = text("LOG_DIR", "")
    return replace(
        config,
        start_url=text("START_URL", config.start_url),
        highlight_fill=text("HIGHLIGHT_FILL", config.highlight_fill),
        highlight_outline=text("HIGHLIGHT_OUTLINE", config.highlight_outline),
        restore_delay_ms=_read_int(env.get(f"{ENV_PREFIX}RESTORE_DELAY_MS"), config.restore_delay_ms, 0),
        load_timeout_ms=_read_int(env.get(f"{ENV_PREFIX}LOAD_TIMEOUT_MS"), config.load_timeout_ms, 1000),
        log_dir=Path(log_dir_raw).expanduser() if log_dir_raw else config.log_dir,
    )


def configure_webengine_logging(environ: MutableMapping[str, str] | None = None) -> None:
    env = os.environ if environ is None else environ
    flags = env.get("QTWEBENGINE_CHROMIUM_FLAGS", "")
    current_flags = {item.strip() for item in flags.split() if item.strip()}
    for required in ("--disable-logging", "--log-level=3"):
        current_flags.add(required)
    env["QTWEBENGINE_CHROMIUM_FLAGS"] = " ".join(sorted(current_flags))
    rules = env.get("QT_LOGGING_RULES", "").strip()
    extra_rules = "qt.webengine.console=false"
    if rules:
        if extra_rules not in rules:
            env["QT_LOGGING_RULES"] = f"{rules};{extra_rules}"
    else:
        env["QT_LOGGING_RULES"] = extra_rules
