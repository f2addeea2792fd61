from __future__ import annotations

_MISSING_BROWSER_ERROR_HINTS = (
    "executable doesn't exist",
    "executable does not exist",
    "download new browsers",
    "playwright install",
    "could not find browser",
    "failed to launch chromium because executable",
)

_CLOSED_TARGET_HINTS = (
    "has been closed",
    "target page, context or browser has been closed",
    "browser has been closed",
    "target closed",
)


def is_missing_browser_error(exc: BaseException) -> bool:
    message = str(exc).lower()
    return any(hint in message for hint in _MISSING_BROWSER_ERROR_HINTS)


def is_closed_target_error(exc: BaseException) -> bool:
    message = str(exc).lower()
    return any(hint in message for hint in _CLOSED_TARGET_HINTS)
