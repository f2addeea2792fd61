from __future__ import annotations

from urllib.parse import urlparse

_PASSTHROUGH_SCHEMES = {"http", "https", "file", "about", "data", "qrc"}


def normalize_url(raw_url: str) -> str:
    url = (raw_url or "").strip()
    if not url:
        return ""
    scheme = urlparse(url).scheme.lower()
    if scheme in _PASSTHROUGH_SCHEMES:
        return url
    return f"https://{url}"


def load_failure_message(error_string: str, *, timed_out: bool = False) -> str:
    if timed_out:
        return "Request timed out. Please try again."
    lowered = (error_string or "").lower()
    if "aborted" in lowered or "cancel" in lowered:
        return ""
    if "name_not_resolved" in lowered or ("host" in lowered and "not found" in lowered):
        return "Cannot find the specified host. Please check the URL."
    if "internet_disconnected" in lowered:
        return "No internet connection. Please check your network settings."
    if "timed_out" in lowered:
        return "The request timed out. Please try again."
    return error_string or "The page could not be loaded."
