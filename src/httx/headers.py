"""Header merging with precedence: defaults < content mode < explicit."""

from __future__ import annotations

from typing import Dict, Mapping, Optional

from httx.models import ContentMode

CONTENT_TYPE = "Content-Type"
ACCEPT = "Accept"

JSON_CONTENT_TYPE = "application/json"
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"

HeaderLayer = Optional[Mapping[str, Optional[str]]]


def mode_headers(content_mode: ContentMode) -> Dict[str, Optional[str]]:
    """Headers implied by a content mode.

    Multipart removes any Content-Type so that the encoder's boundary-bearing one is used.
    """
    if content_mode == ContentMode.JSON:
        return {CONTENT_TYPE: JSON_CONTENT_TYPE, ACCEPT: JSON_CONTENT_TYPE}
    if content_mode == ContentMode.FORM:
        return {CONTENT_TYPE: FORM_CONTENT_TYPE}
    if content_mode == ContentMode.MULTIPART:
        return {CONTENT_TYPE: None}
    return {}


def set_header(headers: Dict[str, Optional[str]], name: str, value: Optional[str]) -> None:
    """Set ``name`` replacing any same-named header regardless of case. ``None`` is kept as a removal marker."""
    for existing in [k for k in headers if k.lower() == name.lower()]:
        del headers[existing]
    headers[name] = value


def merge_headers(
    defaults: HeaderLayer = None, mode: HeaderLayer = None, explicit: HeaderLayer = None
) -> Dict[str, str]:
    """Merge header layers, later layers overwriting earlier ones.

    Names compare case-insensitively and the casing of the last write is kept.
    A value of ``None`` removes the header.
    """
    merged: Dict[str, Optional[str]] = {}
    for layer in (defaults, mode, explicit):
        for name, value in (layer or {}).items():
            set_header(merged, name, value)
    return {name: value for name, value in merged.items() if value is not None}
