"""Rendering of raw upstream results into tool result text."""

from __future__ import annotations

import base64

import orjson

from leadgate.client import EMPTY, RawResult

_SUCCESS = {"success": True}


def render(raw: RawResult) -> str:
    """Pretty JSON for structured results, base64 for bytes, text verbatim.

    Key order from the source is preserved; EMPTY renders as ``{"success": true}``.
    """
    if raw is EMPTY:
        raw = _SUCCESS
    if isinstance(raw, bytes):
        return base64.b64encode(raw).decode("ascii")
    if isinstance(raw, str):
        return raw
    return orjson.dumps(raw, option=orjson.OPT_INDENT_2 | orjson.OPT_NON_STR_KEYS, default=str).decode()
