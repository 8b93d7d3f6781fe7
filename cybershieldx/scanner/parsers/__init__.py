# cybershieldx/scanner/parsers/__init__.py
"""
Parsers for OS tool output.

One module per platform, one function per tool. Every parser takes the raw
stdout text and returns a small typed result, or raises ParseError when the
text does not look like what the tool is documented to print. Tool output is
untrusted: nothing outside this package scrapes it.
"""

from __future__ import annotations

import json
from typing import Any, Dict, List


class ParseError(ValueError):
    """Tool output did not match the expected format."""

    def __init__(self, tool: str, message: str):
        self.tool = tool
        super().__init__(f"{tool}: {message}")


def parse_json_records(tool: str, text: str) -> List[Dict[str, Any]]:
    """
    Decode PowerShell ConvertTo-Json output.

    A single object comes back as a bare dict and several as a list;
    callers always get a list of dicts.
    """
    text = (text or "").strip()
    if not text:
        return []
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as e:
        raise ParseError(tool, f"invalid JSON: {e}")

    if isinstance(parsed, dict):
        return [parsed]
    if isinstance(parsed, list):
        return [item for item in parsed if isinstance(item, dict)]
    raise ParseError(tool, f"unexpected JSON type {type(parsed).__name__}")


__all__ = ["ParseError", "parse_json_records"]
