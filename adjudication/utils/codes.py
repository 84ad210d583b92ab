"""Diagnosis code list parsing shared by claim structuring and the claim model."""

from __future__ import annotations

import json
import re
from typing import Any

from adjudication import config


def _clean_item(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def parse_diagnosis_codes(value: Any) -> tuple[str, ...]:
    """Split a diagnosis cell into individual upper-case codes.

    Accepts a list, a JSON-encoded list or a string joined with any of the
    configured delimiters (``;`` and ``,`` by default).

    Examples:
        >>> parse_diagnosis_codes("E11.9, r73.03")
        ('E11.9', 'R73.03')
        >>> parse_diagnosis_codes('["E11.9"]')
        ('E11.9',)
    """
    if value is None or value == "":
        return ()
    if isinstance(value, (list, tuple)):
        items = [_clean_item(item) for item in value]
        return tuple(item.upper() for item in items if item)

    text = _clean_item(value)
    if text.startswith("["):
        try:
            parsed = json.loads(text)
        except json.JSONDecodeError:
            parsed = None
        if isinstance(parsed, list):
            return parse_diagnosis_codes(parsed)

    delimiters = config.DIAGNOSIS_DELIMITERS or ";"
    pattern = "[" + re.escape(delimiters) + "]"
    return tuple(part.strip().upper() for part in re.split(pattern, text) if part.strip())
