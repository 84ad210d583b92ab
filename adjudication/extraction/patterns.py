"""Identifier shapes shared by the extractors and the validation engine."""

from __future__ import annotations

import re

# Service code: three uppercase letters followed by four digits (SRV1001)
SERVICE_CODE = r"[A-Z]{3}\d{4}"

# Diagnosis code: letter, 2-3 digits, optional decimal part (E11.9, R51, J45.909)
DIAGNOSIS_CODE = r"[A-Z]\d{2,3}(?:\.\d+)?"

# Word-bounded variants for scanning free text
SERVICE_CODE_TOKEN = rf"(?<![A-Za-z0-9]){SERVICE_CODE}(?![A-Za-z0-9])"
DIAGNOSIS_CODE_TOKEN = rf"(?<![A-Za-z0-9.]){DIAGNOSIS_CODE}(?![A-Za-z0-9])"

SERVICE_CODE_RE = re.compile(rf"^{SERVICE_CODE}$")
DIAGNOSIS_CODE_RE = re.compile(rf"^{DIAGNOSIS_CODE}$")

# Identifier fields: uppercase alphanumeric, no length bound
UPPERCASE_ALNUM_PATTERN = r"^[A-Z0-9]+$"

# Composite claim identifier: XXXX-XXXX-XXXX
UNIQUE_ID_PATTERN = r"^[A-Z0-9]{4}-[A-Z0-9]{4}-[A-Z0-9]{4}$"

# Bullet glyphs that prefix list items in rendered documents
BULLETS = "•●▪◦·*-"


def is_service_code(value: str) -> bool:
    return bool(SERVICE_CODE_RE.match(value))


def is_diagnosis_code(value: str) -> bool:
    return bool(DIAGNOSIS_CODE_RE.match(value))


def strip_bullet(line: str) -> str:
    """Remove a leading bullet glyph and surrounding whitespace from a line."""
    return line.strip().lstrip(BULLETS).strip()
