"""Utility for structuring claim rows for the validation engine.

Claim spreadsheets arrive with inconsistent headers (``service_code``,
``serviceCode``, ``Service Code``, ``Paid Amount (AED)``) and loosely typed
cells. Rows are normalized into immutable ``Claim`` records here so the
engine never has to guess.
"""

from __future__ import annotations

import logging
import math
import re
from collections.abc import Iterable, Mapping
from typing import Any

from adjudication.exceptions import InputError
from adjudication.rules.models import Claim
from adjudication.utils.codes import parse_diagnosis_codes
from adjudication.utils.date_parser import normalize_service_date

logger = logging.getLogger(__name__)

# Canonical field name -> normalized header spellings that map to it
FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "claim_id": ("claimid", "claimnumber", "claimno"),
    "encounter_type": ("encountertype", "encounter"),
    "service_code": ("servicecode", "service"),
    "service_date": ("servicedate", "dateofservice", "dos"),
    "diagnosis_codes": ("diagnosiscodes", "diagnosiscode", "diagnoses", "dxcodes"),
    "facility_id": ("facilityid", "facility"),
    "paid_amount": ("paidamount", "paidamountaed", "amount", "paidaed"),
    "national_id": ("nationalid",),
    "member_id": ("memberid",),
    "unique_id": ("uniqueid",),
    "approval_number": ("approvalnumber", "approvalno", "approval", "priorapproval"),
}

_HEADER_LOOKUP = {
    alias: field_name for field_name, aliases in FIELD_ALIASES.items() for alias in aliases
}


def normalize_header(header: str) -> str:
    """Collapse a column header to lowercase letters and digits only."""
    return re.sub(r"[^a-z0-9]", "", str(header).lower())


def _clean_string(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def parse_amount(value: Any) -> float:
    """Parse a paid amount such as ``1,250.50`` or ``AED 300``; blanks are zero."""
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        amount = float(value)
        if not math.isfinite(amount):
            logger.warning(f"Non-finite paid amount {value!r}; treating as 0")
            return 0.0
        return amount
    text = re.sub(r"[^\d.\-]", "", str(value))
    if not text:
        return 0.0
    try:
        return float(text)
    except ValueError:
        logger.warning(f"Unparseable paid amount {value!r}; treating as 0")
        return 0.0


def canonical_fields(record: Mapping[str, Any]) -> dict[str, Any]:
    """Map a raw row onto canonical field names; the first matching header wins."""
    fields: dict[str, Any] = {}
    for header, value in record.items():
        field_name = _HEADER_LOOKUP.get(normalize_header(header))
        if field_name and field_name not in fields:
            fields[field_name] = value
    return fields


def claim_from_record(record: Mapping[str, Any], index: int = 0) -> Claim:
    """Structure one flat claim row as a ``Claim``.

    Args:
        record: Row keyed by any supported header spelling
        index: Zero-based position in the batch, used for generated claim IDs

    Returns:
        Claim with trimmed strings, split diagnosis codes, numeric paid
        amount and an ISO service date where the date could be parsed
    """
    if not isinstance(record, Mapping):
        raise InputError(f"Claim row {index + 1} must be a mapping, got {type(record).__name__}")

    fields = canonical_fields(record)
    claim_id = _clean_string(fields.get("claim_id")) or f"CLM-{index + 1:04d}"
    approval_number = _clean_string(fields.get("approval_number")) or None

    return Claim(
        claim_id=claim_id,
        encounter_type=_clean_string(fields.get("encounter_type")).upper(),
        service_code=_clean_string(fields.get("service_code")).upper(),
        service_date=normalize_service_date(fields.get("service_date")),
        diagnosis_codes=parse_diagnosis_codes(fields.get("diagnosis_codes")),
        facility_id=_clean_string(fields.get("facility_id")),
        paid_amount=parse_amount(fields.get("paid_amount")),
        national_id=_clean_string(fields.get("national_id")),
        member_id=_clean_string(fields.get("member_id")),
        unique_id=_clean_string(fields.get("unique_id")),
        approval_number=approval_number,
    )


def claims_from_records(records: Iterable[Mapping[str, Any]] | None) -> list[Claim]:
    """Structure a batch of rows, preserving order."""
    rows = list(records or [])
    if not rows:
        raise InputError("Claims data is required")
    claims = [claim_from_record(record, index) for index, record in enumerate(rows)]
    logger.debug(f"Structured {len(claims)} claim row(s)")
    return claims
