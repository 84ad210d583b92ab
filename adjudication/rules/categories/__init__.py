"""Claim checks organized by adjudication domain."""

from __future__ import annotations

from .medical_rules import (
    diagnosis_requirement_rule,
    encounter_type_rule,
    facility_type_rule,
    mutual_exclusion_rule,
)
from .technical_rules import (
    amount_threshold_rule,
    diagnosis_approval_rule,
    id_format_rule,
    service_approval_rule,
)

__all__ = [
    "encounter_type_rule",
    "facility_type_rule",
    "diagnosis_requirement_rule",
    "mutual_exclusion_rule",
    "service_approval_rule",
    "diagnosis_approval_rule",
    "amount_threshold_rule",
    "id_format_rule",
]
