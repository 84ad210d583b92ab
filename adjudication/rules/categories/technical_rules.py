"""Technical adjudication checks: prior approval and identifier formatting."""

from __future__ import annotations

import re

from adjudication.extraction.patterns import UNIQUE_ID_PATTERN
from adjudication.rules.categories.medical_rules import describe_code
from adjudication.rules.models import (
    ErrorCategory,
    ErrorDomain,
    RuleContext,
    ValidationError,
)

REQUEST_APPROVAL_ACTION = "Request prior approval before submission."

ID_FIELD_LABELS = {
    "national_id": "National ID",
    "member_id": "Member ID",
    "facility_id": "Facility ID",
}


def format_amount(amount: float) -> str:
    if float(amount).is_integer():
        return str(int(amount))
    return f"{amount:.2f}"


def service_approval_rule(context: RuleContext) -> list[ValidationError]:
    claim = context.claim
    if claim.has_approval:
        return []

    approval = context.technical_rules.service_approval_for(claim.service_code)
    if approval is None or not approval.approval_required:
        return []

    return [
        ValidationError(
            domain=ErrorDomain.TECHNICAL,
            category=ErrorCategory.MISSING_PRIOR_APPROVAL,
            message=(
                f"Prior approval required but missing: service "
                f"{describe_code(approval.code, approval.description)} requires prior approval."
            ),
            recommended_action=REQUEST_APPROVAL_ACTION,
        )
    ]


def diagnosis_approval_rule(context: RuleContext) -> list[ValidationError]:
    """One error listing every claim diagnosis that needs approval."""
    claim = context.claim
    if claim.has_approval:
        return []

    triggered = context.technical_rules.diagnoses_requiring_approval(claim.diagnosis_codes)
    if not triggered:
        return []

    described = ", ".join(describe_code(approval.code, approval.name) for approval in triggered)
    return [
        ValidationError(
            domain=ErrorDomain.TECHNICAL,
            category=ErrorCategory.MISSING_PRIOR_APPROVAL,
            message=f"Prior approval required but missing: diagnosis {described} requires prior approval.",
            recommended_action=REQUEST_APPROVAL_ACTION,
        )
    ]


def amount_threshold_rule(context: RuleContext) -> list[ValidationError]:
    """Paid amounts strictly above the threshold need an approval number."""
    claim = context.claim
    threshold = context.technical_rules.paid_amount_threshold
    if threshold is None or claim.has_approval:
        return []
    if not threshold.exceeded_by(claim.paid_amount):
        return []

    return [
        ValidationError(
            domain=ErrorDomain.TECHNICAL,
            category=ErrorCategory.THRESHOLD_EXCEEDED,
            message=(
                f"Prior approval required but missing: Amount > {format_amount(threshold.amount)} "
                f"{threshold.currency} (paid {format_amount(claim.paid_amount)} {threshold.currency})."
            ),
            recommended_action="Flag for manual review or approval due to amount threshold.",
        )
    ]


def id_format_rule(context: RuleContext) -> list[ValidationError]:
    """Validate identifier casing, unique ID shape and unique ID composition."""
    errors: list[ValidationError] = []
    claim = context.claim
    id_format = context.technical_rules.id_format
    if id_format.is_empty:
        return errors

    if id_format.uppercase is not None:
        pattern = re.compile(id_format.uppercase.pattern)
        for field_name in id_format.uppercase.fields:
            value = getattr(claim, field_name, "") or ""
            if not value or pattern.match(value):
                continue
            label = ID_FIELD_LABELS.get(field_name, field_name)
            errors.append(
                ValidationError(
                    domain=ErrorDomain.TECHNICAL,
                    category=ErrorCategory.INVALID_ID_FORMAT,
                    message=f"{label} {value} is not uppercase alphanumeric.",
                    recommended_action="Correct the ID or unique_id format.",
                )
            )

    if not claim.unique_id:
        return errors

    structure = id_format.unique_id_structure
    shape = structure.pattern if structure is not None else UNIQUE_ID_PATTERN
    if not re.match(shape, claim.unique_id):
        template = (
            structure.separator.join("X" * segment.length for segment in structure.segments)
            if structure is not None
            else "XXXX-XXXX-XXXX"
        )
        errors.append(
            ValidationError(
                domain=ErrorDomain.TECHNICAL,
                category=ErrorCategory.INVALID_ID_FORMAT,
                message=f"Unique ID {claim.unique_id} does not match the required format {template}.",
                recommended_action="Correct the ID or unique_id format.",
            )
        )
        return errors

    if structure is None:
        return errors

    expected = structure.expected_unique_id(claim)
    if expected is not None and claim.unique_id.upper() != expected:
        errors.append(
            ValidationError(
                domain=ErrorDomain.TECHNICAL,
                category=ErrorCategory.UNIQUE_ID_MISMATCH,
                message=f"Unique ID {claim.unique_id} does not match constituent parts. Expected {expected}.",
                recommended_action="Rebuild unique_id from the national, member and facility IDs.",
            )
        )

    return errors
