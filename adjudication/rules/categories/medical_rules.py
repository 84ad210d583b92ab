"""Medical adjudication checks: encounter, facility and diagnosis rules."""

from __future__ import annotations

from adjudication.rules.models import (
    EncounterType,
    ErrorCategory,
    ErrorDomain,
    RuleContext,
    ValidationError,
)


def describe_code(code: str, name: str = "") -> str:
    return f"{code} ({name})" if name else code


def encounter_type_rule(context: RuleContext) -> list[ValidationError]:
    """Flag services billed under the encounter type they are excluded from."""
    claim = context.claim
    encounter_type = EncounterType.parse(claim.encounter_type)
    if encounter_type is None:
        return []

    restricted_to = encounter_type.opposite
    if claim.service_code not in context.medical_rules.encounter_services(restricted_to):
        return []

    return [
        ValidationError(
            domain=ErrorDomain.MEDICAL,
            category=ErrorCategory.ENCOUNTER_TYPE_MISMATCH,
            message=(
                f"Service {claim.service_code} is {restricted_to.value.lower()}-only "
                f"but encounter is {encounter_type.value}."
            ),
            recommended_action="Correct the encounter type to match the service provided.",
        )
    ]


def facility_type_rule(context: RuleContext) -> list[ValidationError]:
    """Check the billed service against the allow-list of the claim's facility type.

    Services that no facility type governs are allowed anywhere. A facility
    type without a rule of its own is tolerated.
    """
    claim = context.claim
    medical = context.medical_rules
    if not medical.facility_registry:
        return []

    facility_type = medical.facility_type_for(claim.facility_id)
    if facility_type is None:
        return [
            ValidationError(
                domain=ErrorDomain.MEDICAL,
                category=ErrorCategory.FACILITY_NOT_FOUND,
                message=f"Facility ID {claim.facility_id or '(blank)'} not found in facility registry.",
                recommended_action="Verify the facility ID against the facility registry.",
            )
        ]

    if claim.service_code not in medical.governed_services:
        return []

    facility_rule = medical.facility_rule_for(facility_type)
    if facility_rule is None or facility_rule.permits(claim.service_code):
        return []

    return [
        ValidationError(
            domain=ErrorDomain.MEDICAL,
            category=ErrorCategory.FACILITY_TYPE_RESTRICTION,
            message=(
                f"Service {claim.service_code} not permitted at facility type "
                f"{facility_type} (ID: {claim.facility_id})."
            ),
            recommended_action="Verify service eligibility for facility or encounter.",
        )
    ]


def diagnosis_requirement_rule(context: RuleContext) -> list[ValidationError]:
    """Diagnoses that demand a specific service must be billed with that service."""
    errors: list[ValidationError] = []
    claim = context.claim

    for requirement in context.medical_rules.diagnosis_requirements:
        if requirement.diagnosis_code not in claim.diagnosis_codes:
            continue
        if claim.service_code == requirement.required_service_code:
            continue
        errors.append(
            ValidationError(
                domain=ErrorDomain.MEDICAL,
                category=ErrorCategory.DIAGNOSIS_SERVICE_MISMATCH,
                message=(
                    f"Diagnosis {describe_code(requirement.diagnosis_code, requirement.diagnosis_name)} "
                    f"requires service {describe_code(requirement.required_service_code, requirement.service_name)}, "
                    f"but {claim.service_code} was billed."
                ),
                recommended_action="Update service code to match diagnosis requirement.",
            )
        )

    return errors


def mutual_exclusion_rule(context: RuleContext) -> list[ValidationError]:
    """Flag diagnosis pairs that must never appear on the same claim."""
    errors: list[ValidationError] = []
    diagnosis_codes = set(context.claim.diagnosis_codes)

    for exclusion in context.medical_rules.mutual_exclusions:
        if not exclusion.codes <= diagnosis_codes:
            continue
        errors.append(
            ValidationError(
                domain=ErrorDomain.MEDICAL,
                category=ErrorCategory.MUTUALLY_EXCLUSIVE_DIAGNOSES,
                message=(
                    f"Diagnoses {describe_code(exclusion.code_a, exclusion.name_a)} and "
                    f"{describe_code(exclusion.code_b, exclusion.name_b)} are mutually "
                    "exclusive and cannot coexist on the same claim."
                ),
                recommended_action="Remove one of the mutually exclusive diagnosis codes.",
            )
        )

    return errors
