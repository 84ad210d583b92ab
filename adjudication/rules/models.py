"""Data models for extracted rule sets, claims and validation results."""
from __future__ import annotations

import re
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, ClassVar

from adjudication import config
from adjudication.utils.codes import parse_diagnosis_codes


class EncounterType(str, Enum):
    INPATIENT = "INPATIENT"
    OUTPATIENT = "OUTPATIENT"

    @classmethod
    def parse(cls, value: str | None) -> EncounterType | None:
        normalized = (value or "").strip().upper()
        for member in cls:
            if member.value == normalized:
                return member
        return None

    @property
    def opposite(self) -> EncounterType:
        if self is EncounterType.INPATIENT:
            return EncounterType.OUTPATIENT
        return EncounterType.INPATIENT


class ErrorDomain(str, Enum):
    MEDICAL = "Medical"
    TECHNICAL = "Technical"


class ErrorCategory(str, Enum):
    ENCOUNTER_TYPE_MISMATCH = "Encounter Type Mismatch"
    FACILITY_TYPE_RESTRICTION = "Facility Type Restriction"
    FACILITY_NOT_FOUND = "Facility Not Found"
    DIAGNOSIS_SERVICE_MISMATCH = "Diagnosis-Service Mismatch"
    MUTUALLY_EXCLUSIVE_DIAGNOSES = "Mutually Exclusive Diagnoses"
    MISSING_PRIOR_APPROVAL = "Missing Prior Approval"
    THRESHOLD_EXCEEDED = "Threshold Exceeded"
    INVALID_ID_FORMAT = "Invalid ID Format"
    UNIQUE_ID_MISMATCH = "Unique ID Mismatch"


class ErrorType(str, Enum):
    NO_ERROR = "No error"
    MEDICAL_ERROR = "Medical error"
    TECHNICAL_ERROR = "Technical error"
    BOTH = "Both"


class ValidationStatus(str, Enum):
    VALIDATED = "Validated"
    NOT_VALIDATED = "Not validated"


# ---------------------------------------------------------------------------
# Medical rules
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ServiceEntry:
    code: str
    description: str = ""


@dataclass(frozen=True)
class EncounterRule:
    """Services restricted to a single encounter type."""

    kind: ClassVar[str] = "encounter"

    encounter_type: EncounterType
    services: tuple[ServiceEntry, ...] = ()

    @property
    def codes(self) -> frozenset[str]:
        return frozenset(service.code for service in self.services)


@dataclass(frozen=True)
class FacilityTypeRule:
    """Services permitted at one facility type.

    The label is kept verbatim (``GENERAL_HOSPITAL``) so it can be matched
    against registry entries; ``display_name`` is for rendering only.
    """

    kind: ClassVar[str] = "facility_type"

    facility_type: str
    services: tuple[str, ...] = ()

    @property
    def display_name(self) -> str:
        return self.facility_type.replace("_", " ")

    def permits(self, service_code: str) -> bool:
        return service_code in self.services


@dataclass(frozen=True)
class FacilityRegistryEntry:
    kind: ClassVar[str] = "facility_registry"

    facility_id: str
    facility_type: str


@dataclass(frozen=True)
class DiagnosisRequirement:
    """If ``diagnosis_code`` is on a claim, ``required_service_code`` must be billed."""

    kind: ClassVar[str] = "diagnosis_requirement"

    diagnosis_code: str
    diagnosis_name: str
    required_service_code: str
    service_name: str = ""


@dataclass(frozen=True)
class MutualExclusionRule:
    """Two diagnosis codes that must never appear on the same claim."""

    kind: ClassVar[str] = "mutual_exclusion"

    code_a: str
    code_b: str
    name_a: str = ""
    name_b: str = ""

    @property
    def codes(self) -> frozenset[str]:
        return frozenset((self.code_a, self.code_b))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MutualExclusionRule):
            return NotImplemented
        return self.codes == other.codes

    def __hash__(self) -> int:
        return hash(self.codes)


@dataclass(frozen=True)
class MedicalRuleSet:
    title: str = ""
    framing: str = ""
    sections: dict[str, str] = field(default_factory=dict)
    encounter_rules: tuple[EncounterRule, ...] = ()
    facility_type_rules: tuple[FacilityTypeRule, ...] = ()
    facility_registry: tuple[FacilityRegistryEntry, ...] = ()
    diagnosis_requirements: tuple[DiagnosisRequirement, ...] = ()
    mutual_exclusions: tuple[MutualExclusionRule, ...] = ()

    def encounter_services(self, encounter_type: EncounterType) -> frozenset[str]:
        codes: set[str] = set()
        for rule in self.encounter_rules:
            if rule.encounter_type is encounter_type:
                codes.update(rule.codes)
        return frozenset(codes)

    def facility_type_for(self, facility_id: str) -> str | None:
        wanted = (facility_id or "").strip().upper()
        for entry in self.facility_registry:
            if entry.facility_id.upper() == wanted:
                return entry.facility_type
        return None

    def facility_rule_for(self, facility_type: str) -> FacilityTypeRule | None:
        wanted = facility_type.upper()
        for rule in self.facility_type_rules:
            if rule.facility_type.upper() == wanted:
                return rule
        return None

    @property
    def governed_services(self) -> frozenset[str]:
        """Every service that appears in at least one facility-type allow-list."""
        return frozenset(
            code for rule in self.facility_type_rules for code in rule.services
        )

    @property
    def unmatched_facility_types(self) -> tuple[str, ...]:
        """Registry facility types that have no facility-type rule."""
        missing = {
            entry.facility_type
            for entry in self.facility_registry
            if self.facility_rule_for(entry.facility_type) is None
        }
        return tuple(sorted(missing))

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


# ---------------------------------------------------------------------------
# Technical rules
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ServiceApproval:
    kind: ClassVar[str] = "service_approval"

    code: str
    description: str
    approval_required: bool


@dataclass(frozen=True)
class DiagnosisApproval:
    kind: ClassVar[str] = "diagnosis_approval"

    code: str
    name: str
    approval_required: bool


@dataclass(frozen=True)
class PaidAmountThreshold:
    """Claims paying strictly more than ``amount`` need prior approval."""

    kind: ClassVar[str] = "paid_amount_threshold"

    amount: float
    description: str = ""
    currency: str = "AED"

    def exceeded_by(self, paid_amount: float) -> bool:
        return paid_amount > self.amount


@dataclass(frozen=True)
class IdPatternRule:
    kind: ClassVar[str] = "id_pattern"

    description: str
    pattern: str
    fields: tuple[str, ...] = ("national_id", "member_id", "facility_id")


@dataclass(frozen=True)
class UniqueIdSegment:
    position: str  # "first", "middle" or "last"
    length: int
    source_field: str

    def take(self, value: str) -> str:
        if self.position == "first":
            return value[: self.length]
        if self.position == "last":
            return value[-self.length :]
        middle = len(value) // 2
        start = max(middle - self.length // 2, 0)
        return value[start : start + self.length]


@dataclass(frozen=True)
class UniqueIdStructureRule:
    """How ``unique_id`` is composed from slices of other identifiers."""

    kind: ClassVar[str] = "unique_id_structure"

    description: str
    segments: tuple[UniqueIdSegment, ...]
    separator: str = "-"

    @property
    def pattern(self) -> str:
        parts = [f"[A-Z0-9]{{{segment.length}}}" for segment in self.segments]
        return "^" + re.escape(self.separator).join(parts) + "$"

    def expected_unique_id(self, claim: Claim) -> str | None:
        values = [getattr(claim, segment.source_field, "") or "" for segment in self.segments]
        if not self.segments or not all(values):
            return None
        pieces = [segment.take(value) for segment, value in zip(self.segments, values)]
        return self.separator.join(pieces).upper()


@dataclass(frozen=True)
class IdFormatRules:
    uppercase: IdPatternRule | None = None
    unique_id_structure: UniqueIdStructureRule | None = None
    requirements: tuple[str, ...] = ()

    @property
    def is_empty(self) -> bool:
        return self.uppercase is None and self.unique_id_structure is None


@dataclass(frozen=True)
class TechnicalRuleSet:
    title: str = ""
    framing: str = ""
    sections: dict[str, str] = field(default_factory=dict)
    service_approvals: tuple[ServiceApproval, ...] = ()
    diagnosis_approvals: tuple[DiagnosisApproval, ...] = ()
    paid_amount_threshold: PaidAmountThreshold | None = None
    id_format: IdFormatRules = field(default_factory=IdFormatRules)

    def service_approval_for(self, service_code: str) -> ServiceApproval | None:
        for approval in self.service_approvals:
            if approval.code == service_code:
                return approval
        return None

    def diagnoses_requiring_approval(
        self, diagnosis_codes: tuple[str, ...]
    ) -> list[DiagnosisApproval]:
        return [
            approval
            for approval in self.diagnosis_approvals
            if approval.approval_required and approval.code in diagnosis_codes
        ]

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


# ---------------------------------------------------------------------------
# Claims and results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Claim:
    """One claim record as supplied by the caller."""

    claim_id: str
    encounter_type: str
    service_code: str
    service_date: str = ""
    diagnosis_codes: tuple[str, ...] = ()
    facility_id: str = ""
    paid_amount: float = 0.0
    national_id: str = ""
    member_id: str = ""
    unique_id: str = ""
    approval_number: str | None = None

    def __post_init__(self) -> None:
        # Delimiter-joined strings and lists are split into individual codes
        if not isinstance(self.diagnosis_codes, tuple):
            object.__setattr__(
                self, "diagnosis_codes", parse_diagnosis_codes(self.diagnosis_codes)
            )

    @property
    def has_approval(self) -> bool:
        number = (self.approval_number or "").strip()
        return bool(number) and number.upper() not in config.APPROVAL_PLACEHOLDERS

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ValidationError:
    """A single rule violation found on a claim."""

    domain: ErrorDomain
    category: ErrorCategory
    message: str
    recommended_action: str


NO_ERRORS_EXPLANATION = "No errors found"
NO_ACTION_REQUIRED = "None required"


@dataclass(frozen=True)
class ValidationResult:
    """Verdict for one claim. Everything except ``errors`` is derived."""

    claim_id: str
    errors: tuple[ValidationError, ...] = ()

    @property
    def status(self) -> ValidationStatus:
        if self.errors:
            return ValidationStatus.NOT_VALIDATED
        return ValidationStatus.VALIDATED

    @property
    def error_type(self) -> ErrorType:
        domains = {error.domain for error in self.errors}
        if {ErrorDomain.MEDICAL, ErrorDomain.TECHNICAL} <= domains:
            return ErrorType.BOTH
        if ErrorDomain.MEDICAL in domains:
            return ErrorType.MEDICAL_ERROR
        if ErrorDomain.TECHNICAL in domains:
            return ErrorType.TECHNICAL_ERROR
        return ErrorType.NO_ERROR

    @property
    def explanation(self) -> str:
        if not self.errors:
            return NO_ERRORS_EXPLANATION
        return "\n".join(f"• {error.message}" for error in self.errors)

    @property
    def recommended_action(self) -> str:
        if not self.errors:
            return NO_ACTION_REQUIRED
        actions = dict.fromkeys(error.recommended_action for error in self.errors)
        return "; ".join(actions)

    def to_dict(self) -> dict[str, Any]:
        return {
            "claim_id": self.claim_id,
            "status": self.status.value,
            "error_type": self.error_type.value,
            "errors": [
                {
                    "domain": error.domain.value,
                    "category": error.category.value,
                    "message": error.message,
                    "recommended_action": error.recommended_action,
                }
                for error in self.errors
            ],
            "error_count": len(self.errors),
            "explanation": self.explanation,
            "recommended_action": self.recommended_action,
        }


@dataclass(frozen=True)
class RuleContext:
    """Inputs required to evaluate the checks for one claim."""

    claim: Claim
    medical_rules: MedicalRuleSet
    technical_rules: TechnicalRuleSet
