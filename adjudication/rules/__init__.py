"""Claim validation rules engine."""

from .engine import ValidationReport, run_validation, validate_claim, validate_claims
from .models import (
    Claim,
    EncounterType,
    ErrorCategory,
    ErrorDomain,
    ErrorType,
    MedicalRuleSet,
    RuleContext,
    TechnicalRuleSet,
    ValidationError,
    ValidationResult,
    ValidationStatus,
)

__all__ = [
    "validate_claim",
    "validate_claims",
    "run_validation",
    "ValidationReport",
    "Claim",
    "EncounterType",
    "ErrorCategory",
    "ErrorDomain",
    "ErrorType",
    "MedicalRuleSet",
    "RuleContext",
    "TechnicalRuleSet",
    "ValidationError",
    "ValidationResult",
    "ValidationStatus",
]
