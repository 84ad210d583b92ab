"""Claim validation engine."""
from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from adjudication.exceptions import InputError

from . import ruleset
from .models import (
    Claim,
    MedicalRuleSet,
    RuleContext,
    TechnicalRuleSet,
    ValidationError,
    ValidationResult,
)
from .registry import RuleRegistry

if TYPE_CHECKING:
    from adjudication.reporting import ChartData, ValidationSummary

logger = logging.getLogger(__name__)


def _require_rule_sets(medical_rules: Any, technical_rules: Any) -> None:
    if medical_rules is None or technical_rules is None:
        raise InputError("Medical rules and technical rules are required")
    if not isinstance(medical_rules, MedicalRuleSet):
        raise InputError(
            f"Medical rules must be a MedicalRuleSet, got {type(medical_rules).__name__}"
        )
    if not isinstance(technical_rules, TechnicalRuleSet):
        raise InputError(
            f"Technical rules must be a TechnicalRuleSet, got {type(technical_rules).__name__}"
        )


def validate_claim(
    claim: Claim,
    medical_rules: MedicalRuleSet,
    technical_rules: TechnicalRuleSet,
    registry: RuleRegistry | None = None,
) -> ValidationResult:
    """Run every active check against one claim.

    The result depends only on the claim and the two rule sets; no state is
    carried between claims.
    """
    _require_rule_sets(medical_rules, technical_rules)
    if not isinstance(claim, Claim):
        raise InputError(f"Expected a Claim, got {type(claim).__name__}")

    if registry is None:
        registry = ruleset.build_default_registry()

    context = RuleContext(
        claim=claim,
        medical_rules=medical_rules,
        technical_rules=technical_rules,
    )
    errors: list[ValidationError] = []
    for rule in registry.active_rules():
        errors.extend(rule(context))

    return ValidationResult(claim_id=claim.claim_id, errors=tuple(errors))


def validate_claims(
    claims: Sequence[Claim] | None,
    medical_rules: MedicalRuleSet,
    technical_rules: TechnicalRuleSet,
    registry: RuleRegistry | None = None,
) -> list[ValidationResult]:
    """Validate a batch of claims, returning one result per claim in input order."""
    if not claims:
        raise InputError("Claims data is required")
    _require_rule_sets(medical_rules, technical_rules)
    if registry is None:
        registry = ruleset.build_default_registry()

    results = [
        validate_claim(claim, medical_rules, technical_rules, registry=registry)
        for claim in claims
    ]

    failed = sum(1 for result in results if result.errors)
    logger.info(
        f"Validated {len(results)} claim(s): {len(results) - failed} validated, "
        f"{failed} not validated"
    )
    return results


@dataclass(frozen=True)
class ValidationReport:
    """Per-claim results with the summary and chart data derived from them."""

    results: tuple[ValidationResult, ...]
    summary: ValidationSummary
    chart_data: ChartData

    def to_dict(self) -> dict[str, Any]:
        return {
            "results": [result.to_dict() for result in self.results],
            "summary": self.summary.to_dict(),
            "chart_data": self.chart_data.to_dict(),
        }


def run_validation(
    claims: Sequence[Claim] | None,
    medical_rules: MedicalRuleSet,
    technical_rules: TechnicalRuleSet,
) -> ValidationReport:
    """Validate claims and aggregate the results in one call."""
    from adjudication.reporting import build_chart_data, summarize_results

    results = validate_claims(claims, medical_rules, technical_rules)
    return ValidationReport(
        results=tuple(results),
        summary=summarize_results(results, claims),
        chart_data=build_chart_data(results, claims),
    )
