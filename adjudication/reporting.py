"""Summary statistics and chart buckets derived from validation results."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import asdict, dataclass
from typing import Any

from adjudication.rules.models import Claim, ErrorType, ValidationResult


@dataclass(frozen=True)
class ValidationSummary:
    total_claims: int = 0
    validated_claims: int = 0
    not_validated_claims: int = 0
    no_errors: int = 0
    medical_errors: int = 0
    technical_errors: int = 0
    both_errors: int = 0
    total_paid_amount: float = 0.0
    validated_paid_amount: float = 0.0
    error_paid_amount: float = 0.0
    validation_rate: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ChartBucket:
    name: str
    value: float


@dataclass(frozen=True)
class CategoryBucket:
    name: str
    count: int
    amount: float


@dataclass(frozen=True)
class ChartData:
    count_data: tuple[ChartBucket, ...] = ()
    amount_data: tuple[ChartBucket, ...] = ()
    category_data: tuple[CategoryBucket, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _paired_claims(
    results: Sequence[ValidationResult], claims: Sequence[Claim] | None
) -> list[Claim | None]:
    """Claim for each result, paired by position or else by claim ID."""
    claims = list(claims or [])
    if len(claims) == len(results):
        return claims
    by_id = {claim.claim_id: claim for claim in claims}
    return [by_id.get(result.claim_id) for result in results]


def _paid_amounts(
    results: Sequence[ValidationResult], claims: Sequence[Claim] | None
) -> list[float]:
    return [
        claim.paid_amount if claim is not None else 0.0
        for claim in _paired_claims(results, claims)
    ]


def summarize_results(
    results: Sequence[ValidationResult], claims: Sequence[Claim] | None = None
) -> ValidationSummary:
    if not results:
        return ValidationSummary()

    amounts = _paid_amounts(results, claims)
    counts = {error_type: 0 for error_type in ErrorType}
    validated_amount = 0.0
    error_amount = 0.0

    for result, amount in zip(results, amounts):
        counts[result.error_type] += 1
        if result.errors:
            error_amount += amount
        else:
            validated_amount += amount

    total = len(results)
    validated = counts[ErrorType.NO_ERROR]
    return ValidationSummary(
        total_claims=total,
        validated_claims=validated,
        not_validated_claims=total - validated,
        no_errors=validated,
        medical_errors=counts[ErrorType.MEDICAL_ERROR],
        technical_errors=counts[ErrorType.TECHNICAL_ERROR],
        both_errors=counts[ErrorType.BOTH],
        total_paid_amount=round(validated_amount + error_amount, 2),
        validated_paid_amount=round(validated_amount, 2),
        error_paid_amount=round(error_amount, 2),
        validation_rate=round(validated / total * 100, 2),
    )


def build_chart_data(
    results: Sequence[ValidationResult], claims: Sequence[Claim] | None = None
) -> ChartData:
    """Count and amount buckets per error type plus a per-category breakdown.

    Every error type has a bucket even when it is zero. Categories appear in
    the order they are first seen; a claim's amount is added to a category
    once no matter how many of its errors fall into it.
    """
    amounts = _paid_amounts(results, claims) if results else []
    type_counts = {error_type: 0 for error_type in ErrorType}
    type_amounts = {error_type: 0.0 for error_type in ErrorType}
    category_counts: dict[str, int] = {}
    category_amounts: dict[str, float] = {}

    for result, amount in zip(results, amounts):
        type_counts[result.error_type] += 1
        type_amounts[result.error_type] += amount
        seen: set[str] = set()
        for error in result.errors:
            name = error.category.value
            category_counts[name] = category_counts.get(name, 0) + 1
            if name not in seen:
                category_amounts[name] = category_amounts.get(name, 0.0) + amount
                seen.add(name)

    return ChartData(
        count_data=tuple(
            ChartBucket(name=error_type.value, value=type_counts[error_type])
            for error_type in ErrorType
        ),
        amount_data=tuple(
            ChartBucket(name=error_type.value, value=round(type_amounts[error_type], 2))
            for error_type in ErrorType
        ),
        category_data=tuple(
            CategoryBucket(
                name=name,
                count=count,
                amount=round(category_amounts.get(name, 0.0), 2),
            )
            for name, count in category_counts.items()
        ),
    )


def format_results_for_export(
    results: Sequence[ValidationResult], claims: Sequence[Claim] | None = None
) -> list[dict[str, Any]]:
    """Flatten claims and their verdicts into spreadsheet-ready rows."""
    rows = []
    for result, claim in zip(results, _paired_claims(results, claims)):
        row: dict[str, Any] = {"claim_id": result.claim_id}
        if claim is not None:
            row.update(
                {
                    "encounter_type": claim.encounter_type,
                    "service_date": claim.service_date,
                    "national_id": claim.national_id,
                    "member_id": claim.member_id,
                    "facility_id": claim.facility_id,
                    "unique_id": claim.unique_id,
                    "diagnosis_codes": ";".join(claim.diagnosis_codes),
                    "approval_number": claim.approval_number or "",
                    "service_code": claim.service_code,
                    "paid_amount": claim.paid_amount,
                }
            )
        row.update(
            {
                "status": result.status.value,
                "error_type": result.error_type.value,
                "error_count": len(result.errors),
                "explanation": result.explanation,
                "recommended_action": result.recommended_action,
            }
        )
        rows.append(row)
    return rows
