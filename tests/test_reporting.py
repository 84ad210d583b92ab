"""Tests for summary, chart and export aggregation."""

from __future__ import annotations

from dataclasses import replace

import pytest

from adjudication.reporting import build_chart_data, format_results_for_export, summarize_results
from adjudication.rules import validate_claims
from adjudication.rules.models import ErrorType


@pytest.fixture
def mixed_batch(clean_claim, medical_rules, technical_rules):
    """Four claims: clean, medical error, technical error, both."""
    claims = [
        clean_claim,
        replace(clean_claim, claim_id="CLM-0002", service_code="SRV1001", approval_number="APR-1", paid_amount=200.0),
        replace(clean_claim, claim_id="CLM-0003", paid_amount=300.0),
        replace(clean_claim, claim_id="CLM-0004", service_code="SRV1001", paid_amount=500.0),
    ]
    return claims, validate_claims(claims, medical_rules, technical_rules)


class TestSummarizeResults:
    """Tests for summary statistics."""

    def test_counts_and_amounts(self, mixed_batch):
        """Test per-type counts and paid amount totals."""
        claims, results = mixed_batch
        summary = summarize_results(results, claims)

        assert summary.total_claims == 4
        assert summary.validated_claims == 1
        assert summary.not_validated_claims == 3
        assert summary.no_errors == 1
        assert summary.medical_errors == 1
        assert summary.technical_errors == 1
        assert summary.both_errors == 1
        assert summary.total_paid_amount == 1150.0
        assert summary.validated_paid_amount == 150.0
        assert summary.error_paid_amount == 1000.0
        assert summary.validation_rate == 25.0

    def test_empty_input(self):
        """Test an empty result list gives all-zero aggregates."""
        summary = summarize_results([], [])

        assert summary.total_claims == 0
        assert summary.validation_rate == 0.0
        assert summary.total_paid_amount == 0.0

    def test_rate_rounded(self, clean_claim, medical_rules, technical_rules):
        """Test the validation rate is rounded to two decimals."""
        claims = [
            clean_claim,
            replace(clean_claim, claim_id="CLM-0002"),
            replace(clean_claim, claim_id="CLM-0003", paid_amount=300.0),
        ]
        summary = summarize_results(validate_claims(claims, medical_rules, technical_rules), claims)

        assert summary.validation_rate == 66.67


class TestChartData:
    """Tests for chart buckets."""

    def test_all_error_types_present(self):
        """Test every error type has a bucket even for empty input."""
        chart = build_chart_data([], [])

        assert [bucket.name for bucket in chart.count_data] == [error_type.value for error_type in ErrorType]
        assert all(bucket.value == 0 for bucket in chart.count_data)
        assert chart.category_data == ()

    def test_buckets(self, mixed_batch):
        """Test count and amount buckets per error type."""
        claims, results = mixed_batch
        chart = build_chart_data(results, claims)
        counts = {bucket.name: bucket.value for bucket in chart.count_data}
        amounts = {bucket.name: bucket.value for bucket in chart.amount_data}

        assert counts == {"No error": 1, "Medical error": 1, "Technical error": 1, "Both": 1}
        assert amounts["Both"] == 500.0
        assert amounts["Technical error"] == 300.0

    def test_category_breakdown(self, mixed_batch):
        """Test categories count errors and sum each claim's amount once."""
        claims, results = mixed_batch
        categories = {bucket.name: bucket for bucket in build_chart_data(results, claims).category_data}

        assert categories["Encounter Type Mismatch"].count == 2
        assert categories["Encounter Type Mismatch"].amount == 700.0
        assert categories["Threshold Exceeded"].count == 2
        assert categories["Threshold Exceeded"].amount == 800.0
        assert categories["Missing Prior Approval"].count == 1

    def test_to_dict(self, mixed_batch):
        """Test chart data serializes to plain dictionaries."""
        claims, results = mixed_batch
        data = build_chart_data(results, claims).to_dict()

        assert data["count_data"][0] == {"name": "No error", "value": 1}


class TestExportRows:
    """Tests for spreadsheet export rows."""

    def test_rows_merge_claim_and_verdict(self, mixed_batch):
        """Test each row carries claim fields and the verdict."""
        claims, results = mixed_batch
        rows = format_results_for_export(results, claims)

        assert len(rows) == 4
        assert rows[0]["claim_id"] == "CLM-0001"
        assert rows[0]["status"] == "Validated"
        assert rows[0]["diagnosis_codes"] == "R51"
        assert rows[0]["approval_number"] == ""
        assert rows[3]["error_type"] == "Both"
        assert rows[3]["error_count"] == 3
        assert rows[3]["explanation"].startswith("• Service SRV1001 is inpatient-only")

    def test_rows_without_claims(self, mixed_batch):
        """Test rows still carry the verdict when claims are not supplied."""
        _, results = mixed_batch
        rows = format_results_for_export(results)

        assert set(rows[0]) == {
            "claim_id",
            "status",
            "error_type",
            "error_count",
            "explanation",
            "recommended_action",
        }

    def test_duplicate_claim_ids_keep_their_own_fields(
        self, clean_claim, medical_rules, technical_rules
    ):
        """Test rows pair with claims by position when two claims share an ID."""
        claims = [clean_claim, replace(clean_claim, paid_amount=300.0)]
        results = validate_claims(claims, medical_rules, technical_rules)
        rows = format_results_for_export(results, claims)

        assert [row["paid_amount"] for row in rows] == [150.0, 300.0]
        assert [row["status"] for row in rows] == ["Validated", "Not validated"]
