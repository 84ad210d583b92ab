"""Tests for technical rule extraction."""

from __future__ import annotations

import json
import re

from adjudication.extraction import extract_technical_rules
from adjudication.extraction.patterns import UPPERCASE_ALNUM_PATTERN
from adjudication.extraction.technical import CANONICAL_UNIQUE_ID_SEGMENTS


class TestCanonicalTechnicalGuide:
    """Golden baseline for the canonical technical guide."""

    def test_title_and_sections(self, technical_rules):
        """Test the title and numbered sections are captured."""
        assert technical_rules.title == "Technical Adjudication & Submission Guide (Ideal State)"
        assert set(technical_rules.sections) == {"1", "2", "3", "4"}
        assert technical_rules.sections["1"].startswith("1) Services Requiring Prior Approval")

    def test_service_approvals(self, technical_rules):
        """Test every service row is captured with its approval flag."""
        approvals = {approval.code: approval for approval in technical_rules.service_approvals}

        assert len(approvals) == 12
        assert {code for code, approval in approvals.items() if approval.approval_required} == {
            "SRV1001",
            "SRV1002",
            "SRV2008",
        }
        assert approvals["SRV2008"].description == "Ultrasonogram – Pregnancy Check"
        assert approvals["SRV1003"].approval_required is False

    def test_diagnosis_approvals(self, technical_rules):
        """Test every diagnosis row is captured with its approval flag."""
        approvals = {approval.code: approval for approval in technical_rules.diagnosis_approvals}

        assert len(approvals) == 11
        assert {code for code, approval in approvals.items() if approval.approval_required} == {
            "E11.9",
            "R07.9",
            "Z34.0",
        }
        assert approvals["R51"].name == "Headache"
        assert approvals["J45.909"].name == "Asthma"

    def test_paid_amount_threshold(self, technical_rules):
        """Test the threshold amount and its single-line description."""
        threshold = technical_rules.paid_amount_threshold

        assert threshold is not None
        assert threshold.amount == 250.0
        assert threshold.currency == "AED"
        assert threshold.description.startswith("Any claim with paid_amount_aed > AED 250")
        assert threshold.description.endswith("service code or diagnosis code.")
        assert "\n" not in threshold.description

    def test_uppercase_rule(self, technical_rules):
        """Test the uppercase alphanumeric identifier rule."""
        uppercase = technical_rules.id_format.uppercase

        assert uppercase is not None
        assert uppercase.pattern == UPPERCASE_ALNUM_PATTERN
        assert uppercase.fields == ("national_id", "member_id", "facility_id")
        assert "UPPERCASE" in uppercase.description

    def test_unique_id_structure(self, technical_rules):
        """Test the unique ID slices are parsed from the structure bullet."""
        structure = technical_rules.id_format.unique_id_structure

        assert structure is not None
        assert structure.separator == "-"
        assert [
            (segment.position, segment.length, segment.source_field)
            for segment in structure.segments
        ] == [
            ("first", 4, "national_id"),
            ("middle", 4, "member_id"),
            ("last", 4, "facility_id"),
        ]
        assert structure.description.startswith("unique_id structure:")

    def test_unique_id_shape_pattern(self, technical_rules):
        """Test the derived shape pattern accepts XXXX-XXXX-XXXX only."""
        pattern = technical_rules.id_format.unique_id_structure.pattern

        assert re.match(pattern, "AB12-34CD-9XYZ")
        assert not re.match(pattern, "AB12-34CD-9XY")
        assert not re.match(pattern, "ab12-34cd-9xyz")
        assert not re.match(pattern, "AB1234CD9XYZ")

    def test_requirement_bullets(self, technical_rules):
        """Test all formatting bullets are kept as plain strings."""
        requirements = technical_rules.id_format.requirements

        assert len(requirements) == 4
        assert requirements[2] == "Segments must be hyphen-separated (e.g., AB12-34CD-9XYZ)."
        assert all(not requirement.startswith("•") for requirement in requirements)


class TestTechnicalExtractionProperties:
    """Tests for determinism and tolerance."""

    def test_extraction_is_idempotent(self, technical_text):
        """Test repeated extraction produces identical output."""
        first = extract_technical_rules(technical_text)
        second = extract_technical_rules(technical_text)

        assert first == second
        assert json.dumps(first.to_dict(), sort_keys=True) == json.dumps(
            second.to_dict(), sort_keys=True
        )

    def test_empty_document(self):
        """Test an empty document yields an empty rule set."""
        rule_set = extract_technical_rules("")

        assert rule_set.service_approvals == ()
        assert rule_set.diagnosis_approvals == ()
        assert rule_set.paid_amount_threshold is None
        assert rule_set.id_format.is_empty

    def test_missing_threshold_section(self, technical_text):
        """Test removing the threshold leaves the other rules intact."""
        start = technical_text.index("3) Paid Amount Threshold")
        end = technical_text.index("4) ID & Unique ID Formatting")
        rule_set = extract_technical_rules(technical_text[:start] + technical_text[end:])

        assert rule_set.paid_amount_threshold is None
        assert len(rule_set.service_approvals) == 12
        assert rule_set.id_format.unique_id_structure is not None


class TestThresholdVariants:
    """Tests for threshold phrasing variants."""

    def test_amount_after_number(self):
        """Test "1,500.50 AED" with a thousands separator."""
        rule_set = extract_technical_rules(
            "3) Paid Amount Threshold\nClaims above 1,500.50 AED need approval."
        )

        assert rule_set.paid_amount_threshold.amount == 1500.5
        assert rule_set.paid_amount_threshold.description == "Claims above 1,500.50 AED need approval."

    def test_threshold_outside_sections(self):
        """Test the whole-document fallback for an unsegmented guide."""
        rule_set = extract_technical_rules(
            "Any claim with paid_amount > AED 500 requires prior approval."
        )

        assert rule_set.paid_amount_threshold.amount == 500.0


class TestIdFormatVariants:
    """Tests for identifier formatting variants."""

    def test_unparseable_structure_uses_canonical_slices(self):
        """Test the canonical slices are assumed when only the phrase is present."""
        rule_set = extract_technical_rules(
            "4) ID Formatting\n• unique_id structure follows the standard layout."
        )
        structure = rule_set.id_format.unique_id_structure

        assert structure is not None
        assert structure.segments == CANONICAL_UNIQUE_ID_SEGMENTS

    def test_underscore_separator(self):
        """Test an underscore-separated structure."""
        rule_set = extract_technical_rules(
            "4) ID Formatting\n"
            "• unique_id structure: first3(National ID) _ middle2(Member ID) _ last3(Facility ID)\n"
            "• Segments must be underscore-separated.\n"
        )
        structure = rule_set.id_format.unique_id_structure

        assert structure.separator == "_"
        assert [segment.length for segment in structure.segments] == [3, 2, 3]
        assert re.match(structure.pattern, "ABC_12_XYZ")

    def test_no_uppercase_rule(self):
        """Test a guide without the uppercase bullet has no uppercase rule."""
        rule_set = extract_technical_rules("4) ID Formatting\n• IDs may use any case.")

        assert rule_set.id_format.uppercase is None
        assert rule_set.id_format.requirements == ("IDs may use any case.",)
