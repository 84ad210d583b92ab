"""Pytest configuration and fixtures."""

from __future__ import annotations

import os

import pytest

# Keep tests off the network regardless of the developer's environment
os.environ.pop("ANTHROPIC_API_KEY", None)

from adjudication.reference_rules import (  # noqa: E402
    MEDICAL_RULES_TEXT,
    TECHNICAL_RULES_TEXT,
    reference_medical_rules,
    reference_technical_rules,
)
from adjudication.rules.models import Claim, MedicalRuleSet, TechnicalRuleSet  # noqa: E402


@pytest.fixture
def medical_text() -> str:
    """Canonical medical adjudication guide."""
    return MEDICAL_RULES_TEXT


@pytest.fixture
def technical_text() -> str:
    """Canonical technical adjudication guide."""
    return TECHNICAL_RULES_TEXT


@pytest.fixture
def medical_rules() -> MedicalRuleSet:
    """Rule set extracted from the canonical medical guide."""
    return reference_medical_rules()


@pytest.fixture
def technical_rules() -> TechnicalRuleSet:
    """Rule set extracted from the canonical technical guide."""
    return reference_technical_rules()


@pytest.fixture
def clean_claim() -> Claim:
    """Claim that passes every canonical rule.

    Outpatient ECG at a general hospital, a diagnosis with no requirements or
    approval needs, an amount under the threshold and a unique ID built from
    first4(national) - middle4(member) - last4(facility).
    """
    return Claim(
        claim_id="CLM-0001",
        encounter_type="OUTPATIENT",
        service_code="SRV2001",
        service_date="2024-01-15",
        diagnosis_codes=("R51",),
        facility_id="96GUDLMT",
        paid_amount=150.0,
        national_id="NATL1234",
        member_id="MEMB001",
        unique_id="NATL-EMB0-DLMT",
        approval_number=None,
    )


@pytest.fixture
def claim_record() -> dict:
    """Spreadsheet-style row for the clean claim."""
    return {
        "Claim ID": "CLM-0001",
        "Encounter Type": "OUTPATIENT",
        "Service Code": "SRV2001",
        "Service Date": "01/15/2024",
        "Diagnosis Codes": "R51",
        "Facility ID": "96GUDLMT",
        "Paid Amount (AED)": "150",
        "National ID": "NATL1234",
        "Member ID": "MEMB001",
        "Unique ID": "NATL-EMB0-DLMT",
        "Approval Number": "NA",
    }
