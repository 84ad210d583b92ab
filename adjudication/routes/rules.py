"""Rule extraction routes.

Turn uploaded rule document text into structured medical and technical
rule sets, expose the rule sets extracted from the reference guides and
summarize a pair of guides.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Request
from pydantic import BaseModel, field_validator

from adjudication import config
from adjudication.claude_client import summarize_rules
from adjudication.extraction import extract_medical_rules, extract_technical_rules
from adjudication.limiter import limiter
from adjudication.reference_rules import (
    MEDICAL_RULES_TEXT,
    TECHNICAL_RULES_TEXT,
    reference_medical_rules,
    reference_technical_rules,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/rules", tags=["rules"])

MAX_DOCUMENT_CHARS = 500_000


class RuleDocumentRequest(BaseModel):
    """Request model for rule document extraction."""

    text: str

    @field_validator("text")
    @classmethod
    def validate_text(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Rule document text must not be empty.")
        if len(v) > MAX_DOCUMENT_CHARS:
            raise ValueError(f"Rule document too large. Maximum {MAX_DOCUMENT_CHARS} characters.")
        return v


@router.post("/medical/extract")
async def extract_medical(request: RuleDocumentRequest) -> dict[str, Any]:
    """Extract a medical rule set from guide text.

    ``unmatched_facility_types`` lists registry facility types that have no
    facility-type rule; claims at those facilities are never restricted.
    """
    rule_set = extract_medical_rules(request.text)
    return {
        "rules": rule_set.to_dict(),
        "unmatched_facility_types": list(rule_set.unmatched_facility_types),
    }


@router.post("/technical/extract")
async def extract_technical(request: RuleDocumentRequest) -> dict[str, Any]:
    """Extract a technical rule set from guide text."""
    rule_set = extract_technical_rules(request.text)
    return {"rules": rule_set.to_dict()}


@router.get("/reference")
async def get_reference_rules() -> dict[str, Any]:
    """Rule sets extracted from the bundled reference guides, with their source text."""
    return {
        "medical": {
            "text": MEDICAL_RULES_TEXT,
            "rules": reference_medical_rules().to_dict(),
        },
        "technical": {
            "text": TECHNICAL_RULES_TEXT,
            "rules": reference_technical_rules().to_dict(),
        },
    }


class SummarizeRulesRequest(BaseModel):
    """Request model for rule summaries; omitted texts use the reference guides."""

    medical_rules_text: str | None = None
    technical_rules_text: str | None = None

    @field_validator("medical_rules_text", "technical_rules_text")
    @classmethod
    def validate_text_length(cls, v: str | None) -> str | None:
        if v is not None and len(v) > MAX_DOCUMENT_CHARS:
            raise ValueError(f"Rule document too large. Maximum {MAX_DOCUMENT_CHARS} characters.")
        return v


@router.post("/summarize")
@limiter.limit(config.SUMMARIZE_RATE_LIMIT)
async def summarize(request: Request, summarize_request: SummarizeRulesRequest) -> dict[str, Any]:
    """Concise summary of the medical and technical guides.

    ``model`` is "none" when the LLM was unavailable and the summary was
    built from counts of the extracted rules.
    """
    return summarize_rules(
        summarize_request.medical_rules_text or MEDICAL_RULES_TEXT,
        summarize_request.technical_rules_text or TECHNICAL_RULES_TEXT,
    )
