"""Claim validation routes."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, field_validator

from adjudication import config
from adjudication.claim_structurer import claims_from_records
from adjudication.claude_client import validate_claim_with_fallback
from adjudication.exceptions import InputError
from adjudication.extraction import extract_medical_rules, extract_technical_rules
from adjudication.limiter import limiter
from adjudication.reference_rules import (
    MEDICAL_RULES_TEXT,
    TECHNICAL_RULES_TEXT,
    reference_medical_rules,
    reference_technical_rules,
)
from adjudication.reporting import format_results_for_export
from adjudication.rules import run_validation

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/claims", tags=["claims"])

MAX_CLAIMS_PER_REQUEST = 10_000

# Maximum number of claims sent to the LLM in a single request
# Limited to prevent long-running requests and excessive API usage
MAX_LLM_CLAIMS = 10


class ValidateClaimsRequest(BaseModel):
    """Request model for claim batch validation.

    Rule texts are optional; the reference guides are used when omitted.
    """

    claims: list[dict[str, Any]]
    medical_rules_text: str | None = None
    technical_rules_text: str | None = None
    use_llm: bool = False

    @field_validator("claims")
    @classmethod
    def validate_claims_length(cls, v: list[dict[str, Any]]) -> list[dict[str, Any]]:
        """Validate that claims doesn't exceed maximum length."""
        if len(v) > MAX_CLAIMS_PER_REQUEST:
            raise ValueError(f"Too many claims. Maximum {MAX_CLAIMS_PER_REQUEST} per request.")
        return v


@router.post("/validate")
@limiter.limit(config.VALIDATE_RATE_LIMIT)
async def validate_claims_endpoint(
    request: Request, validate_request: ValidateClaimsRequest
) -> dict[str, Any]:
    """Validate a batch of claim rows against medical and technical rules.

    Returns per-claim results, summary statistics, chart buckets and flat
    export rows. With ``use_llm`` the first claims also get an LLM verdict,
    which falls back to the rule-based result when the model is unavailable.
    """
    medical_text = validate_request.medical_rules_text
    technical_text = validate_request.technical_rules_text
    medical_rules = (
        extract_medical_rules(medical_text) if medical_text else reference_medical_rules()
    )
    technical_rules = (
        extract_technical_rules(technical_text) if technical_text else reference_technical_rules()
    )

    try:
        claims = claims_from_records(validate_request.claims)
        report = run_validation(claims, medical_rules, technical_rules)
    except InputError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except Exception as e:
        logger.error(f"Claim validation failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Claim validation failed") from e

    response = report.to_dict()
    response["export_rows"] = format_results_for_export(report.results, claims)

    if validate_request.use_llm:
        response["llm_results"] = [
            validate_claim_with_fallback(
                claim,
                medical_rules,
                technical_rules,
                medical_text or MEDICAL_RULES_TEXT,
                technical_text or TECHNICAL_RULES_TEXT,
            )
            for claim in claims[:MAX_LLM_CLAIMS]
        ]

    return response
