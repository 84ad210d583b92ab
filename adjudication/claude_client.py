"""Claude API client for LLM-assisted claim validation and explanations.

The rule-based engine is authoritative. This module offers three optional
paths on top of it:
- validate_claim_with_fallback: ask the model for a verdict, falling back to
  the rules engine when the model is unavailable
- explain_result: turn the rule engine's errors into a narrative explanation
- summarize_rules: a concise summary of both guides, falling back to rule counts
"""

from __future__ import annotations

import json
import logging
import os
import re
from typing import Any

import anthropic
from pydantic import BaseModel, ValidationError as PydanticValidationError, field_validator

from adjudication.exceptions import OracleError
from adjudication.extraction import extract_medical_rules, extract_technical_rules
from adjudication.llm_config import (
    EXPLANATION_SYSTEM_PROMPT,
    LLM_CONFIG,
    SUMMARY_SYSTEM_PROMPT,
    VALIDATION_SYSTEM_PROMPT,
    LLMConfig,
)
from adjudication.rules import validate_claim
from adjudication.rules.categories.technical_rules import format_amount
from adjudication.rules.models import (
    Claim,
    EncounterType,
    ErrorType,
    MedicalRuleSet,
    TechnicalRuleSet,
    ValidationResult,
    ValidationStatus,
)

logger = logging.getLogger(__name__)


class LLMValidationResponse(BaseModel):
    """Verdict returned by the model for one claim."""

    is_valid: bool
    errors: list[str] = []
    error_type: ErrorType = ErrorType.NO_ERROR

    @field_validator("error_type", mode="before")
    @classmethod
    def normalize_error_type(cls, v: Any) -> Any:
        """Accept case variants such as "both" or "medical error"."""
        if isinstance(v, str):
            for error_type in ErrorType:
                if error_type.value.lower() == v.strip().lower():
                    return error_type
        return v


def parse_structured_response(text: str) -> Any:
    """Parse structured JSON response from Claude.

    Handles markdown code blocks, raw JSON and JSON embedded in prose.

    Args:
        text: The raw response text from Claude

    Returns:
        Parsed JSON value (usually a dictionary) or None if parsing fails
    """
    if not text:
        return None

    # Try to find JSON in markdown code blocks
    json_match = re.search(r"```(?:json)?\s*([\s\S]*?)```", text)
    if json_match:
        try:
            return json.loads(json_match.group(1).strip())
        except json.JSONDecodeError:
            pass

    # Try to parse the entire response as JSON
    try:
        return json.loads(text.strip())
    except json.JSONDecodeError:
        pass

    # Try to find JSON object pattern
    json_match = re.search(r"\{[\s\S]*\}", text)
    if json_match:
        try:
            return json.loads(json_match.group(0))
        except json.JSONDecodeError:
            pass

    return None


def _truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + "\n[... truncated ...]"


def build_validation_prompt(
    claim: Claim,
    medical_rules_text: str,
    technical_rules_text: str,
    config: LLMConfig,
) -> str:
    claim_data = json.dumps(claim.to_dict(), indent=2, default=str)
    return f"""Validate this claim.

## Claim Data
```json
{claim_data}
```

## Medical Rules
---
{_truncate(medical_rules_text, config.max_rules_chars)}
---

## Technical Rules
---
{_truncate(technical_rules_text, config.max_rules_chars)}
---

Respond with ONLY valid JSON following the response format specified in your instructions."""


def _complete(system: str, prompt: str, config: LLMConfig) -> str:
    api_key = os.getenv("ANTHROPIC_API_KEY")
    if not api_key:
        raise OracleError("Anthropic API key not configured")

    client = anthropic.Anthropic(api_key=api_key, timeout=config.timeout)
    try:
        response = client.messages.create(
            model=config.model,
            max_tokens=config.max_tokens,
            temperature=config.temperature,
            system=system,
            messages=[{"role": "user", "content": prompt}],
        )
    except anthropic.APIError as e:
        raise OracleError(f"Claude API error: {e!s}") from e

    return response.content[0].text if response.content else ""


def request_llm_validation(
    claim: Claim,
    medical_rules_text: str,
    technical_rules_text: str,
    config: LLMConfig | None = None,
) -> LLMValidationResponse:
    """Ask the model for a verdict on one claim.

    Raises:
        OracleError: if the key is missing, the API call fails or the reply
            is not JSON of the expected shape
    """
    config = config or LLM_CONFIG
    prompt = build_validation_prompt(claim, medical_rules_text, technical_rules_text, config)
    content = _complete(VALIDATION_SYSTEM_PROMPT, prompt, config)

    structured = parse_structured_response(content)
    if structured is None:
        raise OracleError("Claude response did not contain JSON")
    try:
        return LLMValidationResponse.model_validate(structured)
    except PydanticValidationError as e:
        raise OracleError(f"Claude response has an unexpected shape: {e}") from e


def _rule_based_verdict(result: ValidationResult) -> dict[str, Any]:
    verdict = result.to_dict()
    verdict["source"] = "rules"
    return verdict


def validate_claim_with_fallback(
    claim: Claim,
    medical_rules: MedicalRuleSet,
    technical_rules: TechnicalRuleSet,
    medical_rules_text: str,
    technical_rules_text: str,
    config: LLMConfig | None = None,
) -> dict[str, Any]:
    """Validate a claim with the model, degrading to the rules engine on failure.

    Returns a dictionary shaped like ``ValidationResult.to_dict()`` with an
    extra ``source`` key ("llm" or "rules").
    """
    try:
        response = request_llm_validation(
            claim, medical_rules_text, technical_rules_text, config=config
        )
    except OracleError as e:
        logger.warning(f"LLM validation unavailable for claim {claim.claim_id}: {e}")
        result = validate_claim(claim, medical_rules, technical_rules)
        return _rule_based_verdict(result)

    is_valid = response.is_valid and not response.errors
    error_type = response.error_type
    if not is_valid and error_type is ErrorType.NO_ERROR:
        # The model flagged errors without classifying them; the rules engine decides
        error_type = validate_claim(claim, medical_rules, technical_rules).error_type

    return {
        "claim_id": claim.claim_id,
        "status": (
            ValidationStatus.VALIDATED if is_valid else ValidationStatus.NOT_VALIDATED
        ).value,
        "error_type": (ErrorType.NO_ERROR if is_valid else error_type).value,
        "errors": [{"message": message} for message in response.errors],
        "error_count": len(response.errors),
        "explanation": (
            "\n".join(f"• {message}" for message in response.errors)
            if response.errors
            else "No errors found"
        ),
        "recommended_action": "Review the listed errors." if response.errors else "None required",
        "source": "llm",
    }


def explain_result(
    result: ValidationResult,
    claim: Claim,
    rules_text: str = "",
    config: LLMConfig | None = None,
) -> dict[str, Any]:
    """Narrative explanation and recommended action for a rule-engine result.

    Returns:
        Dictionary containing explanation, recommended_action and model.
        ``model`` is "none" when the rule-based text was used.
    """
    config = config or LLM_CONFIG
    fallback = {
        "explanation": result.explanation,
        "recommended_action": result.recommended_action,
        "model": "none",
    }
    if not result.errors:
        return fallback

    error_lines = "\n".join(
        f"- [{error.domain.value}] {error.category.value}: {error.message}"
        for error in result.errors
    )
    prompt = f"""Explain why this claim failed validation.

## Claim Data
```json
{json.dumps(claim.to_dict(), indent=2, default=str)}
```

## Errors Found ({result.error_type.value})
{error_lines}

## Adjudication Rules
{_truncate(rules_text, config.max_rules_chars) or "(not provided)"}

Respond with ONLY valid JSON following the response format specified in your instructions."""

    try:
        content = _complete(EXPLANATION_SYSTEM_PROMPT, prompt, config)
    except OracleError as e:
        logger.warning(f"LLM explanation unavailable for claim {claim.claim_id}: {e}")
        return fallback

    structured = parse_structured_response(content)
    if structured is None:
        # Plain prose reply; use it as the explanation
        structured = {}
    elif not isinstance(structured, dict):
        logger.warning(
            f"LLM explanation for claim {claim.claim_id} was {type(structured).__name__} "
            "JSON, not an object; using rule-based explanation"
        )
        return fallback

    return {
        "explanation": structured.get("explanation") or content or result.explanation,
        "recommended_action": structured.get("recommended_action") or result.recommended_action,
        "model": config.model,
    }


def rule_based_summary(
    medical_rules: MedicalRuleSet, technical_rules: TechnicalRuleSet
) -> str:
    """Summary of extracted rule sets built from counts, used when the LLM is unavailable."""
    inpatient = medical_rules.encounter_services(EncounterType.INPATIENT)
    outpatient = medical_rules.encounter_services(EncounterType.OUTPATIENT)
    medical = (
        f"Medical rules: {len(inpatient)} inpatient-only and {len(outpatient)} "
        f"outpatient-only service(s); {len(medical_rules.facility_type_rules)} facility "
        f"type(s) with service restrictions across {len(medical_rules.facility_registry)} "
        f"registered facilities; {len(medical_rules.diagnosis_requirements)} "
        f"diagnosis-service requirement(s); {len(medical_rules.mutual_exclusions)} "
        "mutually exclusive diagnosis pair(s)."
    )

    services = sum(1 for approval in technical_rules.service_approvals if approval.approval_required)
    diagnoses = sum(
        1 for approval in technical_rules.diagnosis_approvals if approval.approval_required
    )
    parts = [f"{services} service(s) and {diagnoses} diagnosis code(s) require prior approval"]

    threshold = technical_rules.paid_amount_threshold
    if threshold is not None:
        parts.append(
            f"paid amounts above {threshold.currency} {format_amount(threshold.amount)} "
            "require prior approval"
        )
    if technical_rules.id_format.uppercase is not None:
        parts.append("IDs must be uppercase alphanumeric")
    structure = technical_rules.id_format.unique_id_structure
    if structure is not None:
        shape = structure.separator.join("X" * segment.length for segment in structure.segments)
        parts.append(f"unique IDs follow {shape}")

    return f"{medical} Technical rules: {'; '.join(parts)}."


def summarize_rules(
    medical_rules_text: str,
    technical_rules_text: str,
    config: LLMConfig | None = None,
) -> dict[str, Any]:
    """Concise summary of a medical and a technical adjudication guide.

    Returns:
        Dictionary containing summary and model. ``model`` is "none" when the
        count-based summary of the extracted rules was used.
    """
    config = config or LLM_CONFIG

    def fallback() -> dict[str, Any]:
        summary = rule_based_summary(
            extract_medical_rules(medical_rules_text),
            extract_technical_rules(technical_rules_text),
        )
        return {"summary": summary, "model": "none"}

    prompt = f"""Summarize these adjudication rules.

## Medical Rules
---
{_truncate(medical_rules_text, config.max_rules_chars)}
---

## Technical Rules
---
{_truncate(technical_rules_text, config.max_rules_chars)}
---

Respond with ONLY valid JSON following the response format specified in your instructions."""

    try:
        content = _complete(SUMMARY_SYSTEM_PROMPT, prompt, config)
    except OracleError as e:
        logger.warning(f"LLM rule summary unavailable: {e}")
        return fallback()

    structured = parse_structured_response(content)
    if isinstance(structured, dict) and structured.get("summary"):
        summary = str(structured["summary"])
    elif structured is None and content.strip():
        summary = content.strip()
    else:
        logger.warning("LLM rule summary had no usable summary; using rule counts")
        return fallback()

    return {"summary": summary, "model": config.model}
