"""Configuration for the LLM-assisted validation and explanation paths."""

from __future__ import annotations

import os
from dataclasses import dataclass


@dataclass
class LLMConfig:
    """Settings for calls to the Anthropic Messages API.

    The oracle is optional: every call degrades to rule-based output when the
    API key is missing or the request fails.
    """

    model: str = os.getenv("LLM_MODEL", "claude-sonnet-4-5-20250929")
    max_tokens: int = 1000
    # Low temperature keeps verdicts close to deterministic
    temperature: float = 0.0
    timeout: float = float(os.getenv("LLM_TIMEOUT", "30"))
    max_rules_chars: int = 20000


LLM_CONFIG = LLMConfig()


VALIDATION_SYSTEM_PROMPT = """You are an expert claim adjudicator. You validate a single insurance claim against a medical adjudication guide and a technical adjudication guide.

Carefully review the claim data and both rule documents. Identify all violations.

## Response Format (REQUIRED JSON)
You MUST respond with valid JSON in this exact structure:
```json
{
  "is_valid": true,
  "errors": ["One concise sentence per distinct violation"],
  "error_type": "No error|Medical error|Technical error|Both"
}
```

- If there are no violations, set "is_valid" to true, "errors" to an empty array and "error_type" to "No error".
- If there are both medical and technical violations, use "Both".
"""


EXPLANATION_SYSTEM_PROMPT = """You are an expert claim adjudicator. Given a claim, the violations a rules engine found on it and the adjudication rules, write a clear explanation of the errors and a targeted recommendation for corrective action.

## Response Format (REQUIRED JSON)
```json
{
  "explanation": "2-3 sentences explaining why the claim failed validation",
  "recommended_action": "The corrective action the submitter should take"
}
```
"""


SUMMARY_SYSTEM_PROMPT = """You are an expert in summarizing complex adjudication documents. Given a medical adjudication guide and a technical adjudication guide, write a concise summary covering both the medical and the technical rules.

## Response Format (REQUIRED JSON)
```json
{
  "summary": "A concise summary of the medical and technical adjudication rules"
}
```
"""
