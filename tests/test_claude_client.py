"""Unit tests for the LLM-assisted validation and explanation paths.

These tests do NOT make actual API calls and are safe to run in CI/CD.
"""

from __future__ import annotations

import json
import os
from dataclasses import replace
from unittest.mock import MagicMock, patch

import anthropic
import httpx
import pytest

from adjudication.claude_client import (
    LLMValidationResponse,
    build_validation_prompt,
    explain_result,
    parse_structured_response,
    request_llm_validation,
    rule_based_summary,
    summarize_rules,
    validate_claim_with_fallback,
)
from adjudication.exceptions import OracleError
from adjudication.llm_config import LLM_CONFIG, LLMConfig
from adjudication.rules import validate_claim
from adjudication.rules.models import ErrorType, MedicalRuleSet, TechnicalRuleSet


def _response(text: str) -> MagicMock:
    response = MagicMock()
    response.content = [MagicMock(text=text)]
    return response


def _api_error() -> anthropic.APIError:
    request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
    return anthropic.APIError("service unavailable", request, body=None)


class TestLLMConfig:
    """Test LLM configuration dataclass."""

    def test_default_config_values(self):
        """Verify default configuration values are set correctly."""
        config = LLMConfig()

        assert config.max_tokens == 1000
        assert config.temperature == 0.0
        assert config.timeout > 0

    def test_global_config_exists(self):
        """Verify the shared configuration instance is available."""
        assert isinstance(LLM_CONFIG, LLMConfig)


class TestParseStructuredResponse:
    """Test JSON extraction from model replies."""

    def test_code_block(self):
        text = 'Here you go:\n```json\n{"is_valid": true}\n```'
        assert parse_structured_response(text) == {"is_valid": True}

    def test_raw_json(self):
        assert parse_structured_response('{"errors": []}') == {"errors": []}

    def test_json_inside_prose(self):
        assert parse_structured_response('Verdict: {"is_valid": false} done') == {"is_valid": False}

    def test_no_json(self):
        assert parse_structured_response("no verdict") is None
        assert parse_structured_response("") is None


class TestLLMValidationResponse:
    """Test the oracle response model."""

    def test_error_type_case_variants(self):
        """Test "both" is accepted for Both."""
        response = LLMValidationResponse.model_validate(
            {"is_valid": False, "errors": ["x"], "error_type": "both"}
        )

        assert response.error_type is ErrorType.BOTH

    def test_defaults(self):
        response = LLMValidationResponse.model_validate({"is_valid": True})

        assert response.errors == []
        assert response.error_type is ErrorType.NO_ERROR


class TestBuildValidationPrompt:
    """Test prompt construction."""

    def test_prompt_includes_claim_and_rules(self, clean_claim, medical_text, technical_text):
        prompt = build_validation_prompt(clean_claim, medical_text, technical_text, LLM_CONFIG)

        assert "CLM-0001" in prompt
        assert "Medical Adjudication Guide" in prompt
        assert "Technical Adjudication" in prompt

    def test_long_rules_truncated(self, clean_claim):
        config = LLMConfig(max_rules_chars=10)
        prompt = build_validation_prompt(clean_claim, "M" * 50, "T", config)

        assert "M" * 11 not in prompt
        assert "[... truncated ...]" in prompt


class TestRequestLLMValidation:
    """Test the oracle call and its failure modes."""

    def test_missing_api_key(self, clean_claim, medical_text, technical_text):
        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(OracleError):
                request_llm_validation(clean_claim, medical_text, technical_text)

    def test_parses_verdict(self, clean_claim, medical_text, technical_text):
        reply = json.dumps({"is_valid": False, "errors": ["Amount too high"], "error_type": "Technical error"})
        with patch.dict(os.environ, {"ANTHROPIC_API_KEY": "test-key"}):
            with patch("adjudication.claude_client.anthropic.Anthropic") as client_cls:
                client_cls.return_value.messages.create.return_value = _response(reply)
                response = request_llm_validation(clean_claim, medical_text, technical_text)

        assert response.is_valid is False
        assert response.errors == ["Amount too high"]
        assert response.error_type is ErrorType.TECHNICAL_ERROR
        kwargs = client_cls.return_value.messages.create.call_args.kwargs
        assert kwargs["model"] == LLM_CONFIG.model
        assert kwargs["temperature"] == LLM_CONFIG.temperature

    def test_api_error(self, clean_claim, medical_text, technical_text):
        with patch.dict(os.environ, {"ANTHROPIC_API_KEY": "test-key"}):
            with patch("adjudication.claude_client.anthropic.Anthropic") as client_cls:
                client_cls.return_value.messages.create.side_effect = _api_error()
                with pytest.raises(OracleError):
                    request_llm_validation(clean_claim, medical_text, technical_text)

    def test_non_json_reply(self, clean_claim, medical_text, technical_text):
        with patch.dict(os.environ, {"ANTHROPIC_API_KEY": "test-key"}):
            with patch("adjudication.claude_client.anthropic.Anthropic") as client_cls:
                client_cls.return_value.messages.create.return_value = _response("I think it is fine.")
                with pytest.raises(OracleError):
                    request_llm_validation(clean_claim, medical_text, technical_text)

    def test_wrong_shape_reply(self, clean_claim, medical_text, technical_text):
        with patch.dict(os.environ, {"ANTHROPIC_API_KEY": "test-key"}):
            with patch("adjudication.claude_client.anthropic.Anthropic") as client_cls:
                client_cls.return_value.messages.create.return_value = _response('{"verdict": "ok"}')
                with pytest.raises(OracleError):
                    request_llm_validation(clean_claim, medical_text, technical_text)


class TestValidateClaimWithFallback:
    """Test degradation to the rules engine."""

    def test_falls_back_without_api_key(self, clean_claim, medical_rules, technical_rules, medical_text, technical_text):
        claim = replace(clean_claim, paid_amount=300.0)
        with patch.dict(os.environ, {}, clear=True):
            verdict = validate_claim_with_fallback(
                claim, medical_rules, technical_rules, medical_text, technical_text
            )

        expected = validate_claim(claim, medical_rules, technical_rules)
        assert verdict["source"] == "rules"
        assert verdict["status"] == expected.status.value
        assert verdict["error_type"] == "Technical error"
        assert verdict["explanation"] == expected.explanation

    def test_uses_llm_verdict(self, clean_claim, medical_rules, technical_rules, medical_text, technical_text):
        reply = json.dumps({"is_valid": False, "errors": ["Service not allowed"], "error_type": "Medical error"})
        with patch.dict(os.environ, {"ANTHROPIC_API_KEY": "test-key"}):
            with patch("adjudication.claude_client.anthropic.Anthropic") as client_cls:
                client_cls.return_value.messages.create.return_value = _response(reply)
                verdict = validate_claim_with_fallback(
                    clean_claim, medical_rules, technical_rules, medical_text, technical_text
                )

        assert verdict["source"] == "llm"
        assert verdict["status"] == "Not validated"
        assert verdict["error_type"] == "Medical error"
        assert verdict["explanation"] == "• Service not allowed"

    def test_unclassified_llm_errors_use_rule_classification(
        self, clean_claim, medical_rules, technical_rules, medical_text, technical_text
    ):
        claim = replace(clean_claim, paid_amount=300.0)
        reply = json.dumps({"is_valid": False, "errors": ["Needs approval"]})
        with patch.dict(os.environ, {"ANTHROPIC_API_KEY": "test-key"}):
            with patch("adjudication.claude_client.anthropic.Anthropic") as client_cls:
                client_cls.return_value.messages.create.return_value = _response(reply)
                verdict = validate_claim_with_fallback(
                    claim, medical_rules, technical_rules, medical_text, technical_text
                )

        assert verdict["error_type"] == "Technical error"


class TestExplainResult:
    """Test narrative explanations."""

    def test_clean_result_needs_no_call(self, clean_claim, medical_rules, technical_rules):
        result = validate_claim(clean_claim, medical_rules, technical_rules)
        with patch("adjudication.claude_client.anthropic.Anthropic") as client_cls:
            explanation = explain_result(result, clean_claim)

        client_cls.assert_not_called()
        assert explanation == {
            "explanation": "No errors found",
            "recommended_action": "None required",
            "model": "none",
        }

    def test_fallback_on_api_error(self, clean_claim, medical_rules, technical_rules):
        claim = replace(clean_claim, paid_amount=300.0)
        result = validate_claim(claim, medical_rules, technical_rules)
        with patch.dict(os.environ, {"ANTHROPIC_API_KEY": "test-key"}):
            with patch("adjudication.claude_client.anthropic.Anthropic") as client_cls:
                client_cls.return_value.messages.create.side_effect = _api_error()
                explanation = explain_result(result, claim)

        assert explanation["model"] == "none"
        assert explanation["explanation"] == result.explanation
        assert explanation["recommended_action"] == result.recommended_action

    def test_non_object_json_falls_back(self, clean_claim, medical_rules, technical_rules):
        """Test a JSON array reply degrades to the rule-based explanation."""
        claim = replace(clean_claim, paid_amount=300.0)
        result = validate_claim(claim, medical_rules, technical_rules)
        with patch.dict(os.environ, {"ANTHROPIC_API_KEY": "test-key"}):
            with patch("adjudication.claude_client.anthropic.Anthropic") as client_cls:
                client_cls.return_value.messages.create.return_value = _response(
                    '["explanation", "action"]'
                )
                explanation = explain_result(result, claim)

        assert explanation == {
            "explanation": result.explanation,
            "recommended_action": result.recommended_action,
            "model": "none",
        }

    def test_prose_reply_used_as_explanation(self, clean_claim, medical_rules, technical_rules):
        claim = replace(clean_claim, paid_amount=300.0)
        result = validate_claim(claim, medical_rules, technical_rules)
        with patch.dict(os.environ, {"ANTHROPIC_API_KEY": "test-key"}):
            with patch("adjudication.claude_client.anthropic.Anthropic") as client_cls:
                client_cls.return_value.messages.create.return_value = _response("Needs approval.")
                explanation = explain_result(result, claim)

        assert explanation["explanation"] == "Needs approval."
        assert explanation["recommended_action"] == result.recommended_action
        assert explanation["model"] == LLM_CONFIG.model

    def test_structured_explanation(self, clean_claim, medical_rules, technical_rules, technical_text):
        claim = replace(clean_claim, paid_amount=300.0)
        result = validate_claim(claim, medical_rules, technical_rules)
        reply = json.dumps(
            {"explanation": "The amount exceeds AED 250.", "recommended_action": "Obtain approval."}
        )
        with patch.dict(os.environ, {"ANTHROPIC_API_KEY": "test-key"}):
            with patch("adjudication.claude_client.anthropic.Anthropic") as client_cls:
                client_cls.return_value.messages.create.return_value = _response(reply)
                explanation = explain_result(result, claim, technical_text)

        assert explanation == {
            "explanation": "The amount exceeds AED 250.",
            "recommended_action": "Obtain approval.",
            "model": LLM_CONFIG.model,
        }
        prompt = client_cls.return_value.messages.create.call_args.kwargs["messages"][0]["content"]
        assert "Threshold Exceeded" in prompt


class TestSummarizeRules:
    """Test rule document summaries."""

    def test_rule_based_summary_counts(self, medical_rules, technical_rules):
        summary = rule_based_summary(medical_rules, technical_rules)

        assert summary.startswith("Medical rules: ")
        assert f"{len(medical_rules.facility_registry)} registered facilities" in summary
        assert (
            f"{len(medical_rules.mutual_exclusions)} mutually exclusive diagnosis pair(s)" in summary
        )
        assert "paid amounts above AED 250 require prior approval" in summary
        assert "IDs must be uppercase alphanumeric" in summary
        assert "unique IDs follow XXXX-XXXX-XXXX" in summary

    def test_rule_based_summary_of_empty_rules(self):
        summary = rule_based_summary(MedicalRuleSet(), TechnicalRuleSet())

        assert "0 registered facilities" in summary
        assert "AED" not in summary
        assert summary.endswith("0 diagnosis code(s) require prior approval.")

    def test_falls_back_without_api_key(self, medical_text, technical_text, medical_rules, technical_rules):
        with patch.dict(os.environ, {}, clear=True):
            summary = summarize_rules(medical_text, technical_text)

        assert summary == {
            "summary": rule_based_summary(medical_rules, technical_rules),
            "model": "none",
        }

    def test_fallback_on_api_error(self, medical_text, technical_text):
        with patch.dict(os.environ, {"ANTHROPIC_API_KEY": "test-key"}):
            with patch("adjudication.claude_client.anthropic.Anthropic") as client_cls:
                client_cls.return_value.messages.create.side_effect = _api_error()
                summary = summarize_rules(medical_text, technical_text)

        assert summary["model"] == "none"

    def test_structured_summary(self, medical_text, technical_text):
        reply = json.dumps({"summary": "Encounter, facility and approval rules."})
        with patch.dict(os.environ, {"ANTHROPIC_API_KEY": "test-key"}):
            with patch("adjudication.claude_client.anthropic.Anthropic") as client_cls:
                client_cls.return_value.messages.create.return_value = _response(reply)
                summary = summarize_rules(medical_text, technical_text)

        assert summary == {
            "summary": "Encounter, facility and approval rules.",
            "model": LLM_CONFIG.model,
        }
        kwargs = client_cls.return_value.messages.create.call_args.kwargs
        prompt = kwargs["messages"][0]["content"]
        assert "Medical Adjudication Guide" in prompt
        assert "Technical Adjudication" in prompt

    def test_prose_summary(self, medical_text, technical_text):
        with patch.dict(os.environ, {"ANTHROPIC_API_KEY": "test-key"}):
            with patch("adjudication.claude_client.anthropic.Anthropic") as client_cls:
                client_cls.return_value.messages.create.return_value = _response(
                    "  The guides restrict services by encounter and facility.  "
                )
                summary = summarize_rules(medical_text, technical_text)

        assert summary["summary"] == "The guides restrict services by encounter and facility."

    @pytest.mark.parametrize("reply", ['["a", "b"]', '{"other": "x"}', ""])
    def test_unusable_reply_falls_back(self, medical_text, technical_text, reply):
        with patch.dict(os.environ, {"ANTHROPIC_API_KEY": "test-key"}):
            with patch("adjudication.claude_client.anthropic.Anthropic") as client_cls:
                client_cls.return_value.messages.create.return_value = _response(reply)
                summary = summarize_rules(medical_text, technical_text)

        assert summary["model"] == "none"
        assert summary["summary"].startswith("Medical rules: ")
