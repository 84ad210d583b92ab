"""Rule extraction from medical and technical adjudication guides."""

from .medical import extract_medical_rules
from .technical import extract_technical_rules

__all__ = ["extract_medical_rules", "extract_technical_rules"]
