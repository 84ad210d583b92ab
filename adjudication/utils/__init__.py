"""Shared utility functions for the claims adjudication package."""

from .codes import parse_diagnosis_codes
from .date_parser import normalize_service_date, parse_flexible_date

__all__ = ["normalize_service_date", "parse_diagnosis_codes", "parse_flexible_date"]
