"""Shared configuration for the claims adjudication engine.

This module centralizes environment variable access and default values
to prevent drift between modules.
"""

import os

# Approval numbers that mean "no approval on file"
APPROVAL_PLACEHOLDERS = tuple(
    value.strip().upper()
    for value in os.getenv("APPROVAL_PLACEHOLDERS", "NA").split(",")
    if value.strip()
)

# Characters that separate diagnosis codes inside a single claim cell
DIAGNOSIS_DELIMITERS = os.getenv("DIAGNOSIS_DELIMITERS", ";,")

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# HTTP surface
CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv(
        "CORS_ORIGINS", "http://localhost:3000,http://localhost:5173"
    ).split(",")
    if origin.strip()
]
VALIDATE_RATE_LIMIT = os.getenv("VALIDATE_RATE_LIMIT", "30/minute")
SUMMARIZE_RATE_LIMIT = os.getenv("SUMMARIZE_RATE_LIMIT", "10/minute")
