"""Exception types raised by the adjudication core."""

from __future__ import annotations


class AdjudicationError(Exception):
    """Base class for all adjudication errors."""


class InputError(AdjudicationError, ValueError):
    """Raised when a caller hands the engine something it cannot work with.

    Examples are an empty claim batch or a rule set that is missing entirely.
    Claim violations are never raised; they are returned as data.
    """


class OracleError(AdjudicationError):
    """Raised by the LLM boundary when the oracle cannot produce a verdict."""
