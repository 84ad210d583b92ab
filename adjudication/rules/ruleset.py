"""Default claim checks.

Medical checks run before technical checks so that error lists and
explanations read in a stable order.
"""

from __future__ import annotations

from .categories.medical_rules import (
    diagnosis_requirement_rule,
    encounter_type_rule,
    facility_type_rule,
    mutual_exclusion_rule,
)
from .categories.technical_rules import (
    amount_threshold_rule,
    diagnosis_approval_rule,
    id_format_rule,
    service_approval_rule,
)
from .registry import RuleRegistry


def register_default_rules(registry: RuleRegistry) -> None:
    """Register the medical and technical adjudication checks."""
    registry.extend(
        [
            # Medical
            encounter_type_rule,
            facility_type_rule,
            diagnosis_requirement_rule,
            mutual_exclusion_rule,

            # Technical
            service_approval_rule,
            diagnosis_approval_rule,
            amount_threshold_rule,
            id_format_rule,
        ]
    )


def build_default_registry() -> RuleRegistry:
    """A fresh registry holding the default checks, all enabled."""
    registry = RuleRegistry()
    register_default_rules(registry)
    return registry


__all__ = ["register_default_rules", "build_default_registry"]
