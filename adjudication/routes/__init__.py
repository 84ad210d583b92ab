"""API route modules for the claims adjudication service.

Routers:
- rules: rule document extraction and the reference rule sets
- claims: claim batch validation
"""

from .claims import router as claims_router
from .rules import router as rules_router

__all__ = ["claims_router", "rules_router"]
