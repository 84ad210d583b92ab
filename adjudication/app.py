"""FastAPI service for claims adjudication."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from adjudication import __version__, config
from adjudication.limiter import limiter
from adjudication.routes import claims_router, rules_router

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Claims Adjudication",
    description="Rule extraction and claim validation against medical and technical guides",
    version=__version__,
)

# Rate limiting configuration
# Validation endpoint: VALIDATE_RATE_LIMIT (may call the LLM)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(rules_router)
app.include_router(claims_router)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": __version__,
    }


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(level=config.LOG_LEVEL)
    uvicorn.run(app, host="0.0.0.0", port=8080)
