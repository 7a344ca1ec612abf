"""Health check endpoint.

Configured redirects are served by middleware ahead of routing, so a rule
that claims ``/health`` shadows this endpoint.
"""

from fastapi import APIRouter, Request

from schemas import HealthResponse
from services.redirect_rules import RedirectIndex

SERVICE_NAME = "static-redirector"

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health(request: Request) -> HealthResponse:
    """Health check endpoint with the number of loaded rules and paths."""
    index: RedirectIndex = request.app.state.redirect_index
    return HealthResponse(
        status="healthy",
        service=SERVICE_NAME,
        rules=len(index.rules),
        paths=len(index),
    )
