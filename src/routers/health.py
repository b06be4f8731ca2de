from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter

from src.models.orders import HealthResponse


SERVICE_NAME = "workshop-mailer"

router = APIRouter(tags=["health"])


@router.get("/api/health", response_model=HealthResponse)
@router.get("/health", response_model=HealthResponse, include_in_schema=False)
async def health():
    return HealthResponse(
        ok=True,
        timestamp=datetime.now(timezone.utc),
        service=SERVICE_NAME,
        signature="verified",
    )
