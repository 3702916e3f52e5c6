"""Health check endpoints."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request

from datadna.core.exceptions import CacheError

router = APIRouter(tags=["health"])


@router.get("/health")
async def health() -> dict[str, str]:
    return {"status": "healthy"}


@router.get("/ready")
async def ready(request: Request) -> dict[str, str]:
    try:
        request.app.state.cache.get("datadna:ready")
    except CacheError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    return {"status": "ready", "backend": request.app.state.settings.backend}
