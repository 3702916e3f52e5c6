"""Admin endpoints for learned mappings and the reasoning cache."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request

from datadna.core.exceptions import CacheError, LearningStoreError

router = APIRouter(tags=["admin"])


@router.get("/learned-mappings/{org_id}")
async def get_learned_mappings(org_id: str, request: Request) -> dict:
    """Return every learned mapping for an organization, most confident first."""
    try:
        mappings = request.app.state.learning.list_mappings(org_id)
    except LearningStoreError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    mappings.sort(key=lambda m: m.confidence, reverse=True)
    return {
        "org_id": org_id,
        "mappings": [m.model_dump(mode="json") for m in mappings],
    }


@router.delete("/reasoning-cache")
async def clear_reasoning_cache(request: Request) -> dict:
    """Drop every cached reasoning answer."""
    try:
        removed = request.app.state.reasoning_cache.clear()
    except CacheError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return {"removed": removed}
