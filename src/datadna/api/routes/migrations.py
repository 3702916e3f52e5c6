"""Source analysis endpoint."""

from __future__ import annotations

from typing import Optional, Union

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field

from datadna.agents.orchestrator.migration_orchestrator import MigrationOrchestrator
from datadna.core.exceptions import InvalidSourceError

router = APIRouter(tags=["migrations"])


class AnalyzeRequest(BaseModel):
    org_id: str = Field(min_length=1)
    source_kind: str = "tabular-file"
    rows: list[dict[str, Union[bool, int, float, str, None]]]
    column_names: Optional[list[str]] = None
    source_system_hint: Optional[str] = None


@router.post("/analyze")
async def analyze(body: AnalyzeRequest, request: Request) -> dict:
    """Fingerprint the rows and suggest a mapping for every column."""
    state = request.app.state
    orchestrator = MigrationOrchestrator(
        settings=state.settings,
        org_id=body.org_id,
        learning=state.learning,
        catalog=state.catalog,
        reasoning=state.reasoning,
        reasoning_cache=state.reasoning_cache,
    )
    try:
        report = await orchestrator.analyze(
            body.source_kind, body.rows, body.column_names, body.source_system_hint
        )
    except InvalidSourceError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return report.model_dump(mode="json")
