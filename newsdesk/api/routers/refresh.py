from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import StreamingResponse

from newsdesk.refresh import orchestrator

router = APIRouter()


@router.post("/refresh-all")
def refresh_all():
    """Refresh every source type and return the per-step results."""
    return orchestrator.refresh_all()


@router.post("/refresh-all-stream")
def refresh_all_stream():
    """Same run as /refresh-all, reported live as server-sent events."""
    run = orchestrator.RefreshRun()
    return StreamingResponse(
        orchestrator.sse_stream(run),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
    )


@router.post("/refresh/{source_type}")
def refresh_source_type(source_type: str, skip_engagement: bool = Query(False)):
    try:
        outcome = orchestrator.refresh_source_type(source_type, skip_engagement=skip_engagement)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return outcome.as_dict()
