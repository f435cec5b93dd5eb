from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from newsdesk.db.models import Source
from newsdesk.sources import manager

router = APIRouter()


class SourceCreate(BaseModel):
    type: str
    name: str
    value: str
    enabled: bool = True


class SourceUpdate(BaseModel):
    name: str | None = None
    value: str | None = None
    enabled: bool | None = None


class SourceResponse(BaseModel):
    id: int
    type: str
    name: str
    value: str
    enabled: bool

    model_config = {"from_attributes": True}


def _to_response(s: Source) -> SourceResponse:
    return SourceResponse(id=s.id, type=s.type, name=s.name, value=s.value, enabled=bool(s.enabled))


@router.get("")
def list_sources():
    """All sources grouped by type."""
    grouped: dict[str, list[SourceResponse]] = {}
    for s in manager.list_sources():
        grouped.setdefault(s.type, []).append(_to_response(s))
    return grouped


@router.get("/{source_type}", response_model=list[SourceResponse])
def list_sources_by_type(source_type: str):
    return [_to_response(s) for s in manager.list_sources(source_type)]


@router.post("", response_model=SourceResponse, status_code=201)
def create_source(body: SourceCreate):
    try:
        s = manager.add_source(body.type, body.name, body.value, body.enabled)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _to_response(s)


@router.put("/{source_id}")
def update_source(source_id: int, body: SourceUpdate):
    if not manager.update_source(source_id, name=body.name, value=body.value, enabled=body.enabled):
        raise HTTPException(status_code=404, detail="Source not found")
    return {"success": True}


@router.post("/{source_id}/toggle")
def toggle_source(source_id: int):
    if not manager.toggle_source(source_id):
        raise HTTPException(status_code=404, detail="Source not found")
    return {"success": True}


@router.delete("/{source_id}", status_code=204)
def delete_source(source_id: int):
    if not manager.remove_source(source_id):
        raise HTTPException(status_code=404, detail="Source not found")
