"""Refresh progress events and their `data: <json>` line framing."""

import logging
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

logger = logging.getLogger(__name__)

SSE_PREFIX = "data: "


class ProgressEvent(BaseModel):
    type: Literal["progress"] = "progress"
    source: str
    status: Literal["fetching"] = "fetching"
    index: int
    total: int


class CompleteEvent(BaseModel):
    type: Literal["complete"] = "complete"
    source: str
    count: int
    index: int
    total: int


class ErrorEvent(BaseModel):
    type: Literal["error"] = "error"
    source: str
    error: str
    index: int
    total: int


class EngagementEvent(BaseModel):
    type: Literal["engagement"] = "engagement"
    status: Literal["calculating", "complete"]


class DoneEvent(BaseModel):
    type: Literal["done"] = "done"


RefreshEvent = Annotated[
    Union[ProgressEvent, CompleteEvent, ErrorEvent, EngagementEvent, DoneEvent],
    Field(discriminator="type"),
]

_event_adapter = TypeAdapter(RefreshEvent)


def to_sse(event: BaseModel) -> str:
    return f"{SSE_PREFIX}{event.model_dump_json()}\n\n"


def parse_event(payload: str | bytes) -> RefreshEvent:
    """Validate one JSON event payload. Raises ValidationError on bad input."""
    return _event_adapter.validate_json(payload)


def parse_sse_line(line: str) -> RefreshEvent | None:
    """Event for a `data: ...` line; None for blank, comment or malformed lines."""
    if not line.startswith(SSE_PREFIX):
        return None
    try:
        return parse_event(line[len(SSE_PREFIX):])
    except ValidationError:
        logger.warning("Ignoring malformed refresh event: %r", line[:200])
        return None
