"""Client-side view of a streamed refresh run."""

from dataclasses import dataclass, field

from newsdesk.refresh.events import (
    CompleteEvent,
    DoneEvent,
    EngagementEvent,
    ErrorEvent,
    ProgressEvent,
    RefreshEvent,
)


@dataclass
class SourceStatus:
    name: str
    status: str = "pending"  # pending | fetching | complete | error
    count: int | None = None
    error: str | None = None


@dataclass
class RefreshProgress:
    per_source_status: list[SourceStatus] = field(default_factory=list)
    engagement_status: str = "pending"  # pending | calculating | complete
    done: bool = False

    @classmethod
    def for_sources(cls, names) -> "RefreshProgress":
        return cls(per_source_status=[SourceStatus(name) for name in names])

    def _slot(self, index: int, total: int, name: str) -> SourceStatus:
        while len(self.per_source_status) < max(total, index + 1):
            self.per_source_status.append(SourceStatus(name=""))
        slot = self.per_source_status[index]
        slot.name = name
        return slot

    def apply(self, event: RefreshEvent) -> None:
        if isinstance(event, ProgressEvent):
            slot = self._slot(event.index, event.total, event.source)
            slot.status = "fetching"
        elif isinstance(event, CompleteEvent):
            slot = self._slot(event.index, event.total, event.source)
            slot.status = "complete"
            slot.count = event.count
        elif isinstance(event, ErrorEvent):
            slot = self._slot(event.index, event.total, event.source)
            slot.status = "error"
            slot.error = event.error
        elif isinstance(event, EngagementEvent):
            self.engagement_status = event.status
        elif isinstance(event, DoneEvent):
            self.done = True

    @property
    def total_count(self) -> int:
        return sum(s.count or 0 for s in self.per_source_status)

    @property
    def failed(self) -> list[SourceStatus]:
        return [s for s in self.per_source_status if s.status == "error"]
