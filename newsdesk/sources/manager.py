import logging
from datetime import datetime, timezone
from pathlib import Path

import yaml

from newsdesk.db.models import Source, SourceType
from newsdesk.db.session import get_session

logger = logging.getLogger(__name__)

VALID_TYPES = {t.value for t in SourceType}


def _check_type(source_type: str) -> None:
    if source_type not in VALID_TYPES:
        raise ValueError(f"Invalid source type: {source_type} (expected one of {sorted(VALID_TYPES)})")


def list_enabled(source_type: str) -> list[Source]:
    """Enabled sources of one type, as read by the refresh path."""
    session = get_session()
    try:
        return (
            session.query(Source)
            .filter(Source.type == source_type, Source.enabled.is_(True))
            .order_by(Source.name)
            .all()
        )
    finally:
        session.close()


def list_sources(source_type: str | None = None) -> list[Source]:
    session = get_session()
    try:
        query = session.query(Source)
        if source_type:
            query = query.filter(Source.type == source_type)
        return query.order_by(Source.type, Source.name).all()
    finally:
        session.close()


def get_source(source_id: int) -> Source | None:
    session = get_session()
    try:
        return session.get(Source, source_id)
    finally:
        session.close()


def add_source(source_type: str, name: str, value: str, enabled: bool = True) -> Source:
    """Add a new source. Raises ValueError on bad type or missing fields."""
    _check_type(source_type)
    if not name or not value:
        raise ValueError("name and value are required")

    session = get_session()
    try:
        source = Source(type=source_type, name=name, value=value, enabled=enabled)
        session.add(source)
        session.commit()
        session.refresh(source)
        return source
    finally:
        session.close()


def update_source(source_id: int, *, name=None, value=None, enabled=None) -> bool:
    session = get_session()
    try:
        source = session.get(Source, source_id)
        if not source:
            return False
        if name is not None:
            source.name = name
        if value is not None:
            source.value = value
        if enabled is not None:
            source.enabled = enabled
        source.updated_at = datetime.now(timezone.utc)
        session.commit()
        return True
    finally:
        session.close()


def remove_source(source_id: int) -> bool:
    """Remove a source by ID. Returns True if found and removed."""
    session = get_session()
    try:
        source = session.get(Source, source_id)
        if not source:
            return False
        session.delete(source)
        session.commit()
        return True
    finally:
        session.close()


def toggle_source(source_id: int) -> bool:
    """Flip a source between enabled and disabled."""
    session = get_session()
    try:
        source = session.get(Source, source_id)
        if not source:
            return False
        source.enabled = not source.enabled
        source.updated_at = datetime.now(timezone.utc)
        session.commit()
        return True
    finally:
        session.close()


def seed_sources(path: Path) -> int:
    """Load default sources from YAML into an empty sources table.

    Does nothing once any source exists, so user edits are never overwritten.
    """
    session = get_session()
    try:
        if session.query(Source).count() > 0:
            return 0
        if not path.exists():
            logger.info("No default sources file at %s", path)
            return 0

        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        added = 0
        for source_type, entries in data.items():
            if source_type not in VALID_TYPES:
                logger.warning("Skipping unknown source type '%s' in %s", source_type, path)
                continue
            for entry in entries or []:
                if isinstance(entry, str):
                    entry = {"name": entry, "value": entry}
                if not entry.get("name") or not entry.get("value"):
                    logger.warning("Skipping incomplete %s source in %s: %r", source_type, path, entry)
                    continue
                session.add(Source(type=source_type, name=entry["name"], value=str(entry["value"])))
                added += 1
        session.commit()
        logger.info("Seeded %d sources from %s", added, path)
        return added
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
