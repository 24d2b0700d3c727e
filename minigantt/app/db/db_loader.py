import json
import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import text

from minigantt import config
from minigantt.tools.gantt.engine.snapshot import sanitize, serialize

from .models import GanttState

logger = logging.getLogger(__name__)


def ensure_schema(session) -> None:
    session.execute(text("""
        CREATE TABLE IF NOT EXISTS snapshots (
            name TEXT PRIMARY KEY,
            payload TEXT NOT NULL,
            updated_at TEXT NOT NULL
        )
    """))
    session.commit()


def load_snapshot(session, name: Optional[str] = None) -> Optional[GanttState]:
    """Return the autosaved plan, or None when nothing usable is stored."""
    name = name or config.AUTOSAVE_NAME
    ensure_schema(session)
    row = session.execute(text("""
        SELECT payload FROM snapshots WHERE name = :name
    """), {"name": name}).fetchone()
    if not row:
        return None
    try:
        data = json.loads(row.payload)
    except ValueError as e:
        logger.warning("load_snapshot: stored payload for %s is not JSON: %s", name, e)
        return None
    if not isinstance(data, dict) or not isinstance(data.get("tasks"), list):
        return None
    return sanitize(data)


def save_snapshot(session, state: GanttState, name: Optional[str] = None) -> None:
    name = name or config.AUTOSAVE_NAME
    ensure_schema(session)
    try:
        session.execute(text("""
            INSERT INTO snapshots (name, payload, updated_at)
            VALUES (:name, :payload, :updated_at)
            ON CONFLICT (name) DO UPDATE SET
              payload = EXCLUDED.payload,
              updated_at = EXCLUDED.updated_at
        """), {
            "name": name,
            "payload": json.dumps(serialize(state)),
            "updated_at": datetime.now(timezone.utc).isoformat(),
        })
        session.commit()
    except Exception:
        session.rollback()
        raise
