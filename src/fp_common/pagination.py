"""Keyset pagination cursor shared by every list endpoint.

Cursor format (ids are UUID strings, not sequential):
  {"ts": "<created_at ISO>", "id": "<entity id>"}
  Encoded as Base64 JSON string. Lists are ordered created_at DESC, id DESC.
"""

import base64
import json
from datetime import datetime


def cursor_encode(created_at: datetime, entity_id: str) -> str:
    """Encode composite cursor from the last row of a page."""
    payload = {"ts": created_at.isoformat(), "id": entity_id}
    return base64.b64encode(json.dumps(payload).encode()).decode()


def cursor_decode(cursor: str | None) -> tuple[datetime | None, str | None]:
    """Decode composite cursor -> (created_at, id), or (None, None) on error."""
    if cursor is None:
        return None, None
    try:
        data = json.loads(base64.b64decode(cursor.encode()).decode())
        return datetime.fromisoformat(data["ts"]), str(data["id"])
    except (ValueError, KeyError, TypeError):
        return None, None
