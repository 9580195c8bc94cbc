"""Append-only audit log of reconciliation events.

Each call to ``log`` appends one JSON object per line containing the
event type and payload.  Decimals and datetimes are written as strings
so amounts survive the round trip without float drift.  File writes
run via ``asyncio.to_thread`` to avoid blocking the event loop.

Enable by setting ``EVENT_STORE_PATH`` to a writable file path.
"""

from __future__ import annotations

import asyncio
import json
import os
from typing import Any, Dict


class EventStore:
    """Append-only JSON Lines event logger."""

    def __init__(self, path: str) -> None:
        self.path = os.path.abspath(path)
        os.makedirs(os.path.dirname(self.path), exist_ok=True)
        self._lock = asyncio.Lock()

    async def log(self, event_type: str, data: Dict[str, Any]) -> None:
        """Append an event to the log file."""
        line = json.dumps({"type": event_type, "data": data}, ensure_ascii=False, default=str) + "\n"
        async with self._lock:
            await asyncio.to_thread(self._append_to_file, line)

    def _append_to_file(self, line: str) -> None:
        with open(self.path, "a", encoding="utf-8") as f:
            f.write(line)
