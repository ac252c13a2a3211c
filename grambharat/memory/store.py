"""Long-term memory store backed by a single JSON document.

Records are kept newest first in ``{"memories": [...]}``. Every write
rewrites the whole file atomically.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from pydantic import ValidationError

from grambharat.memory.models import MemoryCategory, MemoryRecord
from grambharat.storage import read_json, write_json

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)


class MemoryStore:
    """Append-only collection of ``MemoryRecord`` entries."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self._lock = asyncio.Lock()

    # -- Write ---------------------------------------------------------------

    async def add(self, content: str, category: MemoryCategory | str) -> MemoryRecord:
        """Store a memory at the front of the collection.

        Unknown categories are filed under ``other``.
        """
        try:
            category = MemoryCategory(category)
        except ValueError:
            logger.info("Unknown memory category %r, using 'other'", category)
            category = MemoryCategory.OTHER

        record = MemoryRecord(content=content, category=category)
        async with self._lock:
            raw = self._read_raw()
            raw.insert(0, record.model_dump(by_alias=True, mode="json"))
            write_json(self.path, {"memories": raw})
        logger.debug("Stored memory [%s]: %s", category, content[:80])
        return record

    # -- Read ----------------------------------------------------------------

    async def get_all(self) -> list[MemoryRecord]:
        """All memories, newest first. Malformed entries are skipped."""
        async with self._lock:
            raw = self._read_raw()
        records: list[MemoryRecord] = []
        for item in raw:
            try:
                records.append(MemoryRecord.model_validate(item))
            except ValidationError:
                logger.warning("Skipping malformed memory entry: %r", item)
        return records

    def _read_raw(self) -> list[dict]:
        data = read_json(self.path, {"memories": []})
        memories = data.get("memories") if isinstance(data, dict) else None
        return memories if isinstance(memories, list) else []
