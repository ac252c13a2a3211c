"""Singleton locale/season context, overwritten in full on every update."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from pydantic import ValidationError

from grambharat.memory.models import ContextRecord
from grambharat.storage import read_json, write_json

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)


class ContextStore:
    def __init__(self, path: Path) -> None:
        self.path = path
        self._lock = asyncio.Lock()

    async def get(self) -> ContextRecord:
        """Current context; an empty record when nothing was saved yet."""
        async with self._lock:
            data = read_json(self.path, {})
        try:
            return ContextRecord.model_validate(data)
        except ValidationError:
            logger.warning("Ignoring invalid context document: %s", self.path)
            return ContextRecord()

    async def set(self, record: ContextRecord) -> ContextRecord:
        async with self._lock:
            write_json(self.path, record.model_dump(by_alias=True, mode="json"))
        logger.info("Context updated: %s", record.labeled_lines())
        return record
