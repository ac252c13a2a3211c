"""Whole-document JSON persistence with atomic replace."""

from __future__ import annotations

import json
import logging
import os
from typing import TYPE_CHECKING, Any, TypeVar

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

T = TypeVar("T")


def read_json(path: Path, default: T) -> Any | T:
    """Load a JSON document, returning *default* if the file is missing.

    A corrupt document is logged and treated as missing.
    """
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return default
    except json.JSONDecodeError:
        logger.warning("Ignoring corrupt JSON document: %s", path)
        return default


def write_json(path: Path, data: Any) -> None:
    """Rewrite *path* atomically: write a sibling temp file, then replace."""
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
    os.replace(tmp, path)
