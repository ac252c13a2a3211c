"""Tests for the JSON-backed memory and context stores."""

import json
from pathlib import Path

from grambharat.memory.context import ContextStore
from grambharat.memory.models import ContextRecord, MemoryCategory, Season
from grambharat.memory.store import MemoryStore

# -- MemoryStore -------------------------------------------------------------


async def test_empty_store(memory_store: MemoryStore) -> None:
    assert await memory_store.get_all() == []


async def test_add_returns_record(memory_store: MemoryStore) -> None:
    record = await memory_store.add("Grows basmati rice", "agricultural")

    assert record.content == "Grows basmati rice"
    assert record.category is MemoryCategory.AGRICULTURAL
    assert record.id
    assert record.created_at.endswith("Z")


async def test_newest_first(memory_store: MemoryStore) -> None:
    await memory_store.add("first", "personal")
    await memory_store.add("second", "family")

    records = await memory_store.get_all()

    assert [r.content for r in records] == ["second", "first"]


async def test_unknown_category_becomes_other(memory_store: MemoryStore) -> None:
    record = await memory_store.add("Likes cricket", "hobbies")
    assert record.category is MemoryCategory.OTHER


async def test_file_shape(memory_store: MemoryStore) -> None:
    record = await memory_store.add("Has two cows", "financial")

    data = json.loads(memory_store.path.read_text(encoding="utf-8"))

    assert data == {
        "memories": [
            {
                "id": record.id,
                "content": "Has two cows",
                "category": "financial",
                "createdAt": record.created_at,
            }
        ]
    }
    assert not memory_store.path.with_suffix(".json.tmp").exists()


async def test_corrupt_file_reads_as_empty(memory_store: MemoryStore) -> None:
    memory_store.path.write_text("{broken", encoding="utf-8")

    assert await memory_store.get_all() == []
    await memory_store.add("recovered", "other")
    assert [r.content for r in await memory_store.get_all()] == ["recovered"]


async def test_malformed_entries_skipped(memory_store: MemoryStore) -> None:
    memory_store.path.write_text(
        json.dumps({"memories": [{"content": "ok", "category": "family"}, {"oops": 1}]}),
        encoding="utf-8",
    )

    records = await memory_store.get_all()

    assert [r.content for r in records] == ["ok"]


# -- ContextStore ------------------------------------------------------------


async def test_context_defaults_to_empty(context_store: ContextStore) -> None:
    record = await context_store.get()
    assert record == ContextRecord()
    assert record.labeled_lines() == []


async def test_context_overwrite(context_store: ContextStore) -> None:
    await context_store.set(ContextRecord(season=Season.MONSOON, location="Bihar"))
    await context_store.set(ContextRecord(crop_cycle="Kharif sowing"))

    record = await context_store.get()

    assert record.season is None
    assert record.location == ""
    assert record.crop_cycle == "Kharif sowing"


async def test_context_file_uses_camel_case(context_store: ContextStore, tmp_path: Path) -> None:
    await context_store.set(
        ContextRecord(season=Season.WINTER, location="Punjab", crop_cycle="Rabi", festival="Lohri")
    )

    data = json.loads((tmp_path / "context.json").read_text(encoding="utf-8"))

    assert data == {
        "season": "Winter",
        "location": "Punjab",
        "cropCycle": "Rabi",
        "festival": "Lohri",
    }


def test_context_accepts_blank_season() -> None:
    record = ContextRecord.model_validate({"season": "", "location": "Assam"})
    assert record.season is None
    assert record.labeled_lines() == ["Location: Assam"]


def test_context_labeled_lines_order() -> None:
    record = ContextRecord.model_validate(
        {"season": "Summer", "location": "Rajasthan", "cropCycle": "Fallow", "festival": "Teej"}
    )
    assert record.labeled_lines() == [
        "Season: Summer",
        "Location: Rajasthan",
        "Crop Cycle: Fallow",
        "Festival: Teej",
    ]
