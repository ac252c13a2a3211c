"""Shared test fixtures."""

import json
from pathlib import Path
from typing import Any

import pytest

from grambharat.chats.store import ChatStore
from grambharat.finance.profiles import ProfileStore
from grambharat.memory.context import ContextStore
from grambharat.memory.store import MemoryStore


def make_profile_data(
    name: str = "Test Farmer",
    *,
    credit: dict[str, Any] | None = None,
    income: dict[str, Any] | None = None,
    liabilities: dict[str, Any] | None = None,
    assets: dict[str, Any] | None = None,
    expenses: float = 8000,
) -> dict[str, Any]:
    """A camelCase profile document; defaults score 780 (see test_scoring)."""
    return {
        "personalInfo": {"name": name, "age": 40, "occupation": "Farmer"},
        "creditHistory": {
            "onTimePayments": 13,
            "latePayments": 8,
            "missedPayments": 0,
            "totalDefaults": 0,
            "recentDefaults": 0,
            "oldestAccountYears": 6,
            "creditInquiries": 1,
            **(credit or {}),
        },
        "income": {
            "totalMonthlyIncome": 20000,
            "incomeStability": "Stable",
            "employmentYears": 3,
            **(income or {}),
        },
        "liabilities": {"monthlyEMI": 2000, "totalDebt": 50000, **(liabilities or {})},
        "assets": {
            "totalAssets": 500000,
            "landOwnership": {"acres": 2, "estimatedValue": 300000},
            "property": {"estimatedValue": 150000},
            "gold": {"estimatedValue": 50000},
            **(assets or {}),
        },
        "expenses": {"totalMonthlyExpenses": expenses},
    }


@pytest.fixture
def profile_data():
    """Factory for profile documents; see ``make_profile_data``."""
    return make_profile_data


@pytest.fixture
def profiles_dir(tmp_path: Path) -> Path:
    """A profiles directory holding two applicants."""
    root = tmp_path / "financial-profiles"
    root.mkdir()
    for name in ("Ram Vilas", "Sita Devi"):
        path = root / (name.lower().replace(" ", "-") + ".json")
        path.write_text(json.dumps(make_profile_data(name)), encoding="utf-8")
    return root


@pytest.fixture
def profile_store(profiles_dir: Path) -> ProfileStore:
    return ProfileStore(profiles_dir)


@pytest.fixture
def chat_store(tmp_path: Path) -> ChatStore:
    return ChatStore(tmp_path / "chats")


@pytest.fixture
def memory_store(tmp_path: Path) -> MemoryStore:
    return MemoryStore(tmp_path / "memories.json")


@pytest.fixture
def context_store(tmp_path: Path) -> ContextStore:
    return ContextStore(tmp_path / "context.json")
