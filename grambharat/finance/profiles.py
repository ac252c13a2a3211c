"""Read-only lookup of applicant financial profiles by person name."""

from __future__ import annotations

import json
import logging
import re
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from grambharat.finance.models import FinancialProfile
from grambharat.finance.scoring import evaluate

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

_WHITESPACE_RE = re.compile(r"\s+")
_PROFILE_STEM_RE = re.compile(r"^[a-z0-9-]+$")


def normalize_name(person_name: str) -> str:
    """``"Ram  Vilas"`` -> ``"ram-vilas.json"``."""
    return _WHITESPACE_RE.sub("-", person_name.strip().lower()) + ".json"


class ProfileStore:
    """Profiles live as one camelCase JSON document per applicant."""

    def __init__(self, root: Path) -> None:
        self.root = root

    def path_for(self, person_name: str) -> Path | None:
        """File for *person_name*, or None when the name cannot be a profile file."""
        file_name = normalize_name(person_name)
        if not _PROFILE_STEM_RE.match(file_name.removesuffix(".json")):
            return None
        return self.root / file_name

    def load(self, person_name: str) -> FinancialProfile | None:
        """Return the profile, or None if nobody by that name is on file.

        Raises ValueError (or a pydantic ValidationError) for a document
        that exists but cannot be parsed.
        """
        path = self.path_for(person_name)
        if path is None:
            logger.warning("Rejected profile name %r", person_name)
            return None
        if not path.is_file():
            return None
        return FinancialProfile.model_validate_json(path.read_text(encoding="utf-8"))

    def list_names(self) -> list[str]:
        """Display names of every readable profile, sorted by file name."""
        names: list[str] = []
        if not self.root.is_dir():
            return names
        for path in sorted(self.root.glob("*.json")):
            try:
                data = json.loads(path.read_text(encoding="utf-8"))
                names.append(data["personalInfo"]["name"])
            except (OSError, ValueError, KeyError, TypeError):
                logger.warning("Skipping unreadable profile: %s", path.name)
        return names

    def check_loan_eligibility(self, person_name: str, loan_amount: float) -> dict[str, Any]:
        """Evaluate *person_name* for *loan_amount*; failures come back as data."""
        try:
            profile = self.load(person_name)
        except (OSError, ValueError, ValidationError):
            logger.exception("Failed to read profile for %s", person_name)
            return {
                "success": False,
                "error": (
                    "Error processing loan eligibility: "
                    f"the profile for {person_name} could not be read"
                ),
            }

        if profile is None:
            available = ", ".join(self.list_names())
            return {
                "success": False,
                "error": (
                    f"Financial profile not found for {person_name}. "
                    f"Available profiles: {available}"
                ),
            }

        result = evaluate(profile, loan_amount)
        logger.info(
            "Eligibility for %s (%.0f): eligible=%s score=%d",
            result.applicant,
            loan_amount,
            result.eligible,
            result.cibil_score,
        )
        return result.model_dump(by_alias=True)
