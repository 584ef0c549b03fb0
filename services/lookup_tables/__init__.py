"""
Lookup Tables

Versioned JSON data assets consumed by the aggregation and allocation code:

- exercise_muscle_groups: exercise name -> muscle groups
- compound_exercises: multi-joint lifts
- strength_standards: 1RM thresholds per lift
- recommended_weekly_sets: weekly set targets per muscle group
- food_categories: food keyword -> shopping category
- meal_food_keywords: meal slot -> appropriate food keywords
- dietary_exclusions: restriction -> excluded keywords/categories

Tables ship with the package. Setting LOOKUP_TABLES_DIR points the loader at
a directory of same-named files, so tables can be extended without a release.

Usage:
    groups = muscle_groups_for("Barbell Bench Press")   # ["chest", ...]
    category = food_category_for("Grilled Chicken")     # "Meat & Poultry"
"""

import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional

from core.config import settings

logger = logging.getLogger(__name__)

BUNDLED_DIR = Path(__file__).resolve().parent

UNKNOWN_MUSCLE_GROUP = "unknown"


class LookupTableError(RuntimeError):
    """A lookup table file is missing or malformed."""


def _tables_dir() -> Path:
    if settings.LOOKUP_TABLES_DIR:
        return Path(settings.LOOKUP_TABLES_DIR)
    return BUNDLED_DIR


def load_table(name: str, directory: Optional[str] = None) -> Dict[str, Any]:
    """
    Load and validate a lookup table by name.

    Args:
        name: Table name without extension (e.g. "food_categories")
        directory: Optional directory override (defaults to settings / bundled)

    Returns:
        The parsed table document ({"version", "entries", ...})

    Raises:
        LookupTableError: If the file is missing, unreadable or has no entries
    """
    base = Path(directory) if directory else _tables_dir()
    return _load_table(name, base)


@lru_cache(maxsize=None)
def _load_table(name: str, base: Path) -> Dict[str, Any]:
    path = base / f"{name}.json"
    if not path.exists() and base != BUNDLED_DIR:
        logger.warning(f"Lookup table {name} not found in {base}, using bundled copy")
        path = BUNDLED_DIR / f"{name}.json"

    try:
        with path.open("r", encoding="utf-8") as fh:
            document = json.load(fh)
    except (OSError, json.JSONDecodeError) as e:
        raise LookupTableError(f"Cannot load lookup table {name} from {path}: {e}") from e

    if not isinstance(document, dict) or "entries" not in document:
        raise LookupTableError(f"Lookup table {name} has no 'entries' section")

    logger.debug(f"Loaded lookup table {name} version {document.get('version', 'unversioned')}")
    return document


def table_versions() -> Dict[str, str]:
    """Versions of every table in use (surfaced in reports for traceability)."""
    names = [
        "exercise_muscle_groups",
        "compound_exercises",
        "strength_standards",
        "recommended_weekly_sets",
        "food_categories",
        "meal_food_keywords",
        "dietary_exclusions",
    ]
    return {name: str(load_table(name).get("version", "unversioned")) for name in names}


def muscle_groups_for(exercise_name: str) -> List[str]:
    """Muscle groups for an exercise, ["unknown"] when no canonical name matches."""
    key = (exercise_name or "").lower()
    for canonical, muscles in load_table("exercise_muscle_groups")["entries"].items():
        if canonical in key:
            return list(muscles)
    return [UNKNOWN_MUSCLE_GROUP]


def is_compound(exercise_name: str) -> bool:
    key = (exercise_name or "").lower()
    return any(lift in key for lift in load_table("compound_exercises")["entries"])


def strength_standard_for(exercise_name: str) -> Optional[Dict[str, float]]:
    key = (exercise_name or "").lower()
    for lift, levels in load_table("strength_standards")["entries"].items():
        if lift in key:
            return levels
    return None


def recommended_weekly_sets(muscle_group: str) -> int:
    table = load_table("recommended_weekly_sets")
    return int(table["entries"].get(muscle_group, table.get("default", 10)))


def food_category_for(food_name: str) -> str:
    """Shopping category for a food name, "Other" when unmapped."""
    table = load_table("food_categories")
    key = (food_name or "").lower()
    for keyword, category in table["entries"].items():
        if keyword in key:
            return category
    return table.get("default", "Other")


def meal_keywords_for(meal_slot: str) -> List[str]:
    """Keywords for a meal slot; empty list means the slot accepts any food."""
    return list(load_table("meal_food_keywords")["entries"].get(meal_slot, []))


def dietary_exclusion_for(restriction: str) -> Dict[str, List[str]]:
    """Excluded keywords/categories for a restriction (empty when unknown)."""
    key = (restriction or "").lower().strip().replace("-", "_").replace(" ", "_")
    entry = load_table("dietary_exclusions")["entries"].get(key)
    if entry is None:
        return {"keywords": [], "categories": []}
    return {
        "keywords": list(entry.get("keywords", [])),
        "categories": list(entry.get("categories", [])),
    }
