"""
Tests for the bundled lookup tables
"""
import json
import pytest

from services import lookup_tables
from services.lookup_tables import LookupTableError


class TestBundledTables:

    def test_every_table_is_versioned(self):
        """Every bundled table carries version 2024.1"""
        versions = lookup_tables.table_versions()
        assert len(versions) == 7
        assert all(v == "2024.1" for v in versions.values())

    def test_muscle_groups(self):
        """Muscle groups by substring match, unknown otherwise"""
        assert lookup_tables.muscle_groups_for("Incline Bench Press") == ["chest", "triceps", "shoulders"]
        assert lookup_tables.muscle_groups_for("Romanian Deadlift") == ["hamstrings", "glutes", "back", "traps"]
        assert lookup_tables.muscle_groups_for("Zercher Carry") == ["unknown"]
        assert lookup_tables.muscle_groups_for("") == ["unknown"]

    def test_compound(self):
        """Compound lifts are recognised"""
        assert lookup_tables.is_compound("Back Squat") is True
        assert lookup_tables.is_compound("Hammer Curl") is False

    def test_strength_standard(self):
        """Strength standards by lift, None when missing"""
        assert lookup_tables.strength_standard_for("Bench Press")["intermediate"] == 100
        assert lookup_tables.strength_standard_for("Curl") is None

    def test_weekly_sets(self):
        """Weekly set targets with a default"""
        assert lookup_tables.recommended_weekly_sets("back") == 16
        assert lookup_tables.recommended_weekly_sets("forearms") == 10

    def test_food_categories(self):
        """Food categories by keyword, Other otherwise"""
        assert lookup_tables.food_category_for("Grilled Chicken Thigh") == "Meat & Poultry"
        assert lookup_tables.food_category_for("Smoked Salmon") == "Seafood"
        assert lookup_tables.food_category_for("Dark Chocolate") == "Other"

    def test_meal_keywords(self):
        """Meal slot keywords, empty for slots without any"""
        assert "oats" in lookup_tables.meal_keywords_for("breakfast")
        assert lookup_tables.meal_keywords_for("dinner") == []

    def test_dietary_exclusion_normalizes_name(self):
        """Restriction names are normalised before lookup"""
        assert "whey" in lookup_tables.dietary_exclusion_for("Dairy-Free")["keywords"]
        assert lookup_tables.dietary_exclusion_for("carnivore") == {"keywords": [], "categories": []}


class TestTableOverrides:

    def test_directory_override(self, tmp_path):
        """A directory override replaces the bundled table"""
        (tmp_path / "recommended_weekly_sets.json").write_text(
            json.dumps({"version": "custom", "default": 6, "entries": {"chest": 20}})
        )
        table = lookup_tables.load_table("recommended_weekly_sets", str(tmp_path))
        assert table["version"] == "custom"
        assert table["entries"]["chest"] == 20

    def test_missing_override_falls_back_to_bundled(self, tmp_path):
        """Tables missing from the override directory come from the bundle"""
        table = lookup_tables.load_table("food_categories", str(tmp_path))
        assert table["version"] == "2024.1"

    def test_malformed_table(self, tmp_path):
        """A table without entries is rejected"""
        (tmp_path / "compound_exercises.json").write_text(json.dumps({"version": "x"}))
        with pytest.raises(LookupTableError):
            lookup_tables.load_table("compound_exercises", str(tmp_path))

    def test_unreadable_table(self, tmp_path):
        """Unparseable JSON is rejected"""
        (tmp_path / "strength_standards.json").write_text("{not json")
        with pytest.raises(LookupTableError):
            lookup_tables.load_table("strength_standards", str(tmp_path))

    def test_settings_directory_change_after_first_load(self, tmp_path, monkeypatch):
        """A LOOKUP_TABLES_DIR set after tables were cached is still honoured"""
        assert lookup_tables.recommended_weekly_sets("chest") == 12

        (tmp_path / "recommended_weekly_sets.json").write_text(
            json.dumps({"version": "custom", "default": 6, "entries": {"chest": 20}})
        )
        monkeypatch.setattr(lookup_tables.settings, "LOOKUP_TABLES_DIR", str(tmp_path))
        assert lookup_tables.recommended_weekly_sets("chest") == 20
        assert lookup_tables.recommended_weekly_sets("forearms") == 6

        monkeypatch.undo()
        assert lookup_tables.recommended_weekly_sets("chest") == 12
