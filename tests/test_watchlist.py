"""
Unit tests for the watchlist supplier
"""

import json

import pytest

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from screener import EntityType
from watchlist import (
    WatchlistError, entry_from_record, generate_synthetic_watchlist,
    load_seed_watchlist, load_watchlist
)


BOUT_RECORD = {
    "dataId": "UN-003",
    "source": "UN Consolidated",
    "firstName": "VIKTOR",
    "secondName": "ANATOLYEVICH",
    "lastName": "BOUT",
    "unListType": "Others",
    "referenceNumber": "ODi.002",
    "listedOn": "2004-03-17",
    "nationality": "Russian Federation",
    "dateOfBirth": "1967-01-13",
    "aliases": ["Victor But", "Vadim Markovich Aminov"],
    "type": "Individual",
}


class TestEntryFromRecord:
    """Tests for record to entry conversion"""

    def test_maps_all_fields(self):
        entry = entry_from_record(BOUT_RECORD)

        assert entry.id == "UN-003"
        assert entry.name_parts == ("VIKTOR", "ANATOLYEVICH", "BOUT")
        assert entry.canonical_name == "VIKTOR ANATOLYEVICH BOUT"
        assert entry.aliases == {"Victor But", "Vadim Markovich Aminov"}
        assert entry.nationality == "Russian Federation"
        assert entry.date_of_birth == "1967-01-13"
        assert entry.entity_type is EntityType.INDIVIDUAL
        assert entry.reference_number == "ODi.002"
        assert entry.list_type == "Others"

    def test_skips_missing_name_parts(self):
        entry = entry_from_record({"dataId": "X", "firstName": "AL-QAIDA", "lastName": ""})
        assert entry.name_parts == ("AL-QAIDA",)
        assert entry.aliases == frozenset()
        assert entry.nationality is None

    def test_entity_type_case_insensitive(self):
        entry = entry_from_record({"dataId": "X", "firstName": "DTG", "type": "ENTITY"})
        assert entry.entity_type is EntityType.ENTITY

    def test_missing_id(self):
        with pytest.raises(WatchlistError) as exc_info:
            entry_from_record({"firstName": "JOSEPH", "lastName": "KONY"})
        assert exc_info.value.code == "MISSING_ID"
        assert exc_info.value.field == "dataId"

    def test_missing_name(self):
        with pytest.raises(WatchlistError) as exc_info:
            entry_from_record({"dataId": "X", "firstName": "  "})
        assert exc_info.value.code == "MISSING_NAME"

    def test_unknown_entity_type(self):
        with pytest.raises(WatchlistError) as exc_info:
            entry_from_record({"dataId": "X", "firstName": "A", "type": "Vessel"})
        assert exc_info.value.code == "INVALID_ENTITY_TYPE"

    def test_not_a_mapping(self):
        with pytest.raises(WatchlistError):
            entry_from_record(["UN-003"])


class TestLoadWatchlist:
    """Tests for loading watchlist files"""

    def test_load_list_file(self, tmp_path):
        path = tmp_path / "list.json"
        path.write_text(json.dumps([BOUT_RECORD]), encoding='utf-8')

        entries = load_watchlist(path)
        assert [e.id for e in entries] == ["UN-003"]

    def test_load_entries_object(self, tmp_path):
        path = tmp_path / "list.json"
        path.write_text(json.dumps({"entries": [BOUT_RECORD, {"dataId": "X", "firstName": "A"}]}),
                        encoding='utf-8')

        entries = load_watchlist(str(path))
        assert [e.id for e in entries] == ["UN-003", "X"]

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "list.json"
        path.write_text("{not json", encoding='utf-8')

        with pytest.raises(WatchlistError) as exc_info:
            load_watchlist(path)
        assert exc_info.value.code == "INVALID_JSON"

    def test_invalid_shape(self, tmp_path):
        path = tmp_path / "list.json"
        path.write_text('"just a string"', encoding='utf-8')

        with pytest.raises(WatchlistError):
            load_watchlist(path)

    def test_seed_watchlist(self):
        entries = load_seed_watchlist()

        assert [e.id for e in entries] == ["UN-001", "UN-002", "UN-003", "UN-004", "QA-001", "QA-002"]
        assert entries[1].entity_type is EntityType.ENTITY


class TestSyntheticWatchlist:
    """Tests for simulated load-test entries"""

    def test_generates_after_seed(self):
        entries = generate_synthetic_watchlist(10)

        assert len(entries) == 16
        assert entries[6].id == "UN-GEN-0"
        assert entries[6].canonical_name == "TARGET PERSON_0"
        assert entries[6].aliases == {"Alias_0"}

    def test_alternating_attributes(self):
        entries = generate_synthetic_watchlist(6, base=[])

        assert [e.nationality for e in entries[:2]] == ["Unknown", "Simulated Nation"]
        assert [e.entity_type for e in entries] == [
            EntityType.ENTITY, EntityType.INDIVIDUAL, EntityType.INDIVIDUAL,
            EntityType.INDIVIDUAL, EntityType.INDIVIDUAL, EntityType.ENTITY,
        ]
