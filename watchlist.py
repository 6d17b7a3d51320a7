"""
Watchlist supplier

Turns normalized sanctions list records (static seed data, parsed feeds,
imported files) into immutable WatchlistEntry values for the screener.
Record validation happens here, before any screening runs.
"""

import json
import logging
from datetime import date
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

from screener import EntityType, WatchlistEntry

logger = logging.getLogger(__name__)

SEED_WATCHLIST_PATH = Path(__file__).parent / "sanctions_data" / "seed_watchlist.json"

NAME_PART_KEYS = ('firstName', 'secondName', 'thirdName', 'lastName')


class WatchlistError(ValueError):
    """Raised when a watchlist record cannot be turned into an entry

    Attributes:
        field: The field that failed validation
        code: Error code for programmatic handling
    """
    def __init__(self, message: str, field: str = "unknown", code: str = "INVALID_RECORD"):
        self.field = field
        self.code = code
        super().__init__(message)


def _text(record: Dict[str, Any], key: str) -> str:
    value = record.get(key)
    if value is None:
        return ''
    return str(value).strip()


def _entity_type(value: Any) -> EntityType:
    if not value:
        return EntityType.INDIVIDUAL
    try:
        return EntityType(str(value).strip().capitalize())
    except ValueError:
        raise WatchlistError(f"Unknown entity type: {value!r}", field="type", code="INVALID_ENTITY_TYPE")


def entry_from_record(record: Dict[str, Any]) -> WatchlistEntry:
    """Build a WatchlistEntry from a normalized list record

    Args:
        record: Mapping with dataId, firstName..lastName, aliases,
            nationality, dateOfBirth, type and list metadata

    Returns:
        WatchlistEntry

    Raises:
        WatchlistError: If the id or every name part is missing
    """
    if not isinstance(record, dict):
        raise WatchlistError("Watchlist record must be a mapping", code="INVALID_RECORD")

    entry_id = _text(record, 'dataId')
    if not entry_id:
        raise WatchlistError("Watchlist record has no dataId", field="dataId", code="MISSING_ID")

    name_parts = tuple(p for p in (_text(record, k) for k in NAME_PART_KEYS) if p)
    if not name_parts:
        raise WatchlistError(f"Watchlist record {entry_id} has no name", field="name", code="MISSING_NAME")

    aliases = record.get('aliases') or []
    if isinstance(aliases, str):
        aliases = [aliases]

    return WatchlistEntry(
        id=entry_id,
        name_parts=name_parts,
        aliases=frozenset(str(a).strip() for a in aliases if a and str(a).strip()),
        nationality=_text(record, 'nationality') or None,
        date_of_birth=_text(record, 'dateOfBirth') or None,
        entity_type=_entity_type(record.get('type')),
        source=_text(record, 'source'),
        list_type=_text(record, 'unListType'),
        reference_number=_text(record, 'referenceNumber'),
        listed_on=_text(record, 'listedOn'),
        comments=_text(record, 'comments')
    )


def entries_from_records(records: Iterable[Dict[str, Any]]) -> List[WatchlistEntry]:
    """Build entries for every record, preserving order"""
    return [entry_from_record(r) for r in records]


def load_watchlist(path: Union[str, Path]) -> List[WatchlistEntry]:
    """Load watchlist entries from a JSON file

    The file holds either a list of records or an object with an
    ``entries`` list.

    Raises:
        WatchlistError: If the file is not valid JSON or a record is malformed
    """
    path = Path(path)
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise WatchlistError(f"Invalid JSON in watchlist file {path}: {e}", code="INVALID_JSON")

    if isinstance(data, dict):
        data = data.get('entries', [])
    if not isinstance(data, list):
        raise WatchlistError(f"Watchlist file {path} must contain a list of entries", code="INVALID_FORMAT")

    entries = entries_from_records(data)
    logger.info(f"✓ Loaded {len(entries)} watchlist entries from {path.name}")
    return entries


def load_seed_watchlist() -> List[WatchlistEntry]:
    """Load the bundled seed watchlist"""
    return load_watchlist(SEED_WATCHLIST_PATH)


def generate_synthetic_watchlist(count: int,
                                 base: Optional[Iterable[WatchlistEntry]] = None) -> List[WatchlistEntry]:
    """Seed entries followed by ``count`` simulated entries for load testing"""
    entries = list(base) if base is not None else load_seed_watchlist()
    listed_on = date.today().isoformat()

    for i in range(count):
        entries.append(WatchlistEntry(
            id=f"UN-GEN-{i}",
            name_parts=("TARGET", f"PERSON_{i}"),
            aliases=frozenset({f"Alias_{i}"}),
            nationality="Unknown" if i % 2 == 0 else "Simulated Nation",
            entity_type=EntityType.ENTITY if i % 5 == 0 else EntityType.INDIVIDUAL,
            source="UN Consolidated",
            list_type="Simulated",
            reference_number=f"SIM.{i}",
            listed_on=listed_on,
            comments="Simulated entry for load testing."
        ))

    return entries
