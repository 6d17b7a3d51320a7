"""
Shared fixtures for the screening test suite
"""

import pytest

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from config_manager import ConfigManager
from screener import EntityType, WatchlistEntry
from watchlist import load_seed_watchlist


@pytest.fixture
def config(tmp_path):
    """Default thresholds with the audit file disabled"""
    config_file = tmp_path / "config.yaml"
    config_file.write_text("""
audit:
  enabled: false
performance:
  concurrent_screening: false
""")
    ConfigManager.reset_instance()
    yield ConfigManager(str(config_file))
    ConfigManager.reset_instance()


@pytest.fixture
def seed_watchlist():
    return load_seed_watchlist()


@pytest.fixture
def make_entry():
    """Factory for single-name watchlist entries"""
    def _make(entry_id, name, aliases=(), nationality=None, date_of_birth=None,
              entity_type=EntityType.INDIVIDUAL):
        return WatchlistEntry(
            id=entry_id,
            name_parts=tuple(name.split()),
            aliases=frozenset(aliases),
            nationality=nationality,
            date_of_birth=date_of_birth,
            entity_type=entity_type
        )
    return _make
