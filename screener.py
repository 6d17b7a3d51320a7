"""
Sanctions Screener
Edit-distance name matching with nationality and date-of-birth corroboration

Features:
- Name similarity against the canonical name and every alias of an entry
- Nationality corroboration (entry nationality contains query nationality)
- Exact date-of-birth corroboration on raw strings
- Risk tier classification (None < Low < Medium < High)
- Best-match resolution over a watchlist with first-wins tie-breaking
- Configurable thresholds via config.yaml
"""

import logging
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from functools import reduce
from typing import Any, Dict, FrozenSet, Iterable, Optional, Tuple

from audit_logger import get_audit_logger
from config_manager import ConfigManager, get_config
from log_utils import sanitize_for_logging
from name_similarity import collapse_whitespace, join_name_parts, similarity

logger = logging.getLogger(__name__)


class RiskTier(str, Enum):
    """Ordered severity classification derived from a match score"""
    NONE = 'None'
    LOW = 'Low'
    MEDIUM = 'Medium'
    HIGH = 'High'

    @property
    def severity(self) -> int:
        return _SEVERITY[self]


_SEVERITY = {
    RiskTier.NONE: 0,
    RiskTier.LOW: 1,
    RiskTier.MEDIUM: 2,
    RiskTier.HIGH: 3,
}


class MatchedField(str, Enum):
    """Signals that contributed to a match"""
    NAME = 'Name'
    NATIONALITY = 'Nationality'
    DATE_OF_BIRTH = 'DateOfBirth'


class EntityType(str, Enum):
    INDIVIDUAL = 'Individual'
    ENTITY = 'Entity'


@dataclass(frozen=True)
class Identity:
    """Query-side identity built for a single screening call"""
    full_name: str
    nationality: Optional[str] = None
    date_of_birth: Optional[str] = None
    entity_type: EntityType = EntityType.INDIVIDUAL

    @classmethod
    def from_name_parts(cls,
                        first_name: Optional[str],
                        middle_name: Optional[str] = None,
                        last_name: Optional[str] = None,
                        nationality: Optional[str] = None,
                        date_of_birth: Optional[str] = None,
                        entity_type: EntityType = EntityType.INDIVIDUAL) -> 'Identity':
        """Build an identity from separate name components"""
        return cls(
            full_name=join_name_parts(first_name, middle_name, last_name),
            nationality=nationality or None,
            date_of_birth=date_of_birth or None,
            entity_type=entity_type
        )


@dataclass(frozen=True)
class WatchlistEntry:
    """A sanctioned-party record, immutable during a screening pass"""
    id: str
    name_parts: Tuple[str, ...]
    aliases: FrozenSet[str] = frozenset()
    nationality: Optional[str] = None
    date_of_birth: Optional[str] = None
    entity_type: EntityType = EntityType.INDIVIDUAL
    # Informational list metadata, never used for matching
    source: str = ''
    list_type: str = ''
    reference_number: str = ''
    listed_on: str = ''
    comments: str = ''

    def __post_init__(self):
        object.__setattr__(self, 'name_parts', tuple(p for p in self.name_parts if p))
        object.__setattr__(self, 'aliases', frozenset(a for a in self.aliases if a))

    @property
    def canonical_name(self) -> str:
        return ' '.join(self.name_parts).strip()

    def candidate_names(self) -> Tuple[str, ...]:
        """Canonical name first, then aliases in a stable order"""
        return (self.canonical_name,) + tuple(sorted(self.aliases))


@dataclass(frozen=True)
class ConfidenceBreakdown:
    """Detailed confidence score breakdown"""
    name_score: float = 0.0
    base_score: float = 0.0
    composite_score: float = 0.0  # before clamping
    nationality_match: bool = False
    dob_match: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': round(self.name_score, 4),
            'base': round(self.base_score, 2),
            'composite': round(self.composite_score, 2),
            'nationality_match': self.nationality_match,
            'dob_match': self.dob_match
        }


@dataclass(frozen=True)
class MatchResult:
    """Outcome of scoring one identity against one watchlist entry"""
    source_entry_id: str
    score: float
    risk_tier: RiskTier
    matched_fields: FrozenSet[MatchedField] = frozenset()
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    confidence: ConfidenceBreakdown = field(default_factory=ConfidenceBreakdown)
    matched_name: str = ''
    matched_person_name: Optional[str] = None

    def for_person(self, person_name: str) -> 'MatchResult':
        """Copy of this result attributed to an affiliated person"""
        return replace(self, matched_person_name=person_name)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'source_entry_id': self.source_entry_id,
            'score': round(self.score, 2),
            'risk_tier': self.risk_tier.value,
            'matched_fields': sorted(f.value for f in self.matched_fields),
            'timestamp': self.timestamp.isoformat(),
            'confidence': self.confidence.to_dict(),
            'matched_name': self.matched_name,
            'matched_person_name': self.matched_person_name
        }


def classify_risk(score: float, config: Optional[ConfigManager] = None) -> RiskTier:
    """Map a 0-100 score onto a risk tier"""
    thresholds = (config or get_config()).matching.risk_thresholds
    if score >= thresholds['high']:
        return RiskTier.HIGH
    if score >= thresholds['medium']:
        return RiskTier.MEDIUM
    if score >= thresholds['low']:
        return RiskTier.LOW
    return RiskTier.NONE


def _best_name_score(full_name: str, entry: WatchlistEntry) -> Tuple[float, str]:
    best_score = 0.0
    best_name = ''
    for candidate in entry.candidate_names():
        score = similarity(full_name, candidate)
        if score > best_score:
            best_score = score
            best_name = candidate
    return best_score, best_name


def _nationality_corroborates(query: Optional[str], listed: Optional[str]) -> bool:
    # Containment runs one way: "Russian Federation" corroborates "Russia"
    if not query or not listed:
        return False
    return query.lower() in listed.lower()


def _dob_corroborates(query: Optional[str], listed: Optional[str]) -> bool:
    if not query or not listed:
        return False
    return query == listed


def score_entry(identity: Identity,
                entry: WatchlistEntry,
                config: Optional[ConfigManager] = None,
                timestamp: Optional[datetime] = None) -> MatchResult:
    """Score one identity against one watchlist entry

    The name score is the best similarity across the entry's canonical name
    and aliases. Nationality and date-of-birth agreement only boost a name
    score already above the corroboration floor.

    Args:
        identity: Query identity
        entry: Watchlist entry to compare against
        config: Configuration manager, defaults to the global instance
        timestamp: Screening instant recorded on the result

    Returns:
        MatchResult, including results whose tier is None
    """
    config = config or get_config()
    matching = config.matching

    name_score, matched_name = _best_name_score(identity.full_name, entry)
    nationality_match = _nationality_corroborates(identity.nationality, entry.nationality)
    dob_match = _dob_corroborates(identity.date_of_birth, entry.date_of_birth)

    base_score = name_score * 100
    composite = base_score
    if base_score > matching.corroboration_floor:
        if nationality_match:
            composite += matching.nationality_boost
        if dob_match:
            composite += matching.dob_boost

    final_score = float(min(composite, matching.max_score))

    matched_fields = set()
    if name_score > matching.name_field_threshold:
        matched_fields.add(MatchedField.NAME)
    if nationality_match:
        matched_fields.add(MatchedField.NATIONALITY)
    if dob_match:
        matched_fields.add(MatchedField.DATE_OF_BIRTH)

    return MatchResult(
        source_entry_id=entry.id,
        score=final_score,
        risk_tier=classify_risk(final_score, config),
        matched_fields=frozenset(matched_fields),
        timestamp=timestamp or datetime.now(timezone.utc),
        confidence=ConfidenceBreakdown(
            name_score=name_score,
            base_score=base_score,
            composite_score=composite,
            nationality_match=nationality_match,
            dob_match=dob_match
        ),
        matched_name=matched_name
    )


def resolve(identity: Identity,
            watchlist: Iterable[WatchlistEntry],
            config: Optional[ConfigManager] = None) -> Optional[MatchResult]:
    """Find the best-scoring watchlist entry for an identity

    Every entry is scored in the order supplied. A later entry only replaces
    the current best when its composite score is strictly greater, so the
    first entry wins ties.

    Args:
        identity: Query identity
        watchlist: Watchlist entries
        config: Configuration manager, defaults to the global instance

    Returns:
        Best MatchResult, or None when no entry reaches the Low tier
    """
    config = config or get_config()
    entries = tuple(watchlist)
    timestamp = datetime.now(timezone.utc)

    def keep_best(best: Optional[MatchResult], entry: WatchlistEntry) -> Optional[MatchResult]:
        candidate = score_entry(identity, entry, config, timestamp)
        best_score = best.confidence.composite_score if best is not None else 0.0
        if candidate.confidence.composite_score > best_score:
            return candidate
        return best

    best = reduce(keep_best, entries, None)

    if best is None or best.risk_tier is RiskTier.NONE:
        logger.debug("No match for %s across %d entries",
                     sanitize_for_logging(identity.full_name), len(entries))
        return None

    logger.debug("Matched %s to %s (score %.2f, tier %s)",
                 sanitize_for_logging(identity.full_name), best.source_entry_id,
                 best.score, best.risk_tier.value)
    return best


class SanctionsScreener:
    """Screens ad hoc identities against a fixed watchlist"""

    def __init__(self,
                 watchlist: Iterable[WatchlistEntry],
                 config: Optional[ConfigManager] = None,
                 audit: Optional[Any] = None):
        """Initialize screener

        Args:
            watchlist: Watchlist entries, frozen for the screener's lifetime
            config: Configuration manager instance
            audit: AuditLogger receiving one event per screening
        """
        self.config = config or get_config()
        self.watchlist: Tuple[WatchlistEntry, ...] = tuple(watchlist)
        if audit is None and self.config.audit.enabled:
            audit = get_audit_logger(self.config.audit.log_dir, self.config.audit.file_name)
        self.audit = audit

        logger.info("Screener initialized with %d watchlist entries", len(self.watchlist))

    def screen(self, identity: Identity) -> Optional[MatchResult]:
        """Resolve the best match for an identity"""
        return resolve(identity, self.watchlist, self.config)

    def screen_individual(self,
                          name: str,
                          nationality: Optional[str] = None,
                          date_of_birth: Optional[str] = None) -> Dict[str, Any]:
        """Screen a single name with optional corroborating fields

        Args:
            name: Full name to screen
            nationality: Optional nationality
            date_of_birth: Optional date of birth, compared verbatim

        Returns:
            Screening result dictionary
        """
        identity = Identity(
            full_name=collapse_whitespace(name),
            nationality=nationality or None,
            date_of_birth=date_of_birth or None
        )
        match = self.screen(identity)

        result = {
            'screening_id': str(uuid.uuid4()),
            'input': {
                'name': name,
                'nationality': nationality,
                'date_of_birth': date_of_birth
            },
            'screening_date': datetime.now(timezone.utc).isoformat(),
            'is_hit': match is not None,
            'risk_tier': match.risk_tier.value if match else RiskTier.NONE.value,
            'match': match.to_dict() if match else None,
            'algorithm_version': self.config.algorithm.version
        }

        if self.audit is not None:
            self.audit.log_screening(name, match, {'screening_id': result['screening_id']})

        return result
