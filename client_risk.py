"""
Client Risk Aggregation

Screens a client entity and every affiliated individual (directors,
shareholders, beneficial owners, signatories) and merges the per-person
outcomes into one client risk tier with an ordered match trail.

Evaluation order is fixed: entity, directors, shareholders, UBOs,
signatories, each list in its given order.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timezone
from functools import reduce
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Tuple

from audit_logger import AuditLogger, get_audit_logger
from config_manager import ConfigManager, get_config
from log_utils import sanitize_for_logging
from name_similarity import collapse_whitespace
from screener import EntityType, Identity, MatchResult, RiskTier, WatchlistEntry, resolve

logger = logging.getLogger(__name__)


class ClientRecordError(ValueError):
    """Raised when a client record cannot be screened"""

    def __init__(self, message: str, field: str, code: str):
        super().__init__(message)
        self.field = field
        self.code = code


def _entity_type(value: Any) -> EntityType:
    normalized = str(value).strip().capitalize()
    try:
        return EntityType(normalized)
    except ValueError:
        raise ClientRecordError(
            f"Unknown client type: {sanitize_for_logging(str(value), 50)}",
            field="type",
            code="INVALID_ENTITY_TYPE"
        )


def _field(record: Dict[str, Any], *keys: str) -> Optional[str]:
    for key in keys:
        value = record.get(key)
        if value:
            return str(value)
    return None


@dataclass(frozen=True)
class Director:
    name: str
    qid_or_passport: str = ''
    nationality: Optional[str] = None
    dob: Optional[str] = None

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> 'Director':
        return cls(
            name=record.get('name') or '',
            qid_or_passport=record.get('qidOrPassport') or '',
            nationality=_field(record, 'nationality'),
            dob=_field(record, 'dob')
        )


@dataclass(frozen=True)
class Shareholder:
    name: str
    ownership_percentage: float = 0.0
    qid_passport_cr_no: str = ''
    nationality: Optional[str] = None
    dob_or_doi: Optional[str] = None  # date of birth, or of incorporation for corporate holders

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> 'Shareholder':
        return cls(
            name=record.get('name') or '',
            ownership_percentage=float(record.get('ownershipPercentage') or 0),
            qid_passport_cr_no=record.get('qidPassportCrNo') or '',
            nationality=_field(record, 'nationality'),
            dob_or_doi=_field(record, 'dobOrDoi', 'incDateOrDob', 'dob')
        )


@dataclass(frozen=True)
class BeneficialOwner:
    name: str
    qid_or_passport: str = ''
    nationality: Optional[str] = None
    dob: Optional[str] = None

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> 'BeneficialOwner':
        return cls(
            name=record.get('name') or '',
            qid_or_passport=record.get('qidOrPassport') or '',
            nationality=_field(record, 'nationality'),
            dob=_field(record, 'dob')
        )


@dataclass(frozen=True)
class AuthorizedSignatory:
    name: str
    qid_or_passport: str = ''
    nationality: Optional[str] = None
    dob: Optional[str] = None
    authority: str = ''

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> 'AuthorizedSignatory':
        return cls(
            name=record.get('name') or '',
            qid_or_passport=record.get('qidOrPassport') or '',
            nationality=_field(record, 'nationality'),
            dob=_field(record, 'dob'),
            authority=record.get('authority') or ''
        )


@dataclass(frozen=True)
class ClientIdentityBundle:
    """The identity-bearing part of a client record"""
    client_id: str
    first_name: str
    middle_name: Optional[str] = None
    last_name: Optional[str] = None
    corporate_nationality: Optional[str] = None
    entity_type: EntityType = EntityType.ENTITY
    directors: Tuple[Director, ...] = ()
    shareholders: Tuple[Shareholder, ...] = ()
    ubos: Tuple[BeneficialOwner, ...] = ()
    signatories: Tuple[AuthorizedSignatory, ...] = ()

    def __post_init__(self):
        for name in ('directors', 'shareholders', 'ubos', 'signatories'):
            object.__setattr__(self, name, tuple(getattr(self, name)))

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> 'ClientIdentityBundle':
        """Build a bundle from a stored client record (camelCase keys)"""
        entity_type = record.get('type') or EntityType.ENTITY.value
        return cls(
            client_id=str(record.get('id') or ''),
            first_name=record.get('firstName') or '',
            middle_name=record.get('middleName') or None,
            last_name=record.get('lastName') or None,
            corporate_nationality=_field(record, 'corporateNationality', 'nationality'),
            entity_type=_entity_type(entity_type),
            directors=[Director.from_record(r) for r in record.get('directors') or []],
            shareholders=[Shareholder.from_record(r) for r in record.get('shareholders') or []],
            ubos=[BeneficialOwner.from_record(r) for r in record.get('ubos') or []],
            signatories=[AuthorizedSignatory.from_record(r) for r in record.get('signatories') or []]
        )


def identity_from_client(client: ClientIdentityBundle) -> Identity:
    return Identity.from_name_parts(
        client.first_name,
        client.middle_name,
        client.last_name,
        nationality=client.corporate_nationality,
        entity_type=client.entity_type
    )


def identity_from_director(person: Director) -> Identity:
    return Identity(collapse_whitespace(person.name), person.nationality, person.dob)


def identity_from_shareholder(person: Shareholder) -> Identity:
    return Identity(collapse_whitespace(person.name), person.nationality, person.dob_or_doi)


def identity_from_ubo(person: BeneficialOwner) -> Identity:
    return Identity(collapse_whitespace(person.name), person.nationality, person.dob)


def identity_from_signatory(person: AuthorizedSignatory) -> Identity:
    return Identity(collapse_whitespace(person.name), person.nationality, person.dob)


# (bundle attribute, identity constructor) in evaluation order
ROLE_SEQUENCE: Tuple[Tuple[str, Callable[[Any], Identity]], ...] = (
    ('directors', identity_from_director),
    ('shareholders', identity_from_shareholder),
    ('ubos', identity_from_ubo),
    ('signatories', identity_from_signatory),
)


@dataclass(frozen=True)
class EscalationState:
    """Running client risk while folding per-person matches"""
    risk_tier: RiskTier = RiskTier.NONE
    primary_match_id: Optional[str] = None


def should_escalate(new_tier: RiskTier, current_tier: RiskTier) -> bool:
    """Whether a person-level tier replaces the running client tier

    High always replaces, Medium replaces anything but High, and Low only
    replaces None. A later Low never overwrites an earlier Low or Medium.
    """
    if new_tier is RiskTier.HIGH:
        return True
    if new_tier is RiskTier.MEDIUM:
        return current_tier is not RiskTier.HIGH
    if new_tier is RiskTier.LOW:
        return current_tier is RiskTier.NONE
    return False


def escalate(state: EscalationState, match: MatchResult) -> EscalationState:
    """Fold one match into the running state

    The primary match id only moves when the tier strictly rises, so it
    names the first match found at the highest severity reached.
    """
    if not should_escalate(match.risk_tier, state.risk_tier):
        return state
    primary = state.primary_match_id
    if match.risk_tier.severity > state.risk_tier.severity:
        primary = match.source_entry_id
    return EscalationState(risk_tier=match.risk_tier, primary_match_id=primary)


@dataclass(frozen=True)
class AggregatedRisk:
    """Client-level screening outcome, replaced wholesale on every run"""
    risk_tier: RiskTier
    primary_match_id: Optional[str]
    match_trail: Tuple[str, ...]
    screened_at: datetime
    matches: Tuple[MatchResult, ...] = field(default=(), compare=False)

    @property
    def is_hit(self) -> bool:
        return self.risk_tier is not RiskTier.NONE

    def to_dict(self) -> Dict[str, Any]:
        return {
            'risk_tier': self.risk_tier.value,
            'primary_match_id': self.primary_match_id,
            'match_trail': list(self.match_trail),
            'screened_at': self.screened_at.isoformat(),
            'matches': [m.to_dict() for m in self.matches]
        }

    def apply_to_record(self, record: Dict[str, Any]) -> Dict[str, Any]:
        """Copy of a stored client record carrying this outcome"""
        updated = dict(record)
        updated.update({
            'lastScreenedAt': self.screened_at.isoformat(),
            'riskLevel': self.risk_tier.value,
            'matchId': self.primary_match_id,
            'matches': list(self.match_trail)
        })
        return updated


def _screen_client(client: ClientIdentityBundle,
                   watchlist: Tuple[WatchlistEntry, ...],
                   config: ConfigManager) -> Iterator[Tuple[str, MatchResult]]:
    """Yield (trail line, match) for every person that produced a match"""
    labels = config.aggregation

    entity_identity = identity_from_client(client)
    if entity_identity.full_name:
        match = resolve(entity_identity, watchlist, config)
        if match is not None:
            yield f"{labels.entity_label}: {match.source_entry_id}", match

    for role, to_identity in ROLE_SEQUENCE:
        label = labels.role_labels[role]
        for person in getattr(client, role):
            identity = to_identity(person)
            if not identity.full_name:
                continue
            match = resolve(identity, watchlist, config)
            if match is not None:
                yield (f"{label} ({person.name}): {match.source_entry_id}",
                       match.for_person(person.name))


def aggregate(client: ClientIdentityBundle,
              watchlist: Iterable[WatchlistEntry],
              config: Optional[ConfigManager] = None,
              screened_at: Optional[datetime] = None) -> AggregatedRisk:
    """Screen a client and all affiliated persons into one risk outcome

    Args:
        client: Client identity bundle
        watchlist: Watchlist entries, treated as read-only
        config: Configuration manager, defaults to the global instance
        screened_at: Timestamp of the run, defaults to now

    Returns:
        AggregatedRisk with the highest tier reached and the match trail
    """
    config = config or get_config()
    entries = tuple(watchlist)

    findings = list(_screen_client(client, entries, config))
    state = reduce(escalate, (match for _, match in findings), EscalationState())

    risk = AggregatedRisk(
        risk_tier=state.risk_tier,
        primary_match_id=state.primary_match_id,
        match_trail=tuple(line for line, _ in findings),
        screened_at=screened_at or datetime.now(timezone.utc),
        matches=tuple(match for _, match in findings)
    )

    logger.debug("Client %s screened: tier %s, %d trail entries",
                 client.client_id, risk.risk_tier.value, len(risk.match_trail))
    return risk


def _check_client_ids(bundles: List[ClientIdentityBundle]) -> None:
    seen = set()
    for position, client in enumerate(bundles):
        client_id = client.client_id.strip()
        if not client_id:
            raise ClientRecordError(
                f"Client at position {position} has no id",
                field="id",
                code="MISSING_CLIENT_ID"
            )
        if client_id in seen:
            raise ClientRecordError(
                f"Duplicate client id: {sanitize_for_logging(client_id, 50)}",
                field="id",
                code="DUPLICATE_CLIENT_ID"
            )
        seen.add(client_id)


def rescreen_clients(clients: Iterable[ClientIdentityBundle],
                     watchlist: Iterable[WatchlistEntry],
                     config: Optional[ConfigManager] = None,
                     audit: Optional[AuditLogger] = None) -> Dict[str, AggregatedRisk]:
    """Recompute the risk outcome of every client against a watchlist

    Used after a watchlist refresh. Clients are independent, so the run may
    be spread across a thread pool; the watchlist is shared read-only.

    Args:
        clients: Client identity bundles
        watchlist: Watchlist entries
        config: Configuration manager instance
        audit: AuditLogger receiving one event per client

    Returns:
        Mapping of client id to its new AggregatedRisk

    Raises:
        ClientRecordError: If a client id is empty or repeated
    """
    config = config or get_config()
    entries = tuple(watchlist)
    bundles: List[ClientIdentityBundle] = list(clients)
    _check_client_ids(bundles)
    screened_at = datetime.now(timezone.utc)

    if audit is None and config.audit.enabled:
        audit = get_audit_logger(config.audit.log_dir, config.audit.file_name)

    def run(client: ClientIdentityBundle) -> AggregatedRisk:
        return aggregate(client, entries, config, screened_at)

    performance = config.performance
    if performance.concurrent_screening and len(bundles) > 1:
        with ThreadPoolExecutor(max_workers=performance.max_workers) as executor:
            outcomes = list(executor.map(run, bundles))
    else:
        outcomes = [run(client) for client in bundles]

    results: Dict[str, AggregatedRisk] = {}
    for client, risk in zip(bundles, outcomes):
        results[client.client_id] = risk
        if audit is not None:
            audit.log_aggregation(client.client_id, risk, {'watchlist_size': len(entries)})

    flagged = sum(1 for risk in outcomes if risk.is_hit)
    logger.info("Re-screened %d clients against %d entries: %d flagged",
                len(bundles), len(entries), flagged)
    return results
