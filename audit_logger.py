"""
Screening Audit Logging Module

Provides structured logging for screening outcomes:
- Ad hoc identity screenings
- Client risk aggregations (entity plus affiliated persons)

Every event is written as one JSON object per line so the match trail of
each decision can be reconstructed later.

SECURITY: Names and free-text values are sanitized before logging.
"""

import json
import logging
from dataclasses import dataclass, field as dataclass_field
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Dict, Any, List

from log_utils import sanitize_for_logging

SCREENING = "SCREENING"
CLIENT_AGGREGATION = "CLIENT_AGGREGATION"


@dataclass
class AuditEvent:
    """Structured audit event for one screening decision"""
    event_type: str  # SCREENING or CLIENT_AGGREGATION
    subject: str  # screened name or client id, sanitized
    risk_tier: str
    primary_match_id: Optional[str] = None
    match_trail: List[str] = dataclass_field(default_factory=list)
    context: Dict[str, Any] = dataclass_field(default_factory=dict)
    timestamp: str = dataclass_field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization"""
        return {
            'timestamp': self.timestamp,
            'event_type': self.event_type,
            'subject': self.subject,
            'risk_tier': self.risk_tier,
            'primary_match_id': self.primary_match_id,
            'match_trail': self.match_trail,
            'context': self.context
        }

    def to_json(self) -> str:
        """Convert to JSON string"""
        return json.dumps(self.to_dict(), ensure_ascii=False)


class AuditLogger:
    """Writes screening audit events to a dedicated log file

    Features:
    - Separate audit log file
    - JSON-formatted events for easy parsing
    - Automatic sanitization of names and trail entries
    """

    def __init__(
        self,
        log_dir: str = "logs",
        file_name: str = "screening_audit.log",
        enable_console: bool = False,
        enable_file: bool = True
    ):
        """Initialize audit logger

        Args:
            log_dir: Directory for log files
            file_name: Audit log file name
            enable_console: Also output to console
            enable_file: Write to the audit log file
        """
        self.log_dir = Path(log_dir)
        self.log_path = self.log_dir / file_name

        self.logger = logging.getLogger('audit')
        self.logger.setLevel(logging.INFO)
        self.logger.propagate = False
        for handler in list(self.logger.handlers):
            handler.close()
        self.logger.handlers.clear()

        formatter = logging.Formatter('%(message)s')

        if enable_file:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(self.log_path, encoding='utf-8')
            file_handler.setFormatter(formatter)
            self.logger.addHandler(file_handler)

        if enable_console:
            console_handler = logging.StreamHandler()
            console_handler.setFormatter(formatter)
            self.logger.addHandler(console_handler)

        if not self.logger.handlers:
            self.logger.addHandler(logging.NullHandler())

    def close(self) -> None:
        """Close and detach all handlers"""
        for handler in list(self.logger.handlers):
            handler.close()
            self.logger.removeHandler(handler)

    def _sanitize_context(self, context: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        """Sanitize string values of a context dictionary"""
        if not context:
            return {}

        sanitized = {}
        for key, value in context.items():
            safe_key = sanitize_for_logging(str(key), max_length=100) or "unknown"
            if value is None or isinstance(value, (bool, int, float)):
                sanitized[safe_key] = value
            elif isinstance(value, dict):
                sanitized[safe_key] = self._sanitize_context(value)
            elif isinstance(value, (list, tuple)):
                sanitized[safe_key] = [
                    item if isinstance(item, (bool, int, float, type(None)))
                    else sanitize_for_logging(str(item), max_length=200)
                    for item in value
                ]
            else:
                sanitized[safe_key] = sanitize_for_logging(str(value), max_length=200)
        return sanitized

    def log_event(self, event: AuditEvent) -> None:
        """Write a prepared audit event"""
        self.logger.info(event.to_json())

    def log_screening(
        self,
        name: str,
        match: Optional[Any],
        additional_context: Optional[Dict[str, Any]] = None
    ) -> AuditEvent:
        """Log the outcome of a single identity screening

        Args:
            name: Screened name (will be sanitized)
            match: MatchResult or None when nothing qualified
            additional_context: Additional context data (will be sanitized)
        """
        context = self._sanitize_context(additional_context)
        if match is not None:
            context['score'] = round(match.score, 2)
            context['matched_fields'] = sorted(f.value for f in match.matched_fields)

        event = AuditEvent(
            event_type=SCREENING,
            subject=sanitize_for_logging(name, max_length=200),
            risk_tier=match.risk_tier.value if match is not None else "None",
            primary_match_id=match.source_entry_id if match is not None else None,
            context=context
        )
        self.log_event(event)
        return event

    def log_aggregation(
        self,
        client_id: str,
        risk: Any,
        additional_context: Optional[Dict[str, Any]] = None
    ) -> AuditEvent:
        """Log an aggregated client risk outcome

        Args:
            client_id: Identifier of the screened client
            risk: AggregatedRisk for that client
            additional_context: Additional context data (will be sanitized)
        """
        context = self._sanitize_context(additional_context)
        context['screened_at'] = risk.screened_at.isoformat()

        event = AuditEvent(
            event_type=CLIENT_AGGREGATION,
            subject=sanitize_for_logging(client_id, max_length=200),
            risk_tier=risk.risk_tier.value,
            primary_match_id=risk.primary_match_id,
            match_trail=[sanitize_for_logging(line, max_length=300) for line in risk.match_trail],
            context=context
        )
        self.log_event(event)
        return event


# Global audit logger instance
_audit_logger: Optional[AuditLogger] = None


def get_audit_logger(
    log_dir: str = "logs",
    file_name: str = "screening_audit.log",
    enable_console: bool = False
) -> AuditLogger:
    """Get or create the global audit logger instance"""
    global _audit_logger
    if _audit_logger is None:
        _audit_logger = AuditLogger(
            log_dir=log_dir,
            file_name=file_name,
            enable_console=enable_console
        )
    return _audit_logger


def reset_audit_logger() -> None:
    """Reset the global audit logger (for testing)"""
    global _audit_logger
    if _audit_logger is not None:
        _audit_logger.close()
    _audit_logger = None
