"""
Unit tests for the screening audit trail
"""

import json
from datetime import datetime, timezone

import pytest

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from audit_logger import (
    AuditEvent, AuditLogger, CLIENT_AGGREGATION, SCREENING,
    get_audit_logger, reset_audit_logger
)
from client_risk import AggregatedRisk
from screener import MatchResult, MatchedField, RiskTier


@pytest.fixture
def audit(tmp_path):
    logger = AuditLogger(log_dir=str(tmp_path))
    yield logger
    logger.close()


def _events(tmp_path):
    text = (tmp_path / "screening_audit.log").read_text(encoding='utf-8')
    return [json.loads(line) for line in text.splitlines()]


class TestAuditLogger:
    """Tests for structured audit events"""

    def test_log_screening_match(self, audit, tmp_path):
        match = MatchResult(
            source_entry_id="UN-004",
            score=100.0,
            risk_tier=RiskTier.HIGH,
            matched_fields=frozenset({MatchedField.NAME, MatchedField.NATIONALITY})
        )
        audit.log_screening("Joseph Kony", match)

        event = _events(tmp_path)[0]
        assert event['event_type'] == SCREENING
        assert event['subject'] == "Joseph Kony"
        assert event['risk_tier'] == "High"
        assert event['primary_match_id'] == "UN-004"
        assert event['context']['matched_fields'] == ["Name", "Nationality"]

    def test_log_screening_no_match(self, audit, tmp_path):
        audit.log_screening("John Smith", None)

        event = _events(tmp_path)[0]
        assert event['risk_tier'] == "None"
        assert event['primary_match_id'] is None

    def test_log_aggregation_sanitizes_trail(self, audit, tmp_path):
        risk = AggregatedRisk(
            risk_tier=RiskTier.LOW,
            primary_match_id="UBO-1",
            match_trail=("UBO (Evil\nINJECTED): UBO-1",),
            screened_at=datetime(2024, 5, 1, tzinfo=timezone.utc)
        )
        audit.log_aggregation("C-1", risk)

        events = _events(tmp_path)
        assert len(events) == 1
        assert events[0]['event_type'] == CLIENT_AGGREGATION
        assert events[0]['match_trail'] == ["UBO (Evil INJECTED): UBO-1"]
        assert events[0]['context']['screened_at'] == "2024-05-01T00:00:00+00:00"

    def test_context_sanitized(self, audit, tmp_path):
        audit.log_screening("A", None, {"note": "line1\nline2", "count": 3, "tags": ["x\ny", 1]})

        context = _events(tmp_path)[0]['context']
        assert context == {"note": "line1 line2", "count": 3, "tags": ["x y", 1]}

    def test_event_to_json(self):
        event = AuditEvent(event_type=SCREENING, subject="A", risk_tier="None")
        data = json.loads(event.to_json())

        assert data['match_trail'] == []
        assert data['timestamp']

    def test_global_instance(self, tmp_path):
        reset_audit_logger()
        try:
            first = get_audit_logger(log_dir=str(tmp_path))
            assert get_audit_logger() is first
        finally:
            reset_audit_logger()
