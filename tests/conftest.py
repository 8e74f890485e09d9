"""Shared test fixtures for the audio analysis relay."""

from __future__ import annotations

from pathlib import Path
from typing import Any
from unittest.mock import MagicMock

import pytest

from src.audit.logger import AuditLogger
from src.config import AppConfig
from src.models import AuditEvent, AuditEventType, RiskLevel
from src.webhook.signature import canonical_json, compute_signature

SECRET = "s3cr3t"
ACCESS_TOKEN = "test-access-token"
API_URL = "https://analysis.test/graphql"


@pytest.fixture
def mock_audit_logger() -> MagicMock:
    return MagicMock(spec=AuditLogger)


@pytest.fixture
def app_config(tmp_path: Path) -> AppConfig:
    return make_app_config(upload_dir=str(tmp_path / "uploads"))


# --- Factory functions for test data ---


def make_app_config(**kwargs: Any) -> AppConfig:
    """Factory for AppConfig with sensible defaults."""
    defaults: dict[str, Any] = {
        "port": 8080,
        "secret": SECRET,
        "access_token": ACCESS_TOKEN,
        "api_url": API_URL,
    }
    defaults.update(kwargs)
    return AppConfig(**defaults)


def make_audit_event(**kwargs: Any) -> AuditEvent:
    """Factory for AuditEvent with sensible defaults."""
    defaults: dict[str, object] = {
        "event_type": AuditEventType.WEBHOOK_ACCEPTED,
        "action": "test_action",
        "result": "success",
        "risk_level": RiskLevel.INFO,
    }
    defaults.update(kwargs)
    return AuditEvent(**defaults)  # type: ignore[arg-type]


def make_finished_event(track_id: str = "abc123", **kwargs: Any) -> dict[str, Any]:
    """Webhook payload for a finished AudioAnalysisV6 analysis."""
    payload: dict[str, Any] = {
        "type": "EVENT",
        "event": {"type": "AudioAnalysisV6", "status": "finished"},
        "resource": {"id": track_id},
    }
    payload.update(kwargs)
    return payload


def sign_payload(payload: Any, secret: str = SECRET) -> str:
    """Signature header value the sender would attach to ``payload``."""
    return compute_signature(secret, canonical_json(payload))
