"""Shared Pydantic data models for the audio analysis relay."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

# --- Enums ---


class AuditEventType(str, Enum):
    WEBHOOK_TEST = "webhook_test"
    WEBHOOK_ACCEPTED = "webhook_accepted"
    WEBHOOK_REJECTED = "webhook_rejected"
    SIGNATURE_INVALID = "signature_invalid"
    ANALYSIS_FETCH = "analysis_fetch"
    FILE_UPLOAD = "file_upload"


class RiskLevel(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INFO = "info"


# --- Upload Models ---


class UploadedFile(BaseModel):
    model_config = ConfigDict(frozen=True)

    file_id: str
    original_name: str
    stored_path: str
    size: int = Field(ge=0)
    content_type: str | None = None


# --- REST Models ---


class VersionInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    version: str = "1.0"


class SongDataRequest(BaseModel):
    id: str = Field(min_length=1)


# --- Audit Models ---


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


class AuditEvent(BaseModel):
    timestamp: str = Field(default_factory=_now_iso)
    event_type: AuditEventType
    source_ip: str | None = None
    action: str
    result: str  # "success" | "failure" | "rejected"
    risk_level: RiskLevel
    details: dict[str, object] | None = None
