"""Data models for the analysis webhook."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict

TEST_EVENT_TYPE = "TEST"
ANALYSIS_EVENT_TYPE = "AudioAnalysisV6"
ANALYSIS_FINISHED_STATUS = "finished"


class EventInfo(BaseModel):
    model_config = ConfigDict(extra="allow")

    type: str | None = None
    status: str | None = None


class ResourceRef(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str | None = None


class WebhookEvent(BaseModel):
    """Inbound notification. TEST events carry neither ``event`` nor ``resource``."""

    model_config = ConfigDict(extra="allow")

    type: str | None = None
    event: EventInfo | None = None
    resource: ResourceRef | None = None

    @property
    def is_test(self) -> bool:
        return self.type == TEST_EVENT_TYPE

    @property
    def is_analysis_finished(self) -> bool:
        return (
            self.event is not None
            and self.event.type == ANALYSIS_EVENT_TYPE
            and self.event.status == ANALYSIS_FINISHED_STATUS
        )

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> WebhookEvent:
        """Lenient parse: malformed nested fields are dropped, not rejected."""
        event = payload.get("event")
        resource = payload.get("resource")
        raw_type = payload.get("type")
        return cls(
            type=raw_type if isinstance(raw_type, str) else None,
            event=_lenient(EventInfo, event),
            resource=_lenient(ResourceRef, resource),
        )


def _lenient(model: type[BaseModel], value: Any) -> Any:
    if not isinstance(value, dict):
        return None
    cleaned = {
        key: item for key, item in value.items()
        if key not in model.model_fields or isinstance(item, str)
    }
    return model.model_validate(cleaned)


@dataclass
class WebhookResponse:
    """Outcome of one webhook request."""

    status_code: int
    reason: str
