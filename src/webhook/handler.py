"""Analysis webhook handler.

Checks run in a fixed order and each one can end the request:
1. Body present and a JSON object (422 otherwise)
2. TEST event (200, nothing else happens)
3. Signature over the re-serialized body (400 on mismatch)
4. Finished-analysis event -> queue a result fetch; 200 either way
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from src.models import AuditEvent, AuditEventType, RiskLevel
from src.webhook.models import WebhookEvent, WebhookResponse
from src.webhook.signature import canonical_json, is_signature_valid

if TYPE_CHECKING:
    from src.analysis.worker import AnalysisFetchWorker
    from src.audit.logger import AuditLogger

logger = logging.getLogger(__name__)


def _reject_constant(name: str) -> Any:
    # NaN and Infinity are not JSON
    raise ValueError(f"invalid JSON constant {name}")


class AnalysisWebhookHandler:
    """Validates inbound analysis notifications and hands finished ones to the worker."""

    def __init__(
        self,
        secret: str,
        worker: AnalysisFetchWorker,
        audit_logger: AuditLogger | None = None,
    ) -> None:
        self._secret = secret
        self._worker = worker
        self._audit = audit_logger

    def parse_body(self, body: bytes) -> dict[str, Any] | None:
        """Decode the request body; None when there is no usable JSON object."""
        if not body.strip():
            return None
        try:
            payload = json.loads(body, parse_constant=_reject_constant)
        except ValueError:
            return None
        if not isinstance(payload, dict):
            return None
        return payload

    def handle(
        self,
        body: bytes,
        signature: str | None,
        source_ip: str | None = None,
    ) -> WebhookResponse:
        payload = self.parse_body(body)
        if payload is None:
            logger.info("Unprocessable entity: empty or non-object webhook body")
            self._log(AuditEventType.WEBHOOK_REJECTED, "rejected", RiskLevel.LOW,
                      source_ip, {"reason": "missing_body"})
            return WebhookResponse(status_code=422, reason="Unprocessable Entity")

        logger.info("Incoming event:\n%s", json.dumps(payload, indent=2))

        event = WebhookEvent.from_payload(payload)
        if event.is_test:
            logger.info("Processing test event")
            self._log(AuditEventType.WEBHOOK_TEST, "success", RiskLevel.INFO, source_ip)
            return WebhookResponse(status_code=200, reason="OK")

        if not is_signature_valid(self._secret, signature, canonical_json(payload)):
            logger.info("Signature is invalid")
            self._log(AuditEventType.SIGNATURE_INVALID, "rejected", RiskLevel.HIGH,
                      source_ip, {"signature_present": bool(signature)})
            return WebhookResponse(status_code=400, reason="Bad Request")
        logger.info("Signature is valid")

        details: dict[str, object] = {"type": event.type}
        if event.is_analysis_finished:
            track_id = event.resource.id if event.resource else None
            if track_id:
                logger.info("Processing finish event for %s", track_id)
                self._worker.submit(track_id)
                details["track_id"] = track_id
            else:
                logger.warning("Finish event without resource id; nothing to fetch")

        self._log(AuditEventType.WEBHOOK_ACCEPTED, "success", RiskLevel.INFO,
                  source_ip, details)
        return WebhookResponse(status_code=200, reason="OK")

    def _log(
        self,
        event_type: AuditEventType,
        result: str,
        risk_level: RiskLevel,
        source_ip: str | None,
        details: dict[str, object] | None = None,
    ) -> None:
        if self._audit:
            self._audit.log(AuditEvent(
                event_type=event_type,
                source_ip=source_ip,
                action="incoming_webhook",
                result=result,
                risk_level=risk_level,
                details=details,
            ))
