"""Invintus Sync - Ingestion Gateway.

Runs one webhook delivery end to end:
  sender error check → prune audit log → record payload → reconcile

Audit rows are committed before reconciliation starts, so a delivery that
fails still leaves its trail.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import ValidationError
from sqlmodel import Session

from invintus_sync.core.auth import Principal
from invintus_sync.core.errors import MalformedPayload, UpstreamValidationError
from invintus_sync.core.lifecycle import StatusSets
from invintus_sync.core.options import SiteOptions
from invintus_sync.models.payload_models import WebhookAction, WebhookErrors
from invintus_sync.models.sync_models import ReconcileResult
from invintus_sync.sync.audit import AuditLog
from invintus_sync.sync.engine import ReconciliationEngine
from invintus_sync.sync.hooks import SyncHooks
from invintus_sync.sync.normalizer import extract_event_id
from invintus_sync.core.logging import get_logger

logger = get_logger("sync.gateway")

ERROR_ACTION = "error"


def _sender_errors(params: Dict[str, Any]) -> WebhookErrors:
    raw = params.get("errors")
    if not isinstance(raw, dict):
        return WebhookErrors()
    return WebhookErrors.model_validate(raw)


def _parse_action(raw: Any) -> WebhookAction:
    # A missing action has no method; the engine rejects it as InvalidMethod
    if not isinstance(raw, dict):
        return WebhookAction()
    try:
        return WebhookAction.model_validate(raw)
    except ValidationError as e:
        raise MalformedPayload(f"Action is invalid: {e.errors()[0]['msg']}") from e


class IngestionGateway:
    """Entry point for inbound Invintus event notifications."""

    def __init__(
        self,
        session: Session,
        principal: Principal,
        options: SiteOptions,
        hooks: Optional[SyncHooks] = None,
        status_sets: Optional[StatusSets] = None,
    ):
        self.options = options
        self.audit = AuditLog(session, enabled=options.can_log_payloads)
        self.engine = ReconciliationEngine(
            session,
            principal,
            status_sets=status_sets,
            hooks=hooks,
            can_public_future_events=options.can_public_future_events,
        )

    def handle(
        self,
        params: Any,
        raw_body: str,
        now: Optional[datetime] = None,
    ) -> ReconcileResult:
        if not isinstance(params, dict):
            raise MalformedPayload("Request body must be a JSON object.")

        errors = _sender_errors(params)
        if errors.has_error:
            self.audit.record(None, ERROR_ACTION, errors.message)
            logger.warning(
                f"Sender flagged payload as erroneous: {errors.message}",
                extra={"action": ERROR_ACTION},
            )
            raise UpstreamValidationError(errors.message or "The sender reported an error.")

        self.audit.prune(self.options.invintus_log_retention, now=now)

        raw_action = params.get("action")
        data = params.get("data")
        action_type = raw_action.get("type") if isinstance(raw_action, dict) else None
        event_id = data.get("eventID") if isinstance(data, dict) else None
        self.audit.record(
            extract_event_id(str(event_id)) if event_id else None,
            str(action_type or ""),
            raw_body,
        )

        action = _parse_action(raw_action)
        return self.engine.reconcile(action, data, now=now)
