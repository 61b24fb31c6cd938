"""Routes binding secret watch events to the variant orchestrator."""

import logging
from typing import Any, Optional

from .errors import MalformedPayload, UpsSyncError
from .intake import BindingRequestStore, decode_binding_request
from .models import BindingRequest, Outcome, ProcessingOutcome
from .orchestrator import VariantOrchestrator
from .status import OutcomeLog

logger = logging.getLogger(__name__)

ACTION_ADDED = "ADDED"
ACTION_DELETED = "DELETED"


class EventDispatcher:
    """
    Processes watch events one at a time.

    Added binding secrets create a variant (unless one exists) and are then
    deleted, whether or not creation worked. Deleted secrets owned by a
    ServiceBinding cascade to the mirror config map and the UPS variant.
    Errors are logged and recorded; they never stop the event stream.
    """

    def __init__(
        self,
        orchestrator: VariantOrchestrator,
        requests: BindingRequestStore,
        outcomes: Optional[OutcomeLog] = None,
    ):
        self.orchestrator = orchestrator
        self.requests = requests
        self.outcomes = outcomes or OutcomeLog()

    def dispatch(self, event: dict[str, Any]) -> ProcessingOutcome:
        """Handle a single watch event and record what happened."""
        action = str(event.get("type", ""))
        obj = event.get("raw_object") or event.get("object")

        if action == ACTION_ADDED:
            result = self._handle_added(obj)
        elif action == ACTION_DELETED:
            result = self._handle_deleted(obj)
        else:
            logger.info(f"Unhandled action: {action}")
            result = ProcessingOutcome(event_type=action, outcome=Outcome.IGNORED)

        self.outcomes.record(result)
        return result

    def _decode(self, action: str, obj) -> tuple[Optional[BindingRequest], Optional[ProcessingOutcome]]:
        try:
            return decode_binding_request(obj), None
        except MalformedPayload as e:
            logger.warning(f"Skipping malformed {action} event: {e}")
            return None, ProcessingOutcome(
                event_type=action, outcome=Outcome.IGNORED, message=str(e)
            )

    def _handle_added(self, obj) -> ProcessingOutcome:
        request, skipped = self._decode(ACTION_ADDED, obj)
        if request is None:
            return skipped
        if not request.is_binding:
            return ProcessingOutcome(
                event_type=ACTION_ADDED, request_name=request.name, outcome=Outcome.IGNORED
            )

        outcome, message = Outcome.IGNORED, f"app type {request.app_type!r} is not handled"
        try:
            if request.is_android:
                logger.info(f"A mobile binding secret of type Android was added: {request.name}")
                outcome, message = self._run(
                    request,
                    self.orchestrator.create_if_absent,
                    request.google_key,
                    request.client_id,
                    request.project_number,
                )
        finally:
            # The request is consumed whatever the outcome; failures stay
            # visible in the outcome log only.
            removed = self.requests.delete(request.name)
        return ProcessingOutcome(
            event_type=ACTION_ADDED,
            request_name=request.name,
            outcome=outcome,
            message=message,
            request_removed=removed,
        )

    def _handle_deleted(self, obj) -> ProcessingOutcome:
        request, skipped = self._decode(ACTION_DELETED, obj)
        if request is None:
            return skipped
        if not request.owned_by_binding:
            return ProcessingOutcome(
                event_type=ACTION_DELETED, request_name=request.name, outcome=Outcome.IGNORED
            )
        if not request.google_key:
            logger.info(
                f"Secret {request.name} does not contain a google key, can't delete android variant"
            )
            return ProcessingOutcome(
                event_type=ACTION_DELETED,
                request_name=request.name,
                outcome=Outcome.IGNORED,
                message="no google key",
            )

        outcome, message = self._run(request, self.orchestrator.delete_cascade, request.google_key)
        return ProcessingOutcome(
            event_type=ACTION_DELETED,
            request_name=request.name,
            outcome=outcome,
            message=message,
        )

    def _run(self, request: BindingRequest, operation, *args) -> tuple[Outcome, str]:
        try:
            return operation(*args), ""
        except UpsSyncError as e:
            logger.error(f"Processing secret {request.name} failed: {e}")
            return Outcome.FAILED, str(e)
