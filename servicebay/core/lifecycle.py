"""
Status transitions for service records.

A job moves through ``pending -> in-progress -> ready-for-pickup ->
picked-up`` and may be cancelled at any point before it is picked up.
Operators can move a job backwards between the open states; ``picked-up``
and ``cancelled`` are final.

Every successful write here is committed, reloaded with its vehicle and
owner, and then published to live subscribers.
"""
import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from servicebay.core.broadcast import SERVICE_UPDATE, Broadcaster
from servicebay.core.records import ServiceRecordStore, parse_writable_status
from servicebay.exceptions import InvalidTransition
from servicebay.models.service import ServiceRecord, ServiceStatus
from servicebay.schemas.service import ServiceRecord as ServiceRecordSchema

logger = logging.getLogger("servicebay.lifecycle")

AUTO_CANCEL_AFTER = timedelta(hours=24)
AUTO_CANCEL_MESSAGE = "Automatically cancelled due to no action within 24 hours."


def snapshot(record: ServiceRecord) -> Dict[str, Any]:
    """The JSON form of ``record`` sent to subscribers."""
    return ServiceRecordSchema.model_validate(record).model_dump(mode="json", by_alias=True)


def check_transition(current: ServiceStatus, target: ServiceStatus) -> None:
    """Raise :class:`InvalidTransition` if a record in ``current`` may not move to ``target``."""
    if current.is_terminal and target is not current:
        raise InvalidTransition(current.value, target.value)


class StatusTransitionEngine:
    """Applies status changes and the stale-job sweep."""

    def __init__(
        self,
        store: ServiceRecordStore,
        broadcaster: Broadcaster,
        auto_cancel_after: timedelta = AUTO_CANCEL_AFTER,
    ):
        self.store = store
        self.broadcaster = broadcaster
        self.auto_cancel_after = auto_cancel_after

    async def set_status(self, record_id: str, status: Any) -> ServiceRecord:
        target = parse_writable_status(status)
        record = await self.store.get(record_id)
        check_transition(record.state, target)

        await self.store.set_status(record_id, target)
        return await self._commit_and_publish(record_id)

    async def update(self, record_id: str, patch: Dict[str, Any]) -> ServiceRecord:
        """Full-field update; a status change in ``patch`` gets the same checks as :meth:`set_status`."""
        if "status" in patch and patch["status"] is not None:
            target = parse_writable_status(patch["status"])
            record = await self.store.get(record_id)
            check_transition(record.state, target)

        await self.store.update_fields(record_id, patch)
        return await self._commit_and_publish(record_id)

    async def publish_created(self, record_id: str) -> ServiceRecord:
        return await self._commit_and_publish(record_id)

    async def auto_cancel_sweep(self, now: Optional[datetime] = None) -> List[ServiceRecord]:
        """
        Cancel pending jobs that have waited too long.

        The update only matches records still pending, so running the sweep
        again, or concurrently, never cancels or announces a record twice.
        Each cancelled record's description is replaced by the audit message.
        """
        cancelled_ids = await self.store.cancel_stale(self.auto_cancel_after, AUTO_CANCEL_MESSAGE, now=now)
        await self.store.commit()
        if not cancelled_ids:
            logger.debug("Auto-cancel sweep: nothing to cancel")
            return []

        logger.info("Auto-cancel sweep cancelled %d record(s)", len(cancelled_ids))
        cancelled = []
        for record_id in cancelled_ids:
            # Already committed; skip to the next record
            try:
                record = await self.store.get(record_id)
            except Exception:
                logger.exception("Could not reload cancelled service record %s", record_id)
                continue
            self._publish(record)
            cancelled.append(record)
        return cancelled

    async def _commit_and_publish(self, record_id: str) -> ServiceRecord:
        await self.store.commit()
        record = await self.store.get(record_id)
        self._publish(record)
        return record

    def _publish(self, record: ServiceRecord) -> None:
        try:
            self.broadcaster.publish(SERVICE_UPDATE, snapshot(record))
        except Exception:
            logger.exception("Failed to publish update for service record %s", record.id)
