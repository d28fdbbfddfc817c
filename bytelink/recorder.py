"""Click recording.

The click counter and the analytics stream only ever change together, inside
one ``store.update()`` call, so ``clicks == len(analytics)`` holds for every
committed state. The mutator re-checks liveness against the committed record:
a link deactivated or renamed between lookup and update fails closed with
LinkNotFoundError instead of counting the click.
"""

import logging

from prometheus_client import Counter

from bytelink.enums import RequestStatus
from bytelink.exceptions import LinkNotFoundError
from bytelink.schemas import ClickEvent, ClickResult, LinkRecord
from bytelink.store import LinkMutator, LinkStore
from bytelink.timeutils import utc_now

__all__ = ["ClickRecorder", "append_click"]

CLICKS_RECORDED_TOTAL = Counter(
    "bytelink_clicks_recorded_total",
    "Click recording attempts by outcome",
    ["status"],
)


def append_click(code: str, event: ClickEvent) -> LinkMutator:
    """Build the mutator that appends *event* to the live record holding *code*."""

    def mutate(record: LinkRecord) -> LinkRecord:
        if not record.is_active or record.short_code != code:
            raise LinkNotFoundError(f"Short URL '{code}' not found")
        # keep the stream non-decreasing when worker clocks disagree
        timestamp = event.timestamp
        if record.analytics and record.analytics[-1].timestamp > timestamp:
            timestamp = record.analytics[-1].timestamp
        record.analytics.append(event.model_copy(update={"timestamp": timestamp}))
        record.clicks += 1
        record.updated_at = utc_now()
        return record

    return mutate


class ClickRecorder:
    def __init__(self, store: LinkStore, logger: logging.Logger | logging.LoggerAdapter | None = None) -> None:
        self._store = store
        self._logger = logger or logging.getLogger("bytelink")

    async def record_click(self, code: str, event: ClickEvent | None = None) -> ClickResult:
        event = event or ClickEvent()
        record = await self._store.get_by_code(code)
        if record is None or not record.is_active:
            CLICKS_RECORDED_TOTAL.labels(status=RequestStatus.NOT_FOUND).inc()
            self._logger.warning(f"Click rejected, short code not found: {code}")
            raise LinkNotFoundError(f"Short URL '{code}' not found")

        try:
            updated = await self._store.update(record.id, append_click(code, event))
        except LinkNotFoundError:
            CLICKS_RECORDED_TOTAL.labels(status=RequestStatus.NOT_FOUND).inc()
            self._logger.warning(f"Click rejected, {code} was deactivated or renamed concurrently")
            raise
        if updated is None:
            CLICKS_RECORDED_TOTAL.labels(status=RequestStatus.NOT_FOUND).inc()
            raise LinkNotFoundError(f"Short URL '{code}' not found")

        CLICKS_RECORDED_TOTAL.labels(status=RequestStatus.SUCCESS).inc()
        self._logger.debug(f"Click recorded for {code}: {updated.clicks} total")
        return ClickResult(original_url=updated.original_url, clicks=updated.clicks)
