"""Short code allocation for new links.

Flow Diagram - allocate()
=========================
::
    ┌─────────────┐
    │ validate URL│──── bad ───▶ InvalidUrlError
    └──────┬──────┘
           ▼
    ┌─────────────┐   custom    ┌──────────────┐  taken  ┌────────────────┐
    │ custom code?│ ──────────▶ │ validate +   │ ──────▶ │ CodeTakenError │
    └──────┬──────┘             │ reserve once │         └────────────────┘
       no  │                    └──────┬───────┘
           ▼                           │ reserved
    ┌─────────────┐  taken, retry      │
    │ nanoid(6) + │ ◀─────────┐        │
    │ reserve     │ ──────────┘        │
    └──────┬──────┘  > max attempts ───┼──▶ AllocationExhaustedError
           │ reserved                  │
           ▼                           ▼
    ┌─────────────────────────────────────┐
    │ short_url, QR (failure → None),     │
    │ insert LinkRecord(clicks=0)         │
    └─────────────────────────────────────┘

Key Behaviours
===============
- Uniqueness comes from the store's atomic reserve_if_absent(); there is no
  separate existence check to race against.
- Random candidates are base-62 nanoids; the retry loop is bounded.
- A store failure during reservation or insert propagates as-is and is
  never retried here: the outcome of the failed call is unknown.
- A reserved code is never released, even if the insert afterwards fails.
"""

import logging
import time

from nanoid import generate
from prometheus_client import Counter, Histogram

from bytelink.config import Settings, get_settings
from bytelink.enums import ErrorKind, RequestStatus
from bytelink.exceptions import AllocationExhaustedError, CodeTakenError, LinkError
from bytelink.qr import QRRenderer
from bytelink.schemas import LinkRecord
from bytelink.store import LinkStore
from bytelink.timeutils import utc_now
from bytelink.validation import build_short_url, validate_custom_code, validate_original_url

__all__ = ["ALPHABET", "CodeAllocator", "generate_short_code"]

ALPHABET = "abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"

LINK_ALLOCATIONS_TOTAL = Counter(
    "bytelink_link_allocations_total",
    "Link allocation attempts by outcome",
    ["status"],
)
CODE_COLLISIONS_TOTAL = Counter(
    "bytelink_code_collisions_total",
    "Randomly generated short codes that were already reserved",
)
QR_RENDER_FAILURES_TOTAL = Counter(
    "bytelink_qr_render_failures_total",
    "QR artifacts that failed to render and were stored as null",
)
LINK_ALLOCATION_DURATION = Histogram(
    "bytelink_link_allocation_duration_seconds",
    "Time taken to allocate a short link",
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5],
)


def generate_short_code(length: int = 6) -> str:
    assert isinstance(length, int) and length > 0, f"length must be a positive integer, got {length!r}"
    return generate(ALPHABET, length)


class CodeAllocator:
    """Validates or generates short codes and creates LinkRecords."""

    def __init__(
        self,
        store: LinkStore,
        qr_renderer: QRRenderer,
        settings: Settings | None = None,
        logger: logging.Logger | logging.LoggerAdapter | None = None,
    ) -> None:
        self._store = store
        self._qr = qr_renderer
        self._settings = settings or get_settings()
        self._logger = logger or logging.getLogger("bytelink")

    async def allocate(self, original_url: str, custom_code: str | None = None) -> LinkRecord:
        start_time = time.perf_counter()
        try:
            original_url = validate_original_url(original_url)
            if custom_code:
                short_code = await self.reserve_custom_code(custom_code)
            else:
                short_code = await self.reserve_generated_code()

            short_url = build_short_url(self._settings.BASE_URL, short_code)
            now = utc_now()
            record = LinkRecord(
                original_url=original_url,
                short_code=short_code,
                short_url=short_url,
                qr_code=await self.render_qr(short_url),
                created_at=now,
                updated_at=now,
            )
            record = await self._store.insert(record)
        except CodeTakenError as exc:
            LINK_ALLOCATIONS_TOTAL.labels(status=RequestStatus.CONFLICT).inc()
            self._logger.warning(f"Link allocation failed: {exc}")
            raise
        except LinkError as exc:
            status = RequestStatus.ERROR if exc.kind is ErrorKind.STORE_UNAVAILABLE else RequestStatus.VALIDATION_ERROR
            LINK_ALLOCATIONS_TOTAL.labels(status=status).inc()
            self._logger.warning(f"Link allocation failed: {exc}")
            raise
        finally:
            LINK_ALLOCATION_DURATION.observe(time.perf_counter() - start_time)

        LINK_ALLOCATIONS_TOTAL.labels(status=RequestStatus.SUCCESS).inc()
        self._logger.info(f"Link allocated: {record.short_code} -> {record.original_url}")
        return record

    async def reserve_custom_code(self, custom_code: str) -> str:
        code = validate_custom_code(custom_code, self._settings.CUSTOM_CODE_MAX_LENGTH)
        if not await self._store.reserve_if_absent(code):
            raise CodeTakenError(code)
        return code

    async def reserve_generated_code(self) -> str:
        attempts = self._settings.CODE_ALLOCATION_MAX_ATTEMPTS
        for attempt in range(1, attempts + 1):
            candidate = generate_short_code(self._settings.SHORT_CODE_LENGTH)
            if await self._store.reserve_if_absent(candidate):
                return candidate
            CODE_COLLISIONS_TOTAL.inc()
            self._logger.debug(f"Short code collision on {candidate} (attempt {attempt}/{attempts})")

        self._logger.error(f"Short code allocation exhausted after {attempts} attempts")
        raise AllocationExhaustedError(attempts)

    async def render_qr(self, short_url: str) -> str | None:
        try:
            return await self._qr.render(short_url)
        except Exception as exc:
            QR_RENDER_FAILURES_TOTAL.inc()
            self._logger.warning(f"QR rendering failed for {short_url}, storing without artifact: {exc}")
            return None
