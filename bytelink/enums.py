"""Shared enums for the ByteLink core.

This module defines all status and state enums used across the codebase.
Using enums instead of string literals provides type safety and prevents typos.
"""

from enum import StrEnum

__all__ = ["ErrorKind", "HealthStatus", "LinkSort", "RequestStatus", "CacheStatus"]


class ErrorKind(StrEnum):
    """Structured failure kinds reported to callers."""

    INVALID_URL = "invalid_url"
    INVALID_CODE = "invalid_code"
    CODE_TAKEN = "code_taken"
    ALLOCATION_EXHAUSTED = "allocation_exhausted"
    NOT_FOUND = "not_found"
    STORE_UNAVAILABLE = "store_unavailable"


class HealthStatus(StrEnum):
    """Health check status values."""

    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"


class LinkSort(StrEnum):
    """Orderings supported by LinkStore.list_active()."""

    CREATED_DESC = "created_desc"
    CLICKS_DESC = "clicks_desc"


class RequestStatus(StrEnum):
    """Request status values for metrics and logging."""

    SUCCESS = "success"
    VALIDATION_ERROR = "validation_error"
    CONFLICT = "conflict"
    ERROR = "error"
    NOT_FOUND = "not_found"


class CacheStatus(StrEnum):
    """Cache status values for metrics."""

    HIT = "true"
    MISS = "false"
