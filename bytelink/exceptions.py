"""Structured failures raised by the ByteLink core.

Every failure carries an ErrorKind and a human readable message so the
surrounding HTTP/CLI layer can map it without string matching::

    try:
        link = await service.allocate(url, custom_code="promo1")
    except CodeTakenError as exc:
        return JSONResponse(status_code=409, content=exc.to_dict())
"""

from bytelink.enums import ErrorKind

__all__ = [
    "LinkError",
    "InvalidUrlError",
    "InvalidCodeError",
    "CodeTakenError",
    "AllocationExhaustedError",
    "LinkNotFoundError",
    "StoreUnavailableError",
]


class LinkError(Exception):
    """Base class for all core failures."""

    kind: ErrorKind = ErrorKind.STORE_UNAVAILABLE

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, str]:
        return {"kind": self.kind.value, "message": self.message}

    def __repr__(self) -> str:
        return f"{type(self).__name__}(kind={self.kind.value!r}, message={self.message!r})"


class InvalidUrlError(LinkError):
    kind = ErrorKind.INVALID_URL


class InvalidCodeError(LinkError):
    kind = ErrorKind.INVALID_CODE


class CodeTakenError(LinkError):
    kind = ErrorKind.CODE_TAKEN

    def __init__(self, code: str) -> None:
        super().__init__(f"Short code '{code}' is already taken")
        self.code = code


class AllocationExhaustedError(LinkError):
    kind = ErrorKind.ALLOCATION_EXHAUSTED

    def __init__(self, attempts: int) -> None:
        super().__init__(f"Could not allocate a free short code after {attempts} attempts")
        self.attempts = attempts


class LinkNotFoundError(LinkError):
    kind = ErrorKind.NOT_FOUND


class StoreUnavailableError(LinkError):
    kind = ErrorKind.STORE_UNAVAILABLE
