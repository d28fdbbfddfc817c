from bytelink.enums import ErrorKind
from bytelink.exceptions import AllocationExhaustedError, CodeTakenError, LinkNotFoundError


def test_errors_carry_their_kind() -> None:
    exc = LinkNotFoundError("Short URL 'x' not found")

    assert exc.kind is ErrorKind.NOT_FOUND
    assert exc.to_dict() == {"kind": "not_found", "message": "Short URL 'x' not found"}
    assert repr(exc) == "LinkNotFoundError(kind='not_found', message=\"Short URL 'x' not found\")"


def test_code_taken_keeps_the_code() -> None:
    exc = CodeTakenError("promo1")

    assert exc.code == "promo1"
    assert str(exc) == "Short code 'promo1' is already taken"


def test_allocation_exhausted_keeps_attempts() -> None:
    exc = AllocationExhaustedError(10)

    assert exc.attempts == 10
    assert exc.kind is ErrorKind.ALLOCATION_EXHAUSTED
