from pgp_session.models.results import OperationResult
from pgp_session.models.status import ErrorCode, Status


def test_from_status_success_keeps_data() -> None:
    result = OperationResult.from_status(Status.success(), bytearray(b"payload"))

    assert result
    assert result.data == b"payload"
    assert isinstance(result.data, bytes)


def test_from_status_failure_drops_data() -> None:
    status = Status.engine(ErrorCode.GENERAL)

    result = OperationResult.from_status(status, b"partial", diagnostics=b"gpg: oops")

    assert not result
    assert result.data == b""
    assert result.status is status
    assert result.diagnostics == b"gpg: oops"
