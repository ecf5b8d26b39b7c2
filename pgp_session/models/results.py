"""
Result records for engine and session operations.
"""

from dataclasses import dataclass, field

from pgp_session.models.status import Status


@dataclass(frozen=True, kw_only=True)
class OperationResult:
    """
    Outcome of a buffer-producing session operation.

    Attributes:
        ok: True when the operation completed.
        data: Produced bytes. Always empty when ``ok`` is False.
        status: Status of the operation; success when ``ok``.
        diagnostics: Extra engine output (stderr of subprocess calls).
    """

    ok: bool
    data: bytes = b""
    status: Status = field(default_factory=Status.success)
    diagnostics: bytes = b""

    def __bool__(self) -> bool:
        return self.ok

    @classmethod
    def from_status(
        cls, status: Status, data: bytes | bytearray = b"", diagnostics: bytes = b""
    ) -> "OperationResult":
        if not status.ok:
            return cls(ok=False, status=status, diagnostics=diagnostics)
        return cls(ok=True, data=bytes(data), status=status, diagnostics=diagnostics)


@dataclass(frozen=True, kw_only=True)
class DecryptResult:
    """Engine decrypt result record."""

    unsupported_algorithm: str | None = None


@dataclass(frozen=True, kw_only=True)
class EngineInfo:
    """Engine configuration as seen by the session."""

    protocol: str
    file_name: str
    home_dir: str
    version: str = ""


@dataclass(frozen=True, kw_only=True)
class ProcessOutput:
    """Captured output of a direct gpg invocation."""

    stdout: bytes
    stderr: bytes
    returncode: int
