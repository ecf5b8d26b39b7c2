"""
Status values returned by session operations.

Codes follow libgpg-error numbering so that statuses coming from GnuPG status
lines and statuses produced locally share one namespace. Operating system
errors live in the system-error namespace (``SYSTEM_ERROR | errno``).
"""

import errno as errno_module
import os
from dataclasses import dataclass
from enum import IntEnum, StrEnum

SYSTEM_ERROR = 1 << 15


class ErrorKind(StrEnum):
    """Error taxonomy used across the session."""

    NONE = "none"
    ENGINE_INIT = "engine_init"
    ENGINE_CONFIG = "engine_config"
    IO = "io"
    ENGINE_OPERATION = "engine_operation"
    UNSUPPORTED_ALGORITHM = "unsupported_algorithm"
    CANCELLED = "cancelled"
    PRECONDITION = "precondition"


class ErrorSource(StrEnum):
    """Where a status originated."""

    NONE = "Unspecified source"
    ENGINE = "GnuPG"
    SESSION = "pgp_session"
    SYSTEM = "System"
    USER = "User"


class ErrorCode(IntEnum):
    """libgpg-error codes used by the session."""

    NO_ERROR = 0
    GENERAL = 1
    NO_PUBKEY = 9
    BAD_PASSPHRASE = 11
    NO_SECKEY = 17
    NOT_FOUND = 27
    INV_VALUE = 55
    NO_DATA = 58
    UNSUPPORTED_ALGORITHM = 84
    CANCELED = 99
    INV_ENGINE = 150
    DECRYPT_FAILED = 152
    EOF = 16383

    @property
    def description(self) -> str:
        """Human readable text, as gpg_strerror() would print it."""
        match self:
            case ErrorCode.NO_ERROR:
                return "Success"
            case ErrorCode.NO_PUBKEY:
                return "No public key"
            case ErrorCode.BAD_PASSPHRASE:
                return "Bad passphrase"
            case ErrorCode.NO_SECKEY:
                return "No secret key"
            case ErrorCode.NOT_FOUND:
                return "Not found"
            case ErrorCode.INV_VALUE:
                return "Invalid value"
            case ErrorCode.NO_DATA:
                return "No data"
            case ErrorCode.UNSUPPORTED_ALGORITHM:
                return "Unsupported algorithm"
            case ErrorCode.CANCELED:
                return "Operation cancelled"
            case ErrorCode.INV_ENGINE:
                return "Invalid crypto engine"
            case ErrorCode.DECRYPT_FAILED:
                return "Decryption failed"
            case ErrorCode.EOF:
                return "End of file"
            case _:
                return "General error"

    @classmethod
    def from_engine(cls, value: int) -> "ErrorCode":
        """Map a raw GnuPG status code (source bits included) to a known code."""
        try:
            return cls(value & 0xFFFF)
        except ValueError:
            return cls.GENERAL


@dataclass(frozen=True, kw_only=True)
class Status:
    """
    Outcome of an engine or session call. Not an exception.

    Attributes:
        kind: Taxonomy bucket.
        code: libgpg-error code, or ``SYSTEM_ERROR | errno`` for I/O failures.
        source: Component that produced the status.
        message: Human readable description.
    """

    kind: ErrorKind = ErrorKind.NONE
    code: int = ErrorCode.NO_ERROR
    source: ErrorSource = ErrorSource.NONE
    message: str = ErrorCode.NO_ERROR.description

    @property
    def ok(self) -> bool:
        return self.kind is ErrorKind.NONE

    @property
    def cancelled(self) -> bool:
        return self.kind is ErrorKind.CANCELLED

    @property
    def is_io(self) -> bool:
        return bool(self.code & SYSTEM_ERROR)

    @property
    def errno(self) -> int | None:
        """The operating system errno for I/O statuses."""
        if not self.is_io:
            return None
        return self.code & ~SYSTEM_ERROR

    def __str__(self) -> str:
        if self.ok:
            return self.message
        return f"[{self.source}] {self.message}"

    @classmethod
    def success(cls) -> "Status":
        return cls()

    @classmethod
    def cancelled_by_user(cls) -> "Status":
        return cls(
            kind=ErrorKind.CANCELLED,
            code=ErrorCode.CANCELED,
            source=ErrorSource.USER,
            message=ErrorCode.CANCELED.description,
        )

    @classmethod
    def from_errno(cls, error_number: int | None, message: str | None = None) -> "Status":
        """Build an I/O status from an errno value (``EIO`` when unknown)."""
        number = error_number or errno_module.EIO
        return cls(
            kind=ErrorKind.IO,
            code=SYSTEM_ERROR | number,
            source=ErrorSource.SYSTEM,
            message=message or os.strerror(number),
        )

    @classmethod
    def engine(
        cls,
        code: ErrorCode,
        message: str | None = None,
        *,
        kind: ErrorKind = ErrorKind.ENGINE_OPERATION,
    ) -> "Status":
        if code is ErrorCode.CANCELED:
            return cls.cancelled_by_user()
        return cls(
            kind=kind,
            code=code,
            source=ErrorSource.ENGINE,
            message=message or code.description,
        )

    @classmethod
    def unsupported_algorithm(cls, algorithm: str) -> "Status":
        return cls(
            kind=ErrorKind.UNSUPPORTED_ALGORITHM,
            code=ErrorCode.UNSUPPORTED_ALGORITHM,
            source=ErrorSource.ENGINE,
            message=algorithm,
        )

    @classmethod
    def precondition(cls, message: str) -> "Status":
        return cls(
            kind=ErrorKind.PRECONDITION,
            code=ErrorCode.INV_VALUE,
            source=ErrorSource.SESSION,
            message=message,
        )
