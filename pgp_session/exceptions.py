"""
pgp_session exception hierarchy.

Session operations never raise these to their callers: the engine layer raises
``EngineError`` and the services turn it into a reported ``Status``.
"""

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from pgp_session.models.status import Status


class PgpSessionError(Exception):
    """Base exception for all pgp_session errors."""

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context = context

    def __str__(self) -> str:
        if self.context:
            ctx = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
            return f"{self.message} ({ctx})"
        return self.message


class EngineError(PgpSessionError):
    """An engine call failed; ``status`` describes the failure."""

    def __init__(self, status: "Status") -> None:
        super().__init__(status.message, code=int(status.code), kind=str(status.kind))
        self.status = status


class KeyStoreInUseError(PgpSessionError):
    """Another open session already owns this key store."""

    def __init__(self, message: str, *, key_store: str) -> None:
        super().__init__(message, key_store=key_store)
        self.key_store = key_store
