"""
Engine protocol definition.

The session talks to the OpenPGP engine only through these interfaces, so the
GnuPG binding can be replaced (or faked in tests) without touching services.
Engine methods raise ``EngineError`` on failure.
"""

from collections.abc import Callable, Generator, Sequence
from typing import BinaryIO, Protocol, runtime_checkable

from pgp_session.models.keys import EngineKey
from pgp_session.models.results import DecryptResult, EngineInfo
from pgp_session.models.status import Status

PassphraseCallback = Callable[[str, str, bool, BinaryIO], Status]
"""
Called by the engine when it needs a secret key passphrase.

Arguments are ``(uid_hint, passphrase_info, last_was_bad, channel)``. The
callback writes the passphrase followed by one newline to ``channel`` and
returns a success or cancellation status.
"""


@runtime_checkable
class DataHandle(Protocol):
    """In-memory stream the engine reads input from and writes output to."""

    def seek(self, offset: int, whence: int = 0) -> int:
        """Reposition the stream. Raises OSError on failure."""
        ...

    def read(self, size: int) -> bytes:
        """Read up to ``size`` bytes; empty bytes at end of stream."""
        ...

    def write(self, data: bytes) -> int:
        """Append bytes at the current position."""
        ...

    def release(self) -> None:
        """Free the handle. Idempotent."""
        ...

    @property
    def released(self) -> bool:
        ...


@runtime_checkable
class Engine(Protocol):
    """
    Abstract interface of one engine session handle.

    Implementations must not be used from more than one thread at a time.
    """

    armor: bool

    @property
    def info(self) -> EngineInfo:
        """Protocol, binary path and home directory of the engine."""
        ...

    def set_locale(self, ctype: str | None, messages: str | None) -> None:
        """Tell the engine which locale to use for prompts and messages."""
        ...

    def set_passphrase_callback(self, callback: PassphraseCallback | None) -> None:
        ...

    def data_new(self, content: bytes | None = None) -> DataHandle:
        """
        Create a data handle.

        Args:
            content: Initial content, copied into the handle.
        """
        ...

    def keylist(
        self, pattern: str | None = None, *, secret_only: bool = False
    ) -> Generator[EngineKey, None, None]:
        """
        Iterate over key records matching ``pattern`` (all keys when None).

        The listing ends when the iterator is exhausted or closed.
        """
        ...

    def get_key(self, identifier: str, *, secret: bool) -> EngineKey | None:
        ...

    def import_keys(self, data: DataHandle) -> int:
        """Import key material; returns the number of keys processed."""
        ...

    def generate_key(self, params: str) -> str:
        """Generate a key from an engine parameter block; returns its fingerprint."""
        ...

    def export_keys(self, pattern: str, out: DataHandle) -> None:
        ...

    def delete_key(self, key: EngineKey, *, allow_secret: bool) -> None:
        ...

    def encrypt(
        self,
        recipients: Sequence[EngineKey],
        plain: DataHandle,
        cipher: DataHandle,
        *,
        always_trust: bool,
    ) -> None:
        ...

    def decrypt(self, cipher: DataHandle, plain: DataHandle) -> DecryptResult:
        """
        Decrypt ``cipher`` into ``plain``.

        An unsupported algorithm is reported through the result record rather
        than raised.
        """
        ...

    def release(self) -> None:
        """Release the handle. Idempotent."""
        ...
