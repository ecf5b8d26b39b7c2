"""Passphrase cache with memory scrubbing and optional memory locking."""

import ctypes
import ctypes.util
import platform
import warnings
from collections.abc import Callable
from typing import BinaryIO

_PLATFORM = platform.system()
_mlock_func: Callable[[int, int], bool] | None = None
_munlock_func: Callable[[int, int], bool] | None = None


def _mlock_unix(addr: int, size: int) -> bool:
    return _libc.mlock(addr, size) == 0


def _munlock_unix(addr: int, size: int) -> bool:
    return _libc.munlock(addr, size) == 0


if _PLATFORM in ("Linux", "Darwin"):
    try:
        _libc = ctypes.CDLL(
            ctypes.util.find_library("c") or ("libc.so.6" if _PLATFORM == "Linux" else "libc.dylib"),
            use_errno=True,
        )
        _libc.mlock.argtypes = [ctypes.c_void_p, ctypes.c_size_t]
        _libc.mlock.restype = ctypes.c_int
        _libc.munlock.argtypes = [ctypes.c_void_p, ctypes.c_size_t]
        _libc.munlock.restype = ctypes.c_int
        _mlock_func = _mlock_unix
        _munlock_func = _munlock_unix
    except (OSError, AttributeError):
        pass


def _buffer_address(data: bytearray) -> int:
    return ctypes.addressof((ctypes.c_char * len(data)).from_buffer(data))


def secure_zero(data: bytearray) -> None:
    """Overwrite ``data`` with zero bytes in place."""
    if len(data) == 0:
        return
    try:
        ctypes.memset(_buffer_address(data), 0, len(data))
    except (TypeError, ValueError, BufferError) as exc:
        warnings.warn(f"ctypes.memset failed, using fallback: {exc}", RuntimeWarning)
        for i in range(len(data)):
            data[i] = 0


class SecretCache:
    """
    Holds at most one passphrase for the lifetime of a session.

    The cache is either empty or populated. ``scrub`` zero-fills the backing
    buffer before emptying it, so cleared passphrases do not stay resident.
    """

    __slots__ = ("_data", "_lock_memory", "_locked")

    def __init__(self, *, lock_memory: bool = False) -> None:
        """
        Args:
            lock_memory: Try to mlock the buffer holding the passphrase.
        """
        self._data = bytearray()
        self._lock_memory = lock_memory
        self._locked = False

    def __del__(self) -> None:
        self.scrub()

    def __bool__(self) -> bool:
        return len(self._data) > 0

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        if not self._data:
            return "SecretCache(<empty>)"
        lock_info = ", locked" if self._locked else ""
        return f"SecretCache(<{len(self._data)} bytes{lock_info}>)"

    @property
    def is_empty(self) -> bool:
        return not self._data

    @property
    def is_locked(self) -> bool:
        return self._locked

    def store(self, secret: str, encoding: str = "utf-8") -> None:
        """Replace the cached value. The previous value is scrubbed first."""
        self.scrub()
        encoded = bytearray(secret, encoding)
        try:
            self._data.extend(encoded)
        finally:
            secure_zero(encoded)
        if self._lock_memory and _mlock_func is not None and self._data:
            try:
                self._locked = _mlock_func(_buffer_address(self._data), len(self._data))
            except (TypeError, ValueError, BufferError):
                self._locked = False

    def write_to(self, channel: BinaryIO) -> int:
        """Write the cached value to ``channel`` without copying it."""
        if not self._data:
            return 0
        with memoryview(self._data) as view:
            return channel.write(view)

    def scrub(self) -> None:
        """Zero the cached value, unlock its memory, and empty the cache. Idempotent."""
        if not self._data:
            return
        secure_zero(self._data)
        if self._locked and _munlock_func is not None:
            try:
                _munlock_func(_buffer_address(self._data), len(self._data))
            except (TypeError, ValueError, BufferError):
                pass
        self._locked = False
        del self._data[:]
