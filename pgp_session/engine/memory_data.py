"""In-memory data handle."""

import errno
import io
import os


class MemoryData:
    """
    Data handle backed by a private in-memory buffer.

    The initial content is copied; the caller's buffer can change or go away
    without affecting what the engine sees.
    """

    __slots__ = ("_stream",)

    def __init__(self, content: bytes | bytearray | memoryview | None = None) -> None:
        self._stream: io.BytesIO | None = io.BytesIO(bytes(content) if content else b"")

    def seek(self, offset: int, whence: int = os.SEEK_SET) -> int:
        return self._open_stream().seek(offset, whence)

    def read(self, size: int) -> bytes:
        return self._open_stream().read(size)

    def write(self, data: bytes) -> int:
        return self._open_stream().write(data)

    def getvalue(self) -> bytes:
        return self._open_stream().getvalue()

    def release(self) -> None:
        if self._stream is None:
            return
        self._stream.close()
        self._stream = None

    @property
    def released(self) -> bool:
        return self._stream is None

    def __len__(self) -> int:
        with self._open_stream().getbuffer() as view:
            return view.nbytes

    def __repr__(self) -> str:
        if self._stream is None:
            return "MemoryData(<released>)"
        return f"MemoryData(<{len(self)} bytes>)"

    def _open_stream(self) -> io.BytesIO:
        if self._stream is None:
            raise OSError(errno.EBADF, "data handle has been released")
        return self._stream
