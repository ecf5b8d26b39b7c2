import errno
import os

import pytest

from pgp_session.engine.memory_data import MemoryData
from pgp_session.engine.protocol import DataHandle


def test_memory_data_satisfies_handle_protocol() -> None:
    assert isinstance(MemoryData(), DataHandle)


def test_initial_content_is_copied() -> None:
    source = bytearray(b"abc")
    handle = MemoryData(source)
    source[0] = ord("z")

    assert handle.getvalue() == b"abc"
    assert len(handle) == 3


def test_write_then_seek_and_read() -> None:
    handle = MemoryData()

    handle.write(b"hello ")
    handle.write(b"world")
    handle.seek(0, os.SEEK_SET)

    assert handle.read(5) == b"hello"
    assert handle.read(100) == b" world"
    assert handle.read(100) == b""


def test_release_is_idempotent() -> None:
    handle = MemoryData(b"x")

    handle.release()
    handle.release()

    assert handle.released
    assert repr(handle) == "MemoryData(<released>)"


def test_use_after_release_raises_bad_descriptor() -> None:
    handle = MemoryData(b"x")
    handle.release()

    with pytest.raises(OSError) as exc_info:
        handle.read(1)

    assert exc_info.value.errno == errno.EBADF
