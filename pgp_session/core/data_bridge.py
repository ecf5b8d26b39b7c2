"""
Moves bytes between engine data handles and in-memory buffers.
"""

import os

import structlog

from pgp_session.core.error_reporter import ErrorReporter
from pgp_session.engine.protocol import DataHandle, Engine
from pgp_session.models.status import Status

logger = structlog.get_logger(__name__)

CHUNK_SIZE = 32 * 1024


class DataBridge:
    """
    Wraps caller buffers into data handles and drains handles into buffers.

    The bridge never owns a handle beyond a single call: whoever creates a
    handle releases it.
    """

    def __init__(self, reporter: ErrorReporter, *, debug: bool = False) -> None:
        """
        Args:
            reporter: Receives I/O failures.
            debug: Emit a debug event for every wrap and drain.
        """
        self._reporter = reporter
        self._debug = debug

    def wrap_for_read(self, engine: Engine, data: bytes | bytearray | memoryview) -> DataHandle:
        """
        Create a data handle over a private copy of ``data``.

        Raises:
            EngineError: If the engine cannot allocate the handle.
        """
        handle = engine.data_new(bytes(data))
        if self._debug:
            logger.debug("Data handle created", size=len(data))
        return handle

    def drain(self, handle: DataHandle, out: bytearray) -> Status:
        """
        Append the whole content of ``handle`` to ``out``.

        Args:
            handle: Handle to read from; rewound to its start first.
            out: Buffer receiving the bytes. Existing content is kept.

        Returns:
            Success, or an I/O status when seeking or reading failed.
        """
        try:
            handle.seek(0, os.SEEK_SET)
        except OSError as e:
            status = Status.from_errno(e.errno)
            return self._reporter.report(status, "failed dataseek in drain")

        start = len(out)
        while True:
            try:
                chunk = handle.read(CHUNK_SIZE)
            except OSError as e:
                status = Status.from_errno(e.errno)
                return self._reporter.report(status, "failed data_read in drain")
            if not chunk:
                break
            out += chunk

        if self._debug:
            logger.debug("Data handle drained", size=len(out) - start)
        return Status.success()
