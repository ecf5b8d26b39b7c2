"""
Central, non-raising status reporting.
"""

import structlog

from pgp_session.models.status import Status

logger = structlog.get_logger(__name__)


class ErrorReporter:
    """
    Logs failed statuses and remembers the last one.

    Cancellation by the operator is an intended outcome and is logged at info
    level only.
    """

    def __init__(self) -> None:
        self._last_status = Status.success()

    @property
    def last_status(self) -> Status:
        """Most recent non-success status reported, or success if none."""
        return self._last_status

    def report(self, status: Status, context: str | None = None) -> Status:
        """
        Log ``status`` if it is a failure.

        Args:
            status: Status to report.
            context: Optional description of where the status came from.

        Returns:
            The same status, so callers can ``return reporter.report(...)``.
        """
        if status.ok:
            return status

        self._last_status = status
        if status.cancelled:
            logger.info("Operation cancelled by user", context=context)
            return status

        logger.error(
            "Engine error",
            source=str(status.source),
            error=status.message,
            code=int(status.code),
            kind=str(status.kind),
            context=context,
        )
        return status

    def reset(self) -> None:
        self._last_status = Status.success()
