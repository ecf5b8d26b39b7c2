"""Zero-argument notification signal."""

from collections.abc import Callable

import structlog

logger = structlog.get_logger(__name__)

Receiver = Callable[[], None]


class Signal:
    """
    Minimal observer list.

    Receivers are called in connection order. A failing receiver is logged and
    does not stop the others.

    Example:
        ```python
        session.directory_changed.connect(key_view.refresh)
        ```
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._receivers: list[Receiver] = []

    def connect(self, receiver: Receiver) -> Receiver:
        """Register ``receiver``; returns it so this can be used as a decorator."""
        if receiver not in self._receivers:
            self._receivers.append(receiver)
        return receiver

    def disconnect(self, receiver: Receiver) -> None:
        if receiver in self._receivers:
            self._receivers.remove(receiver)

    def emit(self) -> None:
        for receiver in list(self._receivers):
            try:
                receiver()
            except Exception as e:
                logger.warning("Signal receiver failed", signal=self.name, exc_info=e)

    def __len__(self) -> int:
        return len(self._receivers)
