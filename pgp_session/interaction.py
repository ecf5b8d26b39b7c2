"""
Operator-facing collaborators.

The session never draws UI itself. It asks a ``PassphrasePrompt`` for secrets
and tells an ``ErrorNotifier`` about failures the operator must see. The
terminal and logging implementations below are used when the host application
does not provide its own.
"""

import getpass
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

import structlog

logger = structlog.get_logger(__name__)


@dataclass(frozen=True, kw_only=True)
class PassphraseRequest:
    """
    What the prompt should show.

    Attributes:
        hint: Name and email of the key owner, without the key id.
        last_was_bad: True when the previous passphrase was rejected.
        message: Ready-to-display prompt text.
    """

    hint: str
    last_was_bad: bool
    message: str


@runtime_checkable
class PassphrasePrompt(Protocol):
    def ask_passphrase(self, request: PassphraseRequest) -> str | None:
        """Return the passphrase, or None if the operator cancelled."""
        ...


@runtime_checkable
class ErrorNotifier(Protocol):
    def critical(self, title: str, text: str) -> None:
        """Show an error the operator has to acknowledge."""
        ...


class TerminalPrompt:
    """Reads the passphrase from the controlling terminal without echo."""

    def ask_passphrase(self, request: PassphraseRequest) -> str | None:
        try:
            return getpass.getpass(request.message.rstrip("\n") + "\nPassword: ")
        except (EOFError, KeyboardInterrupt):
            return None


class LogNotifier:
    """Reports operator-facing errors through the log."""

    def critical(self, title: str, text: str) -> None:
        logger.error(title, detail=text)
