"""
Answers the engine's passphrase requests.

The broker keeps one passphrase in a ``SecretCache`` so that a session does
not prompt the operator for every operation on the same key.
"""

from typing import BinaryIO

import structlog

from pgp_session.core.secret_cache import SecretCache
from pgp_session.interaction import PassphrasePrompt, PassphraseRequest
from pgp_session.models.status import Status

logger = structlog.get_logger(__name__)

WRONG_PASSWORD_NOTICE = "Wrong password.\n\n"


def strip_key_id(uid_hint: str) -> str:
    """
    Drop the leading key id of an engine uid hint.

    ``"0123456789ABCDEF Alice <alice@example.org>"`` becomes
    ``"Alice <alice@example.org>"``. A hint without a space is returned as is.
    """
    _, separator, rest = uid_hint.partition(" ")
    if not separator:
        return uid_hint
    return rest.strip()


class PassphraseBroker:
    """
    Passphrase callback registered with the engine.

    Each invocation writes exactly one newline-terminated line to the channel,
    whatever the outcome. The engine re-invokes the callback with
    ``last_was_bad`` set when it rejects a passphrase; the cache is then
    scrubbed so a wrong passphrase is never silently reused.
    """

    def __init__(self, cache: SecretCache, prompt: PassphrasePrompt) -> None:
        """
        Args:
            cache: Session-owned passphrase cache.
            prompt: Collaborator that asks the operator.
        """
        self._cache = cache
        self._prompt = prompt

    def __call__(
        self,
        uid_hint: str,
        passphrase_info: str,
        last_was_bad: bool,
        channel: BinaryIO,
    ) -> Status:
        """
        Args:
            uid_hint: Engine hint, ``"<keyid> <user id>"``.
            passphrase_info: Engine details about the request (unused).
            last_was_bad: True when the previous passphrase was rejected.
            channel: Where the passphrase line is written.

        Returns:
            Success if a passphrase was supplied, a cancellation status otherwise.
        """
        message = ""
        if last_was_bad:
            message += WRONG_PASSWORD_NOTICE
            self._cache.scrub()

        hint = strip_key_id(uid_hint) if uid_hint else ""
        if hint:
            message += f"Enter Password for\n{hint}\n"

        if self._cache.is_empty:
            request = PassphraseRequest(hint=hint, last_was_bad=last_was_bad, message=message)
            passphrase = self._prompt.ask_passphrase(request)
            supplied = passphrase is not None
            if passphrase is not None:
                self._cache.store(passphrase)
            del passphrase
        else:
            logger.debug("Reusing cached passphrase")
            supplied = True

        if supplied:
            self._cache.write_to(channel)
        channel.write(b"\n")

        if not supplied:
            return Status.cancelled_by_user()
        return Status.success()
