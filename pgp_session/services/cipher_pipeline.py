"""
Bulk encryption and decryption over engine data handles.
"""

from collections.abc import Callable, Sequence

import structlog

from pgp_session.core.data_bridge import DataBridge
from pgp_session.core.error_reporter import ErrorReporter
from pgp_session.core.secret_cache import SecretCache
from pgp_session.engine.protocol import DataHandle, Engine
from pgp_session.exceptions import EngineError
from pgp_session.interaction import ErrorNotifier
from pgp_session.models.keys import EngineKey
from pgp_session.models.results import OperationResult
from pgp_session.models.status import ErrorCode, ErrorKind, Status
from pgp_session.services.key_directory import KeyDirectory

logger = structlog.get_logger(__name__)


class CipherPipeline:
    """
    Encrypts to recipient keys and decrypts with the session's secret keys.

    Encryption trusts recipient keys without validating them. After every
    decrypt the passphrase cache is scrubbed unless the operator asked to
    remember passwords.
    """

    def __init__(
        self,
        engine: Engine,
        bridge: DataBridge,
        reporter: ErrorReporter,
        directory: KeyDirectory,
        cache: SecretCache,
        notifier: ErrorNotifier,
        remember_password: Callable[[], bool],
    ) -> None:
        """
        Args:
            engine: Engine handle borrowed from the session.
            bridge: Data bridge for wrapping and draining handles.
            reporter: Error reporter.
            directory: Resolves recipient identifiers to keys.
            cache: Session passphrase cache, shared with the passphrase broker.
            notifier: Shows operator-facing errors.
            remember_password: Reads the "remember password" option.
        """
        self._engine = engine
        self._bridge = bridge
        self._reporter = reporter
        self._directory = directory
        self._cache = cache
        self._notifier = notifier
        self._remember_password = remember_password

    def encrypt(self, recipients: Sequence[str], plaintext: bytes | bytearray) -> OperationResult:
        """
        Encrypt ``plaintext`` to every recipient.

        Args:
            recipients: Key ids, fingerprints or user ids. Must not be empty.
            plaintext: Data to encrypt.

        Returns:
            Result carrying the ciphertext (armored when the session is).
        """
        if not recipients:
            status = self._reporter.report(Status.precondition("No Key Selected"), "encrypt")
            self._notifier.critical("No Key Selected", "No Key Selected")
            return OperationResult.from_status(status)

        out = bytearray()
        keys: list[EngineKey] = []
        plain: DataHandle | None = None
        cipher: DataHandle | None = None
        try:
            for identifier in recipients:
                key = self._directory.resolve(identifier)
                if key is None:
                    status = Status.engine(ErrorCode.NO_PUBKEY, f"No public key for {identifier}")
                    return OperationResult.from_status(self._reporter.report(status, "encrypt"))
                keys.append(key)

            plain = self._bridge.wrap_for_read(self._engine, plaintext)
            cipher = self._engine.data_new()
            self._engine.encrypt(keys, plain, cipher, always_trust=True)
            status = self._bridge.drain(cipher, out)
        except EngineError as e:
            status = self._reporter.report(e.status, "encrypt")
        finally:
            keys.clear()
            _release(plain, cipher)

        if status.ok:
            logger.debug("Encrypted", recipients=len(recipients))
        return OperationResult.from_status(status, out)

    def decrypt(self, ciphertext: bytes | bytearray) -> OperationResult:
        """
        Decrypt ``ciphertext``.

        The engine may call back for a passphrase. A cancelled prompt yields a
        cancellation status and is not shown to the operator as an error.

        Returns:
            Result carrying the plaintext.
        """
        out = bytearray()
        status = Status.success()
        cipher: DataHandle | None = None
        plain: DataHandle | None = None
        try:
            cipher = self._bridge.wrap_for_read(self._engine, ciphertext)
            plain = self._engine.data_new()
            result = self._engine.decrypt(cipher, plain)
            if result.unsupported_algorithm is not None:
                status = Status.unsupported_algorithm(result.unsupported_algorithm)
                self._reporter.report(status, "decrypt")
                self._notifier.critical("Unsupported algorithm", result.unsupported_algorithm)
            else:
                status = self._bridge.drain(plain, out)
        except EngineError as e:
            status = self._reporter.report(e.status, "decrypt")
        finally:
            if not status.ok and status.kind not in (
                ErrorKind.CANCELLED,
                ErrorKind.UNSUPPORTED_ALGORITHM,
            ):
                self._notifier.critical("Error decrypting:", status.message)
            if not self._remember_password():
                self._cache.scrub()
            _release(cipher, plain)

        return OperationResult.from_status(status, out)


def _release(*handles: DataHandle | None) -> None:
    for handle in handles:
        if handle is not None:
            handle.release()
