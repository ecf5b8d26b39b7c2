"""
Session facade.

This is the main entry point of the library. A session owns one engine handle
bound to an application-local key store and wires the key directory, the
cipher pipeline and the passphrase broker around it.
"""

import locale
import threading
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Self

import structlog

from pgp_session.config import SessionConfig
from pgp_session.core.data_bridge import DataBridge
from pgp_session.core.error_reporter import ErrorReporter
from pgp_session.core.secret_cache import SecretCache
from pgp_session.core.signals import Signal
from pgp_session.engine.gnupg_engine import GnupgEngine
from pgp_session.engine.protocol import Engine
from pgp_session.exceptions import EngineError, KeyStoreInUseError
from pgp_session.interaction import ErrorNotifier, LogNotifier, PassphrasePrompt
from pgp_session.models.keys import Key
from pgp_session.models.results import EngineInfo, OperationResult, ProcessOutput
from pgp_session.models.status import ErrorCode, ErrorKind, Status
from pgp_session.services.cipher_pipeline import CipherPipeline
from pgp_session.services.gpg_executor import GpgExecutor
from pgp_session.services.key_directory import KeyDirectory
from pgp_session.services.passphrase_broker import PassphraseBroker

logger = structlog.get_logger(__name__)

EngineFactory = Callable[[SessionConfig], Engine]

_open_key_stores: set[Path] = set()
_registry_lock = threading.Lock()
_locale_lock = threading.Lock()
_locale_initialized = False


def _initialize_locale() -> tuple[str | None, str | None]:
    """Adopt the environment's locale once per process; return (LC_CTYPE, LC_MESSAGES)."""
    global _locale_initialized
    with _locale_lock:
        if not _locale_initialized:
            try:
                locale.setlocale(locale.LC_ALL, "")
            except locale.Error as e:
                logger.warning("Cannot set locale from environment", error=str(e))
            _locale_initialized = True
    ctype = locale.setlocale(locale.LC_CTYPE)
    messages = locale.setlocale(locale.LC_MESSAGES) if hasattr(locale, "LC_MESSAGES") else None
    return ctype, messages


class Session:
    """
    One OpenPGP session over an application-local key store.

    Operations never raise; they return booleans, key snapshots or
    ``OperationResult`` values, and the last failure is available through
    ``last_status``. Engine calls are serialised with a lock, so a session
    may be shared between threads.

    Example:
        ```python
        config = SessionConfig(app_dir=Path("/opt/app"))
        with Session(config, prompt=TerminalPrompt()) as session:
            keys = session.list_keys()
            result = session.encrypt([keys[0].key_id], b"hello")
            if result:
                print(result.data.decode())
        ```

    Args:
        config: Session configuration.
        prompt: Asks the operator for passphrases.
        notifier: Shows operator-facing errors. Defaults to logging them.
        remember_password: Reads the "remember password" option. Defaults
            to never remembering.
        engine_factory: Builds the engine. Defaults to ``GnupgEngine``.

    Raises:
        KeyStoreInUseError: If another open session uses the same key store.
    """

    def __init__(
        self,
        config: SessionConfig,
        *,
        prompt: PassphrasePrompt,
        notifier: ErrorNotifier | None = None,
        remember_password: Callable[[], bool] | None = None,
        engine_factory: EngineFactory | None = None,
    ) -> None:
        self._config = config
        self._lock = threading.RLock()
        self._reporter = ErrorReporter()
        self._cache = SecretCache(lock_memory=config.lock_secret_memory)
        self._engine: Engine | None = None
        self._directory: KeyDirectory | None = None
        self._pipeline: CipherPipeline | None = None
        self._executor: GpgExecutor | None = None
        self._status = Status.success()
        self._closed = False
        self._key_store: Path | None = None
        self._key_store = self._claim_key_store(config.key_store)

        self._notifier = notifier if notifier is not None else LogNotifier()
        self._remember_password = remember_password or (lambda: False)
        self._bridge = DataBridge(self._reporter, debug=config.debug)
        self._broker = PassphraseBroker(self._cache, prompt)
        self.directory_changed = Signal("directory_changed")

        if config.debug:
            logger.debug("Data handle debug on")

        try:
            engine = self._open_engine(engine_factory or GnupgEngine.from_config)
        except BaseException:
            self.close()
            raise
        if engine is None:
            # an unusable session keeps its status but not the key store
            self.close()
            return

        self._engine = engine
        self._executor = GpgExecutor(engine)
        self._directory = KeyDirectory(
            engine,
            self._bridge,
            self._reporter,
            self._executor,
            self._notifier,
            self.directory_changed,
        )
        self._pipeline = CipherPipeline(
            engine,
            self._bridge,
            self._reporter,
            self._directory,
            self._cache,
            self._notifier,
            self._remember_password,
        )
        logger.debug("Session opened", key_store=str(self._key_store))

    def __enter__(self) -> Self:
        return self

    def __exit__(self, exc_type: type | None, exc_val: BaseException | None, exc_tb: object) -> None:
        self.close()

    def __del__(self) -> None:
        if getattr(self, "_key_store", None) is not None:
            self.close()

    def close(self) -> None:
        """Scrub the passphrase cache and release the engine. Idempotent."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._cache.scrub()
            if self._engine is not None:
                self._engine.set_passphrase_callback(None)
                self._engine.release()
                self._engine = None
            self._directory = None
            self._pipeline = None
            self._executor = None
            if self._key_store is not None:
                with _registry_lock:
                    _open_key_stores.discard(self._key_store)
            logger.debug("Session closed")

    @property
    def config(self) -> SessionConfig:
        return self._config

    @property
    def debug(self) -> bool:
        return self._config.debug

    @property
    def status(self) -> Status:
        """Status of session construction; a failure here makes every operation fail."""
        return self._status

    @property
    def last_status(self) -> Status:
        """Most recent failure reported by any operation."""
        return self._reporter.last_status

    @property
    def is_open(self) -> bool:
        return self._engine is not None

    @property
    def engine_info(self) -> EngineInfo | None:
        return self._engine.info if self._engine is not None else None

    @property
    def has_cached_password(self) -> bool:
        return not self._cache.is_empty

    def list_keys(self) -> list[Key]:
        with self._lock:
            if self._directory is None:
                self._unavailable()
                return []
            return self._directory.list_keys()

    def lookup_key(self, identifier: str) -> Key | None:
        with self._lock:
            if self._directory is None:
                self._unavailable()
                return None
            return self._directory.lookup(identifier)

    def import_key(self, data: bytes | bytearray) -> bool:
        with self._lock:
            if self._directory is None:
                self._unavailable()
                return False
            return self._directory.import_key(data)

    def generate_key(self, params: str) -> bool:
        with self._lock:
            if self._directory is None:
                self._unavailable()
                return False
            return self._directory.generate_key(params)

    def export_public_keys(self, identifiers: Sequence[str]) -> OperationResult:
        with self._lock:
            if self._directory is None:
                return OperationResult.from_status(self._unavailable())
            return self._directory.export_public(identifiers)

    def export_secret_key(self, identifier: str) -> OperationResult:
        with self._lock:
            if self._directory is None:
                return OperationResult.from_status(self._unavailable())
            return self._directory.export_secret(identifier)

    def delete_keys(self, identifiers: Sequence[str]) -> bool:
        with self._lock:
            if self._directory is None:
                self._unavailable()
                return False
            return self._directory.delete(identifiers)

    def encrypt(self, recipients: Sequence[str], plaintext: bytes | bytearray) -> OperationResult:
        with self._lock:
            if self._pipeline is None:
                return OperationResult.from_status(self._unavailable())
            return self._pipeline.encrypt(recipients, plaintext)

    def decrypt(self, ciphertext: bytes | bytearray) -> OperationResult:
        with self._lock:
            if self._pipeline is None:
                return OperationResult.from_status(self._unavailable())
            return self._pipeline.decrypt(ciphertext)

    def run_gpg(self, arguments: Sequence[str]) -> ProcessOutput | None:
        """
        Run the session's gpg binary against its key store.

        Returns:
            Captured output, or None if gpg could not be started.
        """
        with self._lock:
            if self._executor is None:
                self._unavailable()
                return None
            try:
                return self._executor.run(arguments)
            except EngineError as e:
                self._reporter.report(e.status, "run gpg")
                return None

    def clear_password_cache(self) -> None:
        with self._lock:
            self._cache.scrub()

    def _open_engine(self, factory: EngineFactory) -> Engine | None:
        ctype, messages = _initialize_locale()
        try:
            engine = factory(self._config)
        except EngineError as e:
            self._status = self._reporter.report(e.status, "session init")
            return None
        try:
            engine.set_locale(ctype, messages)
            engine.armor = self._config.armor
            engine.set_passphrase_callback(self._broker)
        except EngineError as e:
            self._status = self._reporter.report(e.status, "session init")
            engine.release()
            return None
        return engine

    def _unavailable(self) -> Status:
        if not self._status.ok:
            return self._reporter.report(self._status, "session unavailable")
        status = Status.engine(
            ErrorCode.INV_ENGINE, "Session is closed", kind=ErrorKind.ENGINE_INIT
        )
        return self._reporter.report(status, "session unavailable")

    @staticmethod
    def _claim_key_store(key_store: Path) -> Path:
        resolved = key_store.expanduser().resolve()
        with _registry_lock:
            if resolved in _open_key_stores:
                msg = "Key store is already used by an open session"
                raise KeyStoreInUseError(msg, key_store=str(resolved))
            _open_key_stores.add(resolved)
        return resolved
