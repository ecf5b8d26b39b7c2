"""
Key database queries and mutations.

Handles listing, lookup, import, generation, export and deletion of keys in
the session's key store. Every mutation emits the directory-changed signal.
"""

from collections.abc import Sequence
from contextlib import closing

import structlog

from pgp_session.core.data_bridge import DataBridge
from pgp_session.core.error_reporter import ErrorReporter
from pgp_session.core.signals import Signal
from pgp_session.engine.protocol import DataHandle, Engine
from pgp_session.exceptions import EngineError
from pgp_session.interaction import ErrorNotifier
from pgp_session.models.keys import EngineKey, Key, merge_private_flags
from pgp_session.models.results import OperationResult
from pgp_session.models.status import ErrorCode, Status
from pgp_session.services.gpg_executor import GpgExecutor

logger = structlog.get_logger(__name__)


class KeyDirectory:
    """
    View of the engine's key database.

    Keys handed out are snapshots; they do not follow later changes to the
    key store. Failures are reported and turned into return values.
    """

    def __init__(
        self,
        engine: Engine,
        bridge: DataBridge,
        reporter: ErrorReporter,
        executor: GpgExecutor,
        notifier: ErrorNotifier,
        directory_changed: Signal,
    ) -> None:
        self._engine = engine
        self._bridge = bridge
        self._reporter = reporter
        self._executor = executor
        self._notifier = notifier
        self._directory_changed = directory_changed

    def list_keys(self) -> list[Key]:
        """
        List all keys, flagging those with a secret part.

        Runs one listing over all keys and one over secret keys only, then
        merges the private flag onto the first listing by key id. Records
        without subkey information are skipped.

        Returns:
            Keys in engine listing order. On engine failure, whatever was
            collected before the failure.
        """
        keys: list[Key] = []
        try:
            for record in self._listing(secret_only=False):
                key = Key.from_engine_key(record)
                if key is not None:
                    keys.append(key)
            secret_ids = [
                record.key_id
                for record in self._listing(secret_only=True)
                if record.key_id is not None
            ]
        except EngineError as e:
            self._reporter.report(e.status, "keylist")
            return keys
        return merge_private_flags(keys, secret_ids)

    def lookup(self, identifier: str) -> Key | None:
        """
        Find a key by id, fingerprint or user id.

        Secret keys are tried first so a match reports its private part.
        """
        if _is_blank(identifier):
            return None
        try:
            record = self._engine.get_key(identifier, secret=True)
            if record is not None:
                return Key.from_engine_key(record, has_private_part=True)
            record = self._engine.get_key(identifier, secret=False)
        except EngineError as e:
            self._reporter.report(e.status, "get_key")
            return None
        if record is None:
            return None
        return Key.from_engine_key(record)

    def resolve(self, identifier: str, *, secret: bool = False) -> EngineKey | None:
        """
        Return the first engine record matching ``identifier``.

        Raises:
            EngineError: If the listing fails.
        """
        if _is_blank(identifier):
            return None
        with closing(self._engine.keylist(identifier, secret_only=secret)) as cursor:
            return next(cursor, None)

    def import_key(self, data: bytes | bytearray) -> bool:
        """Import key material (armored or binary) into the key store."""
        handle: DataHandle | None = None
        try:
            handle = self._bridge.wrap_for_read(self._engine, data)
            count = self._engine.import_keys(handle)
            logger.info("Keys imported", count=count)
            return True
        except EngineError as e:
            self._reporter.report(e.status, "import")
            return False
        finally:
            if handle is not None:
                handle.release()
            self._directory_changed.emit()

    def generate_key(self, params: str) -> bool:
        """
        Generate a key pair.

        Args:
            params: GnuPG unattended key generation parameters, passed verbatim.
        """
        try:
            fingerprint = self._engine.generate_key(params)
            logger.info("Key generated", fingerprint=fingerprint)
            return True
        except EngineError as e:
            self._reporter.report(e.status, "genkey")
            return False
        finally:
            self._directory_changed.emit()

    def export_public(self, identifiers: Sequence[str]) -> OperationResult:
        """
        Export public keys, concatenated in the order given.

        Each identifier is exported into its own data handle.
        """
        if not identifiers:
            status = self._reporter.report(Status.precondition("No Keys Selected"), "export")
            self._notifier.critical("Export Keys Error", "No Keys Selected")
            return OperationResult.from_status(status)

        out = bytearray()
        for identifier in identifiers:
            if _is_blank(identifier):
                return OperationResult.from_status(self._no_match(identifier, "export"))
            handle: DataHandle | None = None
            try:
                handle = self._engine.data_new()
                self._engine.export_keys(identifier, handle)
                status = self._bridge.drain(handle, out)
            except EngineError as e:
                status = self._reporter.report(e.status, "export")
            finally:
                if handle is not None:
                    handle.release()
            if not status.ok:
                return OperationResult.from_status(status)
        return OperationResult.from_status(Status.success(), out)

    def export_secret(self, identifier: str) -> OperationResult:
        """
        Export a secret key by running gpg directly.

        Returns:
            Result whose ``data`` is gpg's stdout and ``diagnostics`` its stderr.
        """
        if _is_blank(identifier):
            return OperationResult.from_status(self._no_match(identifier, "export secret key"))
        try:
            output = self._executor.run(["--armor", "--export-secret-key", identifier])
        except EngineError as e:
            return OperationResult.from_status(self._reporter.report(e.status, "export secret key"))

        status = Status.success()
        if output.returncode != 0:
            detail = output.stderr.decode("utf-8", errors="replace").strip()
            status = Status.engine(ErrorCode.GENERAL, detail or None)
        elif not output.stdout:
            status = Status.engine(ErrorCode.NOT_FOUND, f"No secret key exported for {identifier}")
        self._reporter.report(status, "export secret key")
        return OperationResult.from_status(status, output.stdout, diagnostics=output.stderr)

    def delete(self, identifiers: Sequence[str]) -> bool:
        """
        Delete keys, secret parts included.

        Identifiers that match no key are reported and skipped.

        Returns:
            True if every identifier was deleted.
        """
        deleted_all = True
        try:
            for identifier in identifiers:
                try:
                    key = self.resolve(identifier)
                    if key is None:
                        self._no_match(identifier, "delete")
                        deleted_all = False
                        continue
                    self._engine.delete_key(key, allow_secret=True)
                    logger.info("Key deleted", fingerprint=key.fingerprint)
                except EngineError as e:
                    self._reporter.report(e.status, "delete")
                    deleted_all = False
        finally:
            self._directory_changed.emit()
        return deleted_all

    def _no_match(self, identifier: str, operation: str) -> Status:
        status = Status.engine(ErrorCode.NOT_FOUND, f"No key matches {identifier!r}")
        return self._reporter.report(status, operation)

    def _listing(self, *, secret_only: bool) -> list[EngineKey]:
        with closing(self._engine.keylist(secret_only=secret_only)) as cursor:
            return list(cursor)


def _is_blank(identifier: str) -> bool:
    # gpg treats an empty pattern as "every key"
    return not identifier.strip()
