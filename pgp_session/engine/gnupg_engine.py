"""
Engine implementation using the python-gnupg library.

GnuPG runs against an isolated home directory (the application key store) and
an application-local binary, so the session never touches the user's system
key ring.
"""

import codecs
import io
import re
from collections.abc import Generator, Iterator, Sequence
from contextlib import contextmanager
from pathlib import Path
from typing import Any, BinaryIO

import gnupg
import structlog

from pgp_session.config import SessionConfig
from pgp_session.engine.memory_data import MemoryData
from pgp_session.engine.protocol import DataHandle, PassphraseCallback
from pgp_session.exceptions import EngineError
from pgp_session.models.keys import EngineKey, UserId
from pgp_session.models.results import DecryptResult, EngineInfo
from pgp_session.models.status import ErrorCode, ErrorKind, Status

logger = structlog.get_logger(__name__)

_STATUS_PREFIX = "[GNUPG:] "
_READ_CHUNK = 32 * 1024
_NO_PINENTRY = ["--pinentry-mode", "error"]
_LEADING_CODE_RE = re.compile(r"^\d+")


class GnupgEngine:
    """
    OpenPGP engine backed by a gpg binary through python-gnupg.

    Passphrases are negotiated through the registered callback: before a
    decrypt that needs a secret key or a symmetric passphrase the callback is
    asked for the passphrase, and it is asked again (with ``last_was_bad``
    set) each time gpg rejects it, up to ``passphrase_attempts`` times.

    Example:
        engine = GnupgEngine("/opt/app/bin/gpg", "/opt/app/keydb")
        for key in engine.keylist():
            print(key.key_id)
    """

    protocol = "OpenPGP"

    def __init__(
        self,
        binary: str | Path,
        home_dir: str | Path,
        *,
        armor: bool = True,
        passphrase_attempts: int = 3,
    ) -> None:
        """
        Args:
            binary: Path of the gpg executable.
            home_dir: Key store directory, created if missing.
            armor: Produce ASCII-armored output.
            passphrase_attempts: Passphrase prompts per decrypt before giving up.

        Raises:
            EngineError: If the key store cannot be created or gpg cannot run.
        """
        self.armor = armor
        self._passphrase_attempts = passphrase_attempts
        self._callback: PassphraseCallback | None = None

        try:
            Path(home_dir).mkdir(mode=0o700, parents=True, exist_ok=True)
        except OSError as e:
            status = Status.engine(
                ErrorCode.INV_ENGINE,
                f"Cannot create key store {home_dir}: {e.strerror or e}",
                kind=ErrorKind.ENGINE_CONFIG,
            )
            raise EngineError(status) from e

        try:
            self._gpg: gnupg.GPG | None = gnupg.GPG(gpgbinary=str(binary), gnupghome=str(home_dir))
        except (OSError, ValueError) as e:
            status = Status.engine(
                ErrorCode.INV_ENGINE,
                f"Cannot run engine {binary}: {e}",
                kind=ErrorKind.ENGINE_INIT,
            )
            raise EngineError(status) from e

        self._info = EngineInfo(
            protocol=self.protocol,
            file_name=str(binary),
            home_dir=str(home_dir),
            version=".".join(str(part) for part in (self._gpg.version or ())),
        )
        logger.debug("Engine initialized", binary=str(binary), version=self._info.version)

    @classmethod
    def from_config(cls, config: SessionConfig) -> "GnupgEngine":
        return cls(
            config.engine_binary,
            config.key_store,
            armor=config.armor,
            passphrase_attempts=config.passphrase_attempts,
        )

    @property
    def info(self) -> EngineInfo:
        return self._info

    def set_locale(self, ctype: str | None, messages: str | None) -> None:
        gpg = self._require_gpg()
        codeset = _codeset(ctype)
        if codeset is not None:
            gpg.encoding = codeset
        logger.debug("Engine locale set", ctype=ctype, messages=messages, encoding=gpg.encoding)

    def set_passphrase_callback(self, callback: PassphraseCallback | None) -> None:
        self._callback = callback

    def data_new(self, content: bytes | None = None) -> DataHandle:
        return MemoryData(content)

    def keylist(
        self, pattern: str | None = None, *, secret_only: bool = False
    ) -> Generator[EngineKey, None, None]:
        gpg = self._require_gpg()
        with _engine_call("keylist"):
            records = gpg.list_keys(secret=secret_only, keys=pattern)
        try:
            for record in records:
                yield _to_engine_key(record, secret=secret_only)
        finally:
            logger.debug("Key listing ended", pattern=pattern, secret_only=secret_only)

    def get_key(self, identifier: str, *, secret: bool) -> EngineKey | None:
        gpg = self._require_gpg()
        with _engine_call("get_key"):
            records = gpg.list_keys(secret=secret, keys=[identifier])
        if not records:
            return None
        return _to_engine_key(records[0], secret=secret)

    def import_keys(self, data: DataHandle) -> int:
        gpg = self._require_gpg()
        payload = _read_all(data)
        with _engine_call("import"):
            result = gpg.import_keys(payload)
        if not result.fingerprints:
            code = _failure_code(result.stderr, ErrorCode.NO_DATA)
            raise EngineError(Status.engine(code, "No valid OpenPGP data found"))
        return len(result.fingerprints)

    def generate_key(self, params: str) -> str:
        gpg = self._require_gpg()
        with _engine_call("genkey"):
            result = gpg.gen_key(params)
        if not result.fingerprint:
            code = _failure_code(result.stderr, ErrorCode.GENERAL)
            raise EngineError(Status.engine(code, "Key generation failed"))
        return str(result.fingerprint)

    def export_keys(self, pattern: str, out: DataHandle) -> None:
        gpg = self._require_gpg()
        with _engine_call("export"):
            exported = gpg.export_keys(pattern, armor=self.armor)
        if isinstance(exported, str):
            exported = exported.encode(gpg.encoding or "utf-8")
        _write(out, exported)

    def delete_key(self, key: EngineKey, *, allow_secret: bool) -> None:
        gpg = self._require_gpg()
        if allow_secret and self.get_key(key.fingerprint, secret=True) is not None:
            with _engine_call("delete"):
                result = gpg.delete_keys(key.fingerprint, secret=True, expect_passphrase=False)
            _check_deleted(result)
        with _engine_call("delete"):
            result = gpg.delete_keys(key.fingerprint)
        _check_deleted(result)

    def encrypt(
        self,
        recipients: Sequence[EngineKey],
        plain: DataHandle,
        cipher: DataHandle,
        *,
        always_trust: bool,
    ) -> None:
        gpg = self._require_gpg()
        payload = _read_all(plain)
        fingerprints = [key.fingerprint for key in recipients]
        with _engine_call("encrypt"):
            result = gpg.encrypt(
                payload, fingerprints, always_trust=always_trust, armor=self.armor
            )
        if not result.ok:
            code = _failure_code(result.stderr, ErrorCode.GENERAL)
            raise EngineError(Status.engine(code, result.status or None))
        _write(cipher, result.data)

    def decrypt(self, cipher: DataHandle, plain: DataHandle) -> DecryptResult:
        """
        Decrypt ``cipher`` into ``plain``.

        Public-key messages ask the callback with a ``KEYID uid`` hint when
        the store holds a matching secret key. Messages without public-key
        recipients are first tried without a pinentry; if gpg then asks for a
        symmetric passphrase, the callback is asked with an empty hint.
        """
        gpg = self._require_gpg()
        payload = _read_all(cipher)
        with _engine_call("decrypt"):
            recipients = gpg.get_recipients(payload)

        if recipients:
            uid_hint = self._uid_hint(recipients)
        else:
            with _engine_call("decrypt"):
                result = gpg.decrypt(payload, extra_args=_NO_PINENTRY)
            if not _needs_symmetric_passphrase(result.stderr):
                return _decrypt_outcome(result, plain)
            uid_hint = ""

        last_was_bad = False
        for _ in range(self._passphrase_attempts):
            passphrase = None
            if uid_hint is not None and self._callback is not None:
                passphrase = _ask_passphrase(self._callback, uid_hint, last_was_bad)

            with _engine_call("decrypt"):
                result = gpg.decrypt(payload, passphrase=passphrase)

            if passphrase is None or not _rejected_passphrase(result):
                return _decrypt_outcome(result, plain)
            logger.info("Engine rejected passphrase", uid_hint=uid_hint)
            last_was_bad = True

        raise EngineError(Status.engine(ErrorCode.BAD_PASSPHRASE))

    def release(self) -> None:
        if self._gpg is None:
            return
        self._gpg = None
        self._callback = None
        logger.debug("Engine released")

    def _require_gpg(self) -> gnupg.GPG:
        if self._gpg is None:
            raise EngineError(Status.engine(ErrorCode.INV_ENGINE, "Engine has been released"))
        return self._gpg

    def _uid_hint(self, recipients: Sequence[str]) -> str | None:
        """Build a gpg style ``KEYID User Id`` hint for the first recipient we hold."""
        gpg = self._require_gpg()
        with _engine_call("decrypt"):
            secret_records = gpg.list_keys(secret=True)
        secret_keys = [_to_engine_key(record, secret=True) for record in secret_records]
        for recipient in recipients:
            for key in secret_keys:
                if key.matches(recipient):
                    uid = key.primary_uid
                    return f"{recipient} {uid}" if uid else recipient
        return None


def _ask_passphrase(callback: PassphraseCallback, uid_hint: str, last_was_bad: bool) -> str:
    channel = io.BytesIO()
    try:
        status = callback(uid_hint, "", last_was_bad, channel)
        if not status.ok:
            raise EngineError(status)
        line = channel.getvalue()
        if line.endswith(b"\n"):
            line = line[:-1]
        return line.decode("utf-8")
    finally:
        _scrub_channel(channel)


@contextmanager
def _engine_call(operation: str) -> Iterator[None]:
    try:
        yield
    except (OSError, ValueError) as e:
        logger.debug("Engine call failed", operation=operation, error_type=type(e).__name__)
        if isinstance(e, OSError):
            raise EngineError(Status.from_errno(e.errno, f"{operation}: {e}")) from e
        raise EngineError(Status.engine(ErrorCode.INV_VALUE, f"{operation}: {e}")) from e


def _codeset(ctype: str | None) -> str | None:
    if not ctype or "." not in ctype:
        return None
    codeset = ctype.split(".", 1)[1].split("@", 1)[0]
    try:
        return codecs.lookup(codeset).name
    except LookupError:
        return None


def _to_engine_key(record: dict[str, Any], *, secret: bool) -> EngineKey:
    primary = record.get("keyid") or ""
    subkeys = [primary] if primary else []
    for entry in record.get("subkeys") or ():
        if entry and entry[0]:
            subkeys.append(entry[0])
    return EngineKey(
        fingerprint=record.get("fingerprint") or "",
        subkeys=tuple(subkeys),
        uids=tuple(UserId.parse(uid) for uid in record.get("uids") or ()),
        secret=secret,
    )


def _read_all(data: DataHandle) -> bytes:
    chunks = []
    try:
        data.seek(0)
        while chunk := data.read(_READ_CHUNK):
            chunks.append(chunk)
    except OSError as e:
        raise EngineError(Status.from_errno(e.errno, "failed to read data handle")) from e
    return b"".join(chunks)


def _write(out: DataHandle, data: bytes | None) -> None:
    if not data:
        return
    try:
        out.write(data)
    except OSError as e:
        raise EngineError(Status.from_errno(e.errno, "failed to write data handle")) from e


def _scrub_channel(channel: BinaryIO) -> None:
    if not isinstance(channel, io.BytesIO):
        return
    with channel.getbuffer() as view:
        view[:] = bytes(len(view))
    channel.close()


def _status_lines(stderr: str | None) -> Iterator[list[str]]:
    for line in (stderr or "").splitlines():
        if line.startswith(_STATUS_PREFIX):
            yield line[len(_STATUS_PREFIX) :].split()


def _failure_code(stderr: str | None, default: ErrorCode) -> ErrorCode:
    """Pick the most specific error code from gpg's status lines."""
    codes: list[ErrorCode] = []
    for fields in _status_lines(stderr):
        match fields:
            case ["BAD_PASSPHRASE", *_]:
                return ErrorCode.BAD_PASSPHRASE
            case ["NO_SECKEY", *_]:
                codes.append(ErrorCode.NO_SECKEY)
            case ["INV_RECP", *_]:
                codes.append(ErrorCode.NO_PUBKEY)
            case ["NODATA", *_]:
                codes.append(ErrorCode.NO_DATA)
            case ["ERROR", _, raw_code, *_] if _LEADING_CODE_RE.match(raw_code):
                # symkey_decrypt.maybe_error reports "11_Bad_passphrase"
                code = ErrorCode.from_engine(int(_LEADING_CODE_RE.match(raw_code).group()))
                if code is ErrorCode.BAD_PASSPHRASE:
                    return code
                codes.append(code)
            case ["FAILURE", _, raw_code, *_] if raw_code.isdigit():
                codes.append(ErrorCode.from_engine(int(raw_code)))
    return codes[0] if codes else default


def _needs_symmetric_passphrase(stderr: str | None) -> bool:
    return any(fields[0] == "NEED_PASSPHRASE_SYM" for fields in _status_lines(stderr) if fields)


def _rejected_passphrase(result: Any) -> bool:
    if result.ok or _unsupported_algorithm(result.stderr) is not None:
        return False
    return _failure_code(result.stderr, ErrorCode.DECRYPT_FAILED) is ErrorCode.BAD_PASSPHRASE


def _decrypt_outcome(result: Any, plain: DataHandle) -> DecryptResult:
    algorithm = _unsupported_algorithm(result.stderr)
    if algorithm is not None:
        return DecryptResult(unsupported_algorithm=algorithm)
    if not result.ok:
        code = _failure_code(result.stderr, ErrorCode.DECRYPT_FAILED)
        raise EngineError(Status.engine(code, result.status or None))
    _write(plain, result.data)
    return DecryptResult()


def _unsupported_algorithm(stderr: str | None) -> str | None:
    for fields in _status_lines(stderr):
        match fields:
            case ["ERROR", "decrypt.algorithm", raw_code, *rest] if raw_code.isdigit():
                if ErrorCode.from_engine(int(raw_code)) is ErrorCode.UNSUPPORTED_ALGORITHM:
                    return rest[0] if rest else raw_code
    return None


def _check_deleted(result: Any) -> None:
    status = str(result)
    if status == "ok":
        return
    code = ErrorCode.NOT_FOUND if "no such key" in status.lower() else ErrorCode.GENERAL
    raise EngineError(Status.engine(code, f"Delete failed: {status}"))
