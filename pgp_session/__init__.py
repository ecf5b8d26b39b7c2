"""
pgp_session: an OpenPGP session over an application-local GnuPG key store.

Example:
    ```python
    from pathlib import Path

    from pgp_session import Session, SessionConfig, TerminalPrompt

    with Session(SessionConfig(app_dir=Path("/opt/app")), prompt=TerminalPrompt()) as session:
        for key in session.list_keys():
            print(key.key_id, key.name, key.email, key.has_private_part)

        encrypted = session.encrypt(["alice@example.org"], b"hello")
        decrypted = session.decrypt(encrypted.data)
    ```
"""

from pgp_session.config import SessionConfig
from pgp_session.exceptions import EngineError, KeyStoreInUseError, PgpSessionError
from pgp_session.interaction import (
    ErrorNotifier,
    LogNotifier,
    PassphrasePrompt,
    PassphraseRequest,
    TerminalPrompt,
)
from pgp_session.models.keys import Key
from pgp_session.models.results import OperationResult, ProcessOutput
from pgp_session.models.status import ErrorCode, ErrorKind, Status
from pgp_session.session import Session

__version__ = "0.1.0"

__all__ = [
    # Main entry point
    "Session",
    "SessionConfig",
    # Collaborators
    "PassphrasePrompt",
    "PassphraseRequest",
    "ErrorNotifier",
    "TerminalPrompt",
    "LogNotifier",
    # Models
    "Key",
    "OperationResult",
    "ProcessOutput",
    "Status",
    "ErrorKind",
    "ErrorCode",
    # Exceptions
    "PgpSessionError",
    "EngineError",
    "KeyStoreInUseError",
]
