"""
Session configuration.
"""

import sys
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True, kw_only=True)
class SessionConfig:
    """
    Attributes:
        app_dir: Application directory. The engine binary lives in
            ``<app_dir>/bin`` and the key store in ``<app_dir>/keydb``.
        debug: Emit debug events for data handle traffic.
        armor: Produce ASCII-armored output for every engine operation.
        lock_secret_memory: Try to mlock the cached passphrase buffer.
        passphrase_attempts: How many times the engine asks for a passphrase
            before giving up on a decrypt.
    """

    app_dir: Path
    debug: bool = False
    armor: bool = True
    lock_secret_memory: bool = False
    passphrase_attempts: int = 3

    def __post_init__(self) -> None:
        if not isinstance(self.app_dir, Path):
            object.__setattr__(self, "app_dir", Path(self.app_dir))
        if self.passphrase_attempts <= 0:
            msg = "passphrase_attempts must be positive"
            raise ValueError(msg)

    @property
    def engine_binary(self) -> Path:
        """Path of the gpg executable shipped with the application."""
        name = "gpg.exe" if sys.platform == "win32" else "gpg"
        return self.app_dir / "bin" / name

    @property
    def key_store(self) -> Path:
        """Application-local key database directory."""
        return self.app_dir / "keydb"
