import sys
from pathlib import Path

import pytest

from pgp_session.config import SessionConfig


def test_defaults() -> None:
    config = SessionConfig(app_dir=Path("/opt/app"))

    assert not config.debug
    assert config.armor
    assert not config.lock_secret_memory
    assert config.passphrase_attempts == 3


def test_app_layout_paths() -> None:
    config = SessionConfig(app_dir="/opt/app")

    assert config.app_dir == Path("/opt/app")
    assert config.key_store == Path("/opt/app/keydb")
    expected_name = "gpg.exe" if sys.platform == "win32" else "gpg"
    assert config.engine_binary == Path("/opt/app/bin") / expected_name


def test_non_positive_attempts_rejected() -> None:
    with pytest.raises(ValueError, match="passphrase_attempts"):
        SessionConfig(app_dir=Path("/opt/app"), passphrase_attempts=0)
