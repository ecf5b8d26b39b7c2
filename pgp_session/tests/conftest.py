from collections.abc import Callable, Iterator
from pathlib import Path
from unittest.mock import Mock

import pytest

from pgp_session.config import SessionConfig
from pgp_session.core.data_bridge import DataBridge
from pgp_session.core.error_reporter import ErrorReporter
from pgp_session.core.secret_cache import SecretCache
from pgp_session.core.signals import Signal
from pgp_session.services.gpg_executor import GpgExecutor
from pgp_session.services.key_directory import KeyDirectory
from pgp_session.session import Session
from pgp_session.tests.utils.fake_engine import FakeEngine


@pytest.fixture
def engine() -> FakeEngine:
    return FakeEngine()


@pytest.fixture
def reporter() -> ErrorReporter:
    return ErrorReporter()


@pytest.fixture
def bridge(reporter: ErrorReporter) -> DataBridge:
    return DataBridge(reporter)


@pytest.fixture
def cache() -> SecretCache:
    return SecretCache()


@pytest.fixture
def notifier() -> Mock:
    return Mock()


@pytest.fixture
def prompt() -> Mock:
    prompt = Mock()
    prompt.ask_passphrase.return_value = "correct horse"
    return prompt


@pytest.fixture
def directory_changed() -> Signal:
    return Signal("directory_changed")


@pytest.fixture
def executor() -> Mock:
    return Mock(spec=GpgExecutor)


@pytest.fixture
def directory(
    engine: FakeEngine,
    bridge: DataBridge,
    reporter: ErrorReporter,
    executor: Mock,
    notifier: Mock,
    directory_changed: Signal,
) -> KeyDirectory:
    return KeyDirectory(engine, bridge, reporter, executor, notifier, directory_changed)


@pytest.fixture
def config(tmp_path: Path) -> SessionConfig:
    return SessionConfig(app_dir=tmp_path)


@pytest.fixture
def make_session(
    config: SessionConfig, engine: FakeEngine, prompt: Mock, notifier: Mock
) -> Iterator[Callable[..., Session]]:
    sessions: list[Session] = []

    def _make(**kwargs: object) -> Session:
        kwargs.setdefault("prompt", prompt)
        kwargs.setdefault("notifier", notifier)
        kwargs.setdefault("engine_factory", lambda _config: engine)
        session = Session(config, **kwargs)
        sessions.append(session)
        return session

    yield _make

    for session in sessions:
        session.close()
