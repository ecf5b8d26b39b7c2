import os
from pathlib import Path

import pytest


def pytest_collection_modifyitems(config: pytest.Config, items: list) -> None:
    if os.getenv("PGP_SESSION_GPG_BINARY"):
        return
    mark_expr = getattr(config.option, "markexpr", "")
    if "integration" in mark_expr:
        return
    skip = pytest.mark.skip(reason="PGP_SESSION_GPG_BINARY not set")
    for item in items:
        if item.get_closest_marker("integration"):
            item.add_marker(skip)


@pytest.fixture(scope="session")
def gpg_binary() -> Path:
    binary = os.getenv("PGP_SESSION_GPG_BINARY")
    if not binary:
        pytest.fail("PGP_SESSION_GPG_BINARY must point to a gpg executable to run integration tests.")
    return Path(binary)


@pytest.fixture
def app_dir(tmp_path: Path, gpg_binary: Path) -> Path:
    """Application directory whose bin/gpg is the configured binary."""
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()
    (bin_dir / "gpg").symlink_to(gpg_binary)
    return tmp_path
