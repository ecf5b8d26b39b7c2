"""
Direct gpg invocation for operations the engine binding does not expose safely.
"""

import subprocess
from collections.abc import Sequence

import structlog

from pgp_session.engine.protocol import Engine
from pgp_session.exceptions import EngineError
from pgp_session.models.results import ProcessOutput
from pgp_session.models.status import Status

logger = structlog.get_logger(__name__)


class GpgExecutor:
    """
    Runs ``<gpg> --homedir <key store> --batch <arguments...>``.

    The binary and home directory are read from the engine each time, so the
    subprocess always targets the same key store as the session. Calls block
    until gpg exits; there is no timeout.
    """

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def command(self, arguments: Sequence[str]) -> list[str]:
        info = self._engine.info
        return [info.file_name, "--homedir", info.home_dir, "--batch", *arguments]

    def run(self, arguments: Sequence[str]) -> ProcessOutput:
        """
        Run gpg and capture its output.

        Args:
            arguments: Arguments appended after the fixed prefix.

        Returns:
            Captured stdout, stderr and exit code.

        Raises:
            EngineError: If the process cannot be started.
        """
        command = self.command(arguments)
        logger.debug("Running gpg", arguments=list(arguments))
        try:
            completed = subprocess.run(command, capture_output=True, check=False)
        except OSError as e:
            raise EngineError(Status.from_errno(e.errno, f"Cannot run {command[0]}: {e}")) from e

        if completed.returncode != 0:
            logger.debug("gpg exited with error", returncode=completed.returncode)
        return ProcessOutput(
            stdout=completed.stdout,
            stderr=completed.stderr,
            returncode=completed.returncode,
        )
