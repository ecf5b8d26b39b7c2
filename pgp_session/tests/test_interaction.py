from unittest.mock import patch

from structlog.testing import capture_logs

from pgp_session.interaction import (
    ErrorNotifier,
    LogNotifier,
    PassphrasePrompt,
    PassphraseRequest,
    TerminalPrompt,
)

REQUEST = PassphraseRequest(hint="Alice", last_was_bad=False, message="Enter Password for\nAlice\n")


def test_terminal_prompt_reads_without_echo() -> None:
    with patch("pgp_session.interaction.getpass.getpass", return_value="secret") as getpass:
        answer = TerminalPrompt().ask_passphrase(REQUEST)

    assert answer == "secret"
    getpass.assert_called_once_with("Enter Password for\nAlice\nPassword: ")


def test_terminal_prompt_interrupt_cancels() -> None:
    with patch("pgp_session.interaction.getpass.getpass", side_effect=KeyboardInterrupt):
        assert TerminalPrompt().ask_passphrase(REQUEST) is None


def test_log_notifier_logs_error() -> None:
    with capture_logs() as logs:
        LogNotifier().critical("Error decrypting:", "Bad passphrase")

    assert logs == [{"event": "Error decrypting:", "detail": "Bad passphrase", "log_level": "error"}]


def test_default_collaborators_satisfy_protocols() -> None:
    assert isinstance(TerminalPrompt(), PassphrasePrompt)
    assert isinstance(LogNotifier(), ErrorNotifier)
