import io
from unittest.mock import Mock

from pgp_session.core.secret_cache import SecretCache
from pgp_session.interaction import PassphraseRequest
from pgp_session.services.passphrase_broker import (
    WRONG_PASSWORD_NOTICE,
    PassphraseBroker,
    strip_key_id,
)

UID_HINT = "A1B2C3D4E5F60718 Alice Example <alice@example.org>"


def test_strip_key_id() -> None:
    assert strip_key_id(UID_HINT) == "Alice Example <alice@example.org>"
    assert strip_key_id("A1B2C3D4E5F60718") == "A1B2C3D4E5F60718"


def test_empty_cache_prompts_and_caches(cache: SecretCache, prompt: Mock) -> None:
    broker = PassphraseBroker(cache, prompt)
    channel = io.BytesIO()

    status = broker(UID_HINT, "", False, channel)

    assert status.ok
    assert channel.getvalue() == b"correct horse\n"
    assert not cache.is_empty
    prompt.ask_passphrase.assert_called_once_with(
        PassphraseRequest(
            hint="Alice Example <alice@example.org>",
            last_was_bad=False,
            message="Enter Password for\nAlice Example <alice@example.org>\n",
        )
    )


def test_cached_passphrase_is_reused_without_prompt(cache: SecretCache, prompt: Mock) -> None:
    cache.store("cached secret")
    broker = PassphraseBroker(cache, prompt)
    channel = io.BytesIO()

    status = broker(UID_HINT, "", False, channel)

    assert status.ok
    assert channel.getvalue() == b"cached secret\n"
    prompt.ask_passphrase.assert_not_called()


def test_bad_attempt_scrubs_cache_and_reprompts(cache: SecretCache, prompt: Mock) -> None:
    cache.store("stale")
    prompt.ask_passphrase.return_value = "fresh"
    broker = PassphraseBroker(cache, prompt)
    channel = io.BytesIO()

    status = broker(UID_HINT, "", True, channel)

    assert status.ok
    assert channel.getvalue() == b"fresh\n"
    request = prompt.ask_passphrase.call_args.args[0]
    assert request.last_was_bad
    assert request.message.startswith(WRONG_PASSWORD_NOTICE)
    assert "Enter Password for\n" in request.message


def test_cancel_writes_lone_newline(cache: SecretCache, prompt: Mock) -> None:
    prompt.ask_passphrase.return_value = None
    broker = PassphraseBroker(cache, prompt)
    channel = io.BytesIO()

    status = broker(UID_HINT, "", False, channel)

    assert status.cancelled
    assert channel.getvalue() == b"\n"
    assert cache.is_empty


def test_empty_passphrase_is_supplied_not_cancelled(cache: SecretCache, prompt: Mock) -> None:
    prompt.ask_passphrase.return_value = ""
    broker = PassphraseBroker(cache, prompt)
    channel = io.BytesIO()

    status = broker(UID_HINT, "", False, channel)

    assert status.ok
    assert channel.getvalue() == b"\n"


def test_exactly_one_newline_per_call(cache: SecretCache, prompt: Mock) -> None:
    broker = PassphraseBroker(cache, prompt)

    for last_was_bad in (False, True, False):
        channel = io.BytesIO()
        broker(UID_HINT, "", last_was_bad, channel)
        assert channel.getvalue().count(b"\n") == 1
        assert channel.getvalue().endswith(b"\n")


def test_missing_hint_prompts_without_owner_line(cache: SecretCache, prompt: Mock) -> None:
    broker = PassphraseBroker(cache, prompt)

    broker("", "", False, io.BytesIO())

    request = prompt.ask_passphrase.call_args.args[0]
    assert request.hint == ""
    assert request.message == ""
