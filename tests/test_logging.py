import logging

from solgreet.infrastructure.observability import current_log_context, log_context
from solgreet.infrastructure.observability.logging import ContextualFormatter


def _record(message: str) -> logging.LogRecord:
    return logging.LogRecord("solgreet.test", logging.INFO, __file__, 1, message, None, None)


def test_log_context_nests_and_restores() -> None:
    with log_context(operation="say_hello"):
        with log_context(greeted="abc"):
            assert current_log_context() == {"operation": "say_hello", "greeted": "abc"}
        assert current_log_context() == {"operation": "say_hello"}
    assert current_log_context() == {}


def test_contextual_formatter_appends_fields() -> None:
    formatter = ContextualFormatter("%(message)s")

    with log_context(operation="establish_payer"):
        output = formatter.format(_record("Requesting airdrop"))

    assert output == "Requesting airdrop [operation=establish_payer]"


def test_contextual_formatter_without_context() -> None:
    assert ContextualFormatter("%(message)s").format(_record("plain")) == "plain"
