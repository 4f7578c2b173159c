"""Tests for logging helpers"""

import structlog

from custodian.utils.logger import REDACTED, log_context, redact_secrets


class TestRedactSecrets:
    def test_masks_secret_keys(self):
        event = redact_secrets(None, "info", {"event": "signed", "api_key": "abc", "API-Sign": "sig"})

        assert event == {"event": "signed", "api_key": REDACTED, "API-Sign": REDACTED}

    def test_masks_inside_dicts(self):
        headers = {"User-Agent": "Mozilla/5.0", "API-Key": "abc", "API-Sign": "sig"}
        event = redact_secrets(None, "debug", {"event": "request", "headers": headers})

        assert event["headers"] == {"User-Agent": "Mozilla/5.0", "API-Key": REDACTED, "API-Sign": REDACTED}
        # Caller's dict untouched
        assert headers["API-Key"] == "abc"

    def test_empty_values_left_alone(self):
        event = redact_secrets(None, "info", {"event": "x", "PrivateKey": ""})
        assert event["PrivateKey"] == ""


class TestLogContext:
    def teardown_method(self):
        structlog.contextvars.clear_contextvars()

    def test_binds_for_block(self):
        with log_context(operation="trade_market", pair="XBTUSD"):
            assert structlog.contextvars.get_contextvars() == {
                "operation": "trade_market",
                "pair": "XBTUSD",
            }
        assert structlog.contextvars.get_contextvars() == {}

    def test_restores_outer_values(self):
        structlog.contextvars.bind_contextvars(operation="outer")

        with log_context(operation="inner", payment_method="BTC-OnChain"):
            assert structlog.contextvars.get_contextvars()["operation"] == "inner"

        assert structlog.contextvars.get_contextvars() == {"operation": "outer"}
