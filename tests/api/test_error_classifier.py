"""Tests for Kraken error string classification"""

import pytest

from custodian.api.error_classifier import KrakenErrorCode, classify_error, map_error
from custodian.api.exceptions import (
    CannotWithdrawError,
    ConfigurationError,
    ExchangeAPIError,
    InvalidWithdrawalTargetError,
    PermissionDeniedError,
)


class TestClassifyError:
    @pytest.mark.parametrize("code", list(KrakenErrorCode))
    def test_known_strings(self, code):
        assert classify_error(code.value) is code

    def test_unknown_string(self):
        assert classify_error("EOrder:Insufficient funds") is None

    def test_match_is_exact(self):
        assert classify_error("eapi:invalid key") is None
        assert classify_error("EAPI:Invalid key ") is None


class TestMapError:
    def test_invalid_key_is_configuration_error(self):
        error = map_error("EAPI:Invalid key")
        assert isinstance(error, ConfigurationError)
        assert error.bad_config_keys == ["ApiKey", "PrivateKey"]

    def test_permission_denied(self):
        error = map_error("EGeneral:Permission denied")
        assert isinstance(error, PermissionDeniedError)
        assert error.status_code == 403

    def test_unknown_withdraw_key(self):
        error = map_error("EFunding:Unknown withdraw key")
        assert isinstance(error, InvalidWithdrawalTargetError)
        assert not isinstance(error, CannotWithdrawError)

    @pytest.mark.parametrize(
        "message, code",
        [
            ("EFunding:Too many addresses", KrakenErrorCode.TOO_MANY_ADDRESSES),
            ("EOrder:Invalid order", KrakenErrorCode.INVALID_ORDER),
        ],
    )
    def test_control_flow_codes_stay_generic(self, message, code):
        error = map_error(message)
        assert type(error) is ExchangeAPIError
        assert error.code is code

    def test_anything_else_is_generic_with_raw_message(self):
        error = map_error("EGeneral:Internal error")
        assert type(error) is ExchangeAPIError
        assert error.message == "EGeneral:Internal error"
        assert error.code is None
        assert error.status_code == 400
