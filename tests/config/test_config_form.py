"""Tests for the configuration form"""

from unittest.mock import AsyncMock, patch

import pytest

from custodian.api.error_classifier import map_error
from custodian.api.exceptions import AssetBalancesUnavailableError, NetworkError
from custodian.config.form import AlertType
from tests.conftest import PRIVATE_KEY

CONNECTION_ALERT = "Cannot connect to Kraken. Please check your API and private keys."


class TestGetConfigForm:
    async def test_fields(self, custodian, config):
        with patch.object(custodian.client, "query_private", new_callable=AsyncMock, return_value={}):
            form = await custodian.get_config_form(config, "en-US")

        connection, withdrawals = form.fieldsets
        assert [f.name for f in connection.fields] == ["ApiKey", "PrivateKey"]
        assert all(f.type == "password" and f.required for f in connection.fields)
        assert [f.name for f in withdrawals.fields] == [
            "WithdrawToStoreWalletAddressLabels.BTC-OnChain",
            "WithdrawToStoreWalletAddressLabels.LTC-OnChain",
            "WithdrawToStoreWalletAddressLabels.USD",
            "WithdrawToStoreWalletAddressLabels.EUR",
        ]
        assert not any(f.required for f in withdrawals.fields)

    async def test_valid_config_prefilled(self, custodian, config):
        with patch.object(custodian.client, "query_private", new_callable=AsyncMock, return_value={}):
            form = await custodian.get_config_form(config, "en-US")

        assert form.is_valid
        assert form.top_messages == []
        assert form.get_field_by_name("ApiKey").value == "test-api-key"
        assert form.get_field_by_name("PrivateKey").value == PRIVATE_KEY
        assert form.get_field_by_name("WithdrawToStoreWalletAddressLabels.EUR").value == "Store bank account"
        assert form.get_field_by_name("WithdrawToStoreWalletAddressLabels.USD").value is None

    async def test_flat_label_prefilled(self, custodian):
        config = {"WithdrawToStoreWalletAddressLabels.USD": "Store USD account"}
        form = await custodian.get_config_form(config, "en-US")

        assert form.get_field_by_name("WithdrawToStoreWalletAddressLabels.USD").value == "Store USD account"

    async def test_missing_credentials(self, custodian):
        form = await custodian.get_config_form({}, "en-US")

        assert form.get_field_by_name("ApiKey").validation_errors == ["Invalid API Key"]
        assert form.get_field_by_name("PrivateKey").validation_errors == ["Invalid Private Key"]
        assert not form.is_valid
        assert len(form.top_messages) == 1
        assert form.top_messages[0].type is AlertType.DANGER
        assert form.top_messages[0].message == CONNECTION_ALERT

    async def test_rejected_key(self, custodian, config):
        with patch.object(
            custodian.client,
            "query_private",
            new_callable=AsyncMock,
            side_effect=map_error("EAPI:Invalid key"),
        ):
            form = await custodian.get_config_form(config, "en-US")

        assert form.get_field_by_name("ApiKey").validation_errors == ["Invalid API Key"]
        assert form.top_messages[0].message == CONNECTION_ALERT

    async def test_other_failures_propagate(self, custodian, config):
        with patch.object(
            custodian.client,
            "query_private",
            new_callable=AsyncMock,
            side_effect=NetworkError("Network error: timeout"),
        ):
            with pytest.raises(AssetBalancesUnavailableError):
                await custodian.get_config_form(config, "en-US")

    async def test_locale_does_not_change_labels(self, custodian, config):
        with patch.object(custodian.client, "query_private", new_callable=AsyncMock, return_value={}):
            english = await custodian.get_config_form(config, "en-US")
            german = await custodian.get_config_form(config, "de-DE")

        assert english == german
        assert english.fieldsets[0].label == "Connection details"
