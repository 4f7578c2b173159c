"""Pytest configuration and shared fixtures"""

import base64
from decimal import Decimal
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from custodian.api.kraken_client import KrakenClient, KrakenResponse
from custodian.config.settings import KrakenSettings
from custodian.core.cache import TTLCache
from custodian.core.kraken_custodian import KrakenCustodian
from custodian.core.models import AssetPair
from custodian.core.pair_catalog import PAIRS_CACHE_KEY, PairCatalog

PRIVATE_KEY = base64.b64encode(b"kraken-test-secret").decode()


def ok(result: Any) -> KrakenResponse:
    """Successful response envelope"""
    return KrakenResponse(result=result)


def err(message: str) -> KrakenResponse:
    """Error response envelope"""
    return KrakenResponse(errors=[message])


def make_session(payload: Any) -> MagicMock:
    """aiohttp session mock whose post() yields a response with the given JSON payload"""
    response = MagicMock()
    response.json = AsyncMock(return_value=payload)
    session = MagicMock()
    session.post.return_value.__aenter__.return_value = response
    return session


@pytest.fixture
def settings() -> KrakenSettings:
    # No real waiting between settlement polls
    return KrakenSettings(order_settle_timeout=1, order_poll_min_wait=0, order_poll_max_wait=0)


@pytest.fixture
def config() -> dict[str, Any]:
    return {
        "ApiKey": "test-api-key",
        "PrivateKey": PRIVATE_KEY,
        "WithdrawToStoreWalletAddressLabels": {
            "BTC-OnChain": "Store BTC wallet",
            "EUR": "Store bank account",
        },
    }


@pytest.fixture
def btc_usd() -> AssetPair:
    return AssetPair("BTC", "USD", "XBTUSD", Decimal("0.0001"))


@pytest.fixture
def eth_btc() -> AssetPair:
    return AssetPair("ETH", "BTC", "ETHXBT", Decimal("0.002"))


@pytest.fixture
def client(settings: KrakenSettings) -> KrakenClient:
    return KrakenClient(settings)


@pytest.fixture
def catalog(client: KrakenClient, btc_usd: AssetPair, eth_btc: AssetPair) -> PairCatalog:
    catalog = PairCatalog(client, cache=TTLCache())
    catalog.cache.set(PAIRS_CACHE_KEY, [btc_usd, eth_btc])
    return catalog


@pytest.fixture
def custodian(client: KrakenClient, catalog: PairCatalog, settings: KrakenSettings) -> KrakenCustodian:
    return KrakenCustodian(client=client, catalog=catalog, settings=settings)
