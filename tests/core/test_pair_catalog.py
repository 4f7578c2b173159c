"""Tests for the tradable pair catalog"""

from decimal import Decimal
from unittest.mock import AsyncMock, patch

import pytest

from custodian.api.exceptions import ExchangeAPIError
from custodian.core.cache import TTLCache
from custodian.core.models import AssetPair
from custodian.core.pair_catalog import PairCatalog, parse_asset_pairs

ASSET_PAIRS_RESULT = {
    "XXBTZUSD": {"altname": "XBTUSD", "base": "XXBT", "quote": "ZUSD", "ordermin": "0.0001"},
    "XETHXXBT": {"altname": "ETHXBT", "base": "XETH", "quote": "XXBT", "ordermin": "0.002"},
    "DOTUSD": {"altname": "DOTUSD", "base": "DOT", "quote": "ZUSD", "ordermin": "not-a-number"},
    "BROKEN": {"altname": "BROKEN", "base": "XXBT"},
}


class TestParseAssetPairs:
    def test_parses_and_translates(self):
        pairs = parse_asset_pairs(ASSET_PAIRS_RESULT)

        assert pairs[0] == AssetPair("BTC", "USD", "XBTUSD", Decimal("0.0001"))
        assert pairs[1] == AssetPair("ETH", "BTC", "ETHXBT", Decimal("0.002"))

    def test_unparsable_ordermin_is_zero(self):
        pairs = parse_asset_pairs(ASSET_PAIRS_RESULT)
        assert pairs[2].minimum_order_qty == Decimal("0")

    def test_incomplete_entries_skipped(self):
        codes = [p.pair_code for p in parse_asset_pairs(ASSET_PAIRS_RESULT)]
        assert "BROKEN" not in codes
        assert len(codes) == 3

    def test_non_dict_result(self):
        assert parse_asset_pairs(None) == []


class TestGetTradableAssetPairs:
    async def test_fetches_then_caches(self, client):
        catalog = PairCatalog(client, cache=TTLCache())

        with patch.object(
            client, "query_public", new_callable=AsyncMock, return_value=ASSET_PAIRS_RESULT
        ) as query:
            first = await catalog.get_tradable_asset_pairs()
            second = await catalog.get_tradable_asset_pairs()

        assert first == second
        assert len(first) == 3
        query.assert_awaited_once_with("AssetPairs")

    async def test_exchange_error_propagates_and_is_not_cached(self, client):
        catalog = PairCatalog(client, cache=TTLCache())

        with patch.object(
            client,
            "query_public",
            new_callable=AsyncMock,
            side_effect=[ExchangeAPIError("EGeneral:Temporary lockout"), ASSET_PAIRS_RESULT],
        ):
            with pytest.raises(ExchangeAPIError, match="Temporary lockout"):
                await catalog.get_tradable_asset_pairs()
            assert len(await catalog.get_tradable_asset_pairs()) == 3

    def test_default_cache_is_shared(self, client):
        assert PairCatalog(client).cache is PairCatalog(client).cache


class TestFindAssetPair:
    async def test_forward_and_reverse(self, catalog, btc_usd):
        assert await catalog.find_asset_pair("USD", "BTC", True) == btc_usd
        assert await catalog.find_asset_pair("BTC", "USD", False) is None
        assert await catalog.find_asset_pair("BTC", "USD", True) == btc_usd

    async def test_buying_base_with_quote(self, catalog, btc_usd):
        # asset_bought=BTC, asset_sold=USD: converting USD into BTC
        assert await catalog.find_asset_pair("USD", "BTC", False) == btc_usd

    async def test_unknown_pair(self, catalog):
        assert await catalog.find_asset_pair("DOGE", "EUR", True) is None


class TestFindAssetPairDirection:
    async def test_single_pair_catalog(self, client):
        pair = AssetPair("BTC", "USD", "XBTUSD", Decimal("0.0001"))
        catalog = PairCatalog(client, cache=TTLCache())

        with patch.object(catalog, "get_tradable_asset_pairs", new_callable=AsyncMock, return_value=[pair]):
            assert await catalog.find_asset_pair("USD", "BTC", True) == pair
            assert await catalog.find_asset_pair("BTC", "USD", True) == pair
            assert await catalog.find_asset_pair("BTC", "USD", False) is None


class TestParseAssetPair:
    async def test_by_pair_code(self, catalog, eth_btc):
        assert await catalog.parse_asset_pair("ETHXBT") == eth_btc

    async def test_by_symbols(self, catalog, btc_usd):
        assert await catalog.parse_asset_pair("BTC/USD") == btc_usd

    async def test_symbols_not_reversed(self, catalog):
        assert await catalog.parse_asset_pair("USD/BTC") is None

    async def test_unknown(self, catalog):
        assert await catalog.parse_asset_pair("XBTJPY") is None
        assert await catalog.parse_asset_pair("A/B/C") is None
