"""
Tradable pair catalog.

Kraken's AssetPairs listing rarely changes, so it is fetched once and kept
for a day in a process-wide cache.
"""

from datetime import timedelta
from decimal import Decimal, InvalidOperation
from typing import Any

from custodian.api.kraken_client import KrakenClient
from custodian.core.assets import from_exchange_asset
from custodian.core.cache import TTLCache
from custodian.core.models import AssetPair
from custodian.utils.logger import get_logger

logger = get_logger(__name__)

PAIRS_CACHE_KEY = "KrakenTradableAssetPairs"
PAIRS_CACHE_TTL = timedelta(hours=24)

# Shared by every catalog that is not given its own cache
_default_cache = TTLCache(ttl=PAIRS_CACHE_TTL)


def parse_asset_pairs(result: Any) -> list[AssetPair]:
    """
    Parse the ``result`` of the public AssetPairs method.

    Entries without an altname, base or quote are skipped. An unparsable
    ``ordermin`` counts as zero.
    """
    pairs: list[AssetPair] = []
    if not isinstance(result, dict):
        return pairs

    for info in result.values():
        if not isinstance(info, dict):
            continue
        altname = info.get("altname")
        base = info.get("base")
        quote = info.get("quote")
        if altname is None or base is None or quote is None:
            continue

        try:
            minimum_qty = Decimal(str(info.get("ordermin")))
        except InvalidOperation:
            minimum_qty = Decimal("0")

        pairs.append(
            AssetPair(
                asset_bought=from_exchange_asset(str(base)),
                asset_sold=from_exchange_asset(str(quote)),
                pair_code=str(altname),
                minimum_order_qty=minimum_qty,
            )
        )
    return pairs


class PairCatalog:
    """Resolves asset pairs against Kraken's tradable pair listing."""

    def __init__(self, client: KrakenClient, cache: TTLCache | None = None) -> None:
        self.client = client
        self.cache = cache if cache is not None else _default_cache

    async def _fetch_asset_pairs(self) -> list[AssetPair]:
        result = await self.client.query_public("AssetPairs")
        pairs = parse_asset_pairs(result)
        logger.info("Fetched tradable asset pairs", count=len(pairs))
        return pairs

    async def get_tradable_asset_pairs(self) -> list[AssetPair]:
        """
        Return every tradable pair, from cache when fresh.

        Raises:
            ExchangeAPIError: If Kraken reports an error while listing pairs
        """
        return await self.cache.get_or_fetch(PAIRS_CACHE_KEY, self._fetch_asset_pairs)

    async def find_asset_pair(
        self, from_asset: str, to_asset: str, allow_reverse: bool
    ) -> AssetPair | None:
        """
        Find the pair for converting from_asset into to_asset.

        Args:
            from_asset: Asset given up
            to_asset: Asset received
            allow_reverse: Also accept the pair quoted the other way round

        Returns:
            First matching pair in catalog order, or None
        """
        for pair in await self.get_tradable_asset_pairs():
            if pair.asset_bought == to_asset and pair.asset_sold == from_asset:
                return pair
            if allow_reverse and pair.asset_bought == from_asset and pair.asset_sold == to_asset:
                return pair
        return None

    async def parse_asset_pair(self, pair_identifier: str) -> AssetPair | None:
        """
        Resolve a pair code ("XBTUSD") or a "BASE/QUOTE" string.

        Codes match exactly. "BASE/QUOTE" matches canonical symbols in that
        direction only.
        """
        pairs = await self.get_tradable_asset_pairs()
        for pair in pairs:
            if pair.pair_code == pair_identifier:
                return pair

        parts = pair_identifier.split("/")
        if len(parts) == 2:
            for pair in pairs:
                if pair.asset_bought == parts[0] and pair.asset_sold == parts[1]:
                    return pair
        return None
