"""Translation between Kraken asset codes and canonical asset symbols."""

# Kraken predates the BTC ticker and still calls it XBT
_TO_KRAKEN = {"BTC": "XBT"}
_BITCOIN_CODES = frozenset({"XBT", "XXBT"})


def to_exchange_asset(asset: str) -> str:
    """Canonical symbol -> Kraken code ("BTC" -> "XBT", others unchanged)."""
    return _TO_KRAKEN.get(asset, asset)


def from_exchange_asset(kraken_asset: str) -> str:
    """
    Kraken code -> canonical symbol.

    Legacy codes carry a class prefix: "Z" for fiat ("ZUSD", "ZEUR") and
    "X" for crypto ("XXRP", "XETH"). Newer listings ("DOT") have none.
    """
    if kraken_asset in _BITCOIN_CODES:
        return "BTC"
    if kraken_asset.startswith("Z"):
        return kraken_asset[1:]
    if kraken_asset.startswith("X"):
        return kraken_asset[1:]
    return kraken_asset


def asset_from_payment_method(payment_method: str) -> str:
    """Canonical asset of a payment method id ("BTC-OnChain" -> "BTC", "EUR" -> "EUR")."""
    return payment_method.split("-")[0]
