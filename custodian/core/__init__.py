"""Core custodian logic modules"""

from custodian.core.assets import from_exchange_asset, to_exchange_asset
from custodian.core.cache import TTLCache
from custodian.core.kraken_custodian import KrakenCustodian
from custodian.core.models import (
    AssetPair,
    AssetQuoteResult,
    DepositAddress,
    LedgerEntry,
    LedgerEntryType,
    MarketTradeResult,
    SimulateWithdrawalResult,
    WithdrawalStatus,
    WithdrawResult,
)
from custodian.core.pair_catalog import PairCatalog
from custodian.core.protocols import ICanDeposit, ICanTrade, ICanWithdraw, ICustodian

__all__ = [
    "KrakenCustodian",
    "PairCatalog",
    "TTLCache",
    "to_exchange_asset",
    "from_exchange_asset",
    "AssetPair",
    "AssetQuoteResult",
    "DepositAddress",
    "LedgerEntry",
    "LedgerEntryType",
    "MarketTradeResult",
    "SimulateWithdrawalResult",
    "WithdrawalStatus",
    "WithdrawResult",
    "ICustodian",
    "ICanDeposit",
    "ICanTrade",
    "ICanWithdraw",
]
