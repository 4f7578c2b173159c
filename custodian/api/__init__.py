"""Kraken API modules"""

from custodian.api.error_classifier import KrakenErrorCode, classify_error, map_error
from custodian.api.exceptions import (
    AssetBalancesUnavailableError,
    AssetQuoteUnavailableError,
    CannotWithdrawError,
    ConfigurationError,
    DepositsUnavailableError,
    ExchangeAPIError,
    FeatureNotImplementedError,
    InvalidWithdrawalTargetError,
    NetworkError,
    NotFoundError,
    PermissionDeniedError,
    TradeNotFoundError,
    WithdrawalNotFoundError,
    WrongTradingPairError,
)

__all__ = [
    "KrakenErrorCode",
    "classify_error",
    "map_error",
    "ExchangeAPIError",
    "ConfigurationError",
    "PermissionDeniedError",
    "NetworkError",
    "NotFoundError",
    "TradeNotFoundError",
    "WithdrawalNotFoundError",
    "DepositsUnavailableError",
    "AssetQuoteUnavailableError",
    "WrongTradingPairError",
    "InvalidWithdrawalTargetError",
    "CannotWithdrawError",
    "FeatureNotImplementedError",
    "AssetBalancesUnavailableError",
]
