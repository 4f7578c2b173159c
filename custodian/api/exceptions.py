"""Custom exceptions for Kraken custodian operations"""

from collections.abc import Sequence
from typing import Any


class ExchangeAPIError(Exception):
    """
    Base exception for all exchange API errors.

    Raised as-is for exchange errors with no narrower mapping, carrying the
    raw exchange message.
    """

    status_code = 400
    error_code = "custodian-api-exception"

    def __init__(self, message: str, code: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code


class ConfigurationError(ExchangeAPIError):
    """Raised when credentials or withdrawal settings are missing or invalid"""

    error_code = "bad-config"

    def __init__(self, bad_config_keys: Sequence[str], message: str | None = None) -> None:
        self.bad_config_keys = list(bad_config_keys)
        super().__init__(
            message or f"Invalid configuration: {', '.join(self.bad_config_keys)}"
        )


class PermissionDeniedError(ExchangeAPIError):
    """Raised when the API key lacks the permission for an operation"""

    status_code = 403
    error_code = "insufficient-api-permissions"

    def __init__(self, exchange_name: str = "Kraken") -> None:
        super().__init__(
            f"{exchange_name}'s API reported that you don't have permission for this operation"
        )


class NetworkError(ExchangeAPIError):
    """Raised when network communication with the exchange fails"""

    status_code = 503
    error_code = "network-error"


class NotFoundError(ExchangeAPIError):
    """Base for lookups that produced nothing"""

    status_code = 404
    error_code = "not-found"


class TradeNotFoundError(NotFoundError):
    """Raised when an order id is unknown to the exchange"""

    error_code = "trade-not-found"

    def __init__(self, trade_id: str) -> None:
        self.trade_id = trade_id
        super().__init__(f"Could not find trade ID {trade_id}")


class WithdrawalNotFoundError(NotFoundError):
    """Raised when a withdrawal reference id is not among recent withdrawals"""

    error_code = "withdrawal-not-found"

    def __init__(self, withdrawal_id: str) -> None:
        self.withdrawal_id = withdrawal_id
        super().__init__(f"Could not find withdrawal ID {withdrawal_id}")


class DepositsUnavailableError(NotFoundError):
    """Raised when no usable deposit address could be obtained"""

    error_code = "deposits-unavailable"


class AssetQuoteUnavailableError(NotFoundError):
    """Raised when the ticker for a pair could not be fetched"""

    error_code = "asset-price-unavailable"

    def __init__(self, pair: Any) -> None:
        self.pair = pair
        super().__init__(f"Cannot find a quote for pair {pair}")


class WrongTradingPairError(ExchangeAPIError):
    """Raised when no tradable pair connects the two assets"""

    error_code = "wrong-trading-pair"

    def __init__(self, from_asset: str, to_asset: str) -> None:
        self.from_asset = from_asset
        self.to_asset = to_asset
        super().__init__(f"Cannot find a trading pair for converting {from_asset} into {to_asset}")


class InvalidWithdrawalTargetError(ExchangeAPIError):
    """Raised when the configured withdrawal label is unknown to the exchange"""

    error_code = "invalid-withdrawal-target"

    def __init__(
        self,
        payment_method: str | None = None,
        label: str | None = None,
        message: str | None = None,
    ) -> None:
        self.payment_method = payment_method
        self.label = label
        super().__init__(
            message
            or f"Withdrawal destination {label!r} for {payment_method} is not known to the exchange"
        )


class CannotWithdrawError(ExchangeAPIError):
    """Raised when a withdrawal fails for any other reason"""

    error_code = "cannot-withdraw"

    def __init__(self, payment_method: str, label: str, reason: str) -> None:
        self.payment_method = payment_method
        self.label = label
        super().__init__(f"Cannot withdraw {payment_method} to {label!r}: {reason}")


class FeatureNotImplementedError(ExchangeAPIError):
    """Raised when a payment method is not supported by the operation"""

    status_code = 400
    error_code = "not-implemented"


class AssetBalancesUnavailableError(ExchangeAPIError):
    """Raised when balances cannot be fetched for a non-configuration reason"""

    error_code = "asset-balances-unavailable"

    def __init__(self, cause: Exception) -> None:
        super().__init__(f"Cannot fetch asset balances: {cause}")
