"""
Kraken custodian adapter.

Implements the host capability contract (balances, deposits, market trades,
quotes, withdrawals and the configuration form) on top of the signed request
engine and the pair catalog.

Kraken vocabulary worth knowing:
- A trade is an "order"; QueryOrders still names its id parameter ``txid``.
- Withdrawal destinations are pre-registered in the Kraken account and
  referenced by label ("key"), never by raw address.
"""

from collections.abc import Mapping
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any

from tenacity import AsyncRetrying, retry_if_result, stop_after_delay, wait_exponential

from custodian.api.error_classifier import KrakenErrorCode
from custodian.api.exceptions import (
    AssetBalancesUnavailableError,
    AssetQuoteUnavailableError,
    CannotWithdrawError,
    ConfigurationError,
    DepositsUnavailableError,
    ExchangeAPIError,
    FeatureNotImplementedError,
    InvalidWithdrawalTargetError,
    TradeNotFoundError,
    WithdrawalNotFoundError,
    WrongTradingPairError,
)
from custodian.api.kraken_client import KrakenClient
from custodian.config.form import AlertMessage, AlertType, Fieldset, Form, password_field, text_field
from custodian.config.schemas import (
    KrakenConfig,
    KrakenCredentials,
    withdrawal_label_key,
)
from custodian.config.settings import KrakenSettings
from custodian.core.assets import asset_from_payment_method, from_exchange_asset, to_exchange_asset
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
    to_decimal,
)
from custodian.core.pair_catalog import PairCatalog
from custodian.core.protocols import ConfigBag
from custodian.utils.logger import LoggerMixin, log_context

# QueryOrders statuses after which an order no longer changes
SETTLED_ORDER_STATUSES = frozenset({"closed", "canceled", "expired"})

WITHDRAWAL_STATUS_MAP = {
    # Even "Settled" is not final for Kraken, funds can still bounce
    "Initial": WithdrawalStatus.QUEUED,
    "Pending": WithdrawalStatus.QUEUED,
    "Settled": WithdrawalStatus.QUEUED,
    "Success": WithdrawalStatus.COMPLETE,
    "Failure": WithdrawalStatus.FAILED,
}


def map_withdrawal_status(status_code: str | None) -> WithdrawalStatus:
    """Kraken WithdrawStatus code -> normalized status."""
    return WITHDRAWAL_STATUS_MAP.get(status_code or "", WithdrawalStatus.UNKNOWN)


def format_decimal(value: Decimal) -> str:
    """Plain notation without exponent or trailing zeros ("1.50" -> "1.5")."""
    text = format(value.normalize(), "f")
    return text if text != "-0" else "0"


def _is_settled(order: dict[str, Any] | None) -> bool:
    return order is not None and order.get("status") in SETTLED_ORDER_STATUSES


def _never_expires(expiretm: Any) -> bool:
    try:
        return to_decimal(expiretm) == 0
    except (InvalidOperation, ValueError):
        return False


def _config_value(config: ConfigBag | None, path: str) -> str | None:
    """Raw value of a dotted config path, for pre-filling the form."""
    if not config:
        return None
    if path in config:
        value = config[path]
        return None if value is None else str(value)

    node: Any = config
    for part in path.split(".", 1):
        if not isinstance(node, Mapping) or part not in node:
            return None
        node = node[part]
    return None if node is None else str(node)


class KrakenCustodian(LoggerMixin):
    """
    Kraken implementation of the custodian capabilities.

    Every operation takes the caller's configuration bag, validates it into a
    ``KrakenConfig`` first, and is stateless apart from the pair catalog cache.
    Callers bound an operation with asyncio cancellation
    (``asyncio.timeout``); each HTTP call is also capped by
    ``KrakenSettings.request_timeout``.
    """

    DEPOSITABLE_PAYMENT_METHODS = ("BTC-OnChain", "LTC-OnChain")
    WITHDRAWABLE_FIAT_PAYMENT_METHODS = ("USD", "EUR")

    def __init__(
        self,
        client: KrakenClient | None = None,
        catalog: PairCatalog | None = None,
        settings: KrakenSettings | None = None,
    ) -> None:
        self.settings = settings or (client.settings if client else KrakenSettings())
        self.client = client or KrakenClient(self.settings)
        self.catalog = catalog or PairCatalog(self.client)

    @property
    def code(self) -> str:
        return "kraken"

    @property
    def name(self) -> str:
        return "Kraken"

    async def initialize(self) -> None:
        await self.client.initialize()

    async def close(self) -> None:
        await self.client.close()

    async def __aenter__(self) -> "KrakenCustodian":
        await self.initialize()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    # =========================================================================
    # Payment methods and pairs
    # =========================================================================

    def get_depositable_payment_methods(self) -> list[str]:
        return list(self.DEPOSITABLE_PAYMENT_METHODS)

    def get_withdrawable_payment_methods(self) -> list[str]:
        # Fiat can be withdrawn but has no deposit address flow
        return list(self.DEPOSITABLE_PAYMENT_METHODS) + list(self.WITHDRAWABLE_FIAT_PAYMENT_METHODS)

    async def get_tradable_asset_pairs(self) -> list[AssetPair]:
        return await self.catalog.get_tradable_asset_pairs()

    # =========================================================================
    # Balances and configuration form
    # =========================================================================

    async def get_asset_balances(self, config: ConfigBag) -> dict[str, Decimal]:
        """
        Fetch non-zero balances keyed by canonical asset.

        Raises:
            ConfigurationError: Unchanged, so the form can point at the fields
            AssetBalancesUnavailableError: For any other failure
        """
        kraken_config = KrakenConfig.parse(config)
        try:
            result = await self.client.query_private("Balance", None, kraken_config.credentials)
        except ConfigurationError:
            raise
        except ExchangeAPIError as e:
            self.logger.warning("Balances unavailable", error=e.message)
            raise AssetBalancesUnavailableError(e) from e

        balances: dict[str, Decimal] = {}
        for kraken_asset, raw_amount in (result or {}).items():
            if raw_amount is None:
                continue
            amount = to_decimal(raw_amount)
            if amount > 0:
                balances[from_exchange_asset(kraken_asset)] = amount
        return balances

    async def get_config_form(self, config: ConfigBag, locale: str = "en-US") -> Form:
        """
        Build the connection form and validate the stored credentials.

        Credentials are probed by fetching balances; a ``ConfigurationError``
        marks the named fields invalid and adds a connection alert.

        Labels and messages are English; ``locale`` is accepted for the host
        contract and does not change them.
        """
        form = Form()

        connection = Fieldset(label="Connection details")
        connection.fields.append(
            password_field(
                "API Key",
                "ApiKey",
                _config_value(config, "ApiKey"),
                True,
                "Enter your Kraken API Key. It needs permission to query funds, "
                "deposit, withdraw and create/modify orders.",
            )
        )
        connection.fields.append(
            password_field(
                "Private Key",
                "PrivateKey",
                _config_value(config, "PrivateKey"),
                True,
                "Enter your Kraken Private Key",
            )
        )
        form.fieldsets.append(connection)

        withdrawals = Fieldset(label="Withdrawal settings")
        for payment_method in self.get_withdrawable_payment_methods():
            field_name = withdrawal_label_key(payment_method)
            withdrawals.fields.append(
                text_field(
                    f'Withdrawal "address description" pointing to your store\'s {payment_method} wallet',
                    field_name,
                    _config_value(config, field_name),
                    False,
                    "The exact name of the withdrawal destination as stored in your Kraken "
                    f"account for your store's {payment_method} wallet. "
                    "Example value: \"Mum's Bitcoin Savings\"",
                )
            )
        form.fieldsets.append(withdrawals)

        try:
            await self.get_asset_balances(config)
        except ConfigurationError as e:
            for key in e.bad_config_keys:
                form_field = form.get_field_by_name(key)
                if form_field is not None:
                    form_field.validation_errors.append(f"Invalid {form_field.label}")
            form.top_messages.append(
                AlertMessage(
                    AlertType.DANGER,
                    "Cannot connect to Kraken. Please check your API and private keys.",
                )
            )
        return form

    # =========================================================================
    # Deposits
    # =========================================================================

    async def get_deposit_address(self, payment_method: str, config: ConfigBag) -> DepositAddress:
        """
        Return a non-expiring on-chain deposit address.

        Asks Kraken for a fresh address first. When the account already has
        too many, one existing address is reused instead.

        Raises:
            FeatureNotImplementedError: For anything but BTC-OnChain
            DepositsUnavailableError: If no suitable address is listed
        """
        if payment_method != "BTC-OnChain":
            raise FeatureNotImplementedError(f"Only BTC-OnChain is implemented for {self.name}")

        kraken_config = KrakenConfig.parse(config)
        credentials = kraken_config.credentials
        asset = asset_from_payment_method(payment_method)
        params = {"asset": to_exchange_asset(asset), "method": "Bitcoin", "new": "true"}

        with log_context(operation="get_deposit_address", payment_method=payment_method):
            response = await self.client.send_private("DepositAddresses", params, credentials)

            reuse_existing = response.error_code is KrakenErrorCode.TOO_MANY_ADDRESSES
            if reuse_existing:
                self.logger.info("Address limit reached, reusing an existing address")
                params = {k: v for k, v in params.items() if k != "new"}
                response = await self.client.send_private("DepositAddresses", params, credentials)

            response.raise_for_error()

            for entry in response.result or []:
                if not isinstance(entry, dict) or not entry.get("address"):
                    continue
                is_new = entry.get("new") in (True, "true")
                if (is_new or reuse_existing) and _never_expires(entry.get("expiretm", 0)):
                    return DepositAddress(address=str(entry["address"]))

        raise DepositsUnavailableError("Could not fetch a suitable deposit address.")

    # =========================================================================
    # Trading
    # =========================================================================

    async def _query_order(self, order_id: str, credentials: KrakenCredentials) -> dict[str, Any] | None:
        """Raw QueryOrders info for one order, or None if Kraken does not know it."""
        response = await self.client.send_private("QueryOrders", {"txid": order_id}, credentials)
        if response.error_code is KrakenErrorCode.INVALID_ORDER:
            return None
        response.raise_for_error()

        result = response.result
        if not isinstance(result, dict):
            return None
        order = result.get(order_id)
        return order if isinstance(order, dict) else None

    async def _build_trade_result(self, order_id: str, order: dict[str, Any]) -> MarketTradeResult:
        descr = order.get("descr") or {}
        order_type = descr.get("type")
        pair_string = descr.get("pair")

        pair = await self.catalog.parse_asset_pair(str(pair_string)) if pair_string else None
        if pair is None:
            raise ExchangeAPIError(f"Order {order_id} references unknown pair {pair_string!r}")

        vol_exec = to_decimal(order.get("vol_exec", "0"))
        cost_incl_fee = to_decimal(order.get("cost", "0"))
        # Kraken charges the fee in the quote asset
        fee = to_decimal(order.get("fee", "0"))
        cost_excl_fee = cost_incl_fee - fee
        fee_asset = pair.asset_sold

        if order_type == "buy":
            to_asset, from_asset = pair.asset_bought, pair.asset_sold
            qty_bought, qty_sold = vol_exec, cost_excl_fee
        else:
            to_asset, from_asset = pair.asset_sold, pair.asset_bought
            qty_bought, qty_sold = cost_incl_fee, vol_exec

        ledger_entries = [
            LedgerEntry(to_asset, qty_bought, LedgerEntryType.TRADE),
            LedgerEntry(from_asset, -qty_sold, LedgerEntryType.TRADE),
            LedgerEntry(fee_asset, -fee, LedgerEntryType.FEE),
        ]
        return MarketTradeResult(from_asset, to_asset, ledger_entries, order_id)

    async def get_trade_info(self, trade_id: str, config: ConfigBag) -> MarketTradeResult:
        """
        Look up an order and express it as ledger entries.

        Raises:
            TradeNotFoundError: If Kraken does not know the order
        """
        kraken_config = KrakenConfig.parse(config)
        order = await self._query_order(trade_id, kraken_config.credentials)
        if order is None:
            raise TradeNotFoundError(trade_id)
        return await self._build_trade_result(trade_id, order)

    async def _wait_for_settlement(
        self, order_id: str, credentials: KrakenCredentials
    ) -> dict[str, Any] | None:
        """
        Poll an order until it settles or the settle timeout elapses.

        Returns the last observation, which may still be open (or None if
        the order never showed up).
        """
        retrying = AsyncRetrying(
            retry=retry_if_result(lambda order: not _is_settled(order)),
            stop=stop_after_delay(self.settings.order_settle_timeout),
            wait=wait_exponential(
                multiplier=self.settings.order_poll_min_wait,
                min=self.settings.order_poll_min_wait,
                max=self.settings.order_poll_max_wait,
            ),
            retry_error_callback=lambda state: state.outcome.result() if state.outcome else None,
        )
        return await retrying(self._query_order, order_id, credentials)

    async def trade_market(
        self, from_asset: str, to_asset: str, qty: Decimal, config: ConfigBag
    ) -> MarketTradeResult:
        """
        Convert qty of from_asset into to_asset with a market order.

        A negative qty swaps the direction. When the pair's base asset is the
        one received, the order is a buy and qty is converted to base volume
        at the current bid.

        Raises:
            WrongTradingPairError: If no pair connects the assets
            TradeNotFoundError: If the submitted order never becomes visible
        """
        kraken_config = KrakenConfig.parse(config)
        credentials = kraken_config.credentials

        qty = to_decimal(qty)
        if qty < 0:
            qty = -qty
            from_asset, to_asset = to_asset, from_asset

        pair = await self.catalog.find_asset_pair(from_asset, to_asset, allow_reverse=True)
        if pair is None:
            raise WrongTradingPairError(from_asset, to_asset)

        with log_context(operation="trade_market", pair=pair.pair_code):
            if pair.asset_bought == to_asset:
                order_type = "buy"
                quote = await self.get_quote_for_asset(pair.asset_sold, pair.asset_bought, config)
                if quote.bid <= 0:
                    raise AssetQuoteUnavailableError(pair)
                volume = qty / quote.bid
            else:
                order_type = "sell"
                volume = qty

            params = {
                "type": order_type,
                "pair": pair.pair_code,
                "ordertype": "market",
                "volume": format_decimal(volume),
            }
            result = await self.client.query_private("AddOrder", params, credentials)

            # "txid" holds order ids here, not blockchain transactions
            txids = result.get("txid") if isinstance(result, dict) else None
            if not txids:
                raise ExchangeAPIError("Kraken accepted the order but returned no order id")
            order_id = str(txids[0])

            self.logger.info(
                "Submitted market order",
                order_id=order_id,
                side=order_type,
                volume=params["volume"],
            )

            order = await self._wait_for_settlement(order_id, credentials)
            if order is None:
                raise TradeNotFoundError(order_id)
            if not _is_settled(order):
                self.logger.warning(
                    "Order not settled before timeout", order_id=order_id, status=order.get("status")
                )
            return await self._build_trade_result(order_id, order)

    async def get_quote_for_asset(
        self, from_asset: str, to_asset: str, config: ConfigBag
    ) -> AssetQuoteResult:
        """
        Best bid/ask for converting from_asset into to_asset.

        Prices are expressed per unit of the pair as requested; a pair listed
        the other way round is inverted (bid = 1/ask, ask = 1/bid).

        Raises:
            WrongTradingPairError: If no pair connects the assets
            AssetQuoteUnavailableError: If the ticker cannot be fetched
        """
        pair = await self.catalog.find_asset_pair(from_asset, to_asset, allow_reverse=True)
        if pair is None:
            raise WrongTradingPairError(from_asset, to_asset)

        is_reverse = pair.asset_bought == from_asset

        try:
            result = await self.client.query_public("Ticker", {"pair": pair.pair_code})
        except ExchangeAPIError as e:
            self.logger.warning("Ticker unavailable", pair=pair.pair_code, error=e.message)
            raise AssetQuoteUnavailableError(pair) from e

        bid, ask = _top_of_book(result)
        if bid is None or ask is None:
            raise AssetQuoteUnavailableError(pair)

        if is_reverse:
            if bid == 0 or ask == 0:
                raise AssetQuoteUnavailableError(pair)
            bid, ask = Decimal(1) / ask, Decimal(1) / bid

        return AssetQuoteResult(from_asset, to_asset, bid, ask)

    # =========================================================================
    # Withdrawals
    # =========================================================================

    @staticmethod
    def _require_withdrawal_label(kraken_config: KrakenConfig, payment_method: str) -> str:
        label = kraken_config.withdrawal_label(payment_method)
        if not label:
            raise ConfigurationError([withdrawal_label_key(payment_method)])
        return label

    @staticmethod
    def _map_withdrawal_error(
        error: ExchangeAPIError, payment_method: str, label: str
    ) -> ExchangeAPIError:
        if isinstance(error, InvalidWithdrawalTargetError) or (
            error.code is KrakenErrorCode.UNKNOWN_WITHDRAW_KEY
        ):
            # Points the operator at the withdrawal label field
            return InvalidWithdrawalTargetError(payment_method, label)
        return CannotWithdrawError(payment_method, label, error.message)

    def _withdrawal_ledger(self, asset: str, amount: Decimal, fee: Decimal) -> list[LedgerEntry]:
        return [
            LedgerEntry(asset, -amount, LedgerEntryType.WITHDRAWAL),
            LedgerEntry(asset, -fee, LedgerEntryType.FEE),
        ]

    async def simulate_withdrawal(
        self, payment_method: str, qty: Decimal, config: ConfigBag
    ) -> SimulateWithdrawalResult:
        """
        Ask Kraken what withdrawing qty would cost.

        ``max_qty`` is Kraken's limit, which still includes the fee.

        Raises:
            ConfigurationError: If no withdrawal label is configured
            InvalidWithdrawalTargetError: If Kraken does not know the label
            CannotWithdrawError: For any other exchange failure
        """
        kraken_config = KrakenConfig.parse(config)
        label = self._require_withdrawal_label(kraken_config, payment_method)
        asset = asset_from_payment_method(payment_method)
        qty = to_decimal(qty)

        params = {"asset": to_exchange_asset(asset), "key": label, "amount": format_decimal(qty)}

        with log_context(operation="simulate_withdrawal", payment_method=payment_method):
            try:
                result = await self.client.query_private("WithdrawInfo", params, kraken_config.credentials)
                fee = to_decimal(_require(result, "fee", "WithdrawInfo"))
                max_qty = to_decimal(_require(result, "limit", "WithdrawInfo"))
            except ConfigurationError:
                raise
            except ExchangeAPIError as e:
                raise self._map_withdrawal_error(e, payment_method, label) from e

        return SimulateWithdrawalResult(
            payment_method=payment_method,
            asset=asset,
            ledger_entries=self._withdrawal_ledger(asset, qty - fee, fee),
            min_qty=Decimal("0"),
            max_qty=max_qty,
        )

    async def withdraw_to_store_wallet(
        self, payment_method: str, amount: Decimal, config: ConfigBag
    ) -> WithdrawResult:
        """
        Withdraw amount to the store wallet registered under the configured label.

        Errors from the status lookup after Kraken accepted the withdrawal are
        not wrapped as ``CannotWithdrawError``.

        Raises:
            ConfigurationError: If no withdrawal label is configured
            InvalidWithdrawalTargetError: If Kraken does not know the label
            CannotWithdrawError: For any other failure submitting the withdrawal
            WithdrawalNotFoundError: If the withdrawal is missing from the status list
        """
        kraken_config = KrakenConfig.parse(config)
        label = self._require_withdrawal_label(kraken_config, payment_method)
        asset = asset_from_payment_method(payment_method)
        amount = to_decimal(amount)

        params = {"asset": to_exchange_asset(asset), "key": label, "amount": format_decimal(amount)}

        with log_context(operation="withdraw_to_store_wallet", payment_method=payment_method):
            try:
                result = await self.client.query_private("Withdraw", params, kraken_config.credentials)
                withdrawal_id = str(_require(result, "refid", "Withdraw"))
            except ConfigurationError:
                raise
            except ExchangeAPIError as e:
                raise self._map_withdrawal_error(e, payment_method, label) from e

            self.logger.info("Withdrawal submitted", withdrawal_id=withdrawal_id, amount=params["amount"])

        return await self.get_withdrawal_info(payment_method, withdrawal_id, config)

    async def get_withdrawal_info(
        self, payment_method: str, withdrawal_id: str, config: ConfigBag
    ) -> WithdrawResult:
        """
        Find a withdrawal among the recent ones for the payment method's asset.

        Raises:
            WithdrawalNotFoundError: If no recent withdrawal has this reference id
        """
        kraken_config = KrakenConfig.parse(config)
        asset = asset_from_payment_method(payment_method)

        result = await self.client.query_private(
            "WithdrawStatus", {"asset": to_exchange_asset(asset)}, kraken_config.credentials
        )

        for withdrawal in result or []:
            if not isinstance(withdrawal, dict) or str(withdrawal.get("refid")) != withdrawal_id:
                continue

            amount = to_decimal(withdrawal.get("amount", "0"))
            fee = to_decimal(withdrawal.get("fee", "0"))
            status_code = withdrawal.get("status")

            created_at = None
            if withdrawal.get("time") is not None:
                created_at = datetime.fromtimestamp(int(to_decimal(withdrawal["time"])), tz=timezone.utc)

            info = withdrawal.get("info")
            txid = withdrawal.get("txid")
            return WithdrawResult(
                payment_method=payment_method,
                asset=asset,
                ledger_entries=self._withdrawal_ledger(asset, amount, fee),
                withdrawal_id=withdrawal_id,
                status=map_withdrawal_status(status_code),
                created_at=created_at,
                target_address=None if info is None else str(info),
                transaction_id=None if txid is None else str(txid),
                raw_status=status_code,
            )

        raise WithdrawalNotFoundError(withdrawal_id)


def _require(result: Any, key: str, method: str) -> Any:
    if not isinstance(result, dict) or result.get(key) is None:
        raise ExchangeAPIError(f"Kraken {method} response is missing {key!r}")
    return result[key]


def _top_of_book(result: Any) -> tuple[Decimal | None, Decimal | None]:
    """Best bid and ask from a Ticker result ({pair: {"b": [price, ...], "a": [...]}})."""
    if not isinstance(result, dict):
        return None, None
    for ticker in result.values():
        if not isinstance(ticker, dict):
            continue
        bids = ticker.get("b") or []
        asks = ticker.get("a") or []
        if bids and asks:
            return to_decimal(bids[0]), to_decimal(asks[0])
    return None, None
