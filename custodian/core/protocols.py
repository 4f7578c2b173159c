"""Capability protocols a custodian adapter exposes to the host platform.

Host code checks these with ``isinstance`` to discover what an adapter
supports; every method receives the raw configuration bag.
"""

from collections.abc import Mapping
from decimal import Decimal
from typing import Any, Protocol, runtime_checkable

from custodian.config.form import Form
from custodian.core.models import (
    AssetPair,
    AssetQuoteResult,
    DepositAddress,
    MarketTradeResult,
    SimulateWithdrawalResult,
    WithdrawResult,
)

ConfigBag = Mapping[str, Any]


@runtime_checkable
class ICustodian(Protocol):
    """Base capabilities of every custodian."""

    @property
    def code(self) -> str:
        ...

    @property
    def name(self) -> str:
        ...

    async def get_asset_balances(self, config: ConfigBag) -> dict[str, Decimal]:
        ...

    async def get_config_form(self, config: ConfigBag, locale: str = "en-US") -> Form:
        ...


@runtime_checkable
class ICanDeposit(Protocol):
    def get_depositable_payment_methods(self) -> list[str]:
        ...

    async def get_deposit_address(self, payment_method: str, config: ConfigBag) -> DepositAddress:
        ...


@runtime_checkable
class ICanTrade(Protocol):
    async def get_tradable_asset_pairs(self) -> list[AssetPair]:
        ...

    async def trade_market(
        self, from_asset: str, to_asset: str, qty: Decimal, config: ConfigBag
    ) -> MarketTradeResult:
        ...

    async def get_trade_info(self, trade_id: str, config: ConfigBag) -> MarketTradeResult:
        ...

    async def get_quote_for_asset(
        self, from_asset: str, to_asset: str, config: ConfigBag
    ) -> AssetQuoteResult:
        ...


@runtime_checkable
class ICanWithdraw(Protocol):
    def get_withdrawable_payment_methods(self) -> list[str]:
        ...

    async def withdraw_to_store_wallet(
        self, payment_method: str, amount: Decimal, config: ConfigBag
    ) -> WithdrawResult:
        ...

    async def simulate_withdrawal(
        self, payment_method: str, qty: Decimal, config: ConfigBag
    ) -> SimulateWithdrawalResult:
        ...

    async def get_withdrawal_info(
        self, payment_method: str, withdrawal_id: str, config: ConfigBag
    ) -> WithdrawResult:
        ...
