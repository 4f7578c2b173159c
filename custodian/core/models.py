"""
Value types returned by the custodian operations.

All amounts are ``Decimal``. Ledger amounts are signed: positive means
received by the account, negative means paid out.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any


def to_decimal(value: Any) -> Decimal:
    """Convert an exchange number (string, int or Decimal) without going through float."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


class LedgerEntryType(str, Enum):
    """Kind of ledger line"""

    TRADE = "Trade"
    FEE = "Fee"
    WITHDRAWAL = "Withdrawal"


class WithdrawalStatus(str, Enum):
    """Normalized withdrawal state"""

    QUEUED = "Queued"
    COMPLETE = "Complete"
    FAILED = "Failed"
    UNKNOWN = "Unknown"


@dataclass(frozen=True)
class AssetPair:
    """A tradable pair: buying ``asset_bought`` (base) with ``asset_sold`` (quote)."""

    asset_bought: str
    asset_sold: str
    pair_code: str
    minimum_order_qty: Decimal = Decimal("0")

    def __str__(self) -> str:
        return f"{self.asset_bought}/{self.asset_sold}"


@dataclass(frozen=True)
class LedgerEntry:
    asset: str
    amount: Decimal
    type: LedgerEntryType


@dataclass
class MarketTradeResult:
    from_asset: str
    to_asset: str
    ledger_entries: list[LedgerEntry]
    trade_id: str


@dataclass
class AssetQuoteResult:
    from_asset: str
    to_asset: str
    bid: Decimal
    ask: Decimal


@dataclass
class DepositAddress:
    address: str


@dataclass
class SimulateWithdrawalResult:
    payment_method: str
    asset: str
    ledger_entries: list[LedgerEntry]
    min_qty: Decimal
    max_qty: Decimal


@dataclass
class WithdrawResult:
    payment_method: str
    asset: str
    ledger_entries: list[LedgerEntry]
    withdrawal_id: str
    status: WithdrawalStatus
    created_at: datetime | None
    target_address: str | None
    transaction_id: str | None = None
    raw_status: str | None = field(default=None, compare=False)
