"""Kraken custodian adapter: balances, deposits, market trades and withdrawals."""

from custodian.api.kraken_client import KrakenClient
from custodian.config.schemas import KrakenConfig
from custodian.config.settings import KrakenSettings
from custodian.core.kraken_custodian import KrakenCustodian

__all__ = ["KrakenClient", "KrakenConfig", "KrakenCustodian", "KrakenSettings"]

__version__ = "0.1.0"
