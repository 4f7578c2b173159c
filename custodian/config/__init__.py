"""Configuration modules"""

from custodian.config.form import AlertMessage, AlertType, Fieldset, Form, FormField
from custodian.config.schemas import (
    WITHDRAWAL_LABELS_KEY,
    KrakenConfig,
    KrakenCredentials,
    withdrawal_label_key,
)
from custodian.config.settings import KrakenSettings

__all__ = [
    "KrakenConfig",
    "KrakenCredentials",
    "KrakenSettings",
    "WITHDRAWAL_LABELS_KEY",
    "withdrawal_label_key",
    "Form",
    "Fieldset",
    "FormField",
    "AlertMessage",
    "AlertType",
]
