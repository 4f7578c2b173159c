"""
Pydantic schemas for the caller-supplied configuration bag.

The host platform stores the adapter configuration as a loosely typed
key/value structure. It is validated here, once, at the boundary; the
operations only ever see ``KrakenConfig``.
"""

import base64
import binascii
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from custodian.api.exceptions import ConfigurationError

WITHDRAWAL_LABELS_KEY = "WithdrawToStoreWalletAddressLabels"


def withdrawal_label_key(payment_method: str) -> str:
    """Config path of the withdrawal label for a payment method."""
    return f"{WITHDRAWAL_LABELS_KEY}.{payment_method}"


class KrakenCredentials(BaseModel):
    """API key pair used to sign private requests"""

    model_config = ConfigDict(frozen=True)

    api_key: str = Field(default="", repr=False)
    private_key: str = Field(default="", repr=False)

    @property
    def is_complete(self) -> bool:
        return bool(self.api_key) and bool(self.private_key)

    def decoded_private_key(self) -> bytes:
        """
        Decode the base64 private key.

        Raises:
            ConfigurationError: If the key is not valid base64
        """
        try:
            return base64.b64decode(self.private_key, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ConfigurationError(("ApiKey", "PrivateKey")) from e


class KrakenConfig(BaseModel):
    """Typed view of the adapter configuration"""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    api_key: str = Field(default="", alias="ApiKey", repr=False)
    private_key: str = Field(default="", alias="PrivateKey", repr=False)
    withdraw_to_store_wallet_address_labels: dict[str, str] = Field(
        default_factory=dict,
        alias=WITHDRAWAL_LABELS_KEY,
        description="Payment method -> withdrawal destination label registered on Kraken",
    )

    @model_validator(mode="before")
    @classmethod
    def collect_flat_labels(cls, data: Any) -> Any:
        """Accept ``"WithdrawToStoreWalletAddressLabels.<pm>"`` keys next to the nested form."""
        if data is None:
            return {}
        if not isinstance(data, Mapping):
            return data

        prefix = WITHDRAWAL_LABELS_KEY + "."
        flat = {k[len(prefix):]: v for k, v in data.items() if isinstance(k, str) and k.startswith(prefix)}
        if not flat:
            return data

        nested = dict(data.get(WITHDRAWAL_LABELS_KEY) or {})
        nested.update(flat)
        cleaned = {k: v for k, v in data.items() if not (isinstance(k, str) and k.startswith(prefix))}
        cleaned[WITHDRAWAL_LABELS_KEY] = nested
        return cleaned

    @field_validator("api_key", "private_key", mode="before")
    @classmethod
    def none_as_empty(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("withdraw_to_store_wallet_address_labels", mode="before")
    @classmethod
    def drop_empty_labels(cls, v: Any) -> Any:
        if isinstance(v, Mapping):
            return {k: label for k, label in v.items() if label not in (None, "")}
        return v

    @field_validator("private_key")
    @classmethod
    def validate_private_key(cls, v: str) -> str:
        """A present private key must be base64"""
        if v:
            try:
                base64.b64decode(v, validate=True)
            except (binascii.Error, ValueError) as e:
                raise ValueError("PrivateKey is not valid base64") from e
        return v

    @classmethod
    def parse(cls, config: Mapping[str, Any] | None) -> "KrakenConfig":
        """
        Validate a configuration bag.

        Raises:
            ConfigurationError: Naming the offending config keys
        """
        try:
            return cls.model_validate(config)
        except ValidationError as e:
            bad_keys: list[str] = []
            for error in e.errors():
                loc = error.get("loc") or ()
                key = _config_key_for_loc(loc)
                if key not in bad_keys:
                    bad_keys.append(key)
            if set(bad_keys) & {"ApiKey", "PrivateKey"}:
                bad_keys = ["ApiKey", "PrivateKey"] + [
                    k for k in bad_keys if k not in ("ApiKey", "PrivateKey")
                ]
            raise ConfigurationError(bad_keys) from e

    @property
    def credentials(self) -> KrakenCredentials:
        return KrakenCredentials(api_key=self.api_key, private_key=self.private_key)

    def withdrawal_label(self, payment_method: str) -> str:
        """Label of the pre-registered destination for a payment method ("" if unset)."""
        return self.withdraw_to_store_wallet_address_labels.get(payment_method, "")


def _config_key_for_loc(loc: tuple[Any, ...]) -> str:
    if not loc:
        return WITHDRAWAL_LABELS_KEY
    head = str(loc[0])
    aliases = {
        "api_key": "ApiKey",
        "private_key": "PrivateKey",
        "withdraw_to_store_wallet_address_labels": WITHDRAWAL_LABELS_KEY,
    }
    head = aliases.get(head, head)
    if head == WITHDRAWAL_LABELS_KEY and len(loc) > 1:
        return withdrawal_label_key(str(loc[1]))
    return head
