"""
Classification of Kraken error strings.

Kraken reports failures as an ``error`` array of ``"<category>:<message>"``
strings. Only the first entry is significant. A handful of them carry a
meaning the operations act on; everything else is a generic API failure.
"""

from enum import Enum

from custodian.api.exceptions import (
    ConfigurationError,
    ExchangeAPIError,
    InvalidWithdrawalTargetError,
    PermissionDeniedError,
)

CREDENTIAL_CONFIG_KEYS = ("ApiKey", "PrivateKey")


class KrakenErrorCode(str, Enum):
    """Exchange error strings with a dedicated meaning"""

    INVALID_KEY = "EAPI:Invalid key"
    PERMISSION_DENIED = "EGeneral:Permission denied"
    TOO_MANY_ADDRESSES = "EFunding:Too many addresses"
    UNKNOWN_WITHDRAW_KEY = "EFunding:Unknown withdraw key"
    INVALID_ORDER = "EOrder:Invalid order"


_CODES_BY_MESSAGE = {code.value: code for code in KrakenErrorCode}


def classify_error(message: str) -> KrakenErrorCode | None:
    """Return the known code for an exact error string, or None."""
    return _CODES_BY_MESSAGE.get(message)


def map_error(message: str) -> ExchangeAPIError:
    """
    Build the exception for an exchange error string.

    Args:
        message: First entry of the response ``error`` array

    Returns:
        The narrowest exception for the message. Codes that callers handle
        as control flow (too many addresses, invalid order) still come back
        as a generic error tagged with their code.
    """
    code = classify_error(message)

    if code is KrakenErrorCode.INVALID_KEY:
        error: ExchangeAPIError = ConfigurationError(CREDENTIAL_CONFIG_KEYS, message)
    elif code is KrakenErrorCode.PERMISSION_DENIED:
        error = PermissionDeniedError()
    elif code is KrakenErrorCode.UNKNOWN_WITHDRAW_KEY:
        error = InvalidWithdrawalTargetError(message=message)
    else:
        error = ExchangeAPIError(message)

    error.code = code
    return error
