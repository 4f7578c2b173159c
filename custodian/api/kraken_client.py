"""
Kraken REST API Client
Signed and public request engine for the Kraken spot API.

Key features:
- Public endpoints at /0/public/{method}, private at /0/private/{method}
- API-Sign = base64(HMAC-SHA512(path + SHA256(nonce + body), b64decode(secret)))
- Millisecond nonce padded with three zero digits
- Browser-like User-Agent (Kraken blocks bare clients)
- Response envelope {"error": [...], "result": {...}}, errors take precedence
"""

import asyncio
import base64
import hashlib
import hmac
import json
import time
from dataclasses import dataclass, field
from decimal import Decimal
from functools import partial
from typing import Any
from urllib.parse import urlencode

import aiohttp

from custodian.api.error_classifier import (
    CREDENTIAL_CONFIG_KEYS,
    KrakenErrorCode,
    classify_error,
    map_error,
)
from custodian.api.exceptions import ConfigurationError, ExchangeAPIError, NetworkError
from custodian.config.schemas import KrakenCredentials
from custodian.config.settings import KrakenSettings
from custodian.utils.logger import get_logger

logger = get_logger(__name__)

# Kraken amounts may exceed float precision
_decode_json = partial(json.loads, parse_float=Decimal)


@dataclass
class KrakenResponse:
    """Decoded response envelope"""

    result: Any = None
    errors: list[str] = field(default_factory=list)

    @property
    def error(self) -> str | None:
        """First error string, the only one Kraken callers act on."""
        return self.errors[0] if self.errors else None

    @property
    def error_code(self) -> KrakenErrorCode | None:
        return classify_error(self.error) if self.error else None

    @property
    def ok(self) -> bool:
        return not self.errors

    def raise_for_error(self) -> None:
        """Raise the classified exception if the envelope carries an error."""
        if self.error is not None:
            raise map_error(self.error)


class KrakenClient:
    """
    Kraken REST client.

    The aiohttp session is created by ``initialize()`` (or entering the client
    as an async context manager) and released by ``close()``.
    """

    def __init__(
        self,
        settings: KrakenSettings | None = None,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self.settings = settings or KrakenSettings()
        self.base_url = self.settings.base_url.rstrip("/")
        self.timeout = aiohttp.ClientTimeout(total=self.settings.request_timeout)

        self._session = session
        self._owns_session = session is None

        # Statistics
        self._request_count = 0
        self._error_count = 0

        # Last nonce issued
        self._last_nonce = 0

    async def initialize(self) -> None:
        """Open the HTTP session."""
        if not self._session:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
            logger.info("Kraken client initialized", base_url=self.base_url)

    async def close(self) -> None:
        """Close the HTTP session if this client opened it."""
        if self._session:
            if self._owns_session:
                await self._session.close()
            self._session = None
            logger.info(
                "Kraken client closed",
                total_requests=self._request_count,
                total_errors=self._error_count,
            )

    async def __aenter__(self) -> "KrakenClient":
        await self.initialize()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    def _create_nonce(self) -> str:
        """
        Current Unix time in milliseconds followed by three counter digits.

        Kraken requires strictly increasing nonces per API key. Calls within
        the same millisecond (or after a clock step back) get the previous
        nonce plus one.
        """
        nonce = max(int(time.time() * 1000) * 1000, self._last_nonce + 1)
        self._last_nonce = nonce
        return str(nonce)

    @staticmethod
    def _create_signature(path: str, nonce: str, post_data: str, secret: bytes) -> str:
        """
        Create the API-Sign value.

        Args:
            path: URI path, e.g. '/0/private/Balance'
            nonce: Nonce included in post_data
            post_data: URL-encoded request body
            secret: Base64-decoded private key

        Returns:
            Base64 HMAC-SHA512 signature
        """
        sha256 = hashlib.sha256((nonce + post_data).encode("utf-8")).digest()
        message = path.encode("utf-8") + sha256
        signature = hmac.new(secret, message, hashlib.sha512).digest()
        return base64.b64encode(signature).decode("ascii")

    def _build_headers(self, api_key: str | None = None, signature: str | None = None) -> dict[str, str]:
        headers = {"User-Agent": self.settings.user_agent}
        if api_key is not None and signature is not None:
            headers["API-Key"] = api_key
            headers["API-Sign"] = signature
            headers["Content-Type"] = "application/x-www-form-urlencoded"
        return headers

    async def _post(
        self,
        path: str,
        headers: dict[str, str],
        data: str | None = None,
        params: dict[str, str] | None = None,
    ) -> KrakenResponse:
        """
        POST to Kraken and decode the response envelope.

        Raises:
            ExchangeAPIError: If the client is not initialized
            NetworkError: On transport failure, timeout or an undecodable body
        """
        if not self._session:
            raise ExchangeAPIError("Client not initialized")

        self._request_count += 1
        url = f"{self.base_url}{path}"

        logger.debug("kraken_api_request", path=path, params=params)

        try:
            async with self._session.post(
                url, data=data, params=params, headers=headers, timeout=self.timeout
            ) as response:
                payload = await response.json(content_type=None, loads=_decode_json)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            self._error_count += 1
            reason = str(e) or type(e).__name__
            logger.error("Network error", path=path, error=reason)
            raise NetworkError(f"Network error: {reason}") from e
        except ValueError as e:
            self._error_count += 1
            logger.error("Undecodable response", path=path, error=str(e))
            raise NetworkError(f"Invalid response from Kraken: {e}") from e

        if not isinstance(payload, dict):
            self._error_count += 1
            raise NetworkError(f"Unexpected response from Kraken: {payload!r}")

        errors = payload.get("error") or []
        if not isinstance(errors, list):
            errors = [errors]
        kraken_response = KrakenResponse(
            result=payload.get("result"),
            errors=[str(e) for e in errors],
        )

        if not kraken_response.ok:
            self._error_count += 1
            logger.warning("Kraken API error", path=path, error=kraken_response.error)

        return kraken_response

    async def send_public(self, method: str, params: dict[str, str] | None = None) -> KrakenResponse:
        """Call a public method, returning the envelope even if it carries an error."""
        return await self._post(f"/0/public/{method}", self._build_headers(), params=params)

    async def query_public(self, method: str, params: dict[str, str] | None = None) -> Any:
        """
        Call a public method.

        Args:
            method: Public method name, e.g. 'AssetPairs' or 'Ticker'
            params: Query parameters

        Returns:
            The ``result`` member of the response

        Raises:
            ExchangeAPIError: Carrying the first exchange error
        """
        response = await self.send_public(method, params)
        if response.error is not None:
            raise ExchangeAPIError(response.error, code=response.error_code)
        return response.result

    async def send_private(
        self,
        method: str,
        params: dict[str, str] | None,
        credentials: KrakenCredentials,
    ) -> KrakenResponse:
        """
        Sign and send a private method call, returning the envelope as-is.

        Raises:
            ConfigurationError: If a credential is missing or the private key is not base64
        """
        if not credentials.is_complete:
            raise ConfigurationError(CREDENTIAL_CONFIG_KEYS)
        secret = credentials.decoded_private_key()

        nonce = self._create_nonce()
        post_params = dict(params or {})
        post_params["nonce"] = nonce
        post_data = urlencode(post_params)

        path = f"/0/private/{method}"
        signature = self._create_signature(path, nonce, post_data, secret)
        headers = self._build_headers(credentials.api_key, signature)

        return await self._post(path, headers, data=post_data)

    async def query_private(
        self,
        method: str,
        params: dict[str, str] | None,
        credentials: KrakenCredentials,
    ) -> Any:
        """
        Call a private method.

        Args:
            method: Private method name, e.g. 'Balance' or 'AddOrder'
            params: Form parameters (the nonce is added here)
            credentials: API key and base64 private key

        Returns:
            The ``result`` member of the response

        Raises:
            ConfigurationError: On missing/invalid credentials or 'EAPI:Invalid key'
            PermissionDeniedError: On 'EGeneral:Permission denied'
            ExchangeAPIError: On any other exchange error
        """
        response = await self.send_private(method, params, credentials)
        response.raise_for_error()
        return response.result

    def get_statistics(self) -> dict[str, Any]:
        """Get client statistics"""
        return {
            "exchange": "kraken",
            "initialized": self._session is not None,
            "total_requests": self._request_count,
            "total_errors": self._error_count,
            "error_rate": (
                self._error_count / self._request_count if self._request_count > 0 else 0
            ),
        }
