"""
Runtime settings using pydantic-settings.
"""

from pydantic_settings import BaseSettings

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/98.0.4758.102 Safari/537.36"
)


class KrakenSettings(BaseSettings):
    """Connection and polling settings for the Kraken adapter."""

    # Endpoint
    base_url: str = "https://api.kraken.com"
    # Kraken rejects requests without a browser-like User-Agent
    user_agent: str = DEFAULT_USER_AGENT
    request_timeout: float = 30.0

    # Market order settlement polling
    order_settle_timeout: float = 10.0
    order_poll_min_wait: float = 0.5
    order_poll_max_wait: float = 4.0

    model_config = {"env_prefix": "KRAKEN_", "env_file": ".env", "extra": "ignore"}
