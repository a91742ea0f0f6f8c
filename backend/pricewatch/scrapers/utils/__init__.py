"""Scraper utilities for user agents, proxies, browsers, normalization and retries."""

from .proxy_manager import ProxyManager, ProxyEntry, NoProxyManager
from .user_agents import (
    get_random_user_agent,
    build_browser_headers,
    USER_AGENTS,
)
from .normalizer import (
    PriceNormalizer,
    normalize_url,
    CURRENCY_SYMBOLS,
    DOMAIN_CURRENCIES,
)
from .retry import RetryController, linear_backoff, is_retryable


__all__ = [
    # Proxy management
    "ProxyManager",
    "ProxyEntry",
    "NoProxyManager",
    # User agents
    "get_random_user_agent",
    "build_browser_headers",
    "USER_AGENTS",
    # Normalization
    "PriceNormalizer",
    "normalize_url",
    "CURRENCY_SYMBOLS",
    "DOMAIN_CURRENCIES",
    # Retry
    "RetryController",
    "linear_backoff",
    "is_retryable",
]
