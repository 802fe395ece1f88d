"""Crawl providers and registry."""

from .base import CrawlProvider, CrawlProviderError, crawl_result_from_payload, page_from_payload
from .file_source import FileCrawlProvider
from .firecrawl import FirecrawlProvider
from .registry import (
    ProviderRegistrationError,
    create_provider,
    register_provider,
    registered_provider_types,
)

__all__ = [
    "CrawlProvider",
    "CrawlProviderError",
    "FileCrawlProvider",
    "FirecrawlProvider",
    "ProviderRegistrationError",
    "crawl_result_from_payload",
    "create_provider",
    "page_from_payload",
    "register_provider",
    "registered_provider_types",
]
