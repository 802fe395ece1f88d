from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from opportunity_engine.models import CrawledPage, CrawlResult


class CrawlProviderError(RuntimeError):
    """Raised when a crawl provider cannot deliver a crawl result."""


class CrawlProvider(ABC):
    def __init__(self, provider_id: str) -> None:
        self.provider_id = provider_id

    @abstractmethod
    def crawl(self) -> CrawlResult:
        """Fetch the pages of one crawl batch."""


def page_from_payload(item: Any) -> CrawledPage | None:
    """Map a crawler page payload (Firecrawl-style or flat) to a ``CrawledPage``."""
    if not isinstance(item, dict):
        return None

    metadata = item.get("metadata")
    if not isinstance(metadata, dict):
        metadata = {}

    url = str(metadata.get("sourceURL") or metadata.get("url") or item.get("url") or "").strip()
    content = item.get("html") or item.get("markdown") or item.get("content") or ""
    title = metadata.get("title") or item.get("title")

    return CrawledPage(
        url=url,
        content=str(content),
        title=str(title).strip() if title else None,
    )


def crawl_result_from_payload(payload: Any, source_url: str | None = None) -> CrawlResult:
    items = payload.get("data", []) if isinstance(payload, dict) else payload
    if not isinstance(items, list):
        raise CrawlProviderError("crawl payload must be a list of pages or contain a 'data' list")

    pages = [page for page in (page_from_payload(item) for item in items) if page is not None]
    return CrawlResult(pages=pages, source_url=source_url)
