from __future__ import annotations

import json
from pathlib import Path

from opportunity_engine.config import ConfigError, CrawlSettings
from opportunity_engine.models import CrawlResult

from .base import CrawlProvider, CrawlProviderError, crawl_result_from_payload
from .registry import register_provider


class FileCrawlProvider(CrawlProvider):
    """Reads a crawl dump previously saved as JSON."""

    def __init__(self, path: str | Path) -> None:
        super().__init__(provider_id="file")
        self.path = Path(path)

    def crawl(self) -> CrawlResult:
        try:
            with self.path.open("r", encoding="utf-8") as handle:
                payload = json.load(handle)
        except OSError as exc:
            raise CrawlProviderError(f"cannot read crawl dump {self.path}: {exc}") from exc
        except json.JSONDecodeError as exc:
            raise CrawlProviderError(f"crawl dump {self.path} is not valid JSON") from exc

        return crawl_result_from_payload(payload, source_url=str(self.path))


@register_provider("file")
def _build_file_provider(settings: CrawlSettings) -> CrawlProvider:
    if not settings.path:
        raise ConfigError("crawl.path is required for the file provider")
    return FileCrawlProvider(settings.path)
