from __future__ import annotations

import logging
import os
import time
from typing import Any

import requests

from opportunity_engine.config import ConfigError, CrawlSettings
from opportunity_engine.models import CrawlResult

from .base import CrawlProvider, CrawlProviderError, crawl_result_from_payload
from .registry import register_provider

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.firecrawl.dev/v1"


class FirecrawlProvider(CrawlProvider):
    """Runs a Firecrawl crawl job and waits for it to complete.

    Polling is bounded by ``max_polls``; the provider does not retry failed jobs.
    """

    def __init__(
        self,
        *,
        url: str,
        api_key: str,
        api_url: str = DEFAULT_API_URL,
        limit: int = 100,
        timeout_seconds: int = 30,
        poll_interval_seconds: float = 5.0,
        max_polls: int = 120,
    ) -> None:
        super().__init__(provider_id="firecrawl")
        self.url = url
        self.api_key = api_key
        self.api_url = api_url.rstrip("/")
        self.limit = limit
        self.timeout_seconds = timeout_seconds
        self.poll_interval_seconds = poll_interval_seconds
        self.max_polls = max_polls

    def crawl(self) -> CrawlResult:
        job_id = self._start_job()
        logger.info("Firecrawl job %s started for %s", job_id, self.url)

        for attempt in range(1, self.max_polls + 1):
            status = self._request("GET", f"{self.api_url}/crawl/{job_id}")
            state = str(status.get("status", "")).lower()
            if state == "completed":
                result = crawl_result_from_payload(status, source_url=self.url)
                logger.info(
                    "Firecrawl job %s completed with %d pages", job_id, len(result.pages)
                )
                return result
            if state in {"failed", "cancelled"}:
                raise CrawlProviderError(f"Firecrawl job {job_id} ended with status {state}")

            logger.debug(
                "Firecrawl job %s status %s (%d/%d)", job_id, state, attempt, self.max_polls
            )
            time.sleep(self.poll_interval_seconds)

        raise CrawlProviderError(
            f"Firecrawl job {job_id} did not complete after {self.max_polls} polls"
        )

    def _start_job(self) -> str:
        payload = {
            "url": self.url,
            "limit": self.limit,
            "scrapeOptions": {"formats": ["markdown", "html"]},
        }
        response = self._request("POST", f"{self.api_url}/crawl", json=payload)
        if not response.get("success") or not response.get("id"):
            raise CrawlProviderError(
                f"Firecrawl rejected crawl of {self.url}: {response.get('error', 'unknown error')}"
            )
        return str(response["id"])

    def _request(self, method: str, url: str, **kwargs: Any) -> dict[str, Any]:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "User-Agent": "opportunity-engine/0.1",
        }
        try:
            if method == "POST":
                response = requests.post(
                    url, headers=headers, timeout=self.timeout_seconds, **kwargs
                )
            else:
                response = requests.get(url, headers=headers, timeout=self.timeout_seconds)
        except requests.RequestException as exc:
            raise CrawlProviderError(f"Firecrawl request to {url} failed: {exc}") from exc

        if response.status_code >= 400:
            raise CrawlProviderError(
                f"Firecrawl returned {response.status_code}: {response.text}"
            )

        try:
            body = response.json()
        except ValueError as exc:
            raise CrawlProviderError(f"Firecrawl returned non-JSON body from {url}") from exc
        if not isinstance(body, dict):
            raise CrawlProviderError(f"Firecrawl returned unexpected payload from {url}")
        return body


@register_provider("firecrawl")
def _build_firecrawl_provider(settings: CrawlSettings) -> CrawlProvider:
    if not settings.url:
        raise ConfigError("crawl.url is required for the firecrawl provider")

    api_key = os.getenv(settings.api_key_env_var, "").strip()
    if not api_key:
        raise ConfigError(
            f"Missing Firecrawl API key in environment variable {settings.api_key_env_var}"
        )

    options = settings.options
    return FirecrawlProvider(
        url=settings.url,
        api_key=api_key,
        api_url=str(options.get("api_url", DEFAULT_API_URL)),
        limit=int(options.get("limit", 100)),
        timeout_seconds=int(options.get("timeout_seconds", 30)),
        poll_interval_seconds=float(options.get("poll_interval_seconds", 5.0)),
        max_polls=int(options.get("max_polls", 120)),
    )
