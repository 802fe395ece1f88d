"""Crawl providers are looked up by the ``crawl.provider`` config value."""

from __future__ import annotations

from typing import Callable

from opportunity_engine.config import CrawlSettings

from .base import CrawlProvider

ProviderFactory = Callable[[CrawlSettings], CrawlProvider]

_PROVIDER_FACTORIES: dict[str, ProviderFactory] = {}


class ProviderRegistrationError(ValueError):
    """Raised for an unknown or doubly registered crawl provider name."""


def register_provider(name: str) -> Callable[[ProviderFactory], ProviderFactory]:
    def decorator(factory: ProviderFactory) -> ProviderFactory:
        existing = _PROVIDER_FACTORIES.get(name)
        if existing is not None and existing is not factory:
            raise ProviderRegistrationError(f"crawl provider '{name}' is already registered")
        _PROVIDER_FACTORIES[name] = factory
        return factory

    return decorator


def create_provider(settings: CrawlSettings) -> CrawlProvider:
    factory = _PROVIDER_FACTORIES.get(settings.provider)
    if factory is None:
        known = ", ".join(registered_provider_types()) or "none"
        raise ProviderRegistrationError(
            f"crawl.provider '{settings.provider}' is not a known crawl provider (known: {known})"
        )
    return factory(settings)


def registered_provider_types() -> list[str]:
    return sorted(_PROVIDER_FACTORIES)
