from __future__ import annotations

import re
from dataclasses import dataclass
from urllib.parse import urlsplit

from opportunity_engine.models import IssuerType
from opportunity_engine.utils.url_utils import host_matches, host_of, registrable_domain

EUROPEAN_UNION = "European Union"
GENERIC_REGIONAL_BODY = "Ente regionale"

EU_DOMAINS = ("europa.eu",)

ISSUING_BODY_DOMAINS = {
    "mimit.gov.it": "MIMIT - Ministero delle Imprese e del Made in Italy",
    "mise.gov.it": "MISE - Ministero dello Sviluppo Economico",
    "invitalia.it": "Invitalia",
    "agenziaentrate.gov.it": "Agenzia delle Entrate",
    "mur.gov.it": "MUR - Ministero dell'Università e della Ricerca",
    "masaf.gov.it": "MASAF - Ministero dell'Agricoltura, della Sovranità Alimentare e delle Foreste",
    "mase.gov.it": "MASE - Ministero dell'Ambiente e della Sicurezza Energetica",
    "italiadomani.gov.it": "Italia Domani - PNRR",
    "incentivi.gov.it": "Incentivi.gov.it",
    "simest.it": "SIMEST",
}

EU_TERMS = (
    "unione europea",
    "commissione europea",
    "european commission",
    "european union",
    "horizon europe",
    "fesr",
    "fse+",
)
NATIONAL_TERMS = ("minister", "pnrr", "governo italiano")

REGIONS = (
    "Abruzzo",
    "Basilicata",
    "Calabria",
    "Campania",
    "Emilia-Romagna",
    "Friuli Venezia Giulia",
    "Lazio",
    "Liguria",
    "Lombardia",
    "Marche",
    "Molise",
    "Piemonte",
    "Puglia",
    "Sardegna",
    "Sicilia",
    "Toscana",
    "Trentino-Alto Adige",
    "Umbria",
    "Valle d'Aosta",
    "Veneto",
)

_WORDS = re.compile(r"[a-z]+")


@dataclass(frozen=True, slots=True)
class IssuerInfo:
    issuer_type: IssuerType
    source_name: str
    region: str | None = None


def classify_issuer(url: str, content: str) -> IssuerInfo:
    """Classify the administrative level of the page's issuing body and name it.

    URL rules run before content rules; content rules only look at the
    lowered page text.
    """
    host = host_of(url)
    domain_name = registrable_domain(url) or host or "unknown"

    if any(host_matches(url, domain) for domain in EU_DOMAINS):
        return IssuerInfo(IssuerType.EUROPEAN, EUROPEAN_UNION)

    for domain, body_name in ISSUING_BODY_DOMAINS.items():
        if host_matches(url, domain):
            return IssuerInfo(IssuerType.NATIONAL, body_name)

    lowered = content.lower()

    if _url_mentions_region(url):
        region = resolve_region(url) or _region_in_content(lowered)
        return IssuerInfo(IssuerType.REGIONAL, _regional_name(region), region)

    if host.endswith(".gov.it"):
        return IssuerInfo(IssuerType.NATIONAL, domain_name)

    if any(term in lowered for term in EU_TERMS):
        return IssuerInfo(IssuerType.EUROPEAN, domain_name)

    if any(term in lowered for term in NATIONAL_TERMS):
        return IssuerInfo(IssuerType.NATIONAL, domain_name)

    region = _region_in_content(lowered)
    if region is not None:
        return IssuerInfo(IssuerType.REGIONAL, _regional_name(region), region)

    return IssuerInfo(IssuerType.OTHER, domain_name)


def resolve_region(url: str) -> str | None:
    """Find a region named by whole words of the URL host or path.

    ``regione.emilia-romagna.it`` and ``/bandi/emiliaromagna/`` both resolve;
    ``/relazione-finale`` does not resolve to Lazio.
    """
    parsed = urlsplit(url.lower())
    words = _WORDS.findall(f"{parsed.netloc} {parsed.path}")
    for region in REGIONS:
        parts = _WORDS.findall(region.lower())
        if "".join(parts) in words or _contains_run(words, parts):
            return region
    return None


def _contains_run(words: list[str], parts: list[str]) -> bool:
    size = len(parts)
    return any(words[index : index + size] == parts for index in range(len(words) - size + 1))


def _url_mentions_region(url: str) -> bool:
    parsed = urlsplit(url.lower())
    if "regione" in parsed.netloc:
        return True
    return any(segment.startswith("regione") for segment in parsed.path.split("/"))


def _region_in_content(lowered: str) -> str | None:
    for region in REGIONS:
        if f"regione {region.lower()}" in lowered:
            return region
    return None


def _regional_name(region: str | None) -> str:
    return f"Regione {region}" if region else GENERIC_REGIONAL_BODY
