from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from opportunity_engine.models import IssuerType


class ConfigError(ValueError):
    """Raised when configuration is invalid."""


DEFAULT_MATCH_CUTOFF = 60

DEFAULT_GENERAL_KEYWORDS = [
    "incentivo",
    "incentivi",
    "bando",
    "contributo",
    "agevolazione",
    "voucher",
    "pnrr",
    "finanziamento",
    "fondo perduto",
    "sovvenzione",
    "credito d'imposta",
    "avviso pubblico",
]

DEFAULT_PROCEDURAL_KEYWORDS = [
    "scadenza",
    "beneficiari",
    "soggetti ammissibili",
    "spese ammissibili",
    "dotazione finanziaria",
    "presentazione della domanda",
    "requisiti",
    "pmi",
    "graduatoria",
]

DEFAULT_DEADLINE_KEYWORDS = [
    "scadenza",
    "termine",
    "entro il",
    "fino al",
    "data limite",
    "chiusura",
]

DEFAULT_CURRENCY_TERMS = ["€", "euro", "eur "]
DEFAULT_BENEFICIARY_TERMS = ["impresa", "azienda", "imprese", "aziende"]
DEFAULT_FORCED_URL_PATHS = ["/incentivi/", "/bandi/"]

DEFAULT_FALLBACK_SOURCES = [
    "mimit.gov.it",
    "mise.gov.it",
    "invitalia.it",
    "ec.europa.eu",
]

DEFAULT_AMOUNT_RANGES: dict[IssuerType, tuple[float, float]] = {
    IssuerType.EUROPEAN: (50_000.0, 5_000_000.0),
    IssuerType.NATIONAL: (20_000.0, 1_000_000.0),
    IssuerType.REGIONAL: (10_000.0, 200_000.0),
    IssuerType.OTHER: (5_000.0, 100_000.0),
}

# (revenue ceiling, minimum relevant opportunity max amount); last band has no ceiling.
DEFAULT_FUNDING_BANDS: list[tuple[float | None, float]] = [
    (1_000_000.0, 10_000.0),
    (10_000_000.0, 50_000.0),
    (50_000_000.0, 200_000.0),
    (None, 1_000_000.0),
]

DEFAULT_SIZE_TERMS: dict[str, list[str]] = {
    "small": ["piccole imprese", "piccola impresa", "microimpres", "micro impres", "pmi"],
    "medium": ["medie imprese", "media impresa", "pmi"],
    "large": ["grandi imprese", "grande impresa", "grandi aziende", "mid cap", "mid-cap"],
}


@dataclass(slots=True)
class ClassifierSettings:
    general_keywords: list[str] = field(default_factory=lambda: list(DEFAULT_GENERAL_KEYWORDS))
    procedural_keywords: list[str] = field(
        default_factory=lambda: list(DEFAULT_PROCEDURAL_KEYWORDS)
    )
    min_distinct_keywords: int = 3
    deadline_terms: list[str] = field(default_factory=lambda: list(DEFAULT_DEADLINE_KEYWORDS))
    currency_terms: list[str] = field(default_factory=lambda: list(DEFAULT_CURRENCY_TERMS))
    beneficiary_terms: list[str] = field(
        default_factory=lambda: list(DEFAULT_BENEFICIARY_TERMS)
    )
    forced_url_paths: list[str] = field(default_factory=lambda: list(DEFAULT_FORCED_URL_PATHS))


@dataclass(slots=True)
class ExtractionSettings:
    deadline_keywords: list[str] = field(default_factory=lambda: list(DEFAULT_DEADLINE_KEYWORDS))
    deadline_window_chars: int = 150
    min_keyword_amount: float = 1000.0
    default_amount_ranges: dict[IssuerType, tuple[float, float]] = field(
        default_factory=lambda: dict(DEFAULT_AMOUNT_RANGES)
    )
    fallback_sources: list[str] = field(default_factory=lambda: list(DEFAULT_FALLBACK_SOURCES))
    fallback_confidence: float = 0.3


@dataclass(slots=True)
class ScoringSettings:
    match_cutoff: int = DEFAULT_MATCH_CUTOFF
    sector_weight: float = 40.0
    region_weight: float = 30.0
    company_size_weight: float = 20.0
    funding_weight: float = 10.0
    sector_interest_ratio: float = 0.625
    region_flat_ratio: float = 2 / 3
    region_penalty_ratio: float = 2 / 3
    funding_bands: list[tuple[float | None, float]] = field(
        default_factory=lambda: list(DEFAULT_FUNDING_BANDS)
    )
    size_terms: dict[str, list[str]] = field(
        default_factory=lambda: {key: list(value) for key, value in DEFAULT_SIZE_TERMS.items()}
    )


@dataclass(slots=True)
class CrawlSettings:
    provider: str = "file"
    url: str = ""
    path: str = ""
    api_key_env_var: str = "FIRECRAWL_API_KEY"
    options: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class StorageSettings:
    type: str = "sqlite"
    path: str = "data/opportunities.sqlite"


@dataclass(slots=True)
class EngineConfig:
    classifier: ClassifierSettings = field(default_factory=ClassifierSettings)
    extraction: ExtractionSettings = field(default_factory=ExtractionSettings)
    scoring: ScoringSettings = field(default_factory=ScoringSettings)
    crawl: CrawlSettings = field(default_factory=CrawlSettings)
    storage: StorageSettings = field(default_factory=StorageSettings)
    log_level: str = "INFO"


def _as_string_list(value: Any, *, field_name: str) -> list[str]:
    if not isinstance(value, list):
        raise ConfigError(f"{field_name} must be a list of strings, got: {type(value)!r}")
    return [str(item).strip() for item in value if str(item).strip()]


def _as_int(value: Any, *, field_name: str, minimum: int | None = None) -> int:
    if isinstance(value, bool):
        raise ConfigError(f"{field_name} must be an integer")

    try:
        parsed = int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{field_name} must be an integer") from exc

    if minimum is not None and parsed < minimum:
        raise ConfigError(f"{field_name} must be >= {minimum}")
    return parsed


def _as_float(value: Any, *, field_name: str, minimum: float | None = None) -> float:
    if isinstance(value, bool):
        raise ConfigError(f"{field_name} must be a number")

    try:
        parsed = float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{field_name} must be a number") from exc

    if minimum is not None and parsed < minimum:
        raise ConfigError(f"{field_name} must be >= {minimum}")
    return parsed


def _as_mapping(value: Any, *, field_name: str) -> dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigError(f"{field_name} must be a mapping")
    return value


def _resolve_relative_path(config_path: Path, raw_path: str) -> str:
    candidate = Path(raw_path).expanduser()
    if candidate.is_absolute():
        return str(candidate)
    return str((config_path.parent / candidate).resolve())


def _parse_classifier(raw: dict[str, Any]) -> ClassifierSettings:
    settings = ClassifierSettings()
    for name in (
        "general_keywords",
        "procedural_keywords",
        "deadline_terms",
        "currency_terms",
        "beneficiary_terms",
        "forced_url_paths",
    ):
        if name in raw:
            setattr(settings, name, _as_string_list(raw[name], field_name=f"classifier.{name}"))
    if "min_distinct_keywords" in raw:
        settings.min_distinct_keywords = _as_int(
            raw["min_distinct_keywords"],
            field_name="classifier.min_distinct_keywords",
            minimum=1,
        )
    return settings


def _parse_amount_ranges(raw: dict[str, Any]) -> dict[IssuerType, tuple[float, float]]:
    ranges = dict(DEFAULT_AMOUNT_RANGES)
    for key, value in raw.items():
        try:
            issuer_type = IssuerType(str(key).strip().lower())
        except ValueError as exc:
            raise ConfigError(f"Unknown issuer type in default_amount_ranges: {key}") from exc
        if not isinstance(value, list) or len(value) != 2:
            raise ConfigError(f"default_amount_ranges.{key} must be a [min, max] pair")
        field_name = f"extraction.default_amount_ranges.{key}"
        low = _as_float(value[0], field_name=field_name, minimum=0)
        high = _as_float(value[1], field_name=field_name, minimum=0)
        if low > high:
            raise ConfigError(f"{field_name} min must not exceed max")
        ranges[issuer_type] = (low, high)
    return ranges


def _parse_extraction(raw: dict[str, Any]) -> ExtractionSettings:
    settings = ExtractionSettings()
    if "deadline_keywords" in raw:
        settings.deadline_keywords = _as_string_list(
            raw["deadline_keywords"], field_name="extraction.deadline_keywords"
        )
    if "deadline_window_chars" in raw:
        settings.deadline_window_chars = _as_int(
            raw["deadline_window_chars"],
            field_name="extraction.deadline_window_chars",
            minimum=1,
        )
    if "min_keyword_amount" in raw:
        settings.min_keyword_amount = _as_float(
            raw["min_keyword_amount"], field_name="extraction.min_keyword_amount", minimum=0
        )
    if "default_amount_ranges" in raw:
        settings.default_amount_ranges = _parse_amount_ranges(
            _as_mapping(raw["default_amount_ranges"], field_name="extraction.default_amount_ranges")
        )
    if "fallback_sources" in raw:
        settings.fallback_sources = _as_string_list(
            raw["fallback_sources"], field_name="extraction.fallback_sources"
        )
    if "fallback_confidence" in raw:
        confidence = _as_float(
            raw["fallback_confidence"], field_name="extraction.fallback_confidence", minimum=0
        )
        if confidence > 1:
            raise ConfigError("extraction.fallback_confidence must be <= 1")
        settings.fallback_confidence = confidence
    return settings


def _parse_scoring(raw: dict[str, Any]) -> ScoringSettings:
    settings = ScoringSettings()
    if "match_cutoff" in raw:
        cutoff = _as_int(raw["match_cutoff"], field_name="scoring.match_cutoff", minimum=0)
        if cutoff > 100:
            raise ConfigError("scoring.match_cutoff must be <= 100")
        settings.match_cutoff = cutoff

    weights = _as_mapping(raw.get("weights"), field_name="scoring.weights")
    for key, attr in (
        ("sector", "sector_weight"),
        ("region", "region_weight"),
        ("company_size", "company_size_weight"),
        ("funding", "funding_weight"),
    ):
        if key in weights:
            setattr(
                settings,
                attr,
                _as_float(weights[key], field_name=f"scoring.weights.{key}", minimum=0),
            )

    if "funding_bands" in raw:
        bands_raw = raw["funding_bands"]
        if not isinstance(bands_raw, list) or not bands_raw:
            raise ConfigError("scoring.funding_bands must be a non-empty list")
        bands: list[tuple[float | None, float]] = []
        for index, band in enumerate(bands_raw, start=1):
            band = _as_mapping(band, field_name=f"scoring.funding_bands[{index}]")
            ceiling_raw = band.get("revenue_below")
            ceiling = (
                _as_float(ceiling_raw, field_name="scoring.funding_bands.revenue_below", minimum=0)
                if ceiling_raw is not None
                else None
            )
            minimum_amount = _as_float(
                band.get("min_amount"), field_name="scoring.funding_bands.min_amount", minimum=0
            )
            bands.append((ceiling, minimum_amount))
        settings.funding_bands = bands

    if "size_terms" in raw:
        terms = _as_mapping(raw["size_terms"], field_name="scoring.size_terms")
        for bucket, values in terms.items():
            if bucket not in DEFAULT_SIZE_TERMS:
                raise ConfigError(f"Unknown company size bucket: {bucket}")
            settings.size_terms[bucket] = _as_string_list(
                values, field_name=f"scoring.size_terms.{bucket}"
            )
    return settings


def _parse_crawl(raw: dict[str, Any], config_path: Path) -> CrawlSettings:
    provider = str(raw.get("provider", "file")).strip() or "file"
    raw_path = str(raw.get("path", "")).strip()
    return CrawlSettings(
        provider=provider,
        url=str(raw.get("url", "")).strip(),
        path=_resolve_relative_path(config_path, raw_path) if raw_path else "",
        api_key_env_var=str(raw.get("api_key_env_var", "FIRECRAWL_API_KEY")).strip()
        or "FIRECRAWL_API_KEY",
        options={
            key: value
            for key, value in raw.items()
            if key not in {"provider", "url", "path", "api_key_env_var"}
        },
    )


def load_config(path: str | Path) -> EngineConfig:
    config_path = Path(path).expanduser().resolve()
    if not config_path.exists():
        raise ConfigError(f"Config file not found: {config_path}")

    with config_path.open("r", encoding="utf-8") as handle:
        parsed = yaml.safe_load(handle) or {}

    if not isinstance(parsed, dict):
        raise ConfigError("Config root must be a mapping")

    raw_storage = _as_mapping(parsed.get("storage"), field_name="storage")
    storage_path = (
        str(raw_storage.get("path", "data/opportunities.sqlite")).strip()
        or "data/opportunities.sqlite"
    )
    storage_settings = StorageSettings(
        type=str(raw_storage.get("type", "sqlite")).strip() or "sqlite",
        path=_resolve_relative_path(config_path, storage_path),
    )

    return EngineConfig(
        classifier=_parse_classifier(
            _as_mapping(parsed.get("classifier"), field_name="classifier")
        ),
        extraction=_parse_extraction(
            _as_mapping(parsed.get("extraction"), field_name="extraction")
        ),
        scoring=_parse_scoring(_as_mapping(parsed.get("scoring"), field_name="scoring")),
        crawl=_parse_crawl(_as_mapping(parsed.get("crawl"), field_name="crawl"), config_path),
        storage=storage_settings,
        log_level=str(parsed.get("log_level", "INFO")).upper(),
    )
