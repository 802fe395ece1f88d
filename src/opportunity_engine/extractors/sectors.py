from __future__ import annotations

from opportunity_engine.models import IssuerType, Sector

SECTOR_KEYWORDS: dict[Sector, tuple[str, ...]] = {
    Sector.AGRICULTURE: ("agricol", "agroaliment", "rurale", "zootecn", "agrari"),
    Sector.TECHNOLOGY: (
        "tecnolog",
        "digital",
        "innova",
        "software",
        "informatic",
        "intelligenza artificiale",
    ),
    Sector.ENERGY: ("energi", "rinnovabil", "fotovoltaic", "efficientamento"),
    Sector.INDUSTRY: ("industri", "manifattur", "produzion"),
    Sector.STARTUP: (
        "startup",
        "start-up",
        "nuova impresa",
        "nuove imprese",
        "imprenditoria giovanile",
    ),
    Sector.TOURISM: ("turism", "turistic", "ricettiv"),
    Sector.CULTURE: ("cultural", "spettacolo", "patrimonio artistic", "audiovisiv"),
    Sector.HEALTH: ("sanit", "biomedic", "farmaceutic"),
    Sector.TRAINING: ("formazione", "competenze", "istruzione"),
    Sector.ENVIRONMENT: ("ambiental", "sostenibil", "economia circolare", "transizione ecologica"),
    Sector.COMMERCE: ("commerci", "export", "internazionalizzazione"),
    Sector.RESEARCH: ("ricerca", "sviluppo sperimentale"),
}

ISSUER_SECTOR_KEYWORDS: dict[IssuerType, dict[Sector, tuple[str, ...]]] = {
    IssuerType.EUROPEAN: {
        Sector.RESEARCH: ("horizon europe", "eic accelerator"),
        Sector.ENVIRONMENT: ("programma life", "life programme"),
        Sector.CULTURE: ("europa creativa", "creative europe"),
    },
    IssuerType.NATIONAL: {
        Sector.STARTUP: ("smart&start", "smart & start"),
        Sector.INDUSTRY: ("transizione 4.0", "transizione 5.0", "nuova sabatini"),
    },
    IssuerType.REGIONAL: {
        Sector.COMMERCE: ("distretti del commercio",),
    },
}


def extract_sectors(title: str, content: str, issuer_type: IssuerType | None = None) -> tuple[str, ...]:
    searchable = f"{title}\n{content}".lower()

    tables = [SECTOR_KEYWORDS]
    if issuer_type is not None and issuer_type in ISSUER_SECTOR_KEYWORDS:
        tables.append(ISSUER_SECTOR_KEYWORDS[issuer_type])

    found: list[Sector] = []
    for table in tables:
        for sector, keywords in table.items():
            if sector in found:
                continue
            if any(keyword in searchable for keyword in keywords):
                found.append(sector)

    if not found:
        return (Sector.OTHER.value,)
    ordered = [sector for sector in Sector if sector in found]
    return tuple(sector.value for sector in ordered)
