from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from opportunity_engine.config import ConfigError
from opportunity_engine.models import ClientProfile


def _optional_number(value: Any, *, field_name: str) -> float | None:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ConfigError(f"{field_name} must be a number")
    try:
        parsed = float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{field_name} must be a number") from exc
    if parsed < 0:
        raise ConfigError(f"{field_name} must be >= 0")
    return parsed


def _optional_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def client_from_mapping(raw: dict[str, Any], *, index: int = 1) -> ClientProfile:
    client_id = str(raw.get("id", "")).strip()
    if not client_id:
        raise ConfigError(f"Client entry #{index} missing id")

    interests = raw.get("sector_interests") or []
    if not isinstance(interests, list):
        raise ConfigError(f"Client {client_id}: sector_interests must be a list")

    employees = _optional_number(raw.get("employee_count"), field_name=f"{client_id}.employee_count")
    return ClientProfile(
        id=client_id,
        name=_optional_text(raw.get("name")),
        sector=_optional_text(raw.get("sector")),
        sector_interests=[str(item).strip() for item in interests if str(item).strip()],
        region=_optional_text(raw.get("region")),
        revenue=_optional_number(raw.get("revenue"), field_name=f"{client_id}.revenue"),
        employee_count=int(employees) if employees is not None else None,
    )


def load_clients(path: str | Path) -> list[ClientProfile]:
    clients_path = Path(path).expanduser()
    if not clients_path.exists():
        raise ConfigError(f"Clients file not found: {clients_path}")

    with clients_path.open("r", encoding="utf-8") as handle:
        parsed = yaml.safe_load(handle) or []

    if isinstance(parsed, dict):
        parsed = parsed.get("clients", [])
    if not isinstance(parsed, list):
        raise ConfigError("Clients file must contain a list of clients")

    clients: list[ClientProfile] = []
    for index, raw in enumerate(parsed, start=1):
        if not isinstance(raw, dict):
            raise ConfigError(f"Client entry #{index} must be a mapping")
        clients.append(client_from_mapping(raw, index=index))
    return clients
