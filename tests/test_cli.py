from __future__ import annotations

import json

from opportunity_engine.cli import main
from opportunity_engine.store import SQLiteStore

_CRAWL = {
    "success": True,
    "data": [
        {
            "html": (
                "<h1>Bando Transizione Digitale</h1>"
                "<p>Contributo € 300.000 per progetti di innovazione digitale delle PMI. "
                "Scadenza 31/12/2030.</p>"
            ),
            "metadata": {"sourceURL": "https://www.mimit.gov.it/it/incentivi/bando-digitale"},
        },
        {
            "html": "<p>Orari di apertura degli uffici.</p>",
            "metadata": {"sourceURL": "https://www.example.org/orari"},
        },
    ],
}


def _setup(tmp_path):
    crawl_path = tmp_path / "crawl.json"
    crawl_path.write_text(json.dumps(_CRAWL), encoding="utf-8")
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        "crawl:\n"
        "  provider: file\n"
        "  path: crawl.json\n"
        "storage:\n"
        "  path: engine.sqlite\n",
        encoding="utf-8",
    )
    clients_path = tmp_path / "clients.yaml"
    clients_path.write_text(
        "- id: cliente-tech\n  sector: Tecnologia\n  region: Veneto\n"
        "- id: cliente-agri\n  sector: Agricoltura\n",
        encoding="utf-8",
    )
    return config_path, clients_path


def test_run_saves_opportunities_and_matches(tmp_path) -> None:
    config_path, clients_path = _setup(tmp_path)

    exit_code = main(["-c", str(config_path), "run", "--clients", str(clients_path)])

    assert exit_code == 0
    store = SQLiteStore(str(tmp_path / "engine.sqlite"))
    [opportunity] = store.list_opportunities()
    assert opportunity.title == "Bando Transizione Digitale"
    assert opportunity.amount_max == 300_000
    matches = store.list_matches(opportunity.id)
    assert [(match.client_id, match.score) for match in matches] == [("cliente-tech", 86)]


def test_run_twice_does_not_duplicate_matches(tmp_path) -> None:
    config_path, clients_path = _setup(tmp_path)

    assert main(["-c", str(config_path), "run", "--clients", str(clients_path)]) == 0
    assert main(["-c", str(config_path), "run", "--clients", str(clients_path)]) == 0

    store = SQLiteStore(str(tmp_path / "engine.sqlite"))
    assert len(store.list_opportunities()) == 1
    assert len(store.list_matches()) == 1


def test_extract_prints_without_saving(tmp_path, capsys) -> None:
    config_path, _ = _setup(tmp_path)

    exit_code = main(["-c", str(config_path), "extract"])

    output = capsys.readouterr().out
    assert exit_code == 0
    assert "Bando Transizione Digitale" in output
    assert "Deadline: 2030-12-31" in output
    assert "Amount: EUR 20,000 - EUR 300,000" in output
    assert SQLiteStore(str(tmp_path / "engine.sqlite")).list_opportunities() == []


def test_score_rescores_stored_opportunities(tmp_path, capsys) -> None:
    config_path, clients_path = _setup(tmp_path)
    assert main(["-c", str(config_path), "run", "--clients", str(clients_path)]) == 0
    capsys.readouterr()

    exit_code = main(["-c", str(config_path), "score", "--clients", str(clients_path)])

    assert exit_code == 0
    assert "cliente-tech" in capsys.readouterr().out


def test_missing_config_exits_with_config_error(tmp_path) -> None:
    assert main(["-c", str(tmp_path / "missing.yaml"), "init-db"]) == 2


def test_missing_crawl_dump_exits_with_failure(tmp_path) -> None:
    config_path, _ = _setup(tmp_path)
    (tmp_path / "crawl.json").unlink()

    assert main(["-c", str(config_path), "extract"]) == 1
