"""Tests de l'import de listes de clients."""

from pathlib import Path

import pandas as pd

from reprise.backend import InMemoryBackend
from reprise.clients_import import (
    EXACT_DUPLICATE,
    NEW,
    PROBABLE_DUPLICATE,
    classify_name,
    import_clients,
    read_client_names,
    verify_clients,
)

EXISTING = [{"id": "c1", "nom": "Kouassi", "prenom": "Jean Paul"}]


def test_classify_exact_duplicate() -> None:
    status, reason = classify_name("KOUASSI", "Jean  Paul", EXISTING)
    assert status == EXACT_DUPLICATE
    assert "Kouassi" in reason


def test_classify_reordered_name() -> None:
    status, _ = classify_name("Jean", "Paul Kouassi", EXISTING)
    assert status == PROBABLE_DUPLICATE


def test_classify_shared_first_name() -> None:
    status, _ = classify_name("Kouassi", "Paul", EXISTING)
    assert status == PROBABLE_DUPLICATE


def test_classify_new() -> None:
    assert classify_name("Kouassi", "Marie", EXISTING) == (NEW, "")
    assert classify_name("Bamba", "Awa", EXISTING) == (NEW, "")


def test_verify_clients_repeated_in_list() -> None:
    checks = verify_clients(["Bamba Awa", "KOUASSI Jean Paul", "Bamba Awa", "  "], EXISTING)
    assert [c.status for c in checks] == [NEW, EXACT_DUPLICATE, EXACT_DUPLICATE]
    assert [c.selected for c in checks] == [True, False, False]
    assert (checks[0].nom, checks[0].prenom) == ("Bamba", "Awa")


def test_import_clients() -> None:
    backend = InMemoryBackend({"clients": EXISTING})
    checks = verify_clients(["Bamba Awa", "Kouassi Jean Paul", "Traoré Moussa"], backend.select("clients"))
    result = import_clients(checks, backend, import_tag="reprise-2024")

    assert result.success == 2
    assert result.duplicates == 1
    assert result.errors == []
    created = backend.tables["clients"][1:]
    assert [(c["nom"], c["prenom"]) for c in created] == [("Bamba", "Awa"), ("Traoré", "Moussa")]
    assert all(c["import_tag"] == "reprise-2024" for c in created)


def test_read_client_names(tmp_path: Path) -> None:
    path = tmp_path / "clients.xlsx"
    pd.DataFrame([["Bamba Awa", "x"], [None, "y"], ["Traoré Moussa", None]]).to_excel(
        path, index=False, header=False, engine="openpyxl"
    )
    assert read_client_names(path) == ["Bamba Awa", "Traoré Moussa"]
