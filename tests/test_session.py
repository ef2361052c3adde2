"""Tests de l'enchaînement lecture → simulation → import."""

from pathlib import Path

import pytest

from reprise.backend import InMemoryBackend
from reprise.config import ImportConfig
from reprise.io_excel import ExcelFileError
from reprise.session import ImportPhase, ImportSession, ImportStateError

SHEET = [
    ["Client", "Site", "Loyer", "Montant versé", "Reste à payer"],
    ["Jean Kouassi", "Cocody", "50000", "30000", "20000"],
    ["Awa Bamba", "Yopougon", "30000", "30000", "0"],
]


def test_full_cycle() -> None:
    backend = InMemoryBackend()
    session = ImportSession(ImportConfig(), backend)
    assert session.phase is ImportPhase.IDLE

    report = session.load_rows(SHEET)
    assert report.is_valid
    assert session.phase is ImportPhase.VALIDATED

    simulation = session.simulate()
    assert session.phase is ImportPhase.SIMULATED_DONE
    assert backend.tables["clients"] == []

    result = session.commit()
    assert session.phase is ImportPhase.COMMIT_DONE
    assert result.counts() == simulation.counts()
    assert len(backend.tables["clients"]) == 2


def test_commit_requires_simulation() -> None:
    session = ImportSession(ImportConfig(), InMemoryBackend())
    session.load_rows(SHEET)
    with pytest.raises(ImportStateError, match="simulez"):
        session.commit()


def test_commit_only_once() -> None:
    session = ImportSession(ImportConfig(), InMemoryBackend())
    session.load_rows(SHEET)
    session.simulate()
    session.commit()
    with pytest.raises(ImportStateError):
        session.commit()


def test_simulate_before_load() -> None:
    session = ImportSession(ImportConfig(), InMemoryBackend())
    with pytest.raises(ImportStateError):
        session.simulate()


def test_simulate_without_report_refused() -> None:
    session = ImportSession(ImportConfig(), InMemoryBackend())
    session.phase = ImportPhase.VALIDATED
    with pytest.raises(ImportStateError, match="Aucun fichier"):
        session.simulate()


def test_missing_required_blocks_simulation() -> None:
    session = ImportSession(ImportConfig(), InMemoryBackend())
    report = session.load_rows([["Client", "Site"], ["Jean Kouassi", ""]])
    assert not report.can_import
    with pytest.raises(ImportStateError, match="requis"):
        session.simulate()


def test_reload_resets_state() -> None:
    session = ImportSession(ImportConfig(), InMemoryBackend())
    session.load_rows(SHEET)
    session.simulate()
    session.load_rows(SHEET[:2])
    assert session.phase is ImportPhase.VALIDATED
    assert session.simulation is None
    assert len(session.rows) == 1


def test_load_failure_returns_to_idle(tmp_path: Path) -> None:
    session = ImportSession(ImportConfig(), InMemoryBackend())
    with pytest.raises(ExcelFileError):
        session.load(tmp_path / "absent.xlsx")
    assert session.phase is ImportPhase.IDLE
    assert session.rows == []
