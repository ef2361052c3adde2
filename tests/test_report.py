"""Tests du module report."""

import pandas as pd
import pytest

from reprise.executor import ImportResult
from reprise.parser import SpreadsheetRow
from reprise.report import build_report_df, print_report_console, print_validation_console, rows_to_df
from reprise.validate import DuplicateName, ValidationReport


@pytest.fixture
def sample_result() -> ImportResult:
    return ImportResult(
        simulated=False,
        rows_total=3,
        rows_processed=3,
        clients_matched=1,
        clients_created=2,
        contracts_created=3,
        payments_imported=4,
        total_amount=125000.0,
        errors=["Ligne 4 (Awa Bamba): Solde insuffisant (créations annulées)"],
    )


@pytest.fixture
def sample_validation() -> ValidationReport:
    return ValidationReport(
        total_rows=3,
        total_amount=125000.0,
        duplicates=[DuplicateName("awa bamba", [3, 4])],
    )


def _value(df: pd.DataFrame, key: str) -> object:
    return df[df["Key"] == key]["Value"].values[0]


def test_build_report_df_counts(sample_result: ImportResult, sample_validation: ValidationReport) -> None:
    df = build_report_df(sample_result, sample_validation)
    assert list(df.columns) == ["Key", "Value"]
    assert _value(df, "clients_created") == 2
    assert _value(df, "payments_imported") == 4
    assert _value(df, "nb_erreurs") == 1
    assert "Solde insuffisant" in _value(df, "erreur_0")
    assert _value(df, "nb_doublons") == 1
    assert "Import" in df["Key"].values
    assert "version" in df["Key"].values


def test_build_report_df_validation_only(sample_validation: ValidationReport) -> None:
    df = build_report_df(None, sample_validation)
    assert "nb_erreurs" not in df["Key"].values
    assert _value(df, "valide")


def test_rows_to_df() -> None:
    rows = [
        SpreadsheetRow(2, "Jean Kouassi", "Cocody", texts={"client": "Jean Kouassi"}, amounts={"prix_loyer": 50000}, monthly={1: 50000}),
    ]
    df = rows_to_df(rows)
    assert df.loc[0, "ligne"] == 2
    assert df.loc[0, "prix_loyer"] == 50000
    assert df.loc[0, "mois_01"] == 50000


def test_print_report_console(sample_result: ImportResult, capsys: pytest.CaptureFixture[str]) -> None:
    print_report_console(sample_result)
    out = capsys.readouterr().out
    assert "Reprise Import" in out
    assert "Clients créés:" in out
    assert "Solde insuffisant" in out


def test_print_validation_console(sample_validation: ValidationReport, capsys: pytest.CaptureFixture[str]) -> None:
    print_validation_console(sample_validation)
    out = capsys.readouterr().out
    assert "Doublons:" in out
    assert "Doublon 'awa bamba'" in out
