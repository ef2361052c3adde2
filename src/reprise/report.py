"""Rapport d'import : onglet REPORT et résumé console."""

from __future__ import annotations

from dataclasses import asdict
from datetime import datetime

import pandas as pd

from reprise import __version__
from reprise.executor import ImportResult
from reprise.parser import SpreadsheetRow
from reprise.validate import ValidationReport

_LABELS = {
    "clients_matched": "Clients retrouvés",
    "clients_created": "Clients créés",
    "properties_matched": "Propriétés retrouvées",
    "properties_created": "Propriétés créées",
    "contracts_created": "Contrats créés",
    "contracts_existing": "Contrats existants",
    "contracts_skipped": "Contrats non créés",
    "payments_imported": "Paiements importés",
    "total_amount": "Montant total",
}


def build_report_df(
    result: ImportResult | None,
    validation: ValidationReport | None = None,
) -> pd.DataFrame:
    """
    Construit le DataFrame de l'onglet REPORT (colonnes Key / Value).

    Contient : contrôles, compteurs de l'import ou de la simulation, erreurs
    par ligne, horodatage, version.
    """
    rows: list[tuple[str, object]] = []
    if validation is not None:
        rows.extend(
            [
                ("Validation", ""),
                ("nb_lignes", validation.total_rows),
                ("montant_verse", validation.total_amount),
                ("valide", validation.is_valid),
                ("nb_incoherences", len(validation.inconsistencies)),
                ("nb_doublons", len(validation.duplicates)),
            ]
        )
        rows.extend((f"controle_{i}", msg) for i, msg in enumerate(validation.messages()))
        rows.append(("", ""))

    if result is not None:
        rows.append(("Simulation" if result.simulated else "Import", ""))
        rows.append(("nb_lignes_traitees", result.rows_processed))
        rows.extend(result.counts().items())
        rows.append(("nb_erreurs", len(result.errors)))
        rows.extend((f"erreur_{i}", msg) for i, msg in enumerate(result.errors))
        rows.append(("", ""))

    rows.extend(
        [
            ("timestamp", datetime.now().isoformat()),
            ("version", __version__),
        ]
    )
    return pd.DataFrame(rows, columns=["Key", "Value"])


def rows_to_df(rows: list[SpreadsheetRow]) -> pd.DataFrame:
    """Lignes retenues, une colonne par champ (aperçu avant import)."""
    records = []
    for row in rows:
        record = {"ligne": row.row_index, "nom": row.name, "site": row.site}
        record.update(row.texts)
        record.update(row.amounts)
        record.update({f"mois_{m:02d}": v for m, v in sorted(row.monthly.items())})
        records.append(record)
    return pd.DataFrame.from_records(records)


def print_validation_console(report: ValidationReport, *, limit: int = 20) -> None:
    """Affiche le résultat des contrôles."""
    print("\n=== Contrôle du fichier ===")
    print(f"  Lignes:           {report.total_rows}")
    print(f"  Montant versé:    {report.total_amount:,.0f}")
    print(f"  Incohérences:     {len(report.inconsistencies)}")
    print(f"  Doublons:         {len(report.duplicates)}")
    print(f"  Champs manquants: {sum(len(m.rows) for m in report.missing_fields)}")
    for stats in report.group_stats:
        print(f"  Agent {stats.group or '?'}: {stats.rows} clients, dû {stats.total_due:,.0f}, versé {stats.total_paid:,.0f}")
    messages = report.messages()
    for msg in messages[:limit]:
        print(f"  - {msg}")
    if len(messages) > limit:
        print(f"  ... et {len(messages) - limit} autres")
    print("===========================\n")


def print_report_console(result: ImportResult, *, limit: int = 10) -> None:
    """Affiche un résumé de l'import (ou de la simulation) en console."""
    title = "Simulation" if result.simulated else "Import"
    print(f"\n=== Reprise {title} ===")
    values = asdict(result)
    for name, label in _LABELS.items():
        value = values[name]
        shown = f"{value:,.0f}" if name == "total_amount" else value
        print(f"  {label + ':':<24}{shown}")
    print(f"  {'Erreurs:':<24}{len(result.errors)}")
    for msg in result.errors[:limit]:
        print(f"  - {msg}")
    if len(result.errors) > limit:
        print(f"  ... et {len(result.errors) - limit} autres erreurs")
    print(f"  Version:                {__version__}")
    print("======================\n")
