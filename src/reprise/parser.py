"""Conversion des lignes du tableur en enregistrements typés."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import date, timedelta
from pathlib import Path
from typing import Any

import pandas as pd

from reprise.columns import ColumnMapping, detect_columns
from reprise.io_excel import read_rows
from reprise.normalize import cell_text, is_blank, try_parse_amount
from reprise.schemas import RowSchema

logger = logging.getLogger(__name__)

_EXCEL_EPOCH = date(1899, 12, 30)


def parse_cell_date(value: Any) -> date | None:
    """
    Interprète une cellule date : date Excel sérielle, ISO ou JJ/MM/AAAA.

    Returns:
        La date, ou None si la cellule est vide ou illisible.
    """
    text = cell_text(value)
    if not text:
        return None
    try:
        serial = float(text)
    except ValueError:
        serial = None
    if serial is not None:
        # Numéro de série Excel (jours depuis le 30/12/1899)
        if 20000 <= serial <= 80000:
            return _EXCEL_EPOCH + timedelta(days=int(serial))
        return None
    iso = text[:10]
    try:
        return date.fromisoformat(iso)
    except ValueError:
        pass
    parsed = pd.to_datetime(text, dayfirst=True, errors="coerce")
    if pd.isna(parsed):
        return None
    return parsed.date()


@dataclass
class SpreadsheetRow:
    """Une ligne du tableur, convertie selon le mapping des colonnes."""

    row_index: int  # numéro de ligne dans la feuille (1-based)
    name: str
    site: str
    texts: dict[str, str] = field(default_factory=dict)
    amounts: dict[str, float] = field(default_factory=dict)
    monthly: dict[int, float] = field(default_factory=dict)  # mois (1-12) → montant
    unparsed: list[str] = field(default_factory=list)  # champs montant illisibles

    def text(self, name: str) -> str:
        return self.texts.get(name, "")

    def amount(self, name: str) -> float:
        return self.amounts.get(name, 0.0)

    def parsed_date(self, name: str) -> date | None:
        return parse_cell_date(self.texts.get(name))

    def has(self, name: str) -> bool:
        """True si le champ provient d'une colonne du fichier."""
        return name in self.texts or name in self.amounts


def parse_rows(
    rows: Sequence[Sequence[Any]],
    mapping: ColumnMapping,
    schema: RowSchema,
    *,
    first_row_number: int = 2,
) -> list[SpreadsheetRow]:
    """
    Convertit les lignes de données (sans l'en-tête) en SpreadsheetRow.

    Les lignes sans nom ni site sont écartées.

    Args:
        rows: Lignes de cellules situées après l'en-tête.
        mapping: Mapping issu de detect_columns.
        schema: Schéma du type d'import.
        first_row_number: Numéro (1-based) dans la feuille de la première ligne de données.
    """
    parsed: list[SpreadsheetRow] = []
    dropped = 0

    for offset, cells in enumerate(rows):
        if not cells or all(is_blank(c) for c in cells):
            continue

        def cell(idx: int | None) -> Any:
            return cells[idx] if idx is not None and idx < len(cells) else None

        texts: dict[str, str] = {}
        amounts: dict[str, float] = {}
        unparsed: list[str] = []
        for spec in schema.fields:
            idx = mapping.get(spec.name)
            if idx is None:
                continue
            raw = cell(idx)
            if spec.kind == "amount":
                value = try_parse_amount(raw)
                if value is None:
                    unparsed.append(spec.name)
                    value = 0.0
                amounts[spec.name] = value
            else:
                texts[spec.name] = cell_text(raw)

        monthly: dict[int, float] = {}
        for idx, month in mapping.months.items():
            value = try_parse_amount(cell(idx))
            if value is None:
                unparsed.append(f"mois_{month:02d}")
                value = 0.0
            monthly[month] = value

        name = texts.get(schema.name_field, "")
        site = texts.get(schema.site_field, "")
        if not name and not site:
            dropped += 1
            continue

        parsed.append(
            SpreadsheetRow(
                row_index=first_row_number + offset,
                name=name,
                site=site,
                texts=texts,
                amounts=amounts,
                monthly=monthly,
                unparsed=unparsed,
            )
        )

    logger.info("%d lignes retenues, %d écartées (ni nom ni site)", len(parsed), dropped)
    return parsed


def parse_sheet(
    rows: Sequence[Sequence[Any]],
    schema: RowSchema,
    *,
    header_row: int = 1,
) -> tuple[ColumnMapping, list[SpreadsheetRow]]:
    """
    Détecte les colonnes sur la première ligne puis convertit les suivantes.

    Args:
        rows: Lignes de la feuille, en-tête en premier.
        header_row: Numéro (1-based) de la ligne d'en-tête dans la feuille.
    """
    if not rows:
        return detect_columns([], schema), []
    mapping = detect_columns(rows[0], schema)
    return mapping, parse_rows(rows[1:], mapping, schema, first_row_number=header_row + 1)


def read_import_file(
    filepath: str | Path,
    schema: RowSchema,
    *,
    sheet_name: str | None = None,
    header_row: int = 1,
) -> tuple[ColumnMapping, list[SpreadsheetRow]]:
    """
    Lit la feuille d'un fichier et la convertit en lignes typées.

    Raises:
        ExcelFileError: Si le fichier est illisible (aucun résultat partiel).
    """
    rows = read_rows(filepath, sheet_name, header_row=header_row)
    return parse_sheet(rows, schema, header_row=header_row)
