"""I/O tableurs : lecture de la feuille à importer, écriture du rapport."""

from __future__ import annotations

import csv
from pathlib import Path
from typing import Any

import pandas as pd

from reprise.config import RepriseError

SUPPORTED_INPUT_EXTENSIONS = (".xlsx", ".xls", ".ods", ".csv")


class ExcelFileError(RepriseError):
    """Erreur de chargement d'un fichier (fichier absent, illisible, feuille inexistante)."""


def _get_engine(path: Path) -> str | None:
    """Retourne le moteur pandas selon l'extension, ou None pour auto."""
    suffix = path.suffix.lower()
    if suffix == ".xlsx":
        return "openpyxl"
    if suffix == ".xls":
        return "xlrd"
    if suffix == ".ods":
        return "odf"
    return None


def _check_input(path: Path) -> None:
    """Vérifie que le fichier existe et que son format est lisible."""
    if not path.exists():
        raise ExcelFileError(f"Fichier introuvable: {path}")
    if path.suffix.lower() not in SUPPORTED_INPUT_EXTENSIONS:
        raise ExcelFileError(
            f"Format non supporté: {path.suffix or '(sans extension)'}. Formats: {', '.join(SUPPORTED_INPUT_EXTENSIONS)}"
        )


def _is_csv(path: Path) -> bool:
    return path.suffix.lower() == ".csv"


def _detect_csv_delimiter(path: Path, encoding: str) -> str:
    with path.open("r", encoding=encoding, errors="replace") as f:
        sample_lines = [line for line in (f.readline() for _ in range(5)) if line.strip()]
    if not sample_lines:
        return ","
    try:
        return csv.Sniffer().sniff("".join(sample_lines), delimiters=[",", ";", "\t", "|"]).delimiter
    except csv.Error:
        first = sample_lines[0]
        counts = {d: first.count(d) for d in [",", ";", "\t", "|"]}
        best = max(counts, key=counts.get)  # type: ignore[arg-type]
        return best if counts[best] > 0 else ","


def _open_workbook(path: Path) -> pd.ExcelFile:
    try:
        engine = _get_engine(path)
        return pd.ExcelFile(path, engine=engine) if engine else pd.ExcelFile(path)
    except ImportError as e:
        ext = path.suffix.lower()
        if ext == ".xls":
            raise ExcelFileError("Format .xls requis: pip install xlrd") from e
        if ext == ".ods":
            raise ExcelFileError("Format ODS requis: pip install odfpy") from e
        raise ExcelFileError(f"Impossible de lire {path}: {e}") from e
    except Exception as e:
        raise ExcelFileError(f"Impossible de lire le fichier {path}: {e}") from e


def list_sheets(filepath: str | Path) -> list[str]:
    """
    Liste les noms des feuilles d'un fichier tableur.

    Raises:
        ExcelFileError: Si le fichier est absent ou illisible.
    """
    path = Path(filepath)
    _check_input(path)
    if _is_csv(path):
        return ["(données)"]
    return [str(s) for s in _open_workbook(path).sheet_names]


def load_sheet_raw(
    filepath: str | Path,
    sheet_name: str | None = None,
) -> pd.DataFrame:
    """
    Charge une feuille sans en-têtes (toutes les cellules en texte, index/colonnes numériques).

    Formats supportés : .xlsx, .xls, .ods, .csv.

    Raises:
        ExcelFileError: Si le fichier est absent, illisible ou si la feuille n'existe pas.
    """
    path = Path(filepath)
    _check_input(path)

    if _is_csv(path):
        for encoding in ("utf-8", "latin-1"):
            try:
                sep = _detect_csv_delimiter(path, encoding)
                return pd.read_csv(path, dtype=str, header=None, sep=sep, encoding=encoding, engine="python")
            except UnicodeDecodeError:
                continue
            except Exception as e:
                raise ExcelFileError(f"Erreur CSV {path}: {e}. Vérifiez le séparateur.") from e
        raise ExcelFileError(f"Erreur CSV {path}: encodage non reconnu")

    xl = _open_workbook(path)
    if sheet_name is None:
        sheet_name = str(xl.sheet_names[0])
    elif sheet_name not in xl.sheet_names:
        sheets = [str(s) for s in xl.sheet_names]
        raise ExcelFileError(
            f"Feuille '{sheet_name}' introuvable dans {path}. Feuilles: {', '.join(sheets)}"
        )

    try:
        df = pd.read_excel(xl, sheet_name=sheet_name, dtype=str, header=None)
        return df  # type: ignore[return-value]
    except Exception as e:
        raise ExcelFileError(f"Erreur feuille '{sheet_name}' dans {path}: {e}") from e


def read_rows(
    filepath: str | Path,
    sheet_name: str | None = None,
    *,
    header_row: int = 1,
) -> list[list[Any]]:
    """
    Lit une feuille sous forme de lignes de cellules, la ligne d'en-tête en premier.

    Les lignes au-dessus de header_row (titres, logos) sont ignorées.

    Raises:
        ExcelFileError: Si le fichier est illisible ou ne contient aucune ligne de données.
    """
    df = load_sheet_raw(filepath, sheet_name)
    rows = df.astype(object).where(df.notna(), None).values.tolist()
    rows = rows[max(header_row - 1, 0):]
    if len(rows) < 2:
        raise ExcelFileError(f"Fichier vide ou mal formaté: {filepath}")
    return rows


def save_xlsx(
    filepath: str | Path,
    dataframes: dict[str, pd.DataFrame],
    *,
    index: bool = False,
) -> None:
    """
    Sauvegarde plusieurs DataFrames dans un fichier xlsx (une feuille par DataFrame).

    Args:
        filepath: Chemin de sortie.
        dataframes: Dict {nom_feuille: DataFrame}.
    """
    with pd.ExcelWriter(filepath, engine="openpyxl") as writer:
        for sheet_name, df in dataframes.items():
            # Nettoyer le nom de feuille (Excel limite à 31 caractères)
            safe_name = str(sheet_name)[:31]
            df.to_excel(writer, sheet_name=safe_name, index=index)
