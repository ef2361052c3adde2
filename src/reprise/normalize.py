"""Normalisation des noms et des montants issus des tableurs."""

from __future__ import annotations

import math
import re
import unicodedata
from typing import Any

# Caractères invisibles et espaces insécables, fréquents dans les exports Excel
_ZERO_WIDTH = re.compile(r"[\u200b-\u200f\u2060\ufeff]")
_ODD_SPACES = re.compile(r"[\u00a0\u2007\u202f\u3000]")
_NOT_AMOUNT = re.compile(r"[^\d,.\-]")


def _strip_invisible(s: str) -> str:
    return _ODD_SPACES.sub(" ", _ZERO_WIDTH.sub("", s))


def _remove_diacritics(s: str) -> str:
    """Retire les diacritiques (accents) d'une chaîne."""
    nfd = unicodedata.normalize("NFD", s)
    return "".join(c for c in nfd if unicodedata.category(c) != "Mn")


def is_blank(value: Any) -> bool:
    """True si la cellule est vide (None, NaN, chaîne d'espaces)."""
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return isinstance(value, str) and not _strip_invisible(value).strip()


def cell_text(value: Any) -> str:
    """Convertit une cellule en texte affichable (vide si absente)."""
    if is_blank(value):
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    text = _strip_invisible(str(value))
    return re.sub(r"\s+", " ", text).strip()


def normalize_name(s: Any) -> str:
    """
    Normalise un nom pour comparaison.

    Minuscules, suppression des accents et des caractères invisibles,
    espaces multiples réduits à un seul.

    Examples:
        >>> normalize_name("Ééé  Test")
        'eee test'
    """
    text = cell_text(s)
    if not text:
        return ""
    text = unicodedata.normalize("NFKC", text).lower()
    text = _remove_diacritics(text)
    return re.sub(r"\s+", " ", text).strip()


def try_parse_amount(cell: Any) -> float | None:
    """
    Convertit une cellule monétaire en nombre.

    Les cellules numériques sont retournées telles quelles. Pour le texte,
    tout caractère autre que chiffre, virgule, point ou signe moins est retiré
    ("12 500 FCFA" → 12500). Une virgule seule sert de séparateur décimal ;
    si virgule et point coexistent, le dernier des deux est le séparateur
    décimal. Un séparateur répété est un séparateur de milliers.

    Returns:
        Le montant, 0.0 pour une cellule vide, None si la cellule n'est pas vide
        mais ne contient pas de montant lisible.
    """
    if isinstance(cell, bool):
        return None
    if isinstance(cell, (int, float)):
        if isinstance(cell, float) and math.isnan(cell):
            return 0.0
        return float(cell)
    if is_blank(cell):
        return 0.0

    text = _NOT_AMOUNT.sub("", str(cell))
    if "," in text and "." in text:
        # Le dernier séparateur rencontré est le séparateur décimal
        if text.rfind(",") > text.rfind("."):
            text = text.replace(".", "").replace(",", ".")
        else:
            text = text.replace(",", "")
    elif text.count(",") > 1:
        text = text.replace(",", "")
    elif "," in text:
        text = text.replace(",", ".")
    if text.count(".") > 1:
        text = text.replace(".", "")
    try:
        value = float(text)
    except ValueError:
        return None
    if math.isnan(value) or math.isinf(value):
        return None
    return value


def parse_amount(cell: Any) -> float:
    """Comme try_parse_amount, mais retourne 0 si la cellule est illisible."""
    value = try_parse_amount(cell)
    return 0.0 if value is None else value


def split_full_name(full_name: str, *, nom_first: bool = False, prenom_first: bool = False) -> tuple[str, str]:
    """
    Découpe un nom complet en (nom, prenom).

    Par défaut le dernier mot est le nom et le reste le prénom. Avec nom_first,
    le premier mot est le nom (listes de clients) ; avec prenom_first, le premier
    mot est le prénom et le reste le nom (locations historiques).
    """
    words = cell_text(full_name).split()
    if not words:
        return "", ""
    if len(words) == 1:
        return words[0], ""
    if nom_first:
        return words[0], " ".join(words[1:])
    if prenom_first:
        return " ".join(words[1:]), words[0]
    return words[-1], " ".join(words[:-1])
