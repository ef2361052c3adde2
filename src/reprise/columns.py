"""Détection automatique des colonnes à partir de la ligne d'en-tête."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from reprise.normalize import normalize_name
from reprise.schemas import RowSchema, month_number

logger = logging.getLogger(__name__)


@dataclass
class ColumnMapping:
    """Champ sémantique → index de colonne (None = non trouvé)."""

    fields: dict[str, int | None]
    months: dict[int, int] = field(default_factory=dict)  # index de colonne → mois (1-12)
    positional: bool = False

    def get(self, name: str) -> int | None:
        return self.fields.get(name)

    @property
    def unmapped(self) -> list[str]:
        return [name for name, idx in self.fields.items() if idx is None]


def detect_columns(header: Sequence[Any], schema: RowSchema) -> ColumnMapping:
    """
    Associe chaque colonne à un champ du schéma d'après le texte de l'en-tête.

    Chaque en-tête est normalisé puis comparé aux mots-clés des champs, dans
    l'ordre du schéma ; le premier champ reconnu l'emporte et un champ déjà
    attribué n'est jamais réattribué. Les en-têtes non reconnus qui nomment un
    mois deviennent des colonnes de montants mensuels.

    Si le champ nom n'a pas été trouvé et que l'en-tête compte au moins deux
    colonnes, on suppose un fichier sans en-têtes exploitables : les champs sont
    attribués par position (schema.positional).

    Returns:
        ColumnMapping, éventuellement entièrement vide (jamais d'erreur).
    """
    mapping = ColumnMapping(fields={spec.name: None for spec in schema.fields})

    for idx, cell in enumerate(header):
        text = normalize_name(cell)
        if not text:
            continue
        spec = schema.match_header(text)
        if spec is not None:
            if mapping.fields[spec.name] is None:
                mapping.fields[spec.name] = idx
            continue
        month = month_number(text)
        if month is not None and month not in mapping.months.values():
            mapping.months[idx] = month

    if mapping.fields[schema.name_field] is None and len(header) >= 2:
        logger.info("En-têtes non reconnus (%s) : mapping positionnel", schema.kind)
        mapping = ColumnMapping(fields={spec.name: None for spec in schema.fields}, positional=True)
        for idx, name in enumerate(schema.positional[: len(header)]):
            mapping.fields[name] = idx

    logger.debug("Mapping des colonnes (%s): %s, mois=%s", schema.kind, mapping.fields, mapping.months)
    return mapping
