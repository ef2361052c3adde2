"""Schémas et types pour le rapprochement."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass
class MatchCandidate:
    """Une fiche existante rapprochée d'un nom du tableur."""

    record: dict[str, Any]
    name: str  # nom normalisé de la fiche
    distance: int  # 0 = identique ; pour les propriétés, écart de longueur

    @property
    def record_id(self) -> Any:
        return self.record.get("id")

    def __repr__(self) -> str:
        return f"MatchCandidate(id={self.record_id!r}, name={self.name!r}, distance={self.distance})"
