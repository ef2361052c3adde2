"""Calcul des distances et choix de la meilleure fiche existante."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from rapidfuzz.distance import Levenshtein

from reprise.config import CLIENT_MATCH_MAX_DISTANCE
from reprise.matching.schema import MatchCandidate
from reprise.normalize import cell_text, normalize_name


def edit_distance(a: str, b: str, *, max_distance: int | None = None) -> int:
    """
    Distance de Levenshtein (insertions, suppressions, substitutions).

    Avec max_distance, le calcul s'arrête dès que le seuil est dépassé et la
    valeur retournée est alors max_distance + 1.
    """
    return int(Levenshtein.distance(a, b, score_cutoff=max_distance))


def client_display_name(record: dict[str, Any]) -> str:
    """Nom affiché d'un client : "prenom nom"."""
    return f"{cell_text(record.get('prenom'))} {cell_text(record.get('nom'))}".strip()


def _sort_key(c: MatchCandidate) -> tuple[int, str, str]:
    # Départage déterministe : distance, puis nom, puis identifiant
    return (c.distance, c.name, str(c.record_id))


def rank_clients(
    name: str,
    clients: Iterable[dict[str, Any]],
    *,
    max_distance: int = CLIENT_MATCH_MAX_DISTANCE,
) -> list[MatchCandidate]:
    """
    Classe les clients existants dont le nom est à distance <= max_distance.

    Returns:
        Candidats triés du plus proche au plus éloigné.
    """
    target = normalize_name(name)
    if not target:
        return []

    candidates: list[MatchCandidate] = []
    for client in clients:
        other = normalize_name(client_display_name(client))
        if not other:
            continue
        distance = edit_distance(target, other, max_distance=max_distance)
        if distance <= max_distance:
            candidates.append(MatchCandidate(record=client, name=other, distance=distance))

    candidates.sort(key=_sort_key)
    return candidates


def find_best_client(
    name: str,
    clients: Iterable[dict[str, Any]],
    *,
    max_distance: int = CLIENT_MATCH_MAX_DISTANCE,
) -> MatchCandidate | None:
    """
    Retourne le client existant le plus proche, ou None si aucun n'est sous le seuil.

    Une distance égale au seuil est acceptée (3 → match, 4 → pas de match).
    """
    ranked = rank_clients(name, clients, max_distance=max_distance)
    return ranked[0] if ranked else None


def find_property(
    site: str,
    properties: Iterable[dict[str, Any]],
    *,
    key: str = "nom",
) -> MatchCandidate | None:
    """
    Retrouve une propriété par inclusion de nom (dans un sens ou dans l'autre).

    Une égalité exacte (après normalisation) est prioritaire ; sinon la
    propriété dont le nom est le plus proche en longueur l'emporte.
    """
    target = normalize_name(site)
    if not target:
        return None

    candidates: list[MatchCandidate] = []
    for prop in properties:
        other = normalize_name(prop.get(key))
        if not other:
            continue
        if other in target or target in other:
            candidates.append(MatchCandidate(record=prop, name=other, distance=abs(len(other) - len(target))))

    if not candidates:
        return None
    return min(candidates, key=_sort_key)
