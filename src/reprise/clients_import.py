"""Import d'une liste de clients (noms en première colonne) avec détection des doublons."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from reprise.backend import Backend
from reprise.io_excel import load_sheet_raw
from reprise.normalize import cell_text, normalize_name, split_full_name

logger = logging.getLogger(__name__)

NEW = "nouveau"
EXACT_DUPLICATE = "doublon_exact"
PROBABLE_DUPLICATE = "doublon_probable"


@dataclass
class ClientCheck:
    """Un nom de la liste et son statut par rapport aux clients existants."""

    original: str
    nom: str
    prenom: str
    status: str = NEW
    reason: str = ""
    selected: bool = True


@dataclass
class ClientImportResult:
    success: int = 0
    duplicates: int = 0
    errors: list[str] = field(default_factory=list)


def read_client_names(filepath: str | Path, sheet_name: str | None = None) -> list[str]:
    """Noms non vides de la première colonne (en-tête compris s'il y en a un)."""
    df = load_sheet_raw(filepath, sheet_name)
    if df.empty:
        return []
    return [text for text in (cell_text(v) for v in df.iloc[:, 0].tolist()) if text]


def classify_name(nom: str, prenom: str, existing: Iterable[dict[str, Any]]) -> tuple[str, str]:
    """
    Compare un (nom, prénom) aux clients existants.

    Returns:
        (statut, raison) : doublon_exact si nom et prénom identiques après
        normalisation, doublon_probable si le nom complet est le même dans un
        autre ordre ou si le nom est identique avec un prénom en commun.
    """
    n_nom, n_prenom = normalize_name(nom), normalize_name(prenom)
    words = set(f"{n_nom} {n_prenom}".split())

    for client in existing:
        e_nom = normalize_name(client.get("nom"))
        e_prenom = normalize_name(client.get("prenom"))
        label = f"{cell_text(client.get('nom'))} {cell_text(client.get('prenom'))}".strip()

        if n_nom == e_nom and n_prenom == e_prenom:
            return EXACT_DUPLICATE, f"Identique à: {label}"
        if words and words == set(f"{e_nom} {e_prenom}".split()):
            return PROBABLE_DUPLICATE, f"Nom complet similaire à: {label}"
        if n_nom == e_nom and n_prenom and e_prenom and set(n_prenom.split()) & set(e_prenom.split()):
            return PROBABLE_DUPLICATE, f"Nom identique avec prénom similaire: {label}"

    return NEW, ""


def verify_clients(names: Sequence[str], existing: Sequence[dict[str, Any]]) -> list[ClientCheck]:
    """
    Classe chaque nom de la liste ; seuls les nouveaux sont présélectionnés.

    Les noms répétés dans la liste elle-même sont traités comme des doublons
    des occurrences précédentes.
    """
    known = list(existing)
    checks: list[ClientCheck] = []
    for original in names:
        nom, prenom = split_full_name(original, nom_first=True)
        if not nom:
            continue
        status, reason = classify_name(nom, prenom, known)
        checks.append(ClientCheck(original, nom, prenom, status, reason, selected=status == NEW))
        known.append({"nom": nom, "prenom": prenom})
    return checks


def import_clients(
    checks: Sequence[ClientCheck],
    backend: Backend,
    *,
    import_tag: str = "import",
) -> ClientImportResult:
    """Crée les clients sélectionnés ; les doublons non sélectionnés sont comptés."""
    result = ClientImportResult()
    for check in checks:
        if not check.selected:
            if check.status != NEW:
                result.duplicates += 1
            continue
        try:
            backend.insert(
                "clients",
                {"nom": check.nom, "prenom": check.prenom or None, "telephone_principal": None, "import_tag": import_tag},
            )
        except Exception as e:
            logger.warning("Client %s non créé: %s", check.original, e)
            result.errors.append(f"{check.original}: {e}")
        else:
            result.success += 1
    logger.info("Clients: %d créés, %d doublons ignorés, %d erreurs", result.success, result.duplicates, len(result.errors))
    return result
