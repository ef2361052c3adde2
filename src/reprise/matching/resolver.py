"""Cache des fiches existantes pendant un import (lecture de ses propres écritures)."""

from __future__ import annotations

from typing import Any

from reprise.config import CLIENT_MATCH_MAX_DISTANCE
from reprise.matching.matchers import find_best_client, find_property
from reprise.matching.schema import MatchCandidate


def _contract_key(table: str, record: dict[str, Any]) -> tuple[str, Any, Any]:
    return (table, record.get("client_id"), record.get("propriete_id"))


class EntityResolver:
    """
    Fiches clients, propriétés et contrats connues au cours d'un import.

    Chargées une fois au début de l'import puis complétées au fil des lignes,
    pour qu'une ligne retrouve un client ou une propriété créé par une ligne
    précédente. Local à un import, jamais partagé.
    """

    def __init__(
        self,
        clients: list[dict[str, Any]],
        properties: list[dict[str, Any]],
        contracts: dict[str, list[dict[str, Any]]] | None = None,
        *,
        max_distance: int = CLIENT_MATCH_MAX_DISTANCE,
    ) -> None:
        self.clients = list(clients)
        self.properties = list(properties)
        self.max_distance = max_distance
        # (table, client_id, propriete_id) → contrat
        self.contracts: dict[tuple[str, Any, Any], dict[str, Any]] = {}
        for table, rows in (contracts or {}).items():
            for contract in rows:
                self.contracts.setdefault(_contract_key(table, contract), contract)

    def match_client(self, name: str) -> MatchCandidate | None:
        return find_best_client(name, self.clients, max_distance=self.max_distance)

    def match_property(self, site: str) -> MatchCandidate | None:
        return find_property(site, self.properties)

    def find_contract(self, table: str, client_id: Any, property_id: Any) -> dict[str, Any] | None:
        return self.contracts.get((table, client_id, property_id))

    def add_client(self, record: dict[str, Any]) -> None:
        self.clients.append(record)

    def add_property(self, record: dict[str, Any]) -> None:
        self.properties.append(record)

    def add_contract(self, table: str, record: dict[str, Any]) -> None:
        self.contracts[_contract_key(table, record)] = record

    def forget(self, table_kind: str, record: dict[str, Any], *, table: str = "") -> None:
        """Retire une fiche annulée (compensation d'une ligne en échec)."""
        if table_kind == "client":
            self.clients = [c for c in self.clients if c is not record]
        elif table_kind == "property":
            self.properties = [p for p in self.properties if p is not record]
        elif table_kind == "contract":
            self.contracts.pop(_contract_key(table, record), None)
        else:
            raise ValueError(f"Type de fiche inconnu: {table_kind!r}")
