"""Accès à la base hébergée : lectures, créations et procédures d'encaissement."""

from __future__ import annotations

import logging
import uuid
from datetime import date, datetime
from typing import Any, Protocol

import requests

from reprise.config import BackendSettings, RepriseError

logger = logging.getLogger(__name__)

PAYMENT_PROCEDURES = {
    # procédure → (table des paiements, colonne du contrat, type d'opération de caisse)
    "pay_location_with_cash": ("paiements_locations", "location_id", "paiement_loyer"),
    "pay_souscription_with_cash": ("paiements_souscriptions", "souscription_id", "paiement_souscription"),
    "pay_droit_terre_with_cash": ("paiements_droit_terre", "souscription_id", "paiement_droit_terre"),
}


class BackendError(RepriseError):
    """Échec d'un appel à la base (message renvoyé par le serveur)."""


class Backend(Protocol):
    """Opérations utilisées par l'import."""

    def select(self, table: str) -> list[dict[str, Any]]: ...

    def insert(self, table: str, values: dict[str, Any]) -> dict[str, Any]: ...

    def delete(self, table: str, record_id: Any) -> None: ...

    def rpc(self, fn: str, params: dict[str, Any]) -> Any: ...


class InMemoryBackend:
    """
    Base en mémoire, pour les tests et les aperçus hors ligne.

    Les procédures d'encaissement enregistrent le paiement, un reçu et une
    ligne de caisse portant le solde avant/après, comme le fait le serveur.
    """

    def __init__(self, tables: dict[str, list[dict[str, Any]]] | None = None, *, cash_balance: float = 0.0) -> None:
        self.tables: dict[str, list[dict[str, Any]]] = {
            name: [dict(r) for r in rows] for name, rows in (tables or {}).items()
        }
        self.cash_balance = cash_balance
        self.calls: list[tuple[str, str]] = []
        self._receipt_seq = 0

    def _table(self, table: str) -> list[dict[str, Any]]:
        return self.tables.setdefault(table, [])

    def select(self, table: str) -> list[dict[str, Any]]:
        self.calls.append(("select", table))
        return [dict(r) for r in self._table(table)]

    def insert(self, table: str, values: dict[str, Any]) -> dict[str, Any]:
        self.calls.append(("insert", table))
        record = {"id": str(uuid.uuid4()), **values}
        self._table(table).append(record)
        return dict(record)

    def delete(self, table: str, record_id: Any) -> None:
        self.calls.append(("delete", table))
        rows = self._table(table)
        remaining = [r for r in rows if r.get("id") != record_id]
        if len(remaining) == len(rows):
            raise BackendError(f"{table}: enregistrement {record_id} introuvable")
        self.tables[table] = remaining

    def rpc(self, fn: str, params: dict[str, Any]) -> Any:
        self.calls.append(("rpc", fn))
        if fn not in PAYMENT_PROCEDURES:
            raise BackendError(f"Procédure inconnue: {fn}")
        payment_table, contract_key, operation = PAYMENT_PROCEDURES[fn]

        montant = float(params.get("montant") or 0)
        if montant <= 0:
            raise BackendError("Le montant doit être supérieur à 0")
        contract_table = "locations" if contract_key == "location_id" else "souscriptions"
        contract = next((c for c in self._table(contract_table) if c.get("id") == params.get(contract_key)), None)
        if contract is None:
            raise BackendError(f"{contract_table}: contrat {params.get(contract_key)} introuvable")

        payment = self.insert(
            payment_table,
            {
                contract_key: contract["id"],
                "montant": montant,
                "date_paiement": params.get("date_paiement") or date.today().isoformat(),
                "mode_paiement": params.get("mode_paiement") or "cash",
                "reference": params.get("reference"),
                "mois_concerne": params.get("mois_concerne"),
                "annee_concerne": params.get("annee_concerne"),
                "import_tag": params.get("import_tag"),
            },
        )
        # Paiement = sortie de la caisse versement vers la comptabilité
        solde_avant = self.cash_balance
        self.cash_balance = solde_avant - montant
        self.insert(
            "cash_transactions",
            {
                "montant": montant,
                "type_transaction": "sortie",
                "type_operation": operation,
                "reference_operation": payment["id"],
                "solde_avant": solde_avant,
                "solde_apres": self.cash_balance,
            },
        )
        self._receipt_seq += 1
        receipt = self.insert(
            "recus",
            {
                "numero": f"REC-{datetime.now():%Y%m%d}-{self._receipt_seq:04d}",
                "client_id": contract.get("client_id"),
                "reference_id": payment["id"],
                "montant_total": montant,
            },
        )
        return receipt["id"]


class ApiBackend:
    """
    Client REST de l'API hébergée (/db/<action>, /rpc/<fn>).

    L'insertion ne renvoie qu'un compteur : l'identifiant est donc généré ici
    et la fiche créée est retournée telle qu'envoyée.
    """

    def __init__(self, settings: BackendSettings, session: requests.Session | None = None) -> None:
        if not settings.url:
            raise BackendError("URL de l'API non configurée (backend.url)")
        self.settings = settings
        self.session = session or requests.Session()
        self.session.headers.update({"Content-Type": "application/json"})
        if settings.session_token:
            self.session.cookies.set(settings.cookie_name, settings.session_token)

    def _post(self, path: str, payload: dict[str, Any]) -> Any:
        url = f"{self.settings.url}{path}"
        try:
            response = self.session.post(url, json=payload, timeout=self.settings.timeout)
        except requests.RequestException as e:
            raise BackendError(f"Appel {path} impossible: {e}") from e

        if not response.ok:
            try:
                body = response.json()
            except ValueError:
                body = None
            message = None
            if isinstance(body, dict):
                message = body.get("error") or body.get("message")
            message = message or response.text or response.reason
            raise BackendError(f"{path}: {message}")

        if "application/json" in response.headers.get("content-type", ""):
            return response.json()
        return None

    def select(self, table: str) -> list[dict[str, Any]]:
        data = self._post("/db/select", {"table": table})
        return list(data or [])

    def insert(self, table: str, values: dict[str, Any]) -> dict[str, Any]:
        record = {"id": str(uuid.uuid4()), **values}
        self._post("/db/insert", {"table": table, "values": record})
        logger.debug("Créé %s %s", table, record["id"])
        return record

    def delete(self, table: str, record_id: Any) -> None:
        self._post("/db/delete", {"table": table, "filters": [{"op": "eq", "column": "id", "value": record_id}]})

    def rpc(self, fn: str, params: dict[str, Any]) -> Any:
        return self._post(f"/rpc/{fn}", params)
