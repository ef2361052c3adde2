"""Exécution d'un import : rapprochement, création des fiches, rejeu des paiements."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

from reprise.backend import Backend
from reprise.config import ImportConfig
from reprise.matching.resolver import EntityResolver
from reprise.parser import SpreadsheetRow
from reprise.schemas import RowSchema

logger = logging.getLogger(__name__)

CONTRACT_TABLES = ("locations", "souscriptions")
COUNTERS = (
    "clients_matched",
    "clients_created",
    "properties_matched",
    "properties_created",
    "contracts_created",
    "contracts_existing",
    "contracts_skipped",
    "payments_imported",
    "total_amount",
)


@dataclass
class ImportResult:
    """Compteurs d'un import (ou de sa simulation) et erreurs par ligne."""

    simulated: bool
    rows_total: int = 0
    rows_processed: int = 0
    clients_matched: int = 0
    clients_created: int = 0
    properties_matched: int = 0
    properties_created: int = 0
    contracts_created: int = 0
    contracts_existing: int = 0
    contracts_skipped: int = 0
    payments_imported: int = 0
    total_amount: float = 0.0
    errors: list[str] = field(default_factory=list)

    def counts(self) -> dict[str, float]:
        """Compteurs seuls (comparaison simulation / import réel)."""
        return {name: getattr(self, name) for name in COUNTERS}


@dataclass
class RowJournal:
    """Ce qu'une ligne a créé et compté, pour l'annuler si elle échoue."""

    counts: dict[str, float] = field(default_factory=dict)
    # (type de fiche, table, fiche) dans l'ordre de création
    created: list[tuple[str, str, dict[str, Any]]] = field(default_factory=list)
    payments: int = 0

    def bump(self, name: str, amount: float = 1) -> None:
        self.counts[name] = self.counts.get(name, 0) + amount

    def merge_into(self, result: ImportResult) -> None:
        for name, value in self.counts.items():
            setattr(result, name, getattr(result, name) + value)


class ImportExecutor:
    """
    Traite les lignes une à une, dans l'ordre du fichier.

    En simulation rien n'est écrit : les créations sont remplacées par des
    fiches fictives ajoutées au cache, si bien que les compteurs prédits sont
    ceux d'un import réel sur la même base.
    """

    def __init__(
        self,
        backend: Backend,
        schema: RowSchema,
        config: ImportConfig,
        *,
        progress: Callable[[float], None] | None = None,
    ) -> None:
        self.backend = backend
        self.schema = schema
        self.config = config
        self.progress = progress
        self._simulated_ids = 0

    def load_resolver(self) -> EntityResolver:
        """Lit une fois les clients, propriétés et contrats existants."""
        return EntityResolver(
            self.backend.select("clients"),
            self.backend.select("proprietes"),
            {table: self.backend.select(table) for table in CONTRACT_TABLES},
        )

    def run(self, rows: Sequence[SpreadsheetRow], *, simulate: bool = True) -> ImportResult:
        """
        Importe (ou simule) toutes les lignes.

        Une erreur sur une ligne est consignée dans ImportResult.errors et
        n'interrompt pas l'import. Seule la lecture initiale des fiches
        existantes peut faire échouer l'ensemble.
        """
        result = ImportResult(simulated=simulate, rows_total=len(rows))
        resolver = self.load_resolver()
        mode = "simulation" if simulate else "import"
        logger.info("Début %s %s: %d lignes", mode, self.schema.kind, len(rows))

        for i, row in enumerate(rows):
            journal = RowJournal()
            try:
                self._process_row(row, resolver, journal, simulate=simulate)
            except Exception as e:
                logger.warning("Ligne %d en échec: %s", row.row_index, e, exc_info=logger.isEnabledFor(logging.DEBUG))
                message = f"Ligne {row.row_index} ({row.name or 'Client inconnu'}): {e}"
                message += self._compensate(journal, resolver, result, simulate=simulate)
                result.errors.append(message)
            else:
                journal.merge_into(result)
            result.rows_processed += 1
            if self.progress is not None:
                self.progress((i + 1) / len(rows) * 100)

        logger.info(
            "Fin %s %s: %d contrats, %d paiements, %d erreurs",
            mode,
            self.schema.kind,
            result.contracts_created,
            result.payments_imported,
            len(result.errors),
        )
        return result

    def _placeholder(self, kind: str, values: dict[str, Any]) -> dict[str, Any]:
        self._simulated_ids += 1
        return {"id": f"simulation:{kind}:{self._simulated_ids}", **values}

    def _create(
        self,
        kind: str,
        table: str,
        values: dict[str, Any],
        journal: RowJournal,
        *,
        simulate: bool,
    ) -> dict[str, Any]:
        values = {**values, "import_tag": self.config.import_tag}
        record = self._placeholder(kind, values) if simulate else self.backend.insert(table, values)
        journal.created.append((kind, table, record))
        return record

    def _process_row(
        self,
        row: SpreadsheetRow,
        resolver: EntityResolver,
        journal: RowJournal,
        *,
        simulate: bool,
    ) -> None:
        logger.debug("Ligne %d: %s / %s", row.row_index, row.name, row.site)
        client = None
        if row.name:
            match = resolver.match_client(row.name)
            if match is not None:
                client = match.record
                journal.bump("clients_matched")
            else:
                client = self._create("client", "clients", self.schema.client_values(row), journal, simulate=simulate)
                resolver.add_client(client)
                journal.bump("clients_created")

        prop = None
        if row.site:
            match = resolver.match_property(row.site)
            if match is not None:
                prop = match.record
                journal.bump("properties_matched")
            else:
                values = self.schema.property_values(row, self.config)
                prop = self._create("property", "proprietes", values, journal, simulate=simulate)
                resolver.add_property(prop)
                journal.bump("properties_created")

        if client is None or prop is None:
            # Fiche résolue conservée ; pas de contrat ni de paiement sans les deux
            logger.info("Ligne %d: %s manquant, contrat non créé", row.row_index, "client" if client is None else "site")
            journal.bump("contracts_skipped")
            return

        payments = self.schema.plan_payments(row, self.config)
        plan = self.schema.plan_contract(row, self.config, payments)
        contract = resolver.find_contract(plan.table, client["id"], prop["id"])
        if contract is not None:
            journal.bump("contracts_existing")
        else:
            values = {"client_id": client["id"], "propriete_id": prop["id"], **plan.values}
            contract = self._create("contract", plan.table, values, journal, simulate=simulate)
            resolver.add_contract(plan.table, contract)
            journal.bump("contracts_created")

        for payment in payments:
            if not simulate:
                self.backend.rpc(
                    plan.procedure,
                    {
                        plan.id_param: contract["id"],
                        "client_id": client["id"],
                        "montant": payment.amount,
                        "date_paiement": payment.paid_on.isoformat(),
                        "mode_paiement": self.config.mode_paiement,
                        "reference": payment.reference,
                        "mois_concerne": payment.mois_concerne,
                        "annee_concerne": payment.annee_concerne,
                        "import_tag": self.config.import_tag,
                    },
                )
                journal.payments += 1
            journal.bump("payments_imported")
            journal.bump("total_amount", payment.amount)

    def _compensate(
        self,
        journal: RowJournal,
        resolver: EntityResolver,
        result: ImportResult,
        *,
        simulate: bool,
    ) -> str:
        """
        Annule les créations d'une ligne en échec, dans l'ordre inverse.

        En simulation seules les fiches fictives sont retirées du cache.

        Returns:
            Complément du message d'erreur décrivant l'état laissé en base.
        """
        if journal.payments:
            # Les écritures de caisse ne s'annulent pas : la ligne reste partielle
            journal.merge_into(result)
            return f" (import partiel: {journal.payments} paiement(s) déjà enregistré(s))"
        if not journal.created:
            return ""
        if simulate:
            for kind, table, record in reversed(journal.created):
                resolver.forget(kind, record, table=table)
            return ""

        failed = []
        for kind, table, record in reversed(journal.created):
            try:
                self.backend.delete(table, record["id"])
            except Exception as e:
                logger.warning("Annulation impossible %s %s: %s", table, record["id"], e)
                failed.append(f"{table} {record['id']}")
            else:
                logger.warning("Annulé %s %s", table, record["id"])
                resolver.forget(kind, record, table=table)
        if failed:
            return f" (annulation incomplète: {', '.join(failed)})"
        return " (créations annulées)"
