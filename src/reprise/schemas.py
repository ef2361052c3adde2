"""Schémas de lignes : un par type d'import historique."""

from __future__ import annotations

import math
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date
from typing import TYPE_CHECKING, Any

from reprise.config import ConfigError, ImportConfig
from reprise.normalize import split_full_name

if TYPE_CHECKING:
    from reprise.parser import SpreadsheetRow

MONTH_NAMES = (
    "janvier", "fevrier", "mars", "avril", "mai", "juin",
    "juillet", "aout", "septembre", "octobre", "novembre", "decembre",
)
_MONTH_ALIASES = {
    "jan": 1, "janv": 1, "fev": 2, "fevr": 2, "avr": 4, "juil": 7,
    "sep": 9, "sept": 9, "oct": 10, "nov": 11, "dec": 12,
}


def month_number(header: str) -> int | None:
    """Numéro du mois (1-12) si un mot de l'en-tête normalisé est un nom de mois."""
    for token in header.replace(".", " ").split():
        if token in MONTH_NAMES:
            return MONTH_NAMES.index(token) + 1
        if token in _MONTH_ALIASES:
            return _MONTH_ALIASES[token]
    return None


@dataclass(frozen=True)
class FieldSpec:
    """Champ sémantique d'une ligne et mots-clés d'en-tête qui le désignent."""

    name: str
    kind: str = "text"  # text, amount
    # Un en-tête correspond si tous les mots d'un des groupes y figurent
    keywords: tuple[tuple[str, ...], ...] = ()

    def matches(self, header: str) -> bool:
        return any(all(word in header for word in group) for group in self.keywords)


@dataclass(frozen=True)
class ConsistencyRule:
    """Contrôle arithmétique : somme(parts) ≈ total."""

    label: str
    parts: tuple[str, ...]
    total: str


@dataclass
class PaymentPlan:
    """Paiement à rejouer via la procédure d'encaissement."""

    amount: float
    paid_on: date
    reference: str
    mois_concerne: str | None = None
    annee_concerne: int | None = None


@dataclass
class ContractPlan:
    """Contrat à créer pour une ligne, et procédure qui encaisse ses paiements."""

    table: str  # locations, souscriptions
    values: dict[str, Any]
    procedure: str
    id_param: str


@dataclass(frozen=True)
class RowSchema:
    """Description d'un type d'import : colonnes, contrôles et fiches à créer."""

    kind: str
    fields: tuple[FieldSpec, ...]
    positional: tuple[str, ...]
    name_field: str
    site_field: str
    required: tuple[str, ...]
    rules: tuple[ConsistencyRule, ...]
    paid_field: str
    property_values: Callable[[SpreadsheetRow, ImportConfig], dict[str, Any]]
    plan_contract: Callable[[SpreadsheetRow, ImportConfig, list[PaymentPlan]], ContractPlan]
    plan_payments: Callable[[SpreadsheetRow, ImportConfig], list[PaymentPlan]]
    group_field: str | None = None
    # Ordre du nom complet : premier mot = prénom (sinon dernier mot = nom)
    prenom_first: bool = False
    field_index: dict[str, FieldSpec] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "field_index", {f.name: f for f in self.fields})

    def spec(self, name: str) -> FieldSpec:
        return self.field_index[name]

    def match_header(self, header: str) -> FieldSpec | None:
        """Premier champ dont les mots-clés figurent dans l'en-tête normalisé."""
        for spec in self.fields:
            if spec.matches(header):
                return spec
        return None

    def client_values(self, row: SpreadsheetRow) -> dict[str, Any]:
        nom, prenom = split_full_name(row.name, prenom_first=self.prenom_first)
        return {
            "nom": nom,
            "prenom": prenom,
            "telephone_principal": row.text("telephone") or None,
            "adresse": row.text("adresse") or None,
        }


def _row_date(row: SpreadsheetRow, config: ImportConfig) -> date:
    return row.parsed_date("date_versement") or config.effective_payment_date()


def _month_payments(row: SpreadsheetRow, config: ImportConfig) -> list[PaymentPlan]:
    plans = []
    for month, amount in sorted(row.monthly.items()):
        if amount > 0:
            label = MONTH_NAMES[month - 1]
            plans.append(
                PaymentPlan(
                    amount=amount,
                    paid_on=date(config.year, month, 1),
                    reference=f"Import historique - {label} {config.year} - Ligne {row.row_index}",
                    mois_concerne=label,
                    annee_concerne=config.year,
                )
            )
    return plans


def _single_payment(row: SpreadsheetRow, config: ImportConfig, amount: float) -> list[PaymentPlan]:
    if amount <= 0:
        return []
    month = config.month
    return [
        PaymentPlan(
            amount=amount,
            paid_on=_row_date(row, config),
            reference=f"Import historique - Ligne {row.row_index}",
            mois_concerne=MONTH_NAMES[month - 1] if month else None,
            annee_concerne=config.year if month else None,
        )
    ]


def _start_date(payments: list[PaymentPlan], config: ImportConfig) -> str:
    first = min((p.paid_on for p in payments), default=config.effective_payment_date())
    return first.isoformat()


# --- Locations historiques -------------------------------------------------

def _location_property(row: SpreadsheetRow, config: ImportConfig) -> dict[str, Any]:
    return {"nom": row.site, "loyer_mensuel": row.amount("prix_loyer"), "statut": "Occupé", "usage": "Location"}


def _location_payments(row: SpreadsheetRow, config: ImportConfig) -> list[PaymentPlan]:
    if row.monthly:
        return _month_payments(row, config)
    return _single_payment(row, config, row.amount("montant_verse"))


def _location_contract(row: SpreadsheetRow, config: ImportConfig, payments: list[PaymentPlan]) -> ContractPlan:
    # Clients historiques : caution déjà réglée
    return ContractPlan(
        table="locations",
        values={
            "loyer_mensuel": row.amount("prix_loyer"),
            "caution_totale": 0,
            "type_contrat": "historique",
            "date_debut": _start_date(payments, config),
            "statut": "en_retard" if row.amount("reste_a_payer") > 0 else "active",
        },
        procedure="pay_location_with_cash",
        id_param="location_id",
    )


LOCATIONS = RowSchema(
    kind="location",
    fields=(
        FieldSpec("date_versement", "text", (("date",),)),
        FieldSpec("site", "text", (("site",), ("propriete",), ("lieu",), ("bien",))),
        FieldSpec("client", "text", (("client",), ("locataire",), ("nom",))),
        # "reste a payer" contient "paye" : reste_a_payer doit passer avant montant_verse
        FieldSpec("reste_a_payer", "amount", (("reste",), ("restant",), ("arriere",))),
        FieldSpec("montant_verse", "amount", (("verse",), ("paye",), ("paiement",))),
        FieldSpec("prix_loyer", "amount", (("loyer",), ("mensuel",), ("prix",))),
    ),
    positional=("client", "site", "prix_loyer", "montant_verse", "reste_a_payer", "date_versement"),
    name_field="client",
    site_field="site",
    required=("client", "site"),
    rules=(ConsistencyRule("Loyer", ("montant_verse", "reste_a_payer"), "prix_loyer"),),
    paid_field="montant_verse",
    property_values=_location_property,
    plan_contract=_location_contract,
    plan_payments=_location_payments,
    prenom_first=True,
)


# --- Souscriptions historiques ---------------------------------------------

def _souscription_property(row: SpreadsheetRow, config: ImportConfig) -> dict[str, Any]:
    return {"nom": row.site, "adresse": row.site, "usage": "Souscription", "statut": "Souscrit"}


def _souscription_payments(row: SpreadsheetRow, config: ImportConfig) -> list[PaymentPlan]:
    plans: list[PaymentPlan] = []
    base = _row_date(row, config)
    previous = row.amount("solde_anterieur")
    if previous > 0:
        # Le solde antérieur est rejoué comme un versement du mois précédent
        year, month = (base.year - 1, 12) if base.month == 1 else (base.year, base.month - 1)
        plans.append(
            PaymentPlan(
                amount=previous,
                paid_on=date(year, month, min(base.day, 28)),
                reference=f"Solde antérieur - Ligne {row.row_index}",
            )
        )
    if row.monthly:
        plans.extend(_month_payments(row, config))
    else:
        plans.extend(_single_payment(row, config, row.amount("montant_verse")))
    return plans


def _souscription_contract(
    row: SpreadsheetRow, config: ImportConfig, payments: list[PaymentPlan]
) -> ContractPlan:
    price = row.amount("prix_acquisition")
    # Montants négatifs ignorés, comme pour les paiements
    previous = max(0.0, row.amount("solde_anterieur"))
    paid = max(0.0, row.amount("montant_verse"))
    remaining = max(0.0, price - (previous + paid))
    return ContractPlan(
        table="souscriptions",
        values={
            "type_souscription": "historique",
            "prix_total": price,
            "apport_initial": previous,
            "montant_mensuel": paid,
            "nombre_mois": math.ceil(remaining / max(paid, 1)) if remaining > 0 else 0,
            "date_debut": _start_date(payments, config),
            "solde_restant": remaining,
            "statut": "active" if remaining > 0 else "terminee",
            "phase_actuelle": "souscription",
        },
        procedure="pay_souscription_with_cash",
        id_param="souscription_id",
    )


SOUSCRIPTIONS = RowSchema(
    kind="souscription",
    fields=(
        FieldSpec("date_versement", "text", (("date",),)),
        FieldSpec("solde_anterieur", "amount", (("anterieur",), ("ancien",))),
        FieldSpec("reste_a_payer", "amount", (("reste",), ("restant",))),
        FieldSpec("montant_verse", "amount", (("verse",), ("paye",), ("paiement",))),
        FieldSpec("prix_acquisition", "amount", (("prix",), ("acquisition",))),
        FieldSpec("site", "text", (("site",), ("propriete",), ("lieu",), ("terrain",))),
        FieldSpec("client", "text", (("client",), ("souscripteur",), ("nom",))),
    ),
    positional=(
        "client", "site", "prix_acquisition", "solde_anterieur",
        "montant_verse", "reste_a_payer", "date_versement",
    ),
    name_field="client",
    site_field="site",
    required=("client", "site", "prix_acquisition"),
    rules=(
        ConsistencyRule(
            "Prix d'acquisition", ("solde_anterieur", "montant_verse", "reste_a_payer"), "prix_acquisition"
        ),
    ),
    paid_field="montant_verse",
    property_values=_souscription_property,
    plan_contract=_souscription_contract,
    plan_payments=_souscription_payments,
)


# --- Situation de recouvrement des agents ----------------------------------

def _recouvrement_property(row: SpreadsheetRow, config: ImportConfig) -> dict[str, Any]:
    return {"nom": row.site, "zone": row.site, "usage": "Mixte", "statut": "Occupé", "agent_id": config.agent_id}


def _recouvrement_payments(row: SpreadsheetRow, config: ImportConfig) -> list[PaymentPlan]:
    if row.monthly:
        return _month_payments(row, config)
    return _single_payment(row, config, row.amount("total_verse"))


def _monthly_due(row: SpreadsheetRow, total_field: str) -> float:
    if row.amount("montant_mensuel"):
        return row.amount("montant_mensuel")
    if row.monthly:
        return max(row.monthly.values())
    return row.amount(total_field)


def _recouvrement_contract(
    row: SpreadsheetRow, config: ImportConfig, payments: list[PaymentPlan]
) -> ContractPlan:
    remaining = max(0.0, row.amount("total_du") - row.amount("total_verse"))
    start = _start_date(payments, config)
    if config.operation_type == "droit_terre":
        return ContractPlan(
            table="souscriptions",
            values={
                "prix_total": row.amount("total_du"),
                "apport_initial": 0,
                "montant_mensuel": _monthly_due(row, "total_du_droits_terre"),
                "nombre_mois": 240,  # droit de terre : jusqu'à 20 ans
                "date_debut": start,
                "solde_restant": remaining,
                "type_souscription": "mise_en_garde",
                "type_bien": "terrain",
                "statut": "active",
            },
            procedure="pay_droit_terre_with_cash",
            id_param="souscription_id",
        )
    return ContractPlan(
        table="locations",
        values={
            "loyer_mensuel": _monthly_due(row, "total_du_loyers"),
            "caution_totale": 0,
            "type_contrat": "historique",
            "date_debut": start,
            "statut": "en_retard" if remaining > 0 else "active",
        },
        procedure="pay_location_with_cash",
        id_param="location_id",
    )


RECOUVREMENT = RowSchema(
    kind="recouvrement",
    fields=(
        FieldSpec("agent", "text", (("agent",), ("collecteur",))),
        FieldSpec("telephone", "text", (("telephone",), ("tel",), ("contact",))),
        FieldSpec("adresse", "text", (("adresse",),)),
        FieldSpec("ecart", "amount", (("ecart",), ("reste",))),
        FieldSpec("total_verse", "amount", (("verse",), ("paye",), ("recouvre",))),
        FieldSpec("montant_mensuel", "amount", (("mensuel",),)),
        FieldSpec("total_du_droits_terre", "amount", (("droit",), ("terre",))),
        FieldSpec("total_du_loyers", "amount", (("loyer",),)),
        FieldSpec("total_du", "amount", (("total", "du"), ("montant", "du"))),
        FieldSpec("secteur", "text", (("secteur",), ("site",), ("zone",))),
        FieldSpec("client", "text", (("client",), ("locataire",), ("nom",))),
    ),
    positional=(
        "agent", "client", "secteur", "total_du_loyers", "total_du_droits_terre",
        "total_du", "total_verse", "ecart", "telephone", "adresse",
    ),
    name_field="client",
    site_field="secteur",
    required=("agent", "client"),
    rules=(
        ConsistencyRule("Total dû", ("total_du_loyers", "total_du_droits_terre"), "total_du"),
        ConsistencyRule("Écart", ("total_verse", "ecart"), "total_du"),
    ),
    paid_field="total_verse",
    property_values=_recouvrement_property,
    plan_contract=_recouvrement_contract,
    plan_payments=_recouvrement_payments,
    group_field="agent",
)


SCHEMAS: dict[str, RowSchema] = {s.kind: s for s in (LOCATIONS, SOUSCRIPTIONS, RECOUVREMENT)}


def get_schema(kind: str) -> RowSchema:
    """Retourne le schéma d'un type d'import."""
    try:
        return SCHEMAS[kind]
    except KeyError:
        raise ConfigError(f"Type d'import inconnu: {kind!r}. Valides: {sorted(SCHEMAS)}") from None
