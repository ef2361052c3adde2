"""Contrôles de cohérence des lignes avant import."""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Sequence
from dataclasses import dataclass, field

from reprise.config import AMOUNT_TOLERANCE
from reprise.normalize import normalize_name
from reprise.parser import SpreadsheetRow
from reprise.schemas import RowSchema


@dataclass
class Inconsistency:
    """Écart arithmétique entre la somme des montants et le total de la ligne."""

    row_index: int
    label: str
    expected: float  # total lu dans le fichier
    actual: float  # somme recalculée

    def __str__(self) -> str:
        return f"Ligne {self.row_index}: {self.label} incohérent ({self.actual:g} vs {self.expected:g})"


@dataclass
class DuplicateName:
    """Nom présent sur plusieurs lignes."""

    name: str
    rows: list[int]

    @property
    def count(self) -> int:
        return len(self.rows)


@dataclass
class FieldIssue:
    """Champ requis vide ou montant illisible, avec les lignes concernées."""

    field: str
    rows: list[int]


@dataclass
class GroupStats:
    """Totaux par agent (imports de recouvrement)."""

    group: str
    rows: int = 0
    total_due: float = 0.0
    total_paid: float = 0.0
    gap: float = 0.0


@dataclass
class ValidationReport:
    """Résultat des contrôles. Les doublons et montants illisibles sont des avertissements."""

    total_rows: int
    total_amount: float
    inconsistencies: list[Inconsistency] = field(default_factory=list)
    duplicates: list[DuplicateName] = field(default_factory=list)
    missing_fields: list[FieldIssue] = field(default_factory=list)
    unparsed_amounts: list[FieldIssue] = field(default_factory=list)
    negative_amounts: list[FieldIssue] = field(default_factory=list)
    group_stats: list[GroupStats] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.inconsistencies and not self.missing_fields

    @property
    def can_import(self) -> bool:
        """Seuls les champs requis manquants bloquent la simulation et l'import."""
        return not self.missing_fields

    def messages(self) -> list[str]:
        """Messages lisibles, dans l'ordre : bloquants puis avertissements."""
        out = [f"Champ requis '{m.field}' vide : lignes {_rows(m.rows)}" for m in self.missing_fields]
        out.extend(str(i) for i in self.inconsistencies)
        out.extend(f"Doublon '{d.name}' ({d.count}x) : lignes {_rows(d.rows)}" for d in self.duplicates)
        out.extend(f"Montant illisible '{u.field}' : lignes {_rows(u.rows)}" for u in self.unparsed_amounts)
        out.extend(f"Montant négatif '{n.field}' (ignoré) : lignes {_rows(n.rows)}" for n in self.negative_amounts)
        return out


def _rows(rows: list[int]) -> str:
    return ", ".join(str(r) for r in rows)


def check_consistency(
    row: SpreadsheetRow,
    schema: RowSchema,
    *,
    tolerance: float = AMOUNT_TOLERANCE,
) -> list[Inconsistency]:
    """
    Vérifie les règles arithmétiques du schéma sur une ligne.

    Une règle n'est appliquée que si toutes ses colonnes existent dans le
    fichier. Un écart égal à la tolérance est signalé.
    """
    issues = []
    for rule in schema.rules:
        if not all(row.has(name) for name in (*rule.parts, rule.total)):
            continue
        actual = sum(row.amount(name) for name in rule.parts)
        expected = row.amount(rule.total)
        if abs(actual - expected) >= tolerance:
            issues.append(Inconsistency(row.row_index, rule.label, expected, actual))
    return issues


def validate_rows(
    rows: Sequence[SpreadsheetRow],
    schema: RowSchema,
    *,
    tolerance: float = AMOUNT_TOLERANCE,
) -> ValidationReport:
    """
    Exécute tous les contrôles (aucun n'interrompt les autres) et agrège les anomalies.

    Returns:
        ValidationReport ; is_valid est faux en cas d'incohérence ou de champ requis vide.
    """
    report = ValidationReport(
        total_rows=len(rows),
        total_amount=sum(r.amount(schema.paid_field) for r in rows),
    )

    for row in rows:
        report.inconsistencies.extend(check_consistency(row, schema, tolerance=tolerance))

    by_name: dict[str, list[int]] = defaultdict(list)
    for row in rows:
        key = normalize_name(row.name)
        if key:
            by_name[key].append(row.row_index)
    report.duplicates = [DuplicateName(name, idx) for name, idx in by_name.items() if len(idx) > 1]

    for name in schema.required:
        spec = schema.spec(name)
        if spec.kind == "amount":
            missing = [r.row_index for r in rows if r.amount(name) <= 0]
        else:
            missing = [r.row_index for r in rows if not r.text(name)]
        if missing:
            report.missing_fields.append(FieldIssue(name, missing))

    unparsed: dict[str, list[int]] = defaultdict(list)
    for row in rows:
        for name in row.unparsed:
            unparsed[name].append(row.row_index)
    report.unparsed_amounts = [FieldIssue(name, idx) for name, idx in unparsed.items()]

    # Montants versés négatifs : aucun paiement rejoué (encaissement refusé si <= 0)
    negative: dict[str, list[int]] = defaultdict(list)
    for row in rows:
        values = [(name, row.amount(name)) for name in (schema.paid_field, "solde_anterieur")]
        values.extend((f"mois_{m:02d}", v) for m, v in sorted(row.monthly.items()))
        for name, value in values:
            if value < 0:
                negative[name].append(row.row_index)
    report.negative_amounts = [FieldIssue(name, idx) for name, idx in negative.items()]

    if schema.group_field:
        stats: dict[str, GroupStats] = {}
        for row in rows:
            key = normalize_name(row.text(schema.group_field))
            group = stats.setdefault(key, GroupStats(group=key))
            group.rows += 1
            group.total_due += row.amount("total_du")
            group.total_paid += row.amount(schema.paid_field)
            group.gap += row.amount("ecart")
        report.group_stats = list(stats.values())

    return report
