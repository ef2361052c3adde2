"""Configuration d'un import et chargement du fichier config JSON."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Any

VALID_KINDS = frozenset({"location", "souscription", "recouvrement"})
VALID_OPERATION_TYPES = frozenset({"loyer", "droit_terre"})

# Seuils fixes par type d'import, volontairement non configurables
CLIENT_MATCH_MAX_DISTANCE = 3
AMOUNT_TOLERANCE = 1000.0


class RepriseError(Exception):
    """Exception de base pour Reprise."""


class ConfigError(RepriseError, ValueError):
    """Erreur de validation de la configuration."""


class ConfigFileError(RepriseError):
    """Erreur de chargement du fichier de configuration (fichier absent, JSON invalide)."""


@dataclass
class BackendSettings:
    """Accès à l'API hébergée."""

    url: str = ""
    session_token: str | None = None
    cookie_name: str = "dhimmobilier_session"
    timeout: float = 30.0

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> BackendSettings:
        timeout = float(d.get("timeout", 30.0))
        if timeout <= 0:
            raise ConfigError(f"backend.timeout doit être > 0 (got {timeout})")
        return cls(
            url=str(d.get("url", "")).rstrip("/"),
            session_token=d.get("session_token"),
            cookie_name=d.get("cookie_name", "dhimmobilier_session"),
            timeout=timeout,
        )


@dataclass
class ImportConfig:
    """Paramètres d'un import historique."""

    kind: str = "location"
    file: str = ""
    sheet: str | None = None  # None = première feuille
    header_row: int = 1

    # Recouvrement : agent et type d'opération choisis par l'utilisateur
    operation_type: str = "loyer"
    agent_id: str | None = None

    # Période des paiements importés (colonnes mois)
    year: int = field(default_factory=lambda: date.today().year)
    month: int | None = None
    payment_date: date | None = None

    mode_paiement: str = "espece"
    import_tag: str = "import"

    backend: BackendSettings = field(default_factory=BackendSettings)

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> ImportConfig:
        kind = d.get("kind", "location")
        operation_type = d.get("operation_type", "loyer")
        header_row = int(d.get("header_row", 1))
        year = int(d.get("year", date.today().year))
        month = d.get("month")
        raw_date = d.get("payment_date")

        if kind not in VALID_KINDS:
            raise ConfigError(f"kind invalide: {kind!r}. Valides: {sorted(VALID_KINDS)}")
        if operation_type not in VALID_OPERATION_TYPES:
            raise ConfigError(
                f"operation_type invalide: {operation_type!r}. Valides: {sorted(VALID_OPERATION_TYPES)}"
            )
        if header_row < 1:
            raise ConfigError(f"header_row doit être >= 1 (got {header_row})")
        if not 1900 <= year <= 2100:
            raise ConfigError(f"year invalide (got {year})")
        if month is not None:
            month = int(month)
            if not 1 <= month <= 12:
                raise ConfigError(f"month doit être entre 1 et 12 (got {month})")

        payment_date = None
        if raw_date:
            try:
                payment_date = date.fromisoformat(str(raw_date))
            except ValueError as e:
                raise ConfigError(f"payment_date invalide: {raw_date!r} (format AAAA-MM-JJ)") from e

        backend = d.get("backend") or {}
        if not isinstance(backend, dict):
            raise ConfigError("backend doit être un objet JSON")

        return cls(
            kind=kind,
            file=d.get("file", ""),
            sheet=d.get("sheet"),
            header_row=header_row,
            operation_type=operation_type,
            agent_id=d.get("agent_id"),
            year=year,
            month=month,
            payment_date=payment_date,
            mode_paiement=d.get("mode_paiement", "espece"),
            import_tag=d.get("import_tag", "import"),
            backend=BackendSettings.from_dict(backend),
        )

    @classmethod
    def load(cls, path: str | Path) -> ImportConfig:
        """
        Charge la configuration depuis un fichier JSON.

        Raises:
            ConfigFileError: Si le fichier est absent ou le JSON invalide.
            ConfigError: Si la configuration est invalide.
        """
        path = Path(path).resolve()
        if not path.exists():
            raise ConfigFileError(f"Fichier de configuration introuvable: {path}")

        try:
            with open(path, encoding="utf-8") as f:
                d = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigFileError(f"JSON invalide dans {path}: {e}") from e
        except OSError as e:
            raise ConfigFileError(f"Impossible de lire {path}: {e}") from e

        if not isinstance(d, dict):
            raise ConfigFileError(f"Fichier de configuration invalide: {path} doit contenir un objet JSON")

        config = cls.from_dict(d)
        config.resolve_paths(path.parent)
        return config

    def resolve_paths(self, base_dir: Path) -> None:
        """Résout le chemin du fichier à importer par rapport au dossier du fichier config."""
        if self.file and not Path(self.file).is_absolute():
            self.file = str((Path(base_dir) / self.file).resolve())

    def effective_payment_date(self) -> date:
        """Date des paiements sans date propre : payment_date, sinon 1er du mois configuré, sinon aujourd'hui."""
        if self.payment_date is not None:
            return self.payment_date
        if self.month is not None:
            return date(self.year, self.month, 1)
        return date.today()
