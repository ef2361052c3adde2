"""Déroulé d'un import : lecture, contrôle, simulation puis import réel."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from enum import Enum
from pathlib import Path
from typing import Any

from reprise.backend import Backend
from reprise.columns import ColumnMapping
from reprise.config import ImportConfig, RepriseError
from reprise.executor import ImportExecutor, ImportResult
from reprise.parser import SpreadsheetRow, parse_sheet, read_import_file
from reprise.schemas import RowSchema, get_schema
from reprise.validate import ValidationReport, validate_rows

logger = logging.getLogger(__name__)


class ImportPhase(str, Enum):
    IDLE = "idle"
    PARSING = "parsing"
    VALIDATED = "validated"
    SIMULATING = "simulating"
    SIMULATED_DONE = "simulated_done"
    COMMITTING = "committing"
    COMMIT_DONE = "commit_done"


class ImportStateError(RepriseError):
    """Étape demandée dans le mauvais ordre (ex. import réel sans simulation)."""


class ImportSession:
    """
    Un fichier, un import.

    Enchaînement imposé : load() → simulate() → commit(). Recharger un
    fichier repart de zéro ; un import réel ne peut être lancé qu'une fois,
    juste après une simulation réussie.
    """

    def __init__(
        self,
        config: ImportConfig,
        backend: Backend,
        *,
        schema: RowSchema | None = None,
        progress: Callable[[float], None] | None = None,
    ) -> None:
        self.config = config
        self.schema = schema or get_schema(config.kind)
        self.executor = ImportExecutor(backend, self.schema, config, progress=progress)
        self.phase = ImportPhase.IDLE
        self.mapping: ColumnMapping | None = None
        self.rows: list[SpreadsheetRow] = []
        self.report: ValidationReport | None = None
        self.simulation: ImportResult | None = None
        self.result: ImportResult | None = None

    def load(self, path: str | Path | None = None) -> ValidationReport:
        """Lit le fichier (config.file par défaut) et contrôle les lignes."""
        return self._load(lambda: read_import_file(
            path or self.config.file,
            self.schema,
            sheet_name=self.config.sheet,
            header_row=self.config.header_row,
        ))

    def load_rows(self, rows: Sequence[Sequence[Any]]) -> ValidationReport:
        """Comme load(), à partir de lignes déjà lues (en-tête en premier)."""
        return self._load(lambda: parse_sheet(rows, self.schema, header_row=self.config.header_row))

    def _load(self, reader: Callable[[], tuple[ColumnMapping, list[SpreadsheetRow]]]) -> ValidationReport:
        if self.phase in (ImportPhase.SIMULATING, ImportPhase.COMMITTING):
            raise ImportStateError(f"Import en cours ({self.phase.value})")
        self.phase = ImportPhase.PARSING
        self.simulation = self.result = self.report = None
        try:
            self.mapping, self.rows = reader()
        except Exception:
            self.phase = ImportPhase.IDLE
            raise
        self.report = validate_rows(self.rows, self.schema)
        self.phase = ImportPhase.VALIDATED
        if self.mapping.unmapped:
            logger.info("Colonnes non trouvées: %s", ", ".join(self.mapping.unmapped))
        return self.report

    def simulate(self) -> ImportResult:
        """Prédit les compteurs sans rien écrire."""
        if self.phase not in (ImportPhase.VALIDATED, ImportPhase.SIMULATED_DONE):
            raise ImportStateError(f"Simulation impossible depuis l'état {self.phase.value}")
        if self.report is None:
            raise ImportStateError("Aucun fichier contrôlé : chargez un fichier avant de simuler")
        if not self.report.can_import:
            raise ImportStateError("Champs requis manquants : corrigez le fichier avant de simuler")
        previous = self.phase
        self.phase = ImportPhase.SIMULATING
        try:
            self.simulation = self.executor.run(self.rows, simulate=True)
        except Exception:
            self.phase = previous
            raise
        self.phase = ImportPhase.SIMULATED_DONE
        return self.simulation

    def commit(self) -> ImportResult:
        """Import réel ; uniquement après une simulation."""
        if self.phase is not ImportPhase.SIMULATED_DONE:
            raise ImportStateError(f"Import réel impossible depuis l'état {self.phase.value} (simulez d'abord)")
        self.phase = ImportPhase.COMMITTING
        try:
            self.result = self.executor.run(self.rows, simulate=False)
        except Exception:
            self.phase = ImportPhase.SIMULATED_DONE
            raise
        self.phase = ImportPhase.COMMIT_DONE
        return self.result
