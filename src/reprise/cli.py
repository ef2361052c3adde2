"""Interface en ligne de commande Reprise."""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Callable

from reprise import __version__
from reprise.backend import ApiBackend, Backend, InMemoryBackend
from reprise.clients_import import NEW, import_clients, read_client_names, verify_clients
from reprise.config import ImportConfig, RepriseError
from reprise.io_excel import list_sheets, save_xlsx
from reprise.logging_config import setup_logging
from reprise.report import build_report_df, print_report_console, print_validation_console, rows_to_df
from reprise.session import ImportSession

logger = logging.getLogger(__name__)


def _make_backend(config: ImportConfig) -> Backend:
    return ApiBackend(config.backend)


def _confirm(question: str) -> bool:
    answer = input(f"{question} [o/N] ").strip().lower()
    return answer in ("o", "oui", "y", "yes")


def cmd_list_sheets(filepath: str) -> int:
    """Liste les feuilles d'un classeur."""
    sheets = list_sheets(filepath)
    print(f"Feuilles dans {filepath}:")
    for s in sheets:
        print(f"  - {s}")
    return 0


def cmd_check(config_path: str) -> int:
    """
    Lit et contrôle le fichier sans contacter l'API.

    Returns:
        0 si le fichier est valide, 2 s'il contient des incohérences ou des
        champs requis manquants.
    """
    config = ImportConfig.load(config_path)
    session = ImportSession(config, InMemoryBackend())
    report = session.load()
    print_validation_console(report)
    return 0 if report.is_valid else 2


def cmd_run(
    config_path: str,
    *,
    commit: bool = False,
    yes: bool = False,
    report_path: str | None = None,
    backend: Backend | None = None,
    confirm: Callable[[str], bool] = _confirm,
) -> int:
    """Simule l'import puis, avec commit, l'exécute réellement après confirmation."""
    config = ImportConfig.load(config_path)
    session = ImportSession(config, backend or _make_backend(config))

    validation = session.load()
    print_validation_console(validation)
    if not validation.can_import:
        print("Champs requis manquants : import impossible.")
        return 2

    simulation = session.simulate()
    print_report_console(simulation)
    result = simulation

    if commit:
        if not yes and not confirm(f"Importer {validation.total_rows} lignes dans la base ?"):
            print("Import annulé.")
            return 0
        result = session.commit()
        print_report_console(result)

    if report_path:
        sheets = {
            "REPORT": build_report_df(result, validation),
            "Lignes": rows_to_df(session.rows),
        }
        save_xlsx(report_path, sheets)
        print(f"Rapport écrit: {report_path}")

    return 1 if commit and result.errors else 0


def cmd_clients(
    filepath: str,
    config_path: str,
    *,
    yes: bool = False,
    include_duplicates: bool = False,
    backend: Backend | None = None,
    confirm: Callable[[str], bool] = _confirm,
) -> int:
    """Importe une liste de clients (noms en première colonne)."""
    config = ImportConfig.load(config_path)
    backend = backend or _make_backend(config)

    names = read_client_names(filepath, config.sheet)
    checks = verify_clients(names, backend.select("clients"))
    for check in checks:
        if include_duplicates:
            check.selected = True
        if check.status != NEW:
            print(f"  [{check.status}] {check.original} - {check.reason}")

    selected = sum(1 for c in checks if c.selected)
    print(f"{len(checks)} noms lus, {selected} à créer")
    if not selected:
        return 0
    if not yes and not confirm(f"Créer {selected} clients ?"):
        print("Import annulé.")
        return 0

    result = import_clients(checks, backend, import_tag=config.import_tag)
    print(f"Clients créés: {result.success}, doublons ignorés: {result.duplicates}, erreurs: {len(result.errors)}")
    for msg in result.errors:
        print(f"  - {msg}")
    return 1 if result.errors else 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="reprise",
        description="Reprise de données historiques depuis des tableurs Excel",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--verbose", "-v", action="store_true", help="Logs détaillés")

    subparsers = parser.add_subparsers(dest="command", help="Commandes")

    # list-sheets
    p_list = subparsers.add_parser("list-sheets", help="Lister les feuilles d'un classeur")
    p_list.add_argument("file", help="Fichier xlsx/xls/ods/csv")

    # check
    p_check = subparsers.add_parser("check", help="Contrôler un fichier sans l'importer")
    p_check.add_argument("--config", "-c", required=True, help="Fichier config JSON")

    # run
    p_run = subparsers.add_parser("run", help="Simuler puis importer")
    p_run.add_argument("--config", "-c", required=True, help="Fichier config JSON")
    p_run.add_argument("--commit", action="store_true", help="Importer réellement après la simulation")
    p_run.add_argument("--yes", "-y", action="store_true", help="Ne pas demander de confirmation")
    p_run.add_argument("--report", "-r", help="Fichier xlsx du rapport")

    # clients
    p_clients = subparsers.add_parser("clients", help="Importer une liste de clients")
    p_clients.add_argument("file", help="Fichier de noms (première colonne)")
    p_clients.add_argument("--config", "-c", required=True, help="Fichier config JSON")
    p_clients.add_argument("--yes", "-y", action="store_true", help="Ne pas demander de confirmation")
    p_clients.add_argument("--include-duplicates", action="store_true", help="Créer aussi les doublons détectés")

    args = parser.parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else logging.WARNING)

    try:
        if args.command == "list-sheets":
            return cmd_list_sheets(args.file)
        if args.command == "check":
            return cmd_check(args.config)
        if args.command == "run":
            return cmd_run(args.config, commit=args.commit, yes=args.yes, report_path=args.report)
        if args.command == "clients":
            return cmd_clients(args.file, args.config, yes=args.yes, include_duplicates=args.include_duplicates)
    except RepriseError as e:
        logger.debug("Commande %s interrompue", args.command, exc_info=True)
        print(f"Erreur: {e}")
        return 1

    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
