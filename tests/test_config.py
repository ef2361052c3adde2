"""Tests du module config."""

import json
from datetime import date
from pathlib import Path

import pytest

from reprise.config import ConfigError, ConfigFileError, ImportConfig
from reprise.schemas import get_schema


def test_config_defaults() -> None:
    config = ImportConfig.from_dict({})
    assert config.kind == "location"
    assert config.header_row == 1
    assert config.mode_paiement == "espece"
    assert config.backend.cookie_name == "dhimmobilier_session"
    assert config.backend.timeout == 30.0


def test_config_load_resolves_paths(tmp_path: Path) -> None:
    """ImportConfig.load() résout le fichier à importer par rapport au dossier du config."""
    (tmp_path / "data").mkdir()
    config_path = tmp_path / "import.json"
    config_path.write_text(
        json.dumps(
            {
                "kind": "souscription",
                "file": "data/souscriptions.xlsx",
                "backend": {"url": "http://api.local/", "timeout": 10},
            }
        ),
        encoding="utf-8",
    )
    config = ImportConfig.load(config_path)
    assert Path(config.file) == (tmp_path / "data" / "souscriptions.xlsx").resolve()
    assert config.backend.url == "http://api.local"
    assert config.backend.timeout == 10.0


@pytest.mark.parametrize(
    ("data", "match"),
    [
        ({"kind": "vente"}, "kind invalide"),
        ({"operation_type": "caution"}, "operation_type invalide"),
        ({"header_row": 0}, "header_row"),
        ({"month": 13}, "month"),
        ({"payment_date": "31/01/2024"}, "payment_date"),
        ({"backend": "http://api"}, "backend"),
        ({"backend": {"timeout": 0}}, "timeout"),
    ],
)
def test_config_validation_errors(data: dict, match: str) -> None:
    with pytest.raises(ConfigError, match=match):
        ImportConfig.from_dict(data)


def test_config_error_is_value_error() -> None:
    with pytest.raises(ValueError):
        ImportConfig.from_dict({"kind": "vente"})


def test_config_load_file_not_found(tmp_path: Path) -> None:
    with pytest.raises(ConfigFileError, match="introuvable"):
        ImportConfig.load(tmp_path / "inexistant.json")


def test_config_load_invalid_json(tmp_path: Path) -> None:
    bad_json = tmp_path / "config.json"
    bad_json.write_text("{ invalid json }", encoding="utf-8")
    with pytest.raises(ConfigFileError, match="JSON invalide"):
        ImportConfig.load(bad_json)


def test_config_load_not_dict(tmp_path: Path) -> None:
    bad_config = tmp_path / "config.json"
    bad_config.write_text("[1, 2, 3]", encoding="utf-8")
    with pytest.raises(ConfigFileError, match="objet JSON"):
        ImportConfig.load(bad_config)


def test_effective_payment_date() -> None:
    assert ImportConfig(payment_date=date(2023, 6, 30)).effective_payment_date() == date(2023, 6, 30)
    assert ImportConfig(year=2022, month=4).effective_payment_date() == date(2022, 4, 1)
    assert ImportConfig().effective_payment_date() == date.today()


def test_get_schema_unknown() -> None:
    assert get_schema("recouvrement").site_field == "secteur"
    with pytest.raises(ConfigError, match="inconnu"):
        get_schema("vente")
