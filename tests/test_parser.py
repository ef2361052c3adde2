"""Tests de conversion des lignes du tableur."""

from datetime import date

from reprise.parser import parse_cell_date, parse_sheet
from reprise.schemas import LOCATIONS


def test_parse_cell_date_formats() -> None:
    assert parse_cell_date("2024-03-15") == date(2024, 3, 15)
    assert parse_cell_date("2024-03-15 00:00:00") == date(2024, 3, 15)
    assert parse_cell_date("15/03/2024") == date(2024, 3, 15)
    assert parse_cell_date(45000) == date(2023, 3, 15)


def test_parse_cell_date_invalid() -> None:
    assert parse_cell_date(None) is None
    assert parse_cell_date("") is None
    assert parse_cell_date("pas une date") is None
    assert parse_cell_date("12") is None


def test_rows_without_name_and_site_dropped() -> None:
    rows = [
        ["Client", "Site", "Loyer"],
        ["Jean Kouassi", "Cocody", "50000"],
        ["", "", "10000"],
        [None, None, None],
        ["Awa Bamba", "", "30000"],
        ["", "Yopougon", "25000"],
    ]
    _, parsed = parse_sheet(rows, LOCATIONS)
    assert [r.row_index for r in parsed] == [2, 5, 6]
    assert parsed[1].name == "Awa Bamba"
    assert parsed[1].site == ""
    assert parsed[2].name == ""


def test_row_index_follows_header_row() -> None:
    rows = [["Client", "Site"], ["Jean Kouassi", "Cocody"]]
    _, parsed = parse_sheet(rows, LOCATIONS, header_row=3)
    assert parsed[0].row_index == 4


def test_amounts_and_months_parsed() -> None:
    rows = [
        ["Client", "Site", "Loyer", "Janvier", "Février"],
        ["Jean Kouassi", "Cocody", "50 000 FCFA", "50000", ""],
    ]
    mapping, parsed = parse_sheet(rows, LOCATIONS)
    row = parsed[0]
    assert row.amount("prix_loyer") == 50000
    assert row.monthly == {1: 50000, 2: 0.0}
    assert row.has("prix_loyer")
    assert not row.has("montant_verse")
    assert row.unparsed == []


def test_unreadable_amount_recorded() -> None:
    rows = [["Client", "Site", "Loyer"], ["Jean Kouassi", "Cocody", "voir compta"]]
    _, parsed = parse_sheet(rows, LOCATIONS)
    assert parsed[0].amount("prix_loyer") == 0
    assert parsed[0].unparsed == ["prix_loyer"]


def test_short_rows_tolerated() -> None:
    rows = [["Client", "Site", "Loyer", "Montant versé"], ["Jean Kouassi", "Cocody"]]
    _, parsed = parse_sheet(rows, LOCATIONS)
    assert parsed[0].amount("montant_verse") == 0
