"""Tests de normalisation des noms et des montants."""

import math

from reprise.normalize import (
    cell_text,
    is_blank,
    normalize_name,
    parse_amount,
    split_full_name,
    try_parse_amount,
)


def test_normalize_name_accents_spaces() -> None:
    assert normalize_name("Ééé  Test") == "eee test"
    assert normalize_name("  KOUASSI   Jean ") == "kouassi jean"


def test_normalize_name_invisible_chars() -> None:
    # Espace insécable et caractère de largeur nulle issus d'exports Excel
    assert normalize_name("Jean\u00a0Kouassi\u200b") == "jean kouassi"


def test_normalize_name_none_nan() -> None:
    assert normalize_name(None) == ""
    assert normalize_name(float("nan")) == ""


def test_is_blank() -> None:
    assert is_blank(None)
    assert is_blank(float("nan"))
    assert is_blank("   ")
    assert not is_blank("0")
    assert not is_blank(0)


def test_cell_text_integer_float() -> None:
    assert cell_text(3.0) == "3"
    assert cell_text(2.5) == "2.5"
    assert cell_text(None) == ""


def test_parse_amount_currency_text() -> None:
    assert parse_amount("12 500 FCFA") == 12500
    assert parse_amount("12 500 F") == 12500


def test_parse_amount_decimal_comma() -> None:
    assert parse_amount("1,5") == 1.5


def test_parse_amount_mixed_separators() -> None:
    assert parse_amount("1.234,56") == 1234.56
    assert parse_amount("1,234.56") == 1234.56


def test_parse_amount_thousands_separators() -> None:
    assert parse_amount("1.000.000") == 1000000
    assert parse_amount("1,000,000") == 1000000


def test_parse_amount_empty_and_garbage() -> None:
    assert parse_amount("") == 0
    assert parse_amount("abc") == 0
    assert parse_amount(None) == 0


def test_parse_amount_numeric_cell() -> None:
    assert parse_amount(50000) == 50000.0
    assert parse_amount(float("nan")) == 0


def test_try_parse_amount_sentinel() -> None:
    """Une cellule non vide sans montant lisible donne None, pas 0."""
    assert try_parse_amount("abc") is None
    assert try_parse_amount("-") is None
    assert try_parse_amount(True) is None
    assert try_parse_amount("") == 0.0
    assert try_parse_amount("-2 000") == -2000


def test_try_parse_amount_never_nan() -> None:
    for cell in ["nan", "inf", "1e400", "..", ",,"]:
        value = try_parse_amount(cell)
        assert value is None or math.isfinite(value)


def test_split_full_name_default_last_word_is_nom() -> None:
    assert split_full_name("Jean Paul Kouassi") == ("Kouassi", "Jean Paul")
    assert split_full_name("Kouassi") == ("Kouassi", "")
    assert split_full_name("  ") == ("", "")


def test_split_full_name_nom_first() -> None:
    assert split_full_name("KOUASSI Jean Paul", nom_first=True) == ("KOUASSI", "Jean Paul")


def test_split_full_name_prenom_first() -> None:
    assert split_full_name("Jean Paul Kouassi", prenom_first=True) == ("Paul Kouassi", "Jean")
    assert split_full_name("Kouassi", prenom_first=True) == ("Kouassi", "")
