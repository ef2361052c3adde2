"""Tests du rapprochement clients / propriétés."""

from reprise.matching import EntityResolver
from reprise.matching.matchers import (
    client_display_name,
    edit_distance,
    find_best_client,
    find_property,
    rank_clients,
)

CLIENTS = [
    {"id": "c1", "nom": "Kouassi", "prenom": "Jean"},
    {"id": "c2", "nom": "Bamba", "prenom": "Awa"},
]


def test_edit_distance() -> None:
    assert edit_distance("kitten", "sitting") == 3
    assert edit_distance("abc", "abc") == 0


def test_edit_distance_cutoff() -> None:
    # Au-delà du seuil, la distance vaut seuil + 1
    assert edit_distance("abcdef", "uvwxyz", max_distance=2) == 3
    assert edit_distance("kouassi", "kouasi", max_distance=2) == 1


def test_client_display_name() -> None:
    assert client_display_name({"nom": "Kouassi", "prenom": "Jean"}) == "Jean Kouassi"
    assert client_display_name({"nom": "Kouassi", "prenom": None}) == "Kouassi"


def test_exact_match_normalized() -> None:
    match = find_best_client("  JEAN  KOUASSI ", CLIENTS)
    assert match is not None
    assert match.record_id == "c1"
    assert match.distance == 0


def test_threshold_boundary() -> None:
    """Distance 3 : rapproché ; distance 4 : nouveau client."""
    at_three = find_best_client("Jean Kouaxyz", CLIENTS)
    assert at_three is not None
    assert at_three.distance == 3
    assert find_best_client("Jean Kouwxyz", CLIENTS) is None


def test_empty_name_never_matches() -> None:
    assert find_best_client("", CLIENTS) is None
    assert rank_clients("   ", CLIENTS) == []


def test_match_is_idempotent() -> None:
    first = find_best_client("Jean Kouasi", CLIENTS)
    second = find_best_client("Jean Kouasi", CLIENTS)
    assert first is not None and second is not None
    assert first.record_id == second.record_id == "c1"


def test_tie_break_by_name_then_id() -> None:
    clients = [
        {"id": "z", "nom": "Kouasso", "prenom": "Jean"},
        {"id": "b", "nom": "Kouassi", "prenom": "Jean"},
        {"id": "a", "nom": "Kouassi", "prenom": "Jean"},
    ]
    ranked = rank_clients("Jean Kouassa", clients)
    assert [c.record_id for c in ranked] == ["a", "b", "z"]
    # L'ordre de la base ne change pas le résultat
    assert find_best_client("Jean Kouassa", list(reversed(clients))).record_id == "a"


def test_find_property_containment_both_ways() -> None:
    props = [{"id": "p1", "nom": "Cocody"}]
    assert find_property("Cocody Angré", props).record_id == "p1"
    assert find_property("cocody", [{"id": "p2", "nom": "Résidence Cocody"}]).record_id == "p2"
    assert find_property("Yopougon", props) is None


def test_find_property_exact_wins() -> None:
    props = [
        {"id": "p1", "nom": "Cocody Angré 7e tranche"},
        {"id": "p2", "nom": "Cocody Angré"},
    ]
    assert find_property("cocody angre", props).record_id == "p2"


def test_find_property_ignores_empty_names() -> None:
    props = [{"id": "p0", "nom": ""}, {"id": "p1", "nom": None}]
    assert find_property("Cocody", props) is None
    assert find_property("", [{"id": "p1", "nom": "Cocody"}]) is None


def test_resolver_reads_its_own_writes() -> None:
    resolver = EntityResolver([], [])
    assert resolver.match_client("Awa Bamba") is None
    client = {"id": "n1", "nom": "Bamba", "prenom": "Awa"}
    resolver.add_client(client)
    assert resolver.match_client("Awa Bamba").record is client

    resolver.forget("client", client)
    assert resolver.match_client("Awa Bamba") is None


def test_resolver_contracts_by_pair() -> None:
    resolver = EntityResolver(
        [], [], {"locations": [{"id": "l1", "client_id": "c1", "propriete_id": "p1"}]}
    )
    assert resolver.find_contract("locations", "c1", "p1")["id"] == "l1"
    assert resolver.find_contract("souscriptions", "c1", "p1") is None
    assert resolver.find_contract("locations", "c1", "p2") is None
