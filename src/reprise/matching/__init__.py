"""Module de rapprochement des lignes importées avec les fiches existantes."""

from reprise.matching.resolver import EntityResolver
from reprise.matching.schema import MatchCandidate

__all__ = ["EntityResolver", "MatchCandidate"]
