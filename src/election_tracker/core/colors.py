"""Paleta de colores por candidato declarada en los metadatos.

Candidate colour palette keyed by normalised candidate identity, so that
``"JOHN MC CANN"`` and ``"John McCann "`` resolve to the same entry.
"""

from __future__ import annotations

import re
import unicodedata
from dataclasses import dataclass, field
from typing import Dict, Iterable, Mapping, Optional

from election_tracker.core.models import CandidateInfo, LeaderResult, Metadata

NO_LEADER_COLOR = "#CCCCCC"
OTHER_PARTY_COLOR = "#800080"

PARTY_COLORS: Mapping[str, str] = {
    "democratic": "#0000ff",
    "dem": "#0000ff",
    "republican": "#ff0000",
    "rep": "#ff0000",
    "independent": "#808080",
    "ind": "#808080",
    "green": "#00ff00",
    "grn": "#00ff00",
    "libertarian": "#ffff00",
    "lib": "#ffff00",
}

_NON_WORD = re.compile(r"[^\w]+")


def candidate_identity(name: str) -> str:
    """Normaliza un nombre para búsquedas tolerantes.

    English: Normalise a name for tolerant lookups (accents, case,
    punctuation and whitespace are ignored).
    """
    decomposed = unicodedata.normalize("NFKD", name)
    stripped = "".join(char for char in decomposed if not unicodedata.combining(char))
    return _NON_WORD.sub("", stripped.casefold())


@dataclass(frozen=True)
class CandidatePalette:
    colors: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def from_candidates(cls, candidates: Iterable[CandidateInfo]) -> "CandidatePalette":
        colors: Dict[str, str] = {}
        for info in candidates:
            colors.setdefault(candidate_identity(info.name), info.color)
        return cls(colors=colors)

    @classmethod
    def from_metadata(cls, metadata: Metadata) -> "CandidatePalette":
        return cls.from_candidates(metadata.candidates)

    def color_for(self, name: str, party: Optional[str] = None) -> str:
        """Color del candidato, luego del partido, luego el neutro.

        English: Candidate colour, then party colour, then the neutral one.
        """
        color = self.colors.get(candidate_identity(name))
        if color:
            return color
        if party:
            return PARTY_COLORS.get(party.strip().casefold(), OTHER_PARTY_COLOR)
        return NO_LEADER_COLOR

    def fill_color(self, result: LeaderResult) -> str:
        if not result.has_leader or result.leader is None:
            return NO_LEADER_COLOR
        return self.color_for(result.leader.candidate_name, result.leader.party)
