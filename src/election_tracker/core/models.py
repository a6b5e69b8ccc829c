"""
======================== ÍNDICE / INDEX ========================
1. Descripción general / Overview
2. Componentes principales / Main components
3. Notas de mantenimiento / Maintenance notes

======================== ESPAÑOL ========================
Archivo: `src/election_tracker/core/models.py`.
Tipos inmutables compartidos por el parser, el agregador, el almacén de
lotes y el cálculo de diferencias.

Componentes detectados:
  - VoteRow
  - PrecinctKey
  - CandidateTotal
  - ScopeKind
  - AggregationScope
  - DiagnosticKind
  - Diagnostic
  - Snapshot
  - DeltaRow
  - DeltaReport
  - LeaderStatus
  - LeaderResult
  - BatchDescriptor
  - CandidateInfo
  - Metadata

Notas:
- Los snapshots nunca se editan; se reemplazan.

======================== ENGLISH ========================
File: `src/election_tracker/core/models.py`.
Immutable types shared by the parser, aggregator, batch store and delta
calculator.

Detected components:
  - (see above)

Notes:
- Snapshots are never edited; they are replaced.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Any, Iterable, Mapping, Optional, Tuple


@dataclass(frozen=True)
class VoteRow:
    """Una fila de conteo de votos de una exportación de resultados.

    Attributes:
        precinct_label (str): Etiqueta compuesta del precinto.
        candidate_name (str): Nombre del candidato.
        party (str): Partido del candidato.
        contest_name (str): Nombre de la contienda.
        votes (int): Votos (>= 0).
        ballot_type (str): Subtotal por tipo de papeleta, si existe.

    English:
        One vote-count row of a results export.
    """

    precinct_label: str
    candidate_name: str
    party: str
    contest_name: str
    votes: int
    ballot_type: str = ""


@dataclass(frozen=True)
class PrecinctKey:
    """Comunidad y número de precinto extraídos de una etiqueta.

    English: Community and precinct number extracted from a label.
    """

    community_name: str = ""
    precinct_number: str = ""

    @property
    def is_empty(self) -> bool:
        """True when the row cannot be attributed geographically."""
        return not (self.community_name and self.precinct_number)


EMPTY_KEY = PrecinctKey()


@dataclass(frozen=True)
class CandidateTotal:
    """Total de un candidato dentro de un alcance de agregación.

    English: A candidate's total within one aggregation scope.
    """

    candidate_name: str
    party: str
    votes: int
    percentage: float


class ScopeKind(str, Enum):
    """Granularidad de agregación. / Aggregation granularity."""

    CONTEST = "contest"
    COMMUNITY = "community"
    PRECINCT = "precinct"


@dataclass(frozen=True)
class AggregationScope:
    """Alcance de agregación con candidatos ordenados por votos.

    Los candidatos se ordenan por votos descendente y nombre ascendente.

    English:
        Aggregation scope holding candidates ordered by votes descending,
        ties broken by name ascending.
    """

    kind: ScopeKind
    name: str
    candidates: Tuple[CandidateTotal, ...] = ()

    @property
    def total_votes(self) -> int:
        return sum(candidate.votes for candidate in self.candidates)

    def candidate(self, name: str) -> Optional[CandidateTotal]:
        """Busca un candidato por nombre exacto. / Look up a candidate by exact name."""
        for candidate in self.candidates:
            if candidate.candidate_name == name:
                return candidate
        return None


class DiagnosticKind(str, Enum):
    """Tipos de diagnóstico no fatales. / Non-fatal diagnostic kinds."""

    MALFORMED_ROW = "malformed_row"
    ATTRIBUTION_GAP = "attribution_gap"
    CANDIDATE_DISAPPEARANCE = "candidate_disappearance"
    BATCH_UNAVAILABLE = "batch_unavailable"


@dataclass(frozen=True)
class Diagnostic:
    """Incidencia no fatal registrada durante la ingesta.

    English: Non-fatal issue recorded during ingestion.
    """

    kind: DiagnosticKind
    message: str
    context: Mapping[str, Any] = field(default_factory=dict, hash=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "context", MappingProxyType(dict(self.context)))


@dataclass(frozen=True)
class Snapshot:
    """Estado agregado completo de un lote.

    Attributes:
        batch_id (int): Identificador del lote.
        timestamp (Optional[datetime]): Momento de publicación del lote.
        contest (AggregationScope): Totales de toda la contienda.
        communities (Mapping[str, AggregationScope]): Totales por comunidad.
        precincts (Mapping[str, AggregationScope]): Totales por precinto.
        diagnostics (Tuple[Diagnostic, ...]): Incidencias por fila.

    English:
        Fully aggregated state of one batch across all scopes.
    """

    batch_id: int
    timestamp: Optional[datetime]
    contest: AggregationScope
    communities: Mapping[str, AggregationScope] = field(default_factory=dict, hash=False)
    precincts: Mapping[str, AggregationScope] = field(default_factory=dict, hash=False)
    diagnostics: Tuple[Diagnostic, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "communities", MappingProxyType(dict(self.communities)))
        object.__setattr__(self, "precincts", MappingProxyType(dict(self.precincts)))
        object.__setattr__(self, "diagnostics", tuple(self.diagnostics))

    def scopes(self, kind: ScopeKind) -> Mapping[str, AggregationScope]:
        """Devuelve todos los alcances de un tipo. / Return every scope of a kind."""
        if kind is ScopeKind.CONTEST:
            return MappingProxyType({self.contest.name: self.contest})
        if kind is ScopeKind.COMMUNITY:
            return self.communities
        return self.precincts

    def scope(self, kind: ScopeKind, name: Optional[str] = None) -> Optional[AggregationScope]:
        """Selecciona un alcance; ``name`` es obligatorio salvo para CONTEST.

        English: Select a scope; ``name`` is required except for CONTEST.
        """
        if kind is ScopeKind.CONTEST:
            return self.contest
        if name is None:
            raise ValueError(f"A scope name is required for {kind.value} scopes")
        return self.scopes(kind).get(name)

    def with_diagnostics(self, extra: Iterable[Diagnostic]) -> "Snapshot":
        return replace(self, diagnostics=self.diagnostics + tuple(extra))


@dataclass(frozen=True)
class DeltaRow:
    """Diferencia firmada de un candidato entre dos snapshots.

    English: Signed difference for one candidate between two snapshots.
    """

    candidate_name: str
    vote_delta: int
    percentage_delta: float


@dataclass(frozen=True)
class DeltaReport:
    """Resultado del cálculo de diferencias.

    ``available`` es False cuando no existe lote anterior; en ese caso
    ``rows`` está vacío y no debe confundirse con un "sin cambios".

    English:
        Delta calculation result. ``available`` is False when no previous
        batch exists; ``rows`` is then empty and must not be read as
        "no change".
    """

    available: bool
    rows: Tuple[DeltaRow, ...] = ()
    warnings: Tuple[Diagnostic, ...] = ()

    @classmethod
    def unavailable(cls) -> "DeltaReport":
        return cls(available=False)

    def for_candidate(self, name: str) -> Optional[DeltaRow]:
        for row in self.rows:
            if row.candidate_name == name:
                return row
        return None


class LeaderStatus(str, Enum):
    """Estado del líder de un alcance. / Leader state of a scope."""

    LEADING = "leading"
    NO_RESULTS = "no_results"


@dataclass(frozen=True)
class LeaderResult:
    """Líder de un alcance o ausencia de resultados.

    English: Leader of a scope, or the absence of results.
    """

    status: LeaderStatus
    leader: Optional[CandidateTotal] = None
    margin: int = 0

    @property
    def has_leader(self) -> bool:
        return self.status is LeaderStatus.LEADING


@dataclass(frozen=True)
class BatchDescriptor:
    """Descriptor de un lote declarado en los metadatos.

    Attributes:
        batch_id (int): Identificador asignado por el publicador.
        timestamp (datetime): Momento de publicación.
        source_file (str): Archivo tabular del lote.
        registered_voters (Optional[int]): Electores inscritos.
        ballots_counted (Optional[int]): Papeletas contadas.
        mail_ballots (Optional[int]): Papeletas por correo.
        vote_center_ballots (Optional[int]): Papeletas en centros de votación.
        estimated_remaining (Optional[int]): Papeletas pendientes estimadas.

    English:
        Batch descriptor declared by the metadata document.
    """

    batch_id: int
    timestamp: datetime
    source_file: str
    registered_voters: Optional[int] = None
    ballots_counted: Optional[int] = None
    mail_ballots: Optional[int] = None
    vote_center_ballots: Optional[int] = None
    estimated_remaining: Optional[int] = None

    @property
    def turnout(self) -> Optional[float]:
        """Participación en porcentaje, si hay datos. / Turnout percentage when known."""
        if not self.registered_voters or self.ballots_counted is None:
            return None
        return self.ballots_counted / self.registered_voters * 100


@dataclass(frozen=True)
class CandidateInfo:
    name: str
    color: str


@dataclass(frozen=True)
class Metadata:
    """Secuencia declarada de lotes y candidatos conocidos.

    El orden de ``updates`` define la secuencia; no se reordena por id.

    English:
        Declared batch sequence and known candidates. The order of
        ``updates`` defines the sequence; it is never re-sorted by id.
    """

    updates: Tuple[BatchDescriptor, ...] = ()
    candidates: Tuple[CandidateInfo, ...] = ()

    @property
    def batch_ids(self) -> Tuple[int, ...]:
        return tuple(update.batch_id for update in self.updates)

    def _index(self, batch_id: int) -> int:
        for index, update in enumerate(self.updates):
            if update.batch_id == batch_id:
                return index
        raise KeyError(f"Unknown batch id: {batch_id}")

    def descriptor(self, batch_id: int) -> BatchDescriptor:
        return self.updates[self._index(batch_id)]

    def previous(self, batch_id: int) -> Optional[BatchDescriptor]:
        """Lote inmediatamente anterior en el orden declarado.

        English: Immediately preceding batch in declared order.
        """
        index = self._index(batch_id)
        if index == 0:
            return None
        return self.updates[index - 1]

    def latest(self) -> Optional[BatchDescriptor]:
        return self.updates[-1] if self.updates else None

