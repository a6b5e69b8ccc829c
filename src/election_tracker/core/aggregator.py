"""
======================== ÍNDICE / INDEX ========================
1. Descripción general / Overview
2. Componentes principales / Main components
3. Notas de mantenimiento / Maintenance notes

======================== ESPAÑOL ========================
Archivo: `src/election_tracker/core/aggregator.py`.
Agrega filas de votos en un Snapshot con tres vistas (contienda,
comunidad, precinto) en una sola pasada.

Componentes detectados:
  - build_scope
  - aggregate_rows

Notas:
- Las filas repetidas de un mismo candidato (subtotales por correo y
  centro de votación) se suman, nunca se sobrescriben.
- Filas sin clave geográfica cuentan solo para la contienda.

======================== ENGLISH ========================
File: `src/election_tracker/core/aggregator.py`.
Folds vote rows into a Snapshot with three views (contest, community,
precinct) in a single pass.

Detected components:
  - build_scope
  - aggregate_rows

Notes:
- Repeated rows for one candidate (mail / vote-center subtotals) are
  summed, never overwritten.
- Rows without a geographic key count toward the contest scope only.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Set, Tuple, Union

import structlog

from election_tracker.core.models import (
    AggregationScope,
    CandidateTotal,
    Diagnostic,
    DiagnosticKind,
    PrecinctKey,
    ScopeKind,
    Snapshot,
    VoteRow,
)
from election_tracker.core.precinct import resolve_precinct_key

logger = structlog.get_logger(__name__)

KeyResolver = Callable[[str], PrecinctKey]
RowInput = Union[VoteRow, Tuple[VoteRow, PrecinctKey]]


class _Tally:
    """Acumulador candidato -> (votos, partidos) de un alcance."""

    def __init__(self) -> None:
        self.votes: Dict[str, int] = defaultdict(int)
        self.parties: Dict[str, Set[str]] = defaultdict(set)

    def add(self, row: VoteRow) -> None:
        self.votes[row.candidate_name] += row.votes
        if row.party:
            self.parties[row.candidate_name].add(row.party)

    def party(self, candidate: str) -> str:
        # Smallest label keeps the result independent of row order.
        parties = self.parties.get(candidate)
        return min(parties) if parties else ""


def build_scope(kind: ScopeKind, name: str, votes: Mapping[str, int], parties: Mapping[str, str]) -> AggregationScope:
    """Calcula porcentajes y ordena candidatos de un alcance.

    English: Compute percentages and order candidates for one scope
    (votes descending, name ascending).
    """
    total = sum(votes.values())
    totals = [
        CandidateTotal(
            candidate_name=candidate,
            party=parties.get(candidate, ""),
            votes=count,
            percentage=(count / total * 100) if total > 0 else 0.0,
        )
        for candidate, count in votes.items()
    ]
    totals.sort(key=lambda item: (-item.votes, item.candidate_name))
    return AggregationScope(kind=kind, name=name, candidates=tuple(totals))


def _freeze(kind: ScopeKind, name: str, tally: _Tally) -> AggregationScope:
    return build_scope(
        kind,
        name,
        tally.votes,
        {candidate: tally.party(candidate) for candidate in tally.votes},
    )


def aggregate_rows(
    rows: Iterable[RowInput],
    *,
    batch_id: int,
    timestamp: Optional[datetime] = None,
    key_resolver: KeyResolver = resolve_precinct_key,
    diagnostics: Iterable[Diagnostic] = (),
) -> Snapshot:
    """Agrega filas en un Snapshot.

    Args:
        rows: Filas de votos, opcionalmente emparejadas con su PrecinctKey.
        batch_id: Identificador del lote.
        timestamp: Momento de publicación del lote.
        key_resolver: Resolución de etiqueta a clave para filas sin anotar.
        diagnostics: Diagnósticos previos (p. ej. del parser) a conservar.

    Returns:
        Snapshot con los tres alcances y los diagnósticos acumulados.

    English:
        Fold rows into a Snapshot. Every row counts toward the contest scope;
        rows with a non-empty key also count toward their community and
        precinct scopes. The result does not depend on input order.
    """
    contest = _Tally()
    communities: Dict[str, _Tally] = defaultdict(_Tally)
    precincts: Dict[str, _Tally] = defaultdict(_Tally)
    contest_names: Set[str] = set()
    gaps: Dict[str, int] = defaultdict(int)

    for item in rows:
        if isinstance(item, VoteRow):
            row, key = item, key_resolver(item.precinct_label)
        else:
            row, key = item

        contest.add(row)
        if row.contest_name:
            contest_names.add(row.contest_name)
        if key.is_empty:
            gaps[row.precinct_label] += 1
            continue
        communities[key.community_name].add(row)
        precincts[key.precinct_number].add(row)

    if len(contest_names) > 1:
        logger.warning("multiple_contests_in_batch", batch_id=batch_id, contests=sorted(contest_names))
    contest_name = min(contest_names) if contest_names else ""

    collected: List[Diagnostic] = list(diagnostics)
    for label in sorted(gaps):
        collected.append(
            Diagnostic(
                DiagnosticKind.ATTRIBUTION_GAP,
                "Precinct label has no community/precinct key; counted contest-wide only",
                {"precinct_label": label, "rows": gaps[label]},
            )
        )
    if gaps:
        logger.info(
            "attribution_gap",
            batch_id=batch_id,
            labels=len(gaps),
            rows=sum(gaps.values()),
        )

    snapshot = Snapshot(
        batch_id=batch_id,
        timestamp=timestamp,
        contest=_freeze(ScopeKind.CONTEST, contest_name, contest),
        communities={
            name: _freeze(ScopeKind.COMMUNITY, name, communities[name]) for name in sorted(communities)
        },
        precincts={name: _freeze(ScopeKind.PRECINCT, name, precincts[name]) for name in sorted(precincts)},
        diagnostics=tuple(collected),
    )
    logger.debug(
        "snapshot_aggregated",
        batch_id=batch_id,
        total_votes=snapshot.contest.total_votes,
        communities=len(snapshot.communities),
        precincts=len(snapshot.precincts),
    )
    return snapshot
