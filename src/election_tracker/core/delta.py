"""
======================== ÍNDICE / INDEX ========================
1. Descripción general / Overview
2. Componentes principales / Main components
3. Notas de mantenimiento / Maintenance notes

======================== ESPAÑOL ========================
Archivo: `src/election_tracker/core/delta.py`.
Compara dos snapshots (actual y anterior) y produce diferencias por
candidato en votos y porcentaje.

Componentes detectados:
  - compute_deltas
  - compute_all_deltas

Notas:
- Sin lote anterior no hay comparación: se devuelve un reporte no
  disponible, nunca ceros fabricados.
- Un candidato que desaparece entre lotes se reporta como advertencia y
  no forma parte de la secuencia de diferencias.

======================== ENGLISH ========================
File: `src/election_tracker/core/delta.py`.
Compares two snapshots (current and previous) and produces per-candidate
vote and percentage deltas.

Detected components:
  - compute_deltas
  - compute_all_deltas

Notes:
- Without a previous batch there is no comparison: an unavailable report
  is returned, never fabricated zeros.
- A candidate that disappears between batches is reported as a warning and
  left out of the delta sequence.
"""

from __future__ import annotations

from typing import Dict, List, Optional

import structlog

from election_tracker.core.models import (
    AggregationScope,
    DeltaReport,
    DeltaRow,
    Diagnostic,
    DiagnosticKind,
    ScopeKind,
    Snapshot,
)

logger = structlog.get_logger(__name__)


def _scope_or_empty(snapshot: Snapshot, kind: ScopeKind, name: Optional[str]) -> AggregationScope:
    scope = snapshot.scope(kind, name)
    if scope is None:
        return AggregationScope(kind=kind, name=name or "")
    return scope


def compute_deltas(
    current: Snapshot,
    previous: Optional[Snapshot],
    kind: ScopeKind = ScopeKind.CONTEST,
    name: Optional[str] = None,
) -> DeltaReport:
    """Calcula diferencias por candidato para un alcance.

    Args:
        current: Snapshot actual.
        previous: Snapshot anterior, o None si no existe.
        kind: Tipo de alcance a comparar.
        name: Nombre de comunidad o precinto (no se usa para CONTEST).

    Returns:
        DeltaReport en el orden de candidatos de ``current``.

    English:
        Compute per-candidate deltas for one scope. Candidates missing from
        the previous snapshot (or a scope missing from it) compare against 0.
    """
    if previous is None:
        return DeltaReport.unavailable()

    current_scope = _scope_or_empty(current, kind, name)
    previous_scope = _scope_or_empty(previous, kind, name)

    rows: List[DeltaRow] = []
    for candidate in current_scope.candidates:
        before = previous_scope.candidate(candidate.candidate_name)
        rows.append(
            DeltaRow(
                candidate_name=candidate.candidate_name,
                vote_delta=candidate.votes - (before.votes if before else 0),
                percentage_delta=candidate.percentage - (before.percentage if before else 0.0),
            )
        )

    warnings: List[Diagnostic] = []
    for candidate in previous_scope.candidates:
        if current_scope.candidate(candidate.candidate_name) is None:
            warnings.append(
                Diagnostic(
                    DiagnosticKind.CANDIDATE_DISAPPEARANCE,
                    "Candidate present in previous batch is missing from current batch",
                    {
                        "candidate": candidate.candidate_name,
                        "scope": kind.value,
                        "scope_name": current_scope.name,
                        "current_batch_id": current.batch_id,
                        "previous_batch_id": previous.batch_id,
                        "previous_votes": candidate.votes,
                    },
                )
            )
            logger.warning(
                "candidate_disappeared",
                candidate=candidate.candidate_name,
                scope=kind.value,
                scope_name=current_scope.name,
                current_batch_id=current.batch_id,
                previous_batch_id=previous.batch_id,
            )

    return DeltaReport(available=True, rows=tuple(rows), warnings=tuple(warnings))


def compute_all_deltas(
    current: Snapshot,
    previous: Optional[Snapshot],
    kind: ScopeKind,
) -> Dict[str, DeltaReport]:
    """Diferencias para cada alcance de un tipo presente en ``current``.

    English: Deltas for every scope of ``kind`` present in ``current``.
    """
    return {name: compute_deltas(current, previous, kind, name) for name in current.scopes(kind)}
