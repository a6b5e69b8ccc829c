"""Vistas tabulares (pandas) de snapshots y diferencias.

Tabular (pandas) views of snapshots and deltas for the presentation layer.
"""

from __future__ import annotations

from typing import Optional

import pandas as pd

from election_tracker.core.delta import compute_deltas
from election_tracker.core.leader import resolve_leader
from election_tracker.core.models import AggregationScope, DeltaReport, ScopeKind, Snapshot

SCOPE_COLUMNS = ["candidate", "party", "votes", "percentage"]
DELTA_COLUMNS = ["candidate", "vote_delta", "percentage_delta"]


def scope_frame(scope: AggregationScope) -> pd.DataFrame:
    """Candidatos de un alcance en su orden. / A scope's candidates in order."""
    rows = [
        {
            "candidate": candidate.candidate_name,
            "party": candidate.party,
            "votes": candidate.votes,
            "percentage": candidate.percentage,
        }
        for candidate in scope.candidates
    ]
    return pd.DataFrame(rows, columns=SCOPE_COLUMNS)


def delta_frame(report: DeltaReport) -> pd.DataFrame:
    rows = [
        {
            "candidate": row.candidate_name,
            "vote_delta": row.vote_delta,
            "percentage_delta": row.percentage_delta,
        }
        for row in report.rows
    ]
    return pd.DataFrame(rows, columns=DELTA_COLUMNS)


def results_table(
    current: Snapshot,
    previous: Optional[Snapshot] = None,
    kind: ScopeKind = ScopeKind.CONTEST,
    name: Optional[str] = None,
) -> pd.DataFrame:
    """Tabla de resultados con columnas de cambio y marca de líder.

    Sin lote anterior las columnas de cambio quedan vacías (NA), no en cero.

    English:
        Results table with change columns and a leader flag. Without a
        previous batch the change columns are NA, not zero.
    """
    scope = current.scope(kind, name)
    if scope is None:
        raise KeyError(f"No {kind.value} scope named {name!r} in batch {current.batch_id}")

    table = scope_frame(scope)
    report = compute_deltas(current, previous, kind, name)
    if report.available:
        table = table.merge(delta_frame(report), on="candidate", how="left")
    else:
        table["vote_delta"] = pd.Series([pd.NA] * len(table), dtype="Int64")
        table["percentage_delta"] = pd.Series([pd.NA] * len(table), dtype="Float64")

    leader = resolve_leader(scope)
    table["leader"] = table["candidate"].eq(leader.leader.candidate_name) if leader.leader else False
    return table


def community_frame(snapshot: Snapshot) -> pd.DataFrame:
    """Formato largo: una fila por comunidad y candidato.

    English: Long format, one row per community and candidate.
    """
    frames = []
    for community, scope in snapshot.communities.items():
        frame = scope_frame(scope)
        frame.insert(0, "community", community)
        frame["community_total_votes"] = scope.total_votes
        frames.append(frame)
    if not frames:
        return pd.DataFrame(columns=["community", *SCOPE_COLUMNS, "community_total_votes"])
    return pd.concat(frames, ignore_index=True)
