"""Resolución del candidato líder por alcance.

Leader resolution per scope, for map colouring and table highlighting.
"""

from __future__ import annotations

from typing import Dict

from election_tracker.core.models import AggregationScope, LeaderResult, LeaderStatus, ScopeKind, Snapshot

NO_RESULTS = LeaderResult(status=LeaderStatus.NO_RESULTS)


def resolve_leader(scope: AggregationScope) -> LeaderResult:
    """Devuelve el líder de un alcance.

    Un alcance sin votos devuelve ``NO_RESULTS``, distinto de una victoria
    de un único candidato. Los empates se resuelven por el orden ya
    establecido (nombre ascendente).

    English:
        Return the leader of a scope. A scope with zero votes yields
        ``NO_RESULTS``, distinct from a single-candidate landslide. Ties are
        resolved by the scope's existing order (name ascending).
    """
    if not scope.candidates or scope.total_votes == 0:
        return NO_RESULTS
    leader = scope.candidates[0]
    runner_up = scope.candidates[1].votes if len(scope.candidates) > 1 else 0
    return LeaderResult(status=LeaderStatus.LEADING, leader=leader, margin=leader.votes - runner_up)


def resolve_leaders(snapshot: Snapshot, kind: ScopeKind) -> Dict[str, LeaderResult]:
    """Líder por comunidad o precinto. / Leader per community or precinct."""
    return {name: resolve_leader(scope) for name, scope in snapshot.scopes(kind).items()}
