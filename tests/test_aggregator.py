"""Pruebas del agregador en sus tres alcances.

Tests for the aggregator across its three scopes.
"""

import random
from datetime import datetime, timezone

import pytest

from election_tracker.core.aggregator import aggregate_rows
from election_tracker.core.models import Diagnostic, DiagnosticKind, PrecinctKey, ScopeKind, VoteRow

TS = datetime(2025, 4, 8, 20, 0, tzinfo=timezone.utc)


def _row(label, candidate, votes, party="", contest="Council District 1"):
    return VoteRow(label, candidate, party, contest, votes)


SCENARIO = [
    _row("01-100-Uptown", "A", 50),
    _row("01-100-Uptown", "B", 30),
    _row("01-200-Midtown", "A", 10),
]


def _as_table(scope):
    return [(c.candidate_name, c.votes, round(c.percentage, 2)) for c in scope.candidates]


def test_scenario_contest_and_community_scopes():
    """Español: Función test_scenario_contest_and_community_scopes del módulo tests/test_aggregator.py.

    English: Function test_scenario_contest_and_community_scopes defined in tests/test_aggregator.py.
    """
    snapshot = aggregate_rows(SCENARIO, batch_id=1, timestamp=TS)

    assert snapshot.batch_id == 1
    assert snapshot.timestamp == TS
    assert snapshot.contest.kind is ScopeKind.CONTEST
    assert snapshot.contest.name == "Council District 1"
    # Percentages are share of the scope total: 60 / 90 and 30 / 90.
    assert _as_table(snapshot.contest) == [("A", 60, 66.67), ("B", 30, 33.33)]
    assert _as_table(snapshot.communities["Uptown"]) == [("A", 50, 62.5), ("B", 30, 37.5)]
    assert _as_table(snapshot.communities["Midtown"]) == [("A", 10, 100.0)]
    assert set(snapshot.precincts) == {"100", "200"}
    assert snapshot.precincts["100"].kind is ScopeKind.PRECINCT


def test_repeated_candidate_rows_are_summed():
    """Español: Función test_repeated_candidate_rows_are_summed del módulo tests/test_aggregator.py.

    English: Function test_repeated_candidate_rows_are_summed defined in tests/test_aggregator.py.
    """
    rows = [
        VoteRow("01-100-Uptown", "A", "DEM", "Council", 30, ballot_type="Mail"),
        VoteRow("01-100-Uptown", "A", "DEM", "Council", 20, ballot_type="Vote Center"),
        VoteRow("01-100-Uptown", "B", "REP", "Council", 30, ballot_type="Mail"),
    ]

    snapshot = aggregate_rows(rows, batch_id=1)

    assert snapshot.communities["Uptown"].candidate("A").votes == 50
    assert snapshot.precincts["100"].candidate("A").votes == 50
    assert snapshot.contest.candidate("A").votes == 50
    assert snapshot.contest.candidate("A").party == "DEM"


def test_sum_and_percentage_invariants_hold_for_every_scope():
    rng = random.Random(7)
    communities = ["Uptown", "Midtown", "Harbor"]
    rows = [
        _row(f"01-{rng.randint(100, 110)}-{rng.choice(communities)}", rng.choice("ABCDE"), rng.randint(0, 500))
        for _ in range(300)
    ]
    rows.append(_row("01-999-Empty", "A", 0))

    snapshot = aggregate_rows(rows, batch_id=3)

    scopes = [snapshot.contest, *snapshot.communities.values(), *snapshot.precincts.values()]
    for scope in scopes:
        total = scope.total_votes
        assert sum(c.votes for c in scope.candidates) == total
        if total > 0:
            assert 99.99 <= sum(c.percentage for c in scope.candidates) <= 100.01
        else:
            assert all(c.percentage == 0 for c in scope.candidates)
    assert snapshot.contest.total_votes == sum(row.votes for row in rows)


def test_zero_vote_scope_has_zero_percentages():
    snapshot = aggregate_rows([_row("01-300-Harbor", "A", 0), _row("01-300-Harbor", "B", 0)], batch_id=1)

    harbor = snapshot.communities["Harbor"]
    assert harbor.total_votes == 0
    assert [c.percentage for c in harbor.candidates] == [0.0, 0.0]


def test_ordering_is_votes_desc_then_name_asc():
    rows = [_row("01-100-Uptown", name, votes) for name, votes in [("C", 10), ("B", 20), ("A", 10), ("D", 20)]]

    snapshot = aggregate_rows(rows, batch_id=1)

    assert [c.candidate_name for c in snapshot.contest.candidates] == ["B", "D", "A", "C"]


def test_aggregation_is_idempotent_and_order_independent():
    rows = SCENARIO + [_row("Provisional", "B", 4), _row("01-100-Uptown", "C", 7, party="IND")]
    shuffled = list(rows)
    random.Random(11).shuffle(shuffled)

    first = aggregate_rows(rows, batch_id=2, timestamp=TS)
    again = aggregate_rows(rows, batch_id=2, timestamp=TS)
    reordered = aggregate_rows(shuffled, batch_id=2, timestamp=TS)

    assert first == again
    assert first == reordered


def test_unattributable_rows_count_contest_wide_only():
    """Español: Función test_unattributable_rows_count_contest_wide_only del módulo tests/test_aggregator.py.

    English: Function test_unattributable_rows_count_contest_wide_only defined in tests/test_aggregator.py.
    """
    rows = SCENARIO + [_row("Mail-Provisional", "B", 40), _row("Mail-Provisional", "B", 2)]

    snapshot = aggregate_rows(rows, batch_id=1)

    assert snapshot.contest.candidate("B").votes == 72
    assert sum(scope.total_votes for scope in snapshot.communities.values()) == 90
    assert sum(scope.total_votes for scope in snapshot.precincts.values()) == 90
    assert "Provisional" not in snapshot.communities
    gaps = [d for d in snapshot.diagnostics if d.kind is DiagnosticKind.ATTRIBUTION_GAP]
    assert len(gaps) == 1
    assert gaps[0].context == {"precinct_label": "Mail-Provisional", "rows": 2}


def test_pre_annotated_rows_use_supplied_key():
    row = _row("whatever", "A", 5)

    snapshot = aggregate_rows([(row, PrecinctKey("Harbor", "42"))], batch_id=1)

    assert snapshot.communities["Harbor"].candidate("A").votes == 5
    assert snapshot.precincts["42"].candidate("A").votes == 5


def test_parser_diagnostics_are_preserved():
    prior = Diagnostic(DiagnosticKind.MALFORMED_ROW, "bad row", {"line": 4})

    snapshot = aggregate_rows(SCENARIO, batch_id=1, diagnostics=[prior])

    assert snapshot.diagnostics[0] == prior


def test_snapshot_mappings_are_read_only():
    snapshot = aggregate_rows(SCENARIO, batch_id=1)

    with pytest.raises(TypeError):
        snapshot.communities["Harbor"] = snapshot.contest


def test_snapshot_is_hashable_and_diagnostics_are_read_only():
    rows = SCENARIO + [_row("Provisional", "B", 4)]
    snapshot = aggregate_rows(rows, batch_id=1, timestamp=TS)

    assert hash(snapshot) == hash(aggregate_rows(list(reversed(rows)), batch_id=1, timestamp=TS))
    assert snapshot in {snapshot}
    gap = snapshot.diagnostics[0]
    with pytest.raises(TypeError):
        gap.context["rows"] = 99
    assert gap.context["rows"] == 1


def test_scope_selector():
    snapshot = aggregate_rows(SCENARIO, batch_id=1)

    assert snapshot.scope(ScopeKind.CONTEST) is snapshot.contest
    assert snapshot.scope(ScopeKind.COMMUNITY, "Midtown") is snapshot.communities["Midtown"]
    assert snapshot.scope(ScopeKind.PRECINCT, "999") is None
    with pytest.raises(ValueError):
        snapshot.scope(ScopeKind.COMMUNITY)
