import pandas as pd
import pytest

from election_tracker.core.aggregator import aggregate_rows
from election_tracker.core.models import ScopeKind, VoteRow
from election_tracker.tables import community_frame, results_table

BATCH_ONE = [
    VoteRow("01-100-Uptown", "A", "DEM", "Council", 50),
    VoteRow("01-100-Uptown", "B", "REP", "Council", 30),
    VoteRow("01-200-Midtown", "A", "DEM", "Council", 10),
]
BATCH_TWO = BATCH_ONE + [VoteRow("01-200-Midtown", "A", "DEM", "Council", 10)]


def test_results_table_without_previous_has_na_changes():
    table = results_table(aggregate_rows(BATCH_ONE, batch_id=1))

    assert list(table["candidate"]) == ["A", "B"]
    assert table["vote_delta"].isna().all()
    assert table["percentage_delta"].isna().all()
    assert list(table["leader"]) == [True, False]


def test_results_table_merges_deltas():
    previous = aggregate_rows(BATCH_ONE, batch_id=1)
    current = aggregate_rows(BATCH_TWO, batch_id=2)

    table = results_table(current, previous)

    assert list(table["vote_delta"]) == [10, 0]
    assert table.loc[0, "percentage"] == pytest.approx(70.0)


def test_results_table_for_community_and_missing_scope():
    snapshot = aggregate_rows(BATCH_ONE, batch_id=1)

    table = results_table(snapshot, kind=ScopeKind.COMMUNITY, name="Midtown")

    assert list(table["votes"]) == [10]
    with pytest.raises(KeyError):
        results_table(snapshot, kind=ScopeKind.COMMUNITY, name="Harbor")


def test_community_frame_long_format():
    frame = community_frame(aggregate_rows(BATCH_ONE, batch_id=1))

    uptown = frame[frame["community"] == "Uptown"]
    assert list(uptown["candidate"]) == ["A", "B"]
    assert set(uptown["community_total_votes"]) == {80}
    assert community_frame(aggregate_rows([], batch_id=1)).empty
    assert isinstance(frame, pd.DataFrame)
