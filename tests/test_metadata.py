"""Pruebas de validación del documento de metadatos.

Tests for metadata document validation.
"""

import json

import pytest

from election_tracker.metadata import MetadataError, load_metadata

DOCUMENT = {
    "updates": [
        {
            "batchId": 3,
            "timestamp": "2025-04-08T20:00:00-07:00",
            "filename": "results-3.csv",
            "registeredVoters": 1000,
            "ballotsCountedTotal": 250,
            "mailBallots": 200,
            "voteCenterBallots": 50,
            "estimatedBallotsRemaining": 400,
        },
        {"batchId": 1, "timestamp": "2025-04-08T21:00:00-07:00", "filename": " results-1.csv "},
    ],
    "candidates": [{"name": "John McCann ", "color": "#ff0000"}],
}


def test_load_metadata_keeps_declared_order():
    """Español: Función test_load_metadata_keeps_declared_order del módulo tests/test_metadata.py.

    English: Function test_load_metadata_keeps_declared_order defined in tests/test_metadata.py.
    """
    metadata = load_metadata(DOCUMENT)

    assert metadata.batch_ids == (3, 1)
    assert metadata.latest().batch_id == 1
    assert metadata.previous(1).batch_id == 3
    assert metadata.previous(3) is None
    assert metadata.descriptor(1).source_file == "results-1.csv"
    assert metadata.candidates[0].name == "John McCann"


def test_descriptor_totals_and_turnout():
    descriptor = load_metadata(DOCUMENT).descriptor(3)

    assert descriptor.mail_ballots == 200
    assert descriptor.vote_center_ballots == 50
    assert descriptor.estimated_remaining == 400
    assert descriptor.turnout == pytest.approx(25.0)
    assert load_metadata(DOCUMENT).descriptor(1).turnout is None


def test_load_metadata_accepts_bytes_and_str():
    raw = json.dumps(DOCUMENT)

    assert load_metadata(raw) == load_metadata(raw.encode("utf-8"))


def test_legacy_keys_are_migrated():
    legacy = {"updates": [{"batchNumber": 7, "timestamp": "2025-04-08T20:00:00Z", "sourceFile": "r7.csv"}]}

    metadata = load_metadata(legacy)

    assert metadata.descriptor(7).source_file == "r7.csv"


def test_unknown_batch_id_raises_key_error():
    with pytest.raises(KeyError):
        load_metadata(DOCUMENT).descriptor(99)


@pytest.mark.parametrize(
    "payload",
    [
        b"\xff\xfe",
        "not json",
        "[1, 2]",
        {"candidates": []},
        {"updates": [{"batchId": 1, "timestamp": "yesterday", "filename": "a.csv"}]},
        {"updates": [{"batchId": 1, "timestamp": "2025-04-08T20:00:00Z", "filename": "   "}]},
        {"updates": [{"batchId": 1, "timestamp": "2025-04-08T20:00:00Z", "filename": "a.csv"}] * 2},
        {
            "updates": [{"batchId": 1, "timestamp": "2025-04-08T20:00:00Z", "filename": "a.csv"}],
            "candidates": [{"name": "A", "color": "blue"}],
        },
    ],
)
def test_invalid_metadata_raises(payload):
    with pytest.raises(MetadataError):
        load_metadata(payload)
