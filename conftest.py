"""
======================== ÍNDICE / INDEX ========================
1. Descripción general / Overview
2. Componentes principales / Main components

======================== ESPAÑOL ========================
Archivo: `conftest.py`.
Fixtures globales de pytest para el rastreador de lotes electorales.

Componentes detectados:
  - block_network
  - election_data_dir

======================== ENGLISH ========================
File: `conftest.py`.
Global pytest fixtures for the election batch tracker.

Detected components:
  - block_network
  - election_data_dir
"""

from __future__ import annotations

import json
import socket
from pathlib import Path
from typing import Any

import pytest


@pytest.fixture(autouse=True)
def block_network(monkeypatch: pytest.MonkeyPatch) -> None:
    """Impide conexiones de red reales en tests.

    English:
        Prevents real network connections in tests. HTTP traffic is mocked
        through ``pytest_httpx`` instead.
    """

    def guarded_connect(*args: Any, **kwargs: Any) -> None:
        raise RuntimeError("Network access is disabled during tests.")

    def guarded_create_connection(*args: Any, **kwargs: Any) -> None:
        raise RuntimeError("Network access is disabled during tests.")

    monkeypatch.setattr(socket.socket, "connect", guarded_connect, raising=True)
    monkeypatch.setattr(socket, "create_connection", guarded_create_connection, raising=True)


BANNER = "Registrar of Voters - Special Election\nUnofficial Results\n"
HEADER = "Precinct,Candidate Name,Party,Contest Name,Votes\n"


@pytest.fixture()
def election_data_dir(tmp_path: Path) -> Path:
    """Directorio local con metadatos, dos lotes y límites.

    English:
        Local directory with metadata, two batches and boundaries. Batch 2
        re-reports candidate A with 70 votes contest-wide.
    """
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    metadata = {
        "updates": [
            {
                "batchId": 1,
                "timestamp": "2025-04-08T20:00:00Z",
                "filename": "results-1.csv",
                "registeredVoters": 400,
                "ballotsCountedTotal": 100,
            },
            {"batchId": 2, "timestamp": "2025-04-08T22:00:00Z", "filename": "results-2.csv"},
        ],
        "candidates": [{"name": "A", "color": "#112233"}, {"name": "B", "color": "#445566"}],
    }
    (data_dir / "metadata.json").write_text(json.dumps(metadata), encoding="utf-8")
    (data_dir / "results-1.csv").write_text(
        BANNER
        + HEADER
        + "01-100-Uptown,A,DEM,Council District 1,50\n"
        + "01-100-Uptown,B,REP,Council District 1,30\n"
        + "01-200-Midtown,A,DEM,Council District 1,10\n",
        encoding="utf-8",
    )
    (data_dir / "results-2.csv").write_text(
        BANNER
        + HEADER
        + "01-100-Uptown,A,DEM,Council District 1,60\n"
        + "01-100-Uptown,B,REP,Council District 1,30\n"
        + "01-200-Midtown,A,DEM,Council District 1,10\n"
        + "Provisional,B,REP,Council District 1,5\n",
        encoding="utf-8",
    )
    boundaries = {
        "type": "FeatureCollection",
        "features": [
            {"type": "Feature", "properties": {"consnum": "100"}, "geometry": None},
            {"type": "Feature", "properties": {"consnum": "300"}, "geometry": None},
        ],
    }
    (data_dir / "boundaries.geojson").write_text(json.dumps(boundaries), encoding="utf-8")
    return data_dir
