"""
======================== ÍNDICE / INDEX ========================
1. Descripción general / Overview
2. Componentes principales / Main components
3. Notas de mantenimiento / Maintenance notes

======================== ESPAÑOL ========================
Archivo: `src/election_tracker/tracker.py`.
Fachada que une metadatos, almacén de lotes, diferencias, líderes y capa
de mapa para una contienda.

Componentes detectados:
  - BatchView
  - ElectionTracker

Notas:
- Cada instancia posee su propio BatchStore; varias contiendas no
  comparten caché.
- El lote anterior es el inmediatamente previo en el orden declarado.

======================== ENGLISH ========================
File: `src/election_tracker/tracker.py`.
Facade tying metadata, batch store, deltas, leaders and the map overlay
together for one contest.

Detected components:
  - BatchView
  - ElectionTracker

Notes:
- Each instance owns its own BatchStore; several contests never share a
  cache.
- The previous batch is the immediately preceding one in declared order.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

import structlog

from election_tracker.batch_store import BatchStore, BatchUnavailableError, Builder, FetchAllResult, SnapshotBuilder
from election_tracker.config import TrackerSettings
from election_tracker.core.colors import CandidatePalette
from election_tracker.core.delta import compute_all_deltas, compute_deltas
from election_tracker.core.leader import resolve_leaders
from election_tracker.core.models import (
    BatchDescriptor,
    DeltaReport,
    Diagnostic,
    DiagnosticKind,
    LeaderResult,
    Metadata,
    ScopeKind,
    Snapshot,
)
from election_tracker.fetcher import BatchFileSource
from election_tracker.geo import build_leader_overlay, project_feature_collection


@dataclass(frozen=True)
class BatchView:
    """Todo lo que la capa de presentación necesita de un lote.

    English: Everything the presentation layer needs for one batch.
    """

    descriptor: BatchDescriptor
    snapshot: Snapshot
    previous_batch_id: Optional[int]
    contest_deltas: DeltaReport
    community_deltas: Mapping[str, DeltaReport] = field(default_factory=dict)
    community_leaders: Mapping[str, LeaderResult] = field(default_factory=dict)
    precinct_leaders: Mapping[str, LeaderResult] = field(default_factory=dict)
    diagnostics: Tuple[Diagnostic, ...] = ()


class ElectionTracker:
    """Rastreador de una contienda sobre una fuente de archivos.

    English: Tracker for one contest over a file source.
    """

    def __init__(
        self,
        source: BatchFileSource,
        settings: TrackerSettings,
        *,
        builder: Optional[Builder] = None,
        logger: Optional[structlog.BoundLogger] = None,
    ) -> None:
        self.source = source
        self.settings = settings
        self.logger = logger or structlog.get_logger(__name__)
        self._builder = builder or SnapshotBuilder.from_settings(source, settings)
        self._store: Optional[BatchStore] = None
        self._palette = CandidatePalette()
        self._boundaries: Optional[Dict[str, Any]] = None

    @property
    def store(self) -> BatchStore:
        if self._store is None:
            raise RuntimeError("Tracker metadata not loaded; call load() first")
        return self._store

    @property
    def metadata(self) -> Metadata:
        return self.store.metadata

    @property
    def palette(self) -> CandidatePalette:
        return self._palette

    async def load(self) -> Metadata:
        """Carga (o recarga) los metadatos conservando la caché.

        English: Load (or reload) the metadata, keeping the cache.
        """
        metadata = await self.source.fetch_metadata(self.settings.METADATA_FILENAME)
        if self._store is None:
            self._store = BatchStore(
                self._builder,
                metadata,
                max_concurrency=self.settings.MAX_CONCURRENT_FETCHES,
                logger=self.logger,
            )
        else:
            self._store.update_metadata(metadata)
        self._palette = CandidatePalette.from_metadata(metadata)
        self.logger.info("metadata_loaded", batches=len(metadata.updates), candidates=len(metadata.candidates))
        return metadata

    async def preload(self, batch_ids: Optional[Iterable[int]] = None) -> FetchAllResult:
        ids = list(batch_ids) if batch_ids is not None else list(self.metadata.batch_ids)
        return await self.store.get_or_fetch_all(ids)

    async def select(self, batch_id: Optional[int] = None) -> BatchView:
        """Snapshot, diferencias y líderes de un lote (por defecto el último).

        Raises:
            BatchUnavailableError: El lote pedido no pudo construirse.

        English: Snapshot, deltas and leaders of one batch (latest by
        default). An unavailable previous batch only disables the deltas.
        """
        if batch_id is None:
            descriptor = self.metadata.latest()
            if descriptor is None:
                raise LookupError("Metadata declares no batches")
        else:
            descriptor = self.metadata.descriptor(batch_id)

        snapshot = await self.store.get(descriptor.batch_id)
        diagnostics: List[Diagnostic] = list(snapshot.diagnostics)

        previous: Optional[Snapshot] = None
        previous_descriptor = self.metadata.previous(descriptor.batch_id)
        if previous_descriptor is not None:
            try:
                previous = await self.store.get(previous_descriptor.batch_id)
            except BatchUnavailableError as exc:
                diagnostics.append(
                    Diagnostic(
                        DiagnosticKind.BATCH_UNAVAILABLE,
                        "Previous batch unavailable; deltas disabled",
                        {"batch_id": previous_descriptor.batch_id, "reason": exc.reason},
                    )
                )

        contest_deltas = compute_deltas(snapshot, previous, ScopeKind.CONTEST)
        community_deltas = compute_all_deltas(snapshot, previous, ScopeKind.COMMUNITY)
        diagnostics.extend(contest_deltas.warnings)
        for report in community_deltas.values():
            diagnostics.extend(report.warnings)

        return BatchView(
            descriptor=descriptor,
            snapshot=snapshot,
            previous_batch_id=previous_descriptor.batch_id if previous_descriptor else None,
            contest_deltas=contest_deltas,
            community_deltas=community_deltas,
            community_leaders=resolve_leaders(snapshot, ScopeKind.COMMUNITY),
            precinct_leaders=resolve_leaders(snapshot, ScopeKind.PRECINCT),
            diagnostics=tuple(diagnostics),
        )

    async def map_overlay(
        self,
        batch_id: Optional[int] = None,
        *,
        kind: ScopeKind = ScopeKind.PRECINCT,
        key_property: str = "consnum",
    ) -> Dict[str, Any]:
        """Límites proyectados con líder y color por polígono.

        English: Projected boundaries with leader and colour per polygon.
        """
        if not self.settings.BOUNDARIES_FILENAME:
            raise RuntimeError("BOUNDARIES_FILENAME is not configured")
        if self._boundaries is None:
            raw = await self.source.fetch_json(self.settings.BOUNDARIES_FILENAME)
            self._boundaries = project_feature_collection(raw)
        if batch_id is None:
            snapshot = await self.store.latest()
        else:
            snapshot = await self.store.get(batch_id)
        return build_leader_overlay(
            self._boundaries,
            snapshot,
            self._palette,
            kind=kind,
            key_property=key_property,
        )
