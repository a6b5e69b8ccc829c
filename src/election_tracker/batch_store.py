"""
======================== ÍNDICE / INDEX ========================
1. Descripción general / Overview
2. Componentes principales / Main components
3. Notas de mantenimiento / Maintenance notes

======================== ESPAÑOL ========================
Archivo: `src/election_tracker/batch_store.py`.
Caché en memoria de snapshots por id de lote con semántica "obtener o
construir", construcción concurrente acotada y deduplicación de
construcciones en curso.

Componentes detectados:
  - BatchUnavailableError
  - FetchAllResult
  - SnapshotBuilder
  - BatchStore

Notas:
- La caché solo crece; nunca se eliminan entradas dentro de una sesión.
- Un lote fallido no se cachea y no afecta a los demás.

======================== ENGLISH ========================
File: `src/election_tracker/batch_store.py`.
In-memory snapshot cache keyed by batch id with "get or build" semantics,
bounded concurrent building and de-duplication of in-flight builds.

Detected components:
  - BatchUnavailableError
  - FetchAllResult
  - SnapshotBuilder
  - BatchStore

Notes:
- The cache only grows; entries are never removed within a session.
- A failed batch is not cached and does not affect its siblings.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

import structlog

from election_tracker.config import TrackerSettings
from election_tracker.core.aggregator import KeyResolver, aggregate_rows
from election_tracker.core.models import BatchDescriptor, Diagnostic, DiagnosticKind, Metadata, Snapshot
from election_tracker.core.parser import DEFAULT_HEADER_LINES, ParseError, parse_results
from election_tracker.core.precinct import resolve_precinct_key
from election_tracker.fetcher import BatchFileSource, FetchError
from election_tracker.logging import bind_context

Builder = Callable[[BatchDescriptor], Awaitable[Snapshot]]


class BatchUnavailableError(Exception):
    """El lote no pudo obtenerse o parsearse.

    English: The batch could not be fetched or parsed.
    """

    def __init__(self, batch_id: int, reason: str) -> None:
        super().__init__(f"Batch {batch_id} unavailable: {reason}")
        self.batch_id = batch_id
        self.reason = reason


@dataclass(frozen=True)
class FetchAllResult:
    """Snapshots obtenidos y lotes fallidos de ``get_or_fetch_all``.

    English: Snapshots obtained and batches that failed.
    """

    snapshots: Mapping[int, Snapshot] = field(default_factory=dict)
    failures: Mapping[int, Diagnostic] = field(default_factory=dict)

    @property
    def complete(self) -> bool:
        return not self.failures


class SnapshotBuilder:
    """Constructor por defecto: obtener texto, parsear y agregar.

    English: Default builder: fetch text, parse and aggregate.
    """

    def __init__(
        self,
        source: BatchFileSource,
        *,
        header_lines: int = DEFAULT_HEADER_LINES,
        key_resolver: KeyResolver = resolve_precinct_key,
    ) -> None:
        self.source = source
        self.header_lines = header_lines
        self.key_resolver = key_resolver

    @classmethod
    def from_settings(cls, source: BatchFileSource, settings: TrackerSettings) -> "SnapshotBuilder":
        return cls(source, header_lines=settings.HEADER_LINES, key_resolver=settings.key_resolver())

    async def __call__(self, descriptor: BatchDescriptor) -> Snapshot:
        text = await self.source.fetch_text(descriptor.source_file)
        parsed = parse_results(text, header_lines=self.header_lines)
        return aggregate_rows(
            parsed.rows,
            batch_id=descriptor.batch_id,
            timestamp=descriptor.timestamp,
            key_resolver=self.key_resolver,
            diagnostics=parsed.diagnostics,
        )


class BatchStore:
    """Caché de snapshots propiedad de una sola instancia de rastreador.

    English: Snapshot cache owned by a single tracker instance.
    """

    def __init__(
        self,
        builder: Builder,
        metadata: Metadata,
        *,
        max_concurrency: int = 4,
        logger: Optional[structlog.BoundLogger] = None,
    ) -> None:
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be >= 1")
        self.metadata = metadata
        self.logger = logger or structlog.get_logger(__name__)
        self._builder = builder
        self._max_concurrency = max_concurrency
        self._cache: Dict[int, Snapshot] = {}
        self._in_flight: Dict[int, asyncio.Task] = {}
        self._semaphore: Optional[asyncio.Semaphore] = None
        self._semaphore_loop: Optional[asyncio.AbstractEventLoop] = None

    @property
    def cached_ids(self) -> Tuple[int, ...]:
        return tuple(self._cache)

    def peek(self, batch_id: int) -> Optional[Snapshot]:
        """Snapshot cacheado sin construir. / Cached snapshot without building."""
        return self._cache.get(batch_id)

    def update_metadata(self, metadata: Metadata) -> None:
        """Reemplaza los metadatos conservando la caché.

        English: Replace the metadata while keeping the cache.
        """
        self.metadata = metadata

    async def get(self, batch_id: int) -> Snapshot:
        """Devuelve el snapshot cacheado o lo construye.

        Raises:
            KeyError: El id no figura en los metadatos.
            BatchUnavailableError: El lote no pudo obtenerse o parsearse.

        English: Return the cached snapshot or build it.
        """
        cached = self._cache.get(batch_id)
        if cached is not None:
            return cached
        return await self._get_descriptor(self.metadata.descriptor(batch_id))

    async def latest(self, metadata: Optional[Metadata] = None) -> Snapshot:
        """Snapshot del último lote en el orden declarado.

        English: Snapshot of the last batch in declared order (not the
        numerically largest id).
        """
        descriptor = (metadata or self.metadata).latest()
        if descriptor is None:
            raise LookupError("Metadata declares no batches")
        cached = self._cache.get(descriptor.batch_id)
        if cached is not None:
            return cached
        return await self._get_descriptor(descriptor)

    async def previous(self, batch_id: int) -> Optional[Snapshot]:
        """Snapshot del lote anterior declarado, o None.

        English: Snapshot of the preceding declared batch, or None.
        """
        descriptor = self.metadata.previous(batch_id)
        if descriptor is None:
            return None
        return await self.get(descriptor.batch_id)

    async def get_or_fetch_all(self, batch_ids: Iterable[int]) -> FetchAllResult:
        """Obtiene varios lotes en paralelo sin abortar por fallos.

        English: Fetch several batches concurrently; a failed batch is
        reported and not cached while its siblings still populate.
        """
        ordered: List[int] = list(dict.fromkeys(batch_ids))
        results = await asyncio.gather(*(self.get(batch_id) for batch_id in ordered), return_exceptions=True)

        snapshots: Dict[int, Snapshot] = {}
        failures: Dict[int, Diagnostic] = {}
        for batch_id, result in zip(ordered, results):
            if isinstance(result, Snapshot):
                snapshots[batch_id] = result
                continue
            if isinstance(result, BatchUnavailableError):
                reason = result.reason
            elif isinstance(result, KeyError):
                reason = "unknown batch id"
                self.logger.warning("batch_unknown", batch_id=batch_id)
            else:
                reason = repr(result)
                self.logger.error("batch_failed_unexpectedly", batch_id=batch_id, error=repr(result))
            failures[batch_id] = Diagnostic(
                DiagnosticKind.BATCH_UNAVAILABLE,
                "Batch could not be fetched or parsed",
                {"batch_id": batch_id, "reason": reason},
            )

        self.logger.info(
            "batches_fetched",
            requested=len(ordered),
            available=len(snapshots),
            unavailable=sorted(failures),
        )
        return FetchAllResult(snapshots=snapshots, failures=failures)

    async def _get_descriptor(self, descriptor: BatchDescriptor) -> Snapshot:
        task = self._in_flight.get(descriptor.batch_id)
        if task is None or task.get_loop() is not asyncio.get_running_loop():
            task = asyncio.ensure_future(self._build(descriptor))
            self._in_flight[descriptor.batch_id] = task
            task.add_done_callback(lambda done, key=descriptor.batch_id: self._forget(key, done))
        # A caller abandoning its wait must not cancel the shared build.
        return await asyncio.shield(task)

    def _forget(self, batch_id: int, task: asyncio.Task) -> None:
        if self._in_flight.get(batch_id) is task:
            del self._in_flight[batch_id]

    def _limiter(self) -> asyncio.Semaphore:
        loop = asyncio.get_running_loop()
        if self._semaphore is None or self._semaphore_loop is not loop:
            self._semaphore = asyncio.Semaphore(self._max_concurrency)
            self._semaphore_loop = loop
        return self._semaphore

    async def _build(self, descriptor: BatchDescriptor) -> Snapshot:
        log = bind_context(self.logger, batch_id=descriptor.batch_id, source_file=descriptor.source_file)
        async with self._limiter():
            try:
                snapshot = await self._builder(descriptor)
            except (ParseError, FetchError, asyncio.TimeoutError) as exc:
                log.warning("batch_unavailable", reason=str(exc) or type(exc).__name__)
                raise BatchUnavailableError(descriptor.batch_id, str(exc) or type(exc).__name__) from exc

        # Append-only: the first completed build for an id wins.
        stored = self._cache.setdefault(descriptor.batch_id, snapshot)
        log.info(
            "batch_built",
            total_votes=stored.contest.total_votes,
            communities=len(stored.communities),
            precincts=len(stored.precincts),
            diagnostics=len(stored.diagnostics),
        )
        return stored
