"""Obtención acotada de archivos de lote y metadatos.

Bounded retrieval of batch files and metadata, from an HTTP base URL or a
local directory. Every fetch is bounded by ``timeout_seconds``; a timeout
or an unreachable file surfaces as ``FetchError``.
"""

from __future__ import annotations

import asyncio
import json
import time
from pathlib import Path
from typing import Any, Dict, Optional

import httpx
import structlog
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from election_tracker import __version__
from election_tracker.config import TrackerSettings
from election_tracker.core.models import Metadata
from election_tracker.metadata import load_metadata

logger = structlog.get_logger(__name__)

RETRYABLE_STATUS = {429, 503}


class FetchError(Exception):
    """Archivo de origen inalcanzable.

    English: Source file unreachable.
    """


class BatchFileSource:
    """Lee archivos de resultados desde una URL base o un directorio local.

    English: Reads results files from a base URL or a local directory.
    """

    def __init__(
        self,
        *,
        base_url: Optional[str] = None,
        data_dir: Optional[Path] = None,
        timeout_seconds: float = 10.0,
        retries: int = 3,
        backoff_seconds: float = 0.5,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        if (base_url is None) == (data_dir is None):
            raise ValueError("Exactly one of base_url or data_dir is required")
        self.base_url = base_url.rstrip("/") if base_url else None
        self.data_dir = data_dir
        self.timeout_seconds = timeout_seconds
        self.retries = retries
        self.backoff_seconds = backoff_seconds
        self._owns_client = client is None and base_url is not None
        self._client = client
        if self._owns_client:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(timeout_seconds),
                headers={"User-Agent": f"ElectionTracker/{__version__}"},
            )

    @classmethod
    def from_settings(cls, settings: TrackerSettings, client: Optional[httpx.AsyncClient] = None) -> "BatchFileSource":
        return cls(
            base_url=str(settings.DATA_BASE_URL) if settings.DATA_BASE_URL else None,
            data_dir=settings.DATA_DIR,
            timeout_seconds=settings.FETCH_TIMEOUT_SECONDS,
            retries=settings.FETCH_RETRIES,
            client=client,
        )

    async def __aenter__(self) -> "BatchFileSource":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:  # noqa: ANN001
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()

    def describe(self, filename: str) -> str:
        if self.base_url:
            return f"{self.base_url}/{filename.lstrip('/')}"
        return str(self.data_dir / filename)

    async def fetch_text(self, filename: str) -> str:
        """Descarga el texto de un archivo dentro del tiempo límite.

        English: Fetch a file's text within the timeout.
        """
        start = time.monotonic()
        try:
            text = await asyncio.wait_for(self._fetch(filename), timeout=self.timeout_seconds)
        except asyncio.TimeoutError as exc:
            logger.warning("fetch_timeout", source=self.describe(filename), timeout_seconds=self.timeout_seconds)
            raise FetchError(f"Timed out after {self.timeout_seconds}s fetching {filename}") from exc
        logger.info(
            "fetch_complete",
            source=self.describe(filename),
            elapsed_seconds=round(time.monotonic() - start, 3),
            content_chars=len(text),
        )
        return text

    async def fetch_json(self, filename: str) -> Dict[str, Any]:
        text = await self.fetch_text(filename)
        try:
            payload = json.loads(text)
        except json.JSONDecodeError as exc:
            raise FetchError(f"Invalid JSON in {filename}: {exc}") from exc
        if not isinstance(payload, dict):
            raise FetchError(f"Expected a JSON object in {filename}")
        return payload

    async def fetch_metadata(self, filename: str = "metadata.json") -> Metadata:
        return load_metadata(await self.fetch_text(filename))

    async def _fetch(self, filename: str) -> str:
        if self.data_dir is not None:
            return await asyncio.to_thread(self._read_local, filename)
        return await self._fetch_http(filename)

    def _read_local(self, filename: str) -> str:
        root = self.data_dir.resolve()
        path = (root / filename).resolve()
        if root not in path.parents:
            raise FetchError(f"Refusing to read outside data directory: {filename}")
        try:
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise FetchError(f"Unable to read {path}: {exc}") from exc

    async def _fetch_http(self, filename: str) -> str:
        url = self.describe(filename)
        try:
            async for attempt in AsyncRetrying(
                retry=retry_if_exception_type((httpx.TransportError, httpx.HTTPStatusError)),
                stop=stop_after_attempt(self.retries),
                wait=wait_exponential(multiplier=self.backoff_seconds, max=4),
                reraise=True,
            ):
                with attempt:
                    response = await self._client.get(url)
                    if response.status_code in RETRYABLE_STATUS:
                        logger.warning(
                            "fetch_retryable_status",
                            url=url,
                            status_code=response.status_code,
                            attempt=attempt.retry_state.attempt_number,
                        )
                        raise httpx.HTTPStatusError(
                            f"Retryable status: {response.status_code}",
                            request=response.request,
                            response=response,
                        )
        except httpx.HTTPStatusError as exc:
            raise FetchError(f"HTTP error for {url}: {exc}") from exc
        except httpx.RequestError as exc:
            raise FetchError(f"Request failed for {url}: {exc}") from exc

        if response.status_code >= 400:
            raise FetchError(f"Unexpected status {response.status_code} for {url}")
        return response.text
