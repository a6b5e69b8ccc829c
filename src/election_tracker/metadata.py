"""Esquemas y carga del documento de metadatos de lotes.

Schemas and loading for the batch metadata document::

    {"updates": [{"batchId": 1, "timestamp": "...", "filename": "..."}],
     "candidates": [{"name": "...", "color": "#0000ff"}]}
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from election_tracker.core.models import BatchDescriptor, CandidateInfo, Metadata

_LEGACY_UPDATE_KEYS = {
    "batchNumber": "batchId",
    "sourceFile": "filename",
    "file": "filename",
}


class MetadataError(ValueError):
    """Documento de metadatos inválido.

    English: Invalid metadata document.
    """


class UpdateSchema(BaseModel):
    """Entrada de lote dentro de ``updates``.

    English: Batch entry within ``updates``.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    batch_id: int = Field(alias="batchId")
    timestamp: datetime
    filename: str = Field(min_length=1)
    registered_voters: Optional[int] = Field(default=None, alias="registeredVoters", ge=0)
    ballots_counted: Optional[int] = Field(default=None, alias="ballotsCountedTotal", ge=0)
    mail_ballots: Optional[int] = Field(default=None, alias="mailBallots", ge=0)
    vote_center_ballots: Optional[int] = Field(default=None, alias="voteCenterBallots", ge=0)
    estimated_remaining: Optional[int] = Field(default=None, alias="estimatedBallotsRemaining", ge=0)

    @field_validator("filename")
    @classmethod
    def strip_filename(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("filename cannot be empty")
        return cleaned


class CandidateColorSchema(BaseModel):
    name: str = Field(min_length=1)
    color: str = Field(pattern=r"^#(?:[0-9a-fA-F]{3}){1,2}$")


class MetadataSchema(BaseModel):
    """Documento completo de metadatos. / Full metadata document."""

    updates: List[UpdateSchema]
    candidates: List[CandidateColorSchema] = Field(default_factory=list)

    @model_validator(mode="after")
    def batch_ids_are_unique(self) -> "MetadataSchema":
        seen = set()
        for update in self.updates:
            if update.batch_id in seen:
                raise ValueError(f"Duplicate batch id in updates: {update.batch_id}")
            seen.add(update.batch_id)
        return self


def _parse_payload(data: Dict[str, Any] | bytes | str) -> Dict[str, Any]:
    """Parsea payload dict, bytes o str a dict JSON.

    English: Parse dict, bytes or str payload into a JSON dict.
    """
    if isinstance(data, bytes):
        try:
            data = data.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise MetadataError("Metadata is not valid UTF-8") from exc
    if isinstance(data, str):
        try:
            data = json.loads(data)
        except json.JSONDecodeError as exc:
            raise MetadataError("Metadata is not valid JSON") from exc
    if isinstance(data, dict):
        return data
    raise MetadataError("Metadata must be a JSON object")


def _migrate_update(entry: Any) -> Any:
    """Migra claves antiguas de una entrada de lote.

    English: Migrate legacy keys of a batch entry.
    """
    if not isinstance(entry, dict):
        return entry
    migrated = dict(entry)
    for legacy, current in _LEGACY_UPDATE_KEYS.items():
        if legacy in migrated and current not in migrated:
            migrated[current] = migrated.pop(legacy)
    return migrated


def load_metadata(data: Dict[str, Any] | bytes | str) -> Metadata:
    """Valida el documento y devuelve ``Metadata`` en el orden declarado.

    English: Validate the document and return ``Metadata`` in declared order.
    """
    payload = _parse_payload(data)
    if isinstance(payload.get("updates"), list):
        payload = {**payload, "updates": [_migrate_update(entry) for entry in payload["updates"]]}
    try:
        model = MetadataSchema.model_validate(payload)
    except ValidationError as exc:
        raise MetadataError(f"Metadata validation failed: {exc}") from exc

    return Metadata(
        updates=tuple(
            BatchDescriptor(
                batch_id=update.batch_id,
                timestamp=update.timestamp,
                source_file=update.filename,
                registered_voters=update.registered_voters,
                ballots_counted=update.ballots_counted,
                mail_ballots=update.mail_ballots,
                vote_center_ballots=update.vote_center_ballots,
                estimated_remaining=update.estimated_remaining,
            )
            for update in model.updates
        ),
        candidates=tuple(CandidateInfo(name=item.name.strip(), color=item.color) for item in model.candidates),
    )
