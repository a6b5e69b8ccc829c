# Config Module
# AUTO-DOC-INDEX
#
# ES: Índice rápido
#   1) Propósito del módulo
#   2) Componentes principales
#   3) Puntos de extensión
#
# EN: Quick index
#   1) Module purpose
#   2) Main components
#   3) Extension points
#
# Secciones / Sections:
#   - Configuración / Configuration
#   - Lógica principal / Core logic

"""Configuración validada del rastreador de lotes.

Validated tracker configuration, read from the environment / ``.env`` or
from a YAML file::

    data_dir: data
    metadata_filename: metadata.json
    header_lines: 2
    fetch_timeout_seconds: 10
    max_concurrent_fetches: 4
"""

from __future__ import annotations

from functools import partial
from pathlib import Path
from typing import Optional

import yaml
from dotenv import load_dotenv
from pydantic import AnyUrl, Field, ValidationError, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from election_tracker.core.aggregator import KeyResolver
from election_tracker.core.precinct import resolve_precinct_key

_ENV_LOCAL_PATH = Path(".env.local")


class ConfigError(ValueError):
    """Configuración inválida. / Invalid configuration."""


class TrackerSettings(BaseSettings):
    """Variables de entorno y archivo .env del rastreador.

    English: Environment variables and .env file for the tracker.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    DATA_BASE_URL: Optional[AnyUrl] = None
    DATA_DIR: Optional[Path] = None
    METADATA_FILENAME: str = Field(default="metadata.json", min_length=1)
    BOUNDARIES_FILENAME: Optional[str] = None
    HEADER_LINES: int = Field(default=2, ge=0)
    PRECINCT_DELIMITER: str = Field(default="-", min_length=1)
    COMMUNITY_SEGMENT: int = Field(default=2, ge=0)
    PRECINCT_SEGMENT: int = Field(default=1, ge=0)
    FETCH_TIMEOUT_SECONDS: float = Field(default=10.0, gt=0)
    FETCH_RETRIES: int = Field(default=3, ge=1)
    MAX_CONCURRENT_FETCHES: int = Field(default=4, ge=1)
    LOG_LEVEL: str = "INFO"
    LOG_DIR: Optional[Path] = None

    @model_validator(mode="after")
    def exactly_one_source(self) -> "TrackerSettings":
        """Exige una sola fuente de datos. / Require exactly one data source."""
        if (self.DATA_BASE_URL is None) == (self.DATA_DIR is None):
            raise ValueError("Exactly one of DATA_BASE_URL or DATA_DIR must be set")
        return self

    def validate_paths(self) -> None:
        """Valida que DATA_DIR exista. / Validate that DATA_DIR exists."""
        if self.DATA_DIR is None:
            return
        if not self.DATA_DIR.exists():
            raise ValueError(f"DATA_DIR does not exist: {self.DATA_DIR}")
        if not self.DATA_DIR.is_dir():
            raise ValueError(f"DATA_DIR is not a directory: {self.DATA_DIR}")

    def key_resolver(self) -> KeyResolver:
        """Resolución de claves con los segmentos configurados.

        English: Precinct key resolver bound to the configured segments.
        """
        return partial(
            resolve_precinct_key,
            delimiter=self.PRECINCT_DELIMITER,
            community_index=self.COMMUNITY_SEGMENT,
            precinct_index=self.PRECINCT_SEGMENT,
        )


def _load_yaml_mapping(path: Path) -> dict:
    if not path.exists():
        raise ConfigError(f"Missing config file: {path.as_posix()}")
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"{path.name} has YAML syntax errors") from exc
    if not isinstance(raw, dict):
        raise ConfigError(f"{path.name} must be a YAML mapping")
    return raw


def load_config(config_path: Optional[Path] = None) -> TrackerSettings:
    """Carga y valida configuración desde YAML o .env.

    English: Load and validate configuration from YAML or .env, failing
    with details.
    """
    try:
        if config_path:
            raw = _load_yaml_mapping(config_path)
            settings = TrackerSettings.model_validate({str(key).upper(): value for key, value in raw.items()})
        else:
            load_dotenv(_ENV_LOCAL_PATH, override=False)
            settings = TrackerSettings()
        settings.validate_paths()
        return settings
    except ConfigError:
        raise
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc
    except ValueError as exc:
        raise ConfigError(str(exc)) from exc
