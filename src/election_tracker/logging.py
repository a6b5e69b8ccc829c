"""
======================== ÍNDICE / INDEX ========================
1. Descripción general / Overview
2. Componentes principales / Main components
3. Notas de mantenimiento / Maintenance notes

======================== ESPAÑOL ========================
Archivo: `src/election_tracker/logging.py`.
Configuración de structlog sobre logging estándar.

Componentes detectados:
  - setup_logging
  - bind_context

======================== ENGLISH ========================
File: `src/election_tracker/logging.py`.
structlog configuration on top of stdlib logging.

Detected components:
  - setup_logging
  - bind_context
"""

from __future__ import annotations

import logging
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Any, List, Optional

import structlog


def setup_logging(log_level: str, log_dir: Optional[Path] = None) -> structlog.BoundLogger:
    """Configura structlog y handlers de consola/archivo.

    English: Configure structlog and console/file handlers. The file
    handler is only added when ``log_dir`` is given.
    """
    level = getattr(logging, log_level.upper(), logging.INFO)
    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        handlers.append(
            TimedRotatingFileHandler(
                log_dir / "election_tracker.log",
                when="midnight",
                backupCount=30,
                encoding="utf-8",
            )
        )

    logging.basicConfig(
        level=level,
        handlers=handlers,
        format="%(message)s",
        force=True,
    )

    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    return structlog.get_logger()


def bind_context(
    logger: structlog.BoundLogger,
    batch_id: Optional[int] = None,
    source_file: Optional[str] = None,
    scope: Optional[str] = None,
) -> structlog.BoundLogger:
    """Adjunta contexto estándar al logger.

    English: Bind standard context to the logger.
    """
    context: dict[str, Any] = {}
    if batch_id is not None:
        context["batch_id"] = batch_id
    if source_file:
        context["source_file"] = source_file
    if scope:
        context["scope"] = scope
    return logger.bind(**context)
