"""
======================== ÍNDICE / INDEX ========================
1. Descripción general / Overview
2. Componentes principales / Main components
3. Notas de mantenimiento / Maintenance notes

======================== ESPAÑOL ========================
Archivo: `src/election_tracker/core/parser.py`.
Convierte el texto de una exportación de resultados en filas tipadas.

Componentes detectados:
  - ParseError
  - ParseResult
  - parse_results

Notas:
- Una fila defectuosa se descarta con diagnóstico; solo una estructura
  tabular ilegible es fatal para el lote.

======================== ENGLISH ========================
File: `src/election_tracker/core/parser.py`.
Turns the text of a results export into typed rows.

Detected components:
  - ParseError
  - ParseResult
  - parse_results

Notes:
- A bad row is dropped with a diagnostic; only an unreadable tabular
  structure is fatal to the batch.
"""

from __future__ import annotations

import csv
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

import structlog

from election_tracker.core.models import Diagnostic, DiagnosticKind, VoteRow

logger = structlog.get_logger(__name__)

DEFAULT_HEADER_LINES = 2

PRECINCT_COLUMNS = ("precinct",)
CANDIDATE_COLUMNS = ("candidate name", "candidate")
PARTY_COLUMNS = ("party",)
CONTEST_COLUMNS = ("contest name", "contest")
VOTES_COLUMNS = ("votes", "total votes")
BALLOT_TYPE_COLUMNS = ("ballot type", "vote type")


class ParseError(Exception):
    """La estructura tabular de la exportación es ilegible.

    English: The export's tabular structure is unreadable.
    """


@dataclass(frozen=True)
class ParseResult:
    rows: Tuple[VoteRow, ...]
    diagnostics: Tuple[Diagnostic, ...] = ()


def _find_column(index: Dict[str, int], aliases: Sequence[str]) -> Optional[int]:
    for alias in aliases:
        if alias in index:
            return index[alias]
    return None


def _coerce_votes(raw: str) -> Tuple[int, bool]:
    """Convierte un conteo a entero; devuelve (valor, válido).

    Vacío cuenta como 0 válido; texto no numérico o negativo cuenta como 0
    inválido.

    English: Coerce a count to int, returning (value, valid). Blank is a
    valid 0; non-numeric or negative text is an invalid 0.
    """
    text = raw.strip().replace(",", "")
    if not text:
        return 0, True
    try:
        value = int(text)
    except ValueError:
        try:
            as_float = float(text)
        except ValueError:
            return 0, False
        if not as_float.is_integer():
            return 0, False
        value = int(as_float)
    if value < 0:
        return 0, False
    return value, True


def _is_blank(record: Sequence[str]) -> bool:
    return not any(cell.strip() for cell in record)


def parse_results(
    text: str,
    *,
    header_lines: int = DEFAULT_HEADER_LINES,
    delimiter: str = ",",
) -> ParseResult:
    """Parsea una exportación de resultados.

    Args:
        text: Texto completo del archivo.
        header_lines: Líneas de encabezado a ignorar antes de la fila de
            columnas.
        delimiter: Separador de campos.

    Returns:
        ParseResult con las filas válidas y los diagnósticos por fila.

    Raises:
        ParseError: Sin fila de columnas, sin columnas obligatorias, o
            ninguna fila de datos coincide con el número de columnas.

    English:
        Parse a results export. Banner lines are skipped, field names are
        trimmed, rows missing a precinct label or candidate name are dropped
        silently, and a bad vote count becomes 0 with a diagnostic.
    """
    lines = text.lstrip("\ufeff").splitlines()[header_lines:]
    records = list(csv.reader(lines, delimiter=delimiter))

    header: Optional[List[str]] = None
    header_position = 0
    for position, record in enumerate(records):
        if not _is_blank(record):
            header = [name.strip() for name in record]
            header_position = position
            break
    if header is None:
        raise ParseError("Results export has no header row")

    index = {name.casefold(): position for position, name in enumerate(header) if name}
    precinct_col = _find_column(index, PRECINCT_COLUMNS)
    candidate_col = _find_column(index, CANDIDATE_COLUMNS)
    votes_col = _find_column(index, VOTES_COLUMNS)
    party_col = _find_column(index, PARTY_COLUMNS)
    contest_col = _find_column(index, CONTEST_COLUMNS)
    ballot_col = _find_column(index, BALLOT_TYPE_COLUMNS)
    if candidate_col is None or votes_col is None:
        raise ParseError(f"Results export is missing required columns; header={header}")

    rows: List[VoteRow] = []
    diagnostics: List[Diagnostic] = []
    data_records = 0
    consistent_records = 0

    # Line numbers are 1-based and count the skipped banner lines.
    first_line = header_lines + header_position + 2
    for line_number, record in enumerate(records[header_position + 1 :], start=first_line):
        if _is_blank(record):
            continue
        data_records += 1
        if len(record) != len(header):
            diagnostics.append(
                Diagnostic(
                    DiagnosticKind.MALFORMED_ROW,
                    "Column count does not match header",
                    {"line": line_number, "expected": len(header), "found": len(record)},
                )
            )
            continue
        consistent_records += 1

        label = record[precinct_col].strip() if precinct_col is not None else ""
        candidate = record[candidate_col].strip()
        if not candidate or (precinct_col is not None and not label):
            continue

        votes, valid = _coerce_votes(record[votes_col])
        if not valid:
            diagnostics.append(
                Diagnostic(
                    DiagnosticKind.MALFORMED_ROW,
                    "Vote count is not a non-negative integer; counted as 0",
                    {"line": line_number, "value": record[votes_col]},
                )
            )

        rows.append(
            VoteRow(
                precinct_label=label,
                candidate_name=candidate,
                party=record[party_col].strip() if party_col is not None else "",
                contest_name=record[contest_col].strip() if contest_col is not None else "",
                votes=votes,
                ballot_type=record[ballot_col].strip() if ballot_col is not None else "",
            )
        )

    if data_records and not consistent_records:
        raise ParseError(
            f"No data row matches the header column count ({len(header)} columns, "
            f"{data_records} rows)"
        )

    if diagnostics:
        logger.warning("parse_rows_dropped_or_coerced", count=len(diagnostics))
    logger.debug("parse_complete", rows=len(rows), data_records=data_records)
    return ParseResult(rows=tuple(rows), diagnostics=tuple(diagnostics))
