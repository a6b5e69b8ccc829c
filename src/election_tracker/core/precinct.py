"""Resolución de claves de precinto a partir de etiquetas compuestas.

Precinct key resolution from compound precinct labels such as
``01-100-Uptown`` (segment 1 = precinct number, segment 2 = community).
"""

from __future__ import annotations

from typing import Iterable, Iterator, Tuple

from election_tracker.core.models import EMPTY_KEY, PrecinctKey, VoteRow

DEFAULT_DELIMITER = "-"
DEFAULT_COMMUNITY_INDEX = 2
DEFAULT_PRECINCT_INDEX = 1


def resolve_precinct_key(
    label: str,
    *,
    delimiter: str = DEFAULT_DELIMITER,
    community_index: int = DEFAULT_COMMUNITY_INDEX,
    precinct_index: int = DEFAULT_PRECINCT_INDEX,
) -> PrecinctKey:
    """Extrae comunidad y número de precinto de una etiqueta.

    Devuelve ``EMPTY_KEY`` si faltan segmentos o si alguno queda vacío; la
    fila sigue contando en el total de la contienda.

    English:
        Extract community and precinct number from a label. Returns
        ``EMPTY_KEY`` when segments are missing or blank; the row still
        counts toward contest-wide totals.
    """
    segments = label.split(delimiter)
    if len(segments) <= max(community_index, precinct_index):
        return EMPTY_KEY
    community = segments[community_index].strip()
    precinct = segments[precinct_index].strip()
    if not community or not precinct:
        return EMPTY_KEY
    return PrecinctKey(community_name=community, precinct_number=precinct)


def annotate_rows(
    rows: Iterable[VoteRow],
    *,
    delimiter: str = DEFAULT_DELIMITER,
    community_index: int = DEFAULT_COMMUNITY_INDEX,
    precinct_index: int = DEFAULT_PRECINCT_INDEX,
) -> Iterator[Tuple[VoteRow, PrecinctKey]]:
    """Empareja cada fila con su clave. / Pair every row with its key."""
    for row in rows:
        yield row, resolve_precinct_key(
            row.precinct_label,
            delimiter=delimiter,
            community_index=community_index,
            precinct_index=precinct_index,
        )
