"""
======================== ÍNDICE / INDEX ========================
1. Descripción general / Overview
2. Componentes principales / Main components
3. Notas de mantenimiento / Maintenance notes

======================== ESPAÑOL ========================
Archivo: `src/election_tracker/geo.py`.
Capa de mapa: proyección de límites de precintos a latitud/longitud y
asignación del líder y color de relleno a cada polígono.

Componentes detectados:
  - state_plane_to_wgs84
  - project_feature_collection
  - build_leader_overlay

Notas:
- La proyección por defecto es una aproximación lineal empírica de
  EPSG:2230 (California zona 6, condado de San Diego); puede inyectarse
  otra función de transformación.

======================== ENGLISH ========================
File: `src/election_tracker/geo.py`.
Map overlay: projects precinct boundaries to latitude/longitude and
assigns the leader and fill colour to each polygon.

Detected components:
  - state_plane_to_wgs84
  - project_feature_collection
  - build_leader_overlay

Notes:
- The default projection is an empirical linear approximation of
  EPSG:2230 (California zone 6, San Diego County); any other transform can
  be injected.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, Sequence

import structlog

from election_tracker.core.colors import CandidatePalette
from election_tracker.core.leader import NO_RESULTS, resolve_leader
from election_tracker.core.models import LeaderResult, ScopeKind, Snapshot

logger = structlog.get_logger(__name__)

Transform = Callable[[Sequence[float]], List[float]]

STATE_PLANE_CRS_NAMES = {
    "EPSG:2230",
    "urn:ogc:def:crs:EPSG::2230",
}


def state_plane_to_wgs84(coordinate: Sequence[float]) -> List[float]:
    """Convierte (x, y) en pies EPSG:2230 a [lon, lat] aproximados.

    English: Convert EPSG:2230 feet (x, y) to approximate [lon, lat].
    """
    x, y = coordinate[0], coordinate[1]
    lon = (x - 6270000) * 0.00000306 - 117.15
    lat = (y - 1790000) * 0.00000326 + 32.71
    return [lon, lat]


def crs_name(geojson: Dict[str, Any]) -> Optional[str]:
    crs = geojson.get("crs") or {}
    properties = crs.get("properties") or {}
    return properties.get("name")


def _project_rings(rings: Sequence[Sequence[Sequence[float]]], transform: Transform) -> List[List[List[float]]]:
    return [[transform(coordinate) for coordinate in ring] for ring in rings]


def _project_geometry(geometry: Optional[Dict[str, Any]], transform: Transform) -> Optional[Dict[str, Any]]:
    if not geometry:
        return geometry
    kind = geometry.get("type")
    if kind == "Polygon":
        return {**geometry, "coordinates": _project_rings(geometry["coordinates"], transform)}
    if kind == "MultiPolygon":
        return {
            **geometry,
            "coordinates": [_project_rings(polygon, transform) for polygon in geometry["coordinates"]],
        }
    return geometry


def project_feature_collection(
    geojson: Dict[str, Any],
    transform: Optional[Transform] = None,
    *,
    force: bool = False,
) -> Dict[str, Any]:
    """Proyecta una FeatureCollection a latitud/longitud.

    Solo se transforma si el CRS declarado es EPSG:2230 o ``force`` es True;
    en otro caso se asume WGS84 y se devuelve sin cambios.

    English:
        Project a FeatureCollection to latitude/longitude. Only transformed
        when the declared CRS is EPSG:2230 or ``force`` is True; otherwise it
        is assumed to be WGS84 and returned unchanged.
    """
    if geojson.get("type") != "FeatureCollection" or not isinstance(geojson.get("features"), list):
        raise ValueError("Expected a GeoJSON FeatureCollection with a features list")
    if not force and crs_name(geojson) not in STATE_PLANE_CRS_NAMES:
        return geojson

    transform = transform or state_plane_to_wgs84
    projected = {key: value for key, value in geojson.items() if key != "crs"}
    projected["features"] = [
        {**feature, "geometry": _project_geometry(feature.get("geometry"), transform)}
        for feature in geojson["features"]
    ]
    logger.debug("features_projected", features=len(projected["features"]), crs=crs_name(geojson))
    return projected


def _normalise_key(value: Any) -> str:
    text = str(value).strip()
    if text.isdigit():
        return str(int(text))
    return text


def build_leader_overlay(
    geojson: Dict[str, Any],
    snapshot: Snapshot,
    palette: CandidatePalette,
    *,
    kind: ScopeKind = ScopeKind.PRECINCT,
    key_property: str = "consnum",
) -> Dict[str, Any]:
    """Añade líder y color de relleno a cada polígono.

    Propiedades añadidas: ``leader``, ``leader_party``, ``leader_status``,
    ``margin``, ``total_votes`` y ``fill_color``. Un polígono sin
    resultados recibe ``no_results`` y el color neutro.

    English:
        Add leader and fill colour to each polygon. A polygon without
        results gets ``no_results`` and the neutral colour.
    """
    if kind is ScopeKind.CONTEST:
        raise ValueError("Map overlays are built per community or precinct")

    scopes = {_normalise_key(name): scope for name, scope in snapshot.scopes(kind).items()}
    matched = 0
    features = []
    for feature in geojson.get("features", []):
        properties = dict(feature.get("properties") or {})
        raw_key = properties.get(key_property)
        scope = scopes.get(_normalise_key(raw_key)) if raw_key is not None else None
        result: LeaderResult = resolve_leader(scope) if scope is not None else NO_RESULTS
        if scope is not None:
            matched += 1
        properties.update(
            {
                "leader": result.leader.candidate_name if result.leader else None,
                "leader_party": result.leader.party if result.leader else None,
                "leader_status": result.status.value,
                "margin": result.margin,
                "total_votes": scope.total_votes if scope is not None else 0,
                "fill_color": palette.fill_color(result),
            }
        )
        features.append({**feature, "properties": properties})

    logger.info(
        "leader_overlay_built",
        batch_id=snapshot.batch_id,
        kind=kind.value,
        features=len(features),
        matched=matched,
    )
    return {**geojson, "features": features}
