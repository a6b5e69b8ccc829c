"""
======================== ÍNDICE / INDEX ========================
1. Descripción general / Overview
2. Componentes principales / Main components
3. Notas de mantenimiento / Maintenance notes

======================== ESPAÑOL ========================
Archivo: `src/election_tracker/__init__.py`.
Paquete del rastreador de lotes electorales: agrega exportaciones de
resultados por contienda, comunidad y precinto, y calcula diferencias
entre lotes sucesivos.

Componentes detectados:
  - __version__

======================== ENGLISH ========================
File: `src/election_tracker/__init__.py`.
Election batch tracker package: aggregates results exports by contest,
community and precinct, and computes deltas between successive batches.

Detected components:
  - __version__
"""

__version__ = "0.3.0"
