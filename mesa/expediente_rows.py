# mesa/expediente_rows.py
# -*- coding: utf-8 -*-
"""
Mapeo único fila <-> Expediente (hoja de expedientes, columnas A-U).

COLUMNS es la única fuente de verdad del orden de columnas: lo usan
tanto expediente_to_row como row_to_expediente.
"""

from __future__ import annotations

from typing import Dict, List, Sequence

from .schemas import Expediente

COLUMNS: List[str] = [
    "tipo",                 # A
    "exp",                  # B
    "doc",                  # C
    "folios",               # D
    "fecha_recepcion",      # E
    "hora",                 # F
    "fecha_emision",        # G
    "tipo_documento",       # H
    "nro_documento",        # I
    "emisor_responsable",   # J
    "emisor_area",          # K
    "asunto",               # L
    "referencia",           # M
    "prioridad",            # N
    "estado",               # O
    "derivado_area",        # P
    "derivado_responsable", # Q
    "tipo_derivado",        # R
    "numero_expediente",    # S
    "archivo_original",     # T
    "observaciones",        # U
]

COL: Dict[str, int] = {name: i for i, name in enumerate(COLUMNS)}

HEADERS: List[str] = [
    "Tipo",
    "Exp",
    "Doc",
    "Folios",
    "Fecha Recepción",
    "Hora",
    "Fecha Emisión",
    "Tipo Documento",
    "Nro Documento",
    "Emisor - Responsable",
    "Emisor - Área",
    "Asunto",
    "Referencia",
    "Prioridad",
    "Estado",
    "Derivado - Área",
    "Derivado - Responsable",
    "Tipo Derivado",
    "Número Expediente",
    "Archivo Original",
    "Observaciones",
]

USUARIO_HEADERS: List[str] = [
    "telegram_id",
    "nombre",
    "apellido_paterno",
    "apellido_materno",
    "area",
    "cargo",
    "acceso",
    "email",
    "telefono",
]

_INT_FIELDS = {"exp": 0, "folios": 1}


def _to_int(value: str, default: int) -> int:
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return default


def expediente_to_row(expediente: Expediente) -> List[str]:
    data = expediente.model_dump()
    return [str(data[name]) for name in COLUMNS]


def row_to_expediente(row: Sequence[str]) -> Expediente:
    """
    Solo las celdas faltantes (la hoja recorta las vacías al final) usan el
    valor por defecto; una celda presente, aunque vacía, se copia tal cual.
    """
    data = {}
    for i, name in enumerate(COLUMNS):
        if i >= len(row):
            continue
        cell = "" if row[i] is None else str(row[i])

        if name in _INT_FIELDS:
            data[name] = _to_int(cell, _INT_FIELDS[name])
        else:
            data[name] = cell
    return Expediente(**data)


def pad_row(row: Sequence[str]) -> List[str]:
    """Completa la fila hasta 21 celdas antes de escribirla completa."""
    cells = ["" if c is None else str(c) for c in row]
    if len(cells) < len(COLUMNS):
        cells.extend([""] * (len(COLUMNS) - len(cells)))
    return cells
