# services/row_store.py
# -*- coding: utf-8 -*-
"""
Contrato de almacén de filas (hoja de cálculo) y respaldo SQL local.

Todo el núcleo (usuarios, registro y consulta de expedientes) habla con
el almacén solo a través de tres operaciones sobre filas de strings:

- get_rows(sheet_id)                     -> List[List[str]]
- append_row(sheet_id, row)
- update_row(sheet_id, range_spec, row)  range_spec = "Sheet1!A<n>:U<n>"

Backends:
- services/sheets_client.GoogleSheetsRowStore : Google Sheets (producción)
- SqlRowStore (este módulo)                   : SQLAlchemy, MySQL o SQLite

Cualquier fallo de transporte/BD se levanta como RowStoreError.
"""

from __future__ import annotations

import re
from typing import Dict, List, Optional, Protocol, Sequence

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from core.logging import logger
from db.models.sheet_row import SheetRow
from db.session import Base, session_scope

_RANGE_ROW_RE = re.compile(r"![A-Z]+(\d+):")


class RowStoreError(Exception):
    """Fallo del almacén de filas (red, HTTP, base de datos)."""


class RowStore(Protocol):
    def get_rows(self, sheet_id: str) -> List[List[str]]:
        ...

    def append_row(self, sheet_id: str, row: Sequence[str]) -> None:
        ...

    def update_row(self, sheet_id: str, range_spec: str, row: Sequence[str]) -> None:
        ...


def row_range(index: int, last_column: str = "U") -> str:
    """Índice 0-based de fila -> rango A1 de la hoja ("Sheet1!A5:U5")."""
    n = index + 1
    return f"Sheet1!A{n}:{last_column}{n}"


def parse_row_index(range_spec: str) -> int:
    """Inverso de row_range: "Sheet1!A5:U5" -> 4."""
    m = _RANGE_ROW_RE.search(range_spec)
    if not m:
        raise RowStoreError(f"Rango inválido: {range_spec}")
    return int(m.group(1)) - 1


class SqlRowStore:
    """
    Almacén de filas sobre SQLAlchemy.

    Se usa cuando no hay credenciales de Google: mismas semánticas que la
    hoja (fila 0 = encabezado, último en escribir gana, sin bloqueos).
    """

    def __init__(self, session_factory: sessionmaker):
        self._factory = session_factory

    def create_tables(self) -> None:
        Base.metadata.create_all(bind=self._factory.kw["bind"])

    def ensure_header(self, sheet_id: str, header: Sequence[str]) -> None:
        """Si la hoja está vacía, escribe la fila de encabezados."""
        if not self.get_rows(sheet_id):
            self.append_row(sheet_id, header)
            logger.info(f"🔹 Encabezados creados para la hoja '{sheet_id}'")

    def get_rows(self, sheet_id: str) -> List[List[str]]:
        try:
            with session_scope(self._factory) as db:
                rows = db.execute(
                    select(SheetRow)
                    .where(SheetRow.sheet_id == sheet_id)
                    .order_by(SheetRow.position.asc())
                ).scalars().all()
                return [[str(c) for c in (r.cells or [])] for r in rows]
        except SQLAlchemyError as e:
            raise RowStoreError(f"Error leyendo filas de '{sheet_id}': {e}") from e

    def append_row(self, sheet_id: str, row: Sequence[str]) -> None:
        try:
            with session_scope(self._factory) as db:
                last: Optional[int] = db.execute(
                    select(func.max(SheetRow.position)).where(SheetRow.sheet_id == sheet_id)
                ).scalar()
                position = 0 if last is None else last + 1
                db.add(SheetRow(sheet_id=sheet_id, position=position, cells=[str(c) for c in row]))
                db.commit()
        except SQLAlchemyError as e:
            raise RowStoreError(f"Error agregando fila a '{sheet_id}': {e}") from e

    def update_row(self, sheet_id: str, range_spec: str, row: Sequence[str]) -> None:
        position = parse_row_index(range_spec)
        try:
            with session_scope(self._factory) as db:
                obj = db.execute(
                    select(SheetRow).where(
                        SheetRow.sheet_id == sheet_id,
                        SheetRow.position == position,
                    )
                ).scalar_one_or_none()

                if obj is None:
                    # Igual que la hoja: escribir en un rango vacío crea la fila
                    obj = SheetRow(sheet_id=sheet_id, position=position)
                    db.add(obj)

                obj.cells = [str(c) for c in row]
                db.commit()
        except SQLAlchemyError as e:
            raise RowStoreError(f"Error actualizando fila {range_spec} de '{sheet_id}': {e}") from e


def seed_headers(store: SqlRowStore, headers: Dict[str, Sequence[str]]) -> None:
    for sheet_id, header in headers.items():
        store.ensure_header(sheet_id, header)
