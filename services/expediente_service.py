# services/expediente_service.py
# -*- coding: utf-8 -*-
"""
Registro y consulta de expedientes sobre el almacén de filas.

- ExpedienteRegistrar : genera número de expediente, arma la fila y la agrega;
                        si el almacén falla, devuelve un expediente temporal
- ExpedienteDirectory : búsqueda, filtros por estado/área, cambio de estado,
                        derivación y estadísticas (lado de lectura)

Ninguna operación propaga errores del almacén: se registran en el log y se
degradan a un resultado vacío / False / temporal.
"""

from __future__ import annotations

import time
from datetime import datetime
from typing import Callable, List, Optional, Tuple

from core.config import Settings
from core.logging import logger
from mesa.expediente_rows import COL, expediente_to_row, pad_row, row_to_expediente
from mesa.schemas import (
    ESTADO_TEMPORAL,
    ESTADOS,
    PRIORIDADES,
    AnalisisDocumento,
    ArchivoInfo,
    EstadisticasExpedientes,
    Expediente,
    PerfilUsuario,
    RegistroResultado,
)
from services.row_store import RowStore, RowStoreError, row_range

Clock = Callable[[], datetime]

OBSERVACION_TEMPORAL = "Registro temporal - pendiente de sincronización"

# vocabulario de tipo_documento del expediente (distinto al del análisis)
TIPOS_EXPEDIENTE = [
    ("oficio", "Oficio"),
    ("informe", "Informe"),
    ("solicitud", "Solicitud"),
    ("memorando", "Memorando"),
]


def generate_case_number(now: datetime) -> str:
    """YYYY-MMDDHHMMSS (resolución de segundos)."""
    return now.strftime("%Y-%m%d%H%M%S")


def document_code(tipo_expediente: str, numero_secuencial: int) -> str:
    prefijo = "E" if tipo_expediente == "Externo" else "C"
    return f"{prefijo}-{numero_secuencial}"


def case_document_type(info: ArchivoInfo) -> str:
    nombre = info.file_name.lower()
    for keyword, tipo in TIPOS_EXPEDIENTE:
        if keyword in nombre:
            return tipo
    return "Formulario"


# ------------------------------------------------------------
# 1. Registro
# ------------------------------------------------------------

class ExpedienteRegistrar:
    def __init__(self, store: RowStore, settings: Settings, clock: Clock = datetime.now):
        self.store = store
        self.settings = settings
        self.clock = clock

    @property
    def sheet_id(self) -> str:
        return self.settings.google_sheets_expedientes_id

    def next_sequence_number(self) -> int:
        """
        Cantidad de filas usadas (encabezado incluido) = próximo número.
        Sin bloqueo: dos registros simultáneos pueden repetir número.
        """
        try:
            return len(self.store.get_rows(self.sheet_id))
        except Exception as e:
            logger.warning(f"⚠️ Error obteniendo número secuencial, usando timestamp: {e}")
            return int(time.time() * 1000) % 10000

    def build_expediente(
        self,
        info: ArchivoInfo,
        analisis: AnalisisDocumento,
        perfil: PerfilUsuario,
        numero_expediente: str,
        numero_secuencial: int,
        now: datetime,
        nota: Optional[str] = None,
    ) -> Expediente:
        tipo = "Interno" if perfil.es_interno else "Externo"
        fecha = now.strftime(self.settings.date_format)

        return Expediente(
            tipo=tipo,
            exp=numero_secuencial,
            doc=document_code(tipo, numero_secuencial),
            folios=1,
            fecha_recepcion=fecha,
            hora=now.strftime(self.settings.time_format),
            fecha_emision=fecha,
            tipo_documento=case_document_type(info),
            emisor_responsable=perfil.nombre_completo,
            emisor_area=perfil.area,
            asunto=analisis.asunto_detectado,
            prioridad=analisis.prioridad,
            estado="Recibido",
            # vacío = se queda en el área del emisor
            derivado_area=analisis.area_responsable if analisis.area_responsable != perfil.area else "",
            numero_expediente=numero_expediente,
            archivo_original=info.file_name,
            observaciones=nota or "",
        )

    def register(
        self,
        info: ArchivoInfo,
        analisis: AnalisisDocumento,
        perfil: PerfilUsuario,
        nota: Optional[str] = None,
    ) -> RegistroResultado:
        now = self.clock()
        numero_expediente = generate_case_number(now)
        numero_secuencial = self.next_sequence_number()

        expediente = self.build_expediente(
            info, analisis, perfil, numero_expediente, numero_secuencial, now, nota
        )

        try:
            self.store.append_row(self.sheet_id, expediente_to_row(expediente))
        except Exception as e:
            logger.warning(f"❌ Error registrando expediente {numero_expediente}: {e}")
            temporal = expediente.model_copy(
                update={"estado": ESTADO_TEMPORAL, "observaciones": OBSERVACION_TEMPORAL}
            )
            return RegistroResultado(
                numero_expediente=numero_expediente,
                expediente=temporal,
                registrado=False,
            )

        logger.info(f"✅ Expediente {numero_expediente} registrado ({expediente.doc})")
        return RegistroResultado(numero_expediente=numero_expediente, expediente=expediente)


# ------------------------------------------------------------
# 2. Consulta / actualización
# ------------------------------------------------------------

class ExpedienteDirectory:
    def __init__(self, store: RowStore, settings: Settings, clock: Clock = datetime.now):
        self.store = store
        self.settings = settings
        self.clock = clock

    @property
    def sheet_id(self) -> str:
        return self.settings.google_sheets_expedientes_id

    def _data_rows(self) -> List[List[str]]:
        rows = self.store.get_rows(self.sheet_id)
        return rows[1:] if len(rows) > 1 else []

    def _find(self, numero_expediente: str) -> Optional[Tuple[int, List[str]]]:
        """(índice 0-based en la hoja, fila); el encabezado nunca coincide."""
        rows = self.store.get_rows(self.sheet_id)
        for idx, row in enumerate(rows):
            if idx == 0:
                continue
            if any(cell and numero_expediente in str(cell) for cell in row):
                return idx, list(row)
        return None

    def find(self, numero_expediente: str) -> Optional[Expediente]:
        try:
            found = self._find(numero_expediente)
        except RowStoreError as e:
            logger.warning(f"⚠️ Error buscando expediente {numero_expediente}: {e}")
            return None
        if found is None:
            return None
        return row_to_expediente(found[1])

    def list_by_status(self, estado: str) -> List[Expediente]:
        try:
            rows = self._data_rows()
        except RowStoreError as e:
            logger.warning(f"⚠️ Error obteniendo expedientes por estado: {e}")
            return []
        idx = COL["estado"]
        return [row_to_expediente(r) for r in rows if len(r) > idx and r[idx] == estado]

    def list_by_area(self, area: str) -> List[Expediente]:
        try:
            rows = self._data_rows()
        except RowStoreError as e:
            logger.warning(f"⚠️ Error obteniendo expedientes por área: {e}")
            return []

        needle = area.lower()
        emisor, derivado = COL["emisor_area"], COL["derivado_area"]

        def matches(row: List[str]) -> bool:
            return any(
                len(row) > i and row[i] and needle in row[i].lower()
                for i in (emisor, derivado)
            )

        return [row_to_expediente(r) for r in rows if matches(r)]

    def list_all(self) -> List[Expediente]:
        try:
            return [row_to_expediente(r) for r in self._data_rows()]
        except RowStoreError as e:
            logger.warning(f"⚠️ Error listando expedientes: {e}")
            return []

    def _rewrite(self, numero_expediente: str, updates: dict, action: str) -> bool:
        try:
            found = self._find(numero_expediente)
            if found is None:
                return False
            idx, row = found
            cells = pad_row(row)
            for name, value in updates.items():
                cells[COL[name]] = value
            self.store.update_row(self.sheet_id, row_range(idx), cells)
        except RowStoreError as e:
            logger.warning(f"⚠️ Error en {action} del expediente {numero_expediente}: {e}")
            return False

        logger.info(f"✅ Expediente {numero_expediente}: {action} ({updates})")
        return True

    def update_status(self, numero_expediente: str, nuevo_estado: str) -> bool:
        return self._rewrite(numero_expediente, {"estado": nuevo_estado}, "cambio de estado")

    def derive(
        self,
        numero_expediente: str,
        area_destino: str,
        responsable_destino: str,
        tipo_derivacion: str = "Derivado",
    ) -> bool:
        return self._rewrite(
            numero_expediente,
            {
                "estado": "Derivado",
                "derivado_area": area_destino,
                "derivado_responsable": responsable_destino,
                "tipo_derivado": tipo_derivacion,
            },
            "derivación",
        )

    def statistics(self) -> EstadisticasExpedientes:
        stats = EstadisticasExpedientes(
            por_estado={e: 0 for e in ESTADOS},
            por_prioridad={p: 0 for p in PRIORIDADES},
            por_tipo={"Interno": 0, "Externo": 0},
        )

        try:
            expedientes = [row_to_expediente(r) for r in self._data_rows()]
        except RowStoreError as e:
            logger.warning(f"⚠️ Error obteniendo estadísticas de expedientes: {e}")
            return stats

        hoy = self.clock().strftime(self.settings.date_format)
        stats.total = len(expedientes)

        for exp in expedientes:
            if exp.fecha_recepcion == hoy:
                stats.hoy += 1
            stats.por_estado[exp.estado] = stats.por_estado.get(exp.estado, 0) + 1
            stats.por_prioridad[exp.prioridad] = stats.por_prioridad.get(exp.prioridad, 0) + 1
            stats.por_tipo[exp.tipo] = stats.por_tipo.get(exp.tipo, 0) + 1

        return stats
