# mesa/schemas.py
# -*- coding: utf-8 -*-
"""
Tipos de dominio de la Mesa de Partes digital.

- ArchivoInfo              : descriptor uniforme de un adjunto (inmutable)
- PerfilUsuario            : perfil del solicitante (usuarios internos / ciudadanos)
- AnalisisDocumento        : decisión de clasificación (área, prioridad, confianza, ...)
- Expediente               : registro de expediente, 21 columnas de la hoja
- RegistroResultado        : resultado del registro (número + expediente + flag)
- ValidacionArchivo        : validación previa (válido / razón para el usuario)
- EstadisticasExpedientes  : conteos agregados para /reportes y la API
"""

from __future__ import annotations

from typing import Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field

# ------------------------------------------------------------
# 1. Vocabularios
# ------------------------------------------------------------

TipoArchivo = Literal["pdf", "imagen", "documento", "desconocido"]
PrioridadNivel = Literal["Baja", "Media", "Alta", "Muy Urgente"]
AccesoNivel = Literal["Guest", "User", "Admin", "Super"]
TipoExpediente = Literal["Interno", "Externo"]

PRIORIDADES = ("Baja", "Media", "Alta", "Muy Urgente")
ACCESOS = ("Guest", "User", "Admin", "Super")

ESTADOS = (
    "Recibido",
    "Derivado",
    "Por atender",
    "Atendido",
    "En proceso",
    "Observado",
)
ESTADO_TEMPORAL = "Recibido (temporal)"

# área sentinela de los usuarios externos
AREAS_EXTERNAS = ("externo", "ciudadano")


class ArchivoInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    file_id: str = ""
    file_name: str
    file_size: int = 0
    mime_type: str = "application/octet-stream"
    extension: str = "bin"
    tipo_detectado: TipoArchivo = "desconocido"
    es_procesable: bool = False


class PerfilUsuario(BaseModel):
    model_config = ConfigDict(frozen=True)

    telegram_id: str
    nombre: str = ""
    apellido_paterno: str = ""
    apellido_materno: str = ""
    area: str = "Mesa de Partes"
    cargo: str = "Usuario"
    acceso: AccesoNivel = "Guest"
    email: str = ""
    telefono: str = ""

    @computed_field  # type: ignore[misc]
    @property
    def nombre_completo(self) -> str:
        return f"{self.nombre} {self.apellido_paterno} {self.apellido_materno}".strip()

    @computed_field  # type: ignore[misc]
    @property
    def es_interno(self) -> bool:
        return self.area.lower() not in AREAS_EXTERNAS

    @computed_field  # type: ignore[misc]
    @property
    def es_admin(self) -> bool:
        return self.acceso in ("Admin", "Super")


class AnalisisDocumento(BaseModel):
    model_config = ConfigDict(frozen=True)

    tipo: str
    area_responsable: str
    prioridad: PrioridadNivel = "Media"
    tiempo_estimado: str
    observaciones: str = ""
    asunto_detectado: str = ""
    requiere_revision: bool = True
    confianza: float = Field(default=0.5, ge=0.0, le=1.0)


class Expediente(BaseModel):
    """Una fila de la hoja de expedientes (columnas A-U)."""

    tipo: str = "Externo"
    exp: int = 0
    doc: str = ""
    folios: int = 1
    fecha_recepcion: str = ""
    hora: str = ""
    fecha_emision: str = ""
    tipo_documento: str = "Formulario"
    nro_documento: str = ""
    emisor_responsable: str = ""
    emisor_area: str = ""
    asunto: str = ""
    referencia: str = ""
    prioridad: str = "Media"
    estado: str = "Recibido"
    derivado_area: str = ""
    derivado_responsable: str = ""
    tipo_derivado: str = ""
    numero_expediente: str = ""
    archivo_original: str = ""
    observaciones: str = ""


class RegistroResultado(BaseModel):
    numero_expediente: str
    expediente: Expediente
    registrado: bool = True


class ValidacionArchivo(BaseModel):
    valido: bool
    razon: Optional[str] = None


class EstadisticasExpedientes(BaseModel):
    total: int = 0
    hoy: int = 0
    por_estado: Dict[str, int] = Field(default_factory=dict)
    por_prioridad: Dict[str, int] = Field(default_factory=dict)
    por_tipo: Dict[str, int] = Field(default_factory=dict)
