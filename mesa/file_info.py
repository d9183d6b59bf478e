# mesa/file_info.py
# -*- coding: utf-8 -*-
"""
Normalizador de adjuntos.

Rol
----
- analyze_file(attachment, tipo_mensaje, settings):
    adjunto de Telegram (document / photo / ...) -> ArchivoInfo
    (nombre, extensión, MIME, tipo grueso, flag de procesable)
- validate_file(info, settings):
    razón legible para el usuario cuando el archivo no se puede procesar

Nunca levanta excepciones: lo desconocido termina como
tipo_detectado="desconocido" y es_procesable=False.
"""

from __future__ import annotations

import time
from typing import Any, Dict, Optional

from core.config import Settings
from .schemas import ArchivoInfo, TipoArchivo, ValidacionArchivo
from .utils_text import split_stem

# ------------------------------------------------------------
# 1. Tablas de MIME / extensión
# ------------------------------------------------------------

MIME_TO_EXT: Dict[str, str] = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
    "image/webp": "webp",
    "application/pdf": "pdf",
    "video/mp4": "mp4",
    "audio/mpeg": "mp3",
    "audio/ogg": "ogg",
}

EXT_TO_MIME: Dict[str, str] = {ext: mime for mime, ext in MIME_TO_EXT.items()}
EXT_TO_MIME["jpeg"] = "image/jpeg"

IMAGE_EXTENSIONS = ("jpg", "jpeg", "png", "gif", "webp")
DOCUMENT_EXTENSIONS = ("doc", "docx", "xls", "xlsx", "txt")

# prefijo del nombre sintetizado según el tipo de mensaje
NOMBRE_BASE_POR_TIPO: Dict[str, str] = {
    "foto": "imagen",
    "video": "video",
    "audio": "audio",
    "voice": "nota_voz",
    "documento": "documento",
}


# ------------------------------------------------------------
# 2. Resolución de campos
# ------------------------------------------------------------

def resolve_extension(attachment: Dict[str, Any]) -> str:
    file_name = attachment.get("file_name")
    if file_name:
        _, ext = split_stem(file_name)
        if ext:
            return ext.lower()

    mime = attachment.get("mime_type")
    if mime:
        return MIME_TO_EXT.get(mime, "bin")

    return "bin"


def resolve_mime_type(attachment: Dict[str, Any], extension: str) -> str:
    mime = attachment.get("mime_type")
    if mime:
        return mime
    return EXT_TO_MIME.get(extension, "application/octet-stream")


def resolve_file_name(
    attachment: Dict[str, Any],
    extension: str,
    tipo_mensaje: Optional[str] = None,
    now_ms: Optional[int] = None,
) -> str:
    """Nombre explícito si existe; si no, <base>_<epoch_ms>.<ext> (fotos de cámara, etc.)."""
    if attachment.get("file_name"):
        return attachment["file_name"]

    ts = now_ms if now_ms is not None else int(time.time() * 1000)
    base = NOMBRE_BASE_POR_TIPO.get(tipo_mensaje or "documento", "archivo")
    return f"{base}_{ts}.{extension}"


def detect_file_kind(extension: str, mime_type: str) -> TipoArchivo:
    if extension in IMAGE_EXTENSIONS or mime_type.startswith("image/"):
        return "imagen"
    if extension == "pdf" or mime_type == "application/pdf":
        return "pdf"
    if extension in DOCUMENT_EXTENSIONS:
        return "documento"
    return "desconocido"


# ------------------------------------------------------------
# 3. API pública
# ------------------------------------------------------------

def analyze_file(
    attachment: Dict[str, Any],
    tipo_mensaje: Optional[str],
    settings: Settings,
    now_ms: Optional[int] = None,
) -> ArchivoInfo:
    """
    attachment: dict tal como llega en el update de Telegram
        {"file_id": "...", "file_name": "...", "mime_type": "...", "file_size": 123}
    """
    extension = resolve_extension(attachment)
    mime_type = resolve_mime_type(attachment, extension)
    file_name = resolve_file_name(attachment, extension, tipo_mensaje, now_ms)

    try:
        file_size = int(attachment.get("file_size") or 0)
    except (TypeError, ValueError):
        file_size = 0

    tipo = detect_file_kind(extension, mime_type)

    es_procesable = (
        extension in settings.supported_extensions
        and tipo != "desconocido"
        and file_size <= settings.max_file_size
    )

    return ArchivoInfo(
        file_id=str(attachment.get("file_id") or ""),
        file_name=file_name,
        file_size=file_size,
        mime_type=mime_type,
        extension=extension,
        tipo_detectado=tipo,
        es_procesable=es_procesable,
    )


def validate_file(info: ArchivoInfo, settings: Settings) -> ValidacionArchivo:
    """Tamaño -> tipo -> MIME, en ese orden (la primera razón gana)."""
    if info.file_size > settings.max_file_size:
        max_mb = round(settings.max_file_size / 1024 / 1024)
        return ValidacionArchivo(valido=False, razon=f"Archivo muy grande (máx. {max_mb}MB)")

    if not info.es_procesable:
        return ValidacionArchivo(
            valido=False,
            razon=f"Tipo de archivo no soportado ({info.extension})",
        )

    if info.mime_type and info.mime_type not in settings.supported_mime_types:
        return ValidacionArchivo(
            valido=False,
            razon=f"Formato no soportado ({info.mime_type})",
        )

    return ValidacionArchivo(valido=True)
