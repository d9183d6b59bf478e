# mesa/pipeline.py
# -*- coding: utf-8 -*-
"""
Orquestador del registro de documentos.

Flujo (un adjunto = una ejecución secuencial)
----
1) analyze_file / validate_file   -> rechazo con razón legible si no es procesable
2) aviso de acceso limitado         (ciudadanos / Guest: se registra igual)
3) DocumentClassifier.analyze       (nunca falla)
4) ExpedienteRegistrar.register     (expediente temporal si el almacén falla)
5) respuesta principal + avisos secundarios espaciados por notice_delay

Cualquier error inesperado se captura aquí: se registra con logger.exception
y el usuario recibe el mensaje genérico de "error temporal".
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, List

from fastapi.concurrency import run_in_threadpool

from core.config import Settings
from core.logging import log_event, logger
from services.expediente_service import ExpedienteRegistrar
from services.usuario_service import UsuarioService
from .classifier import DocumentClassifier
from .file_info import analyze_file, validate_file
from .schemas import AnalisisDocumento, ArchivoInfo, PerfilUsuario, RegistroResultado

ICONOS = {
    "documento": "📄",
    "foto": "📸",
    "imagen": "🖼️",
    "pdf": "📋",
    "video": "🎥",
    "audio": "🎵",
}

MENSAJE_ERROR_TEMPORAL = (
    "❌ **Error temporal del sistema**\n\n"
    "Intenta de nuevo en unos momentos.\n\n"
    "Si el problema persiste, contacta al administrador."
)


# ------------------------------------------------------------
# 1. Textos
# ------------------------------------------------------------

def build_rejection_message(razon: str, settings: Settings) -> str:
    max_mb = round(settings.max_file_size / 1024 / 1024)
    return (
        f"❌ **Archivo no válido**\n\n**Razón:** {razon}\n\n"
        f"**Formatos soportados:**\n• 📄 PDF (hasta {max_mb}MB)\n• 📸 Imágenes JPG, PNG, WEBP\n\n"
        "¿Podrías enviar el archivo en un formato compatible?"
    )


def build_registration_message(
    info: ArchivoInfo,
    analisis: AnalisisDocumento,
    registro: RegistroResultado,
    perfil: PerfilUsuario,
    tipo_mensaje: str,
) -> str:
    icono = ICONOS.get(tipo_mensaje, "📎")
    estado = "Registrado" if registro.registrado else registro.expediente.estado
    numero = registro.numero_expediente

    lines = [
        f"✅ **{icono} {tipo_mensaje.upper()} registrado**",
        "",
        f"📋 **Expediente:** {numero}",
        f"**Fecha:** {registro.expediente.fecha_recepcion}",
        f"**Estado:** {estado}",
        "",
        f"📄 **Archivo:** {info.file_name}",
        f"**Tamaño:** {round(info.file_size / 1024)} KB",
        f"**Tipo detectado:** {analisis.tipo}",
        "",
        "🏢 **Procesamiento:**",
        f"**Asignado a:** {analisis.area_responsable}",
        f"**Prioridad:** {analisis.prioridad}",
        f"**Tiempo estimado:** {analisis.tiempo_estimado}",
        "",
        f"📝 **Asunto:** {analisis.asunto_detectado}",
        "",
        f"**Para seguimiento:** /estado {numero}",
    ]

    if not registro.registrado:
        lines += ["", "⚠️ *Registro temporal - se sincronizará con el sistema principal*"]
    if analisis.requiere_revision:
        lines += ["", "🔍 *Este documento será revisado manualmente por el área responsable*"]
    if not perfil.es_interno:
        lines += ["", "👤 *Como ciudadano, recibirás notificaciones del progreso de tu expediente*"]

    return "\n".join(lines)


def build_secondary_notices(
    info: ArchivoInfo,
    analisis: AnalisisDocumento,
    perfil: PerfilUsuario,
    numero_expediente: str,
) -> List[str]:
    avisos: List[str] = []

    if analisis.prioridad in ("Muy Urgente", "Alta"):
        avisos.append(
            f"⚡ **Prioridad {analisis.prioridad}**\n\n"
            "Este documento será procesado con prioridad debido a su naturaleza urgente."
        )

    if analisis.requiere_revision:
        avisos.append(
            "🔍 **Revisión requerida**\n\n"
            "Este documento necesita revisión manual del área responsable "
            "para garantizar el procesamiento correcto."
        )

    if not perfil.es_interno:
        avisos.append(
            "💡 **Consejos para seguimiento:**\n\n"
            f"• Guarda el número de expediente: {numero_expediente}\n"
            "• Puedes consultar el estado en cualquier momento\n"
            "• Recibirás notificaciones de cambios importantes"
        )

    if info.tipo_detectado == "imagen":
        avisos.append(
            "📸 **Procesamiento de imagen**\n\n"
            "La imagen será revisada por el área responsable. Si el texto no es legible, "
            "es posible que requiera intervención manual."
        )

    return avisos


# ------------------------------------------------------------
# 2. Orquestador
# ------------------------------------------------------------

class DocumentPipeline:
    def __init__(
        self,
        transport,
        classifier: DocumentClassifier,
        registrar: ExpedienteRegistrar,
        settings: Settings,
    ):
        self.transport = transport
        self.classifier = classifier
        self.registrar = registrar
        self.settings = settings

    async def _send_notices(self, chat_id: int, avisos: List[str]) -> None:
        for aviso in avisos:
            # respeta el orden percibido en el chat
            await asyncio.sleep(self.settings.notice_delay)
            await self.transport.send_message(chat_id, aviso)

    async def process_document(
        self,
        chat_id: int,
        attachment: Dict[str, Any],
        chat_user: Dict[str, Any],
        perfil: PerfilUsuario,
        tipo_mensaje: str = "documento",
    ) -> Dict[str, Any]:
        """
        Devuelve el payload de respuesta (también enviado al chat):
            {"status": "registrado" | "temporal" | "rechazado" | "error", ...}
        """
        session_id = str(chat_id)
        try:
            await self.transport.send_uploading(chat_id)

            info = analyze_file(attachment, tipo_mensaje, self.settings)
            logger.info(
                f"📊 Archivo analizado: {info.file_name} tipo={info.tipo_detectado} "
                f"procesable={info.es_procesable} tamaño={round(info.file_size / 1024)} KB"
            )
            log_event(session_id, {"event": "document_received", "archivo": info.model_dump()})

            validacion = validate_file(info, self.settings)
            if not validacion.valido:
                await self.transport.send_message(
                    chat_id, build_rejection_message(validacion.razon or "", self.settings)
                )
                log_event(session_id, {"event": "document_rejected", "razon": validacion.razon})
                return {"status": "rechazado", "razon": validacion.razon, "archivo": info.model_dump()}

            if not UsuarioService.tiene_permisos(perfil, "registrar"):
                await self.transport.send_message(
                    chat_id,
                    "⚠️ **Acceso limitado**\n\n"
                    "Como usuario externo, tu documento será registrado como solicitud ciudadana "
                    "y derivado al área correspondiente para su procesamiento.\n\n"
                    "**Continuando con el registro...**",
                )

            await self.transport.send_typing(chat_id)

            analisis = await run_in_threadpool(self.classifier.analyze, info, perfil, tipo_mensaje)

            usuario_ref = chat_user.get("username") or chat_user.get("id")
            nota = f"Archivo: {info.file_name}, Tipo: {tipo_mensaje}, Usuario: @{usuario_ref}"
            registro = await run_in_threadpool(self.registrar.register, info, analisis, perfil, nota)

            payload = self._build_payload(info, analisis, registro, perfil)

            mensaje = build_registration_message(info, analisis, registro, perfil, tipo_mensaje)
            if perfil.es_interno and UsuarioService.tiene_permisos(perfil, "derivar"):
                numero = registro.numero_expediente
                botones = [[
                    {"text": "🔄 Derivar expediente", "callback_data": f"derivar_{numero}"},
                    {"text": "📊 Ver detalles", "callback_data": f"detalles_{numero}"},
                ]]
                await self.transport.send_message_with_buttons(chat_id, mensaje, botones)
            else:
                await self.transport.send_message(chat_id, mensaje)

            await self._send_notices(chat_id, payload["avisos"])

            log_event(
                session_id,
                {
                    "event": "document_registered",
                    "numero_expediente": registro.numero_expediente,
                    "registrado": registro.registrado,
                    "analisis": analisis.model_dump(),
                },
            )
            logger.info(
                f"✅ Documento {tipo_mensaje} procesado: {registro.numero_expediente} "
                f"({perfil.nombre_completo} -> {analisis.area_responsable}, registrado={registro.registrado})"
            )
            return payload

        except Exception as e:
            logger.exception(f"❌ Error procesando {tipo_mensaje} (chat {chat_id}): {e}")
            await self.transport.send_message(chat_id, MENSAJE_ERROR_TEMPORAL)
            return {"status": "error", "mensaje": MENSAJE_ERROR_TEMPORAL}

    def _build_payload(
        self,
        info: ArchivoInfo,
        analisis: AnalisisDocumento,
        registro: RegistroResultado,
        perfil: PerfilUsuario,
    ) -> Dict[str, Any]:
        numero = registro.numero_expediente
        avisos = build_secondary_notices(info, analisis, perfil, numero)
        if not registro.registrado:
            avisos.insert(
                0,
                "⚠️ **Registro temporal**\n\n"
                "El sistema de registro no está disponible en este momento. "
                "Tu expediente quedó pendiente de sincronización.",
            )

        return {
            "status": "registrado" if registro.registrado else "temporal",
            "numero_expediente": numero,
            "estado": registro.expediente.estado,
            "registrado": registro.registrado,
            "tipo": analisis.tipo,
            "area_responsable": analisis.area_responsable,
            "prioridad": analisis.prioridad,
            "tiempo_estimado": analisis.tiempo_estimado,
            "asunto": analisis.asunto_detectado,
            "requiere_revision": analisis.requiere_revision,
            "confianza": analisis.confianza,
            "seguimiento": f"Para seguimiento: /estado {numero}",
            "avisos": avisos,
        }
