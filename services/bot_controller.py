# services/bot_controller.py
# -*- coding: utf-8 -*-
"""
Controlador de mensajes del bot (un update de Telegram -> una respuesta).

Despacho
----
- "/..."                      -> comandos (/start, /perfil, /enviar, /estado, /reportes, /test, /help)
- document                    -> DocumentPipeline (tipo "documento")
- photo                       -> la foto de mayor tamaño (tipo "foto")
- video / audio / voice       -> aviso de formato no soportado
- texto con número de expediente (\\d{4}-\\d{10}) -> consulta en el directorio
- "1".."5"                    -> reportes administrativos
- texto con "buscar"/"expediente" -> instrucciones de búsqueda
- otro texto                  -> ayuda genérica

Cualquier excepción se registra y el usuario recibe el mensaje de error temporal.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Any, Dict, Optional

from fastapi.concurrency import run_in_threadpool

from core.config import Settings
from core.logging import log_event, logger
from mesa.pipeline import MENSAJE_ERROR_TEMPORAL, DocumentPipeline
from mesa.schemas import Expediente, EstadisticasExpedientes, PerfilUsuario
from services.expediente_service import ExpedienteDirectory
from services.usuario_service import UsuarioService

CASE_NUMBER_RE = re.compile(r"\d{4}-\d{10}")

FORMATOS_SOPORTADOS = (
    "Actualmente solo procesamos:\n• 📄 Documentos PDF\n• 📸 Imágenes\n\n"
    "¿Podrías enviar tu documento como PDF o imagen?"
)

LISTA_COMANDOS = (
    "/start - Inicio\n"
    "/enviar - Registrar documento\n"
    "/estado - Consultar expediente\n"
    "/reportes - Estadísticas\n"
    "/perfil - Mi información\n"
    "/test - Estado del sistema\n"
    "/help - Ayuda completa"
)


# ------------------------------------------------------------
# 1. Textos
# ------------------------------------------------------------

def format_case_card(numero: str, exp: Expediente) -> str:
    lines = [
        "📋 **Expediente encontrado**",
        "",
        f"**📋 Número:** {numero}",
        f"**📄 Código:** {exp.doc}",
        f"**📅 Fecha recepción:** {exp.fecha_recepcion} {exp.hora}",
        f"**👤 Emisor:** {exp.emisor_responsable}",
        f"**🏢 Área emisora:** {exp.emisor_area}",
        "",
        f"**📋 Estado actual:** {exp.estado}",
        f"**⚡ Prioridad:** {exp.prioridad}",
        f"**📝 Asunto:** {exp.asunto}",
    ]
    if exp.derivado_area:
        lines.append(f"**🔄 Derivado a:** {exp.derivado_area}")
    if exp.derivado_responsable:
        lines.append(f"**👤 Responsable:** {exp.derivado_responsable}")

    plural = "s" if exp.folios > 1 else ""
    lines += ["", f"**📊 Tipo:** {exp.tipo_documento} ({exp.folios} folio{plural})"]
    return "\n".join(lines)


def format_not_found(numero: str) -> str:
    return (
        "❌ **Expediente no encontrado**\n\n"
        f"**Número consultado:** {numero}\n\n"
        "**Posibles causas:**\n• Número incorrecto\n"
        "• Expediente muy reciente (aún procesándose)\n• Error de tipeo\n\n"
        "**Formato correcto:** AAAA-XXXXXXXXXX"
    )


def format_statistics(stats: EstadisticasExpedientes, titulo: str = "📊 **Estadísticas de expedientes**") -> str:
    def block(counts: Dict[str, int]) -> str:
        return "\n".join(f"• {k}: {v}" for k, v in counts.items() if v) or "• (sin datos)"

    return (
        f"{titulo}\n\n"
        f"**Total:** {stats.total}\n**Recibidos hoy:** {stats.hoy}\n\n"
        f"**Por estado:**\n{block(stats.por_estado)}\n\n"
        f"**Por prioridad:**\n{block(stats.por_prioridad)}\n\n"
        f"**Por tipo:**\n{block(stats.por_tipo)}"
    )


def permissions_description(perfil: PerfilUsuario) -> str:
    if perfil.acceso in ("Admin", "Super"):
        return "Completos (registrar, derivar, reportes)"
    if perfil.acceso == "User":
        return "Registrar y consultar documentos"
    return "Solo consultas y solicitudes ciudadanas"


# ------------------------------------------------------------
# 2. Controlador
# ------------------------------------------------------------

class BotController:
    def __init__(
        self,
        transport,
        usuarios: UsuarioService,
        directory: ExpedienteDirectory,
        pipeline: DocumentPipeline,
        settings: Settings,
    ):
        self.transport = transport
        self.usuarios = usuarios
        self.directory = directory
        self.pipeline = pipeline
        self.settings = settings

    async def handle_message(self, message: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        chat_id = message.get("chat", {}).get("id")
        chat_user = message.get("from") or {}
        texto: Optional[str] = message.get("text")

        if chat_id is None:
            logger.warning(f"Mensaje sin chat_id ignorado: {message}")
            return None

        try:
            logger.info(
                f"🔄 Procesando mensaje de {chat_user.get('first_name', '')} "
                f"(@{chat_user.get('username') or chat_user.get('id')}): {texto or 'sin texto'}"
            )

            perfil = await run_in_threadpool(self.usuarios.get_profile, chat_user)
            await self.transport.send_typing(chat_id)

            if texto and texto.startswith("/"):
                await self.handle_command(chat_id, texto, chat_user, perfil)
            elif message.get("document"):
                return await self.pipeline.process_document(
                    chat_id, message["document"], chat_user, perfil, "documento"
                )
            elif message.get("photo"):
                foto = self._largest_photo(message["photo"])
                await self.transport.send_message(
                    chat_id, "📸 **Procesando fotografía...**\n\n*Analizando documento capturado con cámara*"
                )
                return await self.pipeline.process_document(chat_id, foto, chat_user, perfil, "foto")
            elif message.get("video"):
                await self.transport.send_message(chat_id, f"❌ **Videos no soportados**\n\n{FORMATOS_SOPORTADOS}")
            elif message.get("audio") or message.get("voice"):
                await self.transport.send_message(chat_id, f"❌ **Audio no soportado**\n\n{FORMATOS_SOPORTADOS}")
            elif texto:
                await self.handle_free_text(chat_id, texto, perfil)
            else:
                await self.transport.send_message(
                    chat_id,
                    "🤔 **Tipo de mensaje no reconocido**\n\n**Puedo procesar:**\n"
                    "• 📄 Documentos PDF\n• 📸 Fotos e imágenes\n• 💬 Mensajes de texto\n"
                    "• ⚡ Comandos (/start, /perfil, etc.)\n\n¿Podrías enviar tu archivo nuevamente?",
                )
        except Exception as e:
            logger.exception(f"❌ Error procesando mensaje (chat {chat_id}): {e}")
            await self.transport.send_message(chat_id, MENSAJE_ERROR_TEMPORAL)

        return None

    @staticmethod
    def _largest_photo(sizes) -> Dict[str, Any]:
        # Telegram ordena los tamaños de menor a mayor
        foto = dict(sizes[-1])
        # Telegram siempre entrega las fotos comprimidas en JPEG, sin mime_type
        foto.setdefault("mime_type", "image/jpeg")
        return foto

    # ------------------------------------------------------------
    # 3. Comandos
    # ------------------------------------------------------------

    async def handle_command(
        self,
        chat_id: int,
        texto: str,
        chat_user: Dict[str, Any],
        perfil: PerfilUsuario,
    ) -> None:
        parts = texto.strip().split()
        # "/estado@MiBot 2025-..." -> "/estado"
        comando = parts[0].split("@")[0].lower()
        args = parts[1:]

        logger.info(f"⚡ Ejecutando comando: {comando} para usuario: {perfil.nombre_completo}")
        log_event(str(chat_id), {"event": "command", "command": comando, "args": args})

        if comando == "/start":
            await self.cmd_start(chat_id, perfil)
        elif comando == "/perfil":
            await self.cmd_perfil(chat_id, perfil)
        elif comando == "/enviar":
            await self.cmd_enviar(chat_id, perfil)
        elif comando == "/estado":
            match = CASE_NUMBER_RE.search(args[0]) if args else None
            if match:
                await self.lookup_case(chat_id, match.group(0))
            else:
                await self.cmd_estado(chat_id, perfil)
        elif comando == "/reportes":
            await self.cmd_reportes(chat_id, perfil)
        elif comando == "/test":
            await self.cmd_test(chat_id, chat_user, perfil)
        elif comando == "/help":
            await self.cmd_help(chat_id, perfil)
        else:
            await self.transport.send_message(
                chat_id,
                f"❓ **Comando no reconocido:** {texto}\n\n**Comandos disponibles:**\n{LISTA_COMANDOS}\n\n"
                "**💡 También puedes:**\n• Enviar archivos directamente\n"
                "• Escribir números de expediente\n• Hacer consultas en texto libre",
            )

    async def cmd_start(self, chat_id: int, perfil: PerfilUsuario) -> None:
        if perfil.es_interno:
            saludo = f"¡Hola {perfil.nombre}! 👋\n🏢 **{perfil.area}** - *{perfil.cargo}*\n"
        else:
            saludo = f"¡Hola {perfil.nombre}! 👋\n👤 **Ciudadano**\n"

        await self.transport.send_message(
            chat_id,
            f"{saludo}\n🏛️ **Bienvenido a la Mesa de Partes Digital**\n\n"
            "📋 **Servicios disponibles:**\n• Registrar documentos oficiales\n"
            "• Consultar estado de expedientes\n• Generar reportes y estadísticas\n\n"
            "**Comandos principales:**\n/enviar - Registrar documento\n/estado - Consultar expediente\n"
            "/reportes - Ver estadísticas\n/perfil - Ver mi información\n/help - Ayuda completa\n\n"
            "**¿En qué puedo ayudarte?**",
        )

    async def cmd_perfil(self, chat_id: int, perfil: PerfilUsuario) -> None:
        lines = [
            "👤 **Tu perfil en el sistema:**",
            "",
            f"**Nombre:** {perfil.nombre_completo}",
            f"**Área:** {perfil.area}",
            f"**Cargo:** {perfil.cargo}",
            f"**Nivel de acceso:** {perfil.acceso}",
        ]
        if perfil.email:
            lines.append(f"**Email:** {perfil.email}")
        if perfil.telefono:
            lines.append(f"**Teléfono:** {perfil.telefono}")
        lines += [
            "",
            f"**Estado:** {'✅ Usuario interno' if perfil.es_interno else '👤 Usuario externo'}",
            f"**Permisos:** {permissions_description(perfil)}",
        ]
        if not perfil.es_interno:
            lines += [
                "",
                "⚠️ *Como usuario externo, puedes enviar solicitudes ciudadanas "
                "que serán procesadas por el área correspondiente.*",
            ]
        await self.transport.send_message(chat_id, "\n".join(lines))

    async def cmd_enviar(self, chat_id: int, perfil: PerfilUsuario) -> None:
        if self.usuarios.tiene_permisos(perfil, "registrar"):
            permisos = "Tienes permisos para registrar documentos oficiales."
        else:
            permisos = "Como usuario externo, puedes enviar solicitudes ciudadanas."
        area = f"*Área: {perfil.area}*" if perfil.es_interno else "*Usuario externo*"
        max_mb = round(self.settings.max_file_size / 1024 / 1024)

        await self.transport.send_message(
            chat_id,
            f"📤 **Registro de documento**\n{area}\n\n{permisos}\n\n"
            "**Envía tu archivo** (PDF o imagen) y yo lo procesaré automáticamente.\n\n"
            "**Formatos soportados:**\n• 📄 **PDF** - Documentos oficiales\n"
            "• 📸 **Imágenes** - JPG, PNG, WEBP\n• 📱 **Fotos** - Capturadas con el móvil\n\n"
            f"**Límites:**\n• Tamaño máximo: {max_mb}MB\n• Solo archivos individuales",
        )

    async def cmd_estado(self, chat_id: int, perfil: PerfilUsuario) -> None:
        ejemplo = datetime.now().strftime("%Y-%m%d%H%M%S")
        extra = ""
        if perfil.es_admin:
            extra = (
                "\n\n**👑 Como administrador, también puedes:**\n"
                "• Ver todos los expedientes del sistema\n• Generar reportes detallados"
            )
        await self.transport.send_message(
            chat_id,
            "🔍 **Consulta de expedientes**\n\n**Para consultar un expediente específico:**\n"
            "Envía el número completo del expediente (o `/estado <número>`)\n\n"
            f"**Formato:** AAAA-XXXXXXXXXX\n**Ejemplo:** {ejemplo}{extra}\n\n"
            "**¿Qué expediente quieres consultar?**",
        )

    async def cmd_reportes(self, chat_id: int, perfil: PerfilUsuario) -> None:
        if not self.usuarios.tiene_permisos(perfil, "reportes"):
            await self.transport.send_message(
                chat_id,
                "📊 **Mis documentos**\n\n**Para consultar expedientes específicos:**\n"
                "• Usa /estado\n• Envía el número de expediente\n\n"
                "*Los reportes administrativos están disponibles solo para jefes de área*",
            )
            return

        stats = await run_in_threadpool(self.directory.statistics)
        await self.transport.send_message(chat_id, format_statistics(stats))
        await self.transport.send_message(
            chat_id,
            "📊 **Reportes administrativos**\n"
            f"*Disponible para: {perfil.cargo}*\n\n**Envía el número del reporte:**\n"
            "1 - Documentos del día\n2 - Expedientes pendientes\n3 - Resumen por prioridad\n"
            f"4 - Por tipo (interno / externo)\n5 - Mi área ({perfil.area})",
        )

    async def cmd_test(self, chat_id: int, chat_user: Dict[str, Any], perfil: PerfilUsuario) -> None:
        status = self.settings.config_status()
        usuarios = await run_in_threadpool(self.usuarios.users_statistics)
        stats = await run_in_threadpool(self.directory.statistics)

        config_lines = "\n".join(f"{'✅' if v else '❌'} {k}" for k, v in status.items())
        await self.transport.send_message(
            chat_id,
            f"🔧 **Estado del sistema**\n\n**Variables configuradas:**\n{config_lines}\n\n"
            f"**Conectividad:**\n{'✅' if usuarios['total'] else '❌'} usuarios cargados "
            f"({usuarios['total']}: {usuarios['internos']} internos, {usuarios['externos']} externos)\n"
            f"✅ expedientes accesibles ({stats.total})\n\n"
            f"**Usuario detectado:**\n• **Telegram ID:** @{chat_user.get('username') or chat_user.get('id')}\n"
            f"• **Acceso:** {perfil.acceso}\n• **Área:** {perfil.area}\n"
            f"• **Permisos:** {'Administrador' if perfil.es_admin else 'Usuario'}\n\n"
            f"**Timestamp:** {datetime.now().strftime('%d/%m/%Y %H:%M:%S')}",
        )

    async def cmd_help(self, chat_id: int, perfil: PerfilUsuario) -> None:
        reportes = (
            "• Acceso completo a reportes administrativos"
            if perfil.es_admin
            else "• Reportes básicos de tus documentos"
        )
        await self.transport.send_message(
            chat_id,
            f"📚 **Guía completa del bot**\n\n**🚀 Comandos principales:**\n{LISTA_COMANDOS}\n\n"
            "**📤 Envío de documentos:**\n• Envía directamente archivos PDF o imágenes\n"
            "• El bot los procesará automáticamente\n• Recibirás un número de expediente\n\n"
            "**🔍 Consultas:**\n• Envía el número de expediente: AAAA-XXXXXXXXXX\n"
            "• Usa palabras como \"buscar expediente\"\n\n"
            f"**📊 Reportes:**\n{reportes}\n\n"
            "**💡 Consejos:**\n• Los documentos PDF se procesan más rápido\n"
            "• Las fotos deben ser claras y legibles",
        )

    # ------------------------------------------------------------
    # 4. Texto libre / consultas
    # ------------------------------------------------------------

    async def handle_free_text(self, chat_id: int, texto: str, perfil: PerfilUsuario) -> None:
        limpio = texto.strip()

        match = CASE_NUMBER_RE.search(limpio)
        if match:
            await self.lookup_case(chat_id, match.group(0))
            return

        if limpio in ("1", "2", "3", "4", "5"):
            await self.report_option(chat_id, limpio, perfil)
            return

        lower = limpio.lower()
        if "buscar" in lower or "expediente" in lower:
            await self.transport.send_message(
                chat_id,
                "🔍 **Búsqueda de expedientes**\n\n"
                "Para buscar un expediente específico, envía el número completo:\n"
                "**Formato:** AAAA-XXXXXXXXXX\n\n¿Tienes el número del expediente que buscas?",
            )
            return

        await self.transport.send_message(
            chat_id,
            f"💭 Recibí: \"{texto}\"\n\n**¿Qué puedes hacer?**\n"
            "• **Enviar archivo:** Para registrar documento\n"
            "• **Consultar expediente:** AAAA-XXXXXXXXXX\n"
            "• **Ver reportes:** /reportes\n• **Ayuda completa:** /help\n\n"
            "¿En qué más puedo ayudarte?",
        )

    async def lookup_case(self, chat_id: int, numero: str) -> None:
        await self.transport.send_typing(chat_id)
        expediente = await run_in_threadpool(self.directory.find, numero)
        log_event(str(chat_id), {"event": "case_lookup", "numero_expediente": numero, "found": bool(expediente)})

        if expediente is None:
            await self.transport.send_message(chat_id, format_not_found(numero))
            return
        await self.transport.send_message(chat_id, format_case_card(numero, expediente))

    async def report_option(self, chat_id: int, opcion: str, perfil: PerfilUsuario) -> None:
        if not self.usuarios.tiene_permisos(perfil, "reportes"):
            await self.transport.send_message(
                chat_id, "❌ **Sin permisos**\n\nNo tienes acceso a reportes administrativos."
            )
            return

        stats = await run_in_threadpool(self.directory.statistics)

        if opcion == "1":
            text = f"📊 **Documentos del día**\n\n**Recibidos hoy:** {stats.hoy}\n**Total histórico:** {stats.total}"
        elif opcion == "2":
            pendientes = {k: stats.por_estado.get(k, 0) for k in ("Recibido", "Por atender", "En proceso", "Observado")}
            lines = "\n".join(f"• {k}: {v}" for k, v in pendientes.items())
            text = f"📋 **Expedientes pendientes**\n\n{lines}\n\n**Total pendientes:** {sum(pendientes.values())}"
        elif opcion == "3":
            lines = "\n".join(f"• {k}: {v}" for k, v in stats.por_prioridad.items())
            text = f"⚡ **Resumen por prioridad**\n\n{lines}"
        elif opcion == "4":
            lines = "\n".join(f"• {k}: {v}" for k, v in stats.por_tipo.items())
            text = f"🏢 **Por tipo**\n\n{lines}"
        else:
            mios = await run_in_threadpool(self.directory.list_by_area, perfil.area)
            abiertos = [e for e in mios if e.estado != "Atendido"]
            text = (
                f"📍 **Mi área ({perfil.area})**\n\n**Expedientes:** {len(mios)}\n"
                f"**Sin atender:** {len(abiertos)}"
            )

        await self.transport.send_message(chat_id, text)
