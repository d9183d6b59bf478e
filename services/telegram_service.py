# services/telegram_service.py
# -*- coding: utf-8 -*-
"""
Transporte de mensajería (Telegram Bot API) sobre httpx.AsyncClient.

- send_message / send_message_with_buttons : True/False, nunca levantan
- send_typing / send_uploading             : best-effort (solo log si fallan)
- get_file_info / download_file            : acotados por request_timeout
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import httpx

from core.config import Settings
from core.logging import logger

Botones = List[List[Dict[str, str]]]


class TelegramService:
    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.settings = settings
        self.api_url = settings.telegram_api_url
        self.file_url = settings.telegram_file_url
        # un solo cliente de larga vida (pool de conexiones); transport para pruebas
        self._http = httpx.AsyncClient(timeout=settings.request_timeout, transport=transport)

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _post(self, method: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        res = await self._http.post(f"{self.api_url}/{method}", json=payload)
        return res.json()

    # ------------------------------------------------------------
    # 1. Mensajes
    # ------------------------------------------------------------

    async def send_message(self, chat_id: int, text: str, parse_mode: str = "Markdown") -> bool:
        try:
            result = await self._post(
                "sendMessage",
                {"chat_id": chat_id, "text": text, "parse_mode": parse_mode},
            )
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"❌ Error en send_message: {e}")
            return False

        if not result.get("ok"):
            logger.error(f"Error enviando mensaje Telegram: {result.get('description')}")
            return False
        return True

    async def send_message_with_buttons(self, chat_id: int, text: str, botones: Botones) -> bool:
        try:
            result = await self._post(
                "sendMessage",
                {
                    "chat_id": chat_id,
                    "text": text,
                    "parse_mode": "Markdown",
                    "reply_markup": {"inline_keyboard": botones},
                },
            )
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"❌ Error en send_message_with_buttons: {e}")
            return False

        if not result.get("ok"):
            logger.error(f"Error enviando mensaje con botones: {result.get('description')}")
            return False
        return True

    async def _chat_action(self, chat_id: int, action: str) -> None:
        try:
            await self._post("sendChatAction", {"chat_id": chat_id, "action": action})
        except (httpx.HTTPError, ValueError) as e:
            # no es crítico
            logger.warning(f"No se pudo enviar estado '{action}': {e}")

    async def send_typing(self, chat_id: int) -> None:
        await self._chat_action(chat_id, "typing")

    async def send_uploading(self, chat_id: int) -> None:
        await self._chat_action(chat_id, "upload_document")

    # ------------------------------------------------------------
    # 2. Archivos
    # ------------------------------------------------------------

    async def get_file_info(self, file_id: str) -> Dict[str, Any]:
        """{"file_path": ..., "file_size": ...} o {"error": ...}"""
        try:
            res = await self._http.get(f"{self.api_url}/getFile", params={"file_id": file_id})
            data = res.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Error obteniendo info de archivo: {e}")
            return {"error": "Error de conexión"}

        if not data.get("ok"):
            return {"error": data.get("description") or "Error obteniendo archivo"}

        result = data.get("result") or {}
        return {"file_path": result.get("file_path"), "file_size": result.get("file_size")}

    async def download_file(self, file_path: str) -> Optional[bytes]:
        try:
            res = await self._http.get(f"{self.file_url}/{file_path}")
            res.raise_for_status()
            return res.content
        except httpx.HTTPError as e:
            logger.error(f"Error descargando archivo: {e}")
            return None
