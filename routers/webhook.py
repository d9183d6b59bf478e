# routers/webhook.py
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Header, HTTPException

from core.logging import logger
from routers.deps import get_services
from services.container import AppServices

router = APIRouter(tags=["telegram"])


@router.post("/webhook", summary="Recepción de updates de Telegram")
async def telegram_webhook(
    update: Dict[str, Any],
    services: AppServices = Depends(get_services),
    x_telegram_bot_api_secret_token: Optional[str] = Header(default=None),
):
    """
    - Si TELEGRAM_WEBHOOK_SECRET está configurado, el header debe coincidir (403 si no)
    - Updates sin "message" (ediciones, callbacks, ...) se aceptan y se ignoran
    - Siempre responde {"ok": true} una vez entregado al controlador, para que
      Telegram no reintente el mismo update
    """
    secret = services.settings.telegram_webhook_secret
    if secret and x_telegram_bot_api_secret_token != secret:
        logger.warning("🚫 Webhook con secret token inválido")
        raise HTTPException(status_code=403, detail="Secret token inválido")

    message = update.get("message")
    if not message:
        logger.info(f"🔹 Update {update.get('update_id')} sin mensaje, ignorado")
        return {"ok": True}

    await services.controller.handle_message(message)
    return {"ok": True}
