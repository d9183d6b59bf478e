# app_fastapi.py
# -*- coding: utf-8 -*-

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from core.config import load_settings
from core.logging import logger
from routers import expedientes, health, reportes, webhook
from services.container import AppServices, build_services


# ============================================================
# Ciclo de vida: armar servicios una sola vez
# ============================================================

def _lifespan_for(services: Optional[AppServices]):
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if services is not None:
            app.state.services = services
        else:
            settings = load_settings()
            app.state.services = build_services(settings)
        logger.info("✅ Mesa de Partes Digital lista")
        yield

        # clientes HTTP de larga vida: se cierran una sola vez al apagar
        store = app.state.services.store
        close = getattr(store, "close", None)
        if callable(close):
            close()
        aclose = getattr(app.state.services.transport, "aclose", None)
        if callable(aclose):
            await aclose()
        logger.info("🔹 Mesa de Partes Digital detenida")

    return lifespan


def create_app(services: Optional[AppServices] = None) -> FastAPI:
    """
    services=None → se arman desde el entorno (.env) al iniciar.
    Los tests pasan un AppServices con almacén y transporte falsos.
    """
    app = FastAPI(
        title="Mesa de Partes Digital API",
        description="""
Backend del bot de Telegram de **Mesa de Partes Digital** municipal.

- Telegram envía cada update al webhook (`POST /webhook`).
- Cada documento o foto recibido se
  - valida (tamaño / formato),
  - clasifica (IA si está configurada, reglas locales si no),
  - registra como expediente con número `AAAA-MMDDhhmmss`.
- La API `/api/expedientes` permite consultar, cambiar estado y derivar.
- `/api/reportes` entrega estadísticas (JSON o PDF).
""",
        version="1.0.0",
        lifespan=_lifespan_for(services),
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health.router)
    app.include_router(webhook.router)
    app.include_router(expedientes.router)
    app.include_router(reportes.router)
    return app


app = create_app()


# ============================================================
# Entrada para uvicorn
# ============================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app_fastapi:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
