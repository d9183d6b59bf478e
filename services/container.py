# services/container.py
# -*- coding: utf-8 -*-
"""
Arma todos los componentes una sola vez al iniciar el proceso.

- almacén de filas: Google Sheets si hay cuenta de servicio; si no, SQL local
  (MySQL con DB_* completos, SQLite en otro caso) con encabezados sembrados
- clasificador: IA solo si hay OPENAI_API_KEY
"""

from dataclasses import dataclass
from typing import Any, Optional

from core.config import Settings
from core.logging import logger
from db.session import build_engine, build_session_factory
from mesa.classifier import DocumentClassifier
from mesa.expediente_rows import HEADERS, USUARIO_HEADERS
from mesa.llm_classifier import LLMDocumentClassifier
from mesa.llm_client import build_client
from mesa.pipeline import DocumentPipeline
from services.bot_controller import BotController
from services.expediente_service import ExpedienteDirectory, ExpedienteRegistrar
from services.row_store import RowStore, SqlRowStore, seed_headers
from services.sheets_client import GoogleSheetsRowStore
from services.telegram_service import TelegramService
from services.usuario_service import UsuarioService


@dataclass
class AppServices:
    settings: Settings
    store: RowStore
    transport: Any
    usuarios: UsuarioService
    directory: ExpedienteDirectory
    registrar: ExpedienteRegistrar
    classifier: DocumentClassifier
    pipeline: DocumentPipeline
    controller: BotController


def build_row_store(settings: Settings, database_url: Optional[str] = None) -> RowStore:
    if settings.google_configured:
        logger.info("🔹 Almacén de filas: Google Sheets")
        return GoogleSheetsRowStore(settings)

    url = database_url or settings.database_url
    backend = settings.db_backend if database_url is None else url.split(":", 1)[0]
    logger.info(f"🔹 Almacén de filas: base de datos local ({backend})")
    store = SqlRowStore(build_session_factory(build_engine(url, echo=settings.db_echo)))
    store.create_tables()
    seed_headers(
        store,
        {
            settings.google_sheets_expedientes_id: HEADERS,
            settings.google_sheets_usuarios_id: USUARIO_HEADERS,
        },
    )
    return store


def build_services(
    settings: Settings,
    store: Optional[RowStore] = None,
    transport: Any = None,
) -> AppServices:
    if not settings.telegram_token:
        logger.warning("⚠️ TELEGRAM_BOT_TOKEN no configurado: no se podrán enviar mensajes")

    store = store if store is not None else build_row_store(settings)
    transport = transport if transport is not None else TelegramService(settings)

    client = build_client(settings)
    enhanced = LLMDocumentClassifier(client, settings) if client is not None else None
    if enhanced is None:
        logger.info("🔹 OPENAI_API_KEY no configurada: solo análisis local")

    usuarios = UsuarioService(store, settings)
    directory = ExpedienteDirectory(store, settings)
    registrar = ExpedienteRegistrar(store, settings)
    classifier = DocumentClassifier(settings, enhanced=enhanced)
    pipeline = DocumentPipeline(transport, classifier, registrar, settings)
    controller = BotController(transport, usuarios, directory, pipeline, settings)

    return AppServices(
        settings=settings,
        store=store,
        transport=transport,
        usuarios=usuarios,
        directory=directory,
        registrar=registrar,
        classifier=classifier,
        pipeline=pipeline,
        controller=controller,
    )
