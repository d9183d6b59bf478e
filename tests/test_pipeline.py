# tests/test_pipeline.py
import re

import pytest

from core.logging import read_events
from mesa.classifier import DocumentClassifier, SECRETARIA_GENERAL
from mesa.pipeline import MENSAJE_ERROR_TEMPORAL, DocumentPipeline
from services.expediente_service import ExpedienteRegistrar

MB = 1024 * 1024
CHAT_ID = 555


@pytest.fixture
def pipeline(store, transport, settings, clock):
    registrar = ExpedienteRegistrar(store, settings, clock=clock)
    return DocumentPipeline(transport, DocumentClassifier(settings), registrar, settings)


def _events(chat_id=CHAT_ID):
    return [e["event"] for e in read_events(str(chat_id))]


@pytest.mark.asyncio
async def test_internal_urgent_report(pipeline, transport, perfil_interno):
    attachment = {
        "file_id": "doc-1",
        "file_name": "informe_urgente.pdf",
        "mime_type": "application/pdf",
        "file_size": 2 * MB,
    }
    payload = await pipeline.process_document(
        CHAT_ID, attachment, {"id": 1, "username": "rosa"}, perfil_interno, "documento"
    )

    assert payload["status"] == "registrado"
    assert payload["numero_expediente"] == "2025-0121142856"
    assert payload["tipo"] == "Informe"
    assert payload["area_responsable"] == SECRETARIA_GENERAL
    assert payload["prioridad"] == "Muy Urgente"
    assert payload["tiempo_estimado"] == "24 horas"
    assert payload["requiere_revision"] is False
    assert payload["confianza"] == 1.0
    assert payload["seguimiento"] == "Para seguimiento: /estado 2025-0121142856"

    # respuesta principal con botones (interno con permiso de derivar)
    principal = transport.messages[0]
    assert principal["buttons"][0][0]["callback_data"] == "derivar_2025-0121142856"
    assert "Expediente:** 2025-0121142856" in principal["text"]

    # aviso de prioridad, nada más
    assert len(payload["avisos"]) == 1
    assert payload["avisos"][0].startswith("⚡ **Prioridad Muy Urgente**")
    assert transport.texts[1:] == payload["avisos"]

    assert transport.actions == ["upload_document", "typing"]
    assert _events() == ["document_received", "document_registered"]


@pytest.mark.asyncio
async def test_external_photo_without_name(pipeline, transport, store, settings, perfil_ciudadano):
    attachment = {"file_id": "ph-1", "mime_type": "image/jpeg", "file_size": 500 * 1024}
    payload = await pipeline.process_document(
        CHAT_ID, attachment, {"id": 77, "first_name": "Juan"}, perfil_ciudadano, "foto"
    )

    assert payload["status"] == "registrado"
    assert payload["area_responsable"] == "Mesa de Partes"
    assert payload["requiere_revision"] is True
    assert payload["tipo"] == "Documento fotografiado"

    row = store.sheets[settings.google_sheets_expedientes_id][1]
    assert re.fullmatch(r"imagen_\d+\.jpg", row[19])
    assert row[0] == "Externo"
    assert "Usuario: @77" in row[20]

    # acceso limitado antes de la respuesta principal, sin botones
    assert transport.texts[0].startswith("⚠️ **Acceso limitado**")
    assert all(m["buttons"] is None for m in transport.messages)

    avisos = payload["avisos"]
    assert avisos[0].startswith("🔍 **Revisión requerida**")
    assert "Guarda el número de expediente: " + payload["numero_expediente"] in avisos[1]
    assert avisos[2].startswith("📸 **Procesamiento de imagen**")


@pytest.mark.asyncio
async def test_store_failure_gives_temporary_record(pipeline, transport, store, perfil_interno):
    store.fail_append = True
    attachment = {"file_id": "d", "file_name": "oficio_45.pdf", "mime_type": "application/pdf", "file_size": 1024}

    payload = await pipeline.process_document(CHAT_ID, attachment, {"id": 1}, perfil_interno)

    assert payload["status"] == "temporal"
    assert payload["registrado"] is False
    assert payload["estado"] == "Recibido (temporal)"
    assert re.fullmatch(r"\d{4}-\d{10}", payload["numero_expediente"])
    assert "pendiente de sincronización" in payload["avisos"][0]
    assert "Registro temporal - se sincronizará" in transport.messages[0]["text"]
    assert MENSAJE_ERROR_TEMPORAL not in transport.texts


@pytest.mark.asyncio
async def test_invalid_file_is_rejected(pipeline, transport, store, settings, perfil_interno):
    attachment = {"file_id": "d", "file_name": "planilla.xlsx", "file_size": 1024}

    payload = await pipeline.process_document(CHAT_ID, attachment, {"id": 1}, perfil_interno)

    assert payload["status"] == "rechazado"
    assert payload["razon"] == "Tipo de archivo no soportado (xlsx)"
    assert len(transport.messages) == 1
    assert "**Razón:** Tipo de archivo no soportado (xlsx)" in transport.texts[0]
    assert len(store.sheets[settings.google_sheets_expedientes_id]) == 1
    assert _events() == ["document_received", "document_rejected"]


@pytest.mark.asyncio
async def test_unexpected_error_sends_generic_message(pipeline, transport, perfil_interno, monkeypatch):
    def boom(*args, **kwargs):
        raise RuntimeError("bug")

    monkeypatch.setattr(pipeline.registrar, "register", boom)
    attachment = {"file_id": "d", "file_name": "oficio.pdf", "file_size": 1024}

    payload = await pipeline.process_document(CHAT_ID, attachment, {"id": 1}, perfil_interno)

    assert payload["status"] == "error"
    assert transport.texts[-1] == MENSAJE_ERROR_TEMPORAL
