# tests/test_llm_classifier.py
import json
from types import SimpleNamespace

import httpx
import openai
import pytest

from mesa.classifier import SECRETARIA_GENERAL, DocumentClassifier
from mesa.file_info import analyze_file
from mesa.llm_classifier import (
    LLMDocumentClassifier,
    build_prompt,
    extract_json_block,
    parse_llm_analysis,
    validate_area,
    validate_priority,
)
from mesa.llm_client import LLMError, LLMResponseError, build_client, call_chat


class FakeCompletions:
    def __init__(self, content=None, error=None):
        self.content = content
        self.error = error
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def fake_client(content=None, error=None):
    completions = FakeCompletions(content, error)
    return SimpleNamespace(chat=SimpleNamespace(completions=completions))


@pytest.fixture
def info(settings):
    return analyze_file(
        {"file_id": "f", "file_name": "oficio_presupuesto.pdf", "mime_type": "application/pdf", "file_size": 4096},
        "documento",
        settings,
    )


def test_build_client_without_key_is_none(settings):
    assert build_client(settings) is None


def test_prompt_lists_areas_and_file(info, perfil_interno):
    prompt = build_prompt(info, perfil_interno, "documento")
    assert "oficio_presupuesto.pdf" in prompt
    assert SECRETARIA_GENERAL in prompt
    assert "Muy Urgente|Alta|Media|Baja" in prompt


def test_extract_json_block_from_free_text():
    text = 'Claro, aquí está:\n{"a": {"b": 1}, "c": "texto con } llave"}\nSaludos.'
    block = extract_json_block(text)
    assert json.loads(block) == {"a": {"b": 1}, "c": "texto con } llave"}


def test_extract_json_block_skips_unclosed_brace():
    assert extract_json_block('{ roto ... {"ok": true}') == '{"ok": true}'
    assert extract_json_block("sin json") is None


def test_validate_area_and_priority():
    assert validate_area("secretaría general", "Mesa de Partes") == SECRETARIA_GENERAL
    assert validate_area("Gerencia Inventada", "Mesa de Partes") == "Mesa de Partes"
    assert validate_area(None, "Mesa de Partes") == "Mesa de Partes"
    assert validate_priority("muy urgente") == "Muy Urgente"
    assert validate_priority("Crítica") == "Media"


def test_parse_valid_response(info, settings):
    text = (
        "Respuesta: {\"area_responsable\": \"Secretaría General\", \"prioridad\": \"alta\", "
        "\"asunto_detectado\": \"Presupuesto 2025\", \"observaciones\": \"oficio formal\", "
        "\"confianza\": 0.93}"
    )
    analisis = parse_llm_analysis(text, info, "documento", settings)
    assert analisis.tipo == "Oficio"
    assert analisis.area_responsable == SECRETARIA_GENERAL
    assert analisis.prioridad == "Alta"
    assert analisis.tiempo_estimado == "1-2 días hábiles"
    assert analisis.asunto_detectado == "Presupuesto 2025"
    assert analisis.confianza == 0.93
    assert analisis.requiere_revision is False
    assert analisis.observaciones == "Análisis IA (confianza: 93.0%) - oficio formal"


def test_parse_rejects_values_outside_allow_lists(info, settings):
    text = json.dumps(
        {"area_responsable": "Alcaldía", "prioridad": "Crítica", "asunto_detectado": "", "confianza": 3}
    )
    analisis = parse_llm_analysis(text, info, "documento", settings)
    assert analisis.area_responsable == settings.default_area
    assert analisis.prioridad == settings.default_prioridad
    assert analisis.confianza == 1.0
    # asunto vacío -> reglas locales
    assert analisis.asunto_detectado == "Oficio recibido"


def test_low_confidence_requires_review(info, settings):
    analisis = parse_llm_analysis('{"confianza": 0.4}', info, "documento", settings)
    assert analisis.requiere_revision is True

    analisis = parse_llm_analysis('{"prioridad": "Media"}', info, "documento", settings)
    assert analisis.confianza == 0.8
    assert analisis.requiere_revision is False


def test_parse_without_json_raises(info, settings):
    with pytest.raises(LLMResponseError):
        parse_llm_analysis("No puedo ayudar con eso.", info, "documento", settings)
    with pytest.raises(LLMResponseError):
        parse_llm_analysis("[1, 2] {no es json}", info, "documento", settings)


def test_call_chat_returns_content():
    client = fake_client(content="  hola  ")
    assert call_chat(client, [{"role": "user", "content": "x"}], model="m") == "hola"
    call = client.chat.completions.calls[0]
    assert call["model"] == "m"
    assert call["temperature"] == 0.0


def test_call_chat_empty_content_raises():
    with pytest.raises(LLMResponseError) as exc:
        call_chat(fake_client(content=""), [], model="m")
    assert exc.value.cause == "respuesta"


def test_call_chat_maps_connection_errors():
    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")

    with pytest.raises(LLMError) as exc:
        call_chat(fake_client(error=openai.APIConnectionError(request=request)), [], model="m")
    assert exc.value.cause == "conexion"

    with pytest.raises(LLMError) as exc:
        call_chat(fake_client(error=openai.APITimeoutError(request=request)), [], model="m")
    assert exc.value.cause == "timeout"


def test_enhanced_strategy_wins_when_it_answers(info, settings, perfil_interno):
    client = fake_client(content='{"area_responsable": "Responsable de Tesorería y Rentas", "confianza": 0.9}')
    classifier = DocumentClassifier(settings, enhanced=LLMDocumentClassifier(client, settings))

    analisis = classifier.analyze(info, perfil_interno, "documento")
    assert analisis.area_responsable == "Responsable de Tesorería y Rentas"
    assert analisis.observaciones.startswith("Análisis IA")


def test_enhanced_strategy_failure_uses_rules(info, settings, perfil_interno):
    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    client = fake_client(error=openai.APIConnectionError(request=request))
    classifier = DocumentClassifier(settings, enhanced=LLMDocumentClassifier(client, settings))

    analisis = classifier.analyze(info, perfil_interno, "documento")
    # reglas: oficio de usuario interno -> Secretaría General
    assert analisis.area_responsable == SECRETARIA_GENERAL
    assert not analisis.observaciones.startswith("Análisis IA")
