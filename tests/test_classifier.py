# tests/test_classifier.py
import pytest

from mesa import classifier as clf
from mesa.classifier import (
    AREA_INFRAESTRUCTURA,
    AREA_TESORERIA,
    SECRETARIA_GENERAL,
    DocumentClassifier,
    classify_basic,
    classify_rules,
    compute_confidence,
    detect_document_type,
    detect_subject,
)
from mesa.file_info import analyze_file
from mesa.llm_client import LLMError

MB = 1024 * 1024


@pytest.fixture
def pdf(settings):
    def _pdf(name, size=2 * MB):
        return analyze_file(
            {"file_id": "f", "file_name": name, "mime_type": "application/pdf", "file_size": size},
            "documento",
            settings,
        )

    return _pdf


@pytest.mark.parametrize("name", ["URGENTE.pdf", "pedido_urgente.pdf", "Urgente-saludo.pdf"])
def test_urgente_is_always_muy_urgente(pdf, perfil_interno, perfil_ciudadano, perfil_admin, name):
    for perfil in (perfil_interno, perfil_ciudadano, perfil_admin):
        analisis = classify_rules(pdf(name), perfil)
        assert analisis.prioridad == "Muy Urgente"
        assert analisis.tiempo_estimado == "24 horas"


def test_internal_solicitud_goes_to_own_area(pdf, perfil_interno):
    analisis = classify_rules(pdf("solicitud_vacaciones.pdf"), perfil_interno)
    assert analisis.tipo == "Solicitud"
    assert analisis.area_responsable == perfil_interno.area


def test_internal_informe_goes_to_secretaria(pdf, perfil_interno):
    analisis = classify_rules(pdf("informe_urgente.pdf"), perfil_interno)
    assert analisis.tipo == "Informe"
    assert analisis.area_responsable == SECRETARIA_GENERAL
    assert analisis.prioridad == "Muy Urgente"
    assert analisis.tiempo_estimado == "24 horas"
    assert analisis.requiere_revision is False
    assert analisis.confianza == 1.0


def test_internal_resolucion_with_accent_goes_to_secretaria(pdf, perfil_interno):
    analisis = classify_rules(pdf("Resolución_045.pdf"), perfil_interno)
    assert analisis.tipo == "Resolución"
    assert analisis.area_responsable == SECRETARIA_GENERAL


def test_external_obras_goes_to_infrastructure(pdf, perfil_ciudadano):
    analisis = classify_rules(pdf("pedido obras jr lima.pdf"), perfil_ciudadano)
    assert analisis.area_responsable == AREA_INFRAESTRUCTURA
    assert analisis.requiere_revision is True


def test_external_keyword_order_first_match_wins(pdf, perfil_ciudadano):
    # "pago" aparece antes que "obras" en el nombre, pero obras está primero en la tabla
    analisis = classify_rules(pdf("pago_obras.pdf"), perfil_ciudadano)
    assert analisis.area_responsable == AREA_INFRAESTRUCTURA

    analisis = classify_rules(pdf("pago_arbitrios.pdf"), perfil_ciudadano)
    assert analisis.area_responsable == AREA_TESORERIA


def test_external_without_keyword_goes_to_default_area(pdf, perfil_ciudadano):
    analisis = classify_rules(pdf("carta.pdf"), perfil_ciudadano, default_area="Mesa de Partes")
    assert analisis.area_responsable == "Mesa de Partes"


def test_priority_levels(pdf, perfil_interno, perfil_admin):
    assert classify_rules(pdf("importante.pdf"), perfil_interno).prioridad == "Alta"
    assert classify_rules(pdf("saludo_navidad.pdf"), perfil_interno).prioridad == "Baja"
    assert classify_rules(pdf("saludo_navidad.pdf"), perfil_admin).prioridad == "Alta"
    assert classify_rules(pdf("oficio.pdf"), perfil_interno).prioridad == "Media"
    assert classify_rules(pdf("oficio.pdf"), perfil_interno).tiempo_estimado == "3-5 días hábiles"


def test_generic_or_large_file_needs_review(pdf, perfil_interno):
    assert classify_rules(pdf("documento1.pdf"), perfil_interno).requiere_revision is True
    assert classify_rules(pdf("archivo.pdf"), perfil_interno).requiere_revision is True
    assert classify_rules(pdf("oficio_45.pdf", size=11 * MB), perfil_interno).requiere_revision is True
    assert classify_rules(pdf("oficio_45.pdf"), perfil_interno).requiere_revision is False


def test_document_type_fallbacks(settings):
    foto = analyze_file({"mime_type": "image/jpeg"}, "foto", settings)
    assert detect_document_type(foto, "foto") == "Documento fotografiado"

    png = analyze_file({"file_name": "scan.png"}, "documento", settings)
    assert detect_document_type(png, "documento") == "Imagen - Documento escaneado"

    sin_tipo = analyze_file({"file_name": "x.pdf"}, "documento", settings)
    assert detect_document_type(sin_tipo, "documento") == "Documento PDF"


def test_subject_uses_long_descriptive_stem(pdf):
    info = pdf("Pedido de mantenimiento del parque central.pdf")
    assert detect_subject(info, "Documento PDF") == "Pedido de mantenimiento del parque central"


def test_subject_fallbacks(pdf, settings):
    assert detect_subject(pdf("oficio_numero_123_2025_municipal.pdf"), "Oficio") == "Oficio recibido"
    assert detect_subject(pdf("corto.pdf"), "Documento PDF") == "Documento PDF recibido"

    foto = analyze_file({"mime_type": "image/jpeg"}, "foto", settings)
    assert detect_subject(foto, "Documento fotografiado", "foto") == "Documento capturado con cámara"


def test_observations(settings, perfil_interno):
    info = analyze_file(
        {"file_name": "oficio.pdf", "mime_type": "application/pdf", "file_size": 6 * MB},
        "documento",
        settings,
    )
    analisis = classify_rules(info, perfil_interno)
    assert analisis.observaciones == (
        "Enviado por Asistente de Obras y Desarrollo. Archivo de gran tamaño. Documento en formato PDF"
    )


def test_confidence_is_bounded(settings, perfil_ciudadano, perfil_interno):
    for name in ("a.zip", "b.pdf", "una_imagen_larga.png", "informe_anual_2025.pdf"):
        info = analyze_file({"file_name": name}, "documento", settings)
        for perfil in (perfil_ciudadano, perfil_interno):
            assert 0.0 <= compute_confidence(info, perfil) <= 1.0


def test_basic_classification(pdf, perfil_ciudadano):
    analisis = classify_basic(pdf("x.pdf"), perfil_ciudadano, default_area="Mesa de Partes")
    assert analisis.tipo == "Documento PDF"
    assert analisis.area_responsable == "Mesa de Partes"
    assert analisis.asunto_detectado == "Documento PDF - x.pdf"
    assert analisis.confianza == 0.5
    assert analisis.requiere_revision is True


# ------------------------------------------------------------
# Cadena de estrategias
# ------------------------------------------------------------

def test_without_enhanced_strategy_rules_are_used(settings, pdf, perfil_interno):
    classifier = DocumentClassifier(settings)
    assert [name for name, _ in classifier.strategies] == ["reglas", "basico"]

    info = pdf("informe_urgente.pdf")
    assert classifier.analyze(info, perfil_interno, "documento") == classify_rules(
        info, perfil_interno, "documento", settings.default_area
    )


def test_enhanced_failure_falls_back_to_rules(settings, pdf, perfil_interno):
    def enhanced(info, perfil, tipo_mensaje):
        raise LLMError("sin créditos", cause="creditos")

    classifier = DocumentClassifier(settings, enhanced=enhanced)
    analisis = classifier.analyze(pdf("informe_urgente.pdf"), perfil_interno, "documento")
    assert analisis.area_responsable == SECRETARIA_GENERAL
    assert analisis.confianza == 1.0


def test_rules_failure_falls_back_to_basic(settings, pdf, perfil_interno, monkeypatch):
    def boom(*args, **kwargs):
        raise RuntimeError("tabla corrupta")

    monkeypatch.setattr(clf, "classify_rules", boom)
    analisis = DocumentClassifier(settings).analyze(pdf("x.pdf"), perfil_interno, "documento")
    assert analisis.confianza == 0.5
    assert analisis.asunto_detectado == "Documento PDF - x.pdf"


def test_all_strategies_failing_returns_default(settings, pdf, perfil_interno, monkeypatch):
    def boom(*args, **kwargs):
        raise RuntimeError("falla")

    monkeypatch.setattr(clf, "classify_rules", boom)
    monkeypatch.setattr(clf, "classify_basic", boom)
    analisis = DocumentClassifier(settings).analyze(pdf("x.pdf"), perfil_interno, "documento")
    assert analisis.area_responsable == settings.default_area
    assert analisis.prioridad == "Media"
    assert analisis.requiere_revision is True
