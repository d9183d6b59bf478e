# tests/test_expediente_service.py
import re
from datetime import datetime

import pytest

from mesa.classifier import classify_rules
from mesa.expediente_rows import COL, COLUMNS, expediente_to_row, row_to_expediente
from mesa.file_info import analyze_file
from mesa.schemas import ESTADO_TEMPORAL, Expediente
from services.expediente_service import (
    ExpedienteDirectory,
    ExpedienteRegistrar,
    case_document_type,
    document_code,
    generate_case_number,
)

MB = 1024 * 1024


@pytest.fixture
def registrar(store, settings, clock):
    return ExpedienteRegistrar(store, settings, clock=clock)


@pytest.fixture
def directory(store, settings, clock):
    return ExpedienteDirectory(store, settings, clock=clock)


@pytest.fixture
def informe(settings):
    return analyze_file(
        {"file_id": "f", "file_name": "informe_urgente.pdf", "mime_type": "application/pdf", "file_size": 2 * MB},
        "documento",
        settings,
    )


def _expediente(numero, **overrides):
    data = {
        "tipo": "Interno",
        "exp": 3,
        "doc": "C-3",
        "fecha_recepcion": "21/01/2025",
        "hora": "09:15",
        "fecha_emision": "21/01/2025",
        "emisor_responsable": "Rosa Quispe",
        "emisor_area": "Obras y Desarrollo",
        "asunto": "Informe recibido",
        "numero_expediente": numero,
        "archivo_original": "informe.pdf",
    }
    data.update(overrides)
    return Expediente(**data)


def test_case_number_format(fixed_now):
    numero = generate_case_number(fixed_now)
    assert numero == "2025-0121142856"
    assert re.fullmatch(r"\d{4}-\d{10}", numero)


def test_case_number_same_second_is_equal():
    now = datetime(2025, 3, 1, 8, 0, 0, 1000)
    later = datetime(2025, 3, 1, 8, 0, 0, 900000)
    assert generate_case_number(now) == generate_case_number(later)
    assert generate_case_number(now) != generate_case_number(datetime(2025, 3, 1, 8, 0, 1))


def test_document_code_and_type(settings):
    assert document_code("Externo", 7) == "E-7"
    assert document_code("Interno", 7) == "C-7"

    carta = analyze_file({"file_name": "carta_vecinal.pdf"}, "documento", settings)
    assert case_document_type(carta) == "Formulario"
    memo = analyze_file({"file_name": "Memorando_12.pdf"}, "documento", settings)
    assert case_document_type(memo) == "Memorando"


def test_register_appends_full_row(registrar, store, settings, informe, perfil_interno):
    analisis = classify_rules(informe, perfil_interno)
    result = registrar.register(informe, analisis, perfil_interno, nota="Archivo: informe_urgente.pdf")

    assert result.registrado is True
    assert result.numero_expediente == "2025-0121142856"

    rows = store.sheets[settings.google_sheets_expedientes_id]
    assert len(rows) == 2
    row = rows[1]
    assert len(row) == len(COLUMNS)
    assert row[COL["tipo"]] == "Interno"
    assert row[COL["exp"]] == "1"
    assert row[COL["doc"]] == "C-1"
    assert row[COL["fecha_recepcion"]] == "21/01/2025"
    assert row[COL["hora"]] == "14:28"
    assert row[COL["tipo_documento"]] == "Informe"
    assert row[COL["emisor_responsable"]] == "Rosa Quispe Huamán"
    assert row[COL["prioridad"]] == "Muy Urgente"
    assert row[COL["estado"]] == "Recibido"
    assert row[COL["derivado_area"]] == "Secretaría General"
    assert row[COL["numero_expediente"]] == "2025-0121142856"
    assert row[COL["archivo_original"]] == "informe_urgente.pdf"
    assert row[COL["observaciones"]] == "Archivo: informe_urgente.pdf"


def test_register_external_uses_e_prefix(registrar, store, settings, perfil_ciudadano):
    info = analyze_file({"file_name": "pedido_obras.pdf", "file_size": 1024}, "documento", settings)
    result = registrar.register(info, classify_rules(info, perfil_ciudadano), perfil_ciudadano)
    assert result.expediente.tipo == "Externo"
    assert result.expediente.doc.startswith("E-")


def test_register_own_area_leaves_derivation_empty(registrar, settings, perfil_interno):
    info = analyze_file({"file_name": "solicitud_licencia.pdf", "file_size": 1024}, "documento", settings)
    result = registrar.register(info, classify_rules(info, perfil_interno), perfil_interno)
    assert result.expediente.derivado_area == ""


def test_register_append_failure_returns_temporary(registrar, store, informe, perfil_interno):
    store.fail_append = True
    result = registrar.register(informe, classify_rules(informe, perfil_interno), perfil_interno)

    assert result.registrado is False
    assert result.numero_expediente == "2025-0121142856"
    assert result.expediente.estado == ESTADO_TEMPORAL
    assert "temporal" in result.expediente.estado
    assert "pendiente de sincronización" in result.expediente.observaciones


def test_sequence_number_falls_back_when_count_fails(registrar, store):
    store.fail_get = True
    numero = registrar.next_sequence_number()
    assert 0 <= numero < 10000


def test_round_trip_of_registered_record(registrar, store, settings, informe, perfil_interno):
    result = registrar.register(informe, classify_rules(informe, perfil_interno), perfil_interno, nota="n")
    row = store.sheets[settings.google_sheets_expedientes_id][1]
    assert row_to_expediente(row) == result.expediente
    assert expediente_to_row(row_to_expediente(row)) == row


def test_short_row_uses_defaults():
    exp = row_to_expediente(["Externo", "x", "E-1"])
    assert exp.exp == 0
    assert exp.folios == 1
    assert exp.prioridad == "Media"
    assert exp.estado == "Recibido"


def test_present_empty_cells_are_kept():
    original = Expediente(tipo="", tipo_documento="", prioridad="", estado="", numero_expediente="2025-0121142856")
    row = expediente_to_row(original)

    assert row[COL["tipo_documento"]] == ""
    assert row_to_expediente(row) == original
    assert expediente_to_row(row_to_expediente(row)) == row


# ------------------------------------------------------------
# Directorio
# ------------------------------------------------------------

@pytest.fixture
def seeded(store, settings):
    rows = store.sheets[settings.google_sheets_expedientes_id]
    rows.append(expediente_to_row(_expediente("2025-0120100000", fecha_recepcion="20/01/2025")))
    rows.append(expediente_to_row(_expediente(
        "2025-0121093000",
        tipo="Externo",
        doc="E-4",
        emisor_area="Externo",
        derivado_area="Sub Gerencia de Infraestructura y Obras Públicas",
        prioridad="Alta",
        estado="Derivado",
    )))
    return store


def test_find_missing_case_is_none(directory, seeded):
    assert directory.find("2025-0121142856") is None


def test_find_existing_case(directory, seeded):
    exp = directory.find("2025-0120100000")
    assert exp is not None
    assert exp.numero_expediente == "2025-0120100000"
    assert exp.exp == 3


def test_header_row_never_matches(directory, seeded):
    assert directory.find("Número Expediente") is None


def test_find_with_store_failure_is_none(directory, seeded):
    seeded.fail_get = True
    assert directory.find("2025-0120100000") is None


def test_list_by_status_and_area(directory, seeded):
    assert [e.numero_expediente for e in directory.list_by_status("Derivado")] == ["2025-0121093000"]
    assert directory.list_by_status("Atendido") == []

    infra = directory.list_by_area("infraestructura")
    assert [e.numero_expediente for e in infra] == ["2025-0121093000"]
    assert len(directory.list_by_area("obras y desarrollo")) == 1
    assert len(directory.list_by_area("OBRAS")) == 2
    assert len(directory.list_all()) == 2


def test_lists_degrade_to_empty(directory, seeded):
    seeded.fail_get = True
    assert directory.list_by_status("Recibido") == []
    assert directory.list_by_area("Obras") == []
    assert directory.list_all() == []


def test_update_status_rewrites_row(directory, seeded, settings):
    assert directory.update_status("2025-0120100000", "En proceso") is True
    row = seeded.sheets[settings.google_sheets_expedientes_id][1]
    assert row[COL["estado"]] == "En proceso"
    assert row[COL["numero_expediente"]] == "2025-0120100000"


def test_update_status_unknown_case(directory, seeded):
    assert directory.update_status("2025-0121142856", "Atendido") is False


def test_update_status_store_failure(directory, seeded):
    seeded.fail_update = True
    assert directory.update_status("2025-0120100000", "Atendido") is False


def test_derive(directory, seeded, settings):
    assert directory.derive("2025-0120100000", "Secretaría General", "Ana Torres", "Copia") is True
    exp = directory.find("2025-0120100000")
    assert exp.estado == "Derivado"
    assert exp.derivado_area == "Secretaría General"
    assert exp.derivado_responsable == "Ana Torres"
    assert exp.tipo_derivado == "Copia"


def test_statistics(directory, seeded):
    stats = directory.statistics()
    assert stats.total == 2
    assert stats.hoy == 1
    assert stats.por_estado["Recibido"] == 1
    assert stats.por_estado["Derivado"] == 1
    assert stats.por_estado["Atendido"] == 0
    assert stats.por_prioridad == {"Baja": 0, "Media": 1, "Alta": 1, "Muy Urgente": 0}
    assert stats.por_tipo == {"Interno": 1, "Externo": 1}


def test_statistics_store_failure_is_empty(directory, seeded):
    seeded.fail_get = True
    stats = directory.statistics()
    assert stats.total == 0
    assert stats.por_tipo == {"Interno": 0, "Externo": 0}
