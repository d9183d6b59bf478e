# mesa/llm_classifier.py
# -*- coding: utf-8 -*-
"""
Clasificación con IA (estrategia opcional).

Flujo
----
1) build_prompt: metadatos del archivo + solicitante + lista cerrada de áreas/prioridades
2) call_chat (mesa.llm_client)
3) extract_json_block: primer bloque {...} balanceado dentro del texto libre
4) parse_llm_analysis: validación estricta contra las listas permitidas

No se confía en la forma de la respuesta: cualquier problema levanta
LLMError / LLMResponseError y el DocumentClassifier pasa a las reglas.
"""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

from openai import OpenAI

from core.config import Settings
from .classifier import (
    AREA_DESARROLLO_ECONOMICO,
    AREA_DESARROLLO_SOCIAL,
    AREA_INFRAESTRUCTURA,
    AREA_LOGISTICA_RRHH,
    AREA_TESORERIA,
    SECRETARIA_GENERAL,
    detect_document_type,
    detect_subject,
    estimate_turnaround,
)
from .llm_client import LLMResponseError, call_chat
from .schemas import PRIORIDADES, AnalisisDocumento, ArchivoInfo, PerfilUsuario

AREAS_VALIDAS: List[str] = [
    "Mesa de Partes",
    SECRETARIA_GENERAL,
    AREA_INFRAESTRUCTURA,
    AREA_DESARROLLO_SOCIAL,
    AREA_DESARROLLO_ECONOMICO,
    AREA_LOGISTICA_RRHH,
    AREA_TESORERIA,
]

UMBRAL_REVISION = 0.8
CONFIANZA_POR_DEFECTO = 0.8


# ------------------------------------------------------------
# 1. Prompt
# ------------------------------------------------------------

def build_prompt(info: ArchivoInfo, perfil: PerfilUsuario, tipo_mensaje: Optional[str] = None) -> str:
    areas = "\n".join(f"- {a}" for a in AREAS_VALIDAS)
    return f"""
Eres un asistente especializado en clasificación de documentos para una Mesa de Partes digital
de una municipalidad distrital.

DOCUMENTO A ANALIZAR:
- Nombre del archivo: {info.file_name}
- Tamaño: {info.file_size / 1024:.2f} KB
- Tipo MIME: {info.mime_type}
- Usuario: {perfil.nombre_completo}
- Cargo: {perfil.cargo or 'No especificado'}
- Área: {perfil.area or 'No especificada'}
- Tipo de mensaje: {tipo_mensaje or 'No especificado'}

ÁREAS DISPONIBLES:
{areas}

NIVELES DE PRIORIDAD:
- Muy Urgente: emergencias, plazos de 24 horas
- Alta: documentos urgentes, legales, contratos importantes
- Media: documentos de rutina, informes regulares
- Baja: documentos informativos, saludos, felicitaciones

INSTRUCCIONES:
Analiza el documento basándote en el nombre del archivo, tipo, usuario y contexto.
Responde ÚNICAMENTE en formato JSON:

{{
  "area_responsable": "nombre_del_area",
  "prioridad": "Muy Urgente|Alta|Media|Baja",
  "asunto_detectado": "descripción breve del asunto",
  "observaciones": "descripción breve del análisis",
  "confianza": 0.95
}}

Respuesta:""".strip()


# ------------------------------------------------------------
# 2. Extracción / validación
# ------------------------------------------------------------

def extract_json_block(text: str) -> Optional[str]:
    """
    Primer bloque {...} con llaves balanceadas.
    Las llaves dentro de strings JSON no cuentan.
    """
    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for i in range(start, len(text)):
            ch = text[i]
            if in_string:
                if escaped:
                    escaped = False
                elif ch == "\\":
                    escaped = True
                elif ch == '"':
                    in_string = False
                continue
            if ch == '"':
                in_string = True
            elif ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    return text[start : i + 1]
        # sin cierre desde esta llave: probar la siguiente
        start = text.find("{", start + 1)
    return None


def validate_area(area: Any, default_area: str) -> str:
    if isinstance(area, str):
        for valid in AREAS_VALIDAS:
            if valid.lower() == area.strip().lower():
                return valid
    return default_area


def validate_priority(prioridad: Any, default: str = "Media") -> str:
    if isinstance(prioridad, str):
        for valid in PRIORIDADES:
            if valid.lower() == prioridad.strip().lower():
                return valid
    return default


def _confidence(raw: Any) -> float:
    if isinstance(raw, bool) or raw is None:
        return CONFIANZA_POR_DEFECTO
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return CONFIANZA_POR_DEFECTO
    return max(0.0, min(value, 1.0))


def parse_llm_analysis(
    response_text: str,
    info: ArchivoInfo,
    tipo_mensaje: Optional[str],
    settings: Settings,
) -> AnalisisDocumento:
    block = extract_json_block(response_text or "")
    if block is None:
        raise LLMResponseError("No se encontró JSON válido en la respuesta")

    try:
        data: Dict[str, Any] = json.loads(block)
    except json.JSONDecodeError as e:
        raise LLMResponseError(f"JSON inválido en la respuesta: {e}") from e

    if not isinstance(data, dict):
        raise LLMResponseError("La respuesta JSON no es un objeto")

    # el tipo de documento siempre sale de las reglas locales
    tipo = detect_document_type(info, tipo_mensaje)
    prioridad = validate_priority(data.get("prioridad"), settings.default_prioridad)
    confianza = round(_confidence(data.get("confianza")), 2)

    asunto = data.get("asunto_detectado")
    if not isinstance(asunto, str) or not asunto.strip():
        asunto = detect_subject(info, tipo, tipo_mensaje)

    obs = data.get("observaciones")
    obs = obs.strip() if isinstance(obs, str) else ""

    return AnalisisDocumento(
        tipo=tipo,
        area_responsable=validate_area(data.get("area_responsable"), settings.default_area),
        prioridad=prioridad,
        tiempo_estimado=estimate_turnaround(prioridad),
        observaciones=f"Análisis IA (confianza: {confianza * 100:.1f}%) - {obs}",
        asunto_detectado=asunto.strip(),
        requiere_revision=confianza < UMBRAL_REVISION,
        confianza=confianza,
    )


# ------------------------------------------------------------
# 3. Estrategia
# ------------------------------------------------------------

class LLMDocumentClassifier:
    """Estrategia 'ia' del DocumentClassifier: callable(info, perfil, tipo_mensaje)."""

    def __init__(self, client: OpenAI, settings: Settings):
        self.client = client
        self.settings = settings

    def __call__(
        self,
        info: ArchivoInfo,
        perfil: PerfilUsuario,
        tipo_mensaje: Optional[str] = None,
    ) -> AnalisisDocumento:
        prompt = build_prompt(info, perfil, tipo_mensaje)
        text = call_chat(
            self.client,
            [{"role": "user", "content": prompt}],
            model=self.settings.classifier_model,
        )
        return parse_llm_analysis(text, info, tipo_mensaje, self.settings)
