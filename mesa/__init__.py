# -*- coding: utf-8 -*-
"""
mesa package

Motor de la Mesa de Partes digital: normaliza los adjuntos recibidos por el
bot, los clasifica (área responsable, prioridad, plazo, confianza) y arma el
expediente que se registra en el almacén de filas.

Desde fuera (services/bot_controller.py, app_fastapi.py) normalmente se usa:

- analyze_file(attachment, tipo_mensaje, settings) : adjunto -> ArchivoInfo
- DocumentClassifier(settings, enhanced=None).analyze(info, perfil, tipo_mensaje)
- pipeline.DocumentPipeline.process_document(...) : flujo completo de registro

Módulos

- schemas          : tipos de dominio (pydantic)
- utils_text       : normalización sin tildes, contains_any
- file_info        : normalizador de adjuntos + validación
- classifier       : reglas, análisis básico y cadena de estrategias
- llm_client       : envoltorio OpenAI Chat + LLMError
- llm_classifier   : estrategia opcional con IA (prompt, JSON, validación)
- expediente_rows  : mapeo único fila <-> Expediente (columnas A-U)
- pipeline         : orquestador (importar directamente: depende de services/)
"""

from .classifier import DocumentClassifier, classify_rules
from .file_info import analyze_file, validate_file

__all__ = ["DocumentClassifier", "classify_rules", "analyze_file", "validate_file"]
