# -*- coding: utf-8 -*-
"""
mesa.llm_client

Envoltorio común para llamar a OpenAI Chat desde el motor.

- build_client(settings): cliente OpenAI, o None si no hay OPENAI_API_KEY
  (sin clave se trabaja solo con el análisis local; no es un error)
- call_chat(client, messages, model, ...): llamada Chat; cualquier fallo
  se traduce a LLMError con una causa concreta para el log

El clasificador con IA (mesa.llm_classifier) llama a la API solo a través de este módulo.
"""

from typing import Dict, List, Optional

import openai
from openai import OpenAI

from core.config import Settings

TEMP_CLASSIFIER = 0.0  # clasificación (determinista)


class LLMError(Exception):
    """
    Fallo del servicio de IA.

    cause: credenciales | creditos | limite | timeout | conexion | respuesta | desconocido
    """

    def __init__(self, message: str, cause: str = "desconocido"):
        super().__init__(message)
        self.cause = cause


class LLMResponseError(LLMError):
    """La respuesta llegó, pero no trae un JSON utilizable."""

    def __init__(self, message: str):
        super().__init__(message, cause="respuesta")


def build_client(settings: Settings) -> Optional[OpenAI]:
    if not settings.openai_api_key:
        return None
    # sin reintentos: si falla, el clasificador pasa directo a las reglas
    return OpenAI(
        api_key=settings.openai_api_key,
        timeout=settings.request_timeout,
        max_retries=0,
    )


def _classify_error(e: Exception) -> str:
    if isinstance(e, openai.AuthenticationError):
        return "credenciales"
    if isinstance(e, openai.RateLimitError):
        # insufficient_quota también llega como 429
        if "quota" in str(e).lower():
            return "creditos"
        return "limite"
    if isinstance(e, openai.APITimeoutError):
        return "timeout"
    if isinstance(e, openai.APIConnectionError):
        return "conexion"
    if isinstance(e, openai.APIStatusError):
        msg = str(e).lower()
        if e.status_code in (400, 402) and ("credit" in msg or "billing" in msg):
            return "creditos"
        return "desconocido"
    return "desconocido"


def call_chat(
    client: OpenAI,
    messages: List[Dict[str, str]],
    model: str,
    temperature: float = TEMP_CLASSIFIER,
    max_tokens: int = 1000,
) -> str:
    """OpenAI Chat; devuelve el texto de la respuesta o levanta LLMError."""
    try:
        resp = client.chat.completions.create(
            model=model,
            messages=messages,
            temperature=temperature,
            max_tokens=max_tokens,
        )
    except openai.OpenAIError as e:
        raise LLMError(f"OpenAI API error: {e}", cause=_classify_error(e)) from e

    content = resp.choices[0].message.content if resp.choices else None
    if not content:
        raise LLMResponseError("Respuesta vacía de OpenAI")
    return content.strip()
