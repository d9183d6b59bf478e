# -*- coding: utf-8 -*-
"""
mesa.utils_text

Utilidades de texto comunes del motor.

Rol
----
- normalize(text): minúsculas + sin tildes, para comparar con las tablas de palabras clave
- contains_any(text, keywords): True si alguna palabra clave aparece en el texto
- split_stem(file_name): separa nombre y extensión
"""

from __future__ import annotations

import unicodedata
from typing import Iterable, Tuple


def normalize(text: str) -> str:
    """
    "Resolución_URGENTE.pdf" -> "resolucion_urgente.pdf"

    Solo quita marcas diacríticas; la ñ también pierde la tilde (ñ -> n),
    lo que no afecta a ninguna palabra clave actual.
    """
    if not text:
        return ""

    decomposed = unicodedata.normalize("NFKD", text.strip().lower())
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def contains_any(text: str, keywords: Iterable[str]) -> bool:
    """Se asume que text ya pasó por normalize()."""
    if not text:
        return False
    return any(kw in text for kw in keywords)


def split_stem(file_name: str) -> Tuple[str, str]:
    """"informe.final.PDF" -> ("informe.final", "PDF"); sin punto -> (nombre, "")."""
    if "." not in file_name:
        return file_name, ""
    stem, _, ext = file_name.rpartition(".")
    return stem, ext
