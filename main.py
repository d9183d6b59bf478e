# -*- coding: utf-8 -*-
"""
main.py

Demo de consola del clasificador de la Mesa de Partes.

🎯 Rol
--------------------------------------
- Pide nombre de archivo, tamaño (KB) y tipo de mensaje (documento / foto)
- Muestra el descriptor normalizado (ArchivoInfo), la validación y la
  decisión de las reglas locales para un solicitante interno de ejemplo
  y para un ciudadano

👉 No toca Telegram, Google Sheets ni OpenAI: solo mesa/.
   El bot real corre con app_fastapi.py (uvicorn).
"""

import json
from typing import Any, Dict

from core.config import load_settings
from mesa import analyze_file, classify_rules, validate_file
from mesa.schemas import PerfilUsuario

# solicitante interno de ejemplo
PERFIL_INTERNO = PerfilUsuario(
    telegram_id="@demo_interno",
    nombre="Rosa",
    apellido_paterno="Quispe",
    apellido_materno="Huamán",
    area="Obras y Desarrollo",
    cargo="Asistente",
    acceso="User",
)

PERFIL_CIUDADANO = PerfilUsuario(
    telegram_id="@demo_ciudadano",
    nombre="Juan",
    area="Externo",
    cargo="Ciudadano",
    acceso="Guest",
)


def _print_json(title: str, data: Dict[str, Any]) -> None:
    print(f"\n[{title}]")
    print(json.dumps(data, ensure_ascii=False, indent=2))


def run_console_mode():
    settings = load_settings()
    print("\n[Mesa de Partes] Demo del clasificador (exit para salir)")

    while True:
        try:
            nombre = input("\nNombre de archivo (vacío = foto sin nombre) > ").strip()
            if nombre.lower() in ("exit", "quit"):
                print("Saliendo.")
                break
            size_kb = input("Tamaño en KB [100] > ").strip() or "100"
            tipo_mensaje = input("Tipo de mensaje (documento/foto) [documento] > ").strip() or "documento"
        except (EOFError, KeyboardInterrupt):
            print("\nSaliendo.")
            break

        try:
            file_size = int(float(size_kb) * 1024)
        except ValueError:
            print("⚠️ Tamaño inválido, se usa 100 KB")
            file_size = 100 * 1024

        attachment: Dict[str, Any] = {"file_id": "demo", "file_size": file_size}
        if nombre:
            attachment["file_name"] = nombre
        else:
            attachment["mime_type"] = "image/jpeg"

        info = analyze_file(attachment, tipo_mensaje, settings)
        _print_json("ArchivoInfo", info.model_dump())

        validacion = validate_file(info, settings)
        if not validacion.valido:
            print(f"\n❌ Rechazado: {validacion.razon}")
            continue

        for etiqueta, perfil in (("interno", PERFIL_INTERNO), ("ciudadano", PERFIL_CIUDADANO)):
            analisis = classify_rules(info, perfil, tipo_mensaje, settings.default_area)
            _print_json(f"Análisis ({etiqueta})", analisis.model_dump())


if __name__ == "__main__":
    run_console_mode()
