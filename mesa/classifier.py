# mesa/classifier.py
# -*- coding: utf-8 -*-
"""
Clasificador de documentos de la Mesa de Partes.

Rol
----
- classify_rules(info, perfil, tipo_mensaje):
    análisis local determinista (tipo, área, prioridad, plazo, asunto,
    observaciones, revisión manual, confianza)
- classify_basic(info, perfil, tipo_mensaje, settings):
    último recurso, sin tablas de tipo/área/prioridad
- DocumentClassifier:
    cadena ordenada de estrategias (IA opcional -> reglas -> básico).
    analyze() nunca levanta excepciones.

Notas
----
- Todas las tablas de palabras clave son listas ordenadas: la primera
  coincidencia gana, así que el orden importa.
- Se compara contra el nombre normalizado (minúsculas, sin tildes).
"""

from __future__ import annotations

from typing import Callable, List, Optional, Sequence, Tuple

from core.config import Settings
from core.logging import logger
from .schemas import AnalisisDocumento, ArchivoInfo, PerfilUsuario, PrioridadNivel
from .utils_text import contains_any, normalize, split_stem

# ------------------------------------------------------------
# 1. Tablas
# ------------------------------------------------------------

SECRETARIA_GENERAL = "Secretaría General"
AREA_INFRAESTRUCTURA = "Sub Gerencia de Infraestructura y Obras Públicas"
AREA_DESARROLLO_SOCIAL = "Sub Gerencia de Desarrollo Social y Comunal"
AREA_DESARROLLO_ECONOMICO = "Sub Gerencia de Desarrollo Económico y Gestión Ambiental"
AREA_LOGISTICA_RRHH = "Oficina de Logística y Recursos Humanos"
AREA_TESORERIA = "Responsable de Tesorería y Rentas"

# palabra clave -> tipo de documento
TIPOS_POR_NOMBRE: List[Tuple[str, str]] = [
    ("oficio", "Oficio"),
    ("informe", "Informe"),
    ("solicitud", "Solicitud"),
    ("memorando", "Memorando"),
    ("carta", "Carta"),
    ("constancia", "Constancia"),
    ("certificado", "Certificado"),
    ("resolucion", "Resolución"),
    ("decreto", "Decreto"),
    ("ordenanza", "Ordenanza"),
]

# usuarios internos: tipo de documento -> área (None = su propia área)
AREAS_POR_TIPO: List[Tuple[str, Optional[str]]] = [
    ("informe", SECRETARIA_GENERAL),
    ("oficio", SECRETARIA_GENERAL),
    ("solicitud", None),
    ("memorando", None),
    ("resolucion", SECRETARIA_GENERAL),
    ("decreto", SECRETARIA_GENERAL),
]

# usuarios externos: palabra en el nombre -> área
AREAS_POR_PALABRA: List[Tuple[str, str]] = [
    ("obras", AREA_INFRAESTRUCTURA),
    ("infraestructura", AREA_INFRAESTRUCTURA),
    ("construccion", AREA_INFRAESTRUCTURA),
    ("pista", AREA_INFRAESTRUCTURA),
    ("vereda", AREA_INFRAESTRUCTURA),
    ("desarrollo", AREA_DESARROLLO_SOCIAL),
    ("social", AREA_DESARROLLO_SOCIAL),
    ("comunal", AREA_DESARROLLO_SOCIAL),
    ("educacion", AREA_DESARROLLO_SOCIAL),
    ("salud", AREA_DESARROLLO_SOCIAL),
    ("ambiental", AREA_DESARROLLO_ECONOMICO),
    ("economico", AREA_DESARROLLO_ECONOMICO),
    ("comercio", AREA_DESARROLLO_ECONOMICO),
    ("turismo", AREA_DESARROLLO_ECONOMICO),
    ("logistica", AREA_LOGISTICA_RRHH),
    ("recursos", AREA_LOGISTICA_RRHH),
    ("personal", AREA_LOGISTICA_RRHH),
    ("tesoreria", AREA_TESORERIA),
    ("pago", AREA_TESORERIA),
    ("tributo", AREA_TESORERIA),
    ("impuesto", AREA_TESORERIA),
]

PALABRAS_URGENTES = ["urgente", "inmediato", "emergencia", "critico"]
PALABRAS_ALTAS = ["importante", "prioridad", "rapido"]
PALABRAS_BAJAS = ["saludo", "felicitacion"]

# nombres poco descriptivos -> revisión manual
PALABRAS_GENERICAS = ["documento", "archivo"]

TIEMPOS_ESTIMADOS = {
    "Muy Urgente": "24 horas",
    "Alta": "1-2 días hábiles",
    "Media": "3-5 días hábiles",
    "Baja": "5-7 días hábiles",
}

MB = 1024 * 1024


# ------------------------------------------------------------
# 2. Reglas (análisis local)
# ------------------------------------------------------------

def detect_document_type(info: ArchivoInfo, tipo_mensaje: Optional[str] = None) -> str:
    nombre = normalize(info.file_name)

    for keyword, tipo in TIPOS_POR_NOMBRE:
        if keyword in nombre:
            return tipo

    if tipo_mensaje == "foto":
        return "Documento fotografiado"
    if info.extension == "pdf":
        return "Documento PDF"
    if info.extension in ("jpg", "jpeg", "png"):
        return "Imagen - Documento escaneado"
    return "Documento"


def detect_area(info: ArchivoInfo, perfil: PerfilUsuario, tipo_documento: str, default_area: str) -> str:
    if perfil.es_interno:
        tipo_norm = normalize(tipo_documento)
        for keyword, area in AREAS_POR_TIPO:
            if keyword in tipo_norm:
                return area or perfil.area
        return perfil.area

    nombre = normalize(info.file_name)
    for palabra, area in AREAS_POR_PALABRA:
        if palabra in nombre:
            return area
    return default_area


def detect_priority(info: ArchivoInfo, perfil: PerfilUsuario) -> PrioridadNivel:
    nombre = normalize(info.file_name)

    if contains_any(nombre, PALABRAS_URGENTES):
        return "Muy Urgente"
    if contains_any(nombre, PALABRAS_ALTAS) or perfil.acceso in ("Admin", "Super"):
        return "Alta"
    if contains_any(nombre, PALABRAS_BAJAS):
        return "Baja"
    return "Media"


def estimate_turnaround(prioridad: str) -> str:
    return TIEMPOS_ESTIMADOS.get(prioridad, TIEMPOS_ESTIMADOS["Media"])


def detect_subject(info: ArchivoInfo, tipo_documento: str, tipo_mensaje: Optional[str] = None) -> str:
    """Un nombre largo y descriptivo se usa tal cual como asunto (sin extensión)."""
    stem, _ = split_stem(info.file_name)
    stem_norm = normalize(stem)

    if len(stem) > 20 and "_" not in stem and "documento" not in stem_norm:
        return stem

    if tipo_mensaje == "foto":
        return "Documento capturado con cámara"
    return f"{tipo_documento} recibido"


def build_observations(info: ArchivoInfo, perfil: PerfilUsuario, tipo_mensaje: Optional[str] = None) -> str:
    partes = [f"Enviado por {perfil.cargo} de {perfil.area}"]

    if tipo_mensaje == "foto":
        partes.append("Documento fotografiado desde dispositivo móvil")
    if info.file_size > 5 * MB:
        partes.append("Archivo de gran tamaño")
    if info.tipo_detectado == "pdf":
        partes.append("Documento en formato PDF")

    return ". ".join(partes)


def needs_manual_review(info: ArchivoInfo, perfil: PerfilUsuario) -> bool:
    nombre = normalize(info.file_name)
    return (
        not perfil.es_interno
        or info.file_size > 10 * MB
        or contains_any(nombre, PALABRAS_GENERICAS)
        or info.tipo_detectado == "desconocido"
    )


def compute_confidence(info: ArchivoInfo, perfil: PerfilUsuario) -> float:
    confianza = 0.7
    if perfil.es_interno:
        confianza += 0.1
    if info.tipo_detectado != "desconocido":
        confianza += 0.1
    if len(info.file_name) > 10:
        confianza += 0.05
    if info.tipo_detectado in ("pdf", "imagen"):
        confianza += 0.05
    # round: 0.7 + 0.1 + 0.1 + 0.05 + 0.05 en float no da 1.0 exacto
    return round(min(confianza, 1.0), 2)


def classify_rules(
    info: ArchivoInfo,
    perfil: PerfilUsuario,
    tipo_mensaje: Optional[str] = None,
    default_area: str = "Mesa de Partes",
) -> AnalisisDocumento:
    tipo = detect_document_type(info, tipo_mensaje)
    prioridad = detect_priority(info, perfil)

    return AnalisisDocumento(
        tipo=tipo,
        area_responsable=detect_area(info, perfil, tipo, default_area),
        prioridad=prioridad,
        tiempo_estimado=estimate_turnaround(prioridad),
        observaciones=build_observations(info, perfil, tipo_mensaje),
        asunto_detectado=detect_subject(info, tipo, tipo_mensaje),
        requiere_revision=needs_manual_review(info, perfil),
        confianza=compute_confidence(info, perfil),
    )


# ------------------------------------------------------------
# 3. Último recurso
# ------------------------------------------------------------

TIPO_BASICO = {
    "pdf": "Documento PDF",
    "imagen": "Imagen - Documento",
    "documento": "Documento",
    "desconocido": "Archivo",
}


def classify_basic(
    info: ArchivoInfo,
    perfil: PerfilUsuario,
    tipo_mensaje: Optional[str] = None,
    default_area: str = "Mesa de Partes",
) -> AnalisisDocumento:
    tipo = TIPO_BASICO.get(info.tipo_detectado, "Archivo")
    return AnalisisDocumento(
        tipo=tipo,
        area_responsable=perfil.area if perfil.es_interno else default_area,
        prioridad="Media",
        tiempo_estimado=TIEMPOS_ESTIMADOS["Media"],
        observaciones=f"Documento {info.tipo_detectado} enviado por {perfil.cargo}",
        asunto_detectado=f"{tipo} - {info.file_name}",
        requiere_revision=True,
        confianza=0.5,
    )


# ------------------------------------------------------------
# 4. Cadena de estrategias
# ------------------------------------------------------------

Strategy = Callable[[ArchivoInfo, PerfilUsuario, Optional[str]], AnalisisDocumento]


class DocumentClassifier:
    """
    Prueba las estrategias en orden; la primera que no falla gana.

    - enhanced (IA): solo si hay clave de OpenAI configurada
    - rules: siempre
    - basic: si las reglas mismas fallan
    """

    def __init__(self, settings: Settings, enhanced: Optional[Strategy] = None):
        self.settings = settings
        strategies: List[Tuple[str, Strategy]] = []
        if enhanced is not None:
            strategies.append(("ia", enhanced))
        strategies.append(("reglas", self._rules))
        strategies.append(("basico", self._basic))
        self.strategies: Sequence[Tuple[str, Strategy]] = strategies

    def _rules(self, info, perfil, tipo_mensaje):
        return classify_rules(info, perfil, tipo_mensaje, self.settings.default_area)

    def _basic(self, info, perfil, tipo_mensaje):
        return classify_basic(info, perfil, tipo_mensaje, self.settings.default_area)

    def analyze(
        self,
        info: ArchivoInfo,
        perfil: PerfilUsuario,
        tipo_mensaje: Optional[str] = None,
    ) -> AnalisisDocumento:
        for name, strategy in self.strategies:
            try:
                analisis = strategy(info, perfil, tipo_mensaje)
                logger.info(
                    f"🤖 Análisis ({name}): tipo={analisis.tipo}, área={analisis.area_responsable}, "
                    f"prioridad={analisis.prioridad}, confianza={analisis.confianza}"
                )
                return analisis
            except Exception as e:
                cause = getattr(e, "cause", type(e).__name__)
                logger.warning(f"⚠️ Estrategia '{name}' falló ({cause}): {e}. Probando la siguiente...")

        # ni siquiera el análisis básico funcionó
        logger.error("❌ Todas las estrategias de análisis fallaron; usando valores por defecto")
        return AnalisisDocumento(
            tipo="Documento",
            area_responsable=self.settings.default_area,
            prioridad="Media",
            tiempo_estimado=TIEMPOS_ESTIMADOS["Media"],
            requiere_revision=True,
            confianza=0.5,
        )
