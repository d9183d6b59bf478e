# core/config.py
# -*- coding: utf-8 -*-

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Tuple

from dotenv import load_dotenv

# Cargar .env antes de leer cualquier variable
load_dotenv()

# --------------------------------
# Rutas / directorio de logs
# --------------------------------

# Directorio raíz del proyecto
BASE_DIR = Path(__file__).resolve().parent.parent

# Directorio de logs JSONL (uno por chat)
LOG_DIR = Path(os.getenv("MESA_LOG_DIR") or BASE_DIR / "data" / "logs")
LOG_DIR.mkdir(parents=True, exist_ok=True)

# Nivel del logger de proceso (DEBUG, INFO, WARNING, ...)
LOG_LEVEL = os.getenv("MESA_LOG_LEVEL", "INFO").upper()

# --------------------------------
# Valores fijos de la Mesa de Partes
# --------------------------------

SUPPORTED_EXTENSIONS = ("pdf", "jpg", "jpeg", "png", "gif", "webp")

SUPPORTED_MIME_TYPES = (
    "application/pdf",
    "image/jpeg",
    "image/png",
    "image/gif",
    "image/webp",
)

DEFAULT_AREA = "Mesa de Partes"
DEFAULT_PRIORIDAD = "Media"

# Formato de fecha/hora usado en la hoja de expedientes (es-PE)
DATE_FORMAT = "%d/%m/%Y"
TIME_FORMAT = "%H:%M"

TELEGRAM_API_BASE = "https://api.telegram.org"
SHEETS_API_BASE = "https://sheets.googleapis.com/v4/spreadsheets"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"


@dataclass(frozen=True)
class Settings:
    """
    Configuración completa del bot, construida una sola vez al iniciar
    el proceso y pasada a cada componente por constructor.
    """

    # 1) Telegram
    telegram_token: str = ""
    telegram_webhook_secret: str = ""

    # 2) Google Sheets (dos tablas lógicas: usuarios y expedientes)
    google_sheets_usuarios_id: str = "usuarios"
    google_sheets_expedientes_id: str = "expedientes"
    google_service_account_email: str = ""
    google_private_key: str = ""
    google_token_expiry: int = 3600

    # 3) OpenAI (opcional: sin clave se usa solo el análisis local)
    openai_api_key: Optional[str] = None
    classifier_model: str = "gpt-4o-mini"

    # 4) Archivos
    max_file_size: int = 20 * 1024 * 1024
    supported_extensions: Tuple[str, ...] = SUPPORTED_EXTENSIONS
    supported_mime_types: Tuple[str, ...] = SUPPORTED_MIME_TYPES

    # 5) Expedientes
    default_area: str = DEFAULT_AREA
    default_prioridad: str = DEFAULT_PRIORIDAD
    date_format: str = DATE_FORMAT
    time_format: str = TIME_FORMAT

    # 6) Tiempos
    request_timeout: float = 30.0
    notice_delay: float = 1.0
    profile_cache_ttl: float = 300.0

    # 7) Base de datos local (solo sin cuenta de servicio de Google)
    db_host: str = ""
    db_port: str = "3306"
    db_user: str = ""
    db_password: str = ""
    db_name: str = ""
    sqlite_path: str = "./mesa_partes_dev.db"
    db_echo: bool = False

    @property
    def telegram_api_url(self) -> str:
        return f"{TELEGRAM_API_BASE}/bot{self.telegram_token}"

    @property
    def telegram_file_url(self) -> str:
        return f"{TELEGRAM_API_BASE}/file/bot{self.telegram_token}"

    @property
    def google_configured(self) -> bool:
        return bool(self.google_service_account_email and self.google_private_key)

    @property
    def db_backend(self) -> str:
        # con los datos de MySQL completos, MySQL tiene prioridad
        if self.db_host and self.db_user and self.db_password and self.db_name:
            return "mysql"
        return "sqlite"

    @property
    def database_url(self) -> str:
        if self.db_backend == "mysql":
            return (
                f"mysql+pymysql://{self.db_user}:{self.db_password}"
                f"@{self.db_host}:{self.db_port}/{self.db_name}"
            )
        return f"sqlite:///{os.path.abspath(self.sqlite_path)}"

    @property
    def llm_enabled(self) -> bool:
        return bool(self.openai_api_key)

    def config_status(self) -> Dict[str, bool]:
        """Qué integraciones están configuradas (para /health y /test)."""
        return {
            "telegram_configured": bool(self.telegram_token),
            "google_sheets_configured": bool(
                self.google_sheets_usuarios_id and self.google_sheets_expedientes_id
            ),
            "google_auth_configured": self.google_configured,
            "llm_configured": self.llm_enabled,
            "local_db_fallback": not self.google_configured,
        }


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def load_settings() -> Settings:
    """Lee las variables de entorno (.env incluido) y arma Settings."""
    max_mb = _env_float("MAX_FILE_SIZE_MB", 20)

    return Settings(
        telegram_token=os.getenv("TELEGRAM_BOT_TOKEN", ""),
        telegram_webhook_secret=os.getenv("TELEGRAM_WEBHOOK_SECRET", ""),
        google_sheets_usuarios_id=os.getenv("GOOGLE_SHEETS_USUARIOS_ID") or "usuarios",
        google_sheets_expedientes_id=os.getenv("GOOGLE_SHEETS_EXPEDIENTES_ID") or "expedientes",
        google_service_account_email=os.getenv("GOOGLE_SERVICE_ACCOUNT_EMAIL", ""),
        # las claves privadas suelen venir con "\n" escapado en .env
        google_private_key=os.getenv("GOOGLE_PRIVATE_KEY", "").replace("\\n", "\n"),
        openai_api_key=os.getenv("OPENAI_API_KEY") or None,
        classifier_model=os.getenv("OPENAI_CLASSIFIER_MODEL", "gpt-4o-mini"),
        max_file_size=int(max_mb * 1024 * 1024),
        request_timeout=_env_float("REQUEST_TIMEOUT", 30.0),
        notice_delay=_env_float("NOTICE_DELAY", 1.0),
        profile_cache_ttl=_env_float("PROFILE_CACHE_TTL", 300.0),
        db_host=os.getenv("DB_HOST", ""),
        db_port=os.getenv("DB_PORT", "3306"),
        db_user=os.getenv("DB_USER", ""),
        db_password=os.getenv("DB_PASSWORD", ""),
        db_name=os.getenv("DB_NAME", ""),
        sqlite_path=os.getenv("SQLITE_PATH", "./mesa_partes_dev.db"),
        db_echo=os.getenv("DB_ECHO", "false").lower() == "true",
    )
