# tests/conftest.py
from datetime import datetime
from typing import Any, Dict, List, Sequence

import pytest

from core import config
from core.config import Settings
from mesa.expediente_rows import HEADERS, USUARIO_HEADERS
from mesa.schemas import PerfilUsuario
from services.row_store import RowStoreError, parse_row_index

FIXED_NOW = datetime(2025, 1, 21, 14, 28, 56)


class FakeRowStore:
    """Almacén de filas en memoria con fallas inyectables."""

    def __init__(self):
        self.sheets: Dict[str, List[List[str]]] = {}
        self.fail_get = False
        self.fail_append = False
        self.fail_update = False

    def get_rows(self, sheet_id: str) -> List[List[str]]:
        if self.fail_get:
            raise RowStoreError("network error")
        return [list(r) for r in self.sheets.get(sheet_id, [])]

    def append_row(self, sheet_id: str, row: Sequence[str]) -> None:
        if self.fail_append:
            raise RowStoreError("network error")
        self.sheets.setdefault(sheet_id, []).append([str(c) for c in row])

    def update_row(self, sheet_id: str, range_spec: str, row: Sequence[str]) -> None:
        if self.fail_update:
            raise RowStoreError("network error")
        idx = parse_row_index(range_spec)
        rows = self.sheets.setdefault(sheet_id, [])
        while len(rows) <= idx:
            rows.append([])
        rows[idx] = [str(c) for c in row]


class FakeTransport:
    """Transporte de mensajería que solo registra lo enviado."""

    def __init__(self):
        self.messages: List[Dict[str, Any]] = []
        self.actions: List[str] = []
        self.closed = False

    async def send_message(self, chat_id, text, parse_mode="Markdown"):
        self.messages.append({"chat_id": chat_id, "text": text, "buttons": None})
        return True

    async def send_message_with_buttons(self, chat_id, text, botones):
        self.messages.append({"chat_id": chat_id, "text": text, "buttons": botones})
        return True

    async def send_typing(self, chat_id):
        self.actions.append("typing")

    async def send_uploading(self, chat_id):
        self.actions.append("upload_document")

    async def aclose(self):
        self.closed = True

    @property
    def texts(self) -> List[str]:
        return [m["text"] for m in self.messages]


@pytest.fixture(autouse=True)
def _tmp_log_dir(tmp_path, monkeypatch):
    # log_event escribe en config.LOG_DIR
    monkeypatch.setattr(config, "LOG_DIR", tmp_path)


@pytest.fixture
def settings() -> Settings:
    return Settings(notice_delay=0.0)


@pytest.fixture
def store(settings) -> FakeRowStore:
    s = FakeRowStore()
    s.sheets[settings.google_sheets_expedientes_id] = [list(HEADERS)]
    s.sheets[settings.google_sheets_usuarios_id] = [list(USUARIO_HEADERS)]
    return s


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def make_perfil():
    def _make(**overrides) -> PerfilUsuario:
        data = {
            "telegram_id": "@rosa",
            "nombre": "Rosa",
            "apellido_paterno": "Quispe",
            "apellido_materno": "Huamán",
            "area": "Obras y Desarrollo",
            "cargo": "Asistente",
            "acceso": "User",
        }
        data.update(overrides)
        return PerfilUsuario(**data)

    return _make


@pytest.fixture
def perfil_interno(make_perfil) -> PerfilUsuario:
    return make_perfil()


@pytest.fixture
def perfil_ciudadano(make_perfil) -> PerfilUsuario:
    return make_perfil(
        telegram_id="@juan",
        nombre="Juan",
        apellido_paterno="",
        apellido_materno="",
        area="Externo",
        cargo="Ciudadano",
        acceso="Guest",
    )


@pytest.fixture
def perfil_admin(make_perfil) -> PerfilUsuario:
    return make_perfil(
        telegram_id="@ana",
        nombre="Ana",
        apellido_paterno="Torres",
        area="Secretaría General",
        cargo="Secretaria General",
        acceso="Admin",
    )


@pytest.fixture
def fixed_now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def clock():
    return lambda: FIXED_NOW
