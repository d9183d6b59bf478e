# services/usuario_service.py
# -*- coding: utf-8 -*-
"""
Perfiles de solicitantes (hoja de usuarios).

- get_profile(chat_user): busca por "@username" (o id numérico), con caché
  de TTL por clave; si no existe o el almacén falla -> perfil de ciudadano
- tiene_permisos(perfil, accion): registrar / derivar / reportes / admin
- list_users / users_statistics: usados por /test y /reportes
"""

from __future__ import annotations

import time
from typing import Any, Callable, Dict, List, Optional, Tuple

from core.config import Settings
from core.logging import logger
from mesa.schemas import ACCESOS, PerfilUsuario
from services.row_store import RowStore, RowStoreError

MIN_CELDAS = 6

# accion -> niveles de acceso permitidos
PERMISOS: Dict[str, Tuple[str, ...]] = {
    "registrar": ("User", "Admin", "Super"),
    "derivar": ("User", "Admin", "Super"),
    "reportes": ("Admin", "Super"),
    "admin": ("Admin", "Super"),
}


def identity_key(chat_user: Dict[str, Any]) -> str:
    username = chat_user.get("username")
    if username:
        return f"@{username}"
    return str(chat_user.get("id", ""))


def row_to_profile(row: List[str]) -> PerfilUsuario:
    def cell(i: int, default: str = "") -> str:
        return (row[i] if i < len(row) and row[i] else default).strip()

    acceso = cell(6, "Guest")
    if acceso not in ACCESOS:
        acceso = "Guest"

    return PerfilUsuario(
        telegram_id=cell(0),
        nombre=cell(1),
        apellido_paterno=cell(2),
        apellido_materno=cell(3),
        area=cell(4, "Mesa de Partes"),
        cargo=cell(5, "Usuario"),
        acceso=acceso,
        email=cell(7),
        telefono=cell(8),
    )


def guest_profile(chat_user: Dict[str, Any]) -> PerfilUsuario:
    return PerfilUsuario(
        telegram_id=identity_key(chat_user),
        nombre=chat_user.get("first_name") or "",
        apellido_paterno=chat_user.get("last_name") or "",
        area="Externo",
        cargo="Ciudadano",
        acceso="Guest",
    )


class UsuarioService:
    def __init__(
        self,
        store: RowStore,
        settings: Settings,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.store = store
        self.settings = settings
        self.clock = clock
        # clave -> (momento de carga, perfil)
        self._cache: Dict[str, Tuple[float, PerfilUsuario]] = {}

    @property
    def sheet_id(self) -> str:
        return self.settings.google_sheets_usuarios_id

    def _from_cache(self, key: str) -> Optional[PerfilUsuario]:
        entry = self._cache.get(key)
        if entry is None:
            return None
        loaded_at, perfil = entry
        if self.clock() - loaded_at > self.settings.profile_cache_ttl:
            self._cache.pop(key, None)
            return None
        return perfil

    def _lookup(self, key: str) -> Optional[PerfilUsuario]:
        rows = self.store.get_rows(self.sheet_id)
        for row in rows[1:]:
            if row and row[0] == key and len(row) >= MIN_CELDAS:
                return row_to_profile(row)
        return None

    def get_profile(self, chat_user: Dict[str, Any]) -> PerfilUsuario:
        key = identity_key(chat_user)

        cached = self._from_cache(key)
        if cached is not None:
            return cached

        try:
            perfil = self._lookup(key)
        except RowStoreError as e:
            logger.warning(f"⚠️ Error obteniendo perfil de {key}, usando perfil ciudadano: {e}")
            return guest_profile(chat_user)

        if perfil is None:
            return guest_profile(chat_user)

        self._cache[key] = (self.clock(), perfil)
        return perfil

    def invalidate_cache(self) -> None:
        self._cache.clear()

    def list_users(self) -> List[PerfilUsuario]:
        try:
            rows = self.store.get_rows(self.sheet_id)
        except RowStoreError as e:
            logger.warning(f"⚠️ Error obteniendo usuarios: {e}")
            return []
        return [row_to_profile(r) for r in rows[1:] if len(r) >= MIN_CELDAS]

    def users_statistics(self) -> Dict[str, Any]:
        usuarios = self.list_users()
        por_acceso = {a: 0 for a in ACCESOS}
        por_area: Dict[str, int] = {}
        internos = 0

        for u in usuarios:
            por_acceso[u.acceso] += 1
            por_area[u.area] = por_area.get(u.area, 0) + 1
            if u.es_interno:
                internos += 1

        return {
            "total": len(usuarios),
            "por_acceso": por_acceso,
            "por_area": por_area,
            "internos": internos,
            "externos": len(usuarios) - internos,
        }

    @staticmethod
    def tiene_permisos(perfil: PerfilUsuario, accion: str) -> bool:
        allowed = PERMISOS.get(accion)
        if allowed is None:
            return False
        if accion == "derivar" and not perfil.es_interno:
            return False
        return perfil.acceso in allowed
