# services/sheets_client.py
# -*- coding: utf-8 -*-
"""
Almacén de filas sobre Google Sheets (API v4 values).

- Token OAuth2 por JWT-bearer de cuenta de servicio (RS256, python-jose),
  cacheado hasta 60 s antes de vencer
- get_rows    : GET  values/Sheet1
- append_row  : POST values/Sheet1:append?valueInputOption=RAW
- update_row  : PUT  values/<rango>?valueInputOption=RAW

Errores de red / HTTP / token -> RowStoreError.
"""

from __future__ import annotations

import time
from typing import List, Optional, Sequence

import httpx
from jose import jwt
from jose.exceptions import JOSEError

from core.config import GOOGLE_TOKEN_URL, SHEETS_API_BASE, Settings
from core.logging import logger
from services.row_store import RowStoreError

SCOPES = "https://www.googleapis.com/auth/spreadsheets"
TOKEN_MARGIN = 60  # segundos


class GoogleSheetsRowStore:
    def __init__(self, settings: Settings, transport: Optional[httpx.BaseTransport] = None):
        self.settings = settings
        # un solo cliente de larga vida (pool de conexiones)
        self._http = httpx.Client(timeout=settings.request_timeout, transport=transport)
        self._access_token: Optional[str] = None
        self._token_expiry: float = 0.0

    def close(self) -> None:
        self._http.close()

    # ------------------------------------------------------------
    # 1. Token
    # ------------------------------------------------------------

    def _signed_assertion(self, now: int) -> str:
        claims = {
            "iss": self.settings.google_service_account_email,
            "scope": SCOPES,
            "aud": GOOGLE_TOKEN_URL,
            "iat": now,
            "exp": now + self.settings.google_token_expiry,
        }
        try:
            return jwt.encode(claims, self.settings.google_private_key, algorithm="RS256")
        except (JOSEError, ValueError) as e:
            # clave privada mal formada o mal escapada en .env
            raise RowStoreError(f"No se pudo firmar el JWT de la cuenta de servicio: {e}") from e

    def access_token(self) -> str:
        if self._access_token and time.time() < self._token_expiry:
            return self._access_token

        now = int(time.time())
        try:
            res = self._http.post(
                GOOGLE_TOKEN_URL,
                data={
                    "grant_type": "urn:ietf:params:oauth:grant-type:jwt-bearer",
                    "assertion": self._signed_assertion(now),
                },
            )
            data = res.json()
        except (httpx.HTTPError, ValueError) as e:
            raise RowStoreError(f"No se pudo obtener token de Google: {e}") from e

        token = data.get("access_token")
        if not token:
            raise RowStoreError(f"Error Google API: {data.get('error') or 'Sin access token'}")

        expires_in = int(data.get("expires_in", self.settings.google_token_expiry))
        self._access_token = token
        self._token_expiry = time.time() + expires_in - TOKEN_MARGIN
        logger.info("🔑 Token de Google Sheets renovado")
        return token

    # ------------------------------------------------------------
    # 2. Filas
    # ------------------------------------------------------------

    def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        headers = {"Authorization": f"Bearer {self.access_token()}"}
        try:
            res = self._http.request(method, url, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            raise RowStoreError(f"Error de conexión con Google Sheets: {e}") from e

        if res.is_error:
            try:
                detail = res.json().get("error", {}).get("message")
            except ValueError:
                detail = None
            raise RowStoreError(
                f"Error Google Sheets HTTP {res.status_code}: {detail or res.reason_phrase}"
            )
        return res

    def get_rows(self, sheet_id: str) -> List[List[str]]:
        res = self._request("GET", f"{SHEETS_API_BASE}/{sheet_id}/values/Sheet1")
        try:
            values = res.json().get("values") or []
        except ValueError as e:
            raise RowStoreError(f"Respuesta inválida de Google Sheets: {e}") from e
        return [[str(c) for c in row] for row in values]

    def append_row(self, sheet_id: str, row: Sequence[str]) -> None:
        self._request(
            "POST",
            f"{SHEETS_API_BASE}/{sheet_id}/values/Sheet1:append",
            params={"valueInputOption": "RAW"},
            json={"values": [list(row)]},
        )
        logger.info(f"✅ Fila agregada a Google Sheets ({sheet_id})")

    def update_row(self, sheet_id: str, range_spec: str, row: Sequence[str]) -> None:
        self._request(
            "PUT",
            f"{SHEETS_API_BASE}/{sheet_id}/values/{range_spec}",
            params={"valueInputOption": "RAW"},
            json={"values": [list(row)]},
        )
        logger.info(f"✅ Fila actualizada en Google Sheets ({sheet_id} {range_spec})")
