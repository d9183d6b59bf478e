# core/logging.py
# -*- coding: utf-8 -*-
"""
Dos canales de log:

- logger     : proceso completo, stdout ("mesa_partes")
- log_event  : eventos por chat en JSONL (<LOG_DIR>/<chat_id>.jsonl),
               uno por documento recibido / rechazado / registrado,
               comando y consulta de expediente
"""

import sys
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List

from . import config

logger = logging.getLogger("mesa_partes")
logger.setLevel(config.LOG_LEVEL)

if not logger.handlers:
    _stdout = logging.StreamHandler(sys.stdout)
    _stdout.setFormatter(
        logging.Formatter("[%(asctime)s] [%(levelname)s] %(message)s", datefmt="%H:%M:%S")
    )
    logger.addHandler(_stdout)


def events_path(session_id: str) -> Path:
    # se lee config.LOG_DIR en cada llamada (los tests lo redirigen)
    return config.LOG_DIR / f"{session_id}.jsonl"


def log_event(session_id: str, payload: Dict[str, Any]) -> None:
    record = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "session_id": session_id,
        **payload,
    }
    with events_path(session_id).open("a", encoding="utf-8") as f:
        f.write(json.dumps(record, ensure_ascii=False, default=str) + "\n")


def read_events(session_id: str) -> List[Dict[str, Any]]:
    """Eventos de un chat en orden de escritura ([] si todavía no hay archivo)."""
    path = events_path(session_id)
    if not path.exists():
        return []
    with path.open(encoding="utf-8") as f:
        return [json.loads(line) for line in f if line.strip()]
