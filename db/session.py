# db/session.py
# -*- coding: utf-8 -*-
"""
Configuración de engine/sesión SQLAlchemy para el almacén de filas local.

- La URL la arma Settings.database_url (core/config.py):
  MySQL si .env tiene todos los datos DB_*, si no un archivo SQLite (mesa_partes_dev.db)
- Este almacén solo se usa cuando Google Sheets no está configurado
  (services/row_store.SqlRowStore implementa el mismo contrato de filas)
"""

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool
from sqlalchemy.orm import sessionmaker, declarative_base, Session

# La mayoría de modelos importan este Base
Base = declarative_base()


def build_engine(url: str, echo: bool = False) -> Engine:
    """Crea el engine con las opciones adecuadas según el backend."""
    engine_kwargs = {
        "echo": echo,
        "future": True,
    }

    # SQLite necesita check_same_thread=False porque FastAPI usa un threadpool
    if url.startswith("sqlite"):
        engine_kwargs["connect_args"] = {"check_same_thread": False}
        # SQLite en memoria: todas las sesiones comparten una sola conexión
        if url in ("sqlite://", "sqlite:///:memory:"):
            engine_kwargs["poolclass"] = StaticPool
    else:
        # En MySQL conviene reciclar conexiones
        engine_kwargs["pool_recycle"] = 3600
        engine_kwargs["pool_pre_ping"] = True

    return create_engine(url, **engine_kwargs)


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=engine,
        class_=Session,
    )


@contextmanager
def session_scope(factory: sessionmaker) -> Iterator[Session]:
    """
    Abre una sesión y la cierra siempre al terminar.

    Ejemplo:
        with session_scope(factory) as db:
            db.add(...)
    """
    db: Session = factory()
    try:
        yield db
    finally:
        db.close()
