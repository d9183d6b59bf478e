# routers/deps.py
from fastapi import Request

from services.container import AppServices


def get_services(request: Request) -> AppServices:
    """Servicios armados en el lifespan de app_fastapi (app.state.services)."""
    return request.app.state.services
