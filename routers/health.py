# routers/health.py
from fastapi import APIRouter, Depends

from routers.deps import get_services
from services.container import AppServices

router = APIRouter()


@router.get("/", summary="Health check", tags=["health"])
def root(services: AppServices = Depends(get_services)):
    return {
        "message": "Mesa de Partes Digital funcionando",
        "config": services.settings.config_status(),
    }
