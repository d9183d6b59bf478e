# routers/expedientes.py
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel, Field

from mesa.schemas import ESTADOS, Expediente
from routers.deps import get_services
from services.container import AppServices

router = APIRouter(prefix="/api/expedientes", tags=["expedientes"])


class EstadoUpdate(BaseModel):
    estado: str = Field(..., examples=["En proceso"])


class DerivacionRequest(BaseModel):
    area: str = Field(..., examples=["Secretaría General"])
    responsable: str = Field(..., examples=["Ana Torres"])
    tipo_derivacion: str = "Derivado"


class OperacionResponse(BaseModel):
    ok: bool
    numero_expediente: str


@router.get("/{numero}", response_model=Expediente, summary="Consultar expediente por número")
async def get_expediente(numero: str, services: AppServices = Depends(get_services)):
    expediente = await run_in_threadpool(services.directory.find, numero)
    if expediente is None:
        raise HTTPException(status_code=404, detail="Expediente no encontrado")
    return expediente


@router.get("", response_model=List[Expediente], summary="Listar expedientes por estado / área")
async def list_expedientes(
    estado: Optional[str] = None,
    area: Optional[str] = None,
    services: AppServices = Depends(get_services),
):
    """
    - estado: coincidencia exacta (Recibido, Derivado, ...)
    - area: subcadena sin distinguir mayúsculas (área emisora o derivada)
    - ambos: intersección; ninguno: todos los expedientes
    """
    directory = services.directory

    if estado is not None:
        items = await run_in_threadpool(directory.list_by_status, estado)
        if area is not None:
            needle = area.lower()
            items = [
                e for e in items
                if needle in e.emisor_area.lower() or needle in e.derivado_area.lower()
            ]
        return items

    if area is not None:
        return await run_in_threadpool(directory.list_by_area, area)

    return await run_in_threadpool(directory.list_all)


@router.post("/{numero}/estado", response_model=OperacionResponse, summary="Actualizar estado")
async def update_estado(
    numero: str,
    payload: EstadoUpdate,
    services: AppServices = Depends(get_services),
):
    if payload.estado not in ESTADOS:
        raise HTTPException(status_code=422, detail=f"Estado inválido. Valores: {', '.join(ESTADOS)}")

    ok = await run_in_threadpool(services.directory.update_status, numero, payload.estado)
    if not ok:
        raise HTTPException(status_code=404, detail="Expediente no encontrado")
    return OperacionResponse(ok=True, numero_expediente=numero)


@router.post("/{numero}/derivar", response_model=OperacionResponse, summary="Derivar expediente a otra área")
async def derivar_expediente(
    numero: str,
    payload: DerivacionRequest,
    services: AppServices = Depends(get_services),
):
    ok = await run_in_threadpool(
        services.directory.derive,
        numero,
        payload.area,
        payload.responsable,
        payload.tipo_derivacion,
    )
    if not ok:
        raise HTTPException(status_code=404, detail="Expediente no encontrado")
    return OperacionResponse(ok=True, numero_expediente=numero)
