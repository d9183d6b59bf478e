# routers/reportes.py
from datetime import datetime

from fastapi import APIRouter, Depends, Response
from fastapi.concurrency import run_in_threadpool

from core.report_pdf import build_statistics_pdf
from mesa.schemas import EstadisticasExpedientes
from routers.deps import get_services
from services.container import AppServices

router = APIRouter(prefix="/api/reportes", tags=["reportes"])


@router.get("/estadisticas", response_model=EstadisticasExpedientes, summary="Estadísticas de expedientes")
async def get_estadisticas(services: AppServices = Depends(get_services)):
    return await run_in_threadpool(services.directory.statistics)


@router.get("/estadisticas.pdf", summary="Estadísticas de expedientes (PDF)")
async def get_estadisticas_pdf(services: AppServices = Depends(get_services)):
    stats = await run_in_threadpool(services.directory.statistics)
    now = datetime.now()
    pdf = await run_in_threadpool(build_statistics_pdf, stats, now)

    filename = f"reporte_expedientes_{now.strftime('%Y%m%d_%H%M')}.pdf"
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
