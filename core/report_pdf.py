# core/report_pdf.py
# -*- coding: utf-8 -*-

import io
from datetime import datetime
from typing import List, Optional

from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas
from reportlab.lib.units import mm

from mesa.schemas import EstadisticasExpedientes


def build_statistics_text(stats: EstadisticasExpedientes) -> List[str]:
    lines = [
        f"Total de expedientes: {stats.total}",
        f"Recibidos hoy: {stats.hoy}",
        "",
        "Por estado:",
    ]
    lines += [f"    {k}: {v}" for k, v in stats.por_estado.items()]
    lines += ["", "Por prioridad:"]
    lines += [f"    {k}: {v}" for k, v in stats.por_prioridad.items()]
    lines += ["", "Por tipo:"]
    lines += [f"    {k}: {v}" for k, v in stats.por_tipo.items()]
    return lines


def build_statistics_pdf(stats: EstadisticasExpedientes, generated_at: Optional[datetime] = None) -> bytes:
    """
    Reporte de estadísticas de expedientes en formato de documento oficial.
    Devuelve los bytes del PDF (la API lo entrega como descarga).
    """
    generated_at = generated_at or datetime.now()
    buffer = io.BytesIO()

    c = canvas.Canvas(buffer, pagesize=A4)
    width, height = A4

    # Título
    c.setFont("Helvetica-Bold", 16)
    c.drawCentredString(width / 2.0, height - 25 * mm, "Mesa de Partes - Reporte de expedientes")

    c.setFont("Helvetica", 9)
    c.drawCentredString(
        width / 2.0,
        height - 32 * mm,
        f"Generado: {generated_at.strftime('%d/%m/%Y %H:%M')}",
    )

    # Cuerpo
    c.setFont("Helvetica", 11)

    y = height - 45 * mm
    for line in build_statistics_text(stats):
        if y < 20 * mm:  # fin de página
            c.showPage()
            c.setFont("Helvetica", 11)
            y = height - 25 * mm
        c.drawString(20 * mm, y, line)
        y -= 6 * mm

    c.showPage()
    c.save()
    return buffer.getvalue()
