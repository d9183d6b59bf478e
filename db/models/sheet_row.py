from sqlalchemy import (
    Column,
    BigInteger,
    Integer,
    String,
    JSON,
    DateTime,
    UniqueConstraint,
)
from sqlalchemy.sql import func

from db.session import Base


class SheetRow(Base):
    """Una fila de una hoja lógica (usuarios / expedientes), guardada como lista de celdas."""

    __tablename__ = "sheet_rows"
    __table_args__ = (UniqueConstraint("sheet_id", "position", name="uq_sheet_position"),)

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)
    sheet_id = Column(String(100), nullable=False, index=True)
    position = Column(Integer, nullable=False)          # 0 = encabezado
    cells = Column(JSON, nullable=False, default=list)  # ["Interno", "12", "C-12", ...]
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime,
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
