from __future__ import annotations

from typing import Any, Dict, List, Optional

from sqlalchemy import JSON, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from database import Base


class ProcessingJobModel(Base):
    """Modelo SQLAlchemy para jobs do pipeline."""
    __tablename__ = "processing_jobs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)

    job_type: Mapped[str] = mapped_column(String(50), nullable=False, default="pipeline")
    arquivo_fonte: Mapped[str] = mapped_column(String(255), nullable=False)
    periodo_referencia: Mapped[str] = mapped_column(String(7), nullable=False)

    status: Mapped[str] = mapped_column(String(20), nullable=False, default="queued", index=True)

    created_at: Mapped[str] = mapped_column(Text, nullable=False)
    started_at: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    completed_at: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    registros_antes: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    registros_depois: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    regras_aplicadas: Mapped[Optional[List[str]]] = mapped_column(JSON, nullable=True)

    result: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)
    error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    progress_current: Mapped[int] = mapped_column(Integer, default=0)
    progress_total: Mapped[int] = mapped_column(Integer, default=0)
    progress_stage: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    progress_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index('ix_jobs_arquivo_status', 'arquivo_fonte', 'status'),
        Index('ix_jobs_created', 'created_at'),
    )
