from typing import List, Optional

from pydantic import BaseModel, Field

from schemas.base import periodo_field


class PipelineRequest(BaseModel):
    """Disparo do pipeline de regras para um arquivo."""
    arquivo_fonte: str = Field(min_length=1, max_length=255)
    periodo_referencia: str = periodo_field()


class ProcessingJobDetail(BaseModel):
    """Detalhes de um job do pipeline."""
    id: str
    status: str
    job_type: str
    arquivo_fonte: str
    periodo_referencia: str
    registros_antes: Optional[int] = None
    registros_depois: Optional[int] = None
    regras_aplicadas: List[str] = []
    progress_current: int = 0
    progress_total: int = 0
    progress_stage: Optional[str] = None
    progress_message: Optional[str] = None
    created_at: str
    started_at: Optional[str] = None
    completed_at: Optional[str] = None
    error: Optional[str] = None
    result: Optional[dict] = None


class JobsResponse(BaseModel):
    """Lista de jobs recentes."""
    status: str = "ok"
    jobs: List[ProcessingJobDetail]


class JobStatusResponse(BaseModel):
    """Status de um job específico."""
    status: str = "ok"
    job: ProcessingJobDetail


class QueueInfoResponse(BaseModel):
    """Informações da fila de processamento."""
    is_running: bool
    queue_size: int
    processing_count: int
    max_concurrent: int
    poll_interval: Optional[float] = None
    jobs: Optional[dict] = None


class QueueStatusResponse(BaseModel):
    """Status da fila de processamento."""
    status: str = "ok"
    queue: QueueInfoResponse
