"""
Disparo e acompanhamento do pipeline de regras.

O disparo retorna imediatamente (202) com o id do job; o andamento é
consultado por polling.
"""
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, status

from config import Messages
from logging_config import get_logger
from schemas import (
    JobResponse,
    JobsResponse,
    JobStatusResponse,
    PipelineRequest,
    ProcessingJobDetail,
    QueueStatusResponse,
)
from services.processing_queue import processing_queue

logger = get_logger('routers.pipeline')

router = APIRouter(prefix="/pipeline", tags=["Pipeline"])


@router.post("/regras", response_model=JobResponse, status_code=status.HTTP_202_ACCEPTED)
def disparar_regras(dados: PipelineRequest):
    """Enfileira a execução das regras (e da tipificação) para o arquivo."""
    job = processing_queue.add_job(dados.arquivo_fonte, dados.periodo_referencia)
    return JobResponse(
        mensagem=Messages.PIPELINE_STARTED,
        job_id=job.id,
        arquivo_fonte=job.arquivo_fonte,
        status=job.status.value,
    )


@router.get("/jobs/{job_id}", response_model=JobStatusResponse)
def obter_job(job_id: str):
    job = processing_queue.get_job(job_id)
    if job is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=Messages.JOB_NOT_FOUND)
    return JobStatusResponse(job=ProcessingJobDetail(**job.to_dict()))


@router.get("/jobs", response_model=JobsResponse)
def listar_jobs(
    arquivo_fonte: Optional[str] = None,
    limit: int = Query(20, ge=1, le=100),
):
    jobs = processing_queue.list_jobs(arquivo_fonte, limit)
    return JobsResponse(jobs=[ProcessingJobDetail(**j.to_dict()) for j in jobs])


@router.get("/fila", response_model=QueueStatusResponse)
def status_fila():
    return QueueStatusResponse(queue=processing_queue.get_status())
