"""
Fila de Processamento Assíncrono do pipeline de volumetria.

Recebe disparos do pipeline por arquivo e os executa em background.
Utiliza JobRepository para persistência, JobExecutor para execução
e models compartilhados.
"""

import asyncio
import threading
import uuid
from collections import deque
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from config import QUEUE_MAX_CONCURRENT, QUEUE_POLL_INTERVAL
from exceptions import JobConflictError
from logging_config import get_logger
from repositories.job_repository import JobRepository
from utils.periodo import parse_periodo

from .job_executor import JobExecutor
from .metrics import record_job_completed, record_job_failed, update_queue_metrics
from .models import JobStatus, ProcessingJob

logger = get_logger('services.processing_queue')


def _job_duration(job: ProcessingJob) -> float:
    if not (job.started_at and job.completed_at):
        return 0.0
    start = datetime.fromisoformat(job.started_at)
    end = datetime.fromisoformat(job.completed_at)
    return (end - start).total_seconds()


class ProcessingQueue:
    """
    Fila de processamento assíncrono do pipeline.

    Características:
    - Processamento em background (disparo retorna na hora)
    - Um job ativo por arquivo
    - Sem retry automático
    - Persistência de jobs (jobs na fila sobrevivem a restart)
    """

    def __init__(
        self,
        repository: Optional[JobRepository] = None,
        runner: Optional[Callable[..., Dict[str, Any]]] = None,
    ):
        self._queue: deque = deque()
        self._queued_jobs: Dict[str, ProcessingJob] = {}  # Índice para O(1) lookup
        self._processing: Dict[str, ProcessingJob] = {}
        self._lock = threading.Lock()
        self._is_running = False
        self._worker_task = None

        # Configurações (importadas de config)
        self._max_concurrent = QUEUE_MAX_CONCURRENT
        self._poll_interval = QUEUE_POLL_INTERVAL

        # Repositório para persistência (usa SQLAlchemy)
        self._repository = repository or JobRepository()

        # Executor para processamento de jobs
        self._executor = JobExecutor(
            save_job_callback=self._save_job,
            update_progress_callback=self.update_job_progress,
            runner=runner,
        )

    @property
    def is_running(self) -> bool:
        return self._is_running

    def _save_job(self, job: ProcessingJob):
        """Salva job no banco de dados via repositório."""
        self._repository.save(job)

    def get_job(self, job_id: str) -> Optional[ProcessingJob]:
        """Busca um job pelo ID (memória primeiro, depois repositório)."""
        with self._lock:
            job = self._queued_jobs.get(job_id) or self._processing.get(job_id)
        if job:
            return job
        return self._repository.get_by_id(job_id)

    def list_jobs(self, arquivo_fonte: Optional[str] = None, limit: int = 20) -> List[ProcessingJob]:
        """Lista jobs recentes via repositório."""
        return self._repository.list_recent(arquivo_fonte, limit)

    def _active_in_memory(self, arquivo_fonte: str) -> Optional[ProcessingJob]:
        """Job na fila ou em processamento para o arquivo (chamar com o lock)."""
        for job in list(self._queued_jobs.values()) + list(self._processing.values()):
            if job.arquivo_fonte == arquivo_fonte:
                return job
        return None

    def add_job(
        self,
        arquivo_fonte: str,
        periodo_referencia: str,
        job_id: Optional[str] = None,
    ) -> ProcessingJob:
        """
        Enfileira uma execução do pipeline para o arquivo.

        Args:
            arquivo_fonte: Arquivo de volumetria a processar
            periodo_referencia: Período YYYY-MM
            job_id: ID do job (gerado se omitido)

        Returns:
            Job criado

        Raises:
            InvalidPeriodError: período inválido
            JobConflictError: já existe job na fila ou em processamento
                para o arquivo
        """
        parse_periodo(periodo_referencia)
        persistido = self._repository.get_active_for_arquivo(arquivo_fonte)
        if persistido is not None:
            raise JobConflictError(arquivo_fonte, persistido.id)

        job = ProcessingJob(
            id=job_id or str(uuid.uuid4()),
            arquivo_fonte=arquivo_fonte,
            periodo_referencia=periodo_referencia,
            progress_stage="queued",
            progress_message="Aguardando na fila",
        )

        # Verificação e enfileiramento atômicos
        with self._lock:
            ativo = self._active_in_memory(arquivo_fonte)
            if ativo is not None:
                raise JobConflictError(arquivo_fonte, ativo.id)
            self._queue.append(job)
            self._queued_jobs[job.id] = job

        self._save_job(job)
        logger.info(f"Job {job.id} enfileirado para {arquivo_fonte} ({periodo_referencia})")
        return job

    def update_job_progress(
        self,
        job_id: str,
        current: int,
        total: int,
        stage: Optional[str] = None,
        message: Optional[str] = None,
        regras_aplicadas: Optional[List[str]] = None,
    ):
        """Atualiza progresso do job em memória e no banco."""
        with self._lock:
            job = self._processing.get(job_id) or self._queued_jobs.get(job_id)
            if job:
                job.progress_current = current
                job.progress_total = total
                job.progress_stage = stage
                job.progress_message = message
                if regras_aplicadas is not None:
                    job.regras_aplicadas = list(regras_aplicadas)

        # Atualiza no banco via repositório
        self._repository.update_progress(
            job_id, current, total, stage, message, regras_aplicadas
        )

    async def _process_job(self, job: ProcessingJob) -> ProcessingJob:
        """Processa um job individual delegando ao JobExecutor."""
        return await self._executor.execute(job)

    def _finish_job(self, job: ProcessingJob):
        """Tira o job da memória e registra métricas."""
        with self._lock:
            self._processing.pop(job.id, None)

        if job.status == JobStatus.COMPLETED:
            record_job_completed(job.job_type, _job_duration(job))
        elif job.status == JobStatus.FAILED:
            record_job_failed(job.job_type)

    async def _worker(self):
        """Worker que processa jobs da fila."""
        while self._is_running:
            jobs_to_process = []

            with self._lock:
                while len(jobs_to_process) < self._max_concurrent and self._queue:
                    job = self._queue.popleft()
                    self._queued_jobs.pop(job.id, None)  # Remover do índice de fila
                    jobs_to_process.append(job)
                    self._processing[job.id] = job

            if jobs_to_process:
                tasks = [self._process_job(job) for job in jobs_to_process]
                results = await asyncio.gather(*tasks, return_exceptions=True)

                for job, result in zip(jobs_to_process, results):
                    if isinstance(result, BaseException):
                        # Falha fora do executor (ex: banco indisponível ao salvar)
                        logger.error(f"Erro inesperado no job {job.id}: {result}")
                        job.status = JobStatus.FAILED
                        job.error = str(result)
                    self._finish_job(job)

            await asyncio.sleep(self._poll_interval)

    async def start(self):
        """
        Inicia o worker de processamento.

        Jobs que estavam em processamento quando o serviço parou são
        marcados como falhos; jobs na fila voltam para a fila.
        """
        if self._is_running:
            return

        self._is_running = True

        stuck_count = self._repository.fail_stuck_processing()
        queued = self._repository.get_by_status([JobStatus.QUEUED])

        with self._lock:
            for job in queued:
                if job.id in self._queued_jobs:
                    continue
                self._queue.append(job)
                self._queued_jobs[job.id] = job

        self._worker_task = asyncio.create_task(self._worker())
        logger.info(
            f"ProcessingQueue iniciada: {len(queued)} jobs reenfileirados, "
            f"{stuck_count} jobs interrompidos marcados como FAILED"
        )

    async def stop(self):
        """Para o worker de processamento."""
        self._is_running = False
        if self._worker_task:
            self._worker_task.cancel()
            try:
                await self._worker_task
            except asyncio.CancelledError:
                pass
        logger.info("ProcessingQueue parada")

    def get_status(self) -> Dict[str, Any]:
        """Retorna status da fila."""
        with self._lock:
            queue_len = len(self._queue)
            processing_len = len(self._processing)

        # Atualizar metricas Prometheus
        update_queue_metrics(queue_len, processing_len)

        return {
            "is_running": self._is_running,
            "queue_size": queue_len,
            "processing_count": processing_len,
            "max_concurrent": self._max_concurrent,
            "poll_interval": self._poll_interval,
            "jobs": self._repository.get_stats(),
        }


# Instância singleton
processing_queue = ProcessingQueue()
