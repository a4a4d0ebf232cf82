"""
Executor de Jobs do pipeline.

Encapsula a execução de um job (regras + tipificação de um arquivo),
separando as responsabilidades de execução da fila de processamento.
Não há retry automático: um job falho é reprocessado disparando um
novo job para o mesmo arquivo.
"""

import asyncio
import contextvars
import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from config import Messages
from exceptions import FaturamentoError
from logging_config import clear_correlation_id, get_logger, log_action, set_correlation_id
from utils.error_handlers import log_exception
from utils.timeout import PipelineTimeoutError

from .models import JobStatus, ProcessingJob

logger = get_logger('services.job_executor')

ProgressUpdate = Callable[[str, int, int, Optional[str], Optional[str], Optional[List[str]]], None]


def _now_iso() -> str:
    """Retorna timestamp ISO com timezone local para parsing correto no frontend."""
    return datetime.now().astimezone().isoformat()


class JobExecutor:
    """
    Executor de jobs do pipeline.

    Responsável por:
    - Marcar o job como em processamento, concluído ou falho
    - Repassar o progresso das regras para a fila
    - Rodar o pipeline síncrono fora do event loop
    """

    def __init__(
        self,
        save_job_callback: Callable[[ProcessingJob], None],
        update_progress_callback: ProgressUpdate,
        runner: Optional[Callable[..., Dict[str, Any]]] = None,
    ):
        """
        Inicializa o executor.

        Args:
            save_job_callback: Função para salvar job no repositório
            update_progress_callback: Função para atualizar progresso
                (job_id, current, total, stage, message, regras_aplicadas)
            runner: Função que executa o pipeline (padrão executar_pipeline)
        """
        self._save_job = save_job_callback
        self._update_progress = update_progress_callback
        self._runner = runner

    def _get_runner(self) -> Callable[..., Dict[str, Any]]:
        """Obtém executar_pipeline (lazy import)."""
        if self._runner is None:
            from .pipeline import executar_pipeline
            self._runner = executar_pipeline
        return self._runner

    async def execute(self, job: ProcessingJob) -> ProcessingJob:
        """
        Executa um job do pipeline.

        Args:
            job: Job a ser executado

        Returns:
            Job atualizado com resultado ou erro
        """
        set_correlation_id(job.id)
        try:
            job.status = JobStatus.PROCESSING
            job.started_at = _now_iso()
            job.progress_current = 0
            job.progress_total = 0
            job.progress_stage = "processing"
            job.progress_message = "Iniciando processamento"
            self._save_job(job)
            log_action(
                logger, "job_started", resource_type="job", resource_id=job.id,
                arquivo_fonte=job.arquivo_fonte, periodo=job.periodo_referencia,
            )

            try:
                result = await self._run_processing(job)
            except PipelineTimeoutError as e:
                self._mark_failed(job, f"{Messages.PIPELINE_TIMEOUT}: {e}")
            except FaturamentoError as e:
                detalhe = f" ({e.details})" if e.details else ""
                self._mark_failed(job, f"{e.message}{detalhe}")
            except Exception as e:
                log_exception(logger, f"job {job.id}", e)
                self._mark_failed(job, str(e))
            else:
                job.status = JobStatus.COMPLETED
                job.completed_at = _now_iso()
                job.result = result
                job.registros_antes = result.get("registros_antes")
                job.registros_depois = result.get("registros_depois")
                job.regras_aplicadas = list(result.get("regras_aplicadas", []))
                job.progress_stage = "completed"
                job.progress_message = result.get("mensagem") or "Processamento concluído"
                log_action(
                    logger, "job_completed", resource_type="job", resource_id=job.id,
                    registros_antes=job.registros_antes, registros_depois=job.registros_depois,
                )

            self._save_job(job)
            return job
        finally:
            clear_correlation_id()

    async def _run_processing(self, job: ProcessingJob) -> Dict[str, Any]:
        """
        Executa o pipeline do job em thread separada.

        Args:
            job: Job a processar

        Returns:
            Resultado do pipeline
        """
        runner = self._get_runner()

        def progress_callback(current, total, stage=None, message=None, regras_aplicadas=None):
            self._update_progress(job.id, current, total, stage, message, regras_aplicadas)

        # Executar em thread separada para não bloquear o event loop;
        # o contexto copiado leva o correlation_id do job para a thread
        contexto = contextvars.copy_context()
        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(
            None,
            contexto.run,
            lambda: runner(
                job.arquivo_fonte,
                job.periodo_referencia,
                progress_callback=progress_callback,
            )
        )

    def _mark_failed(self, job: ProcessingJob, error: str) -> ProcessingJob:
        """
        Marca um job como falho, mantendo as regras já aplicadas.

        Args:
            job: Job que falhou
            error: Mensagem de erro

        Returns:
            Job atualizado
        """
        job.status = JobStatus.FAILED
        job.completed_at = _now_iso()
        job.error = error
        job.progress_stage = "failed"
        log_action(
            logger, "job_failed", resource_type="job", resource_id=job.id,
            level=logging.ERROR, error=error, regras_aplicadas=len(job.regras_aplicadas),
        )
        return job
