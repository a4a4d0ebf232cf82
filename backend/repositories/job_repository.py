"""
Repositório de Jobs do pipeline.

Encapsula toda a lógica de persistência de jobs,
separando as preocupações de armazenamento da lógica de processamento.

Cada chamada abre sua própria sessão (get_db_session), pois é usada
tanto pelo worker em background quanto pelas rotas.
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import func

from database import get_db_session
from logging_config import get_logger
from models import ProcessingJobModel
from services.models import ACTIVE_STATUSES, JobStatus, ProcessingJob

logger = get_logger('repositories.job_repository')


def _now_iso() -> str:
    """Retorna timestamp ISO com timezone local."""
    return datetime.now().astimezone().isoformat()


class JobRepository:
    """Repositório para persistência de jobs do pipeline."""

    def _model_to_job(self, model: ProcessingJobModel) -> ProcessingJob:
        """Converte modelo SQLAlchemy para dataclass ProcessingJob."""
        return ProcessingJob(
            id=model.id,
            arquivo_fonte=model.arquivo_fonte,
            periodo_referencia=model.periodo_referencia,
            job_type=model.job_type,
            status=JobStatus(model.status),
            created_at=model.created_at,
            started_at=model.started_at,
            completed_at=model.completed_at,
            registros_antes=model.registros_antes,
            registros_depois=model.registros_depois,
            regras_aplicadas=list(model.regras_aplicadas or []),
            result=model.result,
            error=model.error,
            progress_current=model.progress_current or 0,
            progress_total=model.progress_total or 0,
            progress_stage=model.progress_stage,
            progress_message=model.progress_message,
        )

    def _job_to_model(self, job: ProcessingJob) -> ProcessingJobModel:
        """Converte dataclass ProcessingJob para modelo SQLAlchemy."""
        status_value = job.status.value if isinstance(job.status, JobStatus) else job.status
        return ProcessingJobModel(
            id=job.id,
            job_type=job.job_type,
            arquivo_fonte=job.arquivo_fonte,
            periodo_referencia=job.periodo_referencia,
            status=status_value,
            created_at=job.created_at,
            started_at=job.started_at,
            completed_at=job.completed_at,
            registros_antes=job.registros_antes,
            registros_depois=job.registros_depois,
            regras_aplicadas=list(job.regras_aplicadas),
            result=job.result,
            error=job.error,
            progress_current=job.progress_current,
            progress_total=job.progress_total,
            progress_stage=job.progress_stage,
            progress_message=job.progress_message,
        )

    def save(self, job: ProcessingJob):
        """
        Salva ou atualiza um job no banco.

        Args:
            job: Job a ser salvo
        """
        with get_db_session() as db:
            db.merge(self._job_to_model(job))
            db.commit()

    def get_by_id(self, job_id: str) -> Optional[ProcessingJob]:
        """
        Busca um job pelo ID.

        Args:
            job_id: ID do job

        Returns:
            ProcessingJob ou None se não encontrado
        """
        with get_db_session() as db:
            model = db.query(ProcessingJobModel).filter(
                ProcessingJobModel.id == job_id
            ).first()
            if not model:
                return None
            return self._model_to_job(model)

    def get_by_status(self, statuses: List[JobStatus]) -> List[ProcessingJob]:
        """Busca jobs nos status informados, mais antigos primeiro."""
        values = [s.value for s in statuses]
        with get_db_session() as db:
            models = db.query(ProcessingJobModel).filter(
                ProcessingJobModel.status.in_(values)
            ).order_by(ProcessingJobModel.created_at.asc()).all()
            return [self._model_to_job(m) for m in models]

    def get_active_for_arquivo(self, arquivo_fonte: str) -> Optional[ProcessingJob]:
        """Retorna o job na fila ou em processamento para o arquivo, se houver."""
        values = [s.value for s in ACTIVE_STATUSES]
        with get_db_session() as db:
            model = db.query(ProcessingJobModel).filter(
                ProcessingJobModel.arquivo_fonte == arquivo_fonte,
                ProcessingJobModel.status.in_(values)
            ).order_by(ProcessingJobModel.created_at.desc()).first()
            return self._model_to_job(model) if model else None

    def list_recent(
        self,
        arquivo_fonte: Optional[str] = None,
        limit: int = 20
    ) -> List[ProcessingJob]:
        """
        Lista jobs recentes, opcionalmente filtrados por arquivo.

        Args:
            arquivo_fonte: Filtro por arquivo de origem
            limit: Limite de resultados

        Returns:
            Lista de jobs (mais recentes primeiro)
        """
        with get_db_session() as db:
            query = db.query(ProcessingJobModel)
            if arquivo_fonte:
                query = query.filter(ProcessingJobModel.arquivo_fonte == arquivo_fonte)
            models = query.order_by(
                ProcessingJobModel.created_at.desc()
            ).limit(limit).all()
            return [self._model_to_job(m) for m in models]

    def update_progress(
        self,
        job_id: str,
        current: int,
        total: int,
        stage: Optional[str] = None,
        message: Optional[str] = None,
        regras_aplicadas: Optional[List[str]] = None
    ):
        """
        Atualiza o progresso de um job.

        Args:
            job_id: ID do job
            current: Progresso atual
            total: Total de passos
            stage: Estágio atual (código da regra)
            message: Mensagem de progresso
            regras_aplicadas: Códigos das regras concluídas até agora
        """
        with get_db_session() as db:
            model = db.query(ProcessingJobModel).filter(
                ProcessingJobModel.id == job_id
            ).first()

            if not model:
                logger.warning(f"update_progress: Job {job_id} nao encontrado, ignorando update de progresso")
                return

            model.progress_current = current
            model.progress_total = total
            model.progress_stage = stage
            model.progress_message = message
            if regras_aplicadas is not None:
                model.regras_aplicadas = list(regras_aplicadas)

            db.commit()

    def fail_stuck_processing(self) -> int:
        """
        Marca como FAILED jobs presos em 'processing' (sem worker ativo).

        Não há retomada no meio de uma execução: a recuperação é
        disparar o pipeline novamente.

        Returns:
            Quantidade de jobs marcados
        """
        now = _now_iso()
        with get_db_session() as db:
            count = db.query(ProcessingJobModel).filter(
                ProcessingJobModel.status == JobStatus.PROCESSING.value
            ).update(
                {
                    ProcessingJobModel.status: JobStatus.FAILED.value,
                    ProcessingJobModel.completed_at: now,
                    ProcessingJobModel.error: "Processamento interrompido (reinício do serviço)",
                },
                synchronize_session=False
            )
            db.commit()
        if count:
            logger.warning(f"{count} jobs presos em processamento marcados como FAILED")
        return count

    def get_stats(self) -> dict:
        """
        Retorna estatísticas dos jobs.

        Returns:
            Dicionário com contagem por status
        """
        with get_db_session() as db:
            total = db.query(func.count(ProcessingJobModel.id)).scalar() or 0

            status_counts = db.query(
                ProcessingJobModel.status,
                func.count(ProcessingJobModel.id)
            ).group_by(ProcessingJobModel.status).all()

            counts = {status: count for status, count in status_counts}

            return {
                "total": total,
                "queued": counts.get("queued", 0),
                "processing": counts.get("processing", 0),
                "completed": counts.get("completed", 0),
                "failed": counts.get("failed", 0),
            }
