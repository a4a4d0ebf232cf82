"""
Testes para fila de processamento assincrono do pipeline.

Testa as funcoes em services/processing_queue.py.

IMPORTANTE: Todos os testes mockam o repositorio para evitar
persistir jobs de teste no banco de dados.
"""
import asyncio
import threading

import pytest
from unittest.mock import MagicMock

from exceptions import InvalidPeriodError, JobConflictError
from services.models import JobStatus, ProcessingJob
from services.processing_queue import ProcessingQueue


@pytest.fixture
def mock_repository():
    """Mock do JobRepository para evitar acesso ao banco real."""
    repo = MagicMock()
    repo.save = MagicMock()
    repo.get_by_id = MagicMock(return_value=None)
    repo.get_active_for_arquivo = MagicMock(return_value=None)
    repo.get_by_status = MagicMock(return_value=[])
    repo.fail_stuck_processing = MagicMock(return_value=0)
    repo.list_recent = MagicMock(return_value=[])
    repo.get_stats = MagicMock(return_value={"total": 0})
    return repo


@pytest.fixture
def runner():
    return MagicMock(return_value={
        "registros_antes": 5,
        "registros_depois": 5,
        "regras_aplicadas": ["v004"],
    })


@pytest.fixture
def queue(mock_repository, runner):
    """Cria fila com repositorio mockado."""
    return ProcessingQueue(repository=mock_repository, runner=runner)


class TestProcessingQueueInit:
    """Testes para inicializacao da fila."""

    def test_queue_starts_empty(self, queue):
        """Fila comeca vazia."""
        assert len(queue._queue) == 0
        assert len(queue._processing) == 0
        assert len(queue._queued_jobs) == 0

    def test_queue_is_not_running_initially(self, queue):
        """Fila nao esta rodando inicialmente."""
        assert queue.is_running is False


class TestAddJob:
    """Testes para adicao de jobs."""

    def test_add_job_creates_queued_job(self, queue):
        """Adicionar job cria com status QUEUED."""
        job = queue.add_job("volumetria_padrao", "2025-06", job_id="job-123")

        assert job.id == "job-123"
        assert job.arquivo_fonte == "volumetria_padrao"
        assert job.periodo_referencia == "2025-06"
        assert job.status == JobStatus.QUEUED
        assert job.progress_stage == "queued"

    def test_add_job_generates_id(self, queue):
        job = queue.add_job("volumetria_padrao", "2025-06")

        assert job.id
        assert job.id in queue._queued_jobs

    def test_add_job_saves_to_repository(self, queue, mock_repository):
        """Job e salvo no repositorio."""
        queue.add_job("volumetria_padrao", "2025-06")

        mock_repository.save.assert_called_once()

    def test_second_job_same_file_conflicts(self, queue):
        """Um job ativo por arquivo."""
        primeiro = queue.add_job("volumetria_padrao", "2025-06")

        with pytest.raises(JobConflictError) as exc_info:
            queue.add_job("volumetria_padrao", "2025-06")

        assert exc_info.value.job_id == primeiro.id
        assert len(queue._queue) == 1

    def test_other_file_allowed(self, queue):
        queue.add_job("volumetria_padrao", "2025-06")
        queue.add_job("volumetria_fora_padrao", "2025-06")

        assert len(queue._queue) == 2

    def test_conflict_with_persisted_active_job(self, queue, mock_repository):
        """Job ativo gravado no banco (outro processo) tambem conflita."""
        mock_repository.get_active_for_arquivo.return_value = ProcessingJob(
            id="persistido", arquivo_fonte="volumetria_padrao", periodo_referencia="2025-06"
        )

        with pytest.raises(JobConflictError):
            queue.add_job("volumetria_padrao", "2025-06")

    def test_simultaneous_triggers_enqueue_once(self, queue, mock_repository):
        """Dois disparos simultaneos para o mesmo arquivo: so um entra na fila."""
        barreira = threading.Barrier(2, timeout=5)

        def sem_job_persistido(arquivo_fonte):
            barreira.wait()
            return None

        mock_repository.get_active_for_arquivo.side_effect = sem_job_persistido
        criados, conflitos = [], []

        def disparar():
            try:
                criados.append(queue.add_job("volumetria_padrao", "2025-06"))
            except JobConflictError as e:
                conflitos.append(e)

        threads = [threading.Thread(target=disparar) for _ in range(2)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=5)

        assert len(criados) == 1
        assert len(conflitos) == 1
        assert conflitos[0].job_id == criados[0].id
        assert len(queue._queue) == 1

    def test_invalid_period(self, queue, mock_repository):
        with pytest.raises(InvalidPeriodError):
            queue.add_job("volumetria_padrao", "2025/06")

        mock_repository.save.assert_not_called()


class TestProgress:

    def test_update_progress_in_memory_and_repository(self, queue, mock_repository):
        job = queue.add_job("volumetria_padrao", "2025-06", job_id="job-p")

        queue.update_job_progress("job-p", 2, 30, "v003", "Aplicando v003", ["v002", "v003"])

        assert job.progress_current == 2
        assert job.progress_total == 30
        assert job.progress_stage == "v003"
        assert job.regras_aplicadas == ["v002", "v003"]
        mock_repository.update_progress.assert_called_once_with(
            "job-p", 2, 30, "v003", "Aplicando v003", ["v002", "v003"]
        )

    def test_update_progress_keeps_rules_when_omitted(self, queue):
        job = queue.add_job("volumetria_padrao", "2025-06", job_id="job-q")
        job.regras_aplicadas = ["v002"]

        queue.update_job_progress("job-q", 3, 30)

        assert job.regras_aplicadas == ["v002"]


class TestGetJob:

    def test_memory_first(self, queue, mock_repository):
        job = queue.add_job("volumetria_padrao", "2025-06", job_id="job-m")

        assert queue.get_job("job-m") is job
        mock_repository.get_by_id.assert_not_called()

    def test_falls_back_to_repository(self, queue, mock_repository):
        queue.get_job("job-antigo")

        mock_repository.get_by_id.assert_called_once_with("job-antigo")

    def test_list_jobs(self, queue, mock_repository):
        queue.list_jobs("volumetria_padrao", limit=5)

        mock_repository.list_recent.assert_called_once_with("volumetria_padrao", 5)


class TestStartStop:
    """Testes para ciclo de vida do worker."""

    @pytest.mark.asyncio
    async def test_start_recovers_jobs(self, queue, mock_repository):
        """Jobs presos viram FAILED e jobs na fila voltam para a fila."""
        mock_repository.fail_stuck_processing.return_value = 2
        mock_repository.get_by_status.return_value = [
            ProcessingJob(id="q1", arquivo_fonte="a", periodo_referencia="2025-06"),
            ProcessingJob(id="q2", arquivo_fonte="b", periodo_referencia="2025-06"),
        ]
        queue._poll_interval = 60

        await queue.start()
        try:
            assert queue.is_running is True
            mock_repository.fail_stuck_processing.assert_called_once()
            mock_repository.get_by_status.assert_called_once_with([JobStatus.QUEUED])
        finally:
            await queue.stop()

        assert queue.is_running is False

    @pytest.mark.asyncio
    async def test_worker_processes_job(self, queue, runner):
        """Worker executa o job e o tira da memoria."""
        queue._poll_interval = 0.01
        job = queue.add_job("volumetria_padrao", "2025-06")

        await queue.start()
        try:
            for _ in range(200):
                if job.status == JobStatus.COMPLETED and job.id not in queue._processing:
                    break
                await asyncio.sleep(0.01)
        finally:
            await queue.stop()

        assert job.status == JobStatus.COMPLETED
        assert job.regras_aplicadas == ["v004"]
        runner.assert_called_once()
        assert job.id not in queue._processing

    @pytest.mark.asyncio
    async def test_start_twice_is_noop(self, queue, mock_repository):
        queue._poll_interval = 60
        await queue.start()
        try:
            await queue.start()
            mock_repository.fail_stuck_processing.assert_called_once()
        finally:
            await queue.stop()


class TestGetStatus:

    def test_status_fields(self, queue, mock_repository):
        queue.add_job("volumetria_padrao", "2025-06")

        status = queue.get_status()

        assert status["queue_size"] == 1
        assert status["processing_count"] == 0
        assert status["is_running"] is False
        assert status["jobs"] == {"total": 0}
