"""
Testes para o executor de jobs do pipeline.

Testa as funcoes em services/job_executor.py.

IMPORTANTE: Todos os testes usam um runner falso no lugar de
executar_pipeline para evitar acesso ao banco de dados.
"""
import pytest
from unittest.mock import MagicMock

from config import Messages
from exceptions import RegistryReadError
from services.job_executor import JobExecutor, _now_iso
from services.models import JobStatus, ProcessingJob
from utils.timeout import PipelineTimeoutError


# === Helpers ===

def _make_job(job_id="exec-job-001", arquivo_fonte="volumetria_padrao") -> ProcessingJob:
    """Cria um ProcessingJob para testes."""
    return ProcessingJob(
        id=job_id,
        arquivo_fonte=arquivo_fonte,
        periodo_referencia="2025-06",
        created_at=_now_iso(),
    )


def _resultado(**overrides):
    dados = {
        "registros_antes": 10,
        "registros_depois": 8,
        "regras_aplicadas": ["v002", "v003"],
        "mensagem": "Pipeline concluído",
    }
    dados.update(overrides)
    return dados


# === Fixtures ===

@pytest.fixture
def mock_save_job():
    """Mock para callback de salvar job."""
    return MagicMock()


@pytest.fixture
def mock_update_progress():
    """Mock para callback de atualizar progresso."""
    return MagicMock()


def _executor(mock_save_job, mock_update_progress, runner):
    return JobExecutor(
        save_job_callback=mock_save_job,
        update_progress_callback=mock_update_progress,
        runner=runner,
    )


# === TestJobExecutor ===

class TestJobExecutor:
    """Testes para execucao de jobs."""

    @pytest.mark.asyncio
    async def test_execute_success(self, mock_save_job, mock_update_progress):
        """Job bem-sucedido fica COMPLETED com contagens do pipeline."""
        runner = MagicMock(return_value=_resultado())
        executor = _executor(mock_save_job, mock_update_progress, runner)

        job = await executor.execute(_make_job())

        assert job.status == JobStatus.COMPLETED
        assert job.registros_antes == 10
        assert job.registros_depois == 8
        assert job.regras_aplicadas == ["v002", "v003"]
        assert job.progress_message == "Pipeline concluído"
        assert job.started_at is not None
        assert job.completed_at is not None
        assert job.error is None
        runner.assert_called_once()
        args, kwargs = runner.call_args
        assert args == ("volumetria_padrao", "2025-06")
        assert "progress_callback" in kwargs

    @pytest.mark.asyncio
    async def test_execute_saves_processing_then_final(self, mock_save_job, mock_update_progress):
        """Job e salvo ao iniciar e ao terminar."""
        executor = _executor(mock_save_job, mock_update_progress, MagicMock(return_value=_resultado()))

        await executor.execute(_make_job())

        assert mock_save_job.call_count == 2

    @pytest.mark.asyncio
    async def test_progress_forwarded_with_job_id(self, mock_save_job, mock_update_progress):
        """Progresso do pipeline chega ao callback com o ID do job."""
        def runner(arquivo, periodo, progress_callback=None):
            progress_callback(1, 3, "v002", "Aplicando v002", ["v002"])
            return _resultado()

        executor = _executor(mock_save_job, mock_update_progress, runner)

        await executor.execute(_make_job("job-prog"))

        mock_update_progress.assert_called_once_with(
            "job-prog", 1, 3, "v002", "Aplicando v002", ["v002"]
        )

    @pytest.mark.asyncio
    async def test_timeout_marks_failed(self, mock_save_job, mock_update_progress):
        """Timeout do pipeline marca FAILED com mensagem de timeout."""
        runner = MagicMock(side_effect=PipelineTimeoutError("Pipeline volumetria_padrao", 60.0))
        executor = _executor(mock_save_job, mock_update_progress, runner)

        job = await executor.execute(_make_job())

        assert job.status == JobStatus.FAILED
        assert job.error.startswith(Messages.PIPELINE_TIMEOUT)
        assert job.progress_stage == "failed"

    @pytest.mark.asyncio
    async def test_application_error_includes_details(self, mock_save_job, mock_update_progress):
        """Erro da aplicação usa mensagem e detalhes."""
        runner = MagicMock(side_effect=RegistryReadError("cadastro_exames", "conexão recusada"))
        executor = _executor(mock_save_job, mock_update_progress, runner)

        job = await executor.execute(_make_job())

        assert job.status == JobStatus.FAILED
        assert job.error == "Erro ao ler cadastro de referência 'cadastro_exames' (conexão recusada)"

    @pytest.mark.asyncio
    async def test_unexpected_error(self, mock_save_job, mock_update_progress):
        """Erro inesperado vira FAILED com a mensagem da exceção."""
        runner = MagicMock(side_effect=RuntimeError("falha inesperada"))
        executor = _executor(mock_save_job, mock_update_progress, runner)

        job = await executor.execute(_make_job())

        assert job.status == JobStatus.FAILED
        assert job.error == "falha inesperada"
        assert mock_save_job.call_count == 2

    @pytest.mark.asyncio
    async def test_correlation_id_cleared(self, mock_save_job, mock_update_progress):
        """Correlation ID do job e limpo ao final."""
        from logging_config import get_correlation_id

        vistos = []

        def runner(arquivo, periodo, progress_callback=None):
            return _resultado()

        def save(job):
            vistos.append(get_correlation_id())

        executor = _executor(save, mock_update_progress, runner)

        await executor.execute(_make_job("job-cid"))

        assert vistos == ["job-cid", "job-cid"]
        assert get_correlation_id() is None


class TestNowIso:

    def test_has_timezone(self):
        assert "+" in _now_iso() or "-" in _now_iso()[19:]
