"""
Motor de regras de normalização da volumetria.

Executa o catálogo de regras em ordem sobre um arquivo_fonte, com
orçamento de tempo de parede. Uma regra que falha é registrada e a
execução segue; falha de leitura dos cadastros ou estouro do prazo
interrompem a execução.
"""
import logging
import time
from typing import Callable, List, Optional, Sequence

from sqlalchemy.orm import Session

from config import PIPELINE_TIMEOUT_SECONDS, Messages
from exceptions import RegistryReadError
from logging_config import get_logger, log_timing
from repositories.volumetria_repository import VolumetriaRepository, volumetria_repository
from services.metrics import record_rule_step
from utils.periodo import parse_periodo
from utils.timeout import PipelineTimeoutError, Prazo

from .base import ContextoRegra, RegraNormalizacao, ResultadoPipeline, ResultadoRegra
from .catalogo import REGRAS
from .registros import RegistrosReferencia, carregar_registros

logger = get_logger('services.regras.motor')

# (current, total, stage, message, regras_aplicadas)
ProgressCallback = Callable[[int, int, Optional[str], Optional[str], List[str]], None]


class MotorRegras:
    """
    Aplica as regras de normalização a um arquivo de volumetria.

    Uso:
        motor = MotorRegras()
        resultado = motor.aplicar_regras(db, "volumetria_padrao", "2025-06")
    """

    def __init__(
        self,
        regras: Sequence[RegraNormalizacao] = REGRAS,
        timeout_seconds: float = PIPELINE_TIMEOUT_SECONDS,
        repository: VolumetriaRepository = volumetria_repository,
        carregar: Callable[[Session], RegistrosReferencia] = carregar_registros,
        clock: Optional[Callable[[], float]] = None,
    ):
        self._regras = tuple(regras)
        self._timeout_seconds = timeout_seconds
        self._repository = repository
        self._carregar = carregar
        self._clock = clock

    def regras_para(self, arquivo_fonte: str) -> List[RegraNormalizacao]:
        return [r for r in self._regras if r.aplicavel(arquivo_fonte)]

    def aplicar_regras(
        self,
        db: Session,
        arquivo_fonte: str,
        periodo_referencia: str,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> ResultadoPipeline:
        """
        Executa todas as regras aplicáveis ao arquivo.

        Args:
            db: Sessão do banco
            arquivo_fonte: Lote de upload a normalizar
            periodo_referencia: Período YYYY-MM
            progress_callback: Notificado após cada regra

        Returns:
            ResultadoPipeline com contagens e regras aplicadas

        Raises:
            InvalidPeriodError: período inválido
            RegistryReadError: cadastros indisponíveis
            PipelineTimeoutError: orçamento de tempo excedido
        """
        parse_periodo(periodo_referencia)
        prazo = Prazo(self._timeout_seconds, f"Regras {arquivo_fonte}", clock=self._clock)

        resultado = ResultadoPipeline(
            arquivo_fonte=arquivo_fonte,
            periodo_referencia=periodo_referencia,
        )
        resultado.registros_antes = self._repository.contar_por_arquivo(db, arquivo_fonte)

        if resultado.registros_antes == 0:
            logger.info(f"Nenhum registro para {arquivo_fonte}, nada a aplicar")
            resultado.mensagem = Messages.NO_RECORDS
            return resultado

        registros = self._carregar(db)
        regras = self.regras_para(arquivo_fonte)
        total = len(regras)
        logger.info(
            f"Aplicando {total} regras em {arquivo_fonte} "
            f"({resultado.registros_antes} registros, período {periodo_referencia})"
        )

        ctx = ContextoRegra(
            db=db,
            arquivo_fonte=arquivo_fonte,
            periodo_referencia=periodo_referencia,
            registros=registros,
            prazo=prazo,
            repository=self._repository,
        )

        for indice, regra in enumerate(regras, start=1):
            prazo.verificar(regra.codigo)
            resultado.regras.append(self._executar_regra(ctx, regra))
            if progress_callback:
                progress_callback(
                    indice, total, regra.codigo,
                    f"Regra {regra.codigo}: {regra.descricao}",
                    resultado.regras_aplicadas,
                )

        resultado.extras.update(ctx.extras)
        resultado.registros_depois = self._repository.contar_por_arquivo(db, arquivo_fonte)
        logger.info(
            f"Regras concluídas em {arquivo_fonte}: {resultado.registros_antes} -> "
            f"{resultado.registros_depois} registros, {len(resultado.regras_com_erro)} regras com erro "
            f"({prazo.decorrido:.1f}s)"
        )
        return resultado

    def _executar_regra(self, ctx: ContextoRegra, regra: RegraNormalizacao) -> ResultadoRegra:
        inicio = time.perf_counter()
        try:
            with log_timing(logger, f"regra {regra.codigo}", level=logging.INFO):
                afetados = regra.aplicar(ctx)
        except (PipelineTimeoutError, RegistryReadError):
            ctx.db.rollback()
            record_rule_step(regra.codigo, time.perf_counter() - inicio, sucesso=False)
            raise
        except Exception as e:
            ctx.db.rollback()
            duracao = time.perf_counter() - inicio
            record_rule_step(regra.codigo, duracao, sucesso=False)
            logger.error(f"Regra {regra.codigo} falhou em {ctx.arquivo_fonte}: {e}", exc_info=True)
            return ResultadoRegra(
                codigo=regra.codigo,
                sucesso=False,
                duracao_ms=duracao * 1000,
                erro=str(e),
            )

        duracao = time.perf_counter() - inicio
        record_rule_step(regra.codigo, duracao)
        logger.debug(f"Regra {regra.codigo}: {afetados} registros afetados")
        return ResultadoRegra(
            codigo=regra.codigo,
            sucesso=True,
            registros_afetados=afetados,
            duracao_ms=duracao * 1000,
        )
