"""
Execução completa do pipeline de um arquivo de volumetria.

Regras de normalização (incluindo a quebra de exames) seguidas da
tipificação de faturamento do arquivo, sob o mesmo prazo.
"""
from typing import Any, Dict, Optional

from config import PIPELINE_TIMEOUT_SECONDS
from database import get_db_session
from logging_config import get_logger
from repositories.volumetria_repository import volumetria_repository
from utils.timeout import Prazo

from .regras import MotorRegras
from .regras.motor import ProgressCallback
from .tipificacao import ClassificadorFaturamento, data_referencia

logger = get_logger('services.pipeline')


def executar_pipeline(
    arquivo_fonte: str,
    periodo_referencia: str,
    progress_callback: Optional[ProgressCallback] = None,
    motor: Optional[MotorRegras] = None,
    classificador: Optional[ClassificadorFaturamento] = None,
    timeout_seconds: float = PIPELINE_TIMEOUT_SECONDS,
) -> Dict[str, Any]:
    """
    Roda regras e tipificação para o arquivo.

    Executado fora do event loop (thread do executor).

    Returns:
        Resultado das regras com a contagem da tipificação em "tipificacao"

    Raises:
        PipelineTimeoutError: orçamento de tempo excedido
        RegistryReadError: cadastros indisponíveis
    """
    prazo = Prazo(timeout_seconds, f"Pipeline {arquivo_fonte}")
    motor = motor or MotorRegras(timeout_seconds=timeout_seconds)
    classificador = classificador or ClassificadorFaturamento()

    with get_db_session() as db:
        resultado = motor.aplicar_regras(
            db, arquivo_fonte, periodo_referencia, progress_callback=progress_callback
        )
        dados = resultado.to_dict()
        dados["rejeicoes"] = volumetria_repository.contar_por_motivo(db, arquivo_fonte)
        if resultado.registros_antes == 0:
            return dados

        if progress_callback:
            progress_callback(
                len(resultado.regras), len(resultado.regras), "tipificacao",
                "Tipificando exames", resultado.regras_aplicadas,
            )
        dados["tipificacao"] = classificador.reclassificar(
            db, arquivo_fonte=arquivo_fonte, prazo=prazo,
            data_vigencia=data_referencia(periodo_referencia),
        )

    logger.info(
        f"Pipeline {arquivo_fonte} concluído: {dados['registros_antes']} -> "
        f"{dados['registros_depois']} registros, "
        f"{dados['tipificacao']['registros_atualizados']} tipificados"
    )
    return dados
