"""
Utilitários padronizados para tratamento de erros.

Centraliza o padrão de logging de falhas de jobs e de etapas do
pipeline.
"""
from logging import Logger


def log_exception(
    logger: Logger,
    context: str,
    exc: Exception,
    include_traceback: bool = True
) -> None:
    """
    Loga exceção com formato padronizado.

    Args:
        logger: Instância do logger
        context: Contexto da operação (ex: "job abc123", "regra v001c")
        exc: Exceção a ser logada
        include_traceback: Se True, inclui traceback completo
    """
    if include_traceback:
        logger.error(f"Erro em {context}: {exc}", exc_info=True)
    else:
        logger.error(f"Erro em {context}: {exc}")
