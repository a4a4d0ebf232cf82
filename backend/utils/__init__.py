# Backend utilities package

from .error_handlers import log_exception
from .periodo import (
    JanelaFaturamento,
    eh_arquivo_retroativo,
    janela_faturamento,
    parse_periodo,
)
from .text_utils import eh_vazio, normalizar_nome_medico, normalizar_texto, remover_acentos
from .timeout import PipelineTimeoutError, Prazo

__all__ = [
    # text_utils
    "normalizar_texto",
    "normalizar_nome_medico",
    "remover_acentos",
    "eh_vazio",
    # periodo
    "JanelaFaturamento",
    "parse_periodo",
    "janela_faturamento",
    "eh_arquivo_retroativo",
    # timeout
    "Prazo",
    "PipelineTimeoutError",
    # error_handlers
    "log_exception",
]
