"""
Configuracoes do backend de faturamento.

Este modulo re-exporta todas as configuracoes para manter
imports curtos.

Exemplo:
    from config import Messages, TipificacaoConfig
"""

# API
from .api import (
    API_PREFIX,
    API_VERSION,
)

# Base - helpers e constantes fundamentais
from .base import (
    AUTO_CREATE_TABLES,
    CORS_ALLOW_CREDENTIALS,
    CORS_ORIGINS,
    ENVIRONMENT,
    METRICS_PUBLIC,
    QUEUE_MAX_CONCURRENT,
    QUEUE_POLL_INTERVAL,
    env_bool,
    env_float,
    env_int,
    env_list,
    get_cors_origins,
)

# Defaults
from .defaults import (
    ALIQUOTA_COFINS,
    ALIQUOTA_CSLL,
    ALIQUOTA_IRRF,
    ALIQUOTA_PIS,
    CATEGORIA_PADRAO,
    EXCLUSION_PAGE_SIZE,
    PIPELINE_TIMEOUT_SECONDS,
    PRIORIDADE_PADRAO,
    QUANTIDADE_PADRAO,
    SPLIT_PAGE_SIZE,
    VALOR_MINIMO_RETENCAO,
)

# Faturamento
from .faturamento import (
    DemonstrativoConfig,
    IngestaoConfig,
    TipificacaoConfig,
)

# Mensagens
from .messages import Messages

# Exportar tudo
__all__ = [
    # Base
    "env_bool",
    "env_int",
    "env_float",
    "env_list",
    "get_cors_origins",
    "CORS_ORIGINS",
    "CORS_ALLOW_CREDENTIALS",
    "ENVIRONMENT",
    "AUTO_CREATE_TABLES",
    "METRICS_PUBLIC",
    "QUEUE_MAX_CONCURRENT",
    "QUEUE_POLL_INTERVAL",
    # API
    "API_VERSION",
    "API_PREFIX",
    # Defaults
    "PIPELINE_TIMEOUT_SECONDS",
    "SPLIT_PAGE_SIZE",
    "EXCLUSION_PAGE_SIZE",
    "CATEGORIA_PADRAO",
    "PRIORIDADE_PADRAO",
    "QUANTIDADE_PADRAO",
    "ALIQUOTA_IRRF",
    "ALIQUOTA_PIS",
    "ALIQUOTA_COFINS",
    "ALIQUOTA_CSLL",
    "VALOR_MINIMO_RETENCAO",
    # Faturamento
    "IngestaoConfig",
    "TipificacaoConfig",
    "DemonstrativoConfig",
    # Mensagens
    "Messages",
]
