"""
Configurações de negócio da volumetria e do faturamento.

Usa dataclasses congeladas com ClassVar, como as demais configs.
"""
from dataclasses import dataclass
from typing import ClassVar, FrozenSet, Tuple

from .base import env_list


@dataclass(frozen=True)
class IngestaoConfig:
    """
    Configurações de admissão de registros de volumetria.

    Attributes:
        STATUS_ACEITOS: Status de laudo que admitem o registro na base.
        MODALIDADES_EXCLUIDAS: Modalidades rejeitadas já na ingestão
            (env MODALIDADES_EXCLUIDAS, separadas por vírgula).
    """
    STATUS_ACEITOS: ClassVar[FrozenSet[str]] = frozenset({"ASSINADO", "REASSINADO"})
    MODALIDADES_EXCLUIDAS: ClassVar[FrozenSet[str]] = frozenset(
        m.upper() for m in env_list("MODALIDADES_EXCLUIDAS")
    )


@dataclass(frozen=True)
class TipificacaoConfig:
    """
    Tags de tipificação de faturamento.

    Attributes:
        TIPOS_CLIENTE: Tipos de cliente aceitos (CO consolidado, NC não consolidado).
        TIPOS_FATURAMENTO_VALIDOS: Conjunto fechado de tags de faturamento.
        TIPOS_FATURAVEIS: Tags consideradas no cálculo do demonstrativo.
    """
    TIPO_CLIENTE_PADRAO: ClassVar[str] = "CO"
    TIPO_FATURAMENTO_PADRAO: ClassVar[str] = "CO-FT"
    TIPOS_CLIENTE: ClassVar[Tuple[str, ...]] = ("CO", "NC", "NC1")
    TIPOS_FATURAMENTO_VALIDOS: ClassVar[FrozenSet[str]] = frozenset(
        {"CO-FT", "CO-NF", "NC-FT", "NC-NF", "NC1-NF"}
    )
    TIPOS_FATURAVEIS: ClassVar[FrozenSet[str]] = frozenset(
        {"CO-FT", "CO-NF", "NC-FT", "NC1-NF"}
    )
    TIPO_NAO_FATURADO: ClassVar[str] = "NC-NF"


@dataclass(frozen=True)
class DemonstrativoConfig:
    """
    Configurações do cálculo de demonstrativos.

    Attributes:
        CONDICOES_VOLUME: Chaves aceitas para agrupar o volume por cliente.
        PRIORIDADES_URGENCIA: Prioridades que usam o preço de urgência.
    """
    CONDICAO_VOLUME_PADRAO: ClassVar[str] = "MOD/ESP/CAT"
    CONDICOES_VOLUME: ClassVar[Tuple[str, ...]] = ("MOD", "MOD/ESP", "MOD/ESP/CAT", "GLOBAL")
    PRIORIDADES_URGENCIA: ClassVar[FrozenSet[str]] = frozenset(
        {"URGENTE", "URGENCIA", "PLANTAO", "EMERGENCIA"}
    )
    STATUS_CALCULADO: ClassVar[str] = "calculado"
    STATUS_ERRO: ClassVar[str] = "erro_processamento"
