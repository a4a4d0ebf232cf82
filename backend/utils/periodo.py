"""
Períodos de referência e janelas de faturamento.

Convenção: o período "2025-12" (dezembro) cobre realizações/laudos do
dia 8 de dezembro até o dia 7 de janeiro. Arquivos retroativos usam
essa janela para excluir o que pertence a outro faturamento.
"""
import re
from dataclasses import dataclass
from datetime import date
from typing import Tuple

from exceptions import InvalidPeriodError

_PERIODO_RE = re.compile(r"^(\d{4})-(\d{2})$")

DIA_INICIO_JANELA = 8
DIA_FIM_JANELA = 7


@dataclass(frozen=True)
class JanelaFaturamento:
    """Janela de datas de um período de faturamento."""
    periodo: str
    primeiro_dia_mes: date
    inicio: date
    fim: date


def parse_periodo(periodo: str) -> Tuple[int, int]:
    """
    Valida e decompõe um período YYYY-MM.

    Raises:
        InvalidPeriodError: formato ou mês inválido
    """
    match = _PERIODO_RE.match((periodo or "").strip())
    if not match:
        raise InvalidPeriodError(periodo)
    ano, mes = int(match.group(1)), int(match.group(2))
    if not 1 <= mes <= 12:
        raise InvalidPeriodError(periodo)
    return ano, mes


def proximo_mes(ano: int, mes: int) -> Tuple[int, int]:
    if mes == 12:
        return ano + 1, 1
    return ano, mes + 1


def janela_faturamento(periodo: str) -> JanelaFaturamento:
    """Calcula a janela [dia 8 do mês, dia 7 do mês seguinte] do período."""
    ano, mes = parse_periodo(periodo)
    ano_seg, mes_seg = proximo_mes(ano, mes)
    return JanelaFaturamento(
        periodo=f"{ano:04d}-{mes:02d}",
        primeiro_dia_mes=date(ano, mes, 1),
        inicio=date(ano, mes, DIA_INICIO_JANELA),
        fim=date(ano_seg, mes_seg, DIA_FIM_JANELA),
    )


def eh_arquivo_retroativo(arquivo_fonte: str) -> bool:
    """Arquivos retroativos são identificados pelo nome do lote."""
    return "retroativo" in (arquivo_fonte or "").lower()
