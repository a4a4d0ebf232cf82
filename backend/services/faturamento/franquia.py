"""
Cálculo de franquia e taxas fixas do demonstrativo.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Optional

from models import ParametrosFaturamento

from .valores import como_decimal, arredondar


@dataclass(frozen=True)
class ResultadoFranquia:
    valor: Decimal
    valor_fixo: Decimal
    excedente: int
    valor_excedente: Decimal
    regra: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "valor": float(self.valor),
            "valor_fixo": float(self.valor_fixo),
            "excedente": self.excedente,
            "valor_excedente": float(self.valor_excedente),
            "regra": self.regra,
        }


SEM_FRANQUIA = ResultadoFranquia(Decimal("0"), Decimal("0"), 0, Decimal("0"), "nao_aplica")


def calcular_franquia(
    parametros: Optional[ParametrosFaturamento],
    volume_total: Any,
) -> ResultadoFranquia:
    """
    Franquia do cliente para o volume do período.

    O valor fixo é cobrado quando a franquia está habilitada e a cobrança
    é contínua ou houve volume. Só as unidades acima do volume da
    franquia pagam o valor excedente.

    Exemplo:
        volume 120, franquia 100, fixo 5000, excedente 45 -> 5000 + 20 * 45
    """
    if parametros is None or not parametros.aplicar_franquia:
        return SEM_FRANQUIA

    volume = como_decimal(volume_total)
    continua = bool(parametros.frequencia_continua)
    if not continua and volume <= 0:
        return ResultadoFranquia(Decimal("0"), Decimal("0"), 0, Decimal("0"), "sem_volume")

    valor_fixo = arredondar(como_decimal(parametros.valor_franquia))
    limite = como_decimal(parametros.volume_franquia)
    excedente = volume - limite if limite > 0 and volume > limite else Decimal("0")
    valor_excedente = arredondar(excedente * como_decimal(parametros.valor_acima_franquia))

    return ResultadoFranquia(
        valor=valor_fixo + valor_excedente,
        valor_fixo=valor_fixo,
        excedente=int(excedente),
        valor_excedente=valor_excedente,
        regra="continua" if continua else "por_volume",
    )


def calcular_taxas_fixas(parametros: Optional[ParametrosFaturamento]) -> Dict[str, Decimal]:
    """Portal de laudos e integração, cada um só quando habilitado."""
    if parametros is None:
        return {"portal": Decimal("0"), "integracao": Decimal("0")}
    portal = como_decimal(parametros.valor_portal_laudos) if parametros.portal_laudos else Decimal("0")
    integracao = como_decimal(parametros.valor_integracao) if parametros.cobrar_integracao else Decimal("0")
    return {"portal": arredondar(portal), "integracao": arredondar(integracao)}
