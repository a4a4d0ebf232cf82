"""
Impostos retidos sobre o valor bruto do demonstrativo.

Regras:
- ISS sempre aplicado, sem valor mínimo.
- IRRF (1,5%) zerado quando abaixo do mínimo de retenção.
- PIS + COFINS + CSLL zerados juntos quando a soma fica abaixo do mínimo.
- Optante pelo Simples Nacional não tem retenção federal.

As duas regras de mínimo são independentes.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Optional

from config import (
    ALIQUOTA_COFINS,
    ALIQUOTA_CSLL,
    ALIQUOTA_IRRF,
    ALIQUOTA_PIS,
    VALOR_MINIMO_RETENCAO,
)

from .valores import como_decimal, percentual

ZERO = Decimal("0.00")


@dataclass(frozen=True)
class ImpostosCalculados:
    iss: Decimal = ZERO
    irrf: Decimal = ZERO
    pis: Decimal = ZERO
    cofins: Decimal = ZERO
    csll: Decimal = ZERO

    @property
    def federais(self) -> Decimal:
        return self.irrf + self.pis + self.cofins + self.csll

    @property
    def total(self) -> Decimal:
        return self.iss + self.federais

    def to_dict(self) -> Dict[str, Any]:
        return {
            "iss": float(self.iss),
            "irrf": float(self.irrf),
            "pis": float(self.pis),
            "cofins": float(self.cofins),
            "csll": float(self.csll),
            "total": float(self.total),
        }


def calcular_impostos(
    valor_bruto: Decimal,
    percentual_iss: Any = 0,
    simples: bool = False,
    valor_minimo: Optional[Any] = None,
    aliquota_irrf: Any = ALIQUOTA_IRRF,
    aliquota_pis: Any = ALIQUOTA_PIS,
    aliquota_cofins: Any = ALIQUOTA_COFINS,
    aliquota_csll: Any = ALIQUOTA_CSLL,
) -> ImpostosCalculados:
    """
    Calcula os impostos retidos.

    Args:
        valor_bruto: Base de cálculo
        percentual_iss: Alíquota de ISS do cliente (%)
        simples: Cliente optante pelo Simples Nacional
        valor_minimo: Mínimo de retenção (padrão VALOR_MINIMO_RETENCAO)
        aliquota_irrf, aliquota_pis, aliquota_cofins, aliquota_csll:
            Alíquotas federais (%), padrão as de config
    """
    bruto = como_decimal(valor_bruto)
    iss = percentual(bruto, percentual_iss)
    if simples:
        return ImpostosCalculados(iss=iss)

    minimo = VALOR_MINIMO_RETENCAO if valor_minimo is None else como_decimal(valor_minimo)

    irrf = percentual(bruto, aliquota_irrf)
    if irrf < minimo:
        irrf = ZERO

    pis = percentual(bruto, aliquota_pis)
    cofins = percentual(bruto, aliquota_cofins)
    csll = percentual(bruto, aliquota_csll)
    if pis + cofins + csll < minimo:
        pis = cofins = csll = ZERO

    return ImpostosCalculados(iss=iss, irrf=irrf, pis=pis, cofins=cofins, csll=csll)
