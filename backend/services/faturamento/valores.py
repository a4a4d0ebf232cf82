"""
Conversão e arredondamento de valores monetários.
"""
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

CENTAVOS = Decimal("0.01")


def como_decimal(valor: Any) -> Decimal:
    """Converte número/string para Decimal; None e inválidos viram 0."""
    if valor is None:
        return Decimal("0")
    if isinstance(valor, Decimal):
        return valor
    try:
        return Decimal(str(valor))
    except (InvalidOperation, ValueError):
        return Decimal("0")


def arredondar(valor: Decimal) -> Decimal:
    return valor.quantize(CENTAVOS, rounding=ROUND_HALF_UP)


def percentual(base: Decimal, aliquota: Any) -> Decimal:
    """base * aliquota%, arredondado em centavos."""
    return arredondar(base * como_decimal(aliquota) / Decimal("100"))
