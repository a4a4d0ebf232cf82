"""
Cálculo de faturamento: precificação, franquia, impostos e demonstrativos.

Componentes:
- precificacao: Tabela de preços e valoração dos exames
- franquia: Franquia e taxas fixas (portal, integração)
- impostos: ISS e retenções federais com valor mínimo
- demonstrativo: Calculadora de demonstrativos por cliente/período
"""

from .demonstrativo import CalculadoraDemonstrativo, ResultadoPeriodo, completar_categorias
from .franquia import ResultadoFranquia, calcular_franquia, calcular_taxas_fixas
from .impostos import ImpostosCalculados, calcular_impostos
from .precificacao import LinhaPreco, TabelaPrecos, chave_volume, valorar_exames

__all__ = [
    # demonstrativo
    'CalculadoraDemonstrativo',
    'ResultadoPeriodo',
    'completar_categorias',
    # franquia
    'ResultadoFranquia',
    'calcular_franquia',
    'calcular_taxas_fixas',
    # impostos
    'ImpostosCalculados',
    'calcular_impostos',
    # precificacao
    'LinhaPreco',
    'TabelaPrecos',
    'chave_volume',
    'valorar_exames',
]
