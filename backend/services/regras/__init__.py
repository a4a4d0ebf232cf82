"""
Motor de regras de normalização da volumetria.

Uso:
    from services.regras import MotorRegras
    resultado = MotorRegras().aplicar_regras(db, arquivo_fonte, "2025-06")
"""
from .base import ContextoRegra, RegraNormalizacao, ResultadoPipeline, ResultadoRegra, TipoRegra
from .catalogo import REGRAS
from .motor import MotorRegras
from .registros import ItemCatalogo, RegraQuebra, RegistrosReferencia, carregar_registros

__all__ = [
    "MotorRegras",
    "REGRAS",
    "RegraNormalizacao",
    "TipoRegra",
    "ContextoRegra",
    "ResultadoRegra",
    "ResultadoPipeline",
    "RegistrosReferencia",
    "ItemCatalogo",
    "RegraQuebra",
    "carregar_registros",
]
