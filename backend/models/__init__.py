"""
Package de modelos SQLAlchemy.

Re-exporta todos os modelos: `from models import ExameVolumetria, ...`
"""
from models.cadastros import (
    CadastroExame,
    MapeamentoNomeMedico,
    MedicoNeurologista,
    PrioridadeDePara,
    RegraQuebraExame,
    ValorReferencia,
)
from models.faturamento import DemonstrativoFaturamento, ParametrosFaturamento, PrecoServico
from models.processing_job import ProcessingJobModel
from models.volumetria import ExameVolumetria, RegistroRejeitado

__all__ = [
    "ExameVolumetria",
    "RegistroRejeitado",
    "CadastroExame",
    "MapeamentoNomeMedico",
    "ValorReferencia",
    "PrioridadeDePara",
    "MedicoNeurologista",
    "RegraQuebraExame",
    "ParametrosFaturamento",
    "PrecoServico",
    "DemonstrativoFaturamento",
    "ProcessingJobModel",
]
