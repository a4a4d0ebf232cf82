"""
Package de schemas Pydantic.

Re-exporta os schemas para manter imports curtos:
`from schemas import JobResponse, DemonstrativoResponse, ...`
"""
# Base
from schemas.base import PERIODO_PATTERN, JobResponse, periodo_field

# Demonstrativo
from schemas.demonstrativo import (
    CalcularDemonstrativosRequest,
    CalculoDemonstrativosResponse,
    DemonstrativoResponse,
    ListaDemonstrativosResponse,
)

# Processing
from schemas.processing import (
    JobsResponse,
    JobStatusResponse,
    PipelineRequest,
    ProcessingJobDetail,
    QueueInfoResponse,
    QueueStatusResponse,
)

# Tipificação
from schemas.tipificacao import TipificacaoRequest, TipificacaoResponse

# Volumetria
from schemas.volumetria import AdmissaoRequest, AdmissaoResponse, RegistroVolumetria

__all__ = [
    # Base
    "PERIODO_PATTERN",
    "periodo_field",
    "JobResponse",
    # Demonstrativo
    "CalcularDemonstrativosRequest",
    "CalculoDemonstrativosResponse",
    "DemonstrativoResponse",
    "ListaDemonstrativosResponse",
    # Processing
    "PipelineRequest",
    "ProcessingJobDetail",
    "JobsResponse",
    "JobStatusResponse",
    "QueueInfoResponse",
    "QueueStatusResponse",
    # Tipificação
    "TipificacaoRequest",
    "TipificacaoResponse",
    # Volumetria
    "RegistroVolumetria",
    "AdmissaoRequest",
    "AdmissaoResponse",
]
