from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from schemas.base import periodo_field


class RegistroVolumetria(BaseModel):
    """Linha bruta da volumetria, como veio do arquivo de origem."""
    empresa: Optional[str] = Field(None, max_length=255)
    nome_paciente: Optional[str] = Field(None, max_length=255)
    codigo_paciente: Optional[str] = Field(None, max_length=100)
    accession_number: Optional[str] = Field(None, max_length=100)
    estudo_descricao: Optional[str] = Field(None, max_length=500)
    modalidade: Optional[str] = Field(None, max_length=20)
    especialidade: Optional[str] = Field(None, max_length=100)
    categoria: Optional[str] = Field(None, max_length=100)
    prioridade: Optional[str] = Field(None, max_length=50)
    medico: Optional[str] = Field(None, max_length=255)
    valores: Optional[Decimal] = Field(None, ge=0)
    data_realizacao: Optional[date] = None
    data_laudo: Optional[date] = None
    data_prazo: Optional[date] = None
    status: Optional[str] = Field(None, max_length=30)


class AdmissaoRequest(BaseModel):
    arquivo_fonte: str = Field(min_length=1, max_length=255)
    periodo_referencia: str = periodo_field()
    lote_upload: Optional[str] = Field(None, max_length=100)
    registros: List[RegistroVolumetria]


class AdmissaoResponse(BaseModel):
    arquivo_fonte: str
    admitidos: int
    rejeitados: int
    motivos: Dict[str, int] = {}
