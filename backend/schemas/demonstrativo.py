from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from schemas.base import periodo_field


class CalcularDemonstrativosRequest(BaseModel):
    periodo: str = periodo_field()
    forcar_recalculo: bool = False
    clientes: Optional[List[str]] = Field(None, description="Restringe o cálculo a estes clientes")


class DemonstrativoResponse(BaseModel):
    id: int
    cliente_nome: str
    periodo_referencia: str
    tipo_cliente: Optional[str] = None
    tipo_faturamento: Optional[str] = None
    total_exames: Decimal
    valor_exames: Decimal
    valor_franquia: Decimal
    valor_portal_laudos: Decimal
    valor_integracao: Decimal
    valor_bruto: Decimal
    valor_iss: Decimal
    valor_irrf: Decimal
    valor_pis: Decimal
    valor_cofins: Decimal
    valor_csll: Decimal
    valor_impostos: Decimal
    valor_liquido: Decimal
    simples: bool = False
    detalhes_exames: Optional[List[Dict[str, Any]]] = None
    status: str
    erro: Optional[str] = None
    calculado_em: Optional[datetime] = None

    class Config:
        from_attributes = True


class CalculoDemonstrativosResponse(BaseModel):
    periodo: str
    mensagem: str
    cache: bool = False
    resumo: Dict[str, Any]
    clientes_ignorados: List[str] = []
    demonstrativos: List[DemonstrativoResponse]


class ListaDemonstrativosResponse(BaseModel):
    periodo: str
    total: int
    demonstrativos: List[DemonstrativoResponse]
