"""
Cálculo e consulta de demonstrativos de faturamento.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from config import Messages
from database import get_db
from exceptions import RecordNotFoundError
from repositories.demonstrativo_repository import demonstrativo_repository
from schemas import (
    PERIODO_PATTERN,
    CalcularDemonstrativosRequest,
    CalculoDemonstrativosResponse,
    DemonstrativoResponse,
    ListaDemonstrativosResponse,
)
from services.faturamento import CalculadoraDemonstrativo

router = APIRouter(prefix="/demonstrativos", tags=["Demonstrativos"])


@router.post("/calcular", response_model=CalculoDemonstrativosResponse)
def calcular(dados: CalcularDemonstrativosRequest, db: Session = Depends(get_db)):
    """
    Calcula os demonstrativos do período.

    Sem forcar_recalculo, devolve os demonstrativos já gravados.
    """
    resultado = CalculadoraDemonstrativo().calcular_periodo(
        db,
        dados.periodo,
        forcar_recalculo=dados.forcar_recalculo,
        clientes=dados.clientes,
    )
    return CalculoDemonstrativosResponse(
        periodo=resultado.periodo,
        mensagem=Messages.DEMONSTRATIVOS_CACHE if resultado.cache else Messages.DEMONSTRATIVOS_CALCULADOS,
        cache=resultado.cache,
        resumo=resultado.resumo,
        clientes_ignorados=resultado.clientes_ignorados,
        demonstrativos=[DemonstrativoResponse.model_validate(d) for d in resultado.demonstrativos],
    )


@router.get("", response_model=ListaDemonstrativosResponse)
def listar(
    periodo: str = Query(..., pattern=PERIODO_PATTERN),
    status: Optional[str] = None,
    db: Session = Depends(get_db),
):
    demonstrativos = demonstrativo_repository.listar_periodo(db, periodo, status)
    return ListaDemonstrativosResponse(
        periodo=periodo,
        total=len(demonstrativos),
        demonstrativos=[DemonstrativoResponse.model_validate(d) for d in demonstrativos],
    )


@router.get("/{demonstrativo_id}", response_model=DemonstrativoResponse)
def obter(demonstrativo_id: int, db: Session = Depends(get_db)):
    demonstrativo = demonstrativo_repository.get_by_id(db, demonstrativo_id)
    if demonstrativo is None:
        raise RecordNotFoundError("Demonstrativo", demonstrativo_id)
    return demonstrativo
