"""
Admissão de registros de volumetria.
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from database import get_db
from logging_config import get_logger
from schemas import AdmissaoRequest, AdmissaoResponse
from services.ingestao import admitir_registros

logger = get_logger('routers.volumetria')

router = APIRouter(prefix="/volumetria", tags=["Volumetria"])


@router.post("/registros", response_model=AdmissaoResponse, status_code=status.HTTP_201_CREATED)
def admitir(dados: AdmissaoRequest, db: Session = Depends(get_db)):
    """
    Recebe linhas brutas de um arquivo de volumetria.

    Só laudos Assinados/Reassinados são gravados; os demais ficam em
    registros_rejeitados com o motivo.
    """
    resultado = admitir_registros(
        db,
        arquivo_fonte=dados.arquivo_fonte,
        registros=[r.model_dump() for r in dados.registros],
        periodo=dados.periodo_referencia,
        lote_upload=dados.lote_upload,
    )
    return AdmissaoResponse(**resultado.to_dict())
