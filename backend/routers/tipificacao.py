"""
Tipificação de faturamento sob demanda.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from config import Messages
from database import get_db
from schemas import TipificacaoRequest, TipificacaoResponse
from services.tipificacao import ClassificadorFaturamento

router = APIRouter(prefix="/tipificacao", tags=["Tipificação"])


@router.post("", response_model=TipificacaoResponse)
def tipificar(dados: TipificacaoRequest, db: Session = Depends(get_db)):
    """Limpa tags inválidas e recalcula a tipificação dos exames filtrados."""
    contagem = ClassificadorFaturamento().reclassificar(
        db,
        arquivo_fonte=dados.arquivo_fonte,
        periodo=dados.periodo_referencia,
    )
    return TipificacaoResponse(mensagem=Messages.TIPIFICACAO_CONCLUIDA, **contagem)
