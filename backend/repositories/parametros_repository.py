"""
Repositório de parâmetros de faturamento e tabela de preços.
"""
from datetime import date
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from models import ParametrosFaturamento, PrecoServico

from .base import BaseRepository


class ParametrosRepository(BaseRepository[ParametrosFaturamento]):
    """Parâmetros por cliente, filtrados por vigência."""

    def __init__(self):
        super().__init__(ParametrosFaturamento)

    def listar_vigentes(
        self, db: Session, data_referencia: Optional[date] = None
    ) -> List[ParametrosFaturamento]:
        """
        Parâmetros ativos vigentes na data (todas as vigências se None).

        Ordenados por id para que o casamento parcial seja determinístico.
        """
        query = db.query(ParametrosFaturamento).filter(
            ParametrosFaturamento.ativo.is_(True)
        )
        if data_referencia is not None:
            query = query.filter(
                or_(
                    ParametrosFaturamento.data_inicio_vigencia.is_(None),
                    ParametrosFaturamento.data_inicio_vigencia <= data_referencia,
                ),
                or_(
                    ParametrosFaturamento.data_fim_vigencia.is_(None),
                    ParametrosFaturamento.data_fim_vigencia >= data_referencia,
                ),
            )
        return query.order_by(ParametrosFaturamento.id).all()


class PrecoRepository(BaseRepository[PrecoServico]):
    """Tabela de preços por cliente."""

    def __init__(self):
        super().__init__(PrecoServico)

    def listar_por_cliente(self, db: Session, cliente: str) -> List[PrecoServico]:
        return db.query(PrecoServico).filter(
            PrecoServico.cliente_nome == cliente,
            PrecoServico.ativo.is_(True),
        ).order_by(PrecoServico.id).all()


parametros_repository = ParametrosRepository()
preco_repository = PrecoRepository()
