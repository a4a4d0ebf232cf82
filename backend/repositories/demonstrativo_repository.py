"""
Repositório de demonstrativos de faturamento.
"""
from typing import List, Optional, Sequence

from sqlalchemy.orm import Session

from models import DemonstrativoFaturamento

from .base import BaseRepository


class DemonstrativoRepository(BaseRepository[DemonstrativoFaturamento]):
    """Demonstrativos persistidos por (cliente, período)."""

    def __init__(self):
        super().__init__(DemonstrativoFaturamento)

    def listar_periodo(
        self,
        db: Session,
        periodo: str,
        status: Optional[str] = None,
        clientes: Optional[Sequence[str]] = None,
    ) -> List[DemonstrativoFaturamento]:
        if not clientes:
            return self.query_filtered(
                db,
                order_by="cliente_nome",
                periodo_referencia=periodo,
                status=status,
            )
        query = db.query(DemonstrativoFaturamento).filter(
            DemonstrativoFaturamento.periodo_referencia == periodo,
            DemonstrativoFaturamento.cliente_nome.in_(list(clientes)),
        )
        if status is not None:
            query = query.filter(DemonstrativoFaturamento.status == status)
        return query.order_by(DemonstrativoFaturamento.cliente_nome).all()

    def get_por_cliente(
        self, db: Session, cliente: str, periodo: str
    ) -> Optional[DemonstrativoFaturamento]:
        return db.query(DemonstrativoFaturamento).filter(
            DemonstrativoFaturamento.cliente_nome == cliente,
            DemonstrativoFaturamento.periodo_referencia == periodo,
        ).first()

    def excluir_periodo(
        self, db: Session, periodo: str, clientes: Optional[Sequence[str]] = None
    ) -> int:
        """Remove os demonstrativos do período (só dos clientes informados, se houver)."""
        query = db.query(DemonstrativoFaturamento).filter(
            DemonstrativoFaturamento.periodo_referencia == periodo
        )
        if clientes:
            query = query.filter(DemonstrativoFaturamento.cliente_nome.in_(list(clientes)))
        count = query.delete(synchronize_session="fetch")
        db.commit()
        return count

    def substituir(
        self, db: Session, demonstrativo: DemonstrativoFaturamento
    ) -> DemonstrativoFaturamento:
        """Grava o demonstrativo substituindo o existente do mesmo cliente/período."""
        existente = self.get_por_cliente(
            db, demonstrativo.cliente_nome, demonstrativo.periodo_referencia
        )
        if existente is not None:
            db.delete(existente)
            db.flush()
        return self.create(db, demonstrativo)


demonstrativo_repository = DemonstrativoRepository()
