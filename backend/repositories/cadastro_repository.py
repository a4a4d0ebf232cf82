"""
Repositório de leitura dos cadastros de referência.

Os cadastros são mantidos fora do pipeline; aqui só há leitura
dos registros ativos.
"""
from typing import List

from sqlalchemy.orm import Session

from models import (
    CadastroExame,
    MapeamentoNomeMedico,
    MedicoNeurologista,
    PrioridadeDePara,
    RegraQuebraExame,
    ValorReferencia,
)


class CadastroRepository:
    """Leitura dos cadastros ativos."""

    def listar_exames(self, db: Session) -> List[CadastroExame]:
        return db.query(CadastroExame).filter(
            CadastroExame.ativo.is_(True)
        ).order_by(CadastroExame.id).all()

    def listar_mapeamentos_medicos(self, db: Session) -> List[MapeamentoNomeMedico]:
        return db.query(MapeamentoNomeMedico).filter(
            MapeamentoNomeMedico.ativo.is_(True)
        ).order_by(MapeamentoNomeMedico.id).all()

    def listar_valores_referencia(self, db: Session) -> List[ValorReferencia]:
        return db.query(ValorReferencia).filter(
            ValorReferencia.ativo.is_(True)
        ).order_by(ValorReferencia.id).all()

    def listar_prioridades(self, db: Session) -> List[PrioridadeDePara]:
        return db.query(PrioridadeDePara).filter(
            PrioridadeDePara.ativo.is_(True)
        ).order_by(PrioridadeDePara.id).all()

    def listar_neurologistas(self, db: Session) -> List[MedicoNeurologista]:
        return db.query(MedicoNeurologista).filter(
            MedicoNeurologista.ativo.is_(True)
        ).order_by(MedicoNeurologista.id).all()

    def listar_regras_quebra(self, db: Session) -> List[RegraQuebraExame]:
        return db.query(RegraQuebraExame).filter(
            RegraQuebraExame.ativo.is_(True)
        ).order_by(RegraQuebraExame.id).all()


cadastro_repository = CadastroRepository()
