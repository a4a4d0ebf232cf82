"""
Repositório para operações da volumetria (exames e rejeitados).

As regras do pipeline operam sempre sobre um arquivo_fonte e gravam
em lote: cada update/delete faz commit próprio.
"""
from datetime import date
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Query, Session

from config import EXCLUSION_PAGE_SIZE, TipificacaoConfig
from models import ExameVolumetria, RegistroRejeitado
from utils.timeout import Prazo

from .base import BaseRepository

_COLUNAS_SNAPSHOT = (
    "id", "empresa", "nome_paciente", "codigo_paciente", "accession_number",
    "estudo_descricao", "modalidade", "especialidade", "categoria",
    "prioridade", "medico", "valores", "data_realizacao", "data_laudo",
    "data_prazo", "status", "lote_upload", "periodo_referencia",
    "tipo_cliente", "tipo_faturamento",
)


def _valor_json(valor: Any) -> Any:
    if isinstance(valor, Decimal):
        return float(valor)
    if isinstance(valor, date):
        return valor.isoformat()
    return valor


def registro_para_dict(exame: ExameVolumetria) -> Dict[str, Any]:
    """Snapshot serializável (JSON) de uma linha de volumetria."""
    return {coluna: _valor_json(getattr(exame, coluna)) for coluna in _COLUNAS_SNAPSHOT}


class VolumetriaRepository(BaseRepository[ExameVolumetria]):
    """Repositório da tabela volumetria_exames."""

    def __init__(self):
        super().__init__(ExameVolumetria)

    def query_arquivo(self, db: Session, arquivo_fonte: str, *condicoes) -> Query:
        """Query base dos registros de um arquivo, com condições extras."""
        return db.query(ExameVolumetria).filter(
            ExameVolumetria.arquivo_fonte == arquivo_fonte,
            *condicoes
        )

    def contar_por_arquivo(self, db: Session, arquivo_fonte: str) -> int:
        return self.query_arquivo(db, arquivo_fonte).count()

    def valores_distintos(
        self, db: Session, arquivo_fonte: str, coluna: str, *condicoes
    ) -> List[str]:
        """
        Valores distintos (não nulos) de uma coluna dentro do arquivo.

        Usado pelas regras de cadastro: compara-se cada valor distinto
        com o cadastro e atualiza-se só o que casou.
        """
        col = getattr(ExameVolumetria, coluna)
        rows = db.query(col).filter(
            ExameVolumetria.arquivo_fonte == arquivo_fonte,
            col.isnot(None),
            *condicoes
        ).distinct().all()
        return [r[0] for r in rows]

    def atualizar(
        self,
        db: Session,
        arquivo_fonte: str,
        condicoes: Iterable[Any],
        valores: Dict[Any, Any],
    ) -> int:
        """
        Update em lote (commit imediato).

        Returns:
            Quantidade de linhas alteradas
        """
        count = self.query_arquivo(db, arquivo_fonte, *condicoes).update(
            valores, synchronize_session=False
        )
        db.commit()
        return count

    def registrar_rejeicoes(
        self,
        db: Session,
        exames: Iterable[ExameVolumetria],
        motivo: str,
        detalhes: Optional[str] = None,
    ) -> int:
        """Adiciona os exames à tabela de rejeitados (sem commit)."""
        total = 0
        for exame in exames:
            db.add(RegistroRejeitado(
                arquivo_fonte=exame.arquivo_fonte,
                lote_upload=exame.lote_upload,
                dados_originais=registro_para_dict(exame),
                motivo_rejeicao=motivo,
                detalhes_erro=detalhes,
            ))
            total += 1
        return total

    def excluir_com_rejeicao(
        self,
        db: Session,
        arquivo_fonte: str,
        condicoes: Iterable[Any],
        motivo: str,
        detalhes: Optional[str] = None,
        prazo: Optional[Prazo] = None,
        etapa: str = "",
        page_size: int = EXCLUSION_PAGE_SIZE,
    ) -> int:
        """
        Exclui os registros que atendem às condições, em páginas.

        Cada página é copiada para registros_rejeitados e removida na
        mesma transação.

        Returns:
            Total de registros excluídos
        """
        condicoes = list(condicoes)
        total = 0
        while True:
            if prazo:
                prazo.verificar(etapa)
            pagina = self.query_arquivo(db, arquivo_fonte, *condicoes).order_by(
                ExameVolumetria.id
            ).limit(page_size).all()
            if not pagina:
                break
            self.registrar_rejeicoes(db, pagina, motivo, detalhes)
            ids = [e.id for e in pagina]
            db.query(ExameVolumetria).filter(
                ExameVolumetria.id.in_(ids)
            ).delete(synchronize_session=False)
            db.commit()
            total += len(ids)
        return total

    def query_periodo(
        self,
        db: Session,
        periodo: Optional[str] = None,
        arquivo_fonte: Optional[str] = None,
    ) -> Query:
        query = db.query(ExameVolumetria)
        if arquivo_fonte:
            query = query.filter(ExameVolumetria.arquivo_fonte == arquivo_fonte)
        if periodo:
            query = query.filter(ExameVolumetria.periodo_referencia == periodo)
        return query

    def listar_faturaveis(
        self, db: Session, cliente: str, periodo: str
    ) -> List[ExameVolumetria]:
        """Exames do cliente no período com tipo de faturamento cobrável."""
        return db.query(ExameVolumetria).filter(
            ExameVolumetria.empresa == cliente,
            ExameVolumetria.periodo_referencia == periodo,
            ExameVolumetria.tipo_faturamento.in_(TipificacaoConfig.TIPOS_FATURAVEIS),
        ).order_by(ExameVolumetria.id).all()

    def clientes_faturaveis(self, db: Session, periodo: str) -> List[str]:
        """Clientes distintos com exames cobráveis no período."""
        rows = db.query(ExameVolumetria.empresa).filter(
            ExameVolumetria.periodo_referencia == periodo,
            ExameVolumetria.empresa.isnot(None),
            ExameVolumetria.tipo_faturamento.in_(TipificacaoConfig.TIPOS_FATURAVEIS),
        ).distinct().order_by(ExameVolumetria.empresa).all()
        return [r[0] for r in rows]

    def contar_por_motivo(self, db: Session, arquivo_fonte: str) -> Dict[str, int]:
        """Histograma de rejeições por motivo para um arquivo."""
        rows = db.query(
            RegistroRejeitado.motivo_rejeicao,
            func.count(RegistroRejeitado.id)
        ).filter(
            RegistroRejeitado.arquivo_fonte == arquivo_fonte
        ).group_by(RegistroRejeitado.motivo_rejeicao).all()
        return {motivo: count for motivo, count in rows}


volumetria_repository = VolumetriaRepository()
