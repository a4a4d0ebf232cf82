from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, Optional

from sqlalchemy import JSON, Date, DateTime, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from database import Base


class ExameVolumetria(Base):
    """Linha de volumetria: um exame laudado de um cliente.

    Mutada pelo motor de regras e pela quebra de exames; a tipificação
    preenche tipo_cliente/tipo_faturamento uma vez por execução.
    """
    __tablename__ = "volumetria_exames"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)

    empresa: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    nome_paciente: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    codigo_paciente: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    accession_number: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    estudo_descricao: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    modalidade: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    especialidade: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    categoria: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    prioridade: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    medico: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # Quantidade/peso do exame (VALORES na planilha de origem)
    valores: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)

    data_realizacao: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    data_laudo: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    data_prazo: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    status: Mapped[str] = mapped_column(String(30), nullable=False)

    arquivo_fonte: Mapped[str] = mapped_column(String(255), nullable=False)
    lote_upload: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    periodo_referencia: Mapped[Optional[str]] = mapped_column(String(7), nullable=True)

    tipo_cliente: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    tipo_faturamento: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), onupdate=func.now())

    __table_args__ = (
        Index('ix_volumetria_arquivo', 'arquivo_fonte'),
        Index('ix_volumetria_arquivo_descricao', 'arquivo_fonte', 'estudo_descricao'),
        Index('ix_volumetria_periodo_empresa', 'periodo_referencia', 'empresa'),
    )


class RegistroRejeitado(Base):
    """Registro recusado na ingestão ou removido por uma regra.

    Guardado apenas para auditoria/relatórios; o pipeline não lê esta tabela.
    """
    __tablename__ = "registros_rejeitados"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    arquivo_fonte: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    lote_upload: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    linha_original: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    dados_originais: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)

    # Código do motivo (ex: STATUS_NAO_ASSINADO, CLIENTE_ESPECIFICO_EXCLUIDO)
    motivo_rejeicao: Mapped[str] = mapped_column(String(60), nullable=False, index=True)
    detalhes_erro: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
