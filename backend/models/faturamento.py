from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    DateTime,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from database import Base


class ParametrosFaturamento(Base):
    """Parâmetros de faturamento de um cliente em um intervalo de vigência."""
    __tablename__ = "parametros_faturamento"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    cliente_nome: Mapped[str] = mapped_column(String(255), nullable=False, index=True)

    # CO (consolidado, padrão), NC ou NC1
    tipo_cliente: Mapped[str] = mapped_column(String(10), nullable=False, default="CO")
    # Override de tipo de faturamento (ex: CO-NF); None = padrão
    tipo_faturamento: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)

    # Franquia
    aplicar_franquia: Mapped[bool] = mapped_column(Boolean, default=False)
    valor_franquia: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0)
    volume_franquia: Mapped[int] = mapped_column(Integer, default=0)
    frequencia_continua: Mapped[bool] = mapped_column(Boolean, default=False)
    valor_acima_franquia: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0)

    percentual_urgencia: Mapped[Decimal] = mapped_column(Numeric(6, 2), default=0)

    # Taxas fixas
    cobrar_integracao: Mapped[bool] = mapped_column(Boolean, default=False)
    valor_integracao: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0)
    portal_laudos: Mapped[bool] = mapped_column(Boolean, default=False)
    valor_portal_laudos: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0)

    # Impostos
    percentual_iss: Mapped[Decimal] = mapped_column(Numeric(6, 2), default=0)
    valor_minimo_retencao: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    simples: Mapped[bool] = mapped_column(Boolean, default=False)

    # Agrupamento do volume para precificação: MOD, MOD/ESP, MOD/ESP/CAT ou GLOBAL
    cond_volume: Mapped[str] = mapped_column(String(20), default="MOD/ESP/CAT")

    data_inicio_vigencia: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    data_fim_vigencia: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    ativo: Mapped[bool] = mapped_column(Boolean, default=True, index=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), onupdate=func.now())


class PrecoServico(Base):
    """Tabela de preços por cliente, modalidade, especialidade e categoria."""
    __tablename__ = "precos_servicos"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    cliente_nome: Mapped[str] = mapped_column(String(255), nullable=False)
    modalidade: Mapped[str] = mapped_column(String(20), nullable=False)
    especialidade: Mapped[str] = mapped_column(String(100), nullable=False)
    categoria: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    # None = vale para qualquer prioridade
    prioridade: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    volume_inicial: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    volume_final: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    valor_base: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    valor_urgencia: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    ativo: Mapped[bool] = mapped_column(Boolean, default=True)

    __table_args__ = (
        Index('ix_precos_cliente_mod_esp', 'cliente_nome', 'modalidade', 'especialidade'),
    )


class DemonstrativoFaturamento(Base):
    """Demonstrativo calculado de um cliente em um período.

    Substituído (nunca acumulado) a cada recálculo forçado.
    """
    __tablename__ = "demonstrativos_faturamento"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    cliente_nome: Mapped[str] = mapped_column(String(255), nullable=False)
    periodo_referencia: Mapped[str] = mapped_column(String(7), nullable=False, index=True)

    tipo_cliente: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    tipo_faturamento: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)

    total_exames: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0)
    valor_exames: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=0)
    valor_franquia: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=0)
    valor_portal_laudos: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=0)
    valor_integracao: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=0)
    valor_bruto: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=0)

    valor_iss: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=0)
    valor_irrf: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=0)
    valor_pis: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=0)
    valor_cofins: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=0)
    valor_csll: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=0)
    valor_impostos: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=0)
    valor_liquido: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=0)

    simples: Mapped[bool] = mapped_column(Boolean, default=False)
    detalhes_exames: Mapped[Optional[List[Dict[str, Any]]]] = mapped_column(JSON, nullable=True)

    # calculado ou erro_processamento
    status: Mapped[str] = mapped_column(String(30), nullable=False, default="calculado")
    erro: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    calculado_em: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        UniqueConstraint('cliente_nome', 'periodo_referencia', name='uq_demonstrativo_cliente_periodo'),
    )
