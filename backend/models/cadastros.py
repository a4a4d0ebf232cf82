"""
Cadastros de referência lidos pelo motor de regras.

Mantidos por telas externas de configuração; o pipeline só lê.
"""
from __future__ import annotations

from decimal import Decimal
from typing import Optional

from sqlalchemy import Boolean, Index, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from database import Base


class CadastroExame(Base):
    """Catálogo de exames: nome -> modalidade/especialidade/categoria."""
    __tablename__ = "cadastro_exames"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    nome: Mapped[str] = mapped_column(String(500), nullable=False, index=True)
    modalidade: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    especialidade: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    categoria: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    ativo: Mapped[bool] = mapped_column(Boolean, default=True, index=True)


class MapeamentoNomeMedico(Base):
    """De-para de nomes de médicos (grafia de origem -> nome canônico)."""
    __tablename__ = "mapeamento_nomes_medicos"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    nome_origem: Mapped[str] = mapped_column(String(255), nullable=False)
    medico_nome: Mapped[str] = mapped_column(String(255), nullable=False)
    ativo: Mapped[bool] = mapped_column(Boolean, default=True)


class ValorReferencia(Base):
    """Quantidade padrão por exame, usada quando a origem vem zerada."""
    __tablename__ = "valores_referencia"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    estudo_descricao: Mapped[str] = mapped_column(String(500), nullable=False)
    valores: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    ativo: Mapped[bool] = mapped_column(Boolean, default=True)


class PrioridadeDePara(Base):
    """De-para de prioridades."""
    __tablename__ = "prioridades_de_para"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    prioridade_original: Mapped[str] = mapped_column(String(50), nullable=False)
    nome_final: Mapped[str] = mapped_column(String(50), nullable=False)
    ativo: Mapped[bool] = mapped_column(Boolean, default=True)


class MedicoNeurologista(Base):
    """Neurologistas: laudos de COLUNAS desses médicos vão para NEURO."""
    __tablename__ = "medicos_neurologistas"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    nome: Mapped[str] = mapped_column(String(255), nullable=False)
    ativo: Mapped[bool] = mapped_column(Boolean, default=True)


class RegraQuebraExame(Base):
    """Regra de quebra: um exame composto gera um exame por regra."""
    __tablename__ = "regras_quebra_exames"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    exame_original: Mapped[str] = mapped_column(String(500), nullable=False)
    exame_quebrado: Mapped[str] = mapped_column(String(500), nullable=False)
    categoria_quebrada: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    ativo: Mapped[bool] = mapped_column(Boolean, default=True)

    __table_args__ = (
        Index('ix_regras_quebra_original', 'exame_original'),
    )
