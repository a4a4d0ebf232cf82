"""
Fixtures compartilhadas para testes do faturamento de volumetria.
"""
import os
import sys
import pytest
from datetime import date
from decimal import Decimal
from typing import Generator

# Banco SQLite local para testes (mesmo engine usado pelos jobs em background)
os.environ["DATABASE_URL"] = "sqlite:///./test_faturamento.db"
os.environ.setdefault("TESTING", "1")

# Adicionar o diretório backend ao path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy.orm import Session  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from database import Base, SessionLocal, engine  # noqa: E402
from models import (  # noqa: E402
    CadastroExame,
    ExameVolumetria,
    ParametrosFaturamento,
    PrecoServico,
)


# === Configuração do Banco de Dados de Teste ===

@pytest.fixture(scope="session")
def test_engine():
    """Engine do banco de dados de teste."""
    Base.metadata.create_all(bind=engine)
    yield engine
    # Cleanup: remover tabelas após todos os testes
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db_session(test_engine) -> Generator[Session, None, None]:
    """Sessão de banco de dados para cada teste (tabelas limpas ao final)."""
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        for table in reversed(Base.metadata.sorted_tables):
            session.execute(table.delete())
        session.commit()
        session.close()


# === Fábricas de registros ===

def make_exame(**overrides) -> ExameVolumetria:
    """Cria um ExameVolumetria (não persistido) com valores padrão."""
    dados = dict(
        empresa="CLINICA ALFA",
        nome_paciente="Paciente Teste",
        estudo_descricao="TC CRANIO",
        modalidade="CT",
        especialidade="NEURO",
        categoria="SC",
        prioridade="ROTINA",
        medico="Dr. Fulano de Tal",
        valores=Decimal("1"),
        data_realizacao=date(2025, 6, 10),
        data_laudo=date(2025, 6, 11),
        status="Assinado",
        arquivo_fonte="volumetria_padrao",
        periodo_referencia="2025-06",
    )
    dados.update(overrides)
    return ExameVolumetria(**dados)


def make_parametros(**overrides) -> ParametrosFaturamento:
    """Cria ParametrosFaturamento (não persistido) com valores padrão."""
    dados = dict(
        cliente_nome="CLINICA ALFA",
        tipo_cliente="CO",
        tipo_faturamento=None,
        aplicar_franquia=False,
        valor_franquia=Decimal("0"),
        volume_franquia=0,
        frequencia_continua=False,
        valor_acima_franquia=Decimal("0"),
        percentual_urgencia=Decimal("0"),
        cobrar_integracao=False,
        valor_integracao=Decimal("0"),
        portal_laudos=False,
        valor_portal_laudos=Decimal("0"),
        percentual_iss=Decimal("0"),
        valor_minimo_retencao=None,
        simples=False,
        cond_volume="MOD/ESP/CAT",
        ativo=True,
    )
    dados.update(overrides)
    return ParametrosFaturamento(**dados)


def make_preco(**overrides) -> PrecoServico:
    """Cria PrecoServico (não persistido) com valores padrão."""
    dados = dict(
        cliente_nome="CLINICA ALFA",
        modalidade="CT",
        especialidade="NEURO",
        categoria=None,
        prioridade=None,
        volume_inicial=None,
        volume_final=None,
        valor_base=Decimal("100.00"),
        valor_urgencia=None,
        ativo=True,
    )
    dados.update(overrides)
    return PrecoServico(**dados)


def make_cadastro(nome, modalidade=None, especialidade=None, categoria=None) -> CadastroExame:
    return CadastroExame(
        nome=nome,
        modalidade=modalidade,
        especialidade=especialidade,
        categoria=categoria,
        ativo=True,
    )


@pytest.fixture
def add_all(db_session: Session):
    """Persiste entidades e retorna a lista."""
    def _add_all(*entities):
        db_session.add_all(entities)
        db_session.commit()
        return list(entities)
    return _add_all


# === Fixtures de Cliente HTTP ===

@pytest.fixture
def client(test_engine, db_session) -> Generator[TestClient, None, None]:
    """Cliente de teste FastAPI (fila de processamento sem worker)."""
    from unittest.mock import AsyncMock, patch

    from main import app
    from services.processing_queue import processing_queue

    with patch.object(processing_queue, "start", new=AsyncMock()), \
            patch.object(processing_queue, "stop", new=AsyncMock()):
        with TestClient(app) as test_client:
            yield test_client
