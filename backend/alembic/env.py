"""
Ambiente do Alembic para o banco de faturamento.

Migra as tabelas declaradas em models/: volumetria_exames,
registros_rejeitados, cadastros de referência (cadastro_exames,
mapeamento_nomes_medicos, valores_referencia, prioridades_de_para,
medicos_neurologistas, regras_quebra_exames), parametros_faturamento,
precos_servicos, demonstrativos_faturamento e processing_jobs.

A URL vem de database.DATABASE_URL, que carrega o .env da raiz e
recusa URLs que não sejam PostgreSQL fora dos testes.
"""
from logging.config import fileConfig
import sys
from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy import pool

from alembic import context  # type: ignore[attr-defined]

# Diretório backend no path para os imports de topo
sys.path.insert(0, str(Path(__file__).parent.parent))

from database import Base, DATABASE_URL  # noqa: E402
import models  # noqa: E402, F401 - registra os modelos no metadata

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def _engine_kwargs() -> dict:
    kwargs = {"poolclass": pool.NullPool}
    if DATABASE_URL.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
    return kwargs


def run_migrations_offline() -> None:
    """Gera o SQL das migrações sem conectar ao banco."""
    context.configure(
        url=DATABASE_URL,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
        compare_server_default=True,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Aplica as migrações numa conexão com o banco de faturamento."""
    connectable = create_engine(DATABASE_URL, **_engine_kwargs())

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,  # colunas Numeric dos valores monetários
            compare_server_default=True,
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
