"""initial_schema

Revision ID: a1b2c3d4e5f6
Revises:
Create Date: 2026-10-19

Schema inicial: volumetria, rejeitados, cadastros de referência,
parâmetros/preços de faturamento, demonstrativos e jobs do pipeline.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = 'a1b2c3d4e5f6'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Cria todas as tabelas."""
    op.create_table(
        'volumetria_exames',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('empresa', sa.String(255), nullable=True),
        sa.Column('nome_paciente', sa.String(255), nullable=True),
        sa.Column('codigo_paciente', sa.String(100), nullable=True),
        sa.Column('accession_number', sa.String(100), nullable=True),
        sa.Column('estudo_descricao', sa.String(500), nullable=True),
        sa.Column('modalidade', sa.String(20), nullable=True),
        sa.Column('especialidade', sa.String(100), nullable=True),
        sa.Column('categoria', sa.String(100), nullable=True),
        sa.Column('prioridade', sa.String(50), nullable=True),
        sa.Column('medico', sa.String(255), nullable=True),
        sa.Column('valores', sa.Numeric(12, 2), nullable=True),
        sa.Column('data_realizacao', sa.Date(), nullable=True),
        sa.Column('data_laudo', sa.Date(), nullable=True),
        sa.Column('data_prazo', sa.Date(), nullable=True),
        sa.Column('status', sa.String(30), nullable=False),
        sa.Column('arquivo_fonte', sa.String(255), nullable=False),
        sa.Column('lote_upload', sa.String(100), nullable=True),
        sa.Column('periodo_referencia', sa.String(7), nullable=True),
        sa.Column('tipo_cliente', sa.String(10), nullable=True),
        sa.Column('tipo_faturamento', sa.String(10), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_volumetria_exames_id', 'volumetria_exames', ['id'])
    op.create_index('ix_volumetria_arquivo', 'volumetria_exames', ['arquivo_fonte'])
    op.create_index('ix_volumetria_arquivo_descricao', 'volumetria_exames', ['arquivo_fonte', 'estudo_descricao'])
    op.create_index('ix_volumetria_periodo_empresa', 'volumetria_exames', ['periodo_referencia', 'empresa'])

    op.create_table(
        'registros_rejeitados',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('arquivo_fonte', sa.String(255), nullable=False),
        sa.Column('lote_upload', sa.String(100), nullable=True),
        sa.Column('linha_original', sa.Integer(), nullable=True),
        sa.Column('dados_originais', sa.JSON(), nullable=True),
        sa.Column('motivo_rejeicao', sa.String(60), nullable=False),
        sa.Column('detalhes_erro', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_registros_rejeitados_id', 'registros_rejeitados', ['id'])
    op.create_index('ix_registros_rejeitados_arquivo_fonte', 'registros_rejeitados', ['arquivo_fonte'])
    op.create_index('ix_registros_rejeitados_motivo_rejeicao', 'registros_rejeitados', ['motivo_rejeicao'])

    # Cadastros de referência
    op.create_table(
        'cadastro_exames',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('nome', sa.String(500), nullable=False),
        sa.Column('modalidade', sa.String(20), nullable=True),
        sa.Column('especialidade', sa.String(100), nullable=True),
        sa.Column('categoria', sa.String(100), nullable=True),
        sa.Column('ativo', sa.Boolean(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_cadastro_exames_id', 'cadastro_exames', ['id'])
    op.create_index('ix_cadastro_exames_nome', 'cadastro_exames', ['nome'])
    op.create_index('ix_cadastro_exames_ativo', 'cadastro_exames', ['ativo'])

    op.create_table(
        'mapeamento_nomes_medicos',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('nome_origem', sa.String(255), nullable=False),
        sa.Column('medico_nome', sa.String(255), nullable=False),
        sa.Column('ativo', sa.Boolean(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_mapeamento_nomes_medicos_id', 'mapeamento_nomes_medicos', ['id'])

    op.create_table(
        'valores_referencia',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('estudo_descricao', sa.String(500), nullable=False),
        sa.Column('valores', sa.Numeric(12, 2), nullable=False),
        sa.Column('ativo', sa.Boolean(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_valores_referencia_id', 'valores_referencia', ['id'])

    op.create_table(
        'prioridades_de_para',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('prioridade_original', sa.String(50), nullable=False),
        sa.Column('nome_final', sa.String(50), nullable=False),
        sa.Column('ativo', sa.Boolean(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_prioridades_de_para_id', 'prioridades_de_para', ['id'])

    op.create_table(
        'medicos_neurologistas',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('nome', sa.String(255), nullable=False),
        sa.Column('ativo', sa.Boolean(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_medicos_neurologistas_id', 'medicos_neurologistas', ['id'])

    op.create_table(
        'regras_quebra_exames',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('exame_original', sa.String(500), nullable=False),
        sa.Column('exame_quebrado', sa.String(500), nullable=False),
        sa.Column('categoria_quebrada', sa.String(100), nullable=True),
        sa.Column('ativo', sa.Boolean(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_regras_quebra_exames_id', 'regras_quebra_exames', ['id'])
    op.create_index('ix_regras_quebra_original', 'regras_quebra_exames', ['exame_original'])

    # Faturamento
    op.create_table(
        'parametros_faturamento',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('cliente_nome', sa.String(255), nullable=False),
        sa.Column('tipo_cliente', sa.String(10), nullable=False),
        sa.Column('tipo_faturamento', sa.String(10), nullable=True),
        sa.Column('aplicar_franquia', sa.Boolean(), nullable=True),
        sa.Column('valor_franquia', sa.Numeric(12, 2), nullable=True),
        sa.Column('volume_franquia', sa.Integer(), nullable=True),
        sa.Column('frequencia_continua', sa.Boolean(), nullable=True),
        sa.Column('valor_acima_franquia', sa.Numeric(12, 2), nullable=True),
        sa.Column('percentual_urgencia', sa.Numeric(6, 2), nullable=True),
        sa.Column('cobrar_integracao', sa.Boolean(), nullable=True),
        sa.Column('valor_integracao', sa.Numeric(12, 2), nullable=True),
        sa.Column('portal_laudos', sa.Boolean(), nullable=True),
        sa.Column('valor_portal_laudos', sa.Numeric(12, 2), nullable=True),
        sa.Column('percentual_iss', sa.Numeric(6, 2), nullable=True),
        sa.Column('valor_minimo_retencao', sa.Numeric(12, 2), nullable=True),
        sa.Column('simples', sa.Boolean(), nullable=True),
        sa.Column('cond_volume', sa.String(20), nullable=True),
        sa.Column('data_inicio_vigencia', sa.Date(), nullable=True),
        sa.Column('data_fim_vigencia', sa.Date(), nullable=True),
        sa.Column('ativo', sa.Boolean(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_parametros_faturamento_id', 'parametros_faturamento', ['id'])
    op.create_index('ix_parametros_faturamento_cliente_nome', 'parametros_faturamento', ['cliente_nome'])
    op.create_index('ix_parametros_faturamento_ativo', 'parametros_faturamento', ['ativo'])

    op.create_table(
        'precos_servicos',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('cliente_nome', sa.String(255), nullable=False),
        sa.Column('modalidade', sa.String(20), nullable=False),
        sa.Column('especialidade', sa.String(100), nullable=False),
        sa.Column('categoria', sa.String(100), nullable=True),
        sa.Column('prioridade', sa.String(50), nullable=True),
        sa.Column('volume_inicial', sa.Integer(), nullable=True),
        sa.Column('volume_final', sa.Integer(), nullable=True),
        sa.Column('valor_base', sa.Numeric(12, 2), nullable=False),
        sa.Column('valor_urgencia', sa.Numeric(12, 2), nullable=True),
        sa.Column('ativo', sa.Boolean(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_precos_servicos_id', 'precos_servicos', ['id'])
    op.create_index('ix_precos_cliente_mod_esp', 'precos_servicos', ['cliente_nome', 'modalidade', 'especialidade'])

    op.create_table(
        'demonstrativos_faturamento',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('cliente_nome', sa.String(255), nullable=False),
        sa.Column('periodo_referencia', sa.String(7), nullable=False),
        sa.Column('tipo_cliente', sa.String(10), nullable=True),
        sa.Column('tipo_faturamento', sa.String(10), nullable=True),
        sa.Column('total_exames', sa.Numeric(12, 2), nullable=True),
        sa.Column('valor_exames', sa.Numeric(14, 2), nullable=True),
        sa.Column('valor_franquia', sa.Numeric(14, 2), nullable=True),
        sa.Column('valor_portal_laudos', sa.Numeric(14, 2), nullable=True),
        sa.Column('valor_integracao', sa.Numeric(14, 2), nullable=True),
        sa.Column('valor_bruto', sa.Numeric(14, 2), nullable=True),
        sa.Column('valor_iss', sa.Numeric(14, 2), nullable=True),
        sa.Column('valor_irrf', sa.Numeric(14, 2), nullable=True),
        sa.Column('valor_pis', sa.Numeric(14, 2), nullable=True),
        sa.Column('valor_cofins', sa.Numeric(14, 2), nullable=True),
        sa.Column('valor_csll', sa.Numeric(14, 2), nullable=True),
        sa.Column('valor_impostos', sa.Numeric(14, 2), nullable=True),
        sa.Column('valor_liquido', sa.Numeric(14, 2), nullable=True),
        sa.Column('simples', sa.Boolean(), nullable=True),
        sa.Column('detalhes_exames', sa.JSON(), nullable=True),
        sa.Column('status', sa.String(30), nullable=False),
        sa.Column('erro', sa.Text(), nullable=True),
        sa.Column('calculado_em', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('cliente_nome', 'periodo_referencia', name='uq_demonstrativo_cliente_periodo')
    )
    op.create_index('ix_demonstrativos_faturamento_id', 'demonstrativos_faturamento', ['id'])
    op.create_index(
        'ix_demonstrativos_faturamento_periodo_referencia',
        'demonstrativos_faturamento', ['periodo_referencia']
    )

    # Jobs do pipeline
    op.create_table(
        'processing_jobs',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('job_type', sa.String(50), nullable=False),
        sa.Column('arquivo_fonte', sa.String(255), nullable=False),
        sa.Column('periodo_referencia', sa.String(7), nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('created_at', sa.Text(), nullable=False),
        sa.Column('started_at', sa.Text(), nullable=True),
        sa.Column('completed_at', sa.Text(), nullable=True),
        sa.Column('registros_antes', sa.Integer(), nullable=True),
        sa.Column('registros_depois', sa.Integer(), nullable=True),
        sa.Column('regras_aplicadas', sa.JSON(), nullable=True),
        sa.Column('result', sa.JSON(), nullable=True),
        sa.Column('error', sa.Text(), nullable=True),
        sa.Column('progress_current', sa.Integer(), nullable=True),
        sa.Column('progress_total', sa.Integer(), nullable=True),
        sa.Column('progress_stage', sa.String(100), nullable=True),
        sa.Column('progress_message', sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_processing_jobs_status', 'processing_jobs', ['status'])
    op.create_index('ix_jobs_arquivo_status', 'processing_jobs', ['arquivo_fonte', 'status'])
    op.create_index('ix_jobs_created', 'processing_jobs', ['created_at'])


def downgrade() -> None:
    """Remove todas as tabelas."""
    op.drop_table('processing_jobs')
    op.drop_table('demonstrativos_faturamento')
    op.drop_table('precos_servicos')
    op.drop_table('parametros_faturamento')
    op.drop_table('regras_quebra_exames')
    op.drop_table('medicos_neurologistas')
    op.drop_table('prioridades_de_para')
    op.drop_table('valores_referencia')
    op.drop_table('mapeamento_nomes_medicos')
    op.drop_table('cadastro_exames')
    op.drop_table('registros_rejeitados')
    op.drop_table('volumetria_exames')
