"""create suprimento de fundos tables

Revision ID: 3b9d2f7a1c44
Revises:
Create Date: 2026-10-16 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '3b9d2f7a1c44'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Cria as tabelas de usuários, suprimento de fundos e base de servidores."""
    op.create_table('users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('username', sa.String(length=50), nullable=False),
        sa.Column('email', sa.String(length=100), nullable=True),
        sa.Column('full_name', sa.String(length=200), nullable=False),
        sa.Column('hashed_password', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=20), nullable=False),
        sa.Column('must_change_password', sa.Boolean(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=True),
        sa.Column('papel', sa.String(length=20), nullable=False, server_default='SUPRIDO'),
        sa.Column('matricula', sa.String(length=20), nullable=True),
        sa.Column('cpf', sa.String(length=11), nullable=True),
        sa.Column('cargo', sa.String(length=200), nullable=True),
        sa.Column('lotacao', sa.String(length=200), nullable=True),
        sa.Column('categoria', sa.String(length=20), nullable=True),
        sa.Column('signature_pin_hash', sa.String(length=255), nullable=True),
        sa.Column('signature_pin_updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('origem_importacao_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_users_id', 'users', ['id'])
    op.create_index('ix_users_username', 'users', ['username'], unique=True)
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_papel', 'users', ['papel'])
    op.create_index('ix_users_matricula', 'users', ['matricula'], unique=True)
    op.create_index('ix_users_origem_importacao_id', 'users', ['origem_importacao_id'])

    op.create_table('comarcas',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('codigo', sa.String(length=20), nullable=False),
        sa.Column('nome', sa.String(length=200), nullable=False),
        sa.Column('ativo', sa.Boolean(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('codigo')
    )
    op.create_index('ix_comarcas_id', 'comarcas', ['id'])

    op.create_table('unidade_titulares',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('comarca_id', sa.Integer(), nullable=False),
        sa.Column('tipo', sa.String(length=20), nullable=False),
        sa.Column('suprido_atual_id', sa.Integer(), nullable=True),
        sa.Column('portaria_numero', sa.String(length=50), nullable=True),
        sa.Column('portaria_data', sa.Date(), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('valor_custeio', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('valor_capital', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('teto_anual', sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column('distribuicao', sa.JSON(), nullable=True),
        sa.Column('ptres', sa.String(length=10), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['comarca_id'], ['comarcas.id'], ),
        sa.ForeignKeyConstraint(['suprido_atual_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('comarca_id', 'tipo', name='uq_unidade_titular_comarca_tipo')
    )
    op.create_index('ix_unidade_titulares_id', 'unidade_titulares', ['id'])
    op.create_index('ix_unidade_titulares_comarca_id', 'unidade_titulares', ['comarca_id'])
    op.create_index('ix_unidade_titulares_status', 'unidade_titulares', ['status'])

    op.create_table('historico_titulares',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('unidade_id', sa.Integer(), nullable=False),
        sa.Column('titular_anterior_id', sa.Integer(), nullable=True),
        sa.Column('titular_novo_id', sa.Integer(), nullable=False),
        sa.Column('portaria_numero', sa.String(length=50), nullable=False),
        sa.Column('portaria_data', sa.Date(), nullable=True),
        sa.Column('motivo', sa.Text(), nullable=True),
        sa.Column('registrado_por', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['unidade_id'], ['unidade_titulares.id'], ),
        sa.ForeignKeyConstraint(['titular_anterior_id'], ['users.id'], ),
        sa.ForeignKeyConstraint(['titular_novo_id'], ['users.id'], ),
        sa.ForeignKeyConstraint(['registrado_por'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_historico_titulares_id', 'historico_titulares', ['id'])
    op.create_index('ix_historico_titulares_unidade_id', 'historico_titulares', ['unidade_id'])

    op.create_table('lotes_concessao',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('competencia', sa.String(length=10), nullable=False),
        sa.Column('tipo', sa.String(length=20), nullable=False),
        sa.Column('executado_por', sa.Integer(), nullable=False),
        sa.Column('total_unidades', sa.Integer(), nullable=True),
        sa.Column('sucessos', sa.Integer(), nullable=True),
        sa.Column('erros', sa.Integer(), nullable=True),
        sa.Column('ignorados', sa.Integer(), nullable=True),
        sa.Column('valor_total', sa.Numeric(precision=14, scale=2), nullable=True),
        sa.Column('resultados', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('finalizado_em', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['executado_por'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_lotes_concessao_id', 'lotes_concessao', ['id'])
    op.create_index('ix_lotes_concessao_competencia', 'lotes_concessao', ['competencia'])

    op.create_table('solicitacoes',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('nup', sa.String(length=30), nullable=False),
        sa.Column('tipo', sa.String(length=20), nullable=False),
        sa.Column('status', sa.String(length=40), nullable=False),
        sa.Column('destino_atual', sa.String(length=20), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('comarca_id', sa.Integer(), nullable=True),
        sa.Column('competencia', sa.String(length=10), nullable=True),
        sa.Column('lote_id', sa.Integer(), nullable=True),
        sa.Column('descricao', sa.Text(), nullable=True),
        sa.Column('justificativa', sa.Text(), nullable=True),
        sa.Column('valor_solicitado', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('ptres', sa.String(length=10), nullable=True),
        sa.Column('dados_extras', sa.JSON(), nullable=True),
        sa.Column('atestado_por', sa.Integer(), nullable=True),
        sa.Column('data_atesto', sa.DateTime(timezone=True), nullable=True),
        sa.Column('autorizado_por', sa.Integer(), nullable=True),
        sa.Column('data_autorizacao', sa.DateTime(timezone=True), nullable=True),
        sa.Column('data_recebimento', sa.DateTime(timezone=True), nullable=True),
        sa.Column('prazo_aplicacao', sa.Date(), nullable=True),
        sa.Column('prazo_prestacao', sa.Date(), nullable=True),
        sa.Column('versao', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.ForeignKeyConstraint(['comarca_id'], ['comarcas.id'], ),
        sa.ForeignKeyConstraint(['lote_id'], ['lotes_concessao.id'], ),
        sa.ForeignKeyConstraint(['atestado_por'], ['users.id'], ),
        sa.ForeignKeyConstraint(['autorizado_por'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('comarca_id', 'competencia', 'tipo', name='uq_solicitacao_unidade_competencia')
    )
    op.create_index('ix_solicitacoes_id', 'solicitacoes', ['id'])
    op.create_index('ix_solicitacoes_nup', 'solicitacoes', ['nup'], unique=True)
    op.create_index('ix_solicitacoes_status', 'solicitacoes', ['status'])
    op.create_index('ix_solicitacoes_destino_atual', 'solicitacoes', ['destino_atual'])
    op.create_index('ix_solicitacoes_user_id', 'solicitacoes', ['user_id'])
    op.create_index('ix_solicitacoes_comarca_id', 'solicitacoes', ['comarca_id'])
    op.create_index('ix_solicitacoes_created_at', 'solicitacoes', ['created_at'])
    op.create_index('ix_solicitacoes_destino_status', 'solicitacoes', ['destino_atual', 'status'])

    op.create_table('itens_despesa',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('solicitacao_id', sa.Integer(), nullable=False),
        sa.Column('ordem', sa.Integer(), nullable=False),
        sa.Column('elemento', sa.String(length=20), nullable=False),
        sa.Column('descricao', sa.String(length=300), nullable=True),
        sa.Column('valor', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.ForeignKeyConstraint(['solicitacao_id'], ['solicitacoes.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_itens_despesa_id', 'itens_despesa', ['id'])
    op.create_index('ix_itens_despesa_solicitacao_id', 'itens_despesa', ['solicitacao_id'])

    op.create_table('historico_tramitacao',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('solicitacao_id', sa.Integer(), nullable=False),
        sa.Column('origem', sa.String(length=20), nullable=True),
        sa.Column('destino', sa.String(length=20), nullable=False),
        sa.Column('status_anterior', sa.String(length=40), nullable=True),
        sa.Column('status_novo', sa.String(length=40), nullable=False),
        sa.Column('evento', sa.String(length=30), nullable=True),
        sa.Column('observacao', sa.Text(), nullable=True),
        sa.Column('tramitado_por', sa.Integer(), nullable=False),
        sa.Column('data_tramitacao', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['solicitacao_id'], ['solicitacoes.id'], ),
        sa.ForeignKeyConstraint(['tramitado_por'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_historico_tramitacao_id', 'historico_tramitacao', ['id'])
    op.create_index('ix_historico_tramitacao_solicitacao_id', 'historico_tramitacao', ['solicitacao_id'])

    op.create_table('documentos',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('solicitacao_id', sa.Integer(), nullable=True),
        sa.Column('unidade_titular_id', sa.Integer(), nullable=True),
        sa.Column('tipo', sa.String(length=40), nullable=False),
        sa.Column('nome', sa.String(length=300), nullable=False),
        sa.Column('conteudo', sa.Text(), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('created_by', sa.Integer(), nullable=True),
        sa.Column('hash_conteudo', sa.String(length=64), nullable=True),
        sa.Column('assinatura', sa.String(length=64), nullable=True),
        sa.Column('codigo_validacao', sa.String(length=20), nullable=True),
        sa.Column('assinado_por', sa.Integer(), nullable=True),
        sa.Column('assinado_por_nome', sa.String(length=200), nullable=True),
        sa.Column('assinado_por_papel', sa.String(length=20), nullable=True),
        sa.Column('data_assinatura', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['solicitacao_id'], ['solicitacoes.id'], ),
        sa.ForeignKeyConstraint(['unidade_titular_id'], ['unidade_titulares.id'], ),
        sa.ForeignKeyConstraint(['created_by'], ['users.id'], ),
        sa.ForeignKeyConstraint(['assinado_por'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_documentos_id', 'documentos', ['id'])
    op.create_index('ix_documentos_solicitacao_id', 'documentos', ['solicitacao_id'])
    op.create_index('ix_documentos_tipo', 'documentos', ['tipo'])
    op.create_index('ix_documentos_codigo_validacao', 'documentos', ['codigo_validacao'], unique=True)

    op.create_table('system_notifications',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('papel', sa.String(length=20), nullable=True),
        sa.Column('tipo', sa.String(length=20), nullable=False),
        sa.Column('categoria', sa.String(length=20), nullable=False),
        sa.Column('titulo', sa.String(length=200), nullable=False),
        sa.Column('mensagem', sa.Text(), nullable=True),
        sa.Column('link', sa.String(length=300), nullable=True),
        sa.Column('metadata', sa.JSON(), nullable=True),
        sa.Column('lida', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_system_notifications_id', 'system_notifications', ['id'])
    op.create_index('ix_system_notifications_user_id', 'system_notifications', ['user_id'])
    op.create_index('ix_system_notifications_papel', 'system_notifications', ['papel'])
    op.create_index('ix_system_notifications_created_at', 'system_notifications', ['created_at'])

    op.create_table('sequencias_documentais',
        sa.Column('prefixo', sa.String(length=10), nullable=False),
        sa.Column('ano', sa.Integer(), nullable=False),
        sa.Column('ultimo', sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint('prefixo', 'ano')
    )

    op.create_table('importacoes_servidores',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('versao', sa.Integer(), nullable=False),
        sa.Column('arquivo', sa.String(length=300), nullable=True),
        sa.Column('executado_por', sa.Integer(), nullable=True),
        sa.Column('total_registros', sa.Integer(), nullable=True),
        sa.Column('inseridos', sa.Integer(), nullable=True),
        sa.Column('atualizados', sa.Integer(), nullable=True),
        sa.Column('ignorados', sa.Integer(), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('mesclados_criados', sa.Integer(), nullable=True),
        sa.Column('mesclados_atualizados', sa.Integer(), nullable=True),
        sa.Column('conflitos', sa.Integer(), nullable=True),
        sa.Column('erros', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('mesclado_em', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['executado_por'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('versao')
    )
    op.create_index('ix_importacoes_servidores_id', 'importacoes_servidores', ['id'])

    op.create_table('servidores_tj',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('matricula', sa.String(length=20), nullable=False),
        sa.Column('nome', sa.String(length=200), nullable=False),
        sa.Column('email', sa.String(length=100), nullable=True),
        sa.Column('cpf', sa.String(length=11), nullable=True),
        sa.Column('vinculo', sa.String(length=100), nullable=True),
        sa.Column('categoria', sa.String(length=20), nullable=False),
        sa.Column('cargo', sa.String(length=200), nullable=True),
        sa.Column('lotacao', sa.String(length=200), nullable=True),
        sa.Column('lotacao_cumulativa', sa.String(length=200), nullable=True),
        sa.Column('teletrabalho', sa.String(length=50), nullable=True),
        sa.Column('tipo_afastamento', sa.String(length=100), nullable=True),
        sa.Column('tipo_estagio', sa.String(length=100), nullable=True),
        sa.Column('curso', sa.String(length=200), nullable=True),
        sa.Column('grau', sa.String(length=5), nullable=False),
        sa.Column('ativo', sa.Boolean(), nullable=True),
        sa.Column('importacao_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['importacao_id'], ['importacoes_servidores.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_servidores_tj_id', 'servidores_tj', ['id'])
    op.create_index('ix_servidores_tj_matricula', 'servidores_tj', ['matricula'], unique=True)
    op.create_index('ix_servidores_tj_email', 'servidores_tj', ['email'])
    op.create_index('ix_servidores_tj_importacao_id', 'servidores_tj', ['importacao_id'])


def downgrade() -> None:
    """Remove as tabelas na ordem inversa das dependências."""
    op.drop_table('servidores_tj')
    op.drop_table('importacoes_servidores')
    op.drop_table('sequencias_documentais')
    op.drop_table('system_notifications')
    op.drop_table('documentos')
    op.drop_table('historico_tramitacao')
    op.drop_table('itens_despesa')
    op.drop_table('solicitacoes')
    op.drop_table('lotes_concessao')
    op.drop_table('historico_titulares')
    op.drop_table('unidade_titulares')
    op.drop_table('comarcas')
    op.drop_table('users')
