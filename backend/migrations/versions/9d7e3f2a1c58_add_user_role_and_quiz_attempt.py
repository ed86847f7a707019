"""add role to user; add quiz_attempt

Revision ID: 9d7e3f2a1c58
Revises: 4c2a91d7e0b3
Create Date: 2026-09-28 16:40:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '9d7e3f2a1c58'
down_revision = '4c2a91d7e0b3'
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    existing_tables = set(insp.get_table_names())

    user_cols = {c['name'] for c in insp.get_columns('user')}
    if 'role' not in user_cols:
        with op.batch_alter_table('user') as batch_op:
            batch_op.add_column(sa.Column('role', sa.String(length=16), nullable=True))
        op.execute("UPDATE \"user\" SET role = 'player' WHERE role IS NULL")
        with op.batch_alter_table('user') as batch_op:
            batch_op.alter_column('role', existing_type=sa.String(length=16), nullable=False)

    if 'quiz_attempt' not in existing_tables:
        op.create_table(
            'quiz_attempt',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('user_id', sa.Integer(), nullable=False),
            sa.Column('quiz_id', sa.Integer(), nullable=False),
            sa.Column('score', sa.Integer(), nullable=False),
            sa.Column('mode', sa.String(length=16), nullable=False),
            sa.Column('attempted_at', sa.DateTime(), nullable=False),
            sa.ForeignKeyConstraint(['quiz_id'], ['quiz.id']),
            sa.ForeignKeyConstraint(['user_id'], ['user.id']),
            sa.PrimaryKeyConstraint('id'),
        )
        op.create_index(op.f('ix_quiz_attempt_user_id'), 'quiz_attempt', ['user_id'], unique=False)
        op.create_index(op.f('ix_quiz_attempt_quiz_id'), 'quiz_attempt', ['quiz_id'], unique=False)


def downgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)

    if 'quiz_attempt' in set(insp.get_table_names()):
        op.drop_index(op.f('ix_quiz_attempt_quiz_id'), table_name='quiz_attempt')
        op.drop_index(op.f('ix_quiz_attempt_user_id'), table_name='quiz_attempt')
        op.drop_table('quiz_attempt')

    user_cols = {c['name'] for c in insp.get_columns('user')}
    if 'role' in user_cols:
        with op.batch_alter_table('user') as batch_op:
            batch_op.drop_column('role')
