"""initial_schema

Revision ID: 3b9e2c51d7a4
Revises: 
Create Date: 2026-10-19 09:12:03.518204

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '3b9e2c51d7a4'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # gen_random_uuid()
    op.execute("CREATE EXTENSION IF NOT EXISTS pgcrypto")

    op.create_table('api_keys',
        sa.Column('token_hash', sa.LargeBinary(), nullable=False),
        sa.Column('user_id', sa.Text(), nullable=False),
        sa.Column('role', sa.Text(), nullable=False, server_default='user'),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.Column('last_used', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.CheckConstraint("role IN ('admin', 'user')", name='api_keys_role_check'),
        sa.PrimaryKeyConstraint('token_hash')
    )

    op.create_table('records',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False, server_default=sa.text('gen_random_uuid()')),
        sa.Column('collection', sa.Text(), nullable=False),
        sa.Column('owner_id', sa.Text(), nullable=False),
        sa.Column('body', postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.PrimaryKeyConstraint('id')
    )

    # Default listing order: newest first, id as tie-breaker
    op.create_index(
        'records_coll_created_desc',
        'records',
        ['collection', 'created_at', 'id'],
        unique=False,
        postgresql_ops={'created_at': 'DESC', 'id': 'DESC'}
    )

    op.create_index(
        'records_coll_owner',
        'records',
        ['collection', 'owner_id'],
        unique=False
    )

    op.create_index(
        'records_body_gin',
        'records',
        ['body'],
        unique=False,
        postgresql_using='gin'
    )


def downgrade() -> None:
    op.drop_index('records_body_gin', table_name='records')
    op.drop_index('records_coll_owner', table_name='records')
    op.drop_index('records_coll_created_desc', table_name='records')

    op.drop_table('records')
    op.drop_table('api_keys')
