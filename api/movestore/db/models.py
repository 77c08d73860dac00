"""SQLAlchemy models for the Move Store schema.

The API itself talks to PostgreSQL through asyncpg; these declarations exist
so Alembic can describe and migrate the schema.
"""

from sqlalchemy import Column, Text, DateTime, LargeBinary, Index, CheckConstraint, text
from sqlalchemy.dialects.postgresql import UUID, JSONB
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

from ..config import get_settings


Base = declarative_base()


class APIKey(Base):
    """API keys; each key acts for one user with one role."""
    __tablename__ = 'api_keys'

    token_hash = Column(LargeBinary, primary_key=True)
    user_id = Column(Text, nullable=False)
    role = Column(Text, nullable=False, server_default='user')
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    last_used = Column(DateTime(timezone=True))

    __table_args__ = (
        CheckConstraint("role IN ('admin', 'user')", name='api_keys_role_check'),
    )


class Record(Base):
    """JSON documents of every resource, told apart by ``collection``."""
    __tablename__ = 'records'

    id = Column(UUID(as_uuid=True), primary_key=True, server_default=text('gen_random_uuid()'))
    collection = Column(Text, nullable=False)
    owner_id = Column(Text, nullable=False)
    body = Column(JSONB, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        Index('records_coll_created_desc', 'collection', 'created_at', 'id',
              postgresql_ops={'created_at': 'DESC', 'id': 'DESC'}),
        Index('records_coll_owner', 'collection', 'owner_id'),
        Index('records_body_gin', 'body', postgresql_using='gin'),
    )


def get_database_url() -> str:
    """Database URL used by Alembic."""
    return get_settings().database_url
