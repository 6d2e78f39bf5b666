"""
CallDash - Database Models
SQLAlchemy ORM models owned by this service
"""

from uuid import uuid4

from sqlalchemy import Column, DateTime, Index, String, func
from sqlalchemy.dialects.postgresql import UUID as PGUUID
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class UserDB(Base):
    """Registered account; email is stored lower-cased"""

    __tablename__ = "users"

    id = Column(PGUUID(as_uuid=True), primary_key=True, default=uuid4)
    email = Column(String(320), nullable=False)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    password_hash = Column(String(255), nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    # Sole arbiter of email uniqueness, including concurrent signups
    __table_args__ = (Index("uq_users_email", "email", unique=True),)


async def create_schema(engine) -> None:
    """Create tables owned by this service if they do not exist"""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
