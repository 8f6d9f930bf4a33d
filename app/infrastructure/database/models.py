# app/infrastructure/database/models.py

from sqlalchemy import JSON, Column, DateTime, Integer, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import func

from app.infrastructure.database.session import Base

DocumentBody = JSON().with_variant(JSONB(), "postgresql")


class StoredDocument(Base):
    """
    One row per document. `version` starts at 1 and is bumped on every update;
    transactional writes compare-and-set on it.
    """

    __tablename__ = "documents"

    collection = Column(String, primary_key=True)
    doc_id = Column(String, primary_key=True)

    tenant_id = Column(String, nullable=True, index=True)
    body = Column(DocumentBody, nullable=False)
    version = Column(Integer, nullable=False, default=1)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
