"""SQLAlchemy Core table definition for the document store.

One table holds every collection: a document is addressed by (collection,
doc_id) and its body is a JSON column (JSONB on PostgreSQL). This is NOT an
ORM — just typed column references that catch typos at import time instead
of at query execution.
"""

from sqlalchemy import JSON, Column, DateTime, MetaData, PrimaryKeyConstraint, Table, Text, func
from sqlalchemy.dialects.postgresql import JSONB

metadata = MetaData()

documents = Table(
    "documents",
    metadata,
    Column("collection", Text, nullable=False),
    Column("doc_id", Text, nullable=False),
    Column("data", JSON().with_variant(JSONB(), "postgresql"), nullable=False),
    Column("updated_at", DateTime(timezone=True), server_default=func.now(), onupdate=func.now()),
    PrimaryKeyConstraint("collection", "doc_id", name="documents_pkey"),
)
