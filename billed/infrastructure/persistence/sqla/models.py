from __future__ import annotations

from sqlalchemy import (
    Column,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
)

metadata = MetaData()

users = Table(
    "users",
    metadata,
    Column("email", String, primary_key=True),
    Column("role", String, nullable=False),
    Column("created_at", String),
)

bills = Table(
    "bills",
    metadata,
    Column("id", String, primary_key=True),
    Column("email", String, nullable=False),
    Column("name", String, nullable=False, default=""),
    Column("type", String, nullable=False, default=""),
    Column("commentary", Text, nullable=False, default=""),
    Column("date", String, nullable=False, default=""),
    Column("amount", Integer, nullable=False, default=0),
    Column("vat", String, nullable=False, default=""),
    Column("pct", Integer, nullable=False, default=20),
    Column("status", String, nullable=False, default="pending"),
    Column("comment_admin", Text, nullable=False, default=""),
    Column("file_name", String, nullable=False),
    Column("file_path", String, nullable=False),
    Column("created_at", String),
    Column("updated_at", String),
)

Index("idx_bills_email", bills.c.email)
