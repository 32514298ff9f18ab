"""Profile model definition using SQLAlchemy Core."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Table, Text, Uuid, text

from mediconnect.models.base import metadata

# One row per identity, filled in gradually by its owner
profiles = Table(
    "profiles",
    metadata,
    Column(
        "user_id",
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column("full_name", Text),
    Column("age", Integer),
    Column("gender", String(20)),
    Column("phone", String(20)),
    Column("avatar_url", Text),
    Column(
        "created_at", DateTime(timezone=True), nullable=False, server_default=text("CURRENT_TIMESTAMP")
    ),
    Column(
        "updated_at", DateTime(timezone=True), nullable=False, server_default=text("CURRENT_TIMESTAMP")
    ),
)
