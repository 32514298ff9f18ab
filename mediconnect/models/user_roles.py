"""Role record model definition using SQLAlchemy Core."""

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Table, Text, Uuid, text

from mediconnect.models.base import metadata

# A missing row is valid: the identity resolves to patient
user_roles = Table(
    "user_roles",
    metadata,
    Column(
        "user_id",
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column("role", Text, nullable=False),
    Column(
        "created_at", DateTime(timezone=True), nullable=False, server_default=text("CURRENT_TIMESTAMP")
    ),
    CheckConstraint("role IN ('doctor', 'patient', 'admin')", name="user_roles_role_check"),
)
