"""SQLAlchemy ORM models for the host application's PostgreSQL schema.

The schema is owned by the host application; this module maps only what the
todo tools read and write.  Todos are rows of the generic ``block`` table with
``type = 'todo'`` and a JSONB ``content`` holding description, completion,
priority and optional due date / project.

Uses SQLAlchemy 2.0 declarative style with ``Mapped`` type annotations.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, Enum, ForeignKey, Index, UniqueConstraint, func, text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from toolhub.mcp_server.models.enums import BlockType

# Timezone-aware timestamp type for all datetime columns.
TimestampTZ = DateTime(timezone=True)

BlockTypeEnum = Enum(
    BlockType,
    name="block_type",
    values_callable=lambda enum: [member.value for member in enum],
)


class Base(DeclarativeBase):
    pass


class Block(Base):
    __tablename__ = "block"
    __table_args__ = (
        Index("block_parent_idx", "parent_id"),
        Index("block_type_idx", "type"),
        Index("block_user_idx", "user_id"),
        Index("block_parent_position_idx", "parent_id", "position"),
        UniqueConstraint("parent_id", "position", name="block_parent_position_unique"),
        CheckConstraint("position > 0", name="block_position_positive"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, server_default=text("gen_random_uuid()"))
    user_id: Mapped[str]
    parent_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("block.id", name="block_parent_id_block_id_fk", ondelete="SET NULL"),
    )
    type: Mapped[BlockType] = mapped_column(BlockTypeEnum)
    title: Mapped[str | None]
    content: Mapped[dict] = mapped_column(JSONB, server_default="{}")
    layout_data: Mapped[dict] = mapped_column(JSONB, server_default="{}")
    archived: Mapped[bool] = mapped_column(default=False, server_default="false")
    tags: Mapped[list] = mapped_column(JSONB, server_default="[]")
    position: Mapped[int] = mapped_column(server_default="1024")
    has_children: Mapped[bool] = mapped_column(default=False, server_default="false")
    created_at: Mapped[datetime] = mapped_column(TimestampTZ, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(TimestampTZ, server_default=func.now(), onupdate=func.now())
    deleted_at: Mapped[datetime | None] = mapped_column(TimestampTZ)
