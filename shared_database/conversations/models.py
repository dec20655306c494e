from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shared_database.brands.registry import BrandId
from shared_database.core.database import Base, utcnow
from shared_database.core.types import JsonDocument, TextList, pg_enum
from shared_database.customers.models import Customer
from shared_database.enums import ConversationStatus, MessageDirection, MessageStatus


class Conversation(Base):
    __tablename__ = "conversations"

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    brand_id: Mapped[BrandId] = mapped_column(pg_enum(BrandId, "brand_id"), nullable=False)
    customer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("customers.id", ondelete="CASCADE"),
        nullable=False,
    )

    customer_phone: Mapped[str] = mapped_column(String(20), nullable=False)
    brand_phone: Mapped[str] = mapped_column(String(20), nullable=False)

    status: Mapped[ConversationStatus] = mapped_column(
        pg_enum(ConversationStatus, "conversation_status"),
        nullable=False,
        default=ConversationStatus.ACTIVE,
        server_default=ConversationStatus.ACTIVE.value,
    )

    campaign_id: Mapped[uuid.UUID | None] = mapped_column(Uuid(as_uuid=True), nullable=True)
    campaign_name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    message_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    last_message_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    last_inbound_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    last_outbound_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    opted_out_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    opt_out_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    metadata_: Mapped[dict[str, Any] | None] = mapped_column("metadata", JsonDocument, nullable=True)
    tags: Mapped[list[str] | None] = mapped_column(TextList, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )

    customer: Mapped[Customer] = relationship("Customer", back_populates="conversations")
    messages: Mapped[list[Message]] = relationship(
        "Message",
        back_populates="conversation",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        UniqueConstraint("brand_id", "customer_phone", "brand_phone", name="conversations_brand_phones_unique"),
        Index("idx_conversations_brand_id", "brand_id"),
        Index("idx_conversations_customer_id", "customer_id"),
        Index("idx_conversations_status", "brand_id", "status"),
        Index("idx_conversations_phones", "customer_phone", "brand_phone"),
        Index("idx_conversations_campaign", "campaign_id"),
    )


class Message(Base):
    __tablename__ = "messages"

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    conversation_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("conversations.id", ondelete="CASCADE"),
        nullable=False,
    )

    direction: Mapped[MessageDirection] = mapped_column(pg_enum(MessageDirection, "message_direction"), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    media_urls: Mapped[list[str] | None] = mapped_column(TextList, nullable=True)

    status: Mapped[MessageStatus | None] = mapped_column(pg_enum(MessageStatus, "message_status"), nullable=True)
    external_id: Mapped[str | None] = mapped_column(String(255), nullable=True)

    metadata_: Mapped[dict[str, Any] | None] = mapped_column("metadata", JsonDocument, nullable=True)

    sent_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    delivered_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    conversation: Mapped[Conversation] = relationship("Conversation", back_populates="messages")

    __table_args__ = (
        Index("idx_messages_conversation_id", "conversation_id"),
        Index("idx_messages_direction", "direction"),
        Index("idx_messages_status", "status"),
        Index("idx_messages_external_id", "external_id"),
    )
