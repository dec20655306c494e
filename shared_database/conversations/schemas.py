from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from shared_database.brands.registry import BrandId
from shared_database.customers.schemas import CustomerSummary, Metadata, Phone
from shared_database.enums import ConversationStatus, MessageDirection, MessageStatus


class Message(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    conversation_id: UUID

    direction: MessageDirection
    content: str
    media_urls: list[str] | None = None

    status: MessageStatus | None = None
    external_id: str | None = None

    metadata: Metadata = None

    sent_at: datetime
    delivered_at: datetime | None = None
    created_at: datetime


class MessageCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    conversation_id: UUID
    direction: MessageDirection
    content: str
    media_urls: list[str] | None = None
    status: MessageStatus | None = None
    external_id: str | None = Field(default=None, max_length=255)
    metadata: Metadata = None
    sent_at: datetime | None = None
    delivered_at: datetime | None = None

    @model_validator(mode="after")
    def validate_status_direction(self) -> "MessageCreate":
        if self.status is not None and self.direction != MessageDirection.OUTBOUND:
            raise ValueError("delivery status is only tracked for outbound messages")
        return self


class Conversation(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    brand_id: BrandId
    customer_id: UUID

    customer_phone: str
    brand_phone: str

    status: ConversationStatus

    campaign_id: UUID | None = None
    campaign_name: str | None = None

    message_count: int = 0
    last_message_at: datetime | None = None
    last_inbound_at: datetime | None = None
    last_outbound_at: datetime | None = None

    opted_out_at: datetime | None = None
    opt_out_reason: str | None = None

    metadata: Metadata = None
    tags: list[str] | None = None

    created_at: datetime
    updated_at: datetime


class ConversationCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    customer_id: UUID
    customer_phone: Phone
    brand_phone: Phone
    campaign_id: UUID | None = None
    campaign_name: str | None = Field(default=None, max_length=255)
    metadata: Metadata = None
    tags: list[str] | None = None


class CampaignLink(BaseModel):
    campaign_id: UUID | None = None
    campaign_name: str | None = Field(default=None, max_length=255)


class ConversationWithCustomer(Conversation):
    customer: CustomerSummary


class TimeRange(BaseModel):
    start: datetime
    end: datetime

    @model_validator(mode="after")
    def validate_order(self) -> "TimeRange":
        if self.end < self.start:
            raise ValueError("end must not be before start")
        return self


class ConversationAnalytics(BaseModel):
    total: int = 0
    active: int = 0
    opted_out: int = 0
    by_status: dict[ConversationStatus, int] = Field(default_factory=dict)
    total_messages: int = 0
    avg_messages_per_conversation: float = 0.0

