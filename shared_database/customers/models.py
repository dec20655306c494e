from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import Boolean, DateTime, Index, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shared_database.brands.registry import BrandId
from shared_database.core.database import Base, utcnow
from shared_database.core.types import JsonDocument, TextList, pg_enum
from shared_database.enums import CustomerSource, CustomerStage

if TYPE_CHECKING:
    from shared_database.conversations.models import Conversation


class Customer(Base):
    __tablename__ = "customers"

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    brand_id: Mapped[BrandId] = mapped_column(pg_enum(BrandId, "brand_id"), nullable=False)

    email: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(20), nullable=True)
    first_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    last_name: Mapped[str | None] = mapped_column(String(100), nullable=True)

    stage: Mapped[CustomerStage] = mapped_column(
        pg_enum(CustomerStage, "customer_stage"),
        nullable=False,
        default=CustomerStage.LEAD,
        server_default=CustomerStage.LEAD.value,
    )
    source: Mapped[CustomerSource] = mapped_column(
        pg_enum(CustomerSource, "customer_source"),
        nullable=False,
        default=CustomerSource.WEBSITE,
        server_default=CustomerSource.WEBSITE.value,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")

    marketing_qualified_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    trial_started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    subscribed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    churned_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # "metadata" is reserved on declarative classes.
    metadata_: Mapped[dict[str, Any] | None] = mapped_column("metadata", JsonDocument, nullable=True)
    tags: Mapped[list[str] | None] = mapped_column(TextList, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )
    created_by: Mapped[uuid.UUID | None] = mapped_column(Uuid(as_uuid=True), nullable=True)

    conversations: Mapped[list[Conversation]] = relationship(
        "Conversation",
        back_populates="customer",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        UniqueConstraint("brand_id", "email", name="customers_brand_email_unique"),
        # Deferrable on Postgres; see the initial migration.
        UniqueConstraint("brand_id", "phone", name="customers_brand_phone_unique"),
        Index("idx_customers_brand_id", "brand_id"),
        Index("idx_customers_email", "email"),
        Index("idx_customers_phone", "phone"),
        Index("idx_customers_stage", "brand_id", "stage"),
        Index("idx_customers_source", "brand_id", "source"),
        Index("idx_customers_created_at", "created_at"),
    )
