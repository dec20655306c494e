from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any
from uuid import UUID

from pydantic import AliasChoices, BaseModel, ConfigDict, EmailStr, Field, TypeAdapter, ValidationError, field_validator

from shared_database.brands.registry import BrandId
from shared_database.enums import CustomerSource, CustomerStage


Phone = Annotated[str, Field(min_length=1, max_length=20)]
PersonName = Annotated[str, Field(max_length=100)]
Metadata = Annotated[dict[str, Any] | None, Field(validation_alias=AliasChoices("metadata_", "metadata"))]

_EMAIL_ADAPTER = TypeAdapter(EmailStr)


def normalize_email(value: str) -> str:
    """Canonical form stored for ``value``; the domain part is lowercased.

    Raises ``ValidationError`` when ``value`` is not an email address.
    """

    return _EMAIL_ADAPTER.validate_python(value)


def lookup_email(value: str) -> str:
    """Like ``normalize_email`` but returns malformed input unchanged; it can match no stored row."""

    try:
        return normalize_email(value)
    except ValidationError:
        return value


class Customer(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    brand_id: BrandId

    email: EmailStr
    phone: Phone | None = None
    first_name: PersonName | None = None
    last_name: PersonName | None = None

    stage: CustomerStage
    source: CustomerSource
    is_active: bool = True

    marketing_qualified_at: datetime | None = None
    trial_started_at: datetime | None = None
    subscribed_at: datetime | None = None
    churned_at: datetime | None = None

    metadata: Metadata = None
    tags: list[str] | None = None

    created_at: datetime
    updated_at: datetime
    created_by: UUID | None = None


class CustomerCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    email: EmailStr
    phone: Phone | None = None
    first_name: PersonName | None = None
    last_name: PersonName | None = None
    stage: CustomerStage | None = None
    source: CustomerSource | None = None
    metadata: Metadata = None
    tags: list[str] | None = None


class CustomerUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    email: EmailStr | None = None
    phone: Phone | None = None
    first_name: PersonName | None = None
    last_name: PersonName | None = None
    stage: CustomerStage | None = None
    is_active: bool | None = None
    marketing_qualified_at: datetime | None = None
    trial_started_at: datetime | None = None
    subscribed_at: datetime | None = None
    churned_at: datetime | None = None
    metadata: Metadata = None
    tags: list[str] | None = None

    @field_validator("email", "stage", "is_active", mode="before")
    @classmethod
    def reject_null(cls, value: Any) -> Any:
        if value is None:
            raise ValueError("field may be omitted but not set to null")
        return value


class CustomerSummary(BaseModel):
    """Customer fields embedded in joined conversation reads."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str
    first_name: str | None = None
    last_name: str | None = None
    stage: CustomerStage
    source: CustomerSource


class CustomerAnalytics(BaseModel):
    total: int = 0
    by_stage: dict[CustomerStage, int] = Field(default_factory=dict)
    by_source: dict[CustomerSource, int] = Field(default_factory=dict)
    conversion_rate: float = 0.0
    avg_days_to_subscription: float | None = None
