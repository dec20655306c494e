from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from shared_database.conversations.helpers import (
    can_send_message,
    get_conversation_display_name,
    get_last_message_direction,
    is_opted_out,
)
from shared_database.conversations.schemas import (
    CampaignLink,
    Conversation,
    ConversationCreate,
    Message,
    MessageCreate,
    TimeRange,
)
from shared_database.customers.helpers import (
    get_customer_display_name,
    get_customer_journey_duration,
    is_paid_customer,
    is_trial_customer,
)
from shared_database.customers.schemas import Customer, CustomerCreate, CustomerUpdate
from shared_database.enums import ConversationStatus, CustomerStage, MessageDirection

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def _customer(**overrides) -> Customer:
    data = {
        "id": uuid.uuid4(),
        "brand_id": "gnymble",
        "email": "pat@example.com",
        "stage": "lead",
        "source": "website",
        "created_at": NOW,
        "updated_at": NOW,
    }
    data.update(overrides)
    return Customer.model_validate(data)


def _conversation(**overrides) -> Conversation:
    data = {
        "id": uuid.uuid4(),
        "brand_id": "percytext",
        "customer_id": uuid.uuid4(),
        "customer_phone": "+15551234567",
        "brand_phone": "+15557654321",
        "status": "active",
        "created_at": NOW,
        "updated_at": NOW,
    }
    data.update(overrides)
    return Conversation.model_validate(data)


def test_customer_create_requires_email() -> None:
    with pytest.raises(ValidationError):
        CustomerCreate.model_validate({"first_name": "Pat"})


def test_customer_create_limits() -> None:
    with pytest.raises(ValidationError):
        CustomerCreate.model_validate({"email": "pat@example.com", "phone": "1" * 21})
    with pytest.raises(ValidationError):
        CustomerCreate.model_validate({"email": "pat@example.com", "stage": "vip"})


def test_customer_update_tracks_only_supplied_fields() -> None:
    update = CustomerUpdate.model_validate({"first_name": "Pat", "phone": None})

    assert update.model_dump(exclude_unset=True) == {"first_name": "Pat", "phone": None}


def test_metadata_accepts_either_key() -> None:
    assert CustomerCreate.model_validate({"email": "a@example.com", "metadata": {"a": 1}}).metadata == {"a": 1}
    assert _customer(metadata_={"b": 2}).metadata == {"b": 2}


def test_outbound_only_delivery_status() -> None:
    conversation_id = uuid.uuid4()

    outbound = MessageCreate.model_validate(
        {"conversation_id": conversation_id, "direction": "outbound", "content": "hi", "status": "pending"}
    )
    assert outbound.direction is MessageDirection.OUTBOUND

    with pytest.raises(ValidationError):
        MessageCreate.model_validate(
            {"conversation_id": conversation_id, "direction": "inbound", "content": "hi", "status": "pending"}
        )


def test_message_create_requires_content() -> None:
    with pytest.raises(ValidationError):
        MessageCreate.model_validate({"conversation_id": uuid.uuid4(), "direction": "inbound"})


def test_campaign_link_defaults() -> None:
    assert CampaignLink().model_dump(exclude_none=True) == {}


def test_time_range_order() -> None:
    assert TimeRange(start=NOW, end=NOW).end == NOW
    with pytest.raises(ValidationError):
        TimeRange(start=NOW, end=NOW - timedelta(seconds=1))


@pytest.mark.parametrize(
    ("first_name", "last_name", "expected"),
    [
        ("Pat", "Smith", "Pat Smith"),
        ("Pat", None, "Pat"),
        (None, "Smith", "pat@example.com"),
        (None, None, "pat@example.com"),
    ],
)
def test_customer_display_name(first_name: str | None, last_name: str | None, expected: str) -> None:
    assert get_customer_display_name(_customer(first_name=first_name, last_name=last_name)) == expected


def test_trial_and_paid_checks() -> None:
    assert is_trial_customer(_customer(stage="trial", trial_started_at=NOW))
    assert not is_trial_customer(_customer(stage="trial"))
    assert is_paid_customer(_customer(stage="active", subscribed_at=NOW))
    assert not is_paid_customer(_customer(stage="churned", subscribed_at=NOW))


def test_journey_duration() -> None:
    assert get_customer_journey_duration(_customer()) is None
    customer = _customer(stage=CustomerStage.ACTIVE, subscribed_at=NOW + timedelta(days=12, hours=5))
    assert get_customer_journey_duration(customer) == 12


def test_conversation_send_checks() -> None:
    assert can_send_message(_conversation())
    assert not can_send_message(_conversation(status=ConversationStatus.PAUSED))

    opted_out = _conversation(opted_out_at=NOW)
    assert is_opted_out(opted_out)
    assert not can_send_message(opted_out)


def test_conversation_display_name() -> None:
    assert get_conversation_display_name(_conversation(campaign_name="Launch")) == "Launch"
    assert get_conversation_display_name(_conversation()) == "SMS - +15551234567"


def test_last_message_direction() -> None:
    assert get_last_message_direction(_conversation()) is None
    assert get_last_message_direction(_conversation(last_inbound_at=NOW)) is MessageDirection.INBOUND
    assert get_last_message_direction(_conversation(last_outbound_at=NOW)) is MessageDirection.OUTBOUND
    both = _conversation(last_inbound_at=NOW, last_outbound_at=NOW + timedelta(minutes=1))
    assert get_last_message_direction(both) is MessageDirection.OUTBOUND


@pytest.mark.parametrize(
    ("subset", "entity"),
    [
        (CustomerCreate, Customer),
        (CustomerUpdate, Customer),
        (ConversationCreate, Conversation),
        (MessageCreate, Message),
    ],
)
def test_input_models_project_entity_fields(subset: type, entity: type) -> None:
    assert set(subset.model_fields) <= set(entity.model_fields)
