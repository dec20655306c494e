from __future__ import annotations

from collections.abc import Generator

import pytest
from prometheus_client import REGISTRY

from shared_database.core.config import get_settings
from shared_database.core.errors import InvalidTransitionError
from shared_database.enums import ConversationStatus, CustomerStage
from shared_database.lifecycle import CONVERSATION_STATUS_MACHINE, CUSTOMER_STAGE_MACHINE


@pytest.fixture(autouse=True)
def setup_env(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    monkeypatch.delenv("ENFORCE_STATE_TRANSITIONS", raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.mark.parametrize(
    ("current", "target"),
    [
        (CustomerStage.LEAD, CustomerStage.MARKETING),
        (CustomerStage.LEAD, CustomerStage.ACTIVE),
        (CustomerStage.MARKETING, CustomerStage.TRIAL),
        (CustomerStage.TRIAL, CustomerStage.ACTIVE),
        (CustomerStage.ACTIVE, CustomerStage.CHURNED),
        (CustomerStage.CHURNED, CustomerStage.LEAD),
        (CustomerStage.DORMANT, CustomerStage.ACTIVE),
    ],
)
def test_customer_transitions_allowed(current: CustomerStage, target: CustomerStage) -> None:
    assert CUSTOMER_STAGE_MACHINE.can_transition(current, target)


@pytest.mark.parametrize(
    ("current", "target"),
    [
        (CustomerStage.TRIAL, CustomerStage.LEAD),
        (CustomerStage.TRIAL, CustomerStage.MARKETING),
        (CustomerStage.ACTIVE, CustomerStage.TRIAL),
        (CustomerStage.ACTIVE, CustomerStage.LEAD),
        (CustomerStage.CHURNED, CustomerStage.DORMANT),
    ],
)
def test_customer_transitions_rejected(current: CustomerStage, target: CustomerStage) -> None:
    assert not CUSTOMER_STAGE_MACHINE.can_transition(current, target)


def test_same_state_always_allowed() -> None:
    for stage in CustomerStage:
        assert CUSTOMER_STAGE_MACHINE.can_transition(stage, stage)
    for status in ConversationStatus:
        assert CONVERSATION_STATUS_MACHINE.can_transition(status, status)


def test_every_state_has_a_table_entry() -> None:
    for stage in CustomerStage:
        assert CUSTOMER_STAGE_MACHINE.allowed_targets(stage)
    assert CONVERSATION_STATUS_MACHINE.allowed_targets(ConversationStatus.ARCHIVED) == frozenset()


def test_archived_is_terminal() -> None:
    for status in ConversationStatus:
        if status is not ConversationStatus.ARCHIVED:
            assert not CONVERSATION_STATUS_MACHINE.can_transition(ConversationStatus.ARCHIVED, status)
            assert CONVERSATION_STATUS_MACHINE.can_transition(status, ConversationStatus.ARCHIVED)


def test_ensure_transition_raises_and_counts() -> None:
    labels = {"entity": "conversation", "current": "completed", "target": "active"}
    before = REGISTRY.get_sample_value("shared_db_state_transition_rejections_total", labels) or 0.0

    with pytest.raises(InvalidTransitionError) as exc_info:
        CONVERSATION_STATUS_MACHINE.ensure_transition(ConversationStatus.COMPLETED, ConversationStatus.ACTIVE)

    assert str(exc_info.value) == "Invalid conversation transition: completed -> active"
    after = REGISTRY.get_sample_value("shared_db_state_transition_rejections_total", labels)
    assert after == before + 1


def test_enforcement_can_be_switched_off(monkeypatch: pytest.MonkeyPatch) -> None:
    CUSTOMER_STAGE_MACHINE.ensure_transition(CustomerStage.ACTIVE, CustomerStage.LEAD, enforce=False)

    monkeypatch.setenv("ENFORCE_STATE_TRANSITIONS", "false")
    get_settings.cache_clear()

    CUSTOMER_STAGE_MACHINE.ensure_transition(CustomerStage.ACTIVE, CustomerStage.LEAD)
