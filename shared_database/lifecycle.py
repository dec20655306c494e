from __future__ import annotations

from collections.abc import Mapping
from enum import StrEnum
from typing import Generic, TypeVar

from shared_database.core.config import get_settings
from shared_database.core.errors import InvalidTransitionError
from shared_database.enums import ConversationStatus, CustomerStage
from shared_database.metrics import observe_transition_rejected


StateT = TypeVar("StateT", bound=StrEnum)


class StateMachine(Generic[StateT]):
    """Allowed-transition table for one lifecycle field.

    Re-setting the current state is always allowed.
    """

    def __init__(self, entity: str, transitions: Mapping[StateT, frozenset[StateT]]) -> None:
        self.entity = entity
        self._transitions = dict(transitions)

    def allowed_targets(self, current: StateT) -> frozenset[StateT]:
        return self._transitions.get(current, frozenset())

    def can_transition(self, current: StateT, target: StateT) -> bool:
        return current == target or target in self.allowed_targets(current)

    def ensure_transition(self, current: StateT, target: StateT, *, enforce: bool | None = None) -> None:
        if enforce is None:
            enforce = get_settings().enforce_state_transitions
        if not enforce or self.can_transition(current, target):
            return
        observe_transition_rejected(self.entity, str(current), str(target))
        raise InvalidTransitionError(self.entity, str(current), str(target))


_Stage = CustomerStage
_Status = ConversationStatus

CUSTOMER_STAGE_MACHINE: StateMachine[CustomerStage] = StateMachine(
    "customer",
    {
        _Stage.LEAD: frozenset({_Stage.MARKETING, _Stage.TRIAL, _Stage.ACTIVE, _Stage.CHURNED, _Stage.DORMANT}),
        _Stage.MARKETING: frozenset({_Stage.TRIAL, _Stage.ACTIVE, _Stage.CHURNED, _Stage.DORMANT}),
        _Stage.TRIAL: frozenset({_Stage.ACTIVE, _Stage.CHURNED, _Stage.DORMANT}),
        _Stage.ACTIVE: frozenset({_Stage.CHURNED, _Stage.DORMANT}),
        # win-back: churned customers re-enter the funnel
        _Stage.CHURNED: frozenset({_Stage.LEAD, _Stage.MARKETING, _Stage.TRIAL, _Stage.ACTIVE}),
        _Stage.DORMANT: frozenset({_Stage.LEAD, _Stage.MARKETING, _Stage.TRIAL, _Stage.ACTIVE, _Stage.CHURNED}),
    },
)

CONVERSATION_STATUS_MACHINE: StateMachine[ConversationStatus] = StateMachine(
    "conversation",
    {
        _Status.ACTIVE: frozenset({_Status.PAUSED, _Status.COMPLETED, _Status.ARCHIVED}),
        _Status.PAUSED: frozenset({_Status.ACTIVE, _Status.ARCHIVED}),
        _Status.COMPLETED: frozenset({_Status.ARCHIVED}),
        _Status.ARCHIVED: frozenset(),
    },
)
