from __future__ import annotations

import uuid
from collections import Counter
from typing import Any

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from shared_database.conversations.models import Conversation as ConversationRow
from shared_database.conversations.models import Message as MessageRow
from shared_database.conversations.schemas import (
    CampaignLink,
    Conversation,
    ConversationAnalytics,
    ConversationCreate,
    ConversationWithCustomer,
    Message,
    MessageCreate,
    TimeRange,
)
from shared_database.core.database import utcnow
from shared_database.core.errors import ConstraintViolationError, RecordNotFoundError
from shared_database.customers.models import Customer as CustomerRow
from shared_database.customers.schemas import CustomerSummary
from shared_database.enums import ConversationStatus, MessageDirection
from shared_database.lifecycle import CONVERSATION_STATUS_MACHINE
from shared_database.metrics import observe_find_or_create_conflict
from shared_database.platform.security.repository import BaseRepository, contains_pattern


class ConversationOperations(BaseRepository):
    resource = "conversation"

    def create(self, data: ConversationCreate | dict[str, Any]) -> Conversation:
        dto = ConversationCreate.model_validate(data)
        now = utcnow()
        columns = self._to_columns(dto.model_dump(exclude_unset=True))
        columns.update(
            brand_id=self.context.brand_id,
            status=ConversationStatus.ACTIVE,
            message_count=0,
            created_at=now,
            updated_at=now,
        )

        with self.operation("create") as session:
            owner = session.execute(
                self.db.customers.with_only_columns(CustomerRow.id).where(CustomerRow.id == dto.customer_id)
            ).scalar_one_or_none()
            if owner is None:
                raise RecordNotFoundError("Customer", dto.customer_id)

            row = ConversationRow(**columns)
            session.add(row)
            session.flush()
            conversation = Conversation.model_validate(row)

        self._log_mutation("created", conversation.id)
        return conversation

    def get_by_id(self, conversation_id: uuid.UUID) -> Conversation | None:
        with self.operation("get", "get conversation") as session:
            return self._first(session, self.db.conversations.where(ConversationRow.id == conversation_id))

    def get_by_customer(self, customer_id: uuid.UUID) -> list[Conversation]:
        query = self.db.conversations.where(ConversationRow.customer_id == customer_id).order_by(
            ConversationRow.created_at.desc()
        )
        with self.operation("get_by_customer", "get conversations for customer") as session:
            return [Conversation.model_validate(row) for row in session.scalars(query)]

    def get_by_phones(self, customer_phone: str, brand_phone: str) -> Conversation | None:
        query = self.db.conversations.where(
            ConversationRow.customer_phone == customer_phone,
            ConversationRow.brand_phone == brand_phone,
            ConversationRow.status == ConversationStatus.ACTIVE,
        )
        with self.operation("get_by_phones", "get conversation by phones") as session:
            return self._first(session, query)

    def find_or_create(
        self,
        customer_id: uuid.UUID,
        customer_phone: str,
        brand_phone: str,
        campaign: CampaignLink | dict[str, Any] | None = None,
    ) -> Conversation:
        """Return the active conversation for the phone pair, creating it when absent.

        The pair is unique per brand whatever the status, so when an archived
        or completed conversation already holds it that row is returned; check
        ``can_send_message`` before sending.
        """

        existing = self.get_by_phones(customer_phone, brand_phone)
        if existing is not None:
            return existing

        link = CampaignLink.model_validate(campaign or {})
        try:
            return self.create(
                {
                    "customer_id": customer_id,
                    "customer_phone": customer_phone,
                    "brand_phone": brand_phone,
                    **link.model_dump(exclude_none=True),
                }
            )
        except ConstraintViolationError:
            existing = self._get_by_phone_pair(customer_phone, brand_phone)
            if existing is None:
                raise
            observe_find_or_create_conflict(self.resource)
            return existing

    def add_message(self, data: MessageCreate | dict[str, Any]) -> Message:
        """Append a message and refresh the conversation's activity timestamps.

        Both writes share one transaction. ``message_count`` is left as stored.
        """

        dto = MessageCreate.model_validate(data)
        now = utcnow()
        columns = self._to_columns(dto.model_dump(exclude_unset=True))
        columns["sent_at"] = dto.sent_at or now
        columns["created_at"] = now

        with self.operation("add_message", "create message") as session:
            conversation = session.execute(
                self.db.conversations.where(ConversationRow.id == dto.conversation_id).with_for_update()
            ).scalar_one_or_none()
            if conversation is None:
                raise RecordNotFoundError("Conversation", dto.conversation_id)

            row = MessageRow(**columns)
            session.add(row)

            conversation.last_message_at = now
            conversation.updated_at = now
            if dto.direction == MessageDirection.INBOUND:
                conversation.last_inbound_at = now
            else:
                conversation.last_outbound_at = now

            session.flush()
            message = Message.model_validate(row)

        self._log_mutation(
            "message_added",
            message.id,
            conversation_id=str(message.conversation_id),
            direction=message.direction.value,
        )
        return message

    def get_messages(self, conversation_id: uuid.UUID, limit: int = 50) -> list[Message]:
        query = (
            self.db.messages.where(MessageRow.conversation_id == conversation_id)
            .order_by(MessageRow.sent_at.desc())
            .limit(limit)
        )
        with self.operation("get_messages", "get messages") as session:
            return [Message.model_validate(row) for row in session.scalars(query)]

    def update_status(self, conversation_id: uuid.UUID, status: ConversationStatus | str) -> Conversation:
        target = ConversationStatus(status)
        with self.operation("update_status", "update conversation status") as session:
            row = self._lock(session, conversation_id)
            CONVERSATION_STATUS_MACHINE.ensure_transition(row.status, target)
            conversation = self._apply(session, row, {"status": target})

        self._log_mutation("status_changed", conversation.id, status=target.value)
        return conversation

    def opt_out(self, conversation_id: uuid.UUID, reason: str | None = None) -> Conversation:
        now = utcnow()
        with self.operation("opt_out", "opt out conversation") as session:
            row = self._lock(session, conversation_id)
            CONVERSATION_STATUS_MACHINE.ensure_transition(row.status, ConversationStatus.ARCHIVED)
            conversation = self._apply(
                session,
                row,
                {"opted_out_at": now, "opt_out_reason": reason, "status": ConversationStatus.ARCHIVED},
            )

        self._log_mutation("opted_out", conversation.id, status=ConversationStatus.ARCHIVED.value)
        return conversation

    def get_active(self, limit: int = 50) -> list[Conversation]:
        query = (
            self.db.conversations.where(
                ConversationRow.status == ConversationStatus.ACTIVE,
                ConversationRow.opted_out_at.is_(None),
            )
            .order_by(ConversationRow.last_message_at.desc().nulls_last())
            .limit(limit)
        )
        with self.operation("get_active", "get active conversations") as session:
            return [Conversation.model_validate(row) for row in session.scalars(query)]

    def search(self, query: str, limit: int = 20) -> list[Conversation]:
        pattern = contains_pattern(query)
        statement = (
            self.db.conversations.where(
                or_(
                    ConversationRow.customer_phone.ilike(pattern, escape="\\"),
                    ConversationRow.campaign_name.ilike(pattern, escape="\\"),
                )
            )
            .order_by(ConversationRow.last_message_at.desc().nulls_last())
            .limit(limit)
        )
        with self.operation("search", "search conversations") as session:
            return [Conversation.model_validate(row) for row in session.scalars(statement)]

    def get_with_customer(self, conversation_id: uuid.UUID) -> ConversationWithCustomer | None:
        statement = (
            select(ConversationRow, CustomerRow)
            .join(CustomerRow, ConversationRow.customer_id == CustomerRow.id)
            .where(
                ConversationRow.id == conversation_id,
                ConversationRow.brand_id == self.context.brand_id,
                CustomerRow.brand_id == self.context.brand_id,
            )
        )
        with self.operation("get_with_customer", "get conversation with customer") as session:
            result = session.execute(statement).one_or_none()
            if result is None:
                return None
            conversation_row, customer_row = result
            return ConversationWithCustomer(
                **Conversation.model_validate(conversation_row).model_dump(),
                customer=CustomerSummary.model_validate(customer_row),
            )

    def get_analytics(self, time_range: TimeRange | dict[str, Any] | None = None) -> ConversationAnalytics:
        """Aggregate conversation counts for the brand.

        Message totals come from the stored ``message_count`` column.
        """

        statement = self.db.conversations.with_only_columns(
            ConversationRow.status,
            ConversationRow.opted_out_at,
            ConversationRow.message_count,
        )
        if time_range is not None:
            window = TimeRange.model_validate(time_range)
            statement = statement.where(
                ConversationRow.created_at >= window.start,
                ConversationRow.created_at <= window.end,
            )

        with self.operation("analytics", "get conversation analytics") as session:
            rows = session.execute(statement).all()

        by_status = Counter(ConversationStatus(row.status) for row in rows)
        total_messages = sum(row.message_count or 0 for row in rows)
        return ConversationAnalytics(
            total=len(rows),
            active=by_status.get(ConversationStatus.ACTIVE, 0),
            opted_out=sum(1 for row in rows if row.opted_out_at is not None),
            by_status=dict(by_status),
            total_messages=total_messages,
            avg_messages_per_conversation=total_messages / len(rows) if rows else 0.0,
        )

    def _get_by_phone_pair(self, customer_phone: str, brand_phone: str) -> Conversation | None:
        query = self.db.conversations.where(
            ConversationRow.customer_phone == customer_phone,
            ConversationRow.brand_phone == brand_phone,
        )
        with self.operation("get_by_phones", "get conversation by phones") as session:
            return self._first(session, query)

    def _first(self, session: Session, query: Any) -> Conversation | None:
        row = session.execute(query).scalar_one_or_none()
        return Conversation.model_validate(row) if row is not None else None

    def _lock(self, session: Session, conversation_id: uuid.UUID) -> ConversationRow:
        row = session.execute(
            self.db.conversations.where(ConversationRow.id == conversation_id).with_for_update()
        ).scalar_one_or_none()
        if row is None:
            raise RecordNotFoundError("Conversation", conversation_id)
        return row

    def _apply(self, session: Session, row: ConversationRow, changes: dict[str, Any]) -> Conversation:
        for field_name, value in changes.items():
            setattr(row, field_name, value)
        row.updated_at = utcnow()
        session.flush()
        return Conversation.model_validate(row)
