from __future__ import annotations

from shared_database.conversations.schemas import Conversation
from shared_database.enums import ConversationStatus, MessageDirection


def is_opted_out(conversation: Conversation) -> bool:
    return conversation.opted_out_at is not None


def can_send_message(conversation: Conversation) -> bool:
    return conversation.status == ConversationStatus.ACTIVE and not is_opted_out(conversation)


def get_conversation_display_name(conversation: Conversation) -> str:
    return conversation.campaign_name or f"SMS - {conversation.customer_phone}"


def get_last_message_direction(conversation: Conversation) -> MessageDirection | None:
    inbound = conversation.last_inbound_at
    outbound = conversation.last_outbound_at
    if inbound is None and outbound is None:
        return None
    if inbound is None:
        return MessageDirection.OUTBOUND
    if outbound is None:
        return MessageDirection.INBOUND
    return MessageDirection.INBOUND if inbound > outbound else MessageDirection.OUTBOUND
