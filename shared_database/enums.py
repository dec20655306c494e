from __future__ import annotations

from enum import StrEnum


class CustomerStage(StrEnum):
    LEAD = "lead"
    MARKETING = "marketing"
    TRIAL = "trial"
    ACTIVE = "active"
    CHURNED = "churned"
    DORMANT = "dormant"


class CustomerSource(StrEnum):
    WEBSITE = "website"
    SMS_CAMPAIGN = "sms_campaign"
    EMAIL_CAMPAIGN = "email_campaign"
    REFERRAL = "referral"
    ORGANIC = "organic"
    PAID_ADS = "paid_ads"
    SOCIAL = "social"
    OTHER = "other"


class MessageDirection(StrEnum):
    INBOUND = "inbound"
    OUTBOUND = "outbound"


class MessageStatus(StrEnum):
    """Delivery status; only outbound messages carry one."""

    PENDING = "pending"
    SENT = "sent"
    DELIVERED = "delivered"
    FAILED = "failed"
    UNDELIVERED = "undelivered"


class ConversationStatus(StrEnum):
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"
    ARCHIVED = "archived"
