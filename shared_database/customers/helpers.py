from __future__ import annotations

from shared_database.customers.schemas import Customer
from shared_database.enums import CustomerStage


def get_customer_display_name(customer: Customer) -> str:
    if customer.first_name and customer.last_name:
        return f"{customer.first_name} {customer.last_name}"
    if customer.first_name:
        return customer.first_name
    return str(customer.email)


def is_trial_customer(customer: Customer) -> bool:
    return customer.stage == CustomerStage.TRIAL and customer.trial_started_at is not None


def is_paid_customer(customer: Customer) -> bool:
    return customer.stage == CustomerStage.ACTIVE and customer.subscribed_at is not None


def get_customer_journey_duration(customer: Customer) -> int | None:
    """Whole days from creation to subscription, or None if never subscribed."""

    if customer.subscribed_at is None:
        return None
    return (customer.subscribed_at - customer.created_at).days
