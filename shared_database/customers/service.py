from __future__ import annotations

import uuid
from collections import Counter
from typing import Any

from sqlalchemy import or_
from sqlalchemy.orm import Session

from shared_database.core.database import utcnow
from shared_database.core.errors import ConstraintViolationError, RecordNotFoundError
from shared_database.customers.models import Customer as CustomerRow
from shared_database.customers.schemas import (
    Customer,
    CustomerAnalytics,
    CustomerCreate,
    CustomerUpdate,
    lookup_email,
    normalize_email,
)
from shared_database.enums import CustomerSource, CustomerStage
from shared_database.lifecycle import CUSTOMER_STAGE_MACHINE
from shared_database.metrics import observe_find_or_create_conflict
from shared_database.platform.security.repository import BaseRepository, _coerce_user_uuid, contains_pattern


_JOURNEY_TIMESTAMPS: dict[CustomerStage, str] = {
    CustomerStage.MARKETING: "marketing_qualified_at",
    CustomerStage.TRIAL: "trial_started_at",
    CustomerStage.ACTIVE: "subscribed_at",
    CustomerStage.CHURNED: "churned_at",
}


class CustomerOperations(BaseRepository):
    resource = "customer"

    def create(self, data: CustomerCreate | dict[str, Any]) -> Customer:
        dto = CustomerCreate.model_validate(data)
        now = utcnow()
        columns = self._to_columns(dto.model_dump(exclude_unset=True))
        columns.update(
            brand_id=self.context.brand_id,
            stage=dto.stage or CustomerStage.LEAD,
            source=dto.source or CustomerSource.WEBSITE,
            is_active=True,
            created_at=now,
            updated_at=now,
            created_by=_coerce_user_uuid(self.context.user_id),
        )

        with self.operation("create") as session:
            row = CustomerRow(**columns)
            session.add(row)
            session.flush()
            customer = Customer.model_validate(row)

        self._log_mutation("created", customer.id, stage=customer.stage.value)
        return customer

    def get_by_id(self, customer_id: uuid.UUID) -> Customer | None:
        with self.operation("get", "get customer") as session:
            return self._first(session, self.db.customers.where(CustomerRow.id == customer_id))

    def get_by_email(self, email: str) -> Customer | None:
        with self.operation("get_by_email", "get customer by email") as session:
            return self._first(session, self.db.customers.where(CustomerRow.email == lookup_email(email)))

    def get_by_phone(self, phone: str) -> Customer | None:
        with self.operation("get_by_phone", "get customer by phone") as session:
            return self._first(session, self.db.customers.where(CustomerRow.phone == phone))

    def update(self, customer_id: uuid.UUID, data: CustomerUpdate | dict[str, Any]) -> Customer:
        dto = CustomerUpdate.model_validate(data)
        changes = self._to_columns(dto.model_dump(exclude_unset=True))

        with self.operation("update") as session:
            row = self._lock(session, customer_id)
            if "stage" in changes and changes["stage"] is not None:
                CUSTOMER_STAGE_MACHINE.ensure_transition(row.stage, changes["stage"])
            customer = self._apply(session, row, changes)

        self._log_mutation("updated", customer.id)
        return customer

    def progress_stage(self, customer_id: uuid.UUID, new_stage: CustomerStage | str) -> Customer:
        """Move a customer to ``new_stage``, stamping the matching journey timestamp."""

        target = CustomerStage(new_stage)
        changes: dict[str, Any] = {"stage": target}
        timestamp_field = _JOURNEY_TIMESTAMPS.get(target)
        if timestamp_field is not None:
            changes[timestamp_field] = utcnow()
        if target == CustomerStage.CHURNED:
            changes["is_active"] = False

        with self.operation("progress_stage", "progress customer stage") as session:
            row = self._lock(session, customer_id)
            CUSTOMER_STAGE_MACHINE.ensure_transition(row.stage, target)
            if row.stage == CustomerStage.CHURNED and target != CustomerStage.CHURNED:
                changes["is_active"] = True
            customer = self._apply(session, row, changes)

        self._log_mutation("stage_changed", customer.id, stage=target.value)
        return customer

    def get_by_stage(self, stage: CustomerStage | str, limit: int = 50) -> list[Customer]:
        query = (
            self.db.customers.where(CustomerRow.stage == CustomerStage(stage), CustomerRow.is_active.is_(True))
            .order_by(CustomerRow.created_at.desc())
            .limit(limit)
        )
        with self.operation("get_by_stage", "get customers by stage") as session:
            return [Customer.model_validate(row) for row in session.scalars(query)]

    def search(self, query: str, limit: int = 20) -> list[Customer]:
        pattern = contains_pattern(query)
        statement = (
            self.db.customers.where(
                or_(
                    CustomerRow.email.ilike(pattern, escape="\\"),
                    CustomerRow.first_name.ilike(pattern, escape="\\"),
                    CustomerRow.last_name.ilike(pattern, escape="\\"),
                    CustomerRow.phone.ilike(pattern, escape="\\"),
                ),
                CustomerRow.is_active.is_(True),
            )
            .order_by(CustomerRow.created_at.desc())
            .limit(limit)
        )
        with self.operation("search", "search customers") as session:
            return [Customer.model_validate(row) for row in session.scalars(statement)]

    def find_or_create(self, email: str, data: dict[str, Any] | None = None) -> Customer:
        email = normalize_email(email)
        existing = self.get_by_email(email)
        if existing is not None:
            return existing

        try:
            return self.create({**(data or {}), "email": email})
        except ConstraintViolationError:
            # Lost the race to a concurrent insert of the same email.
            existing = self.get_by_email(email)
            if existing is None:
                raise
            observe_find_or_create_conflict(self.resource)
            return existing

    def add_tags(self, customer_id: uuid.UUID, tags: list[str]) -> Customer:
        with self.operation("add_tags", "add customer tags") as session:
            row = self._lock(session, customer_id)
            merged = list(dict.fromkeys([*(row.tags or []), *tags]))
            customer = self._apply(session, row, {"tags": merged})
        return customer

    def remove_tags(self, customer_id: uuid.UUID, tags: list[str]) -> Customer:
        removed = set(tags)
        with self.operation("remove_tags", "remove customer tags") as session:
            row = self._lock(session, customer_id)
            remaining = [tag for tag in (row.tags or []) if tag not in removed]
            customer = self._apply(session, row, {"tags": remaining})
        return customer

    def get_analytics(self) -> CustomerAnalytics:
        """Snapshot counts for the brand; conversion rate is active / lead, not cohort based."""

        statement = self.db.customers.with_only_columns(
            CustomerRow.stage,
            CustomerRow.source,
            CustomerRow.created_at,
            CustomerRow.subscribed_at,
        )

        with self.operation("analytics", "get customer analytics") as session:
            rows = session.execute(statement).all()

        by_stage = Counter(CustomerStage(row.stage) for row in rows)
        by_source = Counter(CustomerSource(row.source) for row in rows)
        leads = by_stage.get(CustomerStage.LEAD, 0)
        active = by_stage.get(CustomerStage.ACTIVE, 0)

        subscription_days = [
            (row.subscribed_at - row.created_at).total_seconds() / 86400
            for row in rows
            if row.subscribed_at is not None
        ]

        return CustomerAnalytics(
            total=len(rows),
            by_stage=dict(by_stage),
            by_source=dict(by_source),
            conversion_rate=(active / leads) * 100 if leads > 0 else 0.0,
            avg_days_to_subscription=(
                sum(subscription_days) / len(subscription_days) if subscription_days else None
            ),
        )

    def _first(self, session: Session, query: Any) -> Customer | None:
        row = session.execute(query).scalar_one_or_none()
        return Customer.model_validate(row) if row is not None else None

    def _lock(self, session: Session, customer_id: uuid.UUID) -> CustomerRow:
        row = session.execute(
            self.db.customers.where(CustomerRow.id == customer_id).with_for_update()
        ).scalar_one_or_none()
        if row is None:
            raise RecordNotFoundError("Customer", customer_id)
        return row

    def _apply(self, session: Session, row: CustomerRow, changes: dict[str, Any]) -> Customer:
        for field_name, value in changes.items():
            setattr(row, field_name, value)
        row.updated_at = utcnow()
        session.flush()
        return Customer.model_validate(row)
