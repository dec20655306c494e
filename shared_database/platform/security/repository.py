from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from opentelemetry import trace
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from shared_database.client import BrandAwareClient
from shared_database.context import (
    get_correlation_id,
    reset_correlation_id,
    reset_current_brand,
    set_correlation_id,
    set_current_brand,
)
from shared_database.core.errors import ConstraintViolationError, DatabaseOperationError
from shared_database.metrics import observe_db_operation
from shared_database.platform.security.context import BrandContext


logger = logging.getLogger("shared_database.operations")
tracer = trace.get_tracer("shared_database.operations")


def _store_message(exc: SQLAlchemyError) -> str:
    orig = getattr(exc, "orig", None)
    return str(orig) if orig is not None else str(exc)


def contains_pattern(query: str) -> str:
    """ILIKE pattern matching ``query`` anywhere, with LIKE wildcards taken literally."""

    escaped = query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _coerce_user_uuid(value: str | None) -> uuid.UUID | None:
    if value is None:
        return None
    try:
        return uuid.UUID(value)
    except ValueError:
        logger.warning("actor.user_id_not_uuid", extra={"user_id": value})
        return None


class BaseRepository:
    resource = ""

    def __init__(self, db: BrandAwareClient) -> None:
        self.db = db

    @property
    def context(self) -> BrandContext:
        return self.db.context

    @contextmanager
    def operation(self, action: str, description: str | None = None) -> Iterator[Session]:
        """Run one unit of work: a transaction, a span, metrics and error wrapping.

        Store failures surface as ``DatabaseOperationError`` naming
        ``description``; the transaction is rolled back.
        """

        description = description or f"{action} {self.resource}"
        ctx = self.db.context
        started = time.perf_counter()
        outcome = "error"
        brand_token = set_current_brand(ctx.brand_id.value)
        correlation_token = set_correlation_id(ctx.correlation_id) if ctx.correlation_id else None
        try:
            with tracer.start_as_current_span(f"shared_database.{self.resource}.{action}") as span:
                span.set_attribute("brand_id", ctx.brand_id.value)
                span.set_attribute("correlation_id", get_correlation_id() or "")
                try:
                    with self.db.session() as session:
                        yield session
                except IntegrityError as exc:
                    self._log_failure(action, exc)
                    raise ConstraintViolationError(description, _store_message(exc)) from exc
                except SQLAlchemyError as exc:
                    self._log_failure(action, exc)
                    raise DatabaseOperationError(description, _store_message(exc)) from exc
                outcome = "ok"
        finally:
            observe_db_operation(self.resource, action, outcome, time.perf_counter() - started)
            if correlation_token is not None:
                reset_correlation_id(correlation_token)
            reset_current_brand(brand_token)

    def _log_failure(self, action: str, exc: SQLAlchemyError) -> None:
        logger.warning(
            "db.operation_failed",
            extra={
                "entity": self.resource,
                "operation": action,
                "error": _store_message(exc),
            },
        )

    def _log_mutation(self, action: str, entity_id: uuid.UUID, **fields: Any) -> None:
        logger.info(
            f"{self.resource}.{action}",
            extra={"entity": self.resource, "operation": action, "entity_id": str(entity_id), **fields},
        )

    @staticmethod
    def _to_columns(payload: dict[str, Any]) -> dict[str, Any]:
        """Map validated payload keys onto ORM attribute names."""

        columns = dict(payload)
        if "metadata" in columns:
            columns["metadata_"] = columns.pop("metadata")
        return columns
