from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from sqlalchemy import Select, select
from sqlalchemy.orm import Session

from shared_database.conversations.models import Conversation, Message
from shared_database.core.database import Database, get_database
from shared_database.customers.models import Customer
from shared_database.platform.security.context import BrandContext
from shared_database.platform.security.rls import apply_brand_filter, apply_session_brand


class BrandAwareClient:
    """Binds a brand context to a database handle.

    ``customers``, ``conversations`` and ``messages`` are select statements
    already restricted to the bound brand; chain further predicates onto them.
    ``raw`` is the unfiltered handle: anything issued through it must add
    ``brand_id == context.brand_id`` itself.
    """

    def __init__(self, context: BrandContext, database: Database | None = None) -> None:
        self._context = context
        self._database = database if database is not None else get_database()

    @property
    def customers(self) -> Select[tuple[Customer]]:
        return apply_brand_filter(select(Customer), Customer, self._context)

    @property
    def conversations(self) -> Select[tuple[Conversation]]:
        return apply_brand_filter(select(Conversation), Conversation, self._context)

    @property
    def messages(self) -> Select[tuple[Message]]:
        query: Select[Any] = select(Message).join(Conversation, Message.conversation_id == Conversation.id)
        return apply_brand_filter(query, Conversation, self._context)

    @property
    def raw(self) -> Database:
        return self._database

    @property
    def context(self) -> BrandContext:
        return self._context

    @contextmanager
    def session(self) -> Iterator[Session]:
        """Open a session with one transaction, committed on success."""

        with self._database.session() as session, session.begin():
            apply_session_brand(session, self._context)
            yield session


def create_brand_client(context: BrandContext, database: Database | None = None) -> BrandAwareClient:
    return BrandAwareClient(context, database)
