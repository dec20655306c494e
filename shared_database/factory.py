from __future__ import annotations

from dataclasses import dataclass

from shared_database.client import BrandAwareClient, create_brand_client
from shared_database.conversations.service import ConversationOperations
from shared_database.core.database import Database
from shared_database.customers.service import CustomerOperations
from shared_database.platform.security.context import BrandContext


@dataclass(frozen=True, slots=True)
class DatabaseClient:
    """Per-request bundle: one brand client and the operations built on it."""

    client: BrandAwareClient
    customers: CustomerOperations
    conversations: ConversationOperations
    raw: Database
    context: BrandContext


def create_database_client(context: BrandContext, database: Database | None = None) -> DatabaseClient:
    client = create_brand_client(context, database)
    return DatabaseClient(
        client=client,
        customers=CustomerOperations(client),
        conversations=ConversationOperations(client),
        raw=client.raw,
        context=context,
    )
