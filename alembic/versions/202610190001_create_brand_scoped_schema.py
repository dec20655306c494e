"""create brand scoped customers, conversations and messages

Revision ID: 202610190001
Revises:
Create Date: 2026-10-19 00:01:00
"""

from collections.abc import Sequence
from enum import StrEnum

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from shared_database.brands.registry import BrandId
from shared_database.enums import (
    ConversationStatus,
    CustomerSource,
    CustomerStage,
    MessageDirection,
    MessageStatus,
)


revision: str = "202610190001"
down_revision: str | None = None
branch_labels: Sequence[str] | None = None
depends_on: Sequence[str] | None = None


def _enum(enum_cls: type[StrEnum], name: str) -> postgresql.ENUM:
    return postgresql.ENUM(*[member.value for member in enum_cls], name=name, create_type=False)


ENUM_TYPES = (
    _enum(BrandId, "brand_id"),
    _enum(CustomerStage, "customer_stage"),
    _enum(CustomerSource, "customer_source"),
    _enum(MessageDirection, "message_direction"),
    _enum(MessageStatus, "message_status"),
    _enum(ConversationStatus, "conversation_status"),
)
brand_id, customer_stage, customer_source, message_direction, message_status, conversation_status = ENUM_TYPES

# missing_ok: a transaction without a bound brand sees no rows instead of erroring.
CURRENT_BRAND = "current_setting('app.current_brand', true)::brand_id"


def upgrade() -> None:
    op.execute('CREATE EXTENSION IF NOT EXISTS "uuid-ossp"')
    op.execute('CREATE EXTENSION IF NOT EXISTS "pg_trgm"')

    bind = op.get_bind()
    for enum_type in ENUM_TYPES:
        enum_type.create(bind, checkfirst=True)

    op.create_table(
        "customers",
        sa.Column("id", sa.Uuid(), nullable=False, server_default=sa.text("uuid_generate_v4()")),
        sa.Column("brand_id", brand_id, nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("phone", sa.String(length=20), nullable=True),
        sa.Column("first_name", sa.String(length=100), nullable=True),
        sa.Column("last_name", sa.String(length=100), nullable=True),
        sa.Column("stage", customer_stage, nullable=False, server_default="lead"),
        sa.Column("source", customer_source, nullable=False, server_default="website"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("marketing_qualified_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("trial_started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("subscribed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("churned_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("metadata", postgresql.JSONB(), nullable=True),
        sa.Column("tags", postgresql.ARRAY(sa.Text()), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("created_by", sa.Uuid(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("brand_id", "email", name="customers_brand_email_unique"),
        sa.UniqueConstraint(
            "brand_id",
            "phone",
            name="customers_brand_phone_unique",
            deferrable=True,
            initially="DEFERRED",
        ),
    )

    op.create_table(
        "conversations",
        sa.Column("id", sa.Uuid(), nullable=False, server_default=sa.text("uuid_generate_v4()")),
        sa.Column("brand_id", brand_id, nullable=False),
        sa.Column("customer_id", sa.Uuid(), nullable=False),
        sa.Column("customer_phone", sa.String(length=20), nullable=False),
        sa.Column("brand_phone", sa.String(length=20), nullable=False),
        sa.Column("status", conversation_status, nullable=False, server_default="active"),
        sa.Column("campaign_id", sa.Uuid(), nullable=True),
        sa.Column("campaign_name", sa.String(length=255), nullable=True),
        sa.Column("message_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_message_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_inbound_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_outbound_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("opted_out_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("opt_out_reason", sa.Text(), nullable=True),
        sa.Column("metadata", postgresql.JSONB(), nullable=True),
        sa.Column("tags", postgresql.ARRAY(sa.Text()), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.ForeignKeyConstraint(["customer_id"], ["customers.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("brand_id", "customer_phone", "brand_phone", name="conversations_brand_phones_unique"),
    )

    op.create_table(
        "messages",
        sa.Column("id", sa.Uuid(), nullable=False, server_default=sa.text("uuid_generate_v4()")),
        sa.Column("conversation_id", sa.Uuid(), nullable=False),
        sa.Column("direction", message_direction, nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("media_urls", postgresql.ARRAY(sa.Text()), nullable=True),
        sa.Column("status", message_status, nullable=True),
        sa.Column("external_id", sa.String(length=255), nullable=True),
        sa.Column("metadata", postgresql.JSONB(), nullable=True),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("delivered_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.ForeignKeyConstraint(["conversation_id"], ["conversations.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_index("idx_customers_brand_id", "customers", ["brand_id"], unique=False)
    op.create_index("idx_customers_email", "customers", ["email"], unique=False)
    op.create_index("idx_customers_phone", "customers", ["phone"], unique=False)
    op.create_index("idx_customers_stage", "customers", ["brand_id", "stage"], unique=False)
    op.create_index("idx_customers_source", "customers", ["brand_id", "source"], unique=False)
    op.create_index("idx_customers_created_at", "customers", ["created_at"], unique=False)
    op.create_index("idx_customers_tags", "customers", ["tags"], unique=False, postgresql_using="gin")
    op.create_index(
        "idx_customers_search",
        "customers",
        [
            sa.text(
                "to_tsvector('english', COALESCE(first_name, '') || ' ' || COALESCE(last_name, '') || ' ' || email)"
            )
        ],
        unique=False,
        postgresql_using="gin",
    )

    op.create_index("idx_conversations_brand_id", "conversations", ["brand_id"], unique=False)
    op.create_index("idx_conversations_customer_id", "conversations", ["customer_id"], unique=False)
    op.create_index("idx_conversations_status", "conversations", ["brand_id", "status"], unique=False)
    op.create_index("idx_conversations_phones", "conversations", ["customer_phone", "brand_phone"], unique=False)
    op.create_index(
        "idx_conversations_last_message",
        "conversations",
        [sa.text("last_message_at DESC NULLS LAST")],
        unique=False,
    )
    op.create_index("idx_conversations_campaign", "conversations", ["campaign_id"], unique=False)
    op.create_index("idx_conversations_tags", "conversations", ["tags"], unique=False, postgresql_using="gin")

    op.create_index("idx_messages_conversation_id", "messages", ["conversation_id"], unique=False)
    op.create_index("idx_messages_direction", "messages", ["direction"], unique=False)
    op.create_index("idx_messages_status", "messages", ["status"], unique=False)
    op.create_index("idx_messages_sent_at", "messages", [sa.text("sent_at DESC")], unique=False)
    op.create_index("idx_messages_external_id", "messages", ["external_id"], unique=False)

    op.execute(
        """
        CREATE OR REPLACE FUNCTION update_updated_at_column()
        RETURNS TRIGGER AS $$
        BEGIN
            NEW.updated_at = NOW();
            RETURN NEW;
        END;
        $$ LANGUAGE plpgsql
        """
    )
    for table in ("customers", "conversations"):
        op.execute(
            f"""
            CREATE TRIGGER update_{table}_updated_at
                BEFORE UPDATE ON {table}
                FOR EACH ROW
                EXECUTE FUNCTION update_updated_at_column()
            """
        )

    for table in ("customers", "conversations", "messages"):
        op.execute(f"ALTER TABLE {table} ENABLE ROW LEVEL SECURITY")

    op.execute(f"CREATE POLICY customers_brand_isolation ON customers FOR ALL USING (brand_id = {CURRENT_BRAND})")
    op.execute(
        f"CREATE POLICY conversations_brand_isolation ON conversations FOR ALL USING (brand_id = {CURRENT_BRAND})"
    )
    op.execute(
        f"""
        CREATE POLICY messages_conversation_access ON messages
            FOR ALL
            USING (
                conversation_id IN (
                    SELECT id FROM conversations WHERE brand_id = {CURRENT_BRAND}
                )
            )
        """
    )

    op.execute(
        """
        CREATE VIEW customer_analytics AS
        SELECT
            brand_id,
            stage,
            source,
            COUNT(*) AS count,
            COUNT(*) FILTER (WHERE created_at >= NOW() - INTERVAL '30 days') AS count_30d,
            AVG(EXTRACT(EPOCH FROM (subscribed_at - created_at)) / 86400)
                FILTER (WHERE subscribed_at IS NOT NULL) AS avg_days_to_subscription
        FROM customers
        WHERE is_active = TRUE
        GROUP BY brand_id, stage, source
        """
    )
    op.execute(
        """
        CREATE VIEW conversation_analytics AS
        SELECT
            brand_id,
            status,
            COUNT(*) AS count,
            AVG(message_count) AS avg_message_count,
            COUNT(*) FILTER (WHERE created_at >= NOW() - INTERVAL '30 days') AS count_30d,
            COUNT(*) FILTER (WHERE opted_out_at IS NOT NULL) AS opted_out_count
        FROM conversations
        GROUP BY brand_id, status
        """
    )


def downgrade() -> None:
    op.execute("DROP VIEW IF EXISTS conversation_analytics")
    op.execute("DROP VIEW IF EXISTS customer_analytics")

    op.execute("DROP POLICY IF EXISTS messages_conversation_access ON messages")
    op.execute("DROP POLICY IF EXISTS conversations_brand_isolation ON conversations")
    op.execute("DROP POLICY IF EXISTS customers_brand_isolation ON customers")

    op.execute("DROP TRIGGER IF EXISTS update_conversations_updated_at ON conversations")
    op.execute("DROP TRIGGER IF EXISTS update_customers_updated_at ON customers")
    op.execute("DROP FUNCTION IF EXISTS update_updated_at_column()")

    op.drop_table("messages")
    op.drop_table("conversations")
    op.drop_table("customers")

    bind = op.get_bind()
    for enum_type in reversed(ENUM_TYPES):
        enum_type.drop(bind, checkfirst=True)
