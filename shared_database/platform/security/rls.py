from __future__ import annotations

from typing import Any

from sqlalchemy import Select, text
from sqlalchemy.orm import Session

from shared_database.platform.security.context import BrandContext


CURRENT_BRAND_SETTING = "app.current_brand"


def apply_brand_filter(query: Select[Any], model: Any, ctx: BrandContext) -> Select[Any]:
    """Restrict a select to rows of the context's brand."""

    return query.where(model.brand_id == ctx.brand_id)


def apply_session_brand(session: Session, ctx: BrandContext) -> None:
    """Scope the current Postgres transaction to the context's brand.

    The row-level-security policies on customers, conversations and messages
    compare against this setting. Other dialects have no RLS and are skipped.
    """

    if session.get_bind().dialect.name != "postgresql":
        return
    session.execute(
        text("SELECT set_config(:setting, :brand, true)"),
        {"setting": CURRENT_BRAND_SETTING, "brand": ctx.brand_id.value},
    )
