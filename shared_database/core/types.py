from __future__ import annotations

from enum import Enum as PyEnum

from sqlalchemy import JSON, Enum, Text
from sqlalchemy.dialects.postgresql import ARRAY, JSONB


# Postgres stores jsonb / text[]; other dialects (SQLite in tests) fall back to JSON.
JsonDocument = JSON().with_variant(JSONB(), "postgresql")
TextList = JSON().with_variant(ARRAY(Text()), "postgresql")


def pg_enum(enum_cls: type[PyEnum], name: str) -> Enum:
    """Named database enum whose labels are the member values."""

    return Enum(
        enum_cls,
        name=name,
        values_callable=lambda members: [member.value for member in members],
        validate_strings=True,
    )
