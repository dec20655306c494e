from __future__ import annotations

from dataclasses import dataclass

from shared_database.brands.registry import BrandConfig, BrandId, get_brand_config


@dataclass(slots=True)
class BrandContext:
    """Brand scope for one request, built by the caller's brand-detection layer."""

    brand_id: BrandId
    config: BrandConfig
    user_id: str | None = None
    is_admin: bool = False
    correlation_id: str | None = None

    @classmethod
    def for_brand(
        cls,
        brand_id: BrandId | str,
        *,
        user_id: str | None = None,
        is_admin: bool = False,
        correlation_id: str | None = None,
    ) -> BrandContext:
        config = get_brand_config(brand_id)
        return cls(
            brand_id=config.id,
            config=config,
            user_id=user_id,
            is_admin=is_admin,
            correlation_id=correlation_id,
        )
