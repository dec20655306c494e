from shared_database.brands.registry import (
    BRAND_CONFIGS,
    BrandConfig,
    BrandId,
    brand_values,
    get_brand_config,
    validate_brand_id,
)

__all__ = [
    "BRAND_CONFIGS",
    "BrandConfig",
    "BrandId",
    "brand_values",
    "get_brand_config",
    "validate_brand_id",
]
