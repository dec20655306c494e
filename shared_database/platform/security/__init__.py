from shared_database.platform.security.context import BrandContext
from shared_database.platform.security.rls import CURRENT_BRAND_SETTING, apply_brand_filter, apply_session_brand

__all__ = [
    "BrandContext",
    "CURRENT_BRAND_SETTING",
    "apply_brand_filter",
    "apply_session_brand",
]
