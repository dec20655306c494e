from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from types import MappingProxyType

from shared_database.core.errors import UnknownBrandError


class BrandId(StrEnum):
    GNYMBLE = "gnymble"
    PERCYMD = "percymd"
    PERCYTEXT = "percytext"


@dataclass(frozen=True, slots=True)
class BrandConfig:
    id: BrandId
    name: str
    domain: str
    platform_domain: str
    primary_color: str
    logo_url: str
    support_email: str
    is_active: bool = True


def _brand(brand_id: BrandId, name: str, primary_color: str) -> BrandConfig:
    domain = f"{brand_id.value}.com"
    return BrandConfig(
        id=brand_id,
        name=name,
        domain=domain,
        platform_domain=f"app.{domain}",
        primary_color=primary_color,
        logo_url=f"/brands/{brand_id.value}/logo.svg",
        support_email=f"support@{domain}",
    )


BRAND_CONFIGS: MappingProxyType[BrandId, BrandConfig] = MappingProxyType(
    {
        BrandId.GNYMBLE: _brand(BrandId.GNYMBLE, "Gnymble", "#4F46E5"),
        BrandId.PERCYMD: _brand(BrandId.PERCYMD, "PercyMD", "#059669"),
        BrandId.PERCYTEXT: _brand(BrandId.PERCYTEXT, "PercyText", "#DC2626"),
    }
)


def validate_brand_id(value: object) -> BrandId | None:
    """Return the matching brand, or None for anything that is not a known brand key."""

    if isinstance(value, BrandId):
        return value
    if not isinstance(value, str):
        return None
    try:
        return BrandId(value)
    except ValueError:
        return None


def get_brand_config(brand_id: BrandId | str) -> BrandConfig:
    resolved = validate_brand_id(brand_id)
    if resolved is None:
        raise UnknownBrandError(brand_id)
    return BRAND_CONFIGS[resolved]


def brand_values() -> list[str]:
    return [member.value for member in BrandId]
