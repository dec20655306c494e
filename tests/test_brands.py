from __future__ import annotations

import dataclasses

import pytest

from shared_database.brands import BRAND_CONFIGS, BrandId, brand_values, get_brand_config, validate_brand_id
from shared_database.core.errors import UnknownBrandError
from shared_database.platform.security.context import BrandContext


def test_registry_has_one_config_per_brand() -> None:
    assert set(BRAND_CONFIGS) == set(BrandId)
    for brand_id, config in BRAND_CONFIGS.items():
        assert config.id == brand_id
        assert config.is_active is True


def test_brand_config_fields_follow_brand_key() -> None:
    config = get_brand_config("percymd")

    assert config.name == "PercyMD"
    assert config.domain == "percymd.com"
    assert config.platform_domain == "app.percymd.com"
    assert config.primary_color == "#059669"
    assert config.logo_url == "/brands/percymd/logo.svg"
    assert config.support_email == "support@percymd.com"


def test_primary_colors() -> None:
    assert get_brand_config(BrandId.GNYMBLE).primary_color == "#4F46E5"
    assert get_brand_config(BrandId.PERCYTEXT).primary_color == "#DC2626"


def test_unknown_brand_raises() -> None:
    with pytest.raises(UnknownBrandError) as exc_info:
        get_brand_config("acme")
    assert exc_info.value.brand_id == "acme"


@pytest.mark.parametrize("value", ["acme", "", "GNYMBLE", None, 3])
def test_validate_brand_id_returns_none_for_unknown(value: object) -> None:
    assert validate_brand_id(value) is None


def test_validate_brand_id_accepts_known_values() -> None:
    assert validate_brand_id("gnymble") is BrandId.GNYMBLE
    assert validate_brand_id(BrandId.PERCYTEXT) is BrandId.PERCYTEXT
    assert brand_values() == ["gnymble", "percymd", "percytext"]


def test_registry_is_read_only() -> None:
    with pytest.raises(TypeError):
        BRAND_CONFIGS[BrandId.GNYMBLE] = BRAND_CONFIGS[BrandId.PERCYMD]  # type: ignore[index]
    with pytest.raises(dataclasses.FrozenInstanceError):
        BRAND_CONFIGS[BrandId.GNYMBLE].name = "Other"  # type: ignore[misc]


def test_brand_context_resolves_config() -> None:
    ctx = BrandContext.for_brand("percytext", user_id="u1", correlation_id="cid-1")

    assert ctx.brand_id is BrandId.PERCYTEXT
    assert ctx.config.name == "PercyText"
    assert ctx.is_admin is False
    assert ctx.user_id == "u1"

    with pytest.raises(UnknownBrandError):
        BrandContext.for_brand("nope")
