"""
User preferences.

Pure configuration read by whatever renders the store. Each field is
persisted in its own slot, keyed by the field's alias.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class AppTheme(str, Enum):
    """Appearance selection."""
    SYSTEM = "system"
    LIGHT = "light"
    DARK = "dark"


class Preferences(BaseModel):
    """Display preferences. The currency code only affects formatting."""
    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    app_theme: AppTheme = Field(
        default=AppTheme.SYSTEM,
        alias="appTheme",
    )
    currency_code: str = Field(
        default="USD",
        alias="currencyCode",
        pattern="^[A-Z]{3}$",
        description="ISO 4217 style currency code",
    )
    has_seen_onboarding: bool = Field(
        default=False,
        alias="hasSeenOnboarding",
    )

    @field_validator('currency_code', mode='before')
    @classmethod
    def upper_currency_code(cls, v):
        if isinstance(v, str):
            return v.strip().upper()
        return v
