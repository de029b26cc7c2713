"""Typed platform settings: site, pricing, trial, payment methods, LLM."""
from typing import Any, Literal, Optional

from pydantic import ConfigDict, Field

from apps.console.schemas.assistant import AssistantFunctionConfig, PublicAssistantFunctionConfig
from apps.console.schemas.base import Number, WireModel

DiscountKind = Literal["duration", "volume"]
ApiKeyStatus = Literal["valid", "invalid", "untested"]


class SiteSettings(WireModel):
    site_name: str = "Misan"
    site_description: str = "Assistant IA Juridique"
    support_email: str = "support@misan.dz"
    brevo_api_key: str = ""
    maintenance_mode: bool = False
    registration_enabled: bool = True
    free_trial_days: int = 7
    free_trial_tokens: int = 100000


class SubscriptionPricing(WireModel):
    monthly_price: Number = 4000
    monthly_tokens: int = 1000000
    currency: str = "DA"


class TokenPricing(WireModel):
    price_per_million: Number = 1000
    currency: str = "DA"


class DiscountTier(WireModel):
    """A discount tier. ``duration`` thresholds count months, ``volume`` thresholds count tokens."""

    kind: DiscountKind
    threshold: Number
    percentage: Number


class VatSettings(WireModel):
    enabled: bool = True
    rate: Number = 20


def default_discounts() -> list[DiscountTier]:
    return [
        DiscountTier(kind="duration", threshold=6, percentage=7),
        DiscountTier(kind="duration", threshold=12, percentage=20),
        DiscountTier(kind="volume", threshold=10000000, percentage=10),
        DiscountTier(kind="volume", threshold=20000000, percentage=20),
    ]


class PricingSettings(WireModel):
    subscription: SubscriptionPricing = Field(default_factory=SubscriptionPricing)
    tokens: TokenPricing = Field(default_factory=TokenPricing)
    discounts: list[DiscountTier] = Field(default_factory=default_discounts)
    vat: VatSettings = Field(default_factory=VatSettings)


class TrialSettings(WireModel):
    duration_days: int = 7
    tokens: int = 100000
    enabled: bool = True


class BankAccount(WireModel):
    id: Optional[str] = None
    label: str
    bank_name: Optional[str] = None
    account_number: Optional[str] = None
    iban: Optional[str] = None
    swift: Optional[str] = None
    notes: Optional[str] = None


class PaymentMethodConfig(WireModel):
    enabled: bool = True
    label: str
    description: Optional[str] = None
    instructions: Optional[str] = None
    bank_accounts: Optional[list[BankAccount]] = None


class PaymentSettings(WireModel):
    methods: dict[str, PaymentMethodConfig] = Field(default_factory=dict)


class ApiKeyEntry(WireModel):
    model_config = ConfigDict(extra="allow")

    value: str = ""
    is_configured: bool = False
    last_tested: Optional[str] = None
    status: ApiKeyStatus = "untested"


class LLMGlobalSettings(WireModel):
    model_config = ConfigDict(extra="allow")

    allow_user_overrides: bool = True
    default_timeout: int = 30000
    max_retries: int = 3
    enable_caching: bool = True
    allow_model_selection: bool = True
    default_model_id: Optional[str] = "gpt4"


class LLMSettings(WireModel):
    # model configs are open records edited by the LLM admin screens
    models: dict[str, dict[str, Any]] = Field(default_factory=dict)
    default_models: list[str] = Field(default_factory=lambda: ["gpt4"])
    max_simultaneous_models: int = 3
    api_keys: dict[str, ApiKeyEntry] = Field(default_factory=dict)
    global_settings: LLMGlobalSettings = Field(default_factory=LLMGlobalSettings)
    assistant_functions: dict[str, AssistantFunctionConfig] = Field(default_factory=dict)


class PublicLLMModel(WireModel):
    id: str
    name: str
    provider: str
    description: str
    color: str
    is_premium: bool = False


class PublicLLMGlobalSettings(WireModel):
    allow_model_selection: bool = True
    default_model_id: Optional[str] = None


class PublicLLMSettings(WireModel):
    models: dict[str, PublicLLMModel] = Field(default_factory=dict)
    default_models: list[str] = Field(default_factory=list)
    max_simultaneous_models: int = 3
    global_settings: PublicLLMGlobalSettings = Field(default_factory=PublicLLMGlobalSettings)
    assistant_functions: dict[str, PublicAssistantFunctionConfig] = Field(default_factory=dict)
