"""Settings codec: rows <-> typed sections."""
import json

import pytest

from apps.console.schemas.settings import DiscountTier, LLMSettings, PricingSettings, default_discounts
from apps.console.services.settings_codec import (
    DEFAULT_LLM_SETTINGS,
    DEFAULT_PAYMENT_SETTINGS,
    DEFAULT_PRICING_SETTINGS,
    DEFAULT_SITE_SETTINGS,
    PRICING_KEYS,
    applicable_discount,
    decode_discounts,
    decode_llm_settings,
    decode_payment_settings,
    decode_pricing_settings,
    decode_site_settings,
    decode_trial_settings,
    duration_discounts,
    encode_llm_settings,
    encode_payment_settings,
    encode_pricing_settings,
    encode_site_settings,
    pricing_from_wire,
    sanitize_payment_payload,
    to_public_llm_settings,
    volume_discounts,
)


def _rows(**values):
    return [{"key": k, "value": v} for k, v in values.items()]


@pytest.mark.parametrize(
    "rows",
    [
        [],
        _rows(pricing_vat_rate="abc"),
        _rows(pricing_subscription_monthly_price={"nested": {"value": 1}}, pricing_discounts="{broken"),
        _rows(pricing_discounts='[{"threshold": "six", "percentage": 7}]'),
        _rows(pricing_vat_enabled="peut-être", pricing_subscription_monthly_tokens="1.5"),
        _rows(pricing_discounts='{"threshold": 6}'),
        _rows(pricing_discounts="[]"),
        [{"key": "pricing_vat_rate"}],
    ],
)
def test_malformed_pricing_rows_decode_to_defaults(rows):
    pricing = decode_pricing_settings(rows)
    assert pricing == DEFAULT_PRICING_SETTINGS
    assert pricing is not DEFAULT_PRICING_SETTINGS


def test_pricing_rows_in_mixed_wire_shapes():
    rows = _rows(
        pricing_subscription_monthly_price={"value": "4500"},
        pricing_subscription_monthly_tokens={"pricing_subscription_monthly_tokens": 2000000},
        pricing_subscription_currency="DA",
        pricing_tokens_price_per_million=900,
        pricing_vat_enabled="false",
        pricing_vat_rate="19",
    )
    pricing = decode_pricing_settings(rows)
    assert pricing.subscription.monthly_price == 4500
    assert pricing.subscription.monthly_tokens == 2000000
    assert pricing.tokens.price_per_million == 900
    assert pricing.tokens.currency == "DA"
    assert pricing.vat.enabled is False
    assert pricing.vat.rate == 19
    assert pricing.discounts == DEFAULT_PRICING_SETTINGS.discounts


def test_pricing_encode_then_decode_keeps_values():
    pricing = PricingSettings.model_validate({
        "subscription": {"monthlyPrice": 5000, "monthlyTokens": 1500000, "currency": "DA"},
        "tokens": {"pricePerMillion": 1200, "currency": "DA"},
        "discounts": [
            {"kind": "duration", "threshold": 3, "percentage": 5},
            {"kind": "volume", "threshold": 12, "percentage": 4},
        ],
        "vat": {"enabled": True, "rate": 9.5},
    })
    records = encode_pricing_settings(pricing)
    assert [r["key"] for r in records] == list(PRICING_KEYS)
    assert all(isinstance(r["value"], str) and r["description"] for r in records)
    assert decode_pricing_settings(records) == pricing


def test_tagged_volume_tier_of_twelve_is_not_a_duration_tier():
    pricing = PricingSettings(discounts=[DiscountTier(kind="volume", threshold=12, percentage=4)])
    decoded = decode_pricing_settings(encode_pricing_settings(pricing))
    assert duration_discounts(decoded) == []
    assert [t.threshold for t in volume_discounts(decoded)] == [12]


def test_untagged_discounts_are_classified_by_threshold():
    tiers = decode_discounts(json.dumps([
        {"threshold": 6, "percentage": 7},
        {"threshold": 12, "percentage": 20},
        {"threshold": 10000000, "percentage": 10},
    ]))
    assert [t.kind for t in tiers] == ["duration", "duration", "volume"]


def test_discounts_drop_non_positive_thresholds_and_negative_percentages():
    tiers = decode_discounts([
        {"kind": "duration", "threshold": 0, "percentage": 5},
        {"kind": "duration", "threshold": 6, "percentage": -1},
        {"kind": "volume", "threshold": "5000000", "percentage": "3"},
        "garbage",
    ])
    assert tiers == [DiscountTier(kind="volume", threshold=5000000, percentage=3)]


def test_discounts_skip_non_objects_but_reject_non_numeric_objects():
    assert decode_discounts([7, None, {"kind": "duration", "threshold": 3, "percentage": 5}]) == [
        DiscountTier(kind="duration", threshold=3, percentage=5)
    ]
    assert decode_discounts(["x", {"threshold": "abc", "percentage": 5}]) == default_discounts()


def test_applicable_discount():
    pricing = DEFAULT_PRICING_SETTINGS
    assert applicable_discount(duration_discounts(pricing), 1) == 0
    assert applicable_discount(duration_discounts(pricing), 6) == 7
    assert applicable_discount(duration_discounts(pricing), 24) == 20
    assert applicable_discount(volume_discounts(pricing), 15000000) == 10


def test_pricing_from_wire_accepts_untagged_discounts():
    pricing = pricing_from_wire({"discounts": [{"threshold": 3, "percentage": 5}], "vat": {"enabled": False, "rate": 0}})
    assert pricing.discounts == [DiscountTier(kind="duration", threshold=3, percentage=5)]
    assert pricing.vat.enabled is False
    assert pricing.subscription == DEFAULT_PRICING_SETTINGS.subscription


def test_site_settings_round_trip():
    site = DEFAULT_SITE_SETTINGS.model_copy(update={"maintenance_mode": True, "free_trial_days": 14})
    records = encode_site_settings(site)
    values = {r["key"]: r["value"] for r in records}
    assert values["maintenance_mode"] == "true"
    assert values["trial_duration_days"] == "14"
    assert decode_site_settings(records) == site


def test_site_settings_defaults_when_absent():
    assert decode_site_settings([]) == DEFAULT_SITE_SETTINGS


def test_trial_settings_read_legacy_amount_key():
    trial = decode_trial_settings(_rows(trial_tokens_amount="50000", trial_enabled="false"))
    assert trial.tokens == 50000
    assert trial.enabled is False
    assert trial.duration_days == 7


def test_payment_settings_merge_defaults_and_unknown_methods():
    stored = {
        "methods": {
            "paypal": {"enabled": False, "label": "PayPal"},
            "crypto": {"enabled": True, "label": "Crypto", "description": "USDT"},
            "broken": {"enabled": True},
        }
    }
    payment = decode_payment_settings(_rows(payment_method_settings=json.dumps(stored)))
    assert payment.methods["paypal"].enabled is False
    assert payment.methods["crypto"].label == "Crypto"
    assert "broken" not in payment.methods
    assert set(DEFAULT_PAYMENT_SETTINGS.methods) <= set(payment.methods)


@pytest.mark.parametrize("raw", [None, "", "not json", "[1, 2]", '{"methods": 3}'])
def test_payment_settings_malformed_fall_back(raw):
    assert decode_payment_settings(_rows(payment_method_settings=raw)) == DEFAULT_PAYMENT_SETTINGS


def test_payment_payload_sanitized_before_save():
    payload = {
        "methods": {
            "bank_transfer": {
                "enabled": 1,
                "label": "  Virement  ",
                "bankAccounts": [{"label": "BNA", "iban": " DZ00 "}, {"label": "  "}, "x"],
            },
            "nolabel": {"enabled": True, "label": ""},
        }
    }
    sanitized = sanitize_payment_payload(payload)
    method = sanitized.methods["bank_transfer"]
    assert method.label == "Virement"
    assert method.enabled is True
    assert [a.iban for a in method.bank_accounts] == ["DZ00"]
    assert "nolabel" not in sanitized.methods
    [record] = encode_payment_settings(payload)
    assert record["key"] == "payment_method_settings"
    assert json.loads(record["value"])["methods"]["bank_transfer"]["label"] == "Virement"


def test_payment_payload_without_methods_is_rejected():
    assert sanitize_payment_payload({"foo": 1}) is None
    assert encode_payment_settings({"foo": 1}) == []


@pytest.mark.parametrize("raw", [None, "", "{broken", 42, []])
def test_llm_settings_malformed_fall_back(raw):
    assert decode_llm_settings(raw) == DEFAULT_LLM_SETTINGS


def test_llm_settings_repair_cross_references():
    raw = {
        "models": {"claude": {"name": "Claude"}, "mistral": {"name": "Mistral"}, "bad": "x"},
        "defaultModels": ["gpt4", "mistral", "mistral"],
        "maxSimultaneousModels": -2,
        "apiKeys": {"OPENAI_API_KEY": {"value": "sk-1", "isConfigured": True}},
        "globalSettings": {"defaultModelId": "gpt4", "maxRetries": 5},
    }
    llm = decode_llm_settings(json.dumps(raw))
    assert set(llm.models) == {"claude", "mistral"}
    assert llm.default_models == ["mistral"]
    assert llm.global_settings.default_model_id == "mistral"
    assert llm.global_settings.max_retries == 5
    assert llm.max_simultaneous_models == 3
    assert llm.api_keys["OPENAI_API_KEY"].is_configured is True
    assert set(llm.assistant_functions) == {"conversation", "summary"}


def test_llm_settings_encode_round_trip():
    llm = decode_llm_settings({"models": {"gpt4": {"name": "GPT-4"}}, "defaultModels": ["gpt4"]})
    [record] = encode_llm_settings(llm)
    assert record["key"] == "llm_settings"
    assert decode_llm_settings(record["value"]) == llm
    assert isinstance(decode_llm_settings(llm), LLMSettings)


def test_public_llm_settings_hide_disabled_models_and_keys():
    raw = {
        "models": {
            "gpt4": {"name": "GPT-4", "provider": "OpenAI", "isPremium": True},
            "old": {"name": "Old", "isEnabled": False},
        },
        "defaultModels": ["old"],
        "apiKeys": {"OPENAI_API_KEY": {"value": "sk-secret"}},
        "assistantFunctions": {
            "conversation": {"name": "Chat", "apiKeyName": "OPENAI_API_KEY"},
            "off": {"name": "Off", "isEnabled": False},
        },
    }
    public = to_public_llm_settings(raw)
    assert list(public.models) == ["gpt4"]
    assert public.models["gpt4"].is_premium is True
    assert public.default_models == ["gpt4"]
    assert public.global_settings.default_model_id == "gpt4"
    assert list(public.assistant_functions) == ["conversation"]
    wire = json.dumps(public.to_wire())
    assert "sk-secret" not in wire
    assert "apiKeyName" not in wire


def test_public_llm_settings_default_model_when_none_configured():
    public = to_public_llm_settings(None)
    assert public.default_models == ["gpt4"]
    assert public.max_simultaneous_models == 3
    assert set(public.assistant_functions) == {"conversation", "summary"}
