"""Codec between typed platform settings and ``system_settings`` key/value rows.

Decoding never raises: a missing or malformed key falls back to its default
(with a warning for malformed data) so callers always get a fully populated
settings object. Encoding produces ``{"key", "value", "description"}``
records with string values, ready to be upserted on ``key``.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Iterable, Mapping

from pydantic import ValidationError

from apps.console.schemas.settings import (
    ApiKeyEntry,
    BankAccount,
    DiscountTier,
    LLMGlobalSettings,
    LLMSettings,
    PaymentMethodConfig,
    PaymentSettings,
    PricingSettings,
    PublicLLMGlobalSettings,
    PublicLLMModel,
    PublicLLMSettings,
    SiteSettings,
    SubscriptionPricing,
    TokenPricing,
    TrialSettings,
    VatSettings,
    default_discounts,
)
from apps.console.services.assistant_functions import (
    default_assistant_functions,
    sanitize_assistant_functions,
    to_public_assistant_functions,
)
from apps.console.services.setting_values import (
    parse_boolean_setting,
    parse_int_setting,
    parse_json_setting,
    parse_number_setting,
    parse_text_setting,
    to_number,
)

logger = logging.getLogger(__name__)

SITE_KEYS = (
    "site_name",
    "site_description",
    "support_email",
    "brevo_api_key",
    "maintenance_mode",
    "registration_enabled",
    "trial_duration_days",
    "trial_tokens",
)

PRICING_KEYS = (
    "pricing_subscription_monthly_price",
    "pricing_subscription_monthly_tokens",
    "pricing_subscription_currency",
    "pricing_tokens_price_per_million",
    "pricing_tokens_currency",
    "pricing_discounts",
    "pricing_vat_enabled",
    "pricing_vat_rate",
)

PRICING_DESCRIPTIONS = {
    "pricing_subscription_monthly_price": "Prix abonnement mensuel (DA HT)",
    "pricing_subscription_monthly_tokens": "Jetons inclus par mois",
    "pricing_subscription_currency": "Devise abonnement",
    "pricing_tokens_price_per_million": "Prix du million de jetons (DA HT)",
    "pricing_tokens_currency": "Devise pour l'achat de jetons",
    "pricing_discounts": "Paliers de remise (durée ou volume)",
    "pricing_vat_enabled": "TVA activée",
    "pricing_vat_rate": "Taux de TVA en pourcentage",
}

TRIAL_KEYS = ("trial_duration_days", "trial_tokens", "trial_tokens_amount", "trial_enabled")
PAYMENT_KEY = "payment_method_settings"
LLM_KEY = "llm_settings"

ADMIN_SETTING_KEYS = SITE_KEYS + PRICING_KEYS + (PAYMENT_KEY, LLM_KEY)
# readable without an admin session
PUBLIC_SETTING_KEYS = frozenset(PRICING_KEYS + TRIAL_KEYS + (PAYMENT_KEY,))
SECRET_SETTING_KEYS = frozenset({"brevo_api_key"})

# untagged tiers written before discounts carried a kind
LEGACY_DURATION_MAX_THRESHOLD = 12

DEFAULT_MODEL = PublicLLMModel(
    id="gpt4",
    name="GPT-4",
    provider="OpenAI",
    description="Modèle conversationnel avancé d'OpenAI.",
    color="text-green-600",
    is_premium=True,
)
DEFAULT_MAX_SIMULTANEOUS_MODELS = 3

DEFAULT_SITE_SETTINGS = SiteSettings()
DEFAULT_PRICING_SETTINGS = PricingSettings()
DEFAULT_TRIAL_SETTINGS = TrialSettings()
DEFAULT_PAYMENT_SETTINGS = PaymentSettings(
    methods={
        "card_cib": PaymentMethodConfig(
            label="Carte CIB",
            description="Paiement par carte interbancaire algérienne.",
        ),
        "mobile_payment": PaymentMethodConfig(
            label="Paiement mobile (Edahabia)",
            description="Paiement via services mobiles et carte Edahabia.",
        ),
        "bank_transfer": PaymentMethodConfig(
            label="Virement bancaire",
            description="Paiement par virement bancaire.",
        ),
        "card_international": PaymentMethodConfig(
            label="Carte internationale",
            description="Visa, Mastercard ou autres cartes internationales.",
        ),
        "paypal": PaymentMethodConfig(
            label="PayPal",
            description="Paiement via PayPal.",
        ),
    }
)
DEFAULT_LLM_SETTINGS = LLMSettings(assistant_functions=default_assistant_functions())


def _row_map(rows: Iterable[Mapping[str, Any]]) -> dict[str, Any]:
    return {row["key"]: row.get("value") for row in rows if row.get("key")}


def _format_number(value: int | float) -> str:
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value)


def _bool_text(value: bool) -> str:
    return "true" if value else "false"


def _record(key: str, value: str | None, description: str | None = None) -> dict[str, Any]:
    return {"key": key, "value": value, "description": description}


# --- site -----------------------------------------------------------------


def decode_site_settings(rows: Iterable[Mapping[str, Any]]) -> SiteSettings:
    values = _row_map(rows)
    d = DEFAULT_SITE_SETTINGS
    return SiteSettings(
        site_name=parse_text_setting(values.get("site_name"), "site_name", d.site_name),
        site_description=parse_text_setting(values.get("site_description"), "site_description", d.site_description),
        support_email=parse_text_setting(values.get("support_email"), "support_email", d.support_email),
        brevo_api_key=parse_text_setting(values.get("brevo_api_key"), "brevo_api_key", d.brevo_api_key),
        maintenance_mode=parse_boolean_setting(values.get("maintenance_mode"), "maintenance_mode", d.maintenance_mode),
        registration_enabled=parse_boolean_setting(
            values.get("registration_enabled"), "registration_enabled", d.registration_enabled
        ),
        free_trial_days=parse_int_setting(values.get("trial_duration_days"), "trial_duration_days", d.free_trial_days),
        free_trial_tokens=parse_int_setting(values.get("trial_tokens"), "trial_tokens", d.free_trial_tokens),
    )


def encode_site_settings(site: SiteSettings) -> list[dict[str, Any]]:
    return [
        _record("site_name", site.site_name),
        _record("site_description", site.site_description),
        _record("support_email", site.support_email),
        _record("brevo_api_key", site.brevo_api_key),
        _record("maintenance_mode", _bool_text(site.maintenance_mode)),
        _record("registration_enabled", _bool_text(site.registration_enabled)),
        _record("trial_duration_days", _format_number(site.free_trial_days)),
        _record("trial_tokens", _format_number(site.free_trial_tokens)),
    ]


# --- pricing --------------------------------------------------------------


def decode_discounts(value: Any) -> list[DiscountTier]:
    """Discount tiers from the stored JSON list.

    Entries that are not objects are skipped. An object whose threshold or
    percentage is not numeric discards the whole list in favour of the defaults.
    Tiers with a non-positive threshold or a negative percentage are dropped.
    """
    if value is None or value == "":
        return default_discounts()
    parsed = parse_json_setting(value, "pricing_discounts")
    if not isinstance(parsed, list):
        logger.warning("pricing_discounts is not a list, using default tiers")
        return default_discounts()

    tiers: list[DiscountTier] = []
    untagged = 0
    for item in parsed:
        if not isinstance(item, dict):
            continue
        threshold = to_number(item.get("threshold"))
        percentage = to_number(item.get("percentage"))
        if threshold is None or percentage is None:
            logger.warning("Invalid discount tier %r, using default tiers", item)
            return default_discounts()
        if threshold <= 0 or percentage < 0:
            continue
        kind = item.get("kind")
        if kind not in ("duration", "volume"):
            untagged += 1
            kind = "duration" if threshold <= LEGACY_DURATION_MAX_THRESHOLD else "volume"
        tiers.append(DiscountTier(kind=kind, threshold=threshold, percentage=percentage))
    if untagged:
        logger.info("Classified %s untagged discount tiers by threshold", untagged)
    return tiers or default_discounts()


def decode_pricing_settings(rows: Iterable[Mapping[str, Any]]) -> PricingSettings:
    values = _row_map(rows)
    if not values:
        return DEFAULT_PRICING_SETTINGS.model_copy(deep=True)
    d = DEFAULT_PRICING_SETTINGS
    return PricingSettings(
        subscription=SubscriptionPricing(
            monthly_price=parse_number_setting(
                values.get("pricing_subscription_monthly_price"),
                "pricing_subscription_monthly_price",
                d.subscription.monthly_price,
            ),
            monthly_tokens=parse_int_setting(
                values.get("pricing_subscription_monthly_tokens"),
                "pricing_subscription_monthly_tokens",
                d.subscription.monthly_tokens,
            ),
            currency=parse_text_setting(
                values.get("pricing_subscription_currency"),
                "pricing_subscription_currency",
                d.subscription.currency,
            ),
        ),
        tokens=TokenPricing(
            price_per_million=parse_number_setting(
                values.get("pricing_tokens_price_per_million"),
                "pricing_tokens_price_per_million",
                d.tokens.price_per_million,
            ),
            currency=parse_text_setting(
                values.get("pricing_tokens_currency"), "pricing_tokens_currency", d.tokens.currency
            ),
        ),
        discounts=decode_discounts(values.get("pricing_discounts")),
        vat=VatSettings(
            enabled=parse_boolean_setting(values.get("pricing_vat_enabled"), "pricing_vat_enabled", d.vat.enabled),
            rate=parse_number_setting(values.get("pricing_vat_rate"), "pricing_vat_rate", d.vat.rate),
        ),
    )


def encode_pricing_settings(pricing: PricingSettings) -> list[dict[str, Any]]:
    values = {
        "pricing_subscription_monthly_price": _format_number(pricing.subscription.monthly_price),
        "pricing_subscription_monthly_tokens": _format_number(pricing.subscription.monthly_tokens),
        "pricing_subscription_currency": pricing.subscription.currency,
        "pricing_tokens_price_per_million": _format_number(pricing.tokens.price_per_million),
        "pricing_tokens_currency": pricing.tokens.currency,
        "pricing_discounts": json.dumps([tier.to_wire() for tier in pricing.discounts]),
        "pricing_vat_enabled": _bool_text(pricing.vat.enabled),
        "pricing_vat_rate": _format_number(pricing.vat.rate),
    }
    return [_record(key, values[key], PRICING_DESCRIPTIONS[key]) for key in PRICING_KEYS]


def pricing_from_wire(raw: Mapping[str, Any] | PricingSettings) -> PricingSettings:
    """Typed pricing from an edited camelCase payload; untagged tiers are classified like stored ones.

    Raises ``ValidationError`` when a section is unreadable.
    """
    if isinstance(raw, PricingSettings):
        return raw
    data = dict(raw)
    if "discounts" in data:
        data["discounts"] = [tier.to_wire() for tier in decode_discounts(data["discounts"])]
    return PricingSettings.model_validate(data)


def duration_discounts(pricing: PricingSettings) -> list[DiscountTier]:
    """Tiers applying to prepaid subscription months, by ascending threshold."""
    return sorted((t for t in pricing.discounts if t.kind == "duration"), key=lambda t: t.threshold)


def volume_discounts(pricing: PricingSettings) -> list[DiscountTier]:
    """Tiers applying to token purchases, by ascending threshold."""
    return sorted((t for t in pricing.discounts if t.kind == "volume"), key=lambda t: t.threshold)


def applicable_discount(tiers: Iterable[DiscountTier], amount: int | float) -> int | float:
    """Best percentage among tiers reached by ``amount``; 0 when none applies."""
    reached = [t.percentage for t in tiers if amount >= t.threshold]
    return max(reached) if reached else 0


# --- trial ----------------------------------------------------------------


def decode_trial_settings(rows: Iterable[Mapping[str, Any]]) -> TrialSettings:
    values = _row_map(rows)
    d = DEFAULT_TRIAL_SETTINGS
    tokens = values.get("trial_tokens")
    if tokens is None:
        tokens = values.get("trial_tokens_amount")
    return TrialSettings(
        duration_days=parse_int_setting(values.get("trial_duration_days"), "trial_duration_days", d.duration_days),
        tokens=parse_int_setting(tokens, "trial_tokens", d.tokens),
        enabled=parse_boolean_setting(values.get("trial_enabled"), "trial_enabled", d.enabled),
    )


# --- payment --------------------------------------------------------------


def decode_payment_settings(rows: Iterable[Mapping[str, Any]]) -> PaymentSettings:
    """Stored methods layered over the built-in ones; unknown method ids are kept."""
    raw = _row_map(rows).get(PAYMENT_KEY)
    result = DEFAULT_PAYMENT_SETTINGS.model_copy(deep=True)
    if raw is None or raw == "":
        return result
    parsed = parse_json_setting(raw, PAYMENT_KEY)
    if not isinstance(parsed, dict):
        logger.warning("payment_method_settings is malformed, using defaults")
        return result
    incoming = parsed.get("methods")
    if not isinstance(incoming, dict):
        return result
    for method_id, config in incoming.items():
        try:
            result.methods[method_id] = PaymentMethodConfig.model_validate(config)
        except ValidationError:
            logger.warning("Ignoring malformed payment method %s", method_id)
    return result


def _trimmed(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _sanitize_bank_accounts(raw: Any) -> list[BankAccount] | None:
    if not isinstance(raw, list):
        return None
    accounts = []
    for item in raw:
        if not isinstance(item, dict):
            continue
        label = _trimmed(item.get("label"))
        if not label:
            continue
        accounts.append(
            BankAccount(
                id=_trimmed(item.get("id")),
                label=label,
                bank_name=_trimmed(item.get("bankName")),
                account_number=_trimmed(item.get("accountNumber")),
                iban=_trimmed(item.get("iban")),
                swift=_trimmed(item.get("swift")),
                notes=_trimmed(item.get("notes")),
            )
        )
    return accounts or None


def sanitize_payment_payload(payment: PaymentSettings | Mapping[str, Any] | None) -> PaymentSettings | None:
    """Normalize an edited payment section. Methods without a label are dropped."""
    if isinstance(payment, PaymentSettings):
        payment = payment.to_wire()
    if not isinstance(payment, Mapping) or not isinstance(payment.get("methods"), Mapping):
        return None
    methods: dict[str, PaymentMethodConfig] = {}
    for method_id, config in payment["methods"].items():
        if not isinstance(config, Mapping):
            continue
        label = _trimmed(config.get("label"))
        if not label:
            continue
        methods[method_id] = PaymentMethodConfig(
            enabled=bool(config.get("enabled")),
            label=label,
            description=config.get("description") if isinstance(config.get("description"), str) else None,
            instructions=config.get("instructions") if isinstance(config.get("instructions"), str) else None,
            bank_accounts=_sanitize_bank_accounts(config.get("bankAccounts")),
        )
    return PaymentSettings(methods=methods)


def encode_payment_settings(payment: PaymentSettings | Mapping[str, Any]) -> list[dict[str, Any]]:
    sanitized = sanitize_payment_payload(payment)
    if sanitized is None:
        return []
    return [_record(PAYMENT_KEY, json.dumps(sanitized.to_wire()))]


# --- llm ------------------------------------------------------------------


def _llm_source(raw: Any) -> dict | None:
    if isinstance(raw, LLMSettings):
        return raw.model_dump(by_alias=True, mode="json")
    if isinstance(raw, str):
        raw = parse_json_setting(raw, LLM_KEY)
    return raw if isinstance(raw, dict) else None


def _positive_count(value: Any, fallback: int) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        return fallback
    return int(value)


def decode_llm_settings(raw: Any) -> LLMSettings:
    """Admin view of ``llm_settings`` with its cross-references repaired.

    Default model ids must name configured models; the primary model falls
    back to the first default, then to the first configured model.
    """
    parsed = _llm_source(raw)
    if parsed is None:
        return DEFAULT_LLM_SETTINGS.model_copy(deep=True)

    models = parsed.get("models")
    models = {k: v for k, v in models.items() if isinstance(v, dict)} if isinstance(models, dict) else {}

    api_keys: dict[str, ApiKeyEntry] = {}
    raw_keys = parsed.get("apiKeys")
    if isinstance(raw_keys, dict):
        for name, entry in raw_keys.items():
            try:
                api_keys[name] = ApiKeyEntry.model_validate(entry)
            except ValidationError:
                logger.warning("Ignoring malformed API key entry %s", name)

    global_raw = DEFAULT_LLM_SETTINGS.global_settings.model_dump(by_alias=True)
    if isinstance(parsed.get("globalSettings"), dict):
        global_raw.update(parsed["globalSettings"])
    try:
        global_settings = LLMGlobalSettings.model_validate(global_raw)
    except ValidationError:
        logger.warning("Malformed LLM global settings, using defaults")
        global_settings = DEFAULT_LLM_SETTINGS.global_settings.model_copy()

    model_ids = list(models)
    default_models: list[str] = []
    if isinstance(parsed.get("defaultModels"), list):
        for model_id in parsed["defaultModels"]:
            if isinstance(model_id, str) and model_id in models and model_id not in default_models:
                default_models.append(model_id)

    primary = global_settings.default_model_id
    if primary and primary not in models:
        primary = default_models[0] if default_models else (model_ids[0] if model_ids else None)
    if not primary and model_ids:
        primary = model_ids[0]
    global_settings.default_model_id = primary

    return LLMSettings(
        models=models,
        default_models=default_models or ([primary] if primary else []),
        max_simultaneous_models=_positive_count(parsed.get("maxSimultaneousModels"), DEFAULT_MAX_SIMULTANEOUS_MODELS),
        api_keys=api_keys,
        global_settings=global_settings,
        assistant_functions=sanitize_assistant_functions(parsed.get("assistantFunctions")),
    )


def encode_llm_settings(llm: LLMSettings) -> list[dict[str, Any]]:
    # nulls are meaningful here (no primary model)
    return [_record(LLM_KEY, json.dumps(llm.model_dump(by_alias=True, mode="json")))]


def _public_model(model_id: str, raw: dict) -> PublicLLMModel | None:
    if not raw.get("isEnabled", True):
        return None
    return PublicLLMModel(
        id=model_id,
        name=_trimmed(raw.get("name")) or DEFAULT_MODEL.name,
        provider=_trimmed(raw.get("provider")) or DEFAULT_MODEL.provider,
        description=_trimmed(raw.get("description")) or DEFAULT_MODEL.description,
        color=_trimmed(raw.get("color")) or DEFAULT_MODEL.color,
        is_premium=bool(raw.get("isPremium")),
    )


def to_public_llm_settings(raw: Any) -> PublicLLMSettings:
    """What end users may see of ``llm_settings``: enabled models, no keys."""
    parsed = _llm_source(raw) or {}
    functions = to_public_assistant_functions(sanitize_assistant_functions(parsed.get("assistantFunctions")))

    models: dict[str, PublicLLMModel] = {}
    raw_models = parsed.get("models")
    if isinstance(raw_models, dict):
        for model_id, value in raw_models.items():
            if isinstance(value, dict):
                model = _public_model(model_id, value)
                if model:
                    models[model_id] = model

    if not models:
        return PublicLLMSettings(
            models={DEFAULT_MODEL.id: DEFAULT_MODEL.model_copy()},
            default_models=[DEFAULT_MODEL.id],
            max_simultaneous_models=DEFAULT_MAX_SIMULTANEOUS_MODELS,
            global_settings=PublicLLMGlobalSettings(allow_model_selection=True, default_model_id=DEFAULT_MODEL.id),
            assistant_functions=functions,
        )

    raw_global = parsed.get("globalSettings") if isinstance(parsed.get("globalSettings"), dict) else {}
    raw_defaults = parsed.get("defaultModels") if isinstance(parsed.get("defaultModels"), list) else []
    default_ids = [m for m in raw_defaults if isinstance(m, str) and m in models]
    candidate = raw_global.get("defaultModelId")
    if isinstance(candidate, str) and candidate in models:
        primary = candidate
    elif default_ids:
        primary = default_ids[0]
    else:
        primary = next(iter(models))

    return PublicLLMSettings(
        models=models,
        default_models=default_ids or [primary],
        max_simultaneous_models=_positive_count(parsed.get("maxSimultaneousModels"), DEFAULT_MAX_SIMULTANEOUS_MODELS),
        global_settings=PublicLLMGlobalSettings(
            allow_model_selection=bool(raw_global.get("allowModelSelection", True)),
            default_model_id=primary,
        ),
        assistant_functions=functions,
    )
