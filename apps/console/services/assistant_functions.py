"""Normalization of assistant-function configurations.

Stored configs are free-form JSON edited over the lifetime of the product, so
every field is coerced into a well-formed ``AssistantFunctionConfig`` here.
``to_public_assistant_functions`` is the only projection that may leave the
admin surface: it never carries key names.
"""
from __future__ import annotations

import logging
from typing import Any, Mapping

from apps.console.schemas.assistant import (
    AssistantFunctionConfig,
    AssistantMetadata,
    AssistantPrompt,
    PublicAssistantFunctionConfig,
    TranslatableField,
)
from apps.console.services.setting_values import to_number

logger = logging.getLogger(__name__)

PROMPT_TYPES = ("local", "openai_prompt", "openai_assistant")
RESPONSE_FORMATS = ("text", "json", "auto")
TRANSLATION_ASSISTANT_ID = "conversation"

_TRANSLATION_ATTRS = {
    "name": "name_translations",
    "description": "description_translations",
    "invitation": "invitation_translations",
}
_TRANSLATION_KEYS = ("nameTranslations", "descriptionTranslations", "invitationTranslations")


def _default_functions() -> dict[str, AssistantFunctionConfig]:
    return {
        "conversation": AssistantFunctionConfig(
            id="conversation",
            name="Assistant conversationnel",
            description="Assistant dédié aux échanges généraux avec l'utilisateur.",
            provider="openai",
            model_config_id="gpt4",
            api_key_name="OPENAI_API_KEY",
            prompt=AssistantPrompt(type="openai_assistant", open_ai_assistant_id=""),
            temperature=0.7,
            top_p=1,
            max_tokens=2000,
            response_format="text",
            is_enabled=True,
            tags=["conversation", "général"],
            invitation_message=None,
        ),
        "summary": AssistantFunctionConfig(
            id="summary",
            name="Assistant de synthèse",
            description="Produit des résumés synthétiques de documents ou de conversations.",
            provider="openai",
            model_config_id="gpt4",
            api_key_name="OPENAI_API_KEY",
            prompt=AssistantPrompt(type="local", local_prompt_id="summary_default"),
            temperature=0.2,
            top_p=1,
            max_tokens=1500,
            response_format="text",
            is_enabled=True,
            tags=["résumé"],
            invitation_message=None,
        ),
    }


DEFAULT_ASSISTANT_FUNCTIONS = _default_functions()


def default_assistant_functions() -> dict[str, AssistantFunctionConfig]:
    """Fresh copy of the built-in set; callers may mutate it."""
    return _default_functions()


def parse_number(value: Any) -> int | float | None:
    """Tunable numbers: blank or unparseable means "unset", never 0."""
    if value is None or value == "":
        return None
    return to_number(value)


def _optional_str(value: Any) -> str | None:
    return value if isinstance(value, str) else None


def _sanitize_prompt(raw: Any) -> AssistantPrompt:
    if not isinstance(raw, dict):
        raw = {}
    prompt_type = raw.get("type")
    return AssistantPrompt(
        type=prompt_type if prompt_type in PROMPT_TYPES else "local",
        local_prompt_id=_optional_str(raw.get("localPromptId")),
        open_ai_prompt_id=_optional_str(raw.get("openAiPromptId")),
        open_ai_assistant_id=_optional_str(raw.get("openAiAssistantId")),
        version_tag=_optional_str(raw.get("versionTag")),
    )


def _sanitize_metadata(raw: Any) -> AssistantMetadata | None:
    if not isinstance(raw, dict):
        return None
    data = dict(raw)
    for key in _TRANSLATION_KEYS:
        value = data.get(key)
        if isinstance(value, dict):
            data[key] = {k: v for k, v in value.items() if isinstance(k, str) and isinstance(v, str)}
        else:
            data.pop(key, None)
    return AssistantMetadata.model_validate(data)


def _sanitize_one(function_id: str, value: dict) -> AssistantFunctionConfig:
    name = value.get("name")
    name = name.strip() if isinstance(name, str) and name.strip() else f"Assistant {function_id}"
    provider = value.get("provider")
    provider = provider.strip() if isinstance(provider, str) and provider.strip() else "openai"
    model_config_id = value.get("modelConfigId")
    response_format = value.get("responseFormat")
    tags = value.get("tags")
    return AssistantFunctionConfig(
        id=function_id,
        name=name,
        description=value.get("description") if isinstance(value.get("description"), str) else "",
        provider=provider,
        model_config_id=model_config_id if isinstance(model_config_id, str) else "gpt35",
        api_key_name=_optional_str(value.get("apiKeyName")),
        prompt=_sanitize_prompt(value.get("prompt")),
        temperature=parse_number(value.get("temperature")),
        top_p=parse_number(value.get("topP")),
        max_tokens=parse_number(value.get("maxTokens")),
        response_format=response_format if response_format in RESPONSE_FORMATS else "text",
        is_enabled=value.get("isEnabled") is not False,
        tags=[t for t in tags if isinstance(t, str)] if isinstance(tags, list) else None,
        metadata=_sanitize_metadata(value.get("metadata")),
        invitation_message=_optional_str(value.get("invitationMessage")),
    )


def sanitize_assistant_functions(raw: Any) -> dict[str, AssistantFunctionConfig]:
    """Coerce a stored ``assistantFunctions`` map. Never returns an empty map."""
    if not isinstance(raw, dict) or not raw:
        return default_assistant_functions()
    result: dict[str, AssistantFunctionConfig] = {}
    for function_id, value in raw.items():
        if isinstance(value, AssistantFunctionConfig):
            value = value.model_dump(by_alias=True)
        if not isinstance(value, dict):
            logger.warning("Dropping assistant function %s: not an object", function_id)
            continue
        result[str(function_id)] = _sanitize_one(str(function_id), value)
    if not result:
        return default_assistant_functions()
    return result


def to_public_assistant_functions(
    functions: Mapping[str, AssistantFunctionConfig],
) -> dict[str, PublicAssistantFunctionConfig]:
    result: dict[str, PublicAssistantFunctionConfig] = {}
    for function_id, config in functions.items():
        if not config.is_enabled:
            continue
        prompt = config.prompt
        result[function_id] = PublicAssistantFunctionConfig(
            id=config.id,
            name=config.name,
            description=config.description,
            provider=config.provider,
            model_config_id=config.model_config_id,
            prompt=prompt.model_copy(),
            temperature=config.temperature,
            top_p=config.top_p,
            max_tokens=config.max_tokens,
            response_format=config.response_format,
            tags=list(config.tags) if config.tags else None,
            metadata=config.metadata.model_copy(deep=True) if config.metadata else None,
            invitation_message=config.invitation_message,
            has_open_ai_reference=bool(prompt.open_ai_assistant_id or prompt.open_ai_prompt_id),
        )
    return result


def source_text(config: AssistantFunctionConfig, field: TranslatableField) -> str:
    if field == "name":
        return config.name
    if field == "description":
        return config.description
    return config.invitation_message or ""


def get_translation(config: AssistantFunctionConfig, field: TranslatableField, locale: str) -> str | None:
    if config.metadata is None:
        return None
    value = getattr(config.metadata, _TRANSLATION_ATTRS[field]).get(locale)
    return value if value and value.strip() else None


def set_translation(
    config: AssistantFunctionConfig,
    field: TranslatableField,
    locale: str,
    text: str | None,
) -> AssistantFunctionConfig:
    """Return a copy with the translation set; blank text removes it."""
    metadata = config.metadata.model_copy(deep=True) if config.metadata else AssistantMetadata()
    translations = dict(getattr(metadata, _TRANSLATION_ATTRS[field]))
    if text and text.strip():
        translations[locale] = text.strip()
    else:
        translations.pop(locale, None)
    setattr(metadata, _TRANSLATION_ATTRS[field], translations)
    return config.model_copy(update={"metadata": metadata})


def pick_translation_assistant(functions: Mapping[str, AssistantFunctionConfig]) -> str | None:
    if TRANSLATION_ASSISTANT_ID in functions:
        return TRANSLATION_ASSISTANT_ID
    for function_id in functions:
        return function_id
    return None
