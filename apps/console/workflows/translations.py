"""Автоперевод текстов ассистентов (en, ar) через call-ai-assistant."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Mapping, Optional

from apps.console.clients.backend import BackendError
from apps.console.clients.records import AssistantGateway
from apps.console.clients.settings import SettingsGateway
from apps.console.schemas.assistant import AssistantFunctionConfig, TranslatableField
from apps.console.services.assistant_functions import (
    get_translation,
    pick_translation_assistant,
    set_translation,
    source_text,
)
from apps.console.services.task_queue import BatchProgress, SequentialTaskQueue

logger = logging.getLogger(__name__)

TRANSLATION_LOCALES = ("en", "ar")
TRANSLATABLE_FIELDS: tuple[TranslatableField, ...] = ("name", "description", "invitation")
LANGUAGE_LABELS = {"fr": "Français", "en": "English", "ar": "العربية"}

INSTRUCTIONS = {
    "ar": "ترجم النص التالي إلى اللغة العربية الفصحى. أعد الجملة مترجمة فقط دون أي تعليق إضافي.",
    "en": "Translate the following text into natural professional English. Reply with the translated text only.",
}

NO_ASSISTANT_ERROR = "Aucun assistant disponible pour la traduction."
EMPTY_SOURCE_ERROR = "Le texte source est vide."
EMPTY_RESULT_ERROR = "Traduction vide retournée par l'assistant."

Translator = Callable[[str, str], str]


class TranslationError(Exception):
    pass


def translation_instructions(locale: str) -> str:
    if locale in INSTRUCTIONS:
        return INSTRUCTIONS[locale]
    return f"Traduisez le texte suivant en {LANGUAGE_LABELS.get(locale, locale)}. Répondez uniquement avec la traduction."


def make_assistant_translator(gateway: AssistantGateway, functions: Mapping[str, AssistantFunctionConfig]) -> Translator:
    """Translator backed by the conversation assistant (else the first configured one)."""
    assistant_id = pick_translation_assistant(functions)

    def translate(text: str, locale: str) -> str:
        if not assistant_id:
            raise TranslationError(NO_ASSISTANT_ERROR)
        trimmed = text.strip()
        if not trimmed:
            raise TranslationError(EMPTY_SOURCE_ERROR)
        reply = gateway.invoke_assistant(
            assistant_id,
            f"{translation_instructions(locale)}\n\n{trimmed}",
            language=locale,
        ).strip()
        if not reply:
            raise TranslationError(EMPTY_RESULT_ERROR)
        return reply

    return translate


@dataclass(frozen=True)
class TranslationTask:
    function_id: str
    function_name: str
    field: TranslatableField
    locale: str
    source: str

    @property
    def label(self) -> str:
        return f"{self.function_name} → {LANGUAGE_LABELS.get(self.locale, self.locale)}"


@dataclass
class TranslationReport:
    functions: dict[str, AssistantFunctionConfig]
    translated: int = 0
    failed: list[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return self.translated > 0

    def failure_message(self) -> Optional[str]:
        if not self.failed:
            return None
        return f"Traduction échouée pour : {', '.join(self.failed)}"


def pending_translations(functions: Mapping[str, AssistantFunctionConfig]) -> list[TranslationTask]:
    """Every (function, field, locale) with a source text and no translation yet."""
    tasks = []
    for function_id, config in functions.items():
        for name in TRANSLATABLE_FIELDS:
            source = source_text(config, name).strip()
            if not source:
                continue
            for locale in TRANSLATION_LOCALES:
                if get_translation(config, name, locale):
                    continue
                tasks.append(
                    TranslationTask(
                        function_id=function_id,
                        function_name=config.name or function_id,
                        field=name,
                        locale=locale,
                        source=source,
                    )
                )
    return tasks


def bulk_translate(
    functions: Mapping[str, AssistantFunctionConfig],
    translate: Translator,
    on_progress: Optional[Callable[[BatchProgress], None]] = None,
) -> TranslationReport:
    """Translate all missing texts one request at a time; failures are collected, not raised."""
    updated = dict(functions)
    tasks = pending_translations(functions)
    if not tasks:
        return TranslationReport(functions=updated)

    def run(task: TranslationTask) -> TranslationTask:
        text = translate(task.source, task.locale)
        updated[task.function_id] = set_translation(updated[task.function_id], task.field, task.locale, text)
        return task

    queue = SequentialTaskQueue(run, label=lambda t: t.label, on_progress=on_progress)
    result = queue.run(tasks)
    logger.info("bulk translation done ok=%s failed=%s", len(result.succeeded), len(result.failures))
    return TranslationReport(
        functions=updated,
        translated=len(result.succeeded),
        failed=[f.label for f in result.failures],
    )


def auto_translate_function(
    config: AssistantFunctionConfig,
    name: TranslatableField,
    translate: Translator,
) -> AssistantFunctionConfig:
    """Fill the missing locales of one field. Existing translations are kept; errors propagate."""
    source = source_text(config, name).strip()
    if not source:
        raise TranslationError(EMPTY_SOURCE_ERROR)
    for locale in TRANSLATION_LOCALES:
        if get_translation(config, name, locale):
            continue
        config = set_translation(config, name, locale, translate(source, locale))
    return config


def translate_all_and_save(
    settings: SettingsGateway,
    assistant: AssistantGateway,
    on_progress: Optional[Callable[[BatchProgress], None]] = None,
) -> TranslationReport:
    """Bulk-translate the stored assistant functions and save them when anything was added.

    Nothing is translated or saved when the stored settings cannot be read:
    ``TranslationError`` carries the load error. Raises ``SettingsSaveError``
    when the translated settings cannot be saved.
    """
    try:
        llm = settings.fetch_llm_settings()
    except BackendError as e:
        logger.error("bulk translation aborted, llm settings unavailable: %s", e.message)
        raise TranslationError(e.message) from e
    report = bulk_translate(
        llm.assistant_functions,
        make_assistant_translator(assistant, llm.assistant_functions),
        on_progress=on_progress,
    )
    if report.changed:
        settings.save_llm_settings(llm.model_copy(update={"assistant_functions": report.functions}))
    return report
